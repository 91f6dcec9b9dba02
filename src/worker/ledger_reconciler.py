"""Ledger Reconciliation Background Worker

Periodically reconciles credit balances against transaction history and
reports interrupted deductions and unrefunded charges.
Can be run as a standalone script or integrated with a scheduler.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession

from config import ApplicationConfig
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.adapter.services.notification_service import create_notification_service
from src.app.services.notification_service import NotificationService
from src.app.use_cases.billing import ReconcileLedger, ReconciliationResultDTO

logger = logging.getLogger(__name__)


class LedgerReconcilerWorker:
    """
    Background worker for credit ledger reconciliation

    Features:
    - Compares account balances against settled transaction sums
    - Reports pending transactions older than the grace period
    - Reports failed ads whose charge was never refunded
    - Sends every finding through the notification service
    - Can run once or continuously

    Usage:
        # Run once
        worker = LedgerReconcilerWorker()
        result = await worker.run_once()

        # Run continuously
        worker = LedgerReconcilerWorker()
        await worker.run_forever(interval_seconds=86400)  # Daily
    """

    def __init__(
        self,
        db_uri: Optional[str] = None,
        notification_service: Optional[NotificationService] = None,
        pending_grace_seconds: Optional[int] = None,
    ):
        """
        Initialize the worker

        Args:
            db_uri: Database URI (defaults to ApplicationConfig.DB_URI)
            notification_service: Alert sink (defaults to logging, plus the
                configured webhook if any)
            pending_grace_seconds: Age after which a pending transaction is
                reported (defaults to ApplicationConfig)
        """
        self.db_uri = db_uri or ApplicationConfig.DB_URI
        self.notification_service = notification_service or create_notification_service(
            ApplicationConfig.RECONCILIATION_NOTIFICATION_WEBHOOK
        )
        self.pending_grace_seconds = (
            pending_grace_seconds
            if pending_grace_seconds is not None
            else ApplicationConfig.PENDING_TRANSACTION_GRACE_SECONDS
        )

        self.engine = create_async_engine(self.db_uri, echo=False, future=True)
        self.async_session_factory = sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
        )

        logger.info("LedgerReconcilerWorker initialized")

    async def run_once(self) -> ReconciliationResultDTO:
        """
        Run reconciliation once

        Returns:
            ReconciliationResultDTO with reconciliation results
        """
        if not ApplicationConfig.RECONCILIATION_ENABLED:
            logger.info("Ledger reconciliation is disabled, skipping")
            return ReconciliationResultDTO(
                total_accounts_checked=0,
                discrepancies_found=0,
                reconciliation_time=datetime.utcnow(),
                execution_time_ms=0,
            )

        async with self.async_session_factory() as session:
            uow = SqlAlchemyUnitOfWork(session)

            use_case = ReconcileLedger(
                uow=uow,
                account_repo=uow.accounts,
                transaction_repo=uow.transactions,
                ad_repo=uow.ads,
                notification_service=self.notification_service,
                pending_grace_seconds=self.pending_grace_seconds,
            )

            result = await use_case.execute()

            if result.is_err():
                logger.error(f"Reconciliation failed: {result.error.message}")
                raise RuntimeError(f"Reconciliation failed: {result.error.message}")

            response = result.value

            if response.discrepancies_found > 0:
                logger.error(
                    f"ALERT: {response.discrepancies_found} ledger discrepancies found!"
                )
                for d in response.discrepancies:
                    logger.error(
                        f"  - User {d.user_id}: "
                        f"expected={d.calculated_balance}, actual={d.account_balance}, "
                        f"diff={d.discrepancy}"
                    )

            return response

    async def run_forever(self, interval_seconds: int = 86400):
        """
        Run reconciliation continuously at specified interval

        Args:
            interval_seconds: Seconds between reconciliation runs (default: 24 hours)
        """
        logger.info(
            f"Starting continuous ledger reconciliation with {interval_seconds}s interval"
        )

        while True:
            try:
                result = await self.run_once()
                logger.info(
                    f"Reconciliation cycle complete. "
                    f"Checked {result.total_accounts_checked} accounts, "
                    f"found {result.discrepancies_found} discrepancies, "
                    f"{len(result.orphaned_pending)} orphaned pending, "
                    f"{len(result.unrefunded_charges)} unrefunded charges "
                    f"in {result.execution_time_ms}ms"
                )
            except Exception as e:
                logger.error(f"Reconciliation cycle failed: {e}")

            await asyncio.sleep(interval_seconds)

    async def shutdown(self):
        """Cleanup resources"""
        await self.engine.dispose()
        logger.info("LedgerReconcilerWorker shutdown complete")


async def main():
    """
    Entry point for running the worker as a standalone script

    Usage:
        # Run once
        python -m src.worker.ledger_reconciler --once

        # Run continuously (default: ApplicationConfig interval)
        python -m src.worker.ledger_reconciler

        # Run continuously with custom interval (in seconds)
        python -m src.worker.ledger_reconciler --interval 3600
    """
    import argparse

    logging.basicConfig(
        level=ApplicationConfig.LOG_LEVEL,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    parser = argparse.ArgumentParser(description="Ledger Reconciliation Worker")
    parser.add_argument(
        "--once", action="store_true", help="Run once and exit"
    )
    parser.add_argument(
        "--interval", type=int, default=ApplicationConfig.RECONCILIATION_INTERVAL_SECONDS,
        help="Interval between runs in seconds (default: 86400 = 24 hours)"
    )
    args = parser.parse_args()

    worker = LedgerReconcilerWorker()

    try:
        if args.once:
            result = await worker.run_once()
            print("Reconciliation complete:")
            print(f"  Total accounts checked: {result.total_accounts_checked}")
            print(f"  Discrepancies found: {result.discrepancies_found}")
            print(f"  Orphaned pending transactions: {len(result.orphaned_pending)}")
            print(f"  Unrefunded charges: {len(result.unrefunded_charges)}")
            print(f"  Execution time: {result.execution_time_ms}ms")
            if result.discrepancies:
                print("\nDiscrepancies:")
                for d in result.discrepancies:
                    print(
                        f"  - User {d.user_id}: "
                        f"expected={d.calculated_balance}, "
                        f"actual={d.account_balance}, "
                        f"diff={d.discrepancy}"
                    )
            if result.unrefunded_charges:
                print("\nUnrefunded charges:")
                for c in result.unrefunded_charges:
                    print(
                        f"  - Ad {c.record_id} (user {c.user_id}): "
                        f"{c.credits_used} credits, transaction {c.transaction_id}"
                    )
        else:
            await worker.run_forever(interval_seconds=args.interval)
    except KeyboardInterrupt:
        logger.info("Received shutdown signal")
    finally:
        await worker.shutdown()


if __name__ == "__main__":
    asyncio.run(main())
