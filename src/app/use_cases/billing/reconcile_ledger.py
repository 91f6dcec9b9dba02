"""ReconcileLedger Use Case

Reconciles credit balances against transaction history and surfaces ledger
gaps that need operator attention.
"""

import logging
import time
from datetime import datetime, timedelta
from typing import List, Optional
from libs.result import Result, Return, Error
from src.app.services.unit_of_work import UnitOfWork
from src.app.services.notification_service import (
    NotificationService,
    LedgerAlert,
    AlertKind,
)
from src.app.repositories.credit_account_repository import CreditAccountRepository
from src.app.repositories.credit_transaction_repository import CreditTransactionRepository
from src.app.repositories.generated_ad_repository import GeneratedAdRepository
from .dtos import (
    LedgerDiscrepancyDTO,
    OrphanedTransactionDTO,
    UnrefundedChargeDTO,
    ReconciliationResultDTO,
)

logger = logging.getLogger(__name__)


class ReconcileLedger:
    """
    Use Case: Reconcile the credit ledger

    Business Rules:
    1. Balance must equal the sum of the user's settled (completed or
       refunded) transaction amounts; pending rows are excluded
    2. A pending transaction older than the grace period is an interrupted
       deduction
    3. A failed ad whose deduction is still completed is a charge that was
       never refunded
    4. Does NOT modify any data (read-only reconciliation); every finding is
       logged and, if a notification service is configured, sent as an alert

    Flow:
    1. Get all accounts, compare each balance with its settled sum
    2. Collect pending transactions older than the grace period
    3. Collect failed ads with a completed charge
    4. Notify and return the result
    """

    def __init__(
        self,
        uow: UnitOfWork,
        account_repo: CreditAccountRepository,
        transaction_repo: CreditTransactionRepository,
        ad_repo: GeneratedAdRepository,
        notification_service: Optional[NotificationService] = None,
        pending_grace_seconds: int = 300,
    ):
        self.uow = uow
        self.account_repo = account_repo
        self.transaction_repo = transaction_repo
        self.ad_repo = ad_repo
        self.notification_service = notification_service
        self.pending_grace_seconds = pending_grace_seconds

    async def execute(self) -> Result[ReconciliationResultDTO]:
        """
        Execute ledger reconciliation

        Returns:
            Result[ReconciliationResultDTO]: Reconciliation result with any findings
        """
        start_time = time.time()
        reconciliation_time = datetime.utcnow()

        try:
            logger.info("Starting credit ledger reconciliation")

            # Step 1: Balances against settled transaction sums
            accounts = await self.account_repo.get_all()
            total_accounts = len(accounts)

            logger.info(f"Found {total_accounts} accounts to reconcile")

            discrepancies: List[LedgerDiscrepancyDTO] = []

            for account in accounts:
                settled_sum = await self.transaction_repo.get_settled_sum_by_user(account.user_id)

                if account.balance != settled_sum:
                    discrepancy_amount = account.balance - settled_sum
                    discrepancies.append(
                        LedgerDiscrepancyDTO(
                            user_id=account.user_id,
                            account_balance=account.balance,
                            calculated_balance=settled_sum,
                            discrepancy=discrepancy_amount,
                        )
                    )
                    logger.warning(
                        f"Discrepancy found for user {account.user_id}: "
                        f"account_balance={account.balance}, "
                        f"transaction_sum={settled_sum}, "
                        f"discrepancy={discrepancy_amount}"
                    )

            # Step 2: Interrupted deductions
            cutoff = reconciliation_time - timedelta(seconds=self.pending_grace_seconds)
            orphaned = [
                OrphanedTransactionDTO(
                    transaction_id=txn.id,
                    user_id=txn.user_id,
                    amount=txn.amount,
                    operation=txn.operation,
                    created_at=txn.created_at,
                )
                for txn in await self.transaction_repo.get_pending_older_than(cutoff)
            ]
            for txn in orphaned:
                logger.warning(
                    f"Orphaned pending transaction {txn.transaction_id} for user "
                    f"{txn.user_id} ({txn.amount} credits, created {txn.created_at})"
                )

            # Step 3: Charges never refunded
            unrefunded = [
                UnrefundedChargeDTO(
                    record_id=ad.id,
                    user_id=ad.user_id,
                    transaction_id=ad.credit_transaction_id,
                    credits_used=ad.credits_used,
                    error_message=ad.error_message,
                )
                for ad in await self.ad_repo.list_failed_with_completed_charge()
            ]
            for charge in unrefunded:
                logger.error(
                    f"Unrefunded charge: ad {charge.record_id} failed but transaction "
                    f"{charge.transaction_id} still holds {charge.credits_used} credits "
                    f"of user {charge.user_id}"
                )

            await self.uow.rollback()

            # Step 4: Notify and build response
            await self._notify(discrepancies, orphaned, unrefunded)

            execution_time_ms = int((time.time() - start_time) * 1000)

            response = ReconciliationResultDTO(
                total_accounts_checked=total_accounts,
                discrepancies_found=len(discrepancies),
                discrepancies=discrepancies,
                orphaned_pending=orphaned,
                unrefunded_charges=unrefunded,
                reconciliation_time=reconciliation_time,
                execution_time_ms=execution_time_ms,
            )

            if response.has_findings:
                logger.warning(
                    f"Reconciliation complete. Found {len(discrepancies)} discrepancies, "
                    f"{len(orphaned)} orphaned pending transactions and "
                    f"{len(unrefunded)} unrefunded charges "
                    f"({total_accounts} accounts, {execution_time_ms}ms)"
                )
            else:
                logger.info(
                    f"Reconciliation complete. All {total_accounts} accounts balanced "
                    f"in {execution_time_ms}ms"
                )

            return Return.ok(response)

        except Exception as e:
            await self.uow.rollback()
            logger.error(f"Ledger reconciliation failed: {e}")
            return Return.err(
                Error(
                    code="RECONCILIATION_FAILED",
                    message="Failed to reconcile credit ledger",
                    reason=str(e),
                )
            )

    async def _notify(
        self,
        discrepancies: List[LedgerDiscrepancyDTO],
        orphaned: List[OrphanedTransactionDTO],
        unrefunded: List[UnrefundedChargeDTO],
    ) -> None:
        if not self.notification_service:
            return

        alerts = [
            LedgerAlert(
                kind=AlertKind.BALANCE_DISCREPANCY,
                user_id=d.user_id,
                amount=d.discrepancy,
                detail=f"balance={d.account_balance}, transaction_sum={d.calculated_balance}",
            )
            for d in discrepancies
        ]
        alerts += [
            LedgerAlert(
                kind=AlertKind.ORPHANED_PENDING,
                user_id=o.user_id,
                transaction_id=o.transaction_id,
                amount=o.amount,
                detail=f"{o.operation} pending since {o.created_at.isoformat()}",
            )
            for o in orphaned
        ]
        alerts += [
            LedgerAlert(
                kind=AlertKind.UNREFUNDED_CHARGE,
                user_id=u.user_id,
                transaction_id=u.transaction_id,
                record_id=u.record_id,
                amount=u.credits_used,
                detail=u.error_message or "",
            )
            for u in unrefunded
        ]

        for alert in alerts:
            if not await self.notification_service.send_ledger_alert(alert):
                logger.warning(f"Failed to deliver {alert.kind.value} alert for user {alert.user_id}")
