"""Credit Saga

Reserve-then-execute coordinator that ties the pricing engine and the
ledger store to an arbitrary, unreliable unit of work. Every failure after
the reservation has exactly one compensating action: a refund keyed by the
reservation's transaction id.

    START -> PRICED -> RESERVED -> WORKING -> SUCCEEDED
                                           -> COMPENSATED
                                           -> FAILED_UNRECOVERABLE
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional
from libs.result import Error
from src.app.services.business_record_store import BusinessRecordStore
from src.app.services.notification_service import (
    NotificationService,
    LedgerAlert,
    AlertKind,
)
from src.app.use_cases.billing.estimate_credit import EstimateCredit
from src.app.use_cases.billing.ledger_store import LedgerStore

logger = logging.getLogger(__name__)


class SagaState(str, Enum):
    START = "start"
    PRICED = "priced"
    RESERVED = "reserved"
    WORKING = "working"
    SUCCEEDED = "succeeded"
    COMPENSATED = "compensated"
    FAILED_UNRECOVERABLE = "failed_unrecoverable"


class ChargeOutcome(str, Enum):
    """What happened to the user's credits"""
    NOT_CHARGED = "not_charged"      # Failed before any funds moved
    REFUNDED = "refunded"            # Charged, then compensated
    REFUND_FAILED = "refund_failed"  # Charged, compensation failed: reconciliation gap


class CreditSagaError(Exception):
    """
    Terminal saga failure

    `charge_outcome` tells callers whether credits were never taken, taken
    and given back, or taken and not given back.
    """

    def __init__(
        self,
        error: Error,
        state: SagaState,
        charge_outcome: ChargeOutcome,
        transaction_id: Optional[str] = None,
        record_id: Optional[str] = None,
        original: Optional[BaseException] = None,
    ):
        super().__init__(error.message)
        self.error = error
        self.state = state
        self.charge_outcome = charge_outcome
        self.transaction_id = transaction_id
        self.record_id = record_id
        self.original = original


class PaymentRequired(CreditSagaError):
    """Balance does not cover the cost, or the user has no credit account"""

    @property
    def required_credits(self) -> Optional[int]:
        return (self.error.details or {}).get("required")


class ReservationFailed(CreditSagaError):
    """Pricing, debit or record creation failed; no work was attempted"""


class WorkFailed(CreditSagaError):
    """The unit of work raised; `original` is the exception it raised"""


@dataclass
class SagaResult:
    record_id: str
    transaction_id: Optional[str]
    credits_charged: int
    result: Any
    state: SagaState = SagaState.SUCCEEDED


Work = Callable[[str], Awaitable[Any]]


class CreditSaga:
    """
    Coordinates one paid operation.

    No retries: a failed saga is terminal and retrying means starting a new
    one (new transaction id). No lock is held while `work` runs; the
    reservation is already committed.
    """

    def __init__(
        self,
        pricing: EstimateCredit,
        ledger: LedgerStore,
        records: BusinessRecordStore,
        notification_service: Optional[NotificationService] = None,
    ):
        self.pricing = pricing
        self.ledger = ledger
        self.records = records
        self.notification_service = notification_service

    async def run(
        self,
        user_id: str,
        operation: str,
        cost_params: Mapping[str, Any],
        work: Work,
        record_fields: Optional[Dict[str, Any]] = None,
    ) -> SagaResult:
        """
        Price, reserve, create the record, run `work(record_id)`.

        Returns:
            SagaResult with the work's return value and the credits charged

        Raises:
            PaymentRequired: insufficient balance or no account (not charged)
            ReservationFailed: failure before work started (not charged, or
                charged and refunded when the record could not be created)
            WorkFailed: `work` raised; compensation was attempted and its
                outcome is in `charge_outcome`
        """
        # START -> PRICED
        try:
            cost = await self.pricing.compute_cost(operation, cost_params)
        except Exception as e:
            logger.error(f"Pricing {operation} for user {user_id} failed: {e}")
            raise ReservationFailed(
                Error(code="PRICING_FAILED", message=f"Could not price {operation}", reason=str(e)),
                SagaState.START,
                ChargeOutcome.NOT_CHARGED,
                original=e,
            ) from e

        logger.info(f"Saga {operation} for user {user_id}: priced at {cost} credits")

        # PRICED -> RESERVED
        try:
            debit_result = await self.ledger.debit(
                user_id,
                cost,
                operation,
                metadata={"params": dict(cost_params)},
            )
        except Exception as e:
            logger.error(f"Reserving {cost} credits of user {user_id} for {operation} failed: {e}")
            raise ReservationFailed(
                Error(code="DEBIT_CREDIT_FAILED", message="Failed to debit credits", reason=str(e)),
                SagaState.PRICED,
                ChargeOutcome.NOT_CHARGED,
                original=e,
            ) from e

        if debit_result.is_err():
            error = debit_result.error
            logger.info(f"Saga {operation} for user {user_id}: reservation refused ({error.code})")
            error_class = (
                PaymentRequired
                if error.code in ("INSUFFICIENT_CREDIT", "ACCOUNT_NOT_FOUND")
                else ReservationFailed
            )
            raise error_class(error, SagaState.PRICED, ChargeOutcome.NOT_CHARGED)

        transaction_id = debit_result.value.transaction_id
        logger.info(f"Saga {operation} for user {user_id}: reserved {cost} credits (transaction={transaction_id})")

        # RESERVED -> WORKING
        try:
            record_id = await self.records.create(user_id, cost, transaction_id, dict(record_fields or {}))
        except Exception as e:
            logger.error(f"Saga {operation}: record creation failed after reservation {transaction_id}: {e}")
            outcome, state = await self._compensate(
                user_id, transaction_id, cost, None, f"Record creation failed: {e}"
            )
            raise ReservationFailed(
                Error(
                    code="RECORD_CREATION_FAILED",
                    message="Failed to create business record",
                    reason=str(e),
                ),
                state,
                outcome,
                transaction_id=transaction_id,
                original=e,
            ) from e

        # WORKING -> SUCCEEDED | COMPENSATED | FAILED_UNRECOVERABLE
        try:
            result = await work(record_id)
            await self.records.mark_completed(record_id, result)
        except Exception as e:
            logger.warning(f"Saga {operation}: work for record {record_id} failed: {e}")
            try:
                await self.records.mark_failed(record_id, str(e))
            except Exception as mark_error:
                logger.error(f"Could not mark record {record_id} failed: {mark_error}")

            outcome, state = await self._compensate(
                user_id, transaction_id, cost, record_id, f"Processing error: {e}"
            )
            raise WorkFailed(
                Error(
                    code="WORK_FAILED",
                    message=str(e) or type(e).__name__,
                    reason=type(e).__name__,
                ),
                state,
                outcome,
                transaction_id=transaction_id,
                record_id=record_id,
                original=e,
            ) from e

        logger.info(
            f"Saga {operation} for user {user_id} succeeded: record {record_id}, "
            f"{cost} credits charged"
        )
        return SagaResult(
            record_id=record_id,
            transaction_id=transaction_id,
            credits_charged=cost,
            result=result,
        )

    async def _compensate(
        self,
        user_id: str,
        transaction_id: str,
        amount: int,
        record_id: Optional[str],
        reason: str,
    ):
        """Refund the reservation once. Never raises."""
        try:
            refund_result = await self.ledger.refund(transaction_id, reason)
            refund_error = refund_result.error if refund_result.is_err() else None
        except Exception as e:
            refund_error = Error(code="REFUND_CREDIT_FAILED", message="Refund raised", reason=str(e))

        if refund_error is None:
            logger.info(f"Refunded {amount} credits to user {user_id} (transaction={transaction_id})")
            if record_id:
                try:
                    await self.records.mark_refunded(record_id)
                except Exception as e:
                    logger.error(f"Could not mark record {record_id} refunded: {e}")
            return ChargeOutcome.REFUNDED, SagaState.COMPENSATED

        detail = f"{refund_error.code}: {refund_error.message}"
        if refund_error.reason:
            detail = f"{detail} ({refund_error.reason})"
        logger.error(
            f"Reconciliation gap: transaction {transaction_id} charged {amount} credits "
            f"to user {user_id} and could not be refunded: {detail}"
        )

        if record_id:
            try:
                await self.records.flag_unrefunded(record_id, detail)
            except Exception as e:
                logger.error(f"Could not flag record {record_id} unrefunded: {e}")

        if self.notification_service:
            try:
                await self.notification_service.send_ledger_alert(
                    LedgerAlert(
                        kind=AlertKind.UNREFUNDED_CHARGE,
                        user_id=user_id,
                        transaction_id=transaction_id,
                        record_id=record_id,
                        amount=amount,
                        detail=detail,
                    )
                )
            except Exception as e:
                logger.error(f"Failed to send unrefunded charge alert for {transaction_id}: {e}")

        return ChargeOutcome.REFUND_FAILED, SagaState.FAILED_UNRECOVERABLE
