"""Integration tests for the credit saga and GenerateAd against a real database

Tests cover:
- Successful generation charges exactly the priced cost
- Failed generation is refunded and the record marked failed
- Insufficient funds creates no transactions and no records
- Saga reservation against a low balance or a bad price config
- A failed refund is flagged and picked up by reconciliation
"""

import pytest
from unittest.mock import AsyncMock
from sqlmodel import select

from libs.result import Return, Error
from src.app.services.ad_image_generator import (
    AdImageGenerator,
    AdGenerationRequest,
    AdGenerationResult,
)
from src.app.use_cases.billing import ReconcileLedger
from src.app.use_cases.generation import GenerateAdCommandDTO, ChargeOutcome, WorkFailed, PaymentRequired
from src.depends import build_credit_saga, build_generate_ad, build_ledger_store
from src.domain.credit_config import CreditConfig
from src.domain.credit_transaction import CreditTransaction, TransactionStatus
from src.domain.generated_ad import GeneratedAd, AdStatus, RefundStatus


class StubGenerator(AdImageGenerator):

    def __init__(self, error: Exception = None):
        self.error = error
        self.requests = []

    async def generate(self, request: AdGenerationRequest) -> AdGenerationResult:
        self.requests.append(request)
        if self.error:
            raise self.error
        return AdGenerationResult(
            original_image_urls=[f"https://cdn/{request.ad_id}/input.png"],
            result_urls=[f"https://cdn/{request.ad_id}/{i}.png" for i in range(request.num_samples)],
        )


async def all_rows(session, model):
    result = await session.execute(select(model).execution_options(populate_existing=True))
    return list(result.scalars().all())


def command(**overrides):
    fields = dict(
        user_id="user_1",
        prompt="Summer sale banner",
        images=[b"\x89PNG"],
        num_samples=3,
        quality="high",
    )
    fields.update(overrides)
    return GenerateAdCommandDTO(**fields)


@pytest.fixture
def notifier():
    service = AsyncMock()
    service.send_ledger_alert = AsyncMock(return_value=True)
    return service


@pytest.mark.asyncio
class TestGenerateAdIntegration:

    async def test_success_charges_priced_cost(self, uow, db_session, generate_ad_config):
        """
        Given: Balance 10 and quality=high, numSamples=3 (cost 2 + 1 + 2 = 5)
        When: Generation succeeds
        Then: Balance is 5, ad completed with results, no refund row
        """
        await build_ledger_store(uow).credit("user_1", 10)
        generator = StubGenerator()

        result = await build_generate_ad(uow, generator).execute(command())

        assert result.is_ok()
        assert result.value.credits_used == 5
        assert len(result.value.images) == 3
        assert (await build_ledger_store(uow).get_balance("user_1")).value.balance == 5

        ad = await uow.ads.get_by_id(result.value.ad_id)
        assert ad.status == AdStatus.COMPLETED
        assert ad.credits_used == 5
        assert ad.credit_transaction_id == result.value.transaction_id
        assert ad.result_urls == result.value.images
        assert ad.completed_at is not None

        transactions = await all_rows(db_session, CreditTransaction)
        assert [t.operation for t in transactions if t.amount < 0] == ["generate_ad"]
        assert not [t for t in transactions if t.operation == "refund"]

    async def test_failed_generation_is_refunded(self, uow, db_session, generate_ad_config):
        """
        Given: A generator that always fails
        Then: Ad failed, exactly one debit and one refund, balance restored
        """
        await build_ledger_store(uow).credit("user_1", 10)

        result = await build_generate_ad(uow, StubGenerator(RuntimeError("model overloaded"))).execute(command())

        assert result.is_err()
        assert result.error.code == "AD_GENERATION_FAILED"
        assert result.error.details["charge_outcome"] == "refunded"
        assert (await build_ledger_store(uow).get_balance("user_1")).value.balance == 10

        ad = await uow.ads.get_by_id(result.error.details["ad_id"])
        assert ad.status == AdStatus.FAILED
        assert ad.error_message == "model overloaded"
        assert ad.refund_status == RefundStatus.REFUNDED

        transactions = await all_rows(db_session, CreditTransaction)
        debits = [t for t in transactions if t.operation == "generate_ad"]
        refunds = [t for t in transactions if t.operation == "refund"]
        assert len(debits) == 1 and len(refunds) == 1
        assert debits[0].status == TransactionStatus.REFUNDED
        assert refunds[0].operation_id == debits[0].id
        assert refunds[0].amount == 5

    async def test_insufficient_funds_short_circuits(self, uow, db_session, generate_ad_config):
        """
        Given: Balance 3 and a cost of 5
        Then: PAYMENT_REQUIRED, no new transactions, no ad, generator never called
        """
        await build_ledger_store(uow).credit("user_1", 3)
        generator = StubGenerator()

        result = await build_generate_ad(uow, generator).execute(command())

        assert result.is_err()
        assert result.error.code == "PAYMENT_REQUIRED"
        assert result.error.details["required_credits"] == 5
        assert result.error.details["reason_code"] == "INSUFFICIENT_CREDIT"
        assert result.error.details["charge_outcome"] == "not_charged"
        assert generator.requests == []
        assert len(await all_rows(db_session, CreditTransaction)) == 1
        assert await all_rows(db_session, GeneratedAd) == []

    async def test_missing_price_config_charges_fallback(self, uow):
        await build_ledger_store(uow).credit("user_1", 10)

        result = await build_generate_ad(uow, StubGenerator()).execute(command())

        assert result.is_ok()
        assert result.value.credits_used == 2


@pytest.mark.asyncio
class TestCreditSagaReservationIntegration:

    async def test_low_balance_raises_payment_required(self, uow, db_session, generate_ad_config):
        """
        Given: Balance 1 and a cost of 5
        Then: PaymentRequired with the required amount, nothing charged,
              no record created, work never called
        """
        await build_ledger_store(uow).credit("user_1", 1)
        work = AsyncMock()

        with pytest.raises(PaymentRequired) as exc_info:
            await build_credit_saga(uow).run(
                "user_1", "generate_ad", {"quality": "high", "numSamples": 3}, work
            )

        assert exc_info.value.error.code == "INSUFFICIENT_CREDIT"
        assert exc_info.value.required_credits == 5
        assert exc_info.value.error.details["available"] == 1
        assert exc_info.value.charge_outcome == ChargeOutcome.NOT_CHARGED
        work.assert_not_called()
        assert await all_rows(db_session, GeneratedAd) == []
        assert (await build_ledger_store(uow).get_balance("user_1")).value.balance == 1

    async def test_unknown_account_raises_payment_required(self, uow):
        with pytest.raises(PaymentRequired) as exc_info:
            await build_credit_saga(uow).run("nobody", "generate_ad", {}, AsyncMock())

        assert exc_info.value.error.code == "ACCOUNT_NOT_FOUND"
        assert exc_info.value.charge_outcome == ChargeOutcome.NOT_CHARGED

    async def test_unreadable_price_config_still_reserves_fallback(self, uow, db_session):
        """
        Given: The price config read fails on the shared session
        Then: The session is rolled back, the fallback cost (2) is reserved
              and the work runs
        """
        await build_ledger_store(uow).credit("user_1", 10)
        saga = build_credit_saga(uow)
        saga.pricing.config_repo.get_by_operation = AsyncMock(
            side_effect=Exception("relation \"credit_configs\" does not exist")
        )
        rollback = uow.rollback
        rollbacks = []

        async def counting_rollback():
            rollbacks.append(True)
            await rollback()

        uow.rollback = counting_rollback

        outcome = await saga.run(
            "user_1",
            "generate_ad",
            {"quality": "high"},
            AsyncMock(return_value="generated"),
            {"prompt": "Summer sale banner"},
        )

        assert outcome.credits_charged == 2
        assert rollbacks
        assert (await build_ledger_store(uow).get_balance("user_1")).value.balance == 8

    async def test_negative_base_cost_charges_fallback(self, uow, db_session):
        db_session.add(CreditConfig(operation="generate_ad", base_cost=-3, additional_params={}))
        await db_session.commit()
        await build_ledger_store(uow).credit("user_1", 10)

        outcome = await build_credit_saga(uow).run(
            "user_1",
            "generate_ad",
            {},
            AsyncMock(return_value="generated"),
            {"prompt": "Summer sale banner"},
        )

        assert outcome.credits_charged == 2
        assert (await build_ledger_store(uow).get_balance("user_1")).value.balance == 8


@pytest.mark.asyncio
class TestCreditSagaRefundFailure:

    async def test_unrefunded_charge_is_flagged_and_reconciled(
        self, uow, db_session, generate_ad_config, notifier
    ):
        """
        Given: Work fails and the refund cannot be applied
        Then: The ad is flagged unrefunded, an alert is sent, and the
              reconciliation sweep reports the charge
        """
        await build_ledger_store(uow).credit("user_1", 10)
        saga = build_credit_saga(uow, notification_service=notifier)
        saga.ledger.refund = AsyncMock(
            return_value=Return.err(Error(code="REFUND_CREDIT_FAILED", message="Failed to refund credit"))
        )

        with pytest.raises(WorkFailed) as exc_info:
            await saga.run(
                "user_1",
                "generate_ad",
                {"quality": "high", "numSamples": 3},
                AsyncMock(side_effect=RuntimeError("model overloaded")),
                {"prompt": "Summer sale banner"},
            )

        assert exc_info.value.charge_outcome == ChargeOutcome.REFUND_FAILED
        assert (await build_ledger_store(uow).get_balance("user_1")).value.balance == 5

        ad_id = exc_info.value.record_id
        ad = await uow.ads.get_by_id(ad_id)
        assert ad.status == AdStatus.FAILED
        assert ad.refund_status == RefundStatus.UNREFUNDED
        notifier.send_ledger_alert.assert_called_once()

        reconciliation = await ReconcileLedger(
            uow, uow.accounts, uow.transactions, uow.ads
        ).execute()

        assert reconciliation.is_ok()
        charges = reconciliation.value.unrefunded_charges
        assert [c.record_id for c in charges] == [ad_id]
        assert charges[0].credits_used == 5
        assert reconciliation.value.discrepancies == []
