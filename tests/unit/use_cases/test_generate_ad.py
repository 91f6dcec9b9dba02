"""Unit tests for GenerateAd use case"""

import pytest
from unittest.mock import AsyncMock, MagicMock

from libs.result import Error
from src.app.services.ad_image_generator import AdGenerationResult
from src.app.use_cases.generation.generate_ad import GenerateAd
from src.app.use_cases.generation.credit_saga import (
    SagaResult,
    SagaState,
    ChargeOutcome,
    PaymentRequired,
    WorkFailed,
)
from src.app.use_cases.generation.dtos import GenerateAdCommandDTO


@pytest.fixture
def generation_result():
    return AdGenerationResult(
        original_image_urls=["https://cdn/in.png"],
        result_urls=["https://cdn/out_1.png", "https://cdn/out_2.png"],
    )


@pytest.fixture
def mock_saga():
    return MagicMock()


@pytest.fixture
def mock_records():
    records = MagicMock()
    records.create = AsyncMock(return_value="ad_dev")
    records.mark_completed = AsyncMock()
    records.mark_failed = AsyncMock()
    return records


@pytest.fixture
def mock_generator(generation_result):
    generator = MagicMock()
    generator.generate = AsyncMock(return_value=generation_result)
    return generator


@pytest.fixture
def command():
    return GenerateAdCommandDTO(
        user_id="user_1",
        prompt="Summer sale banner",
        name="Summer",
        images=[b"\x89PNG"],
        num_samples=3,
        quality="high",
    )


@pytest.mark.asyncio
class TestGenerateAdBilled:

    async def test_success(self, mock_saga, mock_records, mock_generator, command, generation_result):
        """
        Given: The saga succeeds
        Then: The response carries the ad id, result urls and credits charged
        """
        mock_saga.run = AsyncMock(
            return_value=SagaResult(record_id="ad_1", transaction_id="txn_1",
                                    credits_charged=6, result=generation_result)
        )
        use_case = GenerateAd(mock_saga, mock_records, mock_generator)

        result = await use_case.execute(command)

        assert result.is_ok()
        assert result.value.ad_id == "ad_1"
        assert result.value.credits_used == 6
        assert result.value.transaction_id == "txn_1"
        assert result.value.images == generation_result.result_urls

        kwargs = mock_saga.run.call_args.kwargs
        assert kwargs["operation"] == "generate_ad"
        assert kwargs["cost_params"] == {"quality": "high", "numSamples": 3}
        assert kwargs["record_fields"]["prompt"] == "Summer sale banner"
        mock_records.create.assert_not_called()

    async def test_work_calls_generator(self, mock_saga, mock_records, mock_generator, command):
        """The saga's unit of work generates for the record id it is given"""
        async def run(**kwargs):
            result = await kwargs["work"]("ad_42")
            return SagaResult(record_id="ad_42", transaction_id="txn_1", credits_charged=6, result=result)

        mock_saga.run = AsyncMock(side_effect=run)
        use_case = GenerateAd(mock_saga, mock_records, mock_generator, generation_quality="medium")

        await use_case.execute(command)

        request = mock_generator.generate.call_args[0][0]
        assert request.ad_id == "ad_42"
        assert request.num_samples == 3
        assert request.quality == "medium"
        assert request.images == [b"\x89PNG"]

    async def test_payment_required(self, mock_saga, mock_records, mock_generator, command):
        mock_saga.run = AsyncMock(
            side_effect=PaymentRequired(
                Error(code="INSUFFICIENT_CREDIT", message="Insufficient credits. Required: 6, Available: 2",
                      details={"required": 6, "available": 2}),
                SagaState.PRICED,
                ChargeOutcome.NOT_CHARGED,
            )
        )

        result = await GenerateAd(mock_saga, mock_records, mock_generator).execute(command)

        assert result.is_err()
        assert result.error.code == "PAYMENT_REQUIRED"
        assert result.error.details["required_credits"] == 6
        assert result.error.details["charge_outcome"] == "not_charged"

    @pytest.mark.parametrize("outcome", [ChargeOutcome.REFUNDED, ChargeOutcome.REFUND_FAILED])
    async def test_generation_failure_reports_charge_outcome(
        self, mock_saga, mock_records, mock_generator, command, outcome
    ):
        """Callers can tell a refunded charge from one that was not refunded"""
        original = RuntimeError("model overloaded")
        mock_saga.run = AsyncMock(
            side_effect=WorkFailed(
                Error(code="WORK_FAILED", message="model overloaded"),
                SagaState.COMPENSATED,
                outcome,
                transaction_id="txn_1",
                record_id="ad_1",
                original=original,
            )
        )

        result = await GenerateAd(mock_saga, mock_records, mock_generator).execute(command)

        assert result.is_err()
        assert result.error.code == "AD_GENERATION_FAILED"
        assert result.error.reason == "model overloaded"
        assert result.error.details == {
            "charge_outcome": outcome.value,
            "ad_id": "ad_1",
            "transaction_id": "txn_1",
        }


@pytest.mark.asyncio
class TestGenerateAdUnbilled:

    async def test_dev_mode_never_touches_the_ledger(
        self, mock_saga, mock_records, mock_generator, command, generation_result
    ):
        """
        Given: Billing disabled
        Then: Ad recorded with 0 credits and no transaction, saga never runs
        """
        mock_saga.run = AsyncMock()
        use_case = GenerateAd(mock_saga, mock_records, mock_generator,
                              billing_enabled=False, generation_quality="low")

        result = await use_case.execute(command)

        assert result.is_ok()
        assert result.value.credits_used == 0
        assert result.value.transaction_id is None
        mock_saga.run.assert_not_called()
        mock_records.create.assert_called_once()
        assert mock_records.create.call_args[0][:3] == ("user_1", 0, None)
        mock_records.mark_completed.assert_called_once_with("ad_dev", generation_result)
        assert mock_generator.generate.call_args[0][0].quality == "low"

    async def test_dev_mode_failure(self, mock_saga, mock_records, mock_generator, command):
        mock_generator.generate = AsyncMock(side_effect=RuntimeError("model overloaded"))

        result = await GenerateAd(mock_saga, mock_records, mock_generator,
                                  billing_enabled=False).execute(command)

        assert result.is_err()
        assert result.error.details["charge_outcome"] == "not_charged"
        mock_records.mark_failed.assert_called_once_with("ad_dev", "model overloaded")


class TestGenerateAdCommandValidation:

    def test_rejects_empty_images(self):
        with pytest.raises(ValueError):
            GenerateAdCommandDTO(user_id="u", prompt="p", images=[])

    def test_rejects_too_many_samples(self):
        with pytest.raises(ValueError):
            GenerateAdCommandDTO(user_id="u", prompt="p", images=[b"x"], num_samples=6)

    def test_defaults(self):
        command = GenerateAdCommandDTO(user_id="u", prompt="p", images=[b"x"])

        assert command.num_samples == 1
        assert command.quality == "medium"
