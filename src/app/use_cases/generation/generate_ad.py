"""GenerateAd Use Case

Orchestration pipeline for a paid ad generation: validate, price and
reserve credits, generate, and compensate on failure.
"""

import logging
from libs.result import Result, Return, Error
from src.app.services.ad_image_generator import (
    AdImageGenerator,
    AdGenerationRequest,
    AdGenerationResult,
)
from src.app.services.business_record_store import BusinessRecordStore
from .credit_saga import CreditSaga, CreditSagaError, PaymentRequired, ChargeOutcome
from .dtos import GenerateAdCommandDTO, GenerateAdResponseDTO

logger = logging.getLogger(__name__)


GENERATE_AD_OPERATION = "generate_ad"


class GenerateAd:
    """
    Use Case: Generate ad images against the user's credits

    Business Rules:
    1. Cost parameters are the requested quality and number of samples
    2. With billing disabled the ad is recorded with 0 credits and the
       ledger is never touched
    3. Failures distinguish "payment required" (never charged) from a
       generation failure, whose details carry the charge outcome
       (not_charged, refunded or refund_failed)
    """

    def __init__(
        self,
        saga: CreditSaga,
        records: BusinessRecordStore,
        generator: AdImageGenerator,
        billing_enabled: bool = True,
        generation_quality: str = "medium",
    ):
        """
        Args:
            saga: Credit saga used when billing is enabled
            records: Ad record store
            generator: External image generation service
            billing_enabled: False in dev mode
            generation_quality: Quality the generator is asked for
        """
        self.saga = saga
        self.records = records
        self.generator = generator
        self.billing_enabled = billing_enabled
        self.generation_quality = generation_quality

    def _record_fields(self, command: GenerateAdCommandDTO) -> dict:
        return {
            "prompt": command.prompt,
            "name": command.name,
            "ad_type": command.ad_type,
            "brand_id": command.brand_id,
            "metadata": {
                "quality": command.quality,
                "num_samples": command.num_samples,
            },
        }

    def _work(self, command: GenerateAdCommandDTO):
        async def generate(ad_id: str) -> AdGenerationResult:
            return await self.generator.generate(
                AdGenerationRequest(
                    ad_id=ad_id,
                    user_id=command.user_id,
                    prompt=command.prompt,
                    images=command.images,
                    num_samples=command.num_samples,
                    quality=self.generation_quality,
                )
            )

        return generate

    async def execute(self, command: GenerateAdCommandDTO) -> Result[GenerateAdResponseDTO]:
        """
        Errors:
            PAYMENT_REQUIRED: Insufficient credits or no credit account
            AD_GENERATION_FAILED: Reservation or generation failed
        """
        if not self.billing_enabled:
            return await self._execute_unbilled(command)

        try:
            outcome = await self.saga.run(
                user_id=command.user_id,
                operation=GENERATE_AD_OPERATION,
                cost_params={"quality": command.quality, "numSamples": command.num_samples},
                work=self._work(command),
                record_fields=self._record_fields(command),
            )
        except PaymentRequired as e:
            return Return.err(
                Error(
                    code="PAYMENT_REQUIRED",
                    message=e.error.message,
                    reason=e.error.code,
                    details={
                        "required_credits": e.required_credits,
                        "charge_outcome": e.charge_outcome.value,
                        "reason_code": e.error.code,
                    },
                )
            )
        except CreditSagaError as e:
            return Return.err(
                Error(
                    code="AD_GENERATION_FAILED",
                    message="Failed to generate ad",
                    reason=str(e.original) if e.original else e.error.message,
                    details={
                        "charge_outcome": e.charge_outcome.value,
                        "ad_id": e.record_id,
                        "transaction_id": e.transaction_id,
                    },
                )
            )

        return Return.ok(
            GenerateAdResponseDTO(
                ad_id=outcome.record_id,
                images=list(outcome.result.result_urls),
                credits_used=outcome.credits_charged,
                transaction_id=outcome.transaction_id,
            )
        )

    async def _execute_unbilled(self, command: GenerateAdCommandDTO) -> Result[GenerateAdResponseDTO]:
        ad_id = None
        try:
            ad_id = await self.records.create(command.user_id, 0, None, self._record_fields(command))
            result = await self._work(command)(ad_id)
            await self.records.mark_completed(ad_id, result)
        except Exception as e:
            logger.warning(f"Unbilled ad generation {ad_id} failed: {e}")
            if ad_id:
                try:
                    await self.records.mark_failed(ad_id, str(e))
                except Exception as mark_error:
                    logger.error(f"Could not mark ad {ad_id} failed: {mark_error}")
            return Return.err(
                Error(
                    code="AD_GENERATION_FAILED",
                    message="Failed to generate ad",
                    reason=str(e),
                    details={
                        "charge_outcome": ChargeOutcome.NOT_CHARGED.value,
                        "ad_id": ad_id,
                        "transaction_id": None,
                    },
                )
            )

        return Return.ok(
            GenerateAdResponseDTO(
                ad_id=ad_id,
                images=list(result.result_urls),
                credits_used=0,
                transaction_id=None,
            )
        )
