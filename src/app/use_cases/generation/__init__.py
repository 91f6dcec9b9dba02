"""Generation use cases"""
from .credit_saga import (
    CreditSaga,
    SagaResult,
    SagaState,
    ChargeOutcome,
    CreditSagaError,
    PaymentRequired,
    ReservationFailed,
    WorkFailed,
)
from .generate_ad import GenerateAd, GENERATE_AD_OPERATION
from .dtos import GenerateAdCommandDTO, GenerateAdResponseDTO

__all__ = [
    "CreditSaga",
    "SagaResult",
    "SagaState",
    "ChargeOutcome",
    "CreditSagaError",
    "PaymentRequired",
    "ReservationFailed",
    "WorkFailed",
    "GenerateAd",
    "GENERATE_AD_OPERATION",
    "GenerateAdCommandDTO",
    "GenerateAdResponseDTO",
]
