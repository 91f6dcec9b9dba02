from .base import BaseModel, generate_uuid
from .credit_account import CreditAccount
from .credit_transaction import (
    CreditTransaction,
    TransactionStatus,
    REFUND_OPERATION,
    SETTLED_STATUSES,
)
from .credit_config import CreditConfig
from .generated_ad import GeneratedAd, AdStatus, RefundStatus

__all__ = [
    "BaseModel",
    "generate_uuid",
    "CreditAccount",
    "CreditTransaction",
    "TransactionStatus",
    "REFUND_OPERATION",
    "SETTLED_STATUSES",
    "CreditConfig",
    "GeneratedAd",
    "AdStatus",
    "RefundStatus",
]
