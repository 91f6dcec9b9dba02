from .credit_account_repository import CreditAccountRepository
from .credit_transaction_repository import CreditTransactionRepository
from .credit_config_repository import CreditConfigRepository
from .generated_ad_repository import GeneratedAdRepository

__all__ = [
    "CreditAccountRepository",
    "CreditTransactionRepository",
    "CreditConfigRepository",
    "GeneratedAdRepository",
]
