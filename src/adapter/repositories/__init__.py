from .credit_account_repository import SqlAlchemyCreditAccountRepository
from .credit_transaction_repository import SqlAlchemyCreditTransactionRepository
from .credit_config_repository import SqlAlchemyCreditConfigRepository
from .generated_ad_repository import SqlAlchemyGeneratedAdRepository

__all__ = [
    "SqlAlchemyCreditAccountRepository",
    "SqlAlchemyCreditTransactionRepository",
    "SqlAlchemyCreditConfigRepository",
    "SqlAlchemyGeneratedAdRepository",
]
