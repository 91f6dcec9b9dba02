"""Billing domain use cases"""
from .debit_credits import DebitCredits
from .add_credits import AddCredits
from .refund_credit import RefundCredit
from .get_balance import GetBalance
from .estimate_credit import EstimateCredit, DEFAULT_OPERATION_COST, DEFAULT_PARAM_ALIASES
from .list_transactions import ListTransactions
from .purchase_credits import PurchaseCredits
from .reconcile_ledger import ReconcileLedger
from .ledger_store import LedgerStore
from .dtos import (
    DebitCommandDTO,
    AddCreditsCommandDTO,
    RefundCommandDTO,
    CreditTransactionResponseDTO,
    BalanceResponseDTO,
    EstimateCommandDTO,
    EstimateResponseDTO,
    TransactionDTO,
    ListTransactionsResponseDTO,
    PurchaseCreditsCommandDTO,
    LedgerDiscrepancyDTO,
    OrphanedTransactionDTO,
    UnrefundedChargeDTO,
    ReconciliationResultDTO,
)

__all__ = [
    "DebitCredits",
    "AddCredits",
    "RefundCredit",
    "GetBalance",
    "EstimateCredit",
    "DEFAULT_OPERATION_COST",
    "DEFAULT_PARAM_ALIASES",
    "ListTransactions",
    "PurchaseCredits",
    "ReconcileLedger",
    "LedgerStore",
    "DebitCommandDTO",
    "AddCreditsCommandDTO",
    "RefundCommandDTO",
    "CreditTransactionResponseDTO",
    "BalanceResponseDTO",
    "EstimateCommandDTO",
    "EstimateResponseDTO",
    "TransactionDTO",
    "ListTransactionsResponseDTO",
    "PurchaseCreditsCommandDTO",
    "LedgerDiscrepancyDTO",
    "OrphanedTransactionDTO",
    "UnrefundedChargeDTO",
    "ReconciliationResultDTO",
]
