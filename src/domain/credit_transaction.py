"""Credit Transaction Domain Entity

Auditable record of every balance change. Amounts are signed: deductions
are negative, additions and refunds are positive.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional
from sqlmodel import Field, Column, Index
from sqlalchemy import BigInteger, JSON, String, UniqueConstraint, Enum as SAEnum
from src.domain.base import BaseModel, generate_uuid


class TransactionStatus(str, Enum):
    """Credit transaction lifecycle"""
    PENDING = "pending"       # Deduction row written, balance not yet settled
    COMPLETED = "completed"   # Balance change applied
    REFUNDED = "refunded"     # Completed deduction that has been compensated


# Operation tag written on compensating rows
REFUND_OPERATION = "refund"

# Statuses whose amounts are reflected in the account balance
SETTLED_STATUSES = (TransactionStatus.COMPLETED, TransactionStatus.REFUNDED)


class CreditTransaction(BaseModel, table=True):
    """
    Credit Transaction - Audit trail of credit mutations

    Domain Rules:
    - Rows are append-mostly: only `status`, `metadata` and `updated_at`
      ever change after insert
    - pending -> completed is the only transition out of pending
    - completed -> refunded happens at most once; the refund itself is a
      new completed row with operation="refund" and operation_id pointing
      at the original transaction
    - A pending row that never completes marks an interrupted deduction
      and is surfaced by ledger reconciliation
    - (operation, operation_id) is unique when operation_id is set: one
      refund per deduction, one grant per payment
    """

    __tablename__ = "credit_transactions"
    __table_args__ = (
        Index('ix_credit_transactions_created_at', 'created_at'),
        UniqueConstraint('operation', 'operation_id', name='uq_credit_transactions_operation'),
    )

    id: str = Field(
        default_factory=generate_uuid,
        primary_key=True,
        description="Unique transaction identifier"
    )

    user_id: str = Field(
        index=True,
        description="User the balance change applies to"
    )

    amount: int = Field(
        sa_column=Column(BigInteger, nullable=False),
        description="Signed credit amount (negative = deduction)"
    )

    operation: str = Field(
        sa_column=Column(String(100), nullable=False),
        description="Operation tag (e.g., 'generate_ad', 'refund', 'purchase')"
    )

    operation_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(255), nullable=True),
        description="Correlation id (e.g., original transaction id for a refund)"
    )

    status: TransactionStatus = Field(
        default=TransactionStatus.PENDING,
        sa_column=Column(
            SAEnum(
                TransactionStatus,
                native_enum=False,
                length=20,
                values_callable=lambda enum: [member.value for member in enum],
            ),
            nullable=False,
            index=True,
        ),
        description="Lifecycle status (pending, completed, refunded)"
    )

    metadata_: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column("metadata", JSON, nullable=False, default=dict),
        description="Opaque key/value bag"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Transaction timestamp"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last status change timestamp"
    )

    @property
    def is_deduction(self) -> bool:
        return self.amount < 0

    class Config:
        """SQLModel configuration"""
        json_schema_extra = {
            "example": {
                "id": "0c1a6a6e-8a0c-4df3-9a2c-5f8f7b2d1e11",
                "user_id": "user_xyz789",
                "amount": -6,
                "operation": "generate_ad",
                "operation_id": None,
                "status": "completed",
                "metadata": {"params": {"quality": "high_image", "numSamples": 3}},
                "created_at": "2024-01-01T00:00:00Z",
                "updated_at": "2024-01-01T00:00:00Z"
            }
        }
