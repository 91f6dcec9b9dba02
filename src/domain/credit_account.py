"""Credit Account Domain Entity

Tracks the credit balance per user. Each user has exactly one account,
created lazily on the first credit addition and never deleted.
"""

from datetime import datetime
from sqlmodel import Field, Column
from sqlalchemy import CheckConstraint, BigInteger
from src.domain.base import BaseModel, generate_uuid


class CreditAccount(BaseModel, table=True):
    """
    Credit Account - Tracks user credit balance

    Domain Rules:
    - One account per user (user_id is unique)
    - Balance is an integer number of credits and never negative
    - Balance updates only through the ledger use cases, which always
      write a matching CreditTransaction
    """

    __tablename__ = "credit_accounts"
    __table_args__ = (
        CheckConstraint('balance >= 0', name='balance_non_negative'),
    )

    id: str = Field(
        default_factory=generate_uuid,
        primary_key=True,
        description="Unique account identifier"
    )

    user_id: str = Field(
        index=True,
        unique=True,
        description="User ID (unique - one account per user)"
    )

    balance: int = Field(
        default=0,
        sa_column=Column(BigInteger, nullable=False, default=0),
        description="Current credit balance (must be >= 0)"
    )

    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Account creation timestamp"
    )

    updated_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Last balance update timestamp"
    )

    class Config:
        """SQLModel configuration"""
        json_schema_extra = {
            "example": {
                "id": "8f0b3c1e-5a7d-4a39-9c55-0f0d6d1f4b21",
                "user_id": "user_xyz789",
                "balance": 160,
                "created_at": "2024-01-01T00:00:00Z",
                "updated_at": "2024-01-01T00:00:00Z"
            }
        }
