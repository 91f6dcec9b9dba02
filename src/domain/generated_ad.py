"""Generated Ad Domain Entity

Business record that credits are reserved against. Created in `pending`
before generation starts and finalised as `completed` or `failed`.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from sqlmodel import Field, Column
from sqlalchemy import JSON, String, Text, Enum as SAEnum
from src.domain.base import BaseModel, generate_uuid


class AdStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


class RefundStatus(str, Enum):
    """Outcome of the compensating refund for a failed ad"""
    NOT_REQUIRED = "not_required"
    REFUNDED = "refunded"
    UNREFUNDED = "unrefunded"   # Charge taken, refund failed: needs reconciliation


def _enum_column(enum_cls, default):
    return Column(
        SAEnum(
            enum_cls,
            native_enum=False,
            length=20,
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=default,
        index=True,
    )


class GeneratedAd(BaseModel, table=True):
    """
    Generated Ad - an AI image generation request and its outcome

    Domain Rules:
    - credits_used is the amount reserved when the record was created
      (0 when charging is disabled)
    - credit_transaction_id links to the deduction paying for the ad
    - status only moves pending -> completed or pending -> failed
    - refund_status=unrefunded flags a charge whose compensation failed
    """

    __tablename__ = "generated_ads"

    id: str = Field(
        default_factory=generate_uuid,
        primary_key=True,
        description="Unique ad identifier"
    )

    user_id: str = Field(index=True, description="Owner of the ad")

    brand_id: Optional[str] = Field(default=None, description="Optional brand")

    name: str = Field(default="Untitled Ad", description="Display name")

    prompt: str = Field(sa_column=Column(Text, nullable=False), description="User prompt")

    ad_type: str = Field(default="standard", description="Ad type")

    status: AdStatus = Field(
        default=AdStatus.PENDING,
        sa_column=_enum_column(AdStatus, AdStatus.PENDING),
    )

    credits_used: int = Field(default=0, description="Credits reserved for this ad")

    credit_transaction_id: Optional[str] = Field(
        default=None,
        sa_column=Column(String(36), nullable=True, index=True),
        description="Deduction transaction paying for this ad"
    )

    refund_status: RefundStatus = Field(
        default=RefundStatus.NOT_REQUIRED,
        sa_column=_enum_column(RefundStatus, RefundStatus.NOT_REQUIRED),
    )

    error_message: Optional[str] = Field(
        default=None,
        sa_column=Column(Text, nullable=True),
    )

    original_image_urls: List[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False, default=list),
    )

    result_urls: List[str] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False, default=list),
    )

    metadata_: Dict[str, Any] = Field(
        default_factory=dict,
        sa_column=Column("metadata", JSON, nullable=False, default=dict),
    )

    created_at: datetime = Field(default_factory=datetime.utcnow)

    completed_at: Optional[datetime] = Field(default=None)
