"""Credit Config Domain Entity

Price table for billable operations. Administered outside the ledger and
read-only from the service's perspective.
"""

from typing import Dict
from sqlmodel import Field, Column
from sqlalchemy import JSON, String
from src.domain.base import BaseModel


class CreditConfig(BaseModel, table=True):
    """
    Credit Config - Base cost and per-parameter surcharges of an operation

    additional_params maps a pricing parameter name to its per-unit cost,
    e.g. {"high_image": 1, "extra_sample": 1}.
    """

    __tablename__ = "credit_configs"

    operation: str = Field(
        sa_column=Column(String(100), primary_key=True),
        description="Operation name (e.g., 'generate_ad')"
    )

    base_cost: int = Field(
        description="Credits charged for the operation with no surcharges"
    )

    additional_params: Dict[str, int] = Field(
        default_factory=dict,
        sa_column=Column(JSON, nullable=False, default=dict),
        description="Per-unit cost of each pricing parameter"
    )
