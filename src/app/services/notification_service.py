"""Notification Service Interface

Defines the contract for alerting operators about ledger gaps that need
out-of-band reconciliation.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


class AlertKind(str, Enum):
    UNREFUNDED_CHARGE = "unrefunded_charge"        # Compensation failed after a charge
    ORPHANED_PENDING = "orphaned_pending"          # Deduction interrupted mid-write
    BALANCE_DISCREPANCY = "balance_discrepancy"    # Balance != settled transaction sum


class LedgerAlert(BaseModel):
    """A single ledger anomaly reported to operators"""

    kind: AlertKind
    user_id: str
    transaction_id: Optional[str] = None
    record_id: Optional[str] = None
    amount: Optional[int] = None
    detail: str = ""
    detected_at: datetime = Field(default_factory=datetime.utcnow)


class NotificationService(ABC):
    """
    Abstract notification service for sending ledger alerts

    Implementations can send notifications via:
    - Logging
    - Webhook (HTTP POST)
    """

    @abstractmethod
    async def send_ledger_alert(self, alert: LedgerAlert) -> bool:
        """
        Send alert for a ledger anomaly

        Args:
            alert: LedgerAlert describing the anomaly

        Returns:
            True if notification sent successfully, False otherwise
        """
        pass
