"""Notification Service Implementations

Provides concrete implementations for sending ledger alerts.
"""

import logging
from typing import Optional
import httpx
from src.app.services.notification_service import NotificationService, LedgerAlert

logger = logging.getLogger(__name__)


class LoggingNotificationService(NotificationService):
    """
    Notification service that logs alerts

    Useful for development and testing, or as a fallback.
    """

    async def send_ledger_alert(self, alert: LedgerAlert) -> bool:
        """
        Log ledger alert

        Returns:
            Always True (logging never fails)
        """
        logger.error(
            f"[LEDGER ALERT] Kind: {alert.kind.value}, "
            f"User: {alert.user_id}, "
            f"Transaction: {alert.transaction_id}, "
            f"Record: {alert.record_id}, "
            f"Amount: {alert.amount}, "
            f"Detail: {alert.detail}"
        )
        return True


class WebhookNotificationService(NotificationService):
    """
    Notification service that sends alerts via HTTP webhook

    Sends JSON payload to configured webhook URL.
    """

    def __init__(self, webhook_url: str, timeout: float = 10.0):
        """
        Initialize webhook notification service

        Args:
            webhook_url: URL to POST alerts to
            timeout: Request timeout in seconds
        """
        self.webhook_url = webhook_url
        self.timeout = timeout

    async def send_ledger_alert(self, alert: LedgerAlert) -> bool:
        """
        Send ledger alert via webhook

        Returns:
            True if webhook call succeeded, False otherwise
        """
        payload = {
            "type": "ledger_alert",
            "kind": alert.kind.value,
            "user_id": alert.user_id,
            "transaction_id": alert.transaction_id,
            "record_id": alert.record_id,
            "amount": alert.amount,
            "detail": alert.detail,
            "detected_at": alert.detected_at.isoformat(),
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    self.webhook_url,
                    json=payload,
                    headers={"Content-Type": "application/json"},
                )
                response.raise_for_status()
                logger.info(
                    f"Webhook notification sent for {alert.kind.value} "
                    f"(user={alert.user_id}) to {self.webhook_url}"
                )
                return True
        except httpx.HTTPError as e:
            logger.error(
                f"Failed to send webhook notification for {alert.kind.value} "
                f"(user={alert.user_id}): {e}"
            )
            return False


class CompositeNotificationService(NotificationService):
    """
    Notification service that delegates to multiple services

    Useful for sending to multiple channels (e.g., log + webhook).
    """

    def __init__(self, services: list[NotificationService]):
        self.services = services

    async def send_ledger_alert(self, alert: LedgerAlert) -> bool:
        """
        Send ledger alert to all configured services

        Returns:
            True if at least one service succeeded, False otherwise
        """
        success = False
        for service in self.services:
            try:
                if await service.send_ledger_alert(alert):
                    success = True
            except Exception as e:
                logger.error(f"Notification service {type(service).__name__} failed: {e}")
        return success


def create_notification_service(webhook_url: Optional[str] = None) -> NotificationService:
    """
    Factory function to create appropriate notification service

    Args:
        webhook_url: Optional webhook URL. If provided, creates composite
                     service with logging + webhook. Otherwise, just logging.

    Returns:
        Configured NotificationService
    """
    services: list[NotificationService] = [LoggingNotificationService()]

    if webhook_url:
        services.append(WebhookNotificationService(webhook_url))

    if len(services) == 1:
        return services[0]

    return CompositeNotificationService(services)
