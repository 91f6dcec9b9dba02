"""Unit tests for ReconcileLedger use case

Tests cover:
- Balanced ledger
- Balance discrepancies
- Orphaned pending transactions
- Unrefunded charges
- Alerts through the notification service
- Read-only behaviour
"""

import pytest
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

from src.app.use_cases.billing.reconcile_ledger import ReconcileLedger
from src.app.services.notification_service import AlertKind
from src.domain.credit_account import CreditAccount
from src.domain.credit_transaction import CreditTransaction, TransactionStatus
from src.domain.generated_ad import GeneratedAd, AdStatus, RefundStatus


@pytest.fixture
def mock_account_repo():
    repo = MagicMock()
    repo.get_all = AsyncMock(
        return_value=[
            CreditAccount(user_id="user_a", balance=100),
            CreditAccount(user_id="user_b", balance=50),
        ]
    )
    return repo


@pytest.fixture
def mock_transaction_repo():
    repo = MagicMock()
    repo.get_settled_sum_by_user = AsyncMock(side_effect=lambda user_id: {"user_a": 100, "user_b": 50}[user_id])
    repo.get_pending_older_than = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def mock_ad_repo():
    repo = MagicMock()
    repo.list_failed_with_completed_charge = AsyncMock(return_value=[])
    return repo


@pytest.fixture
def mock_notifier():
    notifier = MagicMock()
    notifier.send_ledger_alert = AsyncMock(return_value=True)
    return notifier


@pytest.fixture
def reconcile(mock_uow, mock_account_repo, mock_transaction_repo, mock_ad_repo, mock_notifier):
    return ReconcileLedger(
        uow=mock_uow,
        account_repo=mock_account_repo,
        transaction_repo=mock_transaction_repo,
        ad_repo=mock_ad_repo,
        notification_service=mock_notifier,
        pending_grace_seconds=300,
    )


@pytest.mark.asyncio
class TestReconcileLedger:

    async def test_balanced_ledger(self, reconcile, mock_uow, mock_notifier):
        """
        Given: Every balance equals its settled transaction sum
        Then: No findings, no alerts, nothing committed
        """
        result = await reconcile.execute()

        assert result.is_ok()
        response = result.value
        assert response.total_accounts_checked == 2
        assert response.discrepancies_found == 0
        assert response.has_findings is False
        mock_notifier.send_ledger_alert.assert_not_called()
        mock_uow.commit.assert_not_called()

    async def test_discrepancy_detected(self, reconcile, mock_transaction_repo, mock_notifier):
        """
        Given: user_b holds 50 but its transactions sum to 44
        Then: One discrepancy of +6 and a balance_discrepancy alert
        """
        mock_transaction_repo.get_settled_sum_by_user = AsyncMock(
            side_effect=lambda user_id: {"user_a": 100, "user_b": 44}[user_id]
        )

        result = await reconcile.execute()

        response = result.value
        assert response.discrepancies_found == 1
        discrepancy = response.discrepancies[0]
        assert discrepancy.user_id == "user_b"
        assert discrepancy.account_balance == 50
        assert discrepancy.calculated_balance == 44
        assert discrepancy.discrepancy == 6

        alert = mock_notifier.send_ledger_alert.call_args[0][0]
        assert alert.kind == AlertKind.BALANCE_DISCREPANCY
        assert alert.amount == 6

    async def test_orphaned_pending_reported(self, reconcile, mock_transaction_repo, mock_notifier):
        """Pending rows older than the grace period are reported"""
        created_at = datetime.utcnow() - timedelta(hours=1)
        mock_transaction_repo.get_pending_older_than = AsyncMock(
            return_value=[
                CreditTransaction(id="t_stuck", user_id="user_a", amount=-6,
                                  operation="generate_ad", created_at=created_at)
            ]
        )

        result = await reconcile.execute()

        response = result.value
        assert len(response.orphaned_pending) == 1
        assert response.orphaned_pending[0].transaction_id == "t_stuck"
        assert response.has_findings is True

        cutoff = mock_transaction_repo.get_pending_older_than.call_args[0][0]
        expected = response.reconciliation_time - timedelta(seconds=300)
        assert cutoff == expected

        alert = mock_notifier.send_ledger_alert.call_args[0][0]
        assert alert.kind == AlertKind.ORPHANED_PENDING
        assert alert.transaction_id == "t_stuck"

    async def test_unrefunded_charge_reported(self, reconcile, mock_ad_repo, mock_notifier):
        mock_ad_repo.list_failed_with_completed_charge = AsyncMock(
            return_value=[
                GeneratedAd(id="ad_1", user_id="user_a", prompt="p", status=AdStatus.FAILED,
                            credits_used=6, credit_transaction_id="t_1",
                            refund_status=RefundStatus.UNREFUNDED, error_message="timeout")
            ]
        )

        result = await reconcile.execute()

        charge = result.value.unrefunded_charges[0]
        assert charge.record_id == "ad_1"
        assert charge.transaction_id == "t_1"
        assert charge.credits_used == 6

        alert = mock_notifier.send_ledger_alert.call_args[0][0]
        assert alert.kind == AlertKind.UNREFUNDED_CHARGE
        assert alert.record_id == "ad_1"

    async def test_works_without_notifier(
        self, mock_uow, mock_account_repo, mock_transaction_repo, mock_ad_repo
    ):
        mock_transaction_repo.get_settled_sum_by_user = AsyncMock(return_value=0)

        result = await ReconcileLedger(
            mock_uow, mock_account_repo, mock_transaction_repo, mock_ad_repo
        ).execute()

        assert result.value.discrepancies_found == 2

    async def test_failure_returns_error(self, reconcile, mock_account_repo, mock_uow):
        mock_account_repo.get_all = AsyncMock(side_effect=Exception("db down"))

        result = await reconcile.execute()

        assert result.is_err()
        assert result.error.code == "RECONCILIATION_FAILED"
        mock_uow.rollback.assert_called()
