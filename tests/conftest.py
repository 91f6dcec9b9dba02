import pytest
from unittest.mock import AsyncMock, MagicMock


@pytest.fixture
def mock_uow():
    """Mock unit of work"""
    uow = MagicMock()
    uow.__aenter__ = AsyncMock(return_value=uow)
    uow.__aexit__ = AsyncMock(return_value=False)
    uow.commit = AsyncMock()
    uow.rollback = AsyncMock()
    return uow


class ExpiringEntity:
    """Stand-in for an ORM instance whose attributes cannot be read after rollback"""

    def __init__(self, wrapped):
        self._wrapped = wrapped
        self.expired = False

    def __getattr__(self, name):
        if self.expired:
            raise RuntimeError(f"{name} read after rollback")
        return getattr(self._wrapped, name)


@pytest.fixture
def expire_on_rollback(mock_uow):
    """Wrap entities so that mock_uow.rollback() expires them"""
    entities = []

    async def rollback():
        for entity in entities:
            entity.expired = True

    mock_uow.rollback = AsyncMock(side_effect=rollback)

    def wrap(entity):
        expiring = ExpiringEntity(entity)
        entities.append(expiring)
        return expiring

    return wrap
