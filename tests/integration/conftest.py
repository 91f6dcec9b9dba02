import pytest_asyncio
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

import src.domain  # noqa: F401  registers the tables on SQLModel.metadata
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.domain.credit_account import CreditAccount
from src.domain.credit_config import CreditConfig


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path):
    """Create test database engine on a temporary SQLite file"""
    test_db_url = f"sqlite+aiosqlite:///{tmp_path / 'credits_test.db'}"

    engine = create_async_engine(
        test_db_url, echo=False, future=True, connect_args={"timeout": 30}
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine):
    return sessionmaker(engine, class_=AsyncSession, expire_on_commit=False, autoflush=False)


@pytest_asyncio.fixture
async def db_session(session_factory):
    """Create a new database session for each test"""
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def uow(db_session):
    return SqlAlchemyUnitOfWork(db_session)


@pytest_asyncio.fixture
async def seed_account(db_session):
    """Create an account holding `balance` credits (no transaction history)"""
    async def seed(user_id: str, balance: int) -> CreditAccount:
        account = CreditAccount(user_id=user_id, balance=balance)
        db_session.add(account)
        await db_session.commit()
        return account

    return seed


@pytest_asyncio.fixture
async def generate_ad_config(db_session):
    config = CreditConfig(
        operation="generate_ad",
        base_cost=2,
        additional_params={"high_image": 1, "extra_sample": 1},
    )
    db_session.add(config)
    await db_session.commit()
    return config
