from typing import Optional
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.orm import sessionmaker
from sqlmodel.ext.asyncio.session import AsyncSession
from config import ApplicationConfig
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.adapter.services.ad_record_store import GeneratedAdRecordStore
from src.adapter.services.notification_service import create_notification_service
from src.app.services.ad_image_generator import AdImageGenerator
from src.app.services.notification_service import NotificationService
from src.app.use_cases.billing import EstimateCredit, LedgerStore, PurchaseCredits, AddCredits
from src.app.use_cases.generation import CreditSaga, GenerateAd

engine = create_async_engine(ApplicationConfig.DB_URI, echo=False, future=True)

AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False, autoflush=False
)


async def get_session() -> AsyncSession:
    async with AsyncSessionLocal() as session:
        yield session


async def get_unit_of_work():
    async with AsyncSessionLocal() as session:
        yield SqlAlchemyUnitOfWork(session)


def get_notification_service() -> NotificationService:
    return create_notification_service(ApplicationConfig.RECONCILIATION_NOTIFICATION_WEBHOOK)


def build_pricing(uow: SqlAlchemyUnitOfWork) -> EstimateCredit:
    return EstimateCredit(
        uow.configs,
        fallback_cost=ApplicationConfig.DEFAULT_OPERATION_COST,
        param_aliases=ApplicationConfig.PRICING_PARAM_ALIASES,
        uow=uow,
    )


def build_ledger_store(uow: SqlAlchemyUnitOfWork) -> LedgerStore:
    return LedgerStore(uow, uow.accounts, uow.transactions)


def build_purchase_credits(uow: SqlAlchemyUnitOfWork) -> PurchaseCredits:
    return PurchaseCredits(
        AddCredits(uow, uow.accounts, uow.transactions),
        uow.transactions,
        ApplicationConfig.CREDIT_PLANS,
    )


def build_credit_saga(
    uow: SqlAlchemyUnitOfWork,
    notification_service: Optional[NotificationService] = None,
) -> CreditSaga:
    return CreditSaga(
        pricing=build_pricing(uow),
        ledger=build_ledger_store(uow),
        records=GeneratedAdRecordStore(uow, uow.ads),
        notification_service=notification_service or get_notification_service(),
    )


def build_generate_ad(uow: SqlAlchemyUnitOfWork, generator: AdImageGenerator) -> GenerateAd:
    """Dev mode is decided here, once, and never inside the saga"""
    is_dev = ApplicationConfig.IS_DEV
    return GenerateAd(
        saga=build_credit_saga(uow),
        records=GeneratedAdRecordStore(uow, uow.ads),
        generator=generator,
        billing_enabled=not is_dev,
        generation_quality=(
            ApplicationConfig.DEV_GENERATION_QUALITY if is_dev else ApplicationConfig.GENERATION_QUALITY
        ),
    )
