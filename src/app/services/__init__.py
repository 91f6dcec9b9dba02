from .unit_of_work import UnitOfWork
from .notification_service import NotificationService, LedgerAlert, AlertKind
from .business_record_store import BusinessRecordStore
from .ad_image_generator import (
    AdImageGenerator,
    AdGenerationRequest,
    AdGenerationResult,
)

__all__ = [
    "UnitOfWork",
    "NotificationService",
    "LedgerAlert",
    "AlertKind",
    "BusinessRecordStore",
    "AdImageGenerator",
    "AdGenerationRequest",
    "AdGenerationResult",
]
