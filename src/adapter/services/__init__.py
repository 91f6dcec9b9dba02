from .unit_of_work import SqlAlchemyUnitOfWork
from .ad_record_store import GeneratedAdRecordStore, AdRecordNotFound
from .notification_service import (
    LoggingNotificationService,
    WebhookNotificationService,
    CompositeNotificationService,
    create_notification_service,
)

__all__ = [
    "SqlAlchemyUnitOfWork",
    "GeneratedAdRecordStore",
    "AdRecordNotFound",
    "LoggingNotificationService",
    "WebhookNotificationService",
    "CompositeNotificationService",
    "create_notification_service",
]
