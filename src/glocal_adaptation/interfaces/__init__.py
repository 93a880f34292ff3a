"""Abstract interfaces for the Glocal Adaptation Engine."""

from .store import IInitializationRegistry, IRecordStore
from .translation import ITranslationService, TranslationRequest
from .audit import AuditEvent, AuditEventType, IAuditLogger
from .notifier import INotifier, LoggingNotifier, Notification

__all__ = [
    "IRecordStore",
    "IInitializationRegistry",
    "ITranslationService",
    "TranslationRequest",
    "AuditEvent",
    "AuditEventType",
    "IAuditLogger",
    "INotifier",
    "LoggingNotifier",
    "Notification",
]
