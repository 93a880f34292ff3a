"""Persistence layer for the Glocal Adaptation Engine."""

from .database import DatabaseManager, get_database_url
from .models import (
    AdaptationProjectModel,
    AITranslationModel,
    AuditEventModel,
    Base,
    ContentSegmentModel,
    InitializationMarkerModel,
    ReferenceDataModel,
    TranslationMemoryModel,
    WorkflowSnapshotModel,
)
from .record_store import DEFAULT_TABLES, SqlRecordStore
from .registry import InitializationRegistry

__all__ = [
    "DatabaseManager",
    "get_database_url",
    "Base",
    "AdaptationProjectModel",
    "AITranslationModel",
    "AuditEventModel",
    "ContentSegmentModel",
    "InitializationMarkerModel",
    "ReferenceDataModel",
    "TranslationMemoryModel",
    "WorkflowSnapshotModel",
    "DEFAULT_TABLES",
    "SqlRecordStore",
    "InitializationRegistry",
]
