"""Audit logger interface for the Glocal Adaptation Engine."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class AuditEventType(Enum):
    """Types of audit events tracked by the engine."""
    SEGMENT_TRANSLATED = "segment_translated"
    TRANSLATION_FAILED = "translation_failed"
    BATCH_COMPLETED = "batch_completed"
    SEGMENT_EDITED = "segment_edited"
    PHASE_COMPLETED = "phase_completed"
    WORKFLOW_FINALIZED = "workflow_finalized"
    TM_PROMOTED = "tm_promoted"
    TM_APPROVED = "tm_approved"
    SAVE_FAILED = "save_failed"


@dataclass
class AuditEvent:
    """
    Audit event record.

    A single auditable event of an adaptation project.
    """
    id: str
    event_type: AuditEventType
    timestamp: datetime
    project_id: Optional[str] = None
    segment_id: Optional[str] = None
    user_id: Optional[str] = None
    details: dict = field(default_factory=dict)

    def __post_init__(self):
        if self.details is None:
            self.details = {}


class IAuditLogger(ABC):
    """
    Abstract interface for audit logging.

    Implementations record and query workflow events for traceability.
    """

    @abstractmethod
    def log_event(self, event: AuditEvent) -> None:
        """
        Record an audit event.

        Args:
            event: The audit event to record.
        """
        pass

    @abstractmethod
    def get_events(
        self,
        project_id: Optional[str] = None,
        event_type: Optional[AuditEventType] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> List[AuditEvent]:
        """
        Query audit events with optional filters.

        Args:
            project_id: Filter by project ID.
            event_type: Filter by event type.
            start_time: Filter events after this time.
            end_time: Filter events before this time.

        Returns:
            List of matching audit events, newest first.
        """
        pass

    @abstractmethod
    def export_log(self, project_id: str, format: str = "json") -> str:
        """
        Export the audit log of a project.

        Args:
            project_id: The project to export.
            format: Export format ("json" or "csv").

        Raises:
            ValueError: If format is not supported.
        """
        pass
