"""Audit logger implementation for the Glocal Adaptation Engine."""

import csv
import io
import json
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, select

from ..interfaces.audit import AuditEvent, AuditEventType, IAuditLogger
from ..storage.database import DatabaseManager
from ..storage.models import AuditEventModel


class AuditLogger(IAuditLogger):
    """
    Audit logger with a relational backend.

    Records workflow events (translations, phase transitions, memory
    promotions, failed saves) and exports them per project.
    """

    def __init__(
        self,
        db_manager: Optional[DatabaseManager] = None,
        database_url: Optional[str] = None,
    ):
        """
        Initialize the audit logger.

        Args:
            db_manager: Optional DatabaseManager instance. If not provided,
                       a new one will be created.
            database_url: Database URL for creating a new DatabaseManager.
        """
        if db_manager is not None:
            self._db_manager = db_manager
            self._owns_db_manager = False
        else:
            self._db_manager = DatabaseManager(database_url=database_url)
            self._owns_db_manager = True

    def _to_model(self, event: AuditEvent) -> AuditEventModel:
        """Convert AuditEvent dataclass to SQLAlchemy model."""
        score = event.details.get("confidence") if event.details else None
        return AuditEventModel(
            id=str(event.id),
            event_type=event.event_type.value if isinstance(event.event_type, AuditEventType) else event.event_type,
            timestamp=event.timestamp,
            project_id=event.project_id,
            segment_id=event.segment_id,
            user_id=event.user_id,
            details=event.details or {},
            score=float(score) if isinstance(score, (int, float)) else None,
        )

    def _from_model(self, model: AuditEventModel) -> AuditEvent:
        """Convert SQLAlchemy model to AuditEvent dataclass."""
        return AuditEvent(
            id=str(model.id),
            event_type=AuditEventType(model.event_type),
            timestamp=model.timestamp,
            project_id=model.project_id,
            segment_id=model.segment_id,
            user_id=model.user_id,
            details=model.details or {},
        )

    def log_event(self, event: AuditEvent) -> None:
        """Record an audit event to the database."""
        model = self._to_model(event)
        with self._db_manager.get_session() as session:
            session.add(model)

    def get_events(
        self,
        project_id: Optional[str] = None,
        event_type: Optional[AuditEventType] = None,
        start_time: Optional[datetime] = None,
        end_time: Optional[datetime] = None,
    ) -> List[AuditEvent]:
        with self._db_manager.get_session() as session:
            query = select(AuditEventModel)

            conditions = []
            if project_id:
                conditions.append(AuditEventModel.project_id == project_id)
            if event_type:
                event_type_value = event_type.value if isinstance(event_type, AuditEventType) else event_type
                conditions.append(AuditEventModel.event_type == event_type_value)
            if start_time:
                conditions.append(AuditEventModel.timestamp >= start_time)
            if end_time:
                conditions.append(AuditEventModel.timestamp <= end_time)

            if conditions:
                query = query.where(and_(*conditions))

            query = query.order_by(AuditEventModel.timestamp.desc())

            result = session.execute(query)
            models = result.scalars().all()

            return [self._from_model(m) for m in models]

    def export_log(self, project_id: str, format: str = "json") -> str:
        """
        Export the audit log of a project.

        Args:
            project_id: The project to export.
            format: Export format ("json" or "csv").

        Returns:
            Exported log content as a string.

        Raises:
            ValueError: If format is not supported.
        """
        if format not in ("json", "csv"):
            raise ValueError(f"Unsupported export format: {format}. Use 'json' or 'csv'.")

        events = self.get_events(project_id=project_id)

        if format == "json":
            return self._export_json(project_id, events)
        else:
            return self._export_csv(events)

    def _export_json(self, project_id: str, events: List[AuditEvent]) -> str:
        """Export events to JSON with a per-segment translation table."""
        translations = [
            {
                "segment_id": e.segment_id,
                "method": e.details.get("method"),
                "confidence": e.details.get("confidence"),
                "leverage_percentage": e.details.get("leverage_percentage"),
                "timestamp": e.timestamp.isoformat() if e.timestamp else None,
            }
            for e in events
            if e.event_type == AuditEventType.SEGMENT_TRANSLATED
        ]
        leverage = [
            t["leverage_percentage"] for t in translations
            if t.get("leverage_percentage") is not None
        ]

        data = {
            "project_id": project_id,
            "export_timestamp": datetime.utcnow().isoformat(),
            "event_count": len(events),
            "translations": translations,
            "leverage_summary": {
                "translated_segments": len(translations),
                "average_leverage": sum(leverage) / len(leverage) if leverage else 0,
            },
            "events": [self._event_dict(e) for e in events],
        }
        return json.dumps(data, indent=2, ensure_ascii=False)

    @staticmethod
    def _event_dict(event: AuditEvent) -> Dict[str, Any]:
        return {
            "id": event.id,
            "event_type": event.event_type.value,
            "timestamp": event.timestamp.isoformat() if event.timestamp else None,
            "project_id": event.project_id,
            "segment_id": event.segment_id,
            "user_id": event.user_id,
            "details": event.details,
        }

    def _export_csv(self, events: List[AuditEvent]) -> str:
        """Export events to CSV format."""
        output = io.StringIO()
        writer = csv.writer(output)

        writer.writerow([
            "id", "event_type", "timestamp", "project_id",
            "segment_id", "user_id", "details"
        ])

        for e in events:
            writer.writerow([
                e.id,
                e.event_type.value,
                e.timestamp.isoformat() if e.timestamp else "",
                e.project_id or "",
                e.segment_id or "",
                e.user_id or "",
                json.dumps(e.details, ensure_ascii=False),
            ])

        return output.getvalue()

    # ========== Convenience Logging Methods ==========

    def _record(
        self,
        event_type: AuditEventType,
        project_id: Optional[str],
        segment_id: Optional[str] = None,
        user_id: Optional[str] = None,
        **details: Any,
    ) -> None:
        self.log_event(AuditEvent(
            id=str(uuid.uuid4()),
            event_type=event_type,
            timestamp=datetime.utcnow(),
            project_id=project_id,
            segment_id=segment_id,
            user_id=user_id,
            details=details,
        ))

    def log_segment_translated(
        self,
        project_id: str,
        segment_id: str,
        method: str,
        confidence: int,
        leverage_percentage: int,
        review_flag_count: int = 0,
    ) -> None:
        """Log a successful segment translation."""
        self._record(
            AuditEventType.SEGMENT_TRANSLATED,
            project_id,
            segment_id,
            method=method,
            confidence=confidence,
            leverage_percentage=leverage_percentage,
            review_flag_count=review_flag_count,
        )

    def log_translation_failed(self, project_id: str, segment_id: str, error: str) -> None:
        """Log a failed segment translation."""
        self._record(AuditEventType.TRANSLATION_FAILED, project_id, segment_id, error=error)

    def log_batch_completed(self, project_id: str, total: int, succeeded: int) -> None:
        self._record(
            AuditEventType.BATCH_COMPLETED,
            project_id,
            total=total,
            succeeded=succeeded,
            failed=total - succeeded,
        )

    def log_segment_edited(self, project_id: str, segment_id: str, user_id: Optional[str] = None) -> None:
        self._record(AuditEventType.SEGMENT_EDITED, project_id, segment_id, user_id)

    def log_phase_completed(
        self,
        project_id: str,
        phase_number: int,
        overall_progress: int,
        user_id: Optional[str] = None,
    ) -> None:
        """Log a workflow phase completion."""
        self._record(
            AuditEventType.PHASE_COMPLETED,
            project_id,
            user_id=user_id,
            phase_number=phase_number,
            overall_progress=overall_progress,
        )

    def log_workflow_finalized(self, project_id: str, closing_report: Dict[str, Any]) -> None:
        """Log the terminal phase and its closing report."""
        self._record(AuditEventType.WORKFLOW_FINALIZED, project_id, closing_report=closing_report)

    def log_tm_promoted(self, project_id: str, segment_id: str, match_type: Optional[str]) -> None:
        self._record(AuditEventType.TM_PROMOTED, project_id, segment_id, match_type=match_type)

    def log_tm_approved(
        self,
        project_id: str,
        segment_id: str,
        reviewer_id: str,
        action: str,
        updated: bool,
    ) -> None:
        """Log a reviewer approving a memory entry."""
        self._record(
            AuditEventType.TM_APPROVED,
            project_id,
            segment_id,
            reviewer_id,
            action=action,
            updated=updated,
        )

    def log_save_failed(self, project_id: str, attempts: int, error: str) -> None:
        """Log an autosave that exhausted its retries."""
        self._record(AuditEventType.SAVE_FAILED, project_id, attempts=attempts, error=error)

    def close(self) -> None:
        """Close the audit logger and release resources."""
        if self._owns_db_manager:
            self._db_manager.close()
