"""Persisted workflow snapshot."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from ..models.project import WorkflowState
from ..models.segment import ContentSegment


WORKFLOWS_TABLE = "glocal_workflows"


@dataclass
class WorkflowSnapshot:
    """Everything the autosave controller writes for one project."""
    project_id: str
    segments: List[ContentSegment] = field(default_factory=list)
    workflow_state: WorkflowState = field(default_factory=WorkflowState)
    brand_id: Optional[str] = None
    source_language: Optional[str] = None
    target_language: Optional[str] = None
    therapeutic_area: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project_id": self.project_id,
            "segments": [s.to_dict() for s in self.segments],
            "workflow_state": self.workflow_state.to_dict(),
            "brand_id": self.brand_id,
            "source_language": self.source_language,
            "target_language": self.target_language,
            "therapeutic_area": self.therapeutic_area,
        }

    def serialize(self) -> str:
        """Deterministic form used for change detection."""
        return json.dumps(self.to_dict(), sort_keys=True, ensure_ascii=False, default=str)

    def to_record(self) -> Dict[str, Any]:
        """Row for the workflows table."""
        state = self.workflow_state.to_dict()
        return {
            "project_id": self.project_id,
            "current_phase": state["current_phase"],
            "phases_completed": state["phases_completed"],
            "phase_data": state["phase_data"],
            "closing_report": state["closing_report"],
            "segments": [s.to_dict() for s in self.segments],
            "overall_progress": state["overall_progress"],
            "source_language": self.source_language,
            "target_language": self.target_language,
            "therapeutic_area": self.therapeutic_area,
            "updated_at": datetime.utcnow(),
        }

    @classmethod
    def from_record(cls, record: Mapping[str, Any], **context: Any) -> "WorkflowSnapshot":
        return cls(
            project_id=str(record["project_id"]),
            segments=[ContentSegment.from_dict(s) for s in record.get("segments") or []],
            workflow_state=WorkflowState.from_dict({
                "current_phase": record.get("current_phase"),
                "phases_completed": record.get("phases_completed"),
                "phase_data": record.get("phase_data"),
                "closing_report": record.get("closing_report"),
            }),
            source_language=record.get("source_language"),
            target_language=record.get("target_language"),
            therapeutic_area=record.get("therapeutic_area"),
            **context,
        )
