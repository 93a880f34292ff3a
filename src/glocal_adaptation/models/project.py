"""Adaptation project, workflow state and phase result models.

Phase data is a tagged union: each phase number maps to one result class.
Cross-phase reads go through ``WorkflowState.read`` so that a missing phase
or field falls back to an explicit default instead of failing.
"""

import re
from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Set, Type, Union


TOTAL_PHASES = 7


def _now_iso() -> str:
    return datetime.utcnow().isoformat()


_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])([A-Z])")


def _snake_case(key: str) -> str:
    """``leverageScore`` -> ``leverage_score``; snake_case keys pass through."""
    return _CAMEL_BOUNDARY.sub(r"_\1", key).lower()


@dataclass
class PhaseResult:
    """
    Base class for phase outputs.

    Subclasses declare their phase number and typed fields. Keys that are
    not declared fields are preserved in ``extra``.
    """
    phase: ClassVar[int] = 0
    extra: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.extra is None:
            self.extra = {}

    def get(self, name: str, default: Any = None) -> Any:
        """Read a field or extra key, falling back to ``default`` when unset."""
        if name != "extra" and name in {f.name for f in fields(self)}:
            value = getattr(self, name)
        else:
            value = self.extra.get(name)
        return default if value is None else value

    def is_empty(self) -> bool:
        declared = [
            getattr(self, f.name) for f in fields(self) if f.name != "extra"
        ]
        return not self.extra and all(v in (None, "", [], {}) for v in declared)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            f.name: getattr(self, f.name) for f in fields(self) if f.name != "extra"
        }
        data.update(self.extra)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PhaseResult":
        """
        Build a result from a mapping.

        Declared fields accept snake_case or camelCase keys; the snake_case
        key wins when both are present.
        """
        names = {f.name for f in fields(cls)} - {"extra"}
        known: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in data.items():
            if key == "extra":
                continue
            name = key if key in names else _snake_case(key)
            if name not in names:
                extra[key] = value
            elif key == name or name not in data:
                known[name] = value
        extra.update(data.get("extra") or {})
        return cls(extra=extra, **known)


@dataclass
class ContextCaptureResult(PhaseResult):
    phase: ClassVar[int] = 1
    captured_at: Optional[str] = None
    asset_name: Optional[str] = None
    segment_count: Optional[int] = None


@dataclass
class TMTranslationResult(PhaseResult):
    phase: ClassVar[int] = 2
    leverage_score: Optional[float] = None
    translated_segments: Optional[int] = None
    analyzed_at: Optional[str] = None


@dataclass
class CulturalIntelligenceResult(PhaseResult):
    phase: ClassVar[int] = 3
    cultural_score: Optional[float] = None
    completed_at: Optional[str] = None


@dataclass
class RegulatoryComplianceResult(PhaseResult):
    phase: ClassVar[int] = 4
    compliance_score: Optional[float] = None
    reviewed_at: Optional[str] = None


@dataclass
class QualityIntelligenceResult(PhaseResult):
    phase: ClassVar[int] = 5
    quality_score: Optional[float] = None
    completed_at: Optional[str] = None


@dataclass
class DAMHandoffResult(PhaseResult):
    """Metadata of the package handed to the digital asset manager."""
    phase: ClassVar[int] = 6
    package_name: Optional[str] = None
    target_markets: List[str] = field(default_factory=list)
    target_languages: List[str] = field(default_factory=list)
    files: List[str] = field(default_factory=list)
    generated_at: Optional[str] = None


@dataclass
class IntegrationResult(PhaseResult):
    phase: ClassVar[int] = 7
    lineage: Dict[str, Any] = field(default_factory=dict)
    finalized_at: Optional[str] = None


PHASE_RESULT_TYPES: Dict[int, Type[PhaseResult]] = {
    cls.phase: cls
    for cls in (
        ContextCaptureResult,
        TMTranslationResult,
        CulturalIntelligenceResult,
        RegulatoryComplianceResult,
        QualityIntelligenceResult,
        DAMHandoffResult,
        IntegrationResult,
    )
}


def phase_result_from_dict(phase_number: int, data: Mapping[str, Any]) -> PhaseResult:
    """Build the typed result for ``phase_number`` from a mapping."""
    try:
        result_cls = PHASE_RESULT_TYPES[phase_number]
    except KeyError:
        raise ValueError(f"Unknown phase number: {phase_number}") from None
    return result_cls.from_dict(data)


def coerce_phase_result(
    phase_number: int, result: Union[PhaseResult, Mapping[str, Any], None]
) -> PhaseResult:
    """Accept a typed result or a mapping for ``phase_number``."""
    if result is None:
        raise ValueError(f"Phase {phase_number} result must not be empty")
    if isinstance(result, PhaseResult):
        if result.phase != phase_number:
            raise ValueError(
                f"{type(result).__name__} belongs to phase {result.phase}, "
                f"not phase {phase_number}"
            )
        return result
    return phase_result_from_dict(phase_number, result)


@dataclass
class ClosingReport:
    """Summary handed to downstream packaging when phase 7 completes."""
    total_phases: int
    completed_phases: int
    quality_score: float
    compliance_score: float
    tm_leverage: float
    generated_at: str = field(default_factory=_now_iso)

    def to_export_dict(self) -> Dict[str, Any]:
        """Export contract in the downstream camelCase shape."""
        return {
            "totalPhases": self.total_phases,
            "completedPhases": self.completed_phases,
            "qualityScore": self.quality_score,
            "complianceScore": self.compliance_score,
            "tmLeverage": self.tm_leverage,
        }


@dataclass
class WorkflowState:
    """Progress of a project through the seven adaptation phases."""
    current_phase: int = 1
    phases_completed: Set[int] = field(default_factory=set)
    phase_data: Dict[int, PhaseResult] = field(default_factory=dict)
    closing_report: Optional[ClosingReport] = None

    def __post_init__(self):
        self.phases_completed = set(self.phases_completed or ())
        self.phase_data = dict(self.phase_data or {})

    @property
    def overall_progress(self) -> int:
        return round(100 * len(self.phases_completed) / TOTAL_PHASES)

    @property
    def is_terminal(self) -> bool:
        return len(self.phases_completed) == TOTAL_PHASES

    def read(self, phase_number: int, name: str, default: Any = None) -> Any:
        """Read ``name`` from a phase result, or ``default`` if absent."""
        result = self.phase_data.get(phase_number)
        if result is None:
            return default
        return result.get(name, default)

    def copy(self) -> "WorkflowState":
        return WorkflowState(
            current_phase=self.current_phase,
            phases_completed=set(self.phases_completed),
            phase_data=dict(self.phase_data),
            closing_report=self.closing_report,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "current_phase": self.current_phase,
            "phases_completed": sorted(self.phases_completed),
            "phase_data": {str(n): r.to_dict() for n, r in sorted(self.phase_data.items())},
            "overall_progress": self.overall_progress,
            "closing_report": self.closing_report.to_export_dict() if self.closing_report else None,
        }

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "WorkflowState":
        if not data:
            return cls()
        phase_data = {
            int(n): phase_result_from_dict(int(n), payload)
            for n, payload in (data.get("phase_data") or {}).items()
        }
        report = data.get("closing_report")
        return cls(
            current_phase=int(data.get("current_phase") or 1),
            phases_completed={int(n) for n in data.get("phases_completed") or []},
            phase_data=phase_data,
            closing_report=ClosingReport(
                total_phases=report["totalPhases"],
                completed_phases=report["completedPhases"],
                quality_score=report["qualityScore"],
                compliance_score=report["complianceScore"],
                tm_leverage=report["tmLeverage"],
            ) if report else None,
        )


@dataclass
class AdaptationProject:
    """
    Unit of work driven through the adaptation workflow.

    ``workflow_state`` is only mutated by ``AdaptationWorkflow.complete_phase``.
    """
    id: str
    brand_id: str
    project_name: str = ""
    source_language: str = "en"
    source_markets: Set[str] = field(default_factory=set)
    target_markets: Set[str] = field(default_factory=set)
    target_languages: Set[str] = field(default_factory=set)
    therapeutic_area: Optional[str] = None
    indication: Optional[str] = None
    workflow_state: WorkflowState = field(default_factory=WorkflowState)
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        self.source_markets = set(self.source_markets or ())
        self.target_markets = set(self.target_markets or ())
        self.target_languages = set(self.target_languages or ())
        if self.metadata is None:
            self.metadata = {}
        if self.workflow_state is None:
            self.workflow_state = WorkflowState()

    @property
    def overall_progress(self) -> int:
        return self.workflow_state.overall_progress

    @property
    def primary_target_language(self) -> Optional[str]:
        return sorted(self.target_languages)[0] if self.target_languages else None

    def to_record(self) -> Dict[str, Any]:
        """Store row for the project table (workflow state is stored separately)."""
        return {
            "id": self.id,
            "brand_id": self.brand_id,
            "project_name": self.project_name,
            "source_language": self.source_language,
            "source_markets": sorted(self.source_markets),
            "target_markets": sorted(self.target_markets),
            "target_languages": sorted(self.target_languages),
            "therapeutic_area": self.therapeutic_area,
            "indication": self.indication,
            "project_metadata": dict(self.metadata),
        }

    @classmethod
    def from_record(
        cls, data: Mapping[str, Any], workflow_state: Optional[WorkflowState] = None
    ) -> "AdaptationProject":
        return cls(
            id=str(data["id"]),
            brand_id=str(data["brand_id"]),
            project_name=data.get("project_name") or "",
            source_language=data.get("source_language") or "en",
            source_markets=set(data.get("source_markets") or []),
            target_markets=set(data.get("target_markets") or []),
            target_languages=set(data.get("target_languages") or []),
            therapeutic_area=data.get("therapeutic_area"),
            indication=data.get("indication"),
            workflow_state=workflow_state or WorkflowState(),
            metadata=dict(data.get("project_metadata") or {}),
        )
