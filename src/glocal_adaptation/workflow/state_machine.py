"""Seven-phase adaptation workflow.

Phases complete strictly in order. Re-completing an earlier phase replaces
its result without moving the current phase. Completing phase 7 makes the
project read-only and produces the closing report.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

from ..exceptions import PhaseOutOfOrder, WorkflowLocked
from ..models.enums import PhaseStatus
from ..models.project import (
    TOTAL_PHASES,
    AdaptationProject,
    ClosingReport,
    PhaseResult,
    coerce_phase_result,
)


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PhaseDefinition:
    number: int
    key: str
    title: str
    description: str


PHASES: Dict[int, PhaseDefinition] = {
    p.number: p
    for p in (
        PhaseDefinition(1, "context_capture", "Global Asset Context Capture",
                        "Capture the source asset and its market context"),
        PhaseDefinition(2, "tm_translation", "Smart TM Intelligence",
                        "Translate segments with translation memory leverage"),
        PhaseDefinition(3, "cultural_intelligence", "Cultural Intelligence",
                        "Review cultural fit for the target markets"),
        PhaseDefinition(4, "regulatory_compliance", "Regulatory Compliance",
                        "Check market regulatory requirements"),
        PhaseDefinition(5, "quality_intelligence", "Quality Intelligence",
                        "Score translation quality"),
        PhaseDefinition(6, "dam_handoff", "DAM Handoff",
                        "Package the adapted asset for the asset manager"),
        PhaseDefinition(7, "integration_lineage", "Integration & Lineage",
                        "Record lineage and finalize the project"),
    )
}


@dataclass
class PhaseTransition:
    """Outcome of a phase completion."""
    phase_number: int
    previous_phase: int
    current_phase: int
    overall_progress: int
    recompleted: bool = False
    closing_report: Optional[ClosingReport] = None

    @property
    def is_terminal(self) -> bool:
        return self.closing_report is not None


@dataclass
class PhaseView:
    """Per-phase display entry."""
    number: int
    title: str
    status: PhaseStatus
    has_result: bool

    def to_dict(self) -> Dict[str, Any]:
        return {
            "number": self.number,
            "title": self.title,
            "status": self.status.value,
            "has_result": self.has_result,
        }


def _check_phase_number(phase_number: int) -> None:
    if not isinstance(phase_number, int) or not 1 <= phase_number <= TOTAL_PHASES:
        raise ValueError(f"Phase number must be within 1-{TOTAL_PHASES}, got {phase_number!r}")


class AdaptationWorkflow:
    """
    Phase state machine over ``AdaptationProject.workflow_state``.

    Performs no I/O; callers persist the project afterwards.
    """

    def complete_phase(
        self,
        project: AdaptationProject,
        phase_number: int,
        phase_result: Union[PhaseResult, Mapping[str, Any]],
    ) -> PhaseTransition:
        """
        Record ``phase_result`` for ``phase_number``.

        Raises:
            ValueError: Phase number out of range, or empty result.
            WorkflowLocked: The project already completed all phases.
            PhaseOutOfOrder: The phase is neither current nor completed.
        """
        _check_phase_number(phase_number)
        result = coerce_phase_result(phase_number, phase_result)
        if result.is_empty():
            raise ValueError(f"Phase {phase_number} result must not be empty")

        state = project.workflow_state
        if state.is_terminal:
            raise WorkflowLocked(
                message=f"Project {project.id} is complete and read-only",
                project_id=project.id,
            )

        recompleted = phase_number in state.phases_completed
        if phase_number != state.current_phase and not recompleted:
            raise PhaseOutOfOrder(
                message=(
                    f"Cannot complete phase {phase_number} while phase "
                    f"{state.current_phase} is current"
                ),
                phase_number=phase_number,
                current_phase=state.current_phase,
            )

        previous = state.current_phase
        state.phase_data[phase_number] = result
        state.phases_completed.add(phase_number)
        if phase_number == state.current_phase and phase_number < TOTAL_PHASES:
            state.current_phase = phase_number + 1

        report = None
        if phase_number == TOTAL_PHASES and state.is_terminal:
            report = self.closing_report(project)
            state.closing_report = report
            logger.info(f"Project {project.id} finalized")

        logger.info(
            f"Project {project.id}: phase {phase_number} completed "
            f"({state.overall_progress}% overall)"
        )
        return PhaseTransition(
            phase_number=phase_number,
            previous_phase=previous,
            current_phase=state.current_phase,
            overall_progress=state.overall_progress,
            recompleted=recompleted,
            closing_report=report,
        )

    def can_access_phase(self, project: AdaptationProject, phase_number: int) -> bool:
        state = project.workflow_state
        return (
            phase_number <= state.current_phase
            or phase_number in state.phases_completed
            or bool(state.phases_completed)
        )

    def overall_progress(self, project: AdaptationProject) -> int:
        return project.workflow_state.overall_progress

    def closing_report(self, project: AdaptationProject) -> ClosingReport:
        """Summary of the finished workflow from phases 2, 4 and 5."""
        state = project.workflow_state
        return ClosingReport(
            total_phases=TOTAL_PHASES,
            completed_phases=len(state.phases_completed),
            quality_score=state.read(5, "quality_score", 0),
            compliance_score=state.read(4, "compliance_score", 0),
            tm_leverage=state.read(2, "leverage_score", 0),
        )

    def describe_phases(self, project: AdaptationProject) -> List[PhaseView]:
        state = project.workflow_state
        views = []
        for number, definition in PHASES.items():
            if number in state.phases_completed:
                status = PhaseStatus.COMPLETED
            elif number == state.current_phase:
                status = PhaseStatus.CURRENT
            elif self.can_access_phase(project, number):
                status = PhaseStatus.ACCESSIBLE
            else:
                status = PhaseStatus.LOCKED
            views.append(PhaseView(
                number=number,
                title=definition.title,
                status=status,
                has_result=number in state.phase_data,
            ))
        return views
