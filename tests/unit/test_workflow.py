"""Unit tests for the adaptation workflow state machine."""

import pytest

from glocal_adaptation.exceptions import PhaseOutOfOrder, WorkflowLocked
from glocal_adaptation.models.enums import PhaseStatus
from glocal_adaptation.models.project import (
    AdaptationProject,
    QualityIntelligenceResult,
    TMTranslationResult,
)
from glocal_adaptation.workflow import AdaptationWorkflow
from glocal_adaptation.workflow.state_machine import PHASES


RESULTS = {
    1: {"asset_name": "Launch email", "segment_count": 12},
    2: {"leverage_score": 64, "translated_segments": 12},
    3: {"cultural_score": 88},
    4: {"compliance_score": 91},
    5: {"quality_score": 87},
    6: {"package_name": "launch-email-de", "files": ["email.html"]},
    7: {"lineage": {"source": "asset-1"}},
}


@pytest.fixture
def workflow():
    return AdaptationWorkflow()


@pytest.fixture
def fresh_project():
    return AdaptationProject(id="proj-1", brand_id="brand-1", target_languages={"de"})


def complete_through(workflow, project, last_phase):
    for n in range(1, last_phase + 1):
        workflow.complete_phase(project, n, RESULTS[n])


class TestCompletePhase:
    """Tests for phase ordering."""

    def test_phases_complete_in_order(self, workflow, fresh_project):
        transition = workflow.complete_phase(fresh_project, 1, RESULTS[1])

        state = fresh_project.workflow_state
        assert transition.previous_phase == 1
        assert transition.current_phase == 2
        assert state.phases_completed == {1}
        assert state.overall_progress == 14

    def test_skipping_ahead_is_rejected(self, workflow, fresh_project):
        workflow.complete_phase(fresh_project, 1, RESULTS[1])
        before = fresh_project.workflow_state.to_dict()

        with pytest.raises(PhaseOutOfOrder) as exc_info:
            workflow.complete_phase(fresh_project, 3, RESULTS[3])

        assert exc_info.value.current_phase == 2
        assert "Finish phase 2 first" in exc_info.value.user_message
        assert fresh_project.workflow_state.to_dict() == before

    def test_recompleting_replaces_result_without_moving(self, workflow, fresh_project):
        complete_through(workflow, fresh_project, 3)

        transition = workflow.complete_phase(fresh_project, 2, {"leverage_score": 70})

        state = fresh_project.workflow_state
        assert transition.recompleted
        assert state.current_phase == 4
        assert state.read(2, "leverage_score") == 70
        assert state.overall_progress == 43

    def test_progress_never_decreases(self, workflow, fresh_project):
        seen = [fresh_project.overall_progress]
        for n in range(1, 8):
            workflow.complete_phase(fresh_project, n, RESULTS[n])
            seen.append(fresh_project.overall_progress)
            if n < 7:
                workflow.complete_phase(fresh_project, 1, RESULTS[1])
                seen.append(fresh_project.overall_progress)

        assert seen == sorted(seen)
        assert seen[-1] == 100

    @pytest.mark.parametrize("phase_number", [0, 8, -1])
    def test_phase_number_out_of_range(self, workflow, fresh_project, phase_number):
        with pytest.raises(ValueError):
            workflow.complete_phase(fresh_project, phase_number, {"x": 1})

    @pytest.mark.parametrize("result", [None, {}, {"asset_name": None}])
    def test_empty_result_is_rejected(self, workflow, fresh_project, result):
        with pytest.raises(ValueError):
            workflow.complete_phase(fresh_project, 1, result)
        assert fresh_project.workflow_state.phases_completed == set()

    def test_typed_result_for_wrong_phase(self, workflow, fresh_project):
        with pytest.raises(ValueError):
            workflow.complete_phase(fresh_project, 1, QualityIntelligenceResult(quality_score=80))

    def test_typed_result(self, workflow, fresh_project):
        complete_through(workflow, fresh_project, 1)
        workflow.complete_phase(fresh_project, 2, TMTranslationResult(leverage_score=58))
        assert fresh_project.workflow_state.read(2, "leverage_score") == 58


class TestFinalization:
    """Tests for the terminal phase."""

    def test_phase_seven_produces_closing_report(self, workflow, fresh_project):
        complete_through(workflow, fresh_project, 6)

        transition = workflow.complete_phase(fresh_project, 7, RESULTS[7])

        assert transition.is_terminal
        assert fresh_project.workflow_state.is_terminal
        assert transition.closing_report.to_export_dict() == {
            "totalPhases": 7,
            "completedPhases": 7,
            "qualityScore": 87,
            "complianceScore": 91,
            "tmLeverage": 64,
        }
        assert fresh_project.workflow_state.current_phase == 7

    def test_missing_scores_default_to_zero(self, workflow, fresh_project):
        for n in range(1, 8):
            workflow.complete_phase(fresh_project, n, {"note": f"phase {n}"})

        report = fresh_project.workflow_state.closing_report
        assert report.quality_score == 0
        assert report.compliance_score == 0
        assert report.tm_leverage == 0

    def test_finished_project_is_locked(self, workflow, fresh_project):
        complete_through(workflow, fresh_project, 7)

        with pytest.raises(WorkflowLocked):
            workflow.complete_phase(fresh_project, 3, RESULTS[3])


class TestAccess:
    """Tests for phase access and display status."""

    def test_fresh_project_only_reaches_first_phase(self, workflow, fresh_project):
        assert workflow.can_access_phase(fresh_project, 1)
        assert not workflow.can_access_phase(fresh_project, 2)

    def test_any_completion_opens_all_phases(self, workflow, fresh_project):
        complete_through(workflow, fresh_project, 1)
        assert all(workflow.can_access_phase(fresh_project, n) for n in range(1, 8))

    def test_describe_phases(self, workflow, fresh_project):
        views = workflow.describe_phases(fresh_project)
        assert [v.status for v in views[:2]] == [PhaseStatus.CURRENT, PhaseStatus.LOCKED]

        complete_through(workflow, fresh_project, 2)
        views = workflow.describe_phases(fresh_project)

        assert [v.title for v in views] == [PHASES[n].title for n in range(1, 8)]
        assert [v.status for v in views[:4]] == [
            PhaseStatus.COMPLETED,
            PhaseStatus.COMPLETED,
            PhaseStatus.CURRENT,
            PhaseStatus.ACCESSIBLE,
        ]
        assert views[1].to_dict()["has_result"] is True


class TestCamelCaseResults:
    """Results posted with camelCase keys, as the workspace UI sends them."""

    def test_closing_report_reads_camel_case_scores(self, workflow, fresh_project):
        camel = {
            1: {"assetName": "Launch email"},
            2: {"leverageScore": 80, "translatedSegments": 12},
            3: {"culturalScore": 75},
            4: {"complianceScore": 90},
            5: {"qualityScore": 85},
            6: {"packageName": "launch-email-de"},
            7: {"lineage": {"source": "asset-1"}},
        }
        for n in range(1, 8):
            workflow.complete_phase(fresh_project, n, camel[n])

        state = fresh_project.workflow_state
        assert state.read(2, "leverage_score") == 80
        assert state.phase_data[2].extra == {}
        assert state.closing_report.to_export_dict() == {
            "totalPhases": 7,
            "completedPhases": 7,
            "qualityScore": 85,
            "complianceScore": 90,
            "tmLeverage": 80,
        }

    def test_snake_case_key_wins_over_camel_case(self, workflow, fresh_project):
        complete_through(workflow, fresh_project, 1)
        workflow.complete_phase(fresh_project, 2, {"leverageScore": 10, "leverage_score": 64, "reviewerNote": "ok"})

        result = fresh_project.workflow_state.phase_data[2]
        assert result.leverage_score == 64
        assert result.extra == {"reviewerNote": "ok"}
