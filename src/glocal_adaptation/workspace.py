"""Editing session over one adaptation project.

This module wires the leverage engine, the workflow state machine and the
autosave controller around the in-memory segment collection of a project.
Every mutation goes through the workspace so that autosave sees it.
"""

import asyncio
import copy
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Union

from .audit.audit_logger import AuditLogger
from .autosave.controller import AutosaveController, AutosaveStatus, SaveOutcome
from .autosave.promotion import PromotionQueue
from .autosave.snapshot import WORKFLOWS_TABLE, WorkflowSnapshot
from .config.config_manager import ConfigurationManager
from .config.models import RegulatoryTemplate
from .exceptions import WorkflowLocked
from .interfaces.notifier import INotifier
from .interfaces.store import IRecordStore
from .interfaces.translation import ITranslationService
from .models.leverage import AnalysisDetail, LeverageResult
from .models.project import AdaptationProject, PhaseResult
from .models.segment import ContentSegment
from .storage.database import DatabaseManager
from .storage.record_store import SqlRecordStore
from .storage.registry import InitializationRegistry
from .translation.engine import SEGMENT_KEY, SEGMENTS_TABLE, TMLeverageEngine
from .translation.memory_index import TMAnalytics, TMSuggestion, TranslationMemoryIndex
from .workflow.state_machine import AdaptationWorkflow, PhaseTransition, PhaseView


logger = logging.getLogger(__name__)

PROJECTS_TABLE = "glocal_adaptation_projects"
REFERENCE_TABLE = "glocal_reference_data"


@dataclass
class WorkspaceConfig:
    """Configuration for an adaptation workspace."""

    # Database configuration
    database_url: Optional[str] = None
    create_tables: bool = True

    # Configuration files (engine.json, regulatory_templates.json)
    config_dir: Optional[str] = None

    # Feature flags
    enable_audit_logging: bool = True
    seed_reference_data: bool = True


class AdaptationWorkspace:
    """
    One editing session over one adaptation project.

    The workspace owns the segment collection; the autosave controller only
    reads it through ``snapshot()``.
    """

    def __init__(
        self,
        project: AdaptationProject,
        segments: Sequence[ContentSegment],
        translator: ITranslationService,
        config: Optional[WorkspaceConfig] = None,
        store: Optional[IRecordStore] = None,
        db_manager: Optional[DatabaseManager] = None,
        config_manager: Optional[ConfigurationManager] = None,
        audit_logger: Optional[AuditLogger] = None,
        notifier: Optional[INotifier] = None,
        on_status: Optional[Callable[[AutosaveStatus], Any]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        """
        Initialize the workspace.

        Args:
            project: The project being adapted.
            segments: Its content segments.
            translator: Translation service used by the leverage engine.
            config: Workspace configuration.
            store: Optional record store (created over ``db_manager`` if not provided).
            db_manager: Optional database manager (created from config if not provided).
            config_manager: Optional configuration manager (created if not provided).
            audit_logger: Optional audit logger (created if audit logging is enabled).
            notifier: Receives save-failure notifications.
            on_status: Receives autosave status updates.
            sleep: Coroutine used for rate-limit and retry delays.
        """
        self.config = config or WorkspaceConfig()
        self.project = project
        self._segments: Dict[str, ContentSegment] = {}
        for segment in sorted(segments, key=lambda s: s.segment_index):
            if segment.project_id != project.id:
                raise ValueError(f"Segment {segment.id} belongs to project {segment.project_id}")
            self._segments[segment.id] = segment

        self._owns_db_manager = False
        if store is None:
            if db_manager is None:
                db_manager = DatabaseManager(database_url=self.config.database_url)
                self._owns_db_manager = True
            if self.config.create_tables:
                db_manager.init_database()
            store = SqlRecordStore(db_manager=db_manager)
        elif db_manager is None and isinstance(store, SqlRecordStore):
            db_manager = store.db_manager
        self._db_manager = db_manager
        self._store = store

        self._config_manager = config_manager or ConfigurationManager(
            config_dir=self.config.config_dir
        )
        if self.config.config_dir and not self._config_manager.is_loaded:
            result = self._config_manager.load_from_directory(self.config.config_dir)
            if result.is_valid:
                logger.info(f"Loaded configuration from {self.config.config_dir}")
            else:
                logger.warning(f"Configuration problems in {self.config.config_dir}: {result.errors}")
        self._config_manager.apply_environment()
        engine_config = self._config_manager.configuration

        self._audit_logger = audit_logger
        self._owns_audit_logger = False
        if self._audit_logger is None and self.config.enable_audit_logging and db_manager is not None:
            self._audit_logger = AuditLogger(db_manager=db_manager)
            self._owns_audit_logger = True

        self.memory_index = TranslationMemoryIndex(store, engine_config.matching)
        self.engine = TMLeverageEngine(
            project_id=project.id,
            store=store,
            translator=translator,
            memory_index=self.memory_index,
            settings=engine_config.translation,
            source_language=project.source_language,
            target_language=project.primary_target_language,
            domain_context=project.therapeutic_area,
            audit_logger=self._audit_logger,
            sleep=sleep,
        )
        self.workflow = AdaptationWorkflow()
        self.registry = InitializationRegistry(store)
        self.autosave = AutosaveController(
            project_id=project.id,
            snapshot_provider=self.snapshot,
            store=store,
            promotion_queue=PromotionQueue(store, self.memory_index, self._audit_logger),
            settings=engine_config.autosave,
            notifier=notifier,
            audit_logger=self._audit_logger,
            on_status=on_status,
            sleep=sleep,
        )

        logger.info(f"Workspace opened for project {project.id} with {len(self._segments)} segments")

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    @classmethod
    async def load(
        cls,
        project_id: str,
        translator: ITranslationService,
        config: Optional[WorkspaceConfig] = None,
        store: Optional[IRecordStore] = None,
        **kwargs: Any,
    ) -> "AdaptationWorkspace":
        """
        Open a stored project.

        The last saved snapshot wins over individual segment rows.

        Raises:
            KeyError: If the project does not exist.
        """
        config = config or WorkspaceConfig()
        db_manager = kwargs.pop("db_manager", None)
        owns_db_manager = False
        if store is None:
            if db_manager is None:
                db_manager = DatabaseManager(database_url=config.database_url)
                owns_db_manager = True
            if config.create_tables:
                db_manager.init_database()
            store = SqlRecordStore(db_manager=db_manager)

        rows = await asyncio.to_thread(store.select, PROJECTS_TABLE, {"id": project_id}, 1)
        if not rows:
            raise KeyError(f"Project not found: {project_id}")

        saved = await asyncio.to_thread(store.select, WORKFLOWS_TABLE, {"project_id": project_id}, 1)
        if saved:
            snapshot = WorkflowSnapshot.from_record(saved[0])
            project = AdaptationProject.from_record(rows[0], snapshot.workflow_state)
            segments = snapshot.segments
        else:
            snapshot = None
            project = AdaptationProject.from_record(rows[0])
            segment_rows = await asyncio.to_thread(store.select, SEGMENTS_TABLE, {"project_id": project_id})
            segments = [ContentSegment.from_dict(r) for r in segment_rows]

        workspace = cls(project, segments, translator, config=config, store=store, db_manager=db_manager, **kwargs)
        workspace._owns_db_manager = owns_db_manager
        if snapshot is not None:
            workspace.autosave.mark_persisted(workspace.snapshot())
        return workspace

    async def initialize(self) -> None:
        """Persist the project and its segments, and seed reference data once."""
        await asyncio.to_thread(
            self._store.upsert, PROJECTS_TABLE, self.project.to_record(), ["id"]
        )
        for segment in self._segments.values():
            record = segment.to_dict()
            await asyncio.to_thread(self._store.upsert, SEGMENTS_TABLE, record, SEGMENT_KEY, True)
        if self.config.seed_reference_data:
            await self.seed_reference_data()

    # ------------------------------------------------------------------
    # Segments
    # ------------------------------------------------------------------

    @property
    def segments(self) -> List[ContentSegment]:
        return list(self._segments.values())

    def get_segment(self, segment_id: str) -> ContentSegment:
        try:
            return self._segments[segment_id]
        except KeyError:
            raise KeyError(f"Segment not found: {segment_id}") from None

    def snapshot(self) -> WorkflowSnapshot:
        """Detached copy of the project data; later edits do not reach it."""
        return WorkflowSnapshot(
            project_id=self.project.id,
            segments=copy.deepcopy(self.segments),
            workflow_state=copy.deepcopy(self.project.workflow_state),
            brand_id=self.project.brand_id,
            source_language=self.project.source_language,
            target_language=self.project.primary_target_language,
            therapeutic_area=self.project.therapeutic_area,
        )

    def _ensure_editable(self) -> None:
        if self.project.workflow_state.is_terminal:
            raise WorkflowLocked(
                message=f"Project {self.project.id} is complete and read-only",
                project_id=self.project.id,
            )

    def _apply_result(self, segment: ContentSegment, result: LeverageResult) -> None:
        segment.apply_translation(
            result.translated_text,
            method=self.engine.classify_method(result),
            confidence=self.engine.confidence_for(result),
            tm_match_percentage=result.tm_stats.leverage_percentage,
            tm_match_type=result.dominant_match_type,
        )
        segment.metadata["tm_stats"] = result.tm_stats.to_dict()
        segment.metadata["review_flags"] = list(result.review_flags)

    async def translate_segment(self, segment_id: str) -> LeverageResult:
        """
        Translate one segment and update it in place.

        Raises:
            TranslationUnavailable: The segment is left as it was.
        """
        self._ensure_editable()
        segment = self.get_segment(segment_id)
        result = await self.engine.translate_segment(
            segment.source_text, segment.id, segment.segment_type
        )
        self._apply_result(segment, result)
        self.autosave.notify_change()
        return result

    async def translate_all(
        self,
        on_progress: Optional[Callable[[int, int], Any]] = None,
        include_translated: bool = False,
    ) -> Dict[str, LeverageResult]:
        """Translate every untranslated segment (or all of them) in order."""
        self._ensure_editable()
        targets = [
            s for s in self._segments.values()
            if include_translated or not s.is_translated
        ]
        results = await self.engine.translate_all_segments(targets, on_progress)
        for segment_id, result in results.items():
            self._apply_result(self._segments[segment_id], result)
        if results:
            self.autosave.notify_change()
        return results

    async def edit_translation(
        self, segment_id: str, translated_text: str, user_id: Optional[str] = None
    ) -> ContentSegment:
        """Replace a segment's translation with a manual edit."""
        self._ensure_editable()
        segment = self.get_segment(segment_id)
        segment.apply_manual_edit(translated_text)
        self.autosave.notify_change()
        await self._audit_call("log_segment_edited", self.project.id, segment_id, user_id)
        return segment

    async def mark_segment_failed(self, segment_id: str) -> ContentSegment:
        self._ensure_editable()
        segment = self.get_segment(segment_id)
        segment.mark_failed()
        self.autosave.notify_change()
        return segment

    async def load_analysis(self, segment_id: str) -> Optional[AnalysisDetail]:
        segment = self.get_segment(segment_id)
        if not segment.translated_text:
            return None
        return await self.engine.load_analysis_for_segment(
            segment.source_text, segment.translated_text, segment.id
        )

    async def approve_fuzzy_matches(self, segment_id: str, reviewer_id: str) -> bool:
        self.get_segment(segment_id)
        return await self.engine.approve_fuzzy_matches(segment_id, reviewer_id)

    async def add_to_tm(self, segment_id: str, reviewer_id: str) -> bool:
        self.get_segment(segment_id)
        return await self.engine.add_to_tm(segment_id, reviewer_id)

    async def suggestions(self) -> List[TMSuggestion]:
        return await asyncio.to_thread(
            self.memory_index.suggest,
            self.segments,
            self.project.source_language,
            self.project.primary_target_language,
            self.project.therapeutic_area,
        )

    async def memory_analytics(self) -> TMAnalytics:
        return await asyncio.to_thread(self.memory_index.analytics, self.project.id)

    def leverage_score(self) -> int:
        """Average leverage over translated segments, for the phase 2 result."""
        values = [
            s.tm_match_percentage or 0 for s in self._segments.values() if s.is_translated
        ]
        return round(sum(values) / len(values)) if values else 0

    # ------------------------------------------------------------------
    # Workflow
    # ------------------------------------------------------------------

    async def complete_phase(
        self,
        phase_number: int,
        phase_result: Union[PhaseResult, Mapping[str, Any]],
        user_id: Optional[str] = None,
    ) -> PhaseTransition:
        transition = self.workflow.complete_phase(self.project, phase_number, phase_result)
        self.autosave.notify_change()
        await self._audit_call(
            "log_phase_completed",
            self.project.id,
            phase_number,
            transition.overall_progress,
            user_id,
        )
        if transition.closing_report is not None:
            await self._audit_call(
                "log_workflow_finalized",
                self.project.id,
                transition.closing_report.to_export_dict(),
            )
        return transition

    def can_access_phase(self, phase_number: int) -> bool:
        return self.workflow.can_access_phase(self.project, phase_number)

    def describe_phases(self) -> List[PhaseView]:
        return self.workflow.describe_phases(self.project)

    # ------------------------------------------------------------------
    # Reference data
    # ------------------------------------------------------------------

    def regulatory_templates_for(self, market: str) -> List[RegulatoryTemplate]:
        return self._config_manager.get_templates_for_market(market)

    async def seed_reference_data(self) -> int:
        """
        Store the configured regulatory templates for the project's brand.

        Runs once per brand; returns the number of templates written.
        """
        key = f"regulatory_templates:{self.project.brand_id}"
        if await asyncio.to_thread(self.registry.is_initialized, key):
            return 0

        templates = self._config_manager.configuration.regulatory_templates
        for template in templates:
            await asyncio.to_thread(
                self._store.upsert,
                REFERENCE_TABLE,
                {
                    "id": f"{self.project.brand_id}:{template.id}",
                    "brand_id": self.project.brand_id,
                    "kind": "regulatory_template",
                    "market": template.market,
                    "payload": template.to_dict(),
                },
                ["id"],
                True,
            )
        await asyncio.to_thread(self.registry.mark_initialized, key)
        logger.info(f"Seeded {len(templates)} regulatory templates for brand {self.project.brand_id}")
        return len(templates)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @property
    def autosave_status(self) -> AutosaveStatus:
        return self.autosave.status

    async def force_save(self) -> SaveOutcome:
        return await self.autosave.force_save()

    def export_audit_log(self, format: str = "json") -> str:
        if self._audit_logger is None:
            raise RuntimeError("Audit logging is disabled for this workspace")
        return self._audit_logger.export_log(self.project.id, format=format)

    async def _audit_call(self, method: str, *args: Any) -> None:
        if self._audit_logger is None:
            return
        try:
            await asyncio.to_thread(getattr(self._audit_logger, method), *args)
        except Exception as e:
            logger.warning(f"Audit {method} failed: {e}")

    async def close(self, flush: bool = True) -> Optional[SaveOutcome]:
        """Close the workspace, saving pending changes first when ``flush``."""
        outcome = None
        if flush and not self.autosave.closed:
            outcome = await self.autosave.save()
        self.autosave.close()
        await self.autosave.wait_idle()
        if self._owns_audit_logger and self._audit_logger is not None:
            self._audit_logger.close()
        if self._owns_db_manager and self._db_manager is not None:
            self._db_manager.close()
        logger.info(f"Workspace closed for project {self.project.id}")
        return outcome
