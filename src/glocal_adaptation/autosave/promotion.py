"""Secondary writes performed after a committed save."""

import logging
from dataclasses import dataclass
from typing import List, Optional

from ..audit.audit_logger import AuditLogger
from ..exceptions import PromotionFailure
from ..interfaces.store import IRecordStore
from ..models.enums import TranslationMethod
from ..models.segment import ContentSegment
from ..translation.memory_index import TranslationMemoryIndex
from .snapshot import WorkflowSnapshot


logger = logging.getLogger(__name__)

AI_TRANSLATIONS_TABLE = "glocal_ai_translations"


@dataclass
class PromotionItem:
    kind: str  # "tm" or "ai"
    segment: ContentSegment


class PromotionQueue:
    """
    Memory promotion and AI audit records for a saved snapshot.

    Every item is attempted; failures are collected and logged, never
    raised.
    """

    def __init__(
        self,
        store: IRecordStore,
        memory_index: Optional[TranslationMemoryIndex] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._memory_index = memory_index
        self._audit = audit_logger

    @staticmethod
    def items_for(snapshot: WorkflowSnapshot) -> List[PromotionItem]:
        items = []
        for segment in snapshot.segments:
            if not segment.is_translated:
                continue
            if segment.translation_method == TranslationMethod.TM:
                items.append(PromotionItem("tm", segment))
            elif segment.translation_method == TranslationMethod.AI:
                items.append(PromotionItem("ai", segment))
        return items

    def drain(self, snapshot: WorkflowSnapshot) -> List[PromotionFailure]:
        failures = []
        for item in self.items_for(snapshot):
            try:
                if item.kind == "tm":
                    self._promote_tm(snapshot, item.segment)
                else:
                    self._record_ai(snapshot, item.segment)
            except Exception as e:
                failure = PromotionFailure(
                    message=f"{item.kind} promotion failed for segment {item.segment.id}: {e}",
                    details={"project_id": snapshot.project_id},
                    segment_id=item.segment.id,
                    kind=item.kind,
                )
                logger.warning(failure.message)
                failures.append(failure)
        return failures

    def _promote_tm(self, snapshot: WorkflowSnapshot, segment: ContentSegment) -> None:
        if self._memory_index is None:
            raise RuntimeError("no translation memory index configured")
        if not snapshot.target_language:
            raise ValueError("snapshot has no target language")
        match_type = self._memory_index.upsert_from_segment(
            segment,
            snapshot.source_language or "en",
            snapshot.target_language,
            therapeutic_area=snapshot.therapeutic_area,
            brand_id=snapshot.brand_id,
        )
        if self._audit is not None:
            try:
                self._audit.log_tm_promoted(snapshot.project_id, segment.id, match_type.value)
            except Exception as e:
                logger.warning(f"Audit of TM promotion failed: {e}")

    def _record_ai(self, snapshot: WorkflowSnapshot, segment: ContentSegment) -> None:
        self._store.upsert(
            AI_TRANSLATIONS_TABLE,
            {
                "project_id": snapshot.project_id,
                "segment_id": segment.id,
                "source_text": segment.source_text,
                "translated_text": segment.translated_text,
                "source_language": snapshot.source_language,
                "target_language": snapshot.target_language,
                "confidence": segment.confidence,
            },
            conflict_key=("project_id", "segment_id"),
        )
