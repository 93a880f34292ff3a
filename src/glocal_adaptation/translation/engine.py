"""TM leverage engine.

Translates segments through the translation service, validates the
word-level leverage the service reports, and keeps the segment and memory
records in the store up to date.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence

from ..audit.audit_logger import AuditLogger
from ..config.models import TranslationSettings
from ..exceptions import TranslationUnavailable
from ..interfaces.store import IRecordStore
from ..interfaces.translation import ITranslationService, TranslationRequest
from ..models.enums import TranslationMethod, TranslationStatus, WordMatchType
from ..models.leverage import (
    AnalysisDetail,
    LeverageResult,
    TMMatch,
    TMStats,
    WordMatch,
    tokenize,
    word_count,
)
from ..models.segment import ContentSegment
from .memory_index import TranslationMemoryIndex


logger = logging.getLogger(__name__)

SEGMENTS_TABLE = "glocal_content_segments"
SEGMENT_KEY = ("project_id", "id")

ProgressCallback = Callable[[int, int], Any]


def enforce_word_conservation(result: LeverageResult, source_text: str) -> LeverageResult:
    """
    Make ``result.tm_stats`` consistent with ``source_text``.

    Stats that do not add up, or that count a different number of words
    than the source, are replaced by an all-new breakdown with a review
    flag. The leverage percentage is always recomputed.
    """
    total = word_count(source_text)
    stats = result.tm_stats

    if stats.total_words != total or not stats.is_conserved:
        logger.warning(
            f"Leverage stats discrepancy: reported {stats.exact_words}/{stats.fuzzy_words}/"
            f"{stats.new_words} of {stats.total_words} words, source has {total}"
        )
        result.tm_stats = TMStats.all_new(total)
        result.word_level_breakdown = [
            WordMatch(word, WordMatchType.NEW) for word in tokenize(source_text)
        ]
        result.review_flags.append(
            f"Word count discrepancy: service reported {stats.total_words} words, "
            f"source has {total}; all words treated as new"
        )
    else:
        result.tm_stats = TMStats.from_counts(
            stats.exact_words, stats.fuzzy_words, stats.new_words
        )
    return result


class TMLeverageEngine:
    """
    Per-project translation engine with memory leverage.

    Store writes are best-effort: a failed segment upsert or update is
    logged and never hides a successful translation.
    """

    def __init__(
        self,
        project_id: str,
        store: IRecordStore,
        translator: ITranslationService,
        memory_index: Optional[TranslationMemoryIndex] = None,
        settings: Optional[TranslationSettings] = None,
        source_language: str = "en",
        target_language: Optional[str] = None,
        domain_context: Optional[str] = None,
        audit_logger: Optional[AuditLogger] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.project_id = project_id
        self.source_language = source_language
        self.target_language = target_language
        self.domain_context = domain_context
        self._store = store
        self._translator = translator
        self._memory_index = memory_index
        self._settings = settings or TranslationSettings()
        self._audit = audit_logger
        self._sleep = sleep

    @property
    def settings(self) -> TranslationSettings:
        return self._settings

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def classify_method(self, result: LeverageResult) -> TranslationMethod:
        if result.tm_stats.leverage_percentage >= self._settings.tm_method_threshold:
            return TranslationMethod.TM
        return TranslationMethod.AI

    @staticmethod
    def confidence_for(result: LeverageResult) -> int:
        """Mean AI score, or the leverage percentage when none was reported."""
        if result.ai_scores.has_scores:
            return result.ai_scores.mean
        return result.tm_stats.leverage_percentage

    def segment_patch(self, result: LeverageResult) -> Dict[str, Any]:
        """Column values recording ``result`` on a segment row."""
        match_type = result.dominant_match_type
        return {
            "translated_text": result.translated_text,
            "translation_status": TranslationStatus.COMPLETE.value,
            "translation_method": self.classify_method(result).value,
            "confidence": self.confidence_for(result),
            "tm_match_percentage": result.tm_stats.leverage_percentage,
            "tm_match_type": match_type.value if match_type else None,
        }

    # ------------------------------------------------------------------
    # Translation
    # ------------------------------------------------------------------

    async def translate_segment(
        self,
        source_text: str,
        segment_id: str,
        segment_type: str = "body",
        source_language: Optional[str] = None,
        target_language: Optional[str] = None,
        domain_context: Optional[str] = None,
        use_tm_leverage: Optional[bool] = None,
    ) -> LeverageResult:
        """
        Translate one segment and record the outcome.

        Raises:
            ValueError: If ``source_text`` is empty.
            TranslationUnavailable: If the service failed or returned no
                text. The stored segment is left unchanged.
        """
        if not source_text or not source_text.strip():
            raise ValueError("source_text must be non-empty")

        source_language = source_language or self.source_language
        target_language = target_language or self.target_language
        domain_context = domain_context if domain_context is not None else self.domain_context
        if use_tm_leverage is None:
            use_tm_leverage = self._settings.use_tm_leverage
        if not target_language:
            raise ValueError("target_language is required")

        await self._ensure_segment_row(source_text, segment_id, segment_type)

        matches: List[TMMatch] = []
        if use_tm_leverage:
            matches = await self._lookup(source_text, source_language, target_language, domain_context, segment_type)

        request = TranslationRequest(
            source_text=source_text,
            source_language=source_language,
            target_language=target_language,
            domain_context=domain_context,
            use_tm_leverage=use_tm_leverage,
            project_id=self.project_id,
            segment_id=segment_id,
            segment_type=segment_type,
            tm_matches=matches,
        )

        try:
            raw = await self._translator.translate(request)
        except Exception as e:
            logger.warning(f"Translation of segment {segment_id} failed: {e}")
            await self._audit_call("log_translation_failed", self.project_id, segment_id, str(e))
            raise TranslationUnavailable(
                message=f"Translation failed for segment {segment_id}: {e}",
                details={"project_id": self.project_id},
                segment_id=segment_id,
            ) from e

        try:
            result = raw if isinstance(raw, LeverageResult) else LeverageResult.from_payload(raw or {})
            if result.translated_text:
                result = enforce_word_conservation(result, source_text)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed translation response for segment {segment_id}: {e}")
            await self._audit_call("log_translation_failed", self.project_id, segment_id, f"malformed response: {e}")
            raise TranslationUnavailable(
                message=f"Translation service returned a malformed response for segment {segment_id}: {e}",
                details={"project_id": self.project_id},
                segment_id=segment_id,
            ) from e

        if not result.translated_text:
            await self._audit_call(
                "log_translation_failed", self.project_id, segment_id, "empty translation"
            )
            raise TranslationUnavailable(
                message="Translation service returned empty response",
                details={"project_id": self.project_id},
                segment_id=segment_id,
            )

        if not result.tm_matches:
            result.tm_matches = matches

        patch = self.segment_patch(result)
        try:
            await asyncio.to_thread(
                self._store.update,
                SEGMENTS_TABLE,
                {"project_id": self.project_id, "id": segment_id},
                patch,
            )
        except Exception as e:
            logger.warning(f"Failed to update segment {segment_id} after translation: {e}")

        logger.info(
            f"Segment {segment_id} translated via {patch['translation_method']} "
            f"({result.tm_stats.leverage_percentage}% leverage)"
        )
        await self._audit_call(
            "log_segment_translated",
            self.project_id,
            segment_id,
            patch["translation_method"],
            patch["confidence"],
            result.tm_stats.leverage_percentage,
            len(result.review_flags),
        )
        return result

    async def _ensure_segment_row(self, source_text: str, segment_id: str, segment_type: str) -> None:
        try:
            await asyncio.to_thread(
                self._store.upsert,
                SEGMENTS_TABLE,
                {
                    "id": segment_id,
                    "project_id": self.project_id,
                    "source_text": source_text,
                    "segment_type": segment_type or "body",
                    "translation_status": TranslationStatus.PENDING.value,
                },
                SEGMENT_KEY,
                True,
            )
        except Exception as e:
            logger.warning(f"Segment upsert failed for {segment_id}, continuing with translation: {e}")

    async def _lookup(
        self,
        source_text: str,
        source_language: str,
        target_language: str,
        domain_context: Optional[str],
        segment_type: Optional[str],
    ) -> List[TMMatch]:
        if self._memory_index is None:
            return []
        try:
            return await asyncio.to_thread(
                self._memory_index.find_matches,
                source_text,
                source_language,
                target_language,
                domain_context,
                segment_type,
            )
        except Exception as e:
            logger.warning(f"TM lookup failed, translating without candidates: {e}")
            return []

    async def load_analysis_for_segment(
        self,
        source_text: str,
        translated_text: str,
        segment_id: str,
    ) -> Optional[AnalysisDetail]:
        """Fetch the word-level rationale of a translation; None on failure."""
        try:
            data = await self._translator.analyze(
                source_text,
                translated_text,
                {
                    "targetMarket": self.target_language,
                    "therapeuticArea": self.domain_context,
                    "projectId": self.project_id,
                    "segmentId": segment_id,
                },
            )
        except Exception as e:
            logger.warning(f"Analysis for segment {segment_id} failed: {e}")
            return None
        if not data:
            return None
        analysis = data.get("analysis") if isinstance(data, Mapping) else None
        if analysis is None:
            return None
        return AnalysisDetail(segment_id=segment_id, analysis=analysis)

    async def translate_all_segments(
        self,
        segments: Sequence[ContentSegment],
        on_progress: Optional[ProgressCallback] = None,
    ) -> Dict[str, LeverageResult]:
        """
        Translate ``segments`` one after another.

        Failed segments are logged and skipped. ``on_progress(done, total)``
        runs after every segment, failed or not.

        Returns:
            Results of the successful segments keyed by segment id.
        """
        results: Dict[str, LeverageResult] = {}
        total = len(segments)

        for index, segment in enumerate(segments):
            succeeded = False
            try:
                logger.info(f"Translating segment {index + 1}/{total}: {segment.id}")
                results[segment.id] = await self.translate_segment(
                    segment.source_text,
                    segment.id,
                    segment.segment_type,
                )
                succeeded = True
            except Exception as e:
                logger.error(f"Failed to translate segment {segment.id}: {e}")

            if on_progress is not None:
                outcome = on_progress(index + 1, total)
                if asyncio.iscoroutine(outcome):
                    await outcome

            if succeeded and index < total - 1:
                await self._sleep(self._settings.inter_call_delay_seconds)

        await self._audit_call("log_batch_completed", self.project_id, total, len(results))
        return results

    # ------------------------------------------------------------------
    # Memory promotion
    # ------------------------------------------------------------------

    async def approve_fuzzy_matches(self, segment_id: str, reviewer_id: str) -> bool:
        """Approve the fuzzy memory entry recorded for a segment."""
        return await self._promote(segment_id, reviewer_id, "approve_fuzzy")

    async def add_to_tm(self, segment_id: str, reviewer_id: str) -> bool:
        """Confirm a segment's memory entry for reuse."""
        return await self._promote(segment_id, reviewer_id, "add_to_tm")

    async def _promote(self, segment_id: str, reviewer_id: str, action: str) -> bool:
        if self._memory_index is None:
            logger.warning(f"No translation memory configured; cannot {action} for {segment_id}")
            return False
        try:
            updated = await asyncio.to_thread(
                self._memory_index.promote_existing,
                segment_id,
                self.project_id,
                reviewer_id,
            )
        except Exception as e:
            logger.warning(f"TM {action} failed for segment {segment_id}: {e}")
            return False

        await self._audit_call(
            "log_tm_approved", self.project_id, segment_id, reviewer_id, action, updated
        )
        return updated

    async def _audit_call(self, method: str, *args: Any) -> None:
        if self._audit is None:
            return
        try:
            await asyncio.to_thread(getattr(self._audit, method), *args)
        except Exception as e:
            logger.warning(f"Audit {method} failed: {e}")
