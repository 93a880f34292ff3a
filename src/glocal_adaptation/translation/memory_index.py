"""Translation memory index over the record store.

Candidates are scored with a normalized Levenshtein similarity, boosted
when the stored entry was captured for the same kind of segment, and ranked
by a blend of match and historical quality.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from ..config.models import MatchingSettings
from ..interfaces.store import IRecordStore
from ..models.enums import ApprovalStatus, TMMatchType
from ..models.leverage import TMMatch, word_count
from ..models.segment import ContentSegment


logger = logging.getLogger(__name__)

TM_TABLE = "glocal_tm_intelligence"
TM_CONFLICT_KEY = ("segment_id", "project_id")

COST_PER_WORD = 0.15
SUGGESTION_MATCH_LIMIT = 5
COMPLEX_SEGMENT_WORDS = 50


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance with unit cost insert, delete and substitute."""
    if len(a) < len(b):
        a, b = b, a
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                current.append(previous[j - 1])
            else:
                current.append(1 + min(previous[j - 1], previous[j], current[j - 1]))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> int:
    """Case-insensitive similarity as a 0-100 integer."""
    if a == b:
        return 100
    longer = max(len(a), len(b))
    if longer == 0:
        return 100
    distance = levenshtein_distance(a.lower(), b.lower())
    return round(100 * (longer - distance) / longer)


def classify_match(score: int) -> TMMatchType:
    if score >= 95:
        return TMMatchType.EXACT
    if score >= 80:
        return TMMatchType.FUZZY
    if score >= 70:
        return TMMatchType.CONTEXT
    return TMMatchType.TERMINOLOGY


def cost_savings(match_score: int, words: int) -> float:
    """Estimated translation cost avoided by reusing a match."""
    if match_score <= 0:
        return 0.0
    if match_score >= 95:
        rate = 1.0
    elif match_score >= 85:
        rate = 0.75
    elif match_score >= 75:
        rate = 0.5
    else:
        rate = 0.25
    return round(words * COST_PER_WORD * rate, 4)


@dataclass
class TMSuggestion:
    """Best memory reuse option for one segment."""
    segment_id: str
    matches: List[TMMatch] = field(default_factory=list)
    best_match: Optional[TMMatch] = None
    leverage_score: int = 0
    cost_savings: float = 0.0
    reasoning: List[str] = field(default_factory=list)


@dataclass
class TMAnalytics:
    """Memory composition of a project."""
    total_entries: int = 0
    exact_matches: int = 0
    fuzzy_matches: int = 0
    context_matches: int = 0
    terminology_matches: int = 0
    approved_entries: int = 0
    average_quality: float = 0.0
    average_confidence: float = 0.0
    leverage_rate: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.__dict__)


class TranslationMemoryIndex:
    """
    Lookup and maintenance of translation memory entries.

    All methods are synchronous store calls; async callers wrap them in
    ``asyncio.to_thread``.
    """

    def __init__(self, store: IRecordStore, settings: Optional[MatchingSettings] = None):
        self._store = store
        self._settings = settings or MatchingSettings()

    @property
    def settings(self) -> MatchingSettings:
        return self._settings

    def find_matches(
        self,
        source_text: str,
        source_language: str,
        target_language: str,
        domain_context: Optional[str] = None,
        segment_type: Optional[str] = None,
    ) -> List[TMMatch]:
        """
        Return ranked candidates for ``source_text``.

        Entries are scoped to the language pair and, when given, to the
        therapeutic area. Rejected entries are never offered.
        """
        filters: Dict[str, Any] = {
            "source_language": source_language,
            "target_language": target_language,
        }
        if domain_context:
            filters["therapeutic_area"] = domain_context

        candidates: List[TMMatch] = []
        for entry in self._store.select(TM_TABLE, filters):
            if entry.get("human_approval_status") == ApprovalStatus.REJECTED.value:
                continue
            score = similarity(source_text, entry.get("source_text") or "")
            metadata = entry.get("tm_metadata") or {}
            if segment_type and metadata.get("segment_type") == segment_type:
                score = min(100, score + self._settings.context_boost)
            if score < self._settings.min_match_score:
                continue
            candidates.append(self._to_match(entry, score))

        candidates.sort(key=lambda m: m.rank, reverse=True)
        return candidates[: self._settings.max_candidates]

    @staticmethod
    def _to_match(entry: Mapping[str, Any], score: int) -> TMMatch:
        last_used = entry.get("last_used_at")
        return TMMatch(
            id=str(entry["id"]),
            source_text=entry.get("source_text") or "",
            target_text=entry.get("target_text") or "",
            match_score=score,
            match_type=classify_match(score),
            quality_score=entry.get("quality_score") or 0,
            confidence_level=entry.get("confidence_level") or 0,
            therapeutic_area=entry.get("therapeutic_area"),
            usage_count=entry.get("usage_count") or 0,
            last_used_at=last_used.isoformat() if isinstance(last_used, datetime) else last_used,
            metadata=dict(entry.get("tm_metadata") or {}),
        )

    def suggest(
        self,
        segments: Sequence[ContentSegment],
        source_language: str,
        target_language: str,
        domain_context: Optional[str] = None,
    ) -> List[TMSuggestion]:
        """Best match, leverage score, savings and reasoning per segment."""
        suggestions = []
        for segment in segments:
            matches = self.find_matches(
                segment.source_text,
                source_language,
                target_language,
                domain_context=domain_context,
                segment_type=segment.segment_type,
            )
            best = matches[0] if matches else None
            leverage_score = best.match_score if best else 0
            words = word_count(segment.source_text)
            suggestions.append(TMSuggestion(
                segment_id=segment.id,
                matches=matches[:SUGGESTION_MATCH_LIMIT],
                best_match=best,
                leverage_score=leverage_score,
                cost_savings=cost_savings(leverage_score, words),
                reasoning=self._reasoning(best, words),
            ))
        return suggestions

    @staticmethod
    def _reasoning(best: Optional[TMMatch], words: int) -> List[str]:
        if best is None:
            return ["No TM matches found - will require new translation"]

        reasons = []
        if best.match_score >= 95:
            reasons.append("Exact or near-exact match found")
        elif best.match_score >= 85:
            reasons.append("High-quality fuzzy match available")
        elif best.match_score >= 75:
            reasons.append("Moderate match found - will need review")
        if best.quality_score >= 90:
            reasons.append("Excellent historical quality rating")
        if best.usage_count > 5:
            reasons.append(f"Frequently used translation ({best.usage_count} times)")
        if best.therapeutic_area:
            reasons.append(f"Therapeutic area match: {best.therapeutic_area}")
        if words > COMPLEX_SEGMENT_WORDS:
            reasons.append("Complex segment - careful review recommended")
        return reasons

    def analytics(self, project_id: str) -> TMAnalytics:
        """Entry counts by match type, averages and leverage rate."""
        entries = self._store.select(TM_TABLE, {"project_id": project_id})
        total = len(entries)
        if total == 0:
            return TMAnalytics()

        by_type = {t: 0 for t in TMMatchType}
        for entry in entries:
            try:
                by_type[TMMatchType(entry.get("match_type"))] += 1
            except ValueError:
                logger.warning(f"TM entry {entry.get('id')} has unknown match type {entry.get('match_type')!r}")

        exact = by_type[TMMatchType.EXACT]
        fuzzy = by_type[TMMatchType.FUZZY]
        return TMAnalytics(
            total_entries=total,
            exact_matches=exact,
            fuzzy_matches=fuzzy,
            context_matches=by_type[TMMatchType.CONTEXT],
            terminology_matches=by_type[TMMatchType.TERMINOLOGY],
            approved_entries=sum(
                1 for e in entries
                if e.get("human_approval_status") == ApprovalStatus.APPROVED.value
            ),
            average_quality=sum(e.get("quality_score") or 0 for e in entries) / total,
            average_confidence=sum(e.get("confidence_level") or 0 for e in entries) / total,
            leverage_rate=(exact + 0.7 * fuzzy) / total * 100,
        )

    def promote_existing(
        self,
        segment_id: str,
        project_id: str,
        reviewer_id: str,
    ) -> bool:
        """
        Approve and bump the usage of an existing entry.

        Returns:
            True if an entry was updated; no entry is created here.
        """
        rows = self._store.select(
            TM_TABLE, {"segment_id": segment_id, "project_id": project_id}, limit=1
        )
        if not rows:
            logger.warning(f"No TM entry for segment {segment_id} in project {project_id}; nothing to approve")
            return False

        now = datetime.utcnow()
        self._store.update(
            TM_TABLE,
            {"id": rows[0]["id"]},
            {
                "human_approval_status": ApprovalStatus.APPROVED.value,
                "reviewed_by": reviewer_id,
                "reviewed_at": now,
                "last_used_at": now,
                "usage_count": (rows[0].get("usage_count") or 0) + 1,
            },
        )
        return True

    def upsert_from_segment(
        self,
        segment: ContentSegment,
        source_language: str,
        target_language: str,
        therapeutic_area: Optional[str] = None,
        brand_id: Optional[str] = None,
    ) -> TMMatchType:
        """
        Write a memory-translated segment into the index.

        The segment's recorded match type is kept; segments translated
        before match types were recorded are stored as exact.
        """
        if not segment.translated_text:
            raise ValueError(f"Segment {segment.id} has no translation to store")

        match_type = segment.tm_match_type or TMMatchType.EXACT
        stats = segment.metadata.get("tm_stats") or {}
        self._store.upsert(
            TM_TABLE,
            {
                "segment_id": segment.id,
                "project_id": segment.project_id,
                "brand_id": brand_id,
                "source_text": segment.source_text,
                "target_text": segment.translated_text,
                "source_language": source_language,
                "target_language": target_language,
                "therapeutic_area": therapeutic_area,
                "match_type": match_type.value,
                "match_score": segment.tm_match_percentage or 0,
                "quality_score": segment.confidence,
                "confidence_level": segment.confidence,
                "exact_match_words": stats.get("exact_words", 0),
                "fuzzy_match_words": stats.get("fuzzy_words", 0),
                "new_words": stats.get("new_words", 0),
                "total_words": stats.get("total_words", word_count(segment.source_text)),
                "leverage_percentage": stats.get("leverage_percentage", segment.tm_match_percentage or 0),
                "last_used_at": datetime.utcnow(),
                "tm_metadata": {"segment_type": segment.segment_type},
            },
            conflict_key=TM_CONFLICT_KEY,
        )
        return match_type
