"""Translation memory leverage models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from .enums import TMMatchType, WordMatchType


def tokenize(text: Optional[str]) -> List[str]:
    """Split text on whitespace, dropping empty tokens."""
    return (text or "").split()


def word_count(text: Optional[str]) -> int:
    """Whitespace-token count used for every leverage computation."""
    return len(tokenize(text))


def leverage_percentage(exact_words: int, fuzzy_words: int, total_words: int) -> int:
    """Share of words satisfied by memory, as a rounded integer percent."""
    if total_words <= 0:
        return 0
    return round(100 * (exact_words + fuzzy_words) / total_words)


def _normalize_score(value: Any) -> int:
    """
    Scores arrive either as 0-1 fractions or 0-100 percentages.

    Values below 1 are fractions, as is a float ``1.0``. An integer ``1``
    is a percentage.
    """
    try:
        score = float(value or 0)
    except (TypeError, ValueError):
        return 0
    if 0 < score < 1 or (isinstance(value, float) and score == 1):
        score *= 100
    return max(0, min(100, round(score)))


@dataclass
class TMMatch:
    """
    Translation memory candidate for a source text.

    Produced by the TM index lookup; ``match_score`` already includes any
    context boost.
    """
    id: str
    source_text: str
    target_text: str
    match_score: int
    match_type: TMMatchType
    quality_score: int = 0
    confidence_level: int = 0
    therapeutic_area: Optional[str] = None
    usage_count: int = 0
    last_used_at: Optional[str] = None
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        if self.metadata is None:
            self.metadata = {}
        if not isinstance(self.match_type, TMMatchType):
            self.match_type = TMMatchType(self.match_type)

    @property
    def rank(self) -> float:
        return self.match_score * 0.6 + self.quality_score * 0.4

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "source_text": self.source_text,
            "target_text": self.target_text,
            "match_score": self.match_score,
            "match_type": self.match_type.value,
            "quality_score": self.quality_score,
            "confidence_level": self.confidence_level,
            "therapeutic_area": self.therapeutic_area,
            "usage_count": self.usage_count,
            "last_used_at": self.last_used_at,
        }


@dataclass
class WordMatch:
    """Origin of one source word in a leverage breakdown."""
    word: str
    match_type: WordMatchType
    match_score: int = 0
    tm_source_text: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "word": self.word,
            "match_type": self.match_type.value,
            "match_score": self.match_score,
            "tm_source_text": self.tm_source_text,
        }

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "WordMatch":
        # The hosted function names the field "type"
        raw_type = data.get("matchType") or data.get("match_type") or data.get("type") or "new"
        try:
            match_type = WordMatchType(raw_type)
        except ValueError:
            match_type = WordMatchType.NEW
        return cls(
            word=str(data.get("word", "")),
            match_type=match_type,
            match_score=_normalize_score(data.get("matchScore", data.get("match_score"))),
            tm_source_text=data.get("tmSourceText", data.get("tm_source_text")),
        )


@dataclass
class TMStats:
    """Word-level leverage totals for one segment."""
    exact_words: int = 0
    fuzzy_words: int = 0
    new_words: int = 0
    total_words: int = 0
    leverage_percentage: int = 0

    @classmethod
    def from_counts(cls, exact_words: int, fuzzy_words: int, new_words: int) -> "TMStats":
        total = exact_words + fuzzy_words + new_words
        return cls(
            exact_words=exact_words,
            fuzzy_words=fuzzy_words,
            new_words=new_words,
            total_words=total,
            leverage_percentage=leverage_percentage(exact_words, fuzzy_words, total),
        )

    @classmethod
    def all_new(cls, total_words: int) -> "TMStats":
        return cls.from_counts(0, 0, total_words)

    @property
    def is_conserved(self) -> bool:
        return self.exact_words + self.fuzzy_words + self.new_words == self.total_words

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exact_words": self.exact_words,
            "fuzzy_words": self.fuzzy_words,
            "new_words": self.new_words,
            "total_words": self.total_words,
            "leverage_percentage": self.leverage_percentage,
        }

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "TMStats":
        def pick(camel, snake):
            value = data.get(camel, data.get(snake, 0))
            try:
                return int(value or 0)
            except (TypeError, ValueError):
                return 0

        return cls(
            exact_words=pick("exactWords", "exact_words"),
            fuzzy_words=pick("fuzzyWords", "fuzzy_words"),
            new_words=pick("newWords", "new_words"),
            total_words=pick("totalWords", "total_words"),
            leverage_percentage=pick("leveragePercentage", "leverage_percentage"),
        )


@dataclass
class AIScores:
    """Quality scores reported by the translation service (0-100)."""
    medical: int = 0
    brand: int = 0
    cultural: int = 0
    reasoning: List[str] = field(default_factory=list)

    def __post_init__(self):
        if self.reasoning is None:
            self.reasoning = []

    @property
    def has_scores(self) -> bool:
        return any((self.medical, self.brand, self.cultural))

    @property
    def mean(self) -> int:
        return round((self.medical + self.brand + self.cultural) / 3)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "medical": self.medical,
            "brand": self.brand,
            "cultural": self.cultural,
            "reasoning": list(self.reasoning),
        }

    @classmethod
    def from_payload(cls, data: Optional[Mapping[str, Any]]) -> "AIScores":
        data = data or {}
        return cls(
            medical=_normalize_score(data.get("medical")),
            brand=_normalize_score(data.get("brand")),
            cultural=_normalize_score(data.get("cultural")),
            reasoning=[str(r) for r in data.get("reasoning") or []],
        )


@dataclass
class LeverageResult:
    """
    Outcome of one translation attempt for a segment.

    Invariant (enforced by the leverage engine, not here): the TM stats
    conserve words and match the source text's whitespace-token count.
    """
    translated_text: str
    word_level_breakdown: List[WordMatch] = field(default_factory=list)
    tm_stats: TMStats = field(default_factory=TMStats)
    ai_scores: AIScores = field(default_factory=AIScores)
    review_flags: List[str] = field(default_factory=list)
    full_analysis: str = ""
    tm_matches: List[TMMatch] = field(default_factory=list)

    def __post_init__(self):
        if self.word_level_breakdown is None:
            self.word_level_breakdown = []
        if self.review_flags is None:
            self.review_flags = []
        if self.tm_matches is None:
            self.tm_matches = []

    @property
    def dominant_match_type(self) -> Optional[TMMatchType]:
        """Memory match type that contributed most words, if any."""
        if self.tm_stats.exact_words == 0 and self.tm_stats.fuzzy_words == 0:
            return None
        if self.tm_stats.exact_words >= self.tm_stats.fuzzy_words:
            return TMMatchType.EXACT
        return TMMatchType.FUZZY

    def to_dict(self) -> Dict[str, Any]:
        return {
            "translated_text": self.translated_text,
            "word_level_breakdown": [w.to_dict() for w in self.word_level_breakdown],
            "tm_stats": self.tm_stats.to_dict(),
            "ai_scores": self.ai_scores.to_dict(),
            "review_flags": list(self.review_flags),
            "full_analysis": self.full_analysis,
            "tm_matches": [m.to_dict() for m in self.tm_matches],
        }

    @classmethod
    def from_payload(cls, data: Mapping[str, Any]) -> "LeverageResult":
        """Parse the camelCase response of the hosted translation function."""
        breakdown = data.get("wordLevelBreakdown", data.get("word_level_breakdown")) or []
        stats = data.get("tmStats", data.get("tm_stats"))
        return cls(
            translated_text=(data.get("translatedText", data.get("translated_text")) or "").strip(),
            word_level_breakdown=[WordMatch.from_payload(w) for w in breakdown],
            tm_stats=TMStats.from_payload(stats) if stats else TMStats(),
            ai_scores=AIScores.from_payload(data.get("aiScores", data.get("ai_scores"))),
            review_flags=[str(f) for f in data.get("reviewFlags", data.get("review_flags")) or []],
            full_analysis=str(data.get("fullAnalysis", data.get("full_analysis")) or ""),
        )


@dataclass
class AnalysisDetail:
    """On-demand word-level rationale for a translated segment."""
    segment_id: str
    analysis: Any
    loaded_at: datetime = field(default_factory=datetime.utcnow)
