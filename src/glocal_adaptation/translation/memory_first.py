"""Local translation service that reuses memory before calling a model."""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from ..config.models import MatchingSettings
from ..interfaces.translation import ITranslationService, TranslationRequest
from ..models.enums import WordMatchType
from ..models.leverage import LeverageResult, TMMatch, TMStats, WordMatch, tokenize


logger = logging.getLogger(__name__)

TextTranslator = Callable[[str, str, str, Optional[str]], Awaitable[str]]


def build_word_breakdown(
    source_text: str,
    matches: Sequence[TMMatch],
    exact_threshold: int = 95,
    fuzzy_threshold: int = 70,
) -> Tuple[List[WordMatch], List[str]]:
    """
    Attribute every source token to the memory.

    The first candidate whose source text contains the token decides the
    token's type. Fuzzy tokens add a review flag.
    """
    breakdown = []
    flags = []
    for word in tokenize(source_text):
        token = word.lower()
        match = next((m for m in matches if token in m.source_text.lower()), None)
        if match is not None and match.match_score >= exact_threshold:
            breakdown.append(WordMatch(word, WordMatchType.EXACT, match.match_score, match.source_text))
        elif match is not None and match.match_score >= fuzzy_threshold:
            breakdown.append(WordMatch(word, WordMatchType.FUZZY, match.match_score, match.source_text))
            flags.append(f'Fuzzy match for "{word}" requires review')
        else:
            breakdown.append(WordMatch(word, WordMatchType.NEW))
    return breakdown, flags


class MemoryFirstTranslator(ITranslationService):
    """
    Translation service for local use and tests.

    An exact memory candidate is reused verbatim; anything else is sent to
    the injected ``translate(text, source_language, target_language,
    domain_context)`` coroutine.
    """

    def __init__(
        self,
        text_translator: TextTranslator,
        settings: Optional[MatchingSettings] = None,
    ):
        self._translate_text = text_translator
        self._settings = settings or MatchingSettings()

    async def translate(self, request: TranslationRequest) -> LeverageResult:
        matches = request.tm_matches if request.use_tm_leverage else []
        best = max(matches, key=lambda m: m.match_score, default=None)

        if best is not None and best.match_score >= self._settings.exact_threshold:
            translated = best.target_text
            analysis = f"Reused translation memory entry {best.id} ({best.match_score}% match)."
        else:
            translated = await self._translate_text(
                request.source_text,
                request.source_language,
                request.target_language,
                request.domain_context,
            )
            analysis = "Generated translation; no exact memory match."

        breakdown, flags = build_word_breakdown(
            request.source_text,
            matches,
            exact_threshold=self._settings.exact_threshold,
            fuzzy_threshold=self._settings.fuzzy_threshold,
        )
        counts = {t: sum(1 for w in breakdown if w.match_type == t) for t in WordMatchType}
        return LeverageResult(
            translated_text=(translated or "").strip(),
            word_level_breakdown=breakdown,
            tm_stats=TMStats.from_counts(
                counts[WordMatchType.EXACT],
                counts[WordMatchType.FUZZY],
                counts[WordMatchType.NEW],
            ),
            review_flags=flags,
            full_analysis=analysis,
            tm_matches=list(matches),
        )

    async def analyze(
        self,
        source_text: str,
        translated_text: str,
        context: Optional[Mapping[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        source_words = len(tokenize(source_text))
        target_words = len(tokenize(translated_text))
        return {
            "analysis": {
                "source_words": source_words,
                "target_words": target_words,
                "length_ratio": round(target_words / source_words, 2) if source_words else 0,
                "context": dict(context or {}),
            }
        }
