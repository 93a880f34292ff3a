"""Translation memory and leverage engine."""

from .client import HttpTranslationService
from .engine import TMLeverageEngine, enforce_word_conservation
from .memory_first import MemoryFirstTranslator, build_word_breakdown
from .memory_index import (
    TMAnalytics,
    TMSuggestion,
    TranslationMemoryIndex,
    classify_match,
    cost_savings,
    levenshtein_distance,
    similarity,
)

__all__ = [
    "HttpTranslationService",
    "TMLeverageEngine",
    "enforce_word_conservation",
    "MemoryFirstTranslator",
    "build_word_breakdown",
    "TMAnalytics",
    "TMSuggestion",
    "TranslationMemoryIndex",
    "classify_match",
    "cost_savings",
    "levenshtein_distance",
    "similarity",
]
