"""Data models for configuration management."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


MIN_INTER_CALL_DELAY_SECONDS = 0.5


@dataclass
class AutosaveSettings:
    """Debounce and retry policy of the autosave controller."""
    debounce_seconds: float = 3.0
    max_attempts: int = 3
    backoff_unit_seconds: float = 1.0


@dataclass
class TranslationSettings:
    """
    Translation service settings.

    ``inter_call_delay_seconds`` spaces batch calls to stay under the hosted
    function's rate limit.
    """
    service_url: Optional[str] = None
    api_key: Optional[str] = None
    timeout_seconds: float = 60.0
    inter_call_delay_seconds: float = MIN_INTER_CALL_DELAY_SECONDS
    use_tm_leverage: bool = True
    tm_method_threshold: int = 50


@dataclass
class MatchingSettings:
    """Translation memory lookup thresholds (0-100 scores)."""
    exact_threshold: int = 95
    fuzzy_threshold: int = 70
    min_match_score: int = 70
    max_candidates: int = 10
    context_boost: int = 10


@dataclass
class RegulatoryTemplate:
    """
    Per-market regulatory reference entry.

    Consumed as inert data; the engine never interprets ``requirements``.
    """
    id: str
    market: str
    regulatory_body: str
    requirements: List[str] = field(default_factory=list)
    therapeutic_area: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "market": self.market,
            "regulatory_body": self.regulatory_body,
            "requirements": list(self.requirements),
            "therapeutic_area": self.therapeutic_area,
            "metadata": self.metadata,
        }


@dataclass
class ValidationResult:
    """Result of configuration validation."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, message: str) -> None:
        """Add an error message."""
        self.errors.append(message)
        self.is_valid = False

    def add_warning(self, message: str) -> None:
        """Add a warning message."""
        self.warnings.append(message)

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        """Merge another validation result into this one."""
        return ValidationResult(
            is_valid=self.is_valid and other.is_valid,
            errors=self.errors + other.errors,
            warnings=self.warnings + other.warnings
        )


class ConfigurationError(Exception):
    """Exception raised for configuration errors."""

    def __init__(self, message: str, validation_result: Optional[ValidationResult] = None):
        super().__init__(message)
        self.message = message
        self.validation_result = validation_result


@dataclass
class EngineConfiguration:
    """Complete engine configuration."""
    autosave: AutosaveSettings = field(default_factory=AutosaveSettings)
    translation: TranslationSettings = field(default_factory=TranslationSettings)
    matching: MatchingSettings = field(default_factory=MatchingSettings)
    regulatory_templates: List[RegulatoryTemplate] = field(default_factory=list)
    version: int = 1

    def templates_for_market(self, market: str) -> List[RegulatoryTemplate]:
        return [t for t in self.regulatory_templates if t.market == market]
