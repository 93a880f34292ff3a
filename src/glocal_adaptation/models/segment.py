"""Content segment model for the Glocal Adaptation Engine."""

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

from .enums import RiskLevel, TMMatchType, TranslationMethod, TranslationStatus


def _enum_or_none(enum_cls, value):
    if value is None or isinstance(value, enum_cls):
        return value
    return enum_cls(value)


@dataclass
class ContentSegment:
    """
    One unit of translatable text within an adaptation project.

    ``source_text`` is fixed once the asset has been segmented. The
    translated text, status and method change together through
    ``apply_translation``, ``apply_manual_edit`` and ``mark_failed`` so that
    the segment never reaches an inconsistent combination.
    """
    id: str
    project_id: str
    source_text: str
    segment_index: int = 0
    segment_type: str = "body"
    segment_name: str = ""
    translated_text: Optional[str] = None
    complexity_level: RiskLevel = RiskLevel.MEDIUM
    cultural_sensitivity_level: RiskLevel = RiskLevel.MEDIUM
    regulatory_risk_level: RiskLevel = RiskLevel.MEDIUM
    translation_status: TranslationStatus = TranslationStatus.PENDING
    translation_method: Optional[TranslationMethod] = None
    tm_match_type: Optional[TMMatchType] = None
    confidence: int = 0
    tm_match_percentage: Optional[int] = None
    metadata: dict = field(default_factory=dict)

    def __post_init__(self):
        if self.metadata is None:
            self.metadata = {}
        if not self.segment_name:
            self.segment_name = f"Segment {str(self.id)[:8]}"
        self.complexity_level = _enum_or_none(RiskLevel, self.complexity_level)
        self.cultural_sensitivity_level = _enum_or_none(RiskLevel, self.cultural_sensitivity_level)
        self.regulatory_risk_level = _enum_or_none(RiskLevel, self.regulatory_risk_level)
        self.translation_status = _enum_or_none(TranslationStatus, self.translation_status)
        self.translation_method = _enum_or_none(TranslationMethod, self.translation_method)
        self.tm_match_type = _enum_or_none(TMMatchType, self.tm_match_type)
        self.validate()

    def validate(self) -> None:
        """
        Check the translated-text / status / method invariants.

        Raises:
            ValueError: If the combination is inconsistent.
        """
        if self.translated_text is not None and self.translation_status != TranslationStatus.COMPLETE:
            raise ValueError(
                f"Segment {self.id}: translated_text requires status 'complete', "
                f"got '{self.translation_status.value}'"
            )
        if self.translation_method is not None and self.translated_text is None:
            raise ValueError(
                f"Segment {self.id}: translation_method set without translated_text"
            )
        if not 0 <= self.confidence <= 100:
            raise ValueError(f"Segment {self.id}: confidence must be within 0-100")

    @property
    def is_translated(self) -> bool:
        return self.translation_status == TranslationStatus.COMPLETE

    def mark_processing(self) -> None:
        """Flag an untranslated segment as being worked on."""
        if self.translated_text is None:
            self.translation_status = TranslationStatus.PROCESSING

    def apply_translation(
        self,
        translated_text: str,
        method: TranslationMethod,
        confidence: int,
        tm_match_percentage: Optional[int] = None,
        tm_match_type: Optional[TMMatchType] = None,
    ) -> None:
        """Record a completed translation."""
        if not translated_text:
            raise ValueError("translated_text must be non-empty")
        self.translated_text = translated_text
        self.translation_status = TranslationStatus.COMPLETE
        self.translation_method = method
        self.confidence = max(0, min(100, int(confidence)))
        self.tm_match_percentage = tm_match_percentage
        self.tm_match_type = tm_match_type

    def apply_manual_edit(self, translated_text: str) -> None:
        """Record a user-edited translation."""
        self.apply_translation(
            translated_text,
            method=TranslationMethod.MANUAL,
            confidence=100,
            tm_match_percentage=self.tm_match_percentage,
            tm_match_type=self.tm_match_type,
        )

    def mark_failed(self) -> None:
        """
        Record a terminal translation failure.

        Only valid while no translation exists; a completed translation is
        never downgraded by a later failed attempt.
        """
        if self.translated_text is None:
            self.translation_status = TranslationStatus.FAILED
            self.translation_method = None

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a plain dictionary (store row / snapshot form)."""
        return {
            "id": self.id,
            "project_id": self.project_id,
            "segment_index": self.segment_index,
            "segment_type": self.segment_type,
            "segment_name": self.segment_name,
            "source_text": self.source_text,
            "translated_text": self.translated_text,
            "complexity_level": self.complexity_level.value,
            "cultural_sensitivity_level": self.cultural_sensitivity_level.value,
            "regulatory_risk_level": self.regulatory_risk_level.value,
            "translation_status": self.translation_status.value,
            "translation_method": self.translation_method.value if self.translation_method else None,
            "tm_match_type": self.tm_match_type.value if self.tm_match_type else None,
            "confidence": self.confidence,
            "tm_match_percentage": self.tm_match_percentage,
            "segment_metadata": dict(self.metadata),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ContentSegment":
        """Build a segment from a store row or snapshot entry."""
        return cls(
            id=str(data["id"]),
            project_id=str(data["project_id"]),
            source_text=data["source_text"],
            segment_index=data.get("segment_index") or 0,
            segment_type=data.get("segment_type") or "body",
            segment_name=data.get("segment_name") or "",
            translated_text=data.get("translated_text"),
            complexity_level=data.get("complexity_level") or RiskLevel.MEDIUM,
            cultural_sensitivity_level=data.get("cultural_sensitivity_level") or RiskLevel.MEDIUM,
            regulatory_risk_level=data.get("regulatory_risk_level") or RiskLevel.MEDIUM,
            translation_status=data.get("translation_status") or TranslationStatus.PENDING,
            translation_method=data.get("translation_method"),
            tm_match_type=data.get("tm_match_type"),
            confidence=data.get("confidence") or 0,
            tm_match_percentage=data.get("tm_match_percentage"),
            metadata=dict(data.get("segment_metadata") or data.get("metadata") or {}),
        )
