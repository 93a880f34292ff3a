"""Data models and enums for the Glocal Adaptation Engine."""

from .enums import (
    ApprovalStatus,
    PhaseStatus,
    RiskLevel,
    TMMatchType,
    TranslationMethod,
    TranslationStatus,
    WordMatchType,
)
from .segment import ContentSegment
from .leverage import (
    AIScores,
    AnalysisDetail,
    LeverageResult,
    TMMatch,
    TMStats,
    WordMatch,
    leverage_percentage,
    word_count,
)
from .project import (
    TOTAL_PHASES,
    AdaptationProject,
    ClosingReport,
    ContextCaptureResult,
    CulturalIntelligenceResult,
    DAMHandoffResult,
    IntegrationResult,
    PhaseResult,
    QualityIntelligenceResult,
    RegulatoryComplianceResult,
    TMTranslationResult,
    WorkflowState,
    coerce_phase_result,
    phase_result_from_dict,
)

__all__ = [
    # Enums
    "ApprovalStatus",
    "PhaseStatus",
    "RiskLevel",
    "TMMatchType",
    "TranslationMethod",
    "TranslationStatus",
    "WordMatchType",
    # Segment
    "ContentSegment",
    # Leverage models
    "AIScores",
    "AnalysisDetail",
    "LeverageResult",
    "TMMatch",
    "TMStats",
    "WordMatch",
    "leverage_percentage",
    "word_count",
    # Project and workflow models
    "TOTAL_PHASES",
    "AdaptationProject",
    "ClosingReport",
    "ContextCaptureResult",
    "CulturalIntelligenceResult",
    "DAMHandoffResult",
    "IntegrationResult",
    "PhaseResult",
    "QualityIntelligenceResult",
    "RegulatoryComplianceResult",
    "TMTranslationResult",
    "WorkflowState",
    "coerce_phase_result",
    "phase_result_from_dict",
]
