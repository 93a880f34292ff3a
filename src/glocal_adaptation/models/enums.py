"""Enumerations for the Glocal Adaptation Engine."""

from enum import Enum


class RiskLevel(Enum):
    """Complexity / sensitivity / risk grading set by upstream analysis."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TranslationStatus(Enum):
    """Translation lifecycle of a content segment."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETE = "complete"
    FAILED = "failed"


class TranslationMethod(Enum):
    """How the current translated text of a segment was produced."""
    TM = "tm"
    AI = "ai"
    MANUAL = "manual"


class TMMatchType(Enum):
    """Match classification of a translation memory candidate."""
    EXACT = "exact"
    FUZZY = "fuzzy"
    CONTEXT = "context"
    TERMINOLOGY = "terminology"


class WordMatchType(Enum):
    """Per-word origin in a leverage breakdown."""
    EXACT = "exact"
    FUZZY = "fuzzy"
    NEW = "new"


class ApprovalStatus(Enum):
    """Human review state of a translation memory entry."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PhaseStatus(Enum):
    """Display status of a workflow phase."""
    COMPLETED = "completed"
    CURRENT = "current"
    ACCESSIBLE = "accessible"
    LOCKED = "locked"
