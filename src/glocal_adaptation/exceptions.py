"""Custom exceptions for the Glocal Adaptation Engine."""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass(eq=False)
class LocalizationError(Exception):
    """
    Base exception for adaptation workflow errors.

    Carries a human-readable message plus structured details so the error
    can be logged, serialized for an API response, or shown to a user.

    Attributes:
        message: Human-readable error description.
        details: Additional error details.
    """
    message: str
    details: Optional[dict] = field(default_factory=dict)

    def __post_init__(self):
        if self.details is None:
            self.details = {}
        super().__init__(str(self))

    def __str__(self) -> str:
        return self.message

    @property
    def user_message(self) -> str:
        """Plain-language description suitable for a notification."""
        return self.message

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


@dataclass(eq=False)
class TranslationUnavailable(LocalizationError):
    """
    Raised when the translation service failed or returned no text.

    Recoverable by retrying; the stored segment is never modified.
    """
    segment_id: Optional[str] = None

    @property
    def user_message(self) -> str:
        return "Translation is temporarily unavailable. Please try again."

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["segment_id"] = self.segment_id
        return data


@dataclass(eq=False)
class TranslationServiceError(LocalizationError):
    """HTTP-level failure reported by the hosted translation function."""
    status_code: Optional[int] = None

    @property
    def is_rate_limited(self) -> bool:
        return self.status_code == 429


@dataclass(eq=False)
class PhaseOutOfOrder(LocalizationError):
    """
    Raised when a phase is completed before its predecessors.

    This is a caller error: the workflow state is left unchanged.
    """
    phase_number: int = 0
    current_phase: int = 0

    @property
    def user_message(self) -> str:
        return (
            f"Phase {self.phase_number} cannot be completed yet. "
            f"Finish phase {self.current_phase} first."
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["phase_number"] = self.phase_number
        data["current_phase"] = self.current_phase
        return data


@dataclass(eq=False)
class WorkflowLocked(LocalizationError):
    """Raised when a finished project is modified."""
    project_id: Optional[str] = None

    @property
    def user_message(self) -> str:
        return "This project is complete and can no longer be edited."


@dataclass(eq=False)
class PersistenceFailure(LocalizationError):
    """
    Save attempt failed after exhausting retries.

    The in-memory data is kept; the next change or a forced save retries.
    """
    attempts: int = 0

    @property
    def user_message(self) -> str:
        return (
            "Your changes could not be saved. They are still here; "
            "use 'Save now' to retry."
        )

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["attempts"] = self.attempts
        return data


@dataclass(eq=False)
class PromotionFailure(LocalizationError):
    """Translation memory upsert or AI audit record failed during a save."""
    segment_id: Optional[str] = None
    kind: str = "tm"
