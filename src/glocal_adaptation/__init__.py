"""
Glocal Adaptation Engine

Localization adaptation of pharmaceutical marketing content: translation
memory leverage, a seven-phase adaptation workflow and durable autosave.
"""

__version__ = "0.1.0"

from .exceptions import (
    LocalizationError,
    PersistenceFailure,
    PhaseOutOfOrder,
    PromotionFailure,
    TranslationServiceError,
    TranslationUnavailable,
    WorkflowLocked,
)
from .models import (
    AdaptationProject,
    ClosingReport,
    ContentSegment,
    LeverageResult,
    TMMatch,
    TMStats,
    TranslationMethod,
    TranslationStatus,
    WorkflowState,
)
from .interfaces import (
    AuditEvent,
    AuditEventType,
    IAuditLogger,
    IRecordStore,
    ITranslationService,
    TranslationRequest,
)
from .storage import DatabaseManager, InitializationRegistry, SqlRecordStore
from .audit import AuditLogger
from .config import (
    ConfigurationError,
    ConfigurationManager,
    EngineConfiguration,
    ValidationResult,
)
from .translation import (
    HttpTranslationService,
    MemoryFirstTranslator,
    TMLeverageEngine,
    TranslationMemoryIndex,
)
from .workflow import AdaptationWorkflow, PhaseTransition
from .autosave import AutosaveController, AutosaveStatus, SaveOutcome, WorkflowSnapshot
from .workspace import AdaptationWorkspace, WorkspaceConfig

__all__ = [
    "LocalizationError",
    "PersistenceFailure",
    "PhaseOutOfOrder",
    "PromotionFailure",
    "TranslationServiceError",
    "TranslationUnavailable",
    "WorkflowLocked",
    "AdaptationProject",
    "ClosingReport",
    "ContentSegment",
    "LeverageResult",
    "TMMatch",
    "TMStats",
    "TranslationMethod",
    "TranslationStatus",
    "WorkflowState",
    "AuditEvent",
    "AuditEventType",
    "IAuditLogger",
    "IRecordStore",
    "ITranslationService",
    "TranslationRequest",
    "DatabaseManager",
    "InitializationRegistry",
    "SqlRecordStore",
    "AuditLogger",
    "ConfigurationError",
    "ConfigurationManager",
    "EngineConfiguration",
    "ValidationResult",
    "HttpTranslationService",
    "MemoryFirstTranslator",
    "TMLeverageEngine",
    "TranslationMemoryIndex",
    "AdaptationWorkflow",
    "PhaseTransition",
    "AutosaveController",
    "AutosaveStatus",
    "SaveOutcome",
    "WorkflowSnapshot",
    "AdaptationWorkspace",
    "WorkspaceConfig",
]
