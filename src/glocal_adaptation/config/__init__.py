"""Configuration module for the Glocal Adaptation Engine."""

from .config_manager import ConfigurationManager
from .models import (
    AutosaveSettings,
    ConfigurationError,
    EngineConfiguration,
    MatchingSettings,
    RegulatoryTemplate,
    TranslationSettings,
    ValidationResult,
)

__all__ = [
    "ConfigurationManager",
    "AutosaveSettings",
    "ConfigurationError",
    "EngineConfiguration",
    "MatchingSettings",
    "RegulatoryTemplate",
    "TranslationSettings",
    "ValidationResult",
]
