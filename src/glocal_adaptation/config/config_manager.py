"""Configuration Manager implementation for the Glocal Adaptation Engine.

This module loads, validates and exposes the engine settings (autosave,
translation service, memory matching) and the inert regulatory reference
templates.
"""

import json
import os
from dataclasses import asdict, fields
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .models import (
    MIN_INTER_CALL_DELAY_SECONDS,
    AutosaveSettings,
    ConfigurationError,
    EngineConfiguration,
    MatchingSettings,
    RegulatoryTemplate,
    TranslationSettings,
    ValidationResult,
)


ENGINE_FILE = "engine.json"
TEMPLATES_FILE = "regulatory_templates.json"


class ConfigurationManager:
    """
    Manager for engine configuration.

    Handles loading, validation, and access to engine settings and
    regulatory templates.
    """

    def __init__(self, config_dir: Optional[Union[str, Path]] = None):
        """
        Initialize the configuration manager.

        Args:
            config_dir: Optional directory path for configuration files.
        """
        self._config_dir = Path(config_dir) if config_dir else None
        self._configuration = EngineConfiguration()
        self._is_loaded = False

    @property
    def configuration(self) -> EngineConfiguration:
        """Get the current engine configuration."""
        return self._configuration

    @property
    def is_loaded(self) -> bool:
        """Check if configuration has been loaded."""
        return self._is_loaded

    # =========================================================================
    # Engine settings
    # =========================================================================

    def load_engine_settings(
        self, source: Union[str, Path, Dict[str, Any]]
    ) -> ValidationResult:
        """
        Load and validate the autosave, translation and matching sections.

        Sections missing from the source keep their defaults.

        Raises:
            ConfigurationError: If any section is invalid; nothing is applied.
        """
        raw_data = self._parse_source(source)
        if not isinstance(raw_data, dict):
            raise ConfigurationError("Engine settings must be a JSON object")

        result = ValidationResult(is_valid=True)
        for name in raw_data:
            if name not in ("autosave", "translation", "matching", "version"):
                result.add_warning(f"Unknown configuration section ignored: {name}")

        autosave_result, autosave = self._build_section(
            "autosave", AutosaveSettings, raw_data.get("autosave") or {}
        )
        translation_result, translation = self._build_section(
            "translation", TranslationSettings, raw_data.get("translation") or {}
        )
        matching_result, matching = self._build_section(
            "matching", MatchingSettings, raw_data.get("matching") or {}
        )
        result = result.merge(autosave_result).merge(translation_result).merge(matching_result)

        if autosave is not None:
            result = result.merge(self._validate_autosave(autosave))
        if translation is not None:
            result = result.merge(self._validate_translation(translation))
        if matching is not None:
            result = result.merge(self._validate_matching(matching))

        if not result.is_valid:
            raise ConfigurationError(
                "Engine settings validation failed",
                validation_result=result
            )

        self._configuration.autosave = autosave
        self._configuration.translation = translation
        self._configuration.matching = matching
        self._configuration.version = int(raw_data.get("version", self._configuration.version))
        self._is_loaded = True
        return result

    def _build_section(self, name: str, section_cls, data: Dict[str, Any]):
        result = ValidationResult(is_valid=True)
        if not isinstance(data, dict):
            result.add_error(f"Section '{name}' must be an object")
            return result, None

        allowed = {f.name: f for f in fields(section_cls)}
        values = {}
        for key, value in data.items():
            if key not in allowed:
                result.add_warning(f"Unknown setting '{name}.{key}' ignored")
                continue
            default = allowed[key].default
            if isinstance(default, bool):
                if not isinstance(value, bool):
                    result.add_error(f"'{name}.{key}' must be a boolean")
                    continue
            elif isinstance(default, (int, float)):
                if isinstance(value, bool) or not isinstance(value, (int, float)):
                    result.add_error(f"'{name}.{key}' must be a number")
                    continue
                if isinstance(default, int) and not isinstance(default, bool):
                    if float(value) != int(value):
                        result.add_error(f"'{name}.{key}' must be an integer")
                        continue
                    value = int(value)
            elif value is not None and not isinstance(value, str):
                result.add_error(f"'{name}.{key}' must be a string")
                continue
            values[key] = value

        if not result.is_valid:
            return result, None
        return result, section_cls(**values)

    def _validate_autosave(self, settings: AutosaveSettings) -> ValidationResult:
        result = ValidationResult(is_valid=True)
        if settings.debounce_seconds <= 0:
            result.add_error("'autosave.debounce_seconds' must be positive")
        if settings.max_attempts < 1:
            result.add_error("'autosave.max_attempts' must be at least 1")
        if settings.backoff_unit_seconds < 0:
            result.add_error("'autosave.backoff_unit_seconds' must not be negative")
        return result

    def _validate_translation(self, settings: TranslationSettings) -> ValidationResult:
        result = ValidationResult(is_valid=True)
        if settings.inter_call_delay_seconds < MIN_INTER_CALL_DELAY_SECONDS:
            result.add_error(
                f"'translation.inter_call_delay_seconds' must be at least "
                f"{MIN_INTER_CALL_DELAY_SECONDS}"
            )
        if settings.timeout_seconds <= 0:
            result.add_error("'translation.timeout_seconds' must be positive")
        if not 0 <= settings.tm_method_threshold <= 100:
            result.add_error("'translation.tm_method_threshold' must be within 0-100")
        if settings.service_url and not settings.service_url.startswith(("http://", "https://")):
            result.add_error("'translation.service_url' must be an http(s) URL")
        return result

    def _validate_matching(self, settings: MatchingSettings) -> ValidationResult:
        result = ValidationResult(is_valid=True)
        for name in ("exact_threshold", "fuzzy_threshold", "min_match_score", "context_boost"):
            value = getattr(settings, name)
            if not 0 <= value <= 100:
                result.add_error(f"'matching.{name}' must be within 0-100")
        if settings.fuzzy_threshold > settings.exact_threshold:
            result.add_error("'matching.fuzzy_threshold' must not exceed 'matching.exact_threshold'")
        if settings.max_candidates < 1:
            result.add_error("'matching.max_candidates' must be at least 1")
        return result

    # =========================================================================
    # Regulatory templates
    # =========================================================================

    def load_regulatory_templates(
        self,
        source: Union[str, Path, Dict[str, Any], List[Dict[str, Any]]]
    ) -> ValidationResult:
        """
        Load and validate regulatory reference templates.

        Accepts a list of template objects or ``{"templates": [...]}``.

        Raises:
            ConfigurationError: If validation fails.
        """
        raw_data = self._parse_source(source)

        if isinstance(raw_data, dict):
            if "templates" in raw_data:
                templates_data = raw_data["templates"]
            else:
                templates_data = [raw_data]
        else:
            templates_data = raw_data

        result = ValidationResult(is_valid=True)
        templates: List[RegulatoryTemplate] = []

        for i, template_dict in enumerate(templates_data):
            template_result, template = self._validate_regulatory_template(
                template_dict, index=i
            )
            result = result.merge(template_result)
            if template:
                templates.append(template)

        ids = [t.id for t in templates]
        duplicates = [id for id in ids if ids.count(id) > 1]
        if duplicates:
            result.add_error(
                f"Duplicate regulatory template IDs found: {set(duplicates)}"
            )

        if not result.is_valid:
            raise ConfigurationError(
                "Regulatory template validation failed",
                validation_result=result
            )

        self._configuration.regulatory_templates = templates
        self._is_loaded = True
        return result

    def _validate_regulatory_template(
        self,
        data: Dict[str, Any],
        index: int = 0
    ) -> tuple[ValidationResult, Optional[RegulatoryTemplate]]:
        result = ValidationResult(is_valid=True)
        prefix = f"Regulatory template [{index}]"

        if not isinstance(data, dict):
            result.add_error(f"{prefix}: must be an object")
            return result, None

        for required in ("id", "market", "regulatory_body"):
            if not data.get(required):
                result.add_error(f"{prefix}: missing required field '{required}'")

        requirements = data.get("requirements", [])
        if not isinstance(requirements, list):
            result.add_error(f"{prefix}: 'requirements' must be a list")
        elif not requirements:
            result.add_warning(f"{prefix}: no requirements listed")

        if not result.is_valid:
            return result, None

        return result, RegulatoryTemplate(
            id=str(data["id"]),
            market=str(data["market"]),
            regulatory_body=str(data["regulatory_body"]),
            requirements=[str(r) for r in requirements],
            therapeutic_area=data.get("therapeutic_area"),
            metadata=data.get("metadata", {}),
        )

    def get_templates_for_market(self, market: str) -> List[RegulatoryTemplate]:
        """Get regulatory templates for a market."""
        return self._configuration.templates_for_market(market)

    # =========================================================================
    # Environment and files
    # =========================================================================

    def apply_environment(self, environ: Optional[Dict[str, str]] = None) -> None:
        """Override connection settings from GLOCAL_* environment variables."""
        environ = os.environ if environ is None else environ
        translation = self._configuration.translation
        if environ.get("GLOCAL_TRANSLATION_URL"):
            translation.service_url = environ["GLOCAL_TRANSLATION_URL"]
        if environ.get("GLOCAL_TRANSLATION_API_KEY"):
            translation.api_key = environ["GLOCAL_TRANSLATION_API_KEY"]

    def _parse_source(
        self,
        source: Union[str, Path, Dict[str, Any], List[Dict[str, Any]]]
    ) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
        """Parse configuration source to raw data."""
        if isinstance(source, (str, Path)):
            path = Path(source)
            if not path.exists():
                raise ConfigurationError(f"Configuration file not found: {path}")

            try:
                with open(path, "r", encoding="utf-8") as f:
                    return json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigurationError(f"Invalid JSON in {path}: {e}") from e

        return source

    def load_from_directory(self, config_dir: Union[str, Path]) -> ValidationResult:
        """
        Load all configuration files from a directory.

        Expects files named:
        - engine.json
        - regulatory_templates.json

        Returns:
            Combined ValidationResult for all loaded configurations.
        """
        config_dir = Path(config_dir)
        result = ValidationResult(is_valid=True)

        engine_file = config_dir / ENGINE_FILE
        if engine_file.exists():
            try:
                result = result.merge(self.load_engine_settings(engine_file))
            except ConfigurationError as e:
                result.add_error(f"Engine settings loading failed: {e.message}")
                if e.validation_result:
                    result = result.merge(e.validation_result)

        templates_file = config_dir / TEMPLATES_FILE
        if templates_file.exists():
            try:
                result = result.merge(self.load_regulatory_templates(templates_file))
            except ConfigurationError as e:
                result.add_error(f"Regulatory templates loading failed: {e.message}")
                if e.validation_result:
                    result = result.merge(e.validation_result)

        self._config_dir = config_dir
        return result

    def save_to_directory(self, config_dir: Optional[Union[str, Path]] = None) -> None:
        """Write the current configuration as engine.json and regulatory_templates.json."""
        target = Path(config_dir) if config_dir else self._config_dir
        if target is None:
            raise ConfigurationError("No configuration directory specified")
        target.mkdir(parents=True, exist_ok=True)

        data = self.to_dict()
        templates = data.pop("regulatory_templates")
        with open(target / ENGINE_FILE, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        with open(target / TEMPLATES_FILE, "w", encoding="utf-8") as f:
            json.dump({"templates": templates}, f, indent=2, ensure_ascii=False)

    def reset(self) -> None:
        """Reset configuration to defaults."""
        self._configuration = EngineConfiguration()
        self._is_loaded = False

    def to_dict(self) -> Dict[str, Any]:
        """Export current configuration as a dictionary."""
        config = self._configuration
        translation = asdict(config.translation)
        translation["api_key"] = None
        return {
            "version": config.version,
            "autosave": asdict(config.autosave),
            "translation": translation,
            "matching": asdict(config.matching),
            "regulatory_templates": [t.to_dict() for t in config.regulatory_templates],
        }
