"""Unit tests for the Configuration Manager."""

import json
from pathlib import Path

import pytest

from glocal_adaptation.config import (
    ConfigurationError,
    ConfigurationManager,
    ValidationResult,
)


class TestEngineSettings:
    """Tests for autosave, translation and matching settings."""

    def test_defaults(self):
        """Test the built-in defaults before anything is loaded."""
        manager = ConfigurationManager()
        config = manager.configuration

        assert not manager.is_loaded
        assert config.autosave.debounce_seconds == 3.0
        assert config.autosave.max_attempts == 3
        assert config.translation.inter_call_delay_seconds == 0.5
        assert config.translation.tm_method_threshold == 50
        assert config.matching.exact_threshold == 95

    def test_load_from_dict(self):
        """Test loading partial settings; missing sections keep defaults."""
        manager = ConfigurationManager()

        result = manager.load_engine_settings({
            "autosave": {"debounce_seconds": 5, "max_attempts": 4},
            "translation": {"service_url": "https://fn.example.com/functions/v1"},
        })

        assert result.is_valid
        assert manager.is_loaded
        assert manager.configuration.autosave.debounce_seconds == 5
        assert manager.configuration.autosave.max_attempts == 4
        assert manager.configuration.translation.service_url == "https://fn.example.com/functions/v1"
        assert manager.configuration.matching.fuzzy_threshold == 70

    def test_unknown_keys_are_warnings(self):
        manager = ConfigurationManager()

        result = manager.load_engine_settings({
            "autosave": {"debounce_seconds": 2, "colour": "blue"},
            "telemetry": {},
        })

        assert result.is_valid
        assert any("telemetry" in w for w in result.warnings)
        assert any("autosave.colour" in w for w in result.warnings)

    def test_delay_below_rate_limit_floor_is_rejected(self):
        """Test that batch calls cannot be spaced closer than 0.5 seconds."""
        manager = ConfigurationManager()

        with pytest.raises(ConfigurationError) as exc_info:
            manager.load_engine_settings({"translation": {"inter_call_delay_seconds": 0.1}})

        errors = exc_info.value.validation_result.errors
        assert any("inter_call_delay_seconds" in e for e in errors)
        assert manager.configuration.translation.inter_call_delay_seconds == 0.5

    @pytest.mark.parametrize("section,settings", [
        ("autosave", {"max_attempts": 0}),
        ("autosave", {"max_attempts": 2.5}),
        ("autosave", {"debounce_seconds": "soon"}),
        ("translation", {"use_tm_leverage": "yes"}),
        ("translation", {"service_url": "ftp://example.com"}),
        ("matching", {"exact_threshold": 60, "fuzzy_threshold": 80}),
        ("matching", {"max_candidates": 0}),
    ])
    def test_invalid_values(self, section, settings):
        manager = ConfigurationManager()
        with pytest.raises(ConfigurationError):
            manager.load_engine_settings({section: settings})

    def test_invalid_load_applies_nothing(self):
        """Test that one bad section leaves every section at its previous value."""
        manager = ConfigurationManager()

        with pytest.raises(ConfigurationError):
            manager.load_engine_settings({
                "autosave": {"debounce_seconds": 10},
                "matching": {"min_match_score": 140},
            })

        assert manager.configuration.autosave.debounce_seconds == 3.0

    def test_environment_overrides_connection(self):
        manager = ConfigurationManager()
        manager.apply_environment({
            "GLOCAL_TRANSLATION_URL": "https://env.example.com",
            "GLOCAL_TRANSLATION_API_KEY": "secret",
        })

        assert manager.configuration.translation.service_url == "https://env.example.com"
        assert manager.configuration.translation.api_key == "secret"
        assert manager.to_dict()["translation"]["api_key"] is None


class TestRegulatoryTemplates:
    """Tests for regulatory reference templates."""

    TEMPLATES = {
        "templates": [
            {
                "id": "de-hwg",
                "market": "DE",
                "regulatory_body": "BfArM",
                "requirements": ["Pflichtangaben", "No comparative claims"],
            },
            {
                "id": "us-fda",
                "market": "US",
                "regulatory_body": "FDA",
                "requirements": ["Fair balance"],
            },
        ]
    }

    def test_load_templates(self):
        manager = ConfigurationManager()
        result = manager.load_regulatory_templates(self.TEMPLATES)

        assert result.is_valid
        de = manager.get_templates_for_market("DE")
        assert [t.regulatory_body for t in de] == ["BfArM"]
        assert manager.get_templates_for_market("JP") == []

    def test_missing_fields(self):
        """Test validation fails for a template without a market."""
        manager = ConfigurationManager()

        with pytest.raises(ConfigurationError) as exc_info:
            manager.load_regulatory_templates([{"id": "x", "regulatory_body": "EMA"}])

        assert any("market" in e for e in exc_info.value.validation_result.errors)

    def test_duplicate_ids(self):
        manager = ConfigurationManager()
        duplicate = [dict(self.TEMPLATES["templates"][0]), dict(self.TEMPLATES["templates"][0])]

        with pytest.raises(ConfigurationError):
            manager.load_regulatory_templates(duplicate)

    def test_empty_requirements_is_warning(self):
        manager = ConfigurationManager()
        result = manager.load_regulatory_templates(
            [{"id": "jp", "market": "JP", "regulatory_body": "PMDA"}]
        )
        assert result.is_valid
        assert result.warnings


class TestFiles:
    """Tests for directory loading and saving."""

    def test_save_and_load_directory(self, tmp_path):
        manager = ConfigurationManager()
        manager.load_engine_settings({"autosave": {"debounce_seconds": 4}})
        manager.load_regulatory_templates(TestRegulatoryTemplates.TEMPLATES)
        manager.save_to_directory(tmp_path)

        loaded = ConfigurationManager()
        result = loaded.load_from_directory(tmp_path)

        assert result.is_valid
        assert loaded.configuration.autosave.debounce_seconds == 4
        assert len(loaded.configuration.regulatory_templates) == 2

    def test_invalid_file_is_reported_not_raised(self, tmp_path):
        (tmp_path / "engine.json").write_text(
            json.dumps({"translation": {"inter_call_delay_seconds": 0}}), encoding="utf-8"
        )

        result = ConfigurationManager().load_from_directory(tmp_path)

        assert not result.is_valid
        assert any("Engine settings loading failed" in e for e in result.errors)

    def test_missing_file(self):
        with pytest.raises(ConfigurationError, match="not found"):
            ConfigurationManager().load_engine_settings(Path("/nonexistent/engine.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "engine.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Invalid JSON"):
            ConfigurationManager().load_engine_settings(path)

    def test_reset(self):
        manager = ConfigurationManager()
        manager.load_engine_settings({"autosave": {"max_attempts": 5}})
        manager.reset()
        assert not manager.is_loaded
        assert manager.configuration.autosave.max_attempts == 3


def test_validation_result_merge():
    first = ValidationResult(is_valid=True, warnings=["w"])
    second = ValidationResult(is_valid=True)
    second.add_error("e")

    merged = first.merge(second)

    assert not merged.is_valid
    assert merged.errors == ["e"]
    assert merged.warnings == ["w"]
