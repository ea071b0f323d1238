"""
Tests for settings models and the JSON config loader.
"""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from sitediary.domain.errors import ConfigError
from sitediary.domain.settings import AppSettings, DocumentSettings, SyncSettings
from sitediary.infrastructure.config_loader import ConfigLoader

EXAMPLE_CONFIG = Path(__file__).parents[1] / "config" / "sitediary.example.json"


class TestSettingsModels:

    def test_defaults(self):
        settings = AppSettings()
        assert settings.sync.batch_size == 200
        assert settings.export.max_concurrency == 4
        assert settings.document.page_width_mm == 210

    def test_endpoint_must_be_http(self):
        with pytest.raises(ValidationError):
            SyncSettings(endpoint="ftp://example.com")
        assert SyncSettings(endpoint="").endpoint is None

    def test_margins_must_leave_content(self):
        with pytest.raises(ValidationError):
            DocumentSettings(page_width_mm=100, margin_mm=40)

    def test_unknown_section_rejected(self):
        with pytest.raises(ValidationError):
            AppSettings.model_validate({"exports": {}})


class TestConfigLoader:

    def test_missing_default_file_gives_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert ConfigLoader().load() == AppSettings()

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            ConfigLoader(tmp_path / "nope.json").load()

    def test_partial_file_merges_with_defaults(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"sync": {"endpoint": "https://example.com/sync", "batch_size": 5}}))

        settings = ConfigLoader(path).load()

        assert settings.sync.endpoint == "https://example.com/sync"
        assert settings.sync.batch_size == 5
        assert settings.export == AppSettings().export

    def test_empty_file_hint(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("   ")
        with pytest.raises(ConfigError, match="Hint"):
            ConfigLoader(path).load()

    def test_invalid_json_reports_position(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text('{\n  "sync": {,}\n}')
        with pytest.raises(ConfigError, match="line 2"):
            ConfigLoader(path).load()

    def test_non_object(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text("[1, 2]")
        with pytest.raises(ConfigError, match="JSON object"):
            ConfigLoader(path).load()

    def test_validation_error(self, tmp_path):
        path = tmp_path / "settings.json"
        path.write_text(json.dumps({"export": {"max_concurrency": 0}}))
        with pytest.raises(ConfigError, match="Invalid settings"):
            ConfigLoader(path).load()

    def test_save_then_load(self, tmp_path):
        loader = ConfigLoader(tmp_path / "conf" / "settings.json")
        settings = AppSettings()
        settings.export.report_name = "weekly"
        loader.save(settings)
        assert loader.load().export.report_name == "weekly"

    def test_example_config_is_valid(self):
        settings = ConfigLoader(EXAMPLE_CONFIG).load()
        assert isinstance(settings, AppSettings)
