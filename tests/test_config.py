"""
Tests for configuration loading, placeholder resolution and validation.
"""

import json

import pytest

from vidgrab.config import (
    ConfigError,
    load_config,
    project_root,
    resolve_download_dir,
    validate_config,
)


def _valid_config():
    return {
        "server": {"host": "0.0.0.0", "port": 3000},
        "downloads": {"directory": "/tmp/downloads"},
        "retention": {"max_age_hours": 24, "sweep_interval_seconds": 3600},
    }


class TestLoadConfig:
    def test_loads_shipped_config(self):
        config = load_config("config.json")
        assert "server" in config
        assert config["retention"]["max_age_hours"] == 24
        assert validate_config(config) == []

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            load_config(str(tmp_path / "nope.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(ConfigError, match="Invalid JSON"):
            load_config(str(path))

    def test_placeholders_resolved_from_env(self, tmp_path, monkeypatch):
        path = tmp_path / "cfg.json"
        path.write_text(
            json.dumps(
                {
                    "server": {"port": "${VIDGRAB_TEST_PORT:-3000}", "host": "${VIDGRAB_TEST_HOST}"},
                    "downloads": {"directory": ["${VIDGRAB_TEST_DIR:-downloads}"]},
                }
            )
        )
        monkeypatch.setenv("VIDGRAB_TEST_PORT", "8080")
        monkeypatch.delenv("VIDGRAB_TEST_HOST", raising=False)
        monkeypatch.delenv("VIDGRAB_TEST_DIR", raising=False)

        config = load_config(str(path))

        assert config["server"]["port"] == "8080"
        assert config["server"]["host"] == ""
        assert config["downloads"]["directory"] == ["downloads"]


class TestValidateConfig:
    def test_valid(self):
        assert validate_config(_valid_config()) == []

    def test_missing_section(self):
        config = _valid_config()
        del config["retention"]
        errors = validate_config(config)
        assert any("'retention'" in e for e in errors)

    def test_missing_key(self):
        config = _valid_config()
        del config["downloads"]["directory"]
        errors = validate_config(config)
        assert any("'directory'" in e for e in errors)

    def test_unresolved_directory(self):
        config = _valid_config()
        config["downloads"]["directory"] = "${DOWNLOAD_DIR}"
        assert any("DOWNLOAD_DIR" in e for e in validate_config(config))

    @pytest.mark.parametrize("value", [0, -1, "soon"])
    def test_retention_must_be_positive_number(self, value):
        config = _valid_config()
        config["retention"]["max_age_hours"] = value
        errors = validate_config(config)
        assert any("max_age_hours" in e for e in errors)


class TestResolveDownloadDir:
    def test_absolute_kept(self, tmp_path):
        config = {"downloads": {"directory": str(tmp_path)}}
        assert resolve_download_dir(config) == tmp_path

    def test_relative_to_project_root(self):
        config = {"downloads": {"directory": "downloads"}}
        assert resolve_download_dir(config) == project_root() / "downloads"
