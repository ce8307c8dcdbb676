"""
Unit tests for configuration loading utilities.
"""

from __future__ import annotations

import tempfile

import pytest
import yaml

from fbms.backend.core.utils.config import get_default_config, load_config, load_runtime_config, save_config


class TestLoadConfig:
    def test_load_valid_config(self) -> None:
        config = {
            "business": {"name": "Tindahan ni Aling Nena"},
            "tax": {"vat_rate": 0.12},
            "pos": {"wholesale_multiplier": 0.9},
        }
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            yaml.dump(config, f)
            f.flush()
            loaded = load_config(f.name)

        assert loaded["business"]["name"] == "Tindahan ni Aling Nena"
        assert loaded["pos"]["wholesale_multiplier"] == 0.9

    def test_missing_file_raises(self) -> None:
        with pytest.raises(FileNotFoundError):
            load_config("/nonexistent/path/config.yaml")

    def test_missing_sections_get_defaults(self) -> None:
        """A partial file is layered over the built-in defaults."""
        config = {"output_dir": "outputs"}
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            yaml.dump(config, f)
            f.flush()
            loaded = load_config(f.name)

        assert loaded["tax"]["vat_rate"] == 0.12
        assert loaded["purchasing"]["manager_approval_limit"] == 100000
        assert loaded["purchasing"]["over_receiving"]["block_threshold"] == 10

    def test_nested_override_keeps_siblings(self) -> None:
        config = {"purchasing": {"over_receiving": {"tolerance_value": 8}}}
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            yaml.dump(config, f)
            f.flush()
            loaded = load_config(f.name)

        assert loaded["purchasing"]["over_receiving"]["tolerance_value"] == 8
        assert loaded["purchasing"]["over_receiving"]["require_approval"] is True
        assert loaded["purchasing"]["under_receiving"]["auto_accept"] is True

    def test_numeric_string_conversion(self) -> None:
        """Numeric strings become numbers; zero-padded codes stay strings."""
        config = {"tax": {"vat_rate": "0.12"}, "business": {"rdo_code": "043"}}
        with tempfile.NamedTemporaryFile(mode="w", suffix=".yaml", delete=False) as f:
            yaml.dump(config, f)
            f.flush()
            loaded = load_config(f.name)

        assert isinstance(loaded["tax"]["vat_rate"], float)
        assert loaded["business"]["rdo_code"] == "043"

    def test_database_url_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("FBMS_DATABASE_URL", "sqlite:///elsewhere.db")
        monkeypatch.setenv("FBMS_CONFIG", "/nonexistent/fbms.yaml")
        assert load_runtime_config()["database"]["url"] == "sqlite:///elsewhere.db"

    def test_default_config_loads(self) -> None:
        """The shipped default_config.yaml should load without errors."""
        config = load_config("configs/default_config.yaml")
        assert config["business"]["rdo_code"] == "043"
        assert config["auth"]["max_failed_logins"] == 5
        assert config["purchasing"]["expiry"]["near_expiry_days"] == 7

    def test_save_round_trip(self, tmp_path) -> None:
        path = tmp_path / "nested" / "config.yaml"
        cfg = get_default_config()
        cfg["business"]["name"] = "Sari-Sari Express"
        save_config(cfg, path)
        assert load_config(path)["business"]["name"] == "Sari-Sari Express"
