"""
Tests for configuration loading and logging setup.
"""
import json
import logging
from unittest.mock import patch

from memory_palace import config
from memory_palace.logging_config import LOG_FORMAT, setup_logging


class TestLoadConfig:
    """Tests for load_config() — defaults, file, env overrides."""

    def test_defaults(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MEMORY_PALACE_DATA_DIR", str(tmp_path))
        monkeypatch.delenv("MEMORY_PALACE_DATABASE_URL", raising=False)
        config.clear_config_cache()

        assert config.get_extraction_max_chars() == 2000
        assert config.get_discovery_max_comparisons() is None
        assert config.get_track_access() is True
        assert config.get_llm_timeout() == 60
        assert config.get_database_url() == f"sqlite:///{tmp_path / 'palace.db'}"

    def test_file_values_merge_over_defaults(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MEMORY_PALACE_DATA_DIR", str(tmp_path))
        (tmp_path / "config.json").write_text(json.dumps({
            "extraction_max_chars": 500,
            "discovery_max_comparisons": 25,
        }))
        config.clear_config_cache()

        assert config.get_extraction_max_chars() == 500
        assert config.get_discovery_max_comparisons() == 25
        assert config.get_ollama_url() == "http://localhost:11434"

    def test_unreadable_file_falls_back(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MEMORY_PALACE_DATA_DIR", str(tmp_path))
        (tmp_path / "config.json").write_text("{broken")
        config.clear_config_cache()

        assert config.load_config()["extraction_max_chars"] == 2000

    def test_env_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MEMORY_PALACE_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("OLLAMA_HOST", "http://gpu-box:11434")
        monkeypatch.setenv("MEMORY_PALACE_LLM_MODEL", "mistral")
        monkeypatch.setenv("MEMORY_PALACE_LLM_TIMEOUT", "15")
        monkeypatch.setenv("MEMORY_PALACE_DISCOVERY_MAX_COMPARISONS", "none")
        config.clear_config_cache()

        assert config.get_ollama_url() == "http://gpu-box:11434"
        assert config.get_llm_model() == "mistral"
        assert config.get_llm_timeout() == 15.0
        assert config.get_discovery_max_comparisons() is None

    def test_malformed_numeric_env_keeps_defaults(self, tmp_path, monkeypatch):
        """Non-numeric overrides are ignored and the config still loads."""
        monkeypatch.setenv("MEMORY_PALACE_DATA_DIR", str(tmp_path))
        monkeypatch.setenv("MEMORY_PALACE_LLM_TIMEOUT", "soon")
        monkeypatch.setenv("MEMORY_PALACE_DISCOVERY_MAX_COMPARISONS", "lots")
        config.clear_config_cache()

        assert config.get_llm_timeout() == 60
        assert config.get_discovery_max_comparisons() is None
        assert config.load_config() is config.load_config()

    def test_save_config_round_trip(self, tmp_path, monkeypatch):
        monkeypatch.setenv("MEMORY_PALACE_DATA_DIR", str(tmp_path / "nested"))
        config.clear_config_cache()

        cfg = config.load_config().copy()
        cfg["track_access"] = False
        config.save_config(cfg)
        config.clear_config_cache()

        assert config.get_track_access() is False
        assert json.loads((tmp_path / "nested" / "config.json").read_text())["track_access"] is False


class TestSetupLogging:

    def test_configures_root_logger(self):
        with patch("memory_palace.logging_config.logging.basicConfig") as basic:
            setup_logging("debug")

        kwargs = basic.call_args[1]
        assert kwargs["level"] == logging.DEBUG
        assert kwargs["format"] == LOG_FORMAT

    def test_level_from_config(self):
        with patch("memory_palace.logging_config.get_log_level", return_value="WARNING"):
            with patch("memory_palace.logging_config.logging.basicConfig") as basic:
                setup_logging()
        assert basic.call_args[1]["level"] == logging.WARNING
