"""Unit tests for Settings and the YAML configuration loader."""

from __future__ import annotations

from pathlib import Path

import pytest

from chunkwise.config.loader import load_settings
from chunkwise.config.settings import Settings
from chunkwise.utils.errors import ConfigurationError

_PROJECT_CONFIG = Path(__file__).resolve().parents[2] / "config" / "config.yaml"


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    # No stray .env file and no inherited overrides.
    monkeypatch.chdir(tmp_path)
    for name in ("SPLITTER_CHUNK_SIZE", "RETRY_MAX_ATTEMPTS", "LOG_LEVEL", "OPENAI_API_KEY"):
        monkeypatch.delenv(name, raising=False)


def _write(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(body, encoding="utf-8")
    return path


class TestSettingsDefaults:
    def test_defaults_match_free_tier_quotas(self) -> None:
        settings = Settings()
        assert settings.splitter_chunk_size == 500
        assert settings.splitter_chunk_overlap == 50
        assert settings.splitter_separators == ["\n\n", "\n", " ", ""]
        assert settings.embedding_rate_capacity == 3
        assert settings.embedding_rate_window_seconds == 60.0
        assert settings.retry_max_attempts == 3
        assert settings.retry_base_delay_seconds == 20.0
        assert settings.ingestion_inter_chunk_delay_seconds == 2.0
        assert settings.openai_chat_model == "gpt-3.5-turbo"

    def test_environment_variables_are_read(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("RETRY_MAX_ATTEMPTS", "5")
        assert Settings().retry_max_attempts == 5


class TestLoadSettings:
    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        settings = load_settings(tmp_path / "absent.yaml")
        assert settings.splitter_chunk_size == 500

    def test_sections_are_flattened(self, tmp_path: Path) -> None:
        path = _write(
            tmp_path,
            "splitter:\n  chunk_size: 800\n  chunk_overlap: 80\nlog_level: DEBUG\n",
        )
        settings = load_settings(path)
        assert settings.splitter_chunk_size == 800
        assert settings.splitter_chunk_overlap == 80
        assert settings.log_level == "DEBUG"

    def test_environment_overrides_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        path = _write(tmp_path, "splitter:\n  chunk_size: 800\nretry:\n  max_attempts: 4\n")
        monkeypatch.setenv("SPLITTER_CHUNK_SIZE", "300")

        settings = load_settings(path)

        assert settings.splitter_chunk_size == 300
        assert settings.retry_max_attempts == 4

    def test_unknown_key_is_rejected(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "splitter:\n  chunk_sise: 800\n")
        with pytest.raises(ConfigurationError, match="splitter_chunk_sise"):
            load_settings(path)

    def test_malformed_yaml_is_rejected(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "splitter: [unclosed\n")
        with pytest.raises(ConfigurationError):
            load_settings(path)

    def test_invalid_value_is_rejected(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "retry:\n  max_attempts: 0\n")
        with pytest.raises(ConfigurationError):
            load_settings(path)

    def test_non_mapping_top_level_is_rejected(self, tmp_path: Path) -> None:
        path = _write(tmp_path, "- just\n- a list\n")
        with pytest.raises(ConfigurationError):
            load_settings(path)

    def test_shipped_config_matches_defaults(self) -> None:
        assert load_settings(_PROJECT_CONFIG) == Settings()
