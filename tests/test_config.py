"""Tests for environment-driven settings."""

import pytest

from typo_ime.config import Settings
from typo_ime.sources import HttpJsonSource, JsonFileSource


class TestSettings:
    """Settings.from_env parsing."""

    def test_defaults(self):
        settings = Settings.from_env({})

        assert settings.threshold == 0.6
        assert settings.length_tolerance == 2
        assert settings.suggestion_limit == 15
        assert settings.worker_mode == "thread"
        assert settings.log_level == "INFO"

    def test_overrides(self):
        settings = Settings.from_env({
            "TYPO_THRESHOLD": "0.3",
            "TYPO_LENGTH_TOLERANCE": "1",
            "TYPO_WORKER_MODE": "Process",
            "TYPO_LOG_LEVEL": "debug",
            "TYPO_SLOW_SEARCH_MS": "",
        })

        assert settings.threshold == 0.3
        assert settings.length_tolerance == 1
        assert settings.worker_mode == "process"
        assert settings.log_level == "DEBUG"
        assert settings.slow_search_ms == 250.0

    def test_invalid_number_names_variable(self):
        with pytest.raises(ValueError, match="TYPO_LENGTH_TOLERANCE"):
            Settings.from_env({"TYPO_LENGTH_TOLERANCE": "two"})

    def test_invalid_worker_mode(self):
        with pytest.raises(ValueError, match="TYPO_WORKER_MODE"):
            Settings.from_env({"TYPO_WORKER_MODE": "fiber"})

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("TYPO_SUGGESTION_LIMIT", "5")

        assert Settings.from_env().suggestion_limit == 5


class TestDataSource:
    """Settings.data_source picks a loader from the locations."""

    def test_paths_give_file_source(self):
        source = Settings(dictionary="data/dict.json", bigrams="data/bigrams.json").data_source()

        assert source == JsonFileSource("data/dict.json", "data/bigrams.json")

    def test_urls_give_http_source(self):
        settings = Settings(dictionary="https://example.com/dict.json",
                            bigrams="https://example.com/bigrams.json", http_timeout=3)

        assert settings.data_source() == HttpJsonSource(
            "https://example.com/dict.json", "https://example.com/bigrams.json", timeout=3
        )

    @pytest.mark.parametrize(
        "dictionary, bigrams",
        [(None, "b.json"), ("d.json", None), ("https://example.com/d.json", "b.json")],
    )
    def test_incomplete_or_mixed_locations(self, dictionary, bigrams):
        with pytest.raises(ValueError):
            Settings(dictionary=dictionary, bigrams=bigrams).data_source()
