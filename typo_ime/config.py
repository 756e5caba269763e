"""
Runtime settings for typo_ime, read from the environment.

A .env file in the working directory is loaded first (python-dotenv), so
local overrides do not need to be exported.

Env:
  TYPO_DICTIONARY, TYPO_BIGRAMS        path or http(s) URL of the JSON data
  TYPO_THRESHOLD, TYPO_LENGTH_TOLERANCE engine defaults (0.6, 2)
  TYPO_SUGGESTION_LIMIT, TYPO_IME_THRESHOLD  IME session defaults (15, 0.2)
  TYPO_WORKER_MODE                      thread | process
  TYPO_INIT_TIMEOUT, TYPO_HTTP_TIMEOUT  seconds (30, 10)
  TYPO_SLOW_SEARCH_MS                   slow-search warning budget (250)
  TYPO_LOG_LEVEL                        logging level name (INFO)
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from dotenv import load_dotenv

from .sources import DataSource, HttpJsonSource, JsonFileSource
from .worker import WORKER_MODES


def _get(env: Mapping[str, str], name: str, default, cast):
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be a valid {cast.__name__}, got {raw!r}") from None


def _is_url(location: str) -> bool:
    return location.startswith(("http://", "https://"))


@dataclass
class Settings:
    dictionary: Optional[str] = None
    bigrams: Optional[str] = None
    threshold: float = 0.6
    length_tolerance: int = 2
    suggestion_limit: int = 15
    ime_threshold: float = 0.2
    worker_mode: str = "thread"
    init_timeout: float = 30.0
    http_timeout: float = 10.0
    slow_search_ms: float = 250.0
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from env (default: os.environ after load_dotenv())."""
        if env is None:
            load_dotenv()
            env = os.environ

        settings = cls(
            dictionary=env.get("TYPO_DICTIONARY") or None,
            bigrams=env.get("TYPO_BIGRAMS") or None,
            threshold=_get(env, "TYPO_THRESHOLD", cls.threshold, float),
            length_tolerance=_get(env, "TYPO_LENGTH_TOLERANCE", cls.length_tolerance, int),
            suggestion_limit=_get(env, "TYPO_SUGGESTION_LIMIT", cls.suggestion_limit, int),
            ime_threshold=_get(env, "TYPO_IME_THRESHOLD", cls.ime_threshold, float),
            worker_mode=(env.get("TYPO_WORKER_MODE") or cls.worker_mode).strip().lower(),
            init_timeout=_get(env, "TYPO_INIT_TIMEOUT", cls.init_timeout, float),
            http_timeout=_get(env, "TYPO_HTTP_TIMEOUT", cls.http_timeout, float),
            slow_search_ms=_get(env, "TYPO_SLOW_SEARCH_MS", cls.slow_search_ms, float),
            log_level=(env.get("TYPO_LOG_LEVEL") or cls.log_level).strip().upper(),
        )
        if settings.worker_mode not in WORKER_MODES:
            raise ValueError(
                f"TYPO_WORKER_MODE must be one of {sorted(WORKER_MODES)}, got {settings.worker_mode!r}"
            )
        return settings

    def data_source(self) -> DataSource:
        """HttpJsonSource for URLs, JsonFileSource otherwise."""
        if not self.dictionary or not self.bigrams:
            raise ValueError("TYPO_DICTIONARY and TYPO_BIGRAMS must both be set")
        if _is_url(self.dictionary) and _is_url(self.bigrams):
            return HttpJsonSource(self.dictionary, self.bigrams, timeout=self.http_timeout)
        if _is_url(self.dictionary) or _is_url(self.bigrams):
            raise ValueError("TYPO_DICTIONARY and TYPO_BIGRAMS must both be URLs or both be paths")
        return JsonFileSource(self.dictionary, self.bigrams)
