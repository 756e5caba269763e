"""
Data sources for the engine's one-time load.

A source returns the raw dictionary records and the raw bigram mapping.
Sources are plain picklable objects so a process worker can receive one.

    InMemorySource   - data already in memory (tests, embedding hosts)
    JsonFileSource   - dict.json + bigram_probabilities.json on disk
    HttpJsonSource   - same files served over HTTP
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

import requests

from .errors import DataLoadError

logger = logging.getLogger(__name__)

RawData = Tuple[List[Any], Dict[str, Any]]


def _check_shapes(records, bigrams, origin: str) -> RawData:
    if not isinstance(records, list):
        raise DataLoadError(f"Dictionary from {origin} must be a JSON array, got {type(records).__name__}")
    if not isinstance(bigrams, dict):
        raise DataLoadError(f"Bigram table from {origin} must be a JSON object, got {type(bigrams).__name__}")
    return records, bigrams


class DataSource:
    """Base class: subclasses implement load()."""

    def load(self) -> RawData:
        raise NotImplementedError

    def describe(self) -> str:
        return type(self).__name__


@dataclass
class InMemorySource(DataSource):
    records: List[Any] = field(default_factory=list)
    bigrams: Dict[str, Any] = field(default_factory=dict)

    def load(self) -> RawData:
        return _check_shapes(self.records, self.bigrams, "memory")


@dataclass
class JsonFileSource(DataSource):
    dictionary_path: str
    bigram_path: str

    def _read(self, path: str):
        try:
            with open(path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except OSError as e:
            raise DataLoadError(f"Could not read {path}: {e}") from e
        except json.JSONDecodeError as e:
            raise DataLoadError(f"Invalid JSON in {path}: {e}") from e

    def load(self) -> RawData:
        logger.info("Loading dictionary from %s", self.dictionary_path)
        records = self._read(self.dictionary_path)
        bigrams = self._read(self.bigram_path)
        return _check_shapes(records, bigrams, self.dictionary_path)

    def describe(self) -> str:
        return f"files {self.dictionary_path}, {self.bigram_path}"


@dataclass
class HttpJsonSource(DataSource):
    dictionary_url: str
    bigram_url: str
    timeout: float = 10.0

    def _fetch(self, url: str):
        try:
            r = requests.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise DataLoadError(f"Failed to fetch {url}: {e}") from e
        if not r.ok:
            raise DataLoadError(f"Failed to fetch {url}: HTTP {r.status_code}")
        try:
            return r.json()
        except ValueError as e:
            raise DataLoadError(f"Invalid JSON from {url}: {e}") from e

    def load(self) -> RawData:
        logger.info("Fetching dictionary from %s", self.dictionary_url)
        records = self._fetch(self.dictionary_url)
        bigrams = self._fetch(self.bigram_url)
        return _check_shapes(records, bigrams, self.dictionary_url)

    def describe(self) -> str:
        return f"urls {self.dictionary_url}, {self.bigram_url}"
