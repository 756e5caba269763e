"""
typo_ime

Fuzzy pinyin → hanzi completion with bigram context, served by an engine
running in its own worker thread or process.

Main Components:
    - normalizer: Field and query normalization
    - index_builder: (field, length) bucket index
    - candidate_generator: Levenshtein scoring + bigram re-ranking
    - protocol: Messages exchanged with the engine worker
    - worker: Engine state and worker loop
    - client: Search ids, pending table, Future resolution
    - ime: Headless input-method session

Quick Start:
    from typo_ime import TypoClient, JsonFileSource

    with TypoClient.create(JsonFileSource("dict.json", "bigram_probabilities.json")) as client:
        results = client.search("nihao", previous_word_hanzi="我").result()
"""

__version__ = "0.1.0"

from .bigram import BigramTable
from .candidate_generator import CandidateGenerator, similarity
from .client import TypoClient
from .errors import (
    DataLoadError,
    EngineInitError,
    EngineNotReadyError,
    EngineTerminatedError,
    ProtocolError,
    SearchFailedError,
    TypoImeError,
)
from .ime import ImeSession
from .index_builder import IndexBuilder, build_search_index
from .models import DictionaryRecord, SearchResult
from .sources import DataSource, HttpJsonSource, InMemorySource, JsonFileSource
from .worker import MatchingEngine

__all__ = [
    "BigramTable",
    "CandidateGenerator",
    "similarity",
    "TypoClient",
    "DataLoadError",
    "EngineInitError",
    "EngineNotReadyError",
    "EngineTerminatedError",
    "ProtocolError",
    "SearchFailedError",
    "TypoImeError",
    "ImeSession",
    "IndexBuilder",
    "build_search_index",
    "DictionaryRecord",
    "SearchResult",
    "DataSource",
    "HttpJsonSource",
    "InMemorySource",
    "JsonFileSource",
    "MatchingEngine",
]
