"""Shared test fixtures."""

import json
import queue

import pytest

from typo_ime.bigram import BigramTable
from typo_ime.candidate_generator import CandidateGenerator
from typo_ime.index_builder import build_search_index
from typo_ime.errors import DataLoadError
from typo_ime.sources import DataSource, InMemorySource


SAMPLE_RECORDS = [
    {"pinyin": "ni3", "hanzi": "你"},
    {"pinyin": "li3", "hanzi": "李"},
    {"pinyin": "hao3", "hanzi": "好"},
    {"pinyin": "men5", "hanzi": "们"},
    {"pinyin": "ni3 hao3", "hanzi": "你好"},
    {"pinyin": "wo3", "hanzi": "我"},
    {"pinyin": "zhong1 guo2", "hanzi": "中国"},
    {"hanzi": "的"},
    {"pinyin": "xx1"},
]

SAMPLE_BIGRAMS = {
    "你": {"好": 0.9, "们": 0.05},
    "我": {"们": 0.6, "的": 0.3},
}


class FailingSource(DataSource):
    """Source whose load always fails."""

    def load(self):
        raise DataLoadError("Failed to fetch worker data.")


class FakeWorker:
    """Worker double: records posted messages, replays queued replies."""

    def __init__(self):
        self.posted = []
        self.replies = queue.Queue()
        self.started = False
        self.terminated = False

    def start(self):
        self.started = True

    def post(self, data):
        self.posted.append(data)

    def receive(self, timeout):
        return self.replies.get(timeout=timeout)

    def is_alive(self):
        return self.started and not self.terminated

    def terminate(self, timeout=1.0):
        self.terminated = True


@pytest.fixture
def sample_records():
    return [dict(r) for r in SAMPLE_RECORDS]


@pytest.fixture
def sample_source(sample_records):
    return InMemorySource(records=sample_records, bigrams=dict(SAMPLE_BIGRAMS))


@pytest.fixture
def generator(sample_records):
    return CandidateGenerator(build_search_index(sample_records), BigramTable(SAMPLE_BIGRAMS))


@pytest.fixture
def fake_worker():
    return FakeWorker()


@pytest.fixture
def failing_source():
    return FailingSource()


@pytest.fixture
def data_files(tmp_path):
    """dict.json and bigram_probabilities.json on disk."""
    dictionary = tmp_path / "dict.json"
    bigrams = tmp_path / "bigram_probabilities.json"
    dictionary.write_text(json.dumps(SAMPLE_RECORDS, ensure_ascii=False), encoding="utf-8")
    bigrams.write_text(json.dumps(SAMPLE_BIGRAMS, ensure_ascii=False), encoding="utf-8")
    return str(dictionary), str(bigrams)
