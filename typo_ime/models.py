"""
Data model for typo_ime.

DictionaryRecord wraps one dictionary entry (pinyin + hanzi) and caches the
normalized forms used for matching. SearchResult pairs a record with its
scores.
"""

from dataclasses import dataclass
from functools import cached_property
from typing import Any, Dict, Mapping, Optional

from .normalizer import normalize_searchable

PINYIN = 'pinyin'
HANZI = 'hanzi'
FIELDS = (PINYIN, HANZI)


@dataclass(frozen=True, eq=False)
class DictionaryRecord:
    """Single dictionary entry. Either field may be missing."""
    pinyin: Optional[Any] = None
    hanzi: Optional[Any] = None

    @classmethod
    def from_raw(cls, raw) -> "DictionaryRecord":
        """
        Build a record from a raw mapping or pass a record through.

        Unknown keys are ignored; missing keys become None.
        """
        if isinstance(raw, DictionaryRecord):
            return raw
        if not isinstance(raw, Mapping):
            return cls()
        return cls(pinyin=raw.get(PINYIN), hanzi=raw.get(HANZI))

    @cached_property
    def searchable_pinyin(self) -> Optional[str]:
        return normalize_searchable(self.pinyin)

    @cached_property
    def searchable_hanzi(self) -> Optional[str]:
        return normalize_searchable(self.hanzi)

    def searchable(self, key: str) -> Optional[str]:
        """Normalized form of the given field, or None for unknown keys."""
        if key == PINYIN:
            return self.searchable_pinyin
        if key == HANZI:
            return self.searchable_hanzi
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {PINYIN: self.pinyin, HANZI: self.hanzi}


@dataclass
class SearchResult:
    """Scored candidate returned by a search."""
    record: DictionaryRecord
    similarity_score: float
    bigram_score: float = 0.0

    @property
    def hanzi(self) -> Optional[str]:
        return self.record.hanzi

    def to_wire(self) -> Dict[str, Any]:
        return {
            'record': self.record.to_dict(),
            'similarityScore': self.similarity_score,
            'bigramScore': self.bigram_score,
        }

    @classmethod
    def from_wire(cls, data: Mapping[str, Any]) -> "SearchResult":
        return cls(
            record=DictionaryRecord.from_raw(data.get('record') or {}),
            similarity_score=float(data['similarityScore']),
            bigram_score=float(data.get('bigramScore', 0.0)),
        )
