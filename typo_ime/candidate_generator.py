"""
Runtime candidate scoring for typo_ime.

This module runs inside the engine worker. It scores the records of the
length-bucketed index against a pinyin (or hanzi) query fragment and
re-ranks ties with the bigram context table.

Architecture:
    Query time:
        1. User fragment: "nih"
        2. Normalize query (lowercase)
        3. Pick length buckets in [max(1, len - tolerance), len + tolerance]
        4. Edit distance against every record in those buckets
        5. similarity = 1 - distance / max(len(query), len(candidate))
        6. Keep candidates with similarity >= threshold
        7. Bigram score from the previously committed hanzi
        8. Stable sort: similarity desc, bigram desc, insertion order

Length pruning is an approximation: a candidate outside the tolerance
window is never scored even if it would pass a very low threshold.

Usage:
    generator = CandidateGenerator(index, bigrams)
    results = generator.search("ni", key="pinyin", threshold=0.3,
                               previous_context_char="我")
"""

import logging
import time
from typing import Dict, List, Optional

from Levenshtein import distance as levenshtein_distance

from .bigram import BigramTable
from .index_builder import SearchIndex
from .models import SearchResult
from .normalizer import normalize_query

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 0.6
DEFAULT_LENGTH_TOLERANCE = 2


def similarity(query: str, candidate: str) -> float:
    """
    Length-normalized Levenshtein similarity.

    Two empty strings are identical (1.0); the denominator never reaches 0.

    Examples:
        >>> similarity("ni", "ni")
        1.0

        >>> round(similarity("ni", "nin"), 3)
        0.667
    """
    max_len = max(len(query), len(candidate), 1)
    return 1.0 - levenshtein_distance(query, candidate) / max_len


class CandidateGenerator:
    """Fuzzy matcher over a length-bucketed index."""

    def __init__(self, index: SearchIndex, bigrams: Optional[BigramTable] = None,
                 slow_search_ms: float = 250.0):
        """
        Initialize candidate generator.

        Args:
            index: Index built by IndexBuilder
            bigrams: Bigram context table (empty if None)
            slow_search_ms: Log a warning when a search takes longer
        """
        self.index = index
        self.bigrams = bigrams if bigrams is not None else BigramTable()
        self.slow_search_ms = slow_search_ms
        self._last_timings: Dict[str, float] = {}

    def candidate_lengths(self, key: str, query_length: int, length_tolerance: int) -> List[int]:
        """Bucket lengths to scan, ascending, restricted to buckets that exist."""
        buckets = self.index.get(key) or {}
        low = max(1, query_length - length_tolerance)
        high = query_length + length_tolerance
        return sorted(length for length in buckets if low <= length <= high)

    def search(
        self,
        query: str,
        key: str = 'pinyin',
        threshold: Optional[float] = None,
        length_tolerance: Optional[int] = None,
        previous_context_char: Optional[str] = None,
    ) -> List[SearchResult]:
        """
        Score every candidate of plausible length against the query.

        Invalid requests (empty query, unknown key) return an empty list
        instead of raising; partial input is expected on every keystroke.

        Args:
            query: Query fragment
            key: Field to match against ("pinyin" or "hanzi")
            threshold: Minimum similarity (default 0.6)
            length_tolerance: Max length difference scanned (default 2)
            previous_context_char: Last committed hanzi, for bigram scoring

        Returns:
            Full list of SearchResult, best first
        """
        if threshold is None:
            threshold = DEFAULT_THRESHOLD
        if length_tolerance is None:
            length_tolerance = DEFAULT_LENGTH_TOLERANCE

        timings = {}
        start_time = time.perf_counter()

        if not query or not isinstance(query, str) or not self.index.get(key):
            self._last_timings = {'total': time.perf_counter() - start_time}
            return []

        normalized_query = normalize_query(query)
        query_length = len(normalized_query)
        has_context = self.bigrams.has_context(previous_context_char)

        t0 = time.perf_counter()
        lengths = self.candidate_lengths(key, query_length, max(0, int(length_tolerance)))
        timings['select_buckets'] = time.perf_counter() - t0

        t0 = time.perf_counter()
        results = []
        scanned = 0
        for length in lengths:
            for record in self.index[key][length]:
                hanzi = record.hanzi
                if not isinstance(hanzi, str) or not hanzi:
                    continue
                scanned += 1
                score = similarity(normalized_query, record.searchable(key))
                if score < threshold:
                    continue
                bigram_score = self.bigrams.probability(previous_context_char, hanzi) if has_context else 0.0
                results.append(SearchResult(record, score, bigram_score))
        timings['scoring'] = time.perf_counter() - t0

        # list.sort is stable, so bucket order survives full ties
        t0 = time.perf_counter()
        results.sort(key=lambda r: (r.similarity_score, r.bigram_score), reverse=True)
        timings['sort'] = time.perf_counter() - t0

        elapsed = time.perf_counter() - start_time
        timings['total'] = elapsed
        self._last_timings = timings

        if elapsed * 1000 > self.slow_search_ms:
            logger.warning(
                "Search for %r took %.1fms (scanned %d candidates in %d buckets)",
                query, elapsed * 1000, scanned, len(lengths),
            )

        return results

    def get_last_timings(self) -> Dict[str, float]:
        """
        Get timing breakdown (seconds) from the last search call.

        Keys: select_buckets, scoring, sort, total. Rejected queries only
        report total.
        """
        return dict(self._last_timings)
