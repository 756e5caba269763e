"""
Length-bucketed search index for typo_ime.

The index partitions dictionary records by field and by the length of their
normalized form, so a query only pays for edit-distance computations against
candidates of plausible length.

Architecture:
    Init (once per engine):
        1. Wrap each raw record as a DictionaryRecord
        2. For each field (pinyin, hanzi): normalize → skip if empty
        3. Append the record to index[field][len(normalized)]

    Index structure:
        {
            "pinyin": {2: [<ni3 你>, <li3 李>], 4: [<hao3 好>, ...], ...},
            "hanzi":  {1: [<ni3 你>, <li3 李>, ...], ...},
        }

Buckets keep source order; that order is only used as the final tie-break.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List

from tqdm import tqdm

from .models import FIELDS, DictionaryRecord

logger = logging.getLogger(__name__)

SearchIndex = Dict[str, Dict[int, List[DictionaryRecord]]]


class IndexBuilder:
    """Build the (field, length) bucket index from raw dictionary records."""

    def __init__(self, show_progress: bool = False):
        """
        Initialize index builder.

        Args:
            show_progress: Show a tqdm progress bar while indexing
        """
        self.show_progress = show_progress
        self.index: SearchIndex = {field: defaultdict(list) for field in FIELDS}
        self.records: List[DictionaryRecord] = []

    def build_index(self, raw_records: Iterable) -> SearchIndex:
        """
        Index every record under each field it has a searchable form for.

        A record missing one field is still indexed under the other one.

        Args:
            raw_records: Mappings with optional "pinyin"/"hanzi" keys, or
                DictionaryRecord instances

        Returns:
            The finished index (plain dicts, no further appends)
        """
        logger.info("Pre-processing and indexing dictionary...")

        for raw in tqdm(raw_records, desc="Indexing", disable=not self.show_progress):
            record = DictionaryRecord.from_raw(raw)
            self.records.append(record)

            for field in FIELDS:
                searchable = record.searchable(field)
                if not searchable:
                    continue
                self.index[field][len(searchable)].append(record)

        self.index = {field: dict(buckets) for field, buckets in self.index.items()}
        logger.info(
            "Indexed %d records (%d pinyin buckets, %d hanzi buckets)",
            len(self.records),
            len(self.index['pinyin']),
            len(self.index['hanzi']),
        )
        return self.index

    def calculate_statistics(self) -> Dict:
        """
        Calculate index statistics.

        Returns:
            Dictionary of statistics
        """
        stats = {'total_records': len(self.records)}
        for field, buckets in self.index.items():
            sizes = [len(bucket) for bucket in buckets.values()]
            stats[f'{field}_buckets'] = len(buckets)
            stats[f'{field}_entries'] = sum(sizes)
            stats[f'{field}_max_bucket'] = max(sizes) if sizes else 0
        return stats


def build_search_index(raw_records: Iterable, show_progress: bool = False) -> SearchIndex:
    """Build an index in one call."""
    return IndexBuilder(show_progress=show_progress).build_index(raw_records)
