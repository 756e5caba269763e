"""
Bigram context table.

Maps a previously committed hanzi character to the probability of each
candidate character following it. Loaded once, read-only afterwards.
"""

from types import MappingProxyType
from typing import Mapping, Optional

from .errors import DataLoadError


class BigramTable:
    """Read-only prior-char → {next-char → probability} lookup."""

    def __init__(self, probabilities: Optional[Mapping] = None):
        probabilities = probabilities or {}
        if not isinstance(probabilities, Mapping):
            raise DataLoadError(
                f"Bigram table must be a mapping, got {type(probabilities).__name__}"
            )

        table = {}
        for prior, followers in probabilities.items():
            if not isinstance(followers, Mapping):
                raise DataLoadError(f"Bigram entry for {prior!r} is not a mapping")
            try:
                table[prior] = MappingProxyType(
                    {char: float(prob) for char, prob in followers.items()}
                )
            except (TypeError, ValueError) as e:
                raise DataLoadError(f"Bigram entry for {prior!r} has a non-numeric probability") from e
        self._table = MappingProxyType(table)

    def __len__(self) -> int:
        return len(self._table)

    def __contains__(self, prior) -> bool:
        return prior in self._table

    def has_context(self, prior: Optional[str]) -> bool:
        """True if prior is set and has at least an entry in the table."""
        return bool(prior) and prior in self._table

    def probability(self, prior: Optional[str], candidate: Optional[str]) -> float:
        """
        Probability of candidate following prior; 0.0 when either is unknown.

        Examples:
            >>> BigramTable({"你": {"好": 0.9}}).probability("你", "好")
            0.9
        """
        if not self.has_context(prior) or candidate is None:
            return 0.0
        return self._table[prior].get(candidate, 0.0)
