"""
Headless input-method session on top of TypoClient.

Holds what a text field would hold (current text, pending pinyin query,
suggestions, committed history) without any UI toolkit. A host feeds it the
field's text on every change and renders ``suggestions`` itself.

Responses can arrive after the user has typed more. Each response goes
through is_stale() before it is used; a stale response is dropped, since the
engine has no cancellation.
"""

import logging
import re
import threading
from concurrent.futures import Future
from typing import Callable, List, Optional

from .client import TypoClient
from .config import Settings
from .models import PINYIN, SearchResult

logger = logging.getLogger(__name__)

_TRAILING_QUERY = re.compile(r"[a-z0-9']+$", re.IGNORECASE)


class ImeSession:
    """Pinyin → hanzi typing session."""

    def __init__(
        self,
        client: TypoClient,
        on_commit: Optional[Callable[[str], None]] = None,
        suggestion_limit: int = 15,
        threshold: float = 0.2,
    ):
        self.client = client
        self.on_commit = on_commit or (lambda text: None)
        self.suggestion_limit = suggestion_limit
        self.threshold = threshold

        self.text = ''
        self.current_query = ''
        self.suggestions: List[SearchResult] = []
        self.history: List[str] = []
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, client: TypoClient, settings: Settings,
                      on_commit: Optional[Callable[[str], None]] = None) -> "ImeSession":
        """Session using TYPO_SUGGESTION_LIMIT and TYPO_IME_THRESHOLD."""
        return cls(client, on_commit=on_commit,
                   suggestion_limit=settings.suggestion_limit,
                   threshold=settings.ime_threshold)

    @staticmethod
    def extract_query(text: str) -> Optional[str]:
        """Trailing run of latin letters, digits and apostrophes, lowercased."""
        match = _TRAILING_QUERY.search(text or '')
        return match.group(0).lower() if match else None

    def context_char(self, text: str, query: str) -> Optional[str]:
        """Character before the query, else the last committed character."""
        pretext = text[:len(text) - len(query)]
        if pretext:
            return pretext[-1]
        return self.history[-1] if self.history else None

    def is_stale(self, query: str) -> bool:
        """True if input has moved on since the search for query was sent."""
        return query != self.current_query or not self.text.lower().endswith(query)

    def update(self, text: str) -> "Future[Optional[List[SearchResult]]]":
        """
        Feed the current field text.

        Returns a Future resolving to the new suggestions, or to None when
        there is no query or the response was stale.
        """
        outcome: Future = Future()
        query = self.extract_query(text)

        with self._lock:
            self.text = text
            if not query:
                self._clear()
                outcome.set_result(None)
                return outcome
            self.current_query = query
            context = self.context_char(text, query)

        search = self.client.search(query, key=PINYIN, threshold=self.threshold, previous_word_hanzi=context)
        search.add_done_callback(lambda f: self._on_results(query, f, outcome))
        return outcome

    def _on_results(self, query: str, search: Future, outcome: Future) -> None:
        if search.cancelled():
            outcome.set_result(None)
            return
        exception = search.exception()
        if exception is not None:
            outcome.set_exception(exception)
            return

        with self._lock:
            if self.is_stale(query):
                logger.debug("Discarding stale results for %r", query)
                outcome.set_result(None)
                return
            self.suggestions = search.result()[:self.suggestion_limit]
            suggestions = list(self.suggestions)
        outcome.set_result(suggestions)

    def choose(self, hanzi: str) -> str:
        """Replace the pending query with the chosen hanzi; returns the new text."""
        with self._lock:
            base = self.text[:len(self.text) - len(self.current_query)]
            self.text = base + hanzi
            self._clear()
            return self.text

    def commit(self) -> Optional[str]:
        """
        Commit the current text.

        A pinyin query still pending is replaced by the top suggestion. The
        committed characters become bigram context for later searches.
        """
        with self._lock:
            text = self.text.strip()
            if self.current_query and self.suggestions:
                fallback = self.suggestions[0].hanzi
                text = text[:len(text) - len(self.current_query)] + fallback
            if not text:
                return None
            self.history.extend(text)
            self.text = ''
            self._clear()

        self.on_commit(text)
        return text

    def clear_suggestions(self) -> None:
        with self._lock:
            self._clear()

    def _clear(self) -> None:
        self.current_query = ''
        self.suggestions = []
