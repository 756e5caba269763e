"""
Message vocabulary exchanged between the client and the engine worker.

Every message is a small dataclass with a ``type`` tag. Only the plain
dicts produced by ``to_wire()`` cross the worker boundary, so the same
messages work over a thread queue or a multiprocessing queue.

Wire contract:
    → {"type": "init"}
    ← {"type": "init_success"}
    ← {"type": "init_error", "error": str}
    → {"type": "search", "payload": {"query": str,
                                     "options": {"key": str, "threshold"?: float,
                                                 "lengthTolerance"?: int},
                                     "previousWordHanzi": str | None},
       "searchId": int}
    ← {"type": "search_results", "results": [SearchResult...], "searchId": int}
    ← {"type": "search_error", "error": str, "searchId": int}
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from .errors import ProtocolError
from .models import SearchResult


@dataclass
class Init:
    type = 'init'

    def to_wire(self) -> Dict[str, Any]:
        return {'type': self.type}


@dataclass
class InitSuccess:
    type = 'init_success'

    def to_wire(self) -> Dict[str, Any]:
        return {'type': self.type}


@dataclass
class InitError:
    error: str
    type = 'init_error'

    def to_wire(self) -> Dict[str, Any]:
        return {'type': self.type, 'error': self.error}


@dataclass
class Search:
    """One lookup. threshold/length_tolerance of None mean engine defaults."""
    search_id: int
    query: str
    key: str = 'pinyin'
    threshold: Optional[float] = None
    length_tolerance: Optional[int] = None
    previous_word_hanzi: Optional[str] = None
    type = 'search'

    def to_wire(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {'key': self.key}
        if self.threshold is not None:
            options['threshold'] = self.threshold
        if self.length_tolerance is not None:
            options['lengthTolerance'] = self.length_tolerance
        return {
            'type': self.type,
            'payload': {
                'query': self.query,
                'options': options,
                'previousWordHanzi': self.previous_word_hanzi,
            },
            'searchId': self.search_id,
        }


@dataclass
class SearchResults:
    search_id: int
    results: List[SearchResult] = field(default_factory=list)
    type = 'search_results'

    def to_wire(self) -> Dict[str, Any]:
        return {
            'type': self.type,
            'results': [r.to_wire() for r in self.results],
            'searchId': self.search_id,
        }


@dataclass
class SearchError:
    search_id: int
    error: str
    not_ready: bool = False
    type = 'search_error'

    def to_wire(self) -> Dict[str, Any]:
        return {
            'type': self.type,
            'error': self.error,
            'notReady': self.not_ready,
            'searchId': self.search_id,
        }


Message = Union[Init, InitSuccess, InitError, Search, SearchResults, SearchError]


def _search_id(data: Mapping[str, Any]) -> int:
    search_id = data.get('searchId')
    if not isinstance(search_id, int) or isinstance(search_id, bool):
        raise ProtocolError(f"searchId must be an integer, got {search_id!r}")
    return search_id


def _number(value, name: str, kind=float):
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ProtocolError(f"{name} must be a number, got {value!r}")
    if isinstance(value, float) and not math.isfinite(value):
        raise ProtocolError(f"{name} must be finite, got {value!r}")
    try:
        return kind(value)
    except OverflowError as e:
        raise ProtocolError(f"{name} is out of range") from e


def _decode_search(data: Mapping[str, Any]) -> Search:
    payload = data.get('payload')
    if not isinstance(payload, Mapping):
        raise ProtocolError("search message has no payload")
    options = payload.get('options') or {}
    if not isinstance(options, Mapping):
        raise ProtocolError("search options must be an object")

    previous = payload.get('previousWordHanzi')
    query = payload.get('query')
    key = options.get('key')
    return Search(
        search_id=_search_id(data),
        query=query if isinstance(query, str) else '',
        key=key if isinstance(key, str) else '',
        threshold=_number(options.get('threshold'), 'threshold'),
        length_tolerance=_number(options.get('lengthTolerance'), 'lengthTolerance', int),
        previous_word_hanzi=previous if isinstance(previous, str) and previous else None,
    )


def _decode_results(data: Mapping[str, Any]) -> SearchResults:
    results = data.get('results')
    if not isinstance(results, list):
        raise ProtocolError("search_results.results must be a list")
    try:
        decoded = [SearchResult.from_wire(r) for r in results]
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ProtocolError(f"Malformed search result: {e}") from e
    return SearchResults(search_id=_search_id(data), results=decoded)


def decode_message(data: Any) -> Message:
    """
    Turn a wire dict back into a message object.

    A non-string query or key decodes to an empty string so the engine can
    answer it with an empty result list; structural problems raise.

    Raises:
        ProtocolError: Unknown type tag or missing/ill-typed fields
    """
    if not isinstance(data, Mapping):
        raise ProtocolError(f"Message must be an object, got {type(data).__name__}")

    kind = data.get('type')
    if kind == Init.type:
        return Init()
    if kind == InitSuccess.type:
        return InitSuccess()
    if kind == InitError.type:
        return InitError(error=str(data.get('error') or 'unknown error'))
    if kind == Search.type:
        return _decode_search(data)
    if kind == SearchResults.type:
        return _decode_results(data)
    if kind == SearchError.type:
        return SearchError(
            search_id=_search_id(data),
            error=str(data.get('error') or 'unknown error'),
            not_ready=bool(data.get('notReady')),
        )
    raise ProtocolError(f"Unknown message type: {kind!r}")
