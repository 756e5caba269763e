"""
Engine worker for typo_ime.

The matching engine lives behind a message queue in its own thread or
process. It owns the index and bigram table (built once on ``init``) and
answers every ``search`` message with exactly one reply, in arrival order.

Architecture:
    client ──inbox──▶ run_worker() ──▶ MatchingEngine.handle_wire()
    client ◀─outbox── run_worker() ◀── reply dict

Init policy:
    - first init: load + index; reply init_success or init_error
    - init after success: no-op, reply init_success again
    - init after failure: retry the load
    - search before success: reply search_error (notReady), never dropped
"""

import logging
import multiprocessing
import queue
import threading
from typing import Any, Dict, Optional

from .bigram import BigramTable
from .candidate_generator import CandidateGenerator
from .errors import ProtocolError
from .index_builder import IndexBuilder
from .protocol import (
    Init,
    InitError,
    InitSuccess,
    Message,
    Search,
    SearchError,
    SearchResults,
    decode_message,
)
from .sources import DataSource

logger = logging.getLogger(__name__)

# Sentinel put on the inbox to stop the worker loop.
STOP = None

NOT_READY_MESSAGE = "Engine is not initialized; send init and wait for init_success"


class MatchingEngine:
    """Per-worker engine state: index, bigram table, scorer."""

    def __init__(self, source: DataSource, show_progress: bool = False, slow_search_ms: float = 250.0):
        self.source = source
        self.show_progress = show_progress
        self.slow_search_ms = slow_search_ms
        self.generator: Optional[CandidateGenerator] = None
        self.stats: Dict[str, Any] = {}

    @property
    def initialized(self) -> bool:
        return self.generator is not None

    def initialize(self) -> None:
        """Load data and build the index. Raises on any load/index failure."""
        records, raw_bigrams = self.source.load()

        builder = IndexBuilder(show_progress=self.show_progress)
        index = builder.build_index(records)
        bigrams = BigramTable(raw_bigrams)

        self.stats = builder.calculate_statistics()
        self.stats['bigram_contexts'] = len(bigrams)
        self.generator = CandidateGenerator(index, bigrams, slow_search_ms=self.slow_search_ms)
        logger.info("Engine ready (%d records, %d bigram contexts)",
                    self.stats['total_records'], len(bigrams))

    def handle(self, message: Message) -> Optional[Message]:
        """
        Dispatch one decoded message and return the reply, if any.

        Replies-direction messages (init_success, search_results, ...) are
        not meant for the engine and are ignored with a warning.
        """
        if isinstance(message, Init):
            return self._handle_init()
        if isinstance(message, Search):
            return self._handle_search(message)
        if isinstance(message, (InitSuccess, InitError, SearchResults, SearchError)):
            logger.warning("Engine ignoring %s message", message.type)
            return None
        raise ProtocolError(f"Unhandled message: {message!r}")

    def handle_wire(self, data: Any) -> Optional[Dict[str, Any]]:
        """Decode a wire dict, dispatch it, and encode the reply."""
        try:
            message = decode_message(data)
        except ProtocolError as e:
            reply = _error_reply(data, e)
            if reply is not None:
                return reply
            logger.warning("Dropping undecodable message: %s", e)
            return None

        reply = self.handle(message)
        return reply.to_wire() if reply is not None else None

    def _handle_init(self) -> Message:
        if self.initialized:
            logger.debug("Already initialized; re-signalling init_success")
            return InitSuccess()
        try:
            self.initialize()
        except Exception as e:
            logger.error("Init error: %s", e)
            return InitError(error=str(e) or type(e).__name__)
        return InitSuccess()

    def _handle_search(self, message: Search) -> Message:
        if not self.initialized:
            return SearchError(search_id=message.search_id, error=NOT_READY_MESSAGE, not_ready=True)
        try:
            results = self.generator.search(
                message.query,
                key=message.key,
                threshold=message.threshold,
                length_tolerance=message.length_tolerance,
                previous_context_char=message.previous_word_hanzi,
            )
        except Exception as e:
            logger.exception("Search %d failed", message.search_id)
            return SearchError(search_id=message.search_id, error=str(e) or type(e).__name__)
        return SearchResults(search_id=message.search_id, results=results)


def _error_reply(data: Any, error: Exception) -> Optional[Dict[str, Any]]:
    """search_error for a message with an integer searchId, else None."""
    search_id = data.get('searchId') if isinstance(data, dict) else None
    if not isinstance(search_id, int) or isinstance(search_id, bool):
        return None
    return SearchError(search_id=search_id, error=str(error) or type(error).__name__).to_wire()


def run_worker(source: DataSource, inbox, outbox, **engine_options) -> None:
    """
    Worker loop: one reply per message, strictly in arrival order.

    Runs until STOP is received. Used as the target of both thread and
    process workers, so it must stay a module-level function.
    """
    engine = MatchingEngine(source, **engine_options)
    while True:
        data = inbox.get()
        if data is STOP:
            logger.debug("Worker stopping")
            break
        try:
            reply = engine.handle_wire(data)
        except Exception as e:
            logger.exception("Worker failed to handle message")
            reply = _error_reply(data, e)
        if reply is not None:
            outbox.put(reply)


class ThreadWorker:
    """Engine in a daemon thread, talking through queue.Queue."""

    def __init__(self, source: DataSource, **engine_options):
        self.inbox = queue.Queue()
        self.outbox = queue.Queue()
        self._thread = threading.Thread(
            target=run_worker,
            args=(source, self.inbox, self.outbox),
            kwargs=engine_options,
            name="typo-ime-engine",
            daemon=True,
        )

    def start(self) -> None:
        self._thread.start()

    def post(self, data: Dict[str, Any]) -> None:
        self.inbox.put(data)

    def receive(self, timeout: float) -> Dict[str, Any]:
        """Next reply; raises queue.Empty after timeout."""
        return self.outbox.get(timeout=timeout)

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def terminate(self, timeout: float = 1.0) -> None:
        # Threads cannot be killed; the loop exits once it reaches STOP.
        self.inbox.put(STOP)
        if self._thread.is_alive():
            self._thread.join(timeout)


class ProcessWorker:
    """Engine in a separate process, talking through multiprocessing queues."""

    def __init__(self, source: DataSource, start_method: Optional[str] = None, **engine_options):
        ctx = multiprocessing.get_context(start_method)
        self.inbox = ctx.Queue()
        self.outbox = ctx.Queue()
        self._process = ctx.Process(
            target=run_worker,
            args=(source, self.inbox, self.outbox),
            kwargs=engine_options,
            name="typo-ime-engine",
            daemon=True,
        )

    def start(self) -> None:
        self._process.start()

    def post(self, data: Dict[str, Any]) -> None:
        self.inbox.put(data)

    def receive(self, timeout: float) -> Dict[str, Any]:
        return self.outbox.get(timeout=timeout)

    def is_alive(self) -> bool:
        return self._process.is_alive()

    def terminate(self, timeout: float = 1.0) -> None:
        """Kill the process without a handshake; in-flight work is lost."""
        if self._process.is_alive():
            self._process.terminate()
        self._process.join(timeout)
        for q in (self.inbox, self.outbox):
            q.cancel_join_thread()
            q.close()


WORKER_MODES = {
    'thread': ThreadWorker,
    'process': ProcessWorker,
}


def make_worker(mode: str, source: DataSource, **engine_options):
    """Create (but do not start) a worker for the given mode."""
    try:
        worker_cls = WORKER_MODES[mode]
    except KeyError:
        raise ValueError(f"Unknown worker mode {mode!r}; expected one of {sorted(WORKER_MODES)}") from None
    return worker_cls(source, **engine_options)
