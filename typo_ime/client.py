"""
Caller-side client for the engine worker.

Every search gets a fresh id from a monotonic counter and a Future stored in
the pending table under that id. A receiver thread reads replies from the
worker and settles the matching Future, whatever order replies arrive in.

Usage:
    with TypoClient.create(JsonFileSource("dict.json", "bigrams.json")) as client:
        future = client.search("nihao", key="pinyin", previous_word_hanzi="我")
        for result in future.result(timeout=1):
            print(result.hanzi, result.similarity_score)

Termination rejects every pending Future with EngineTerminatedError; nothing
is left waiting forever.
"""

import asyncio
import itertools
import logging
import queue
import threading
from concurrent.futures import Future, InvalidStateError
from typing import Dict, List, Optional

from .errors import (
    EngineInitError,
    EngineNotReadyError,
    EngineTerminatedError,
    ProtocolError,
    SearchFailedError,
)
from .models import SearchResult
from .protocol import (
    Init,
    InitError,
    InitSuccess,
    Search,
    SearchError,
    SearchResults,
    decode_message,
)
from .sources import DataSource
from .worker import make_worker

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.05


def _settle(future: Future, result=None, exception: Optional[BaseException] = None) -> None:
    # The caller may have cancelled the future while the reply was in flight.
    try:
        if exception is not None:
            future.set_exception(exception)
        else:
            future.set_result(result)
    except InvalidStateError:
        logger.debug("Future already settled or cancelled; reply ignored")


class TypoClient:
    """Issues searches to an engine worker and correlates replies by id."""

    def __init__(self, worker, threshold: Optional[float] = None, length_tolerance: Optional[int] = None):
        """
        Initialize client around an unstarted worker.

        Args:
            worker: ThreadWorker or ProcessWorker (see worker.make_worker)
            threshold: Default threshold for searches that do not pass one
            length_tolerance: Default length tolerance, likewise
        """
        self.worker = worker
        self.threshold = threshold
        self.length_tolerance = length_tolerance

        self._pending: Dict[int, Future] = {}
        self._lock = threading.Lock()
        self._ids = itertools.count()
        self._closed = False

        self._ready = threading.Event()
        self._init_error: Optional[str] = None
        self._stop = threading.Event()

        self.worker.start()
        self._receiver = threading.Thread(target=self._receive_loop, name="typo-ime-receiver", daemon=True)
        self._receiver.start()

    @classmethod
    def create(
        cls,
        source: DataSource,
        mode: str = 'thread',
        init_timeout: Optional[float] = 30.0,
        threshold: Optional[float] = None,
        length_tolerance: Optional[int] = None,
        **engine_options,
    ) -> "TypoClient":
        """
        Start a worker, initialize it, and return a ready client.

        Raises:
            EngineInitError: The worker reported init_error or timed out
        """
        client = cls(make_worker(mode, source, **engine_options),
                     threshold=threshold, length_tolerance=length_tolerance)
        try:
            client.initialize(timeout=init_timeout)
        except EngineInitError:
            client.terminate()
            raise
        return client

    def initialize(self, timeout: Optional[float] = 30.0) -> None:
        """Send init and block until the worker answers."""
        self._ready.clear()
        self._init_error = None
        self.worker.post(Init().to_wire())

        if not self._ready.wait(timeout):
            raise EngineInitError(f"Engine did not initialize within {timeout}s")
        if self._init_error is not None:
            raise EngineInitError(self._init_error)
        logger.info("Worker initialized successfully.")

    @property
    def ready(self) -> bool:
        return self._ready.is_set() and self._init_error is None

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    def search(
        self,
        query: str,
        key: str = 'pinyin',
        threshold: Optional[float] = None,
        length_tolerance: Optional[int] = None,
        previous_word_hanzi: Optional[str] = None,
    ) -> "Future[List[SearchResult]]":
        """
        Send a search and return its Future immediately.

        Safe to call from any number of threads without waiting for earlier
        searches.

        Raises:
            EngineTerminatedError: The client has been terminated
        """
        future: Future = Future()
        with self._lock:
            if self._closed:
                raise EngineTerminatedError("Client has been terminated")
            search_id = next(self._ids)
            self._pending[search_id] = future

        message = Search(
            search_id=search_id,
            query=query,
            key=key,
            threshold=threshold if threshold is not None else self.threshold,
            length_tolerance=length_tolerance if length_tolerance is not None else self.length_tolerance,
            previous_word_hanzi=previous_word_hanzi,
        )
        self.worker.post(message.to_wire())
        return future

    async def asearch(self, query: str, **kwargs) -> List[SearchResult]:
        """asyncio-friendly search()."""
        return await asyncio.wrap_future(self.search(query, **kwargs))

    def handle_message(self, data) -> None:
        """
        Process one reply from the worker.

        Replies whose searchId is not pending (duplicates, late replies after
        termination) are discarded.
        """
        try:
            message = decode_message(data)
        except ProtocolError as e:
            future = self._pop_for(data)
            if future is not None:
                _settle(future, exception=e)
            else:
                logger.warning("Ignoring undecodable reply: %s", e)
            return

        if isinstance(message, InitSuccess):
            self._init_error = None
            self._ready.set()
        elif isinstance(message, InitError):
            logger.error("Worker failed to initialize: %s", message.error)
            self._init_error = message.error
            self._ready.set()
        elif isinstance(message, SearchResults):
            future = self._pop(message.search_id)
            if future is not None:
                _settle(future, result=message.results)
        elif isinstance(message, SearchError):
            future = self._pop(message.search_id)
            if future is not None:
                error_cls = EngineNotReadyError if message.not_ready else SearchFailedError
                _settle(future, exception=error_cls(message.error))
        else:
            logger.warning("Client ignoring %s message", message.type)

    def _pop(self, search_id: int) -> Optional[Future]:
        with self._lock:
            future = self._pending.pop(search_id, None)
        if future is None:
            logger.debug("No pending search %d; reply discarded", search_id)
        return future

    def _pop_for(self, data) -> Optional[Future]:
        search_id = data.get('searchId') if isinstance(data, dict) else None
        if not isinstance(search_id, int) or isinstance(search_id, bool):
            return None
        return self._pop(search_id)

    def _receive_loop(self) -> None:
        while not self._stop.is_set():
            try:
                data = self.worker.receive(timeout=POLL_INTERVAL)
            except queue.Empty:
                continue
            self.handle_message(data)

    def terminate(self) -> None:
        """
        Stop the worker and reject every pending search.

        There is no handshake: searches still in the worker are abandoned and
        their Futures fail with EngineTerminatedError.
        """
        with self._lock:
            if self._closed:
                return
            self._closed = True
            pending, self._pending = self._pending, {}

        self._stop.set()
        if self._receiver is not threading.current_thread():
            self._receiver.join()
        self.worker.terminate()

        for search_id, future in pending.items():
            _settle(future, exception=EngineTerminatedError(f"Engine terminated before search {search_id} completed"))
        if pending:
            logger.info("Rejected %d pending searches on terminate", len(pending))

    def __enter__(self) -> "TypoClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.terminate()
