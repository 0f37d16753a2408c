"""
Process-wide ID generator.

A single background thread owns the counter. Each ``next_id()`` call hands the
thread a reply slot and blocks on it; the thread increments the counter,
persists the new value in its own transaction and only then publishes it. The
persisted value is therefore always an upper bound on every id released, so
ids never repeat across crashes and restarts.
"""

import queue
import threading
from concurrent.futures import Future
from typing import cast

from anyrss.config import DEFAULT_ID_BASELINE
from anyrss.errors import IDGeneratorError, StorageError
from anyrss.logging import get_logger
from anyrss.storage import KVStore, Transaction
from anyrss.storage.keys import SETTINGS_BUCKET, SETTINGS_ID_KEY

logger = get_logger(__name__)

_STOP = object()


def load_counter(tx: Transaction, baseline: int = DEFAULT_ID_BASELINE) -> int:
    """
    Read the persisted counter, or ``baseline`` if none was ever written.

    Raises
    ------
    StorageError
        If the stored value is not a decimal integer.
    """
    bucket = tx.create_bucket_if_not_exists(SETTINGS_BUCKET)
    raw = bucket.get(SETTINGS_ID_KEY)
    if raw is None:
        return baseline
    try:
        return int(raw.decode("ascii"))
    except (UnicodeDecodeError, ValueError) as e:
        raise StorageError(f"corrupt id counter: {raw!r}") from e


def save_counter(tx: Transaction, value: int) -> None:
    """Persist ``value`` as the last issued id."""
    bucket = tx.create_bucket_if_not_exists(SETTINGS_BUCKET)
    bucket.put(SETTINGS_ID_KEY, str(value).encode("ascii"))


class IDGenerator:
    """
    Hands out unique, strictly increasing integer ids.

    Parameters
    ----------
    store : KVStore
        Store holding the persisted counter.
    baseline : int, optional
        Counter value for a store that has none yet (default: 1000).
    """

    def __init__(self, store: KVStore, baseline: int = DEFAULT_ID_BASELINE) -> None:
        self.store = store
        self.baseline = baseline
        self._requests: queue.SimpleQueue[object] = queue.SimpleQueue()
        self._state_lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._running = False
        self._failure: IDGeneratorError | None = None
        self._last_id: int | None = None

    def __enter__(self) -> "IDGenerator":
        self.start()
        return self

    def __exit__(self, *_exc: object) -> None:
        self.stop()

    @property
    def running(self) -> bool:
        return self._running

    @property
    def last_id(self) -> int | None:
        """Last id issued (or loaded at startup), None before ``start()``."""
        return self._last_id

    def start(self) -> None:
        """
        Load the persisted counter and start the background thread.

        Raises
        ------
        IDGeneratorError
            If the generator was already started.
        StorageError
            If the counter cannot be read.
        """
        with self._state_lock:
            if self._thread is not None:
                raise IDGeneratorError("ID generator already started")
            self._last_id = self.store.update(lambda tx: load_counter(tx, self.baseline))
            self._thread = threading.Thread(
                target=self._run, name="anyrss-idgen", daemon=True
            )
            self._running = True
            self._thread.start()
        logger.info("ID generator started", last_id=self._last_id)

    def stop(self, timeout: float | None = None) -> None:
        """
        Stop the background thread.

        Requests already queued are still served; later ``next_id()`` calls fail.
        """
        with self._state_lock:
            thread = self._thread
            if self._running:
                self._running = False
                self._requests.put(_STOP)
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        logger.info("ID generator stopped", last_id=self._last_id)

    def next_id(self) -> int:
        """
        Return the next id, blocking until it is durably persisted.

        Raises
        ------
        IDGeneratorError
            If the generator is not running or a persist has failed.
        """
        reply: Future[int] = Future()
        with self._state_lock:
            if self._failure is not None:
                raise IDGeneratorError(str(self._failure)) from self._failure
            if not self._running:
                raise IDGeneratorError("ID generator is not running")
            self._requests.put(reply)
        return reply.result()

    def _run(self) -> None:
        while True:
            item = self._requests.get()
            if item is _STOP:
                return
            reply = cast(Future[int], item)

            candidate = self._last_id + 1
            try:
                self.store.update(lambda tx: save_counter(tx, candidate))
            except Exception as e:
                self._fail(e, reply)
                return
            self._last_id = candidate
            reply.set_result(candidate)

    def _fail(self, error: Exception, reply: Future) -> None:
        """Refuse every pending and future request after a failed persist."""
        failure = IDGeneratorError(f"cannot persist id counter: {error}")
        failure.__cause__ = error
        logger.error(
            "ID generator stopped after persist failure",
            last_id=self._last_id,
            error=str(error),
            error_type=type(error).__name__,
        )
        with self._state_lock:
            self._failure = failure
            self._running = False
        reply.set_exception(failure)
        while True:
            try:
                pending = self._requests.get_nowait()
            except queue.Empty:
                return
            if isinstance(pending, Future):
                pending.set_exception(failure)
