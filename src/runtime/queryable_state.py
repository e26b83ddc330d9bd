"""
Background learner with a "latest value wins" query link.

A worker thread exclusively owns a learner state and keeps calling
``update(state, rng)``. Other threads never touch that state; they talk to
the worker through two small bounded queues:

    requests   client -> worker   GetState() | SetState(new_state)
    responses  worker -> client   deep-copied snapshots of the state

Between updates the worker drains every pending request, applying
replacements and answering at most one query. A response nobody collected
is replaced by the newer one. Closing the link stops the worker at its next
iteration; any later client call raises ChannelClosedError. Dropping every
client handle without closing also stops the worker, since it only keeps a
weak reference to the link. An exception in ``update`` stops the worker and
is re-raised on the client's next call.
"""

from __future__ import annotations

import copy
import queue
import threading
import time
import weakref
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, Union

import numpy as np

from src.log import get_logger

logger = get_logger(__name__)

S = TypeVar("S")

_POLL_INTERVAL: float = 0.05
_REPLACE_TIMEOUT: float = 1.0


class ChannelClosedError(RuntimeError):
    """The worker link was closed or the worker died."""


@dataclass(frozen=True)
class GetState:
    pass


@dataclass(frozen=True)
class SetState:
    state: Any


Request = Union[GetState, SetState]


class QueryableState(Generic[S]):
    """Run ``update`` on a worker thread and expose snapshots of its state.

    Args:
        state:    Initial state, owned by the worker from now on.
        update:   Callable(state, rng) advancing the state in place.
        rng:      Generator handed to ``update``; fresh when None.
        capacity: Size of both queues (1-2 keeps it a latest-value link).

    Examples:
        >>> from src.solvers.learners import Algorithm
        >>> with QueryableState(Algorithm.MONTE_CARLO_CONTROL.initial_state(),
        ...                     lambda s, rng: s.update(rng)) as link:
        ...     snap = link.snapshot(timeout=5.0)
        >>> snap.episodes >= 0
        True
    """

    def __init__(
        self,
        state: S,
        update: Callable[[S, np.random.Generator], None],
        rng: np.random.Generator | None = None,
        capacity: int = 1,
    ) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be at least 1, got {capacity}.")
        self._state = state
        self._update = update
        self._rng = rng if rng is not None else np.random.default_rng()
        self._requests: queue.Queue[Request] = queue.Queue(maxsize=capacity)
        self._responses: queue.Queue[S] = queue.Queue(maxsize=capacity)
        self._closed = threading.Event()
        self._error: BaseException | None = None
        self._thread = threading.Thread(
            target=QueryableState._run,
            args=(weakref.ref(self),),
            name="queryable-state",
            daemon=True,
        )
        self._thread.start()
        logger.info("Worker started for %s", type(state).__name__)

    # ── Worker side ───────────────────────────────────────────────────────

    @staticmethod
    def _run(ref: weakref.ref[QueryableState]) -> None:
        # Only a weak reference is held between iterations, so dropping the
        # last client handle stops the worker.
        while True:
            link = ref()
            if link is None or link._closed.is_set():
                break
            try:
                link._update(link._state, link._rng)
                link._serve()
            except Exception as exc:
                link._error = exc
                link._closed.set()
                logger.error("Worker stopped by %r", exc)
                return
            del link
        logger.info("Worker stopped")

    def _serve(self) -> None:
        # Drain everything pending: replacements apply in order, queries are
        # answered once.
        answered = False
        while True:
            try:
                request = self._requests.get_nowait()
            except queue.Empty:
                return
            if isinstance(request, SetState):
                self._state = request.state
            elif not answered:
                self._respond(copy.deepcopy(self._state))
                answered = True

    def _respond(self, snapshot: S) -> None:
        while True:
            try:
                self._responses.put_nowait(snapshot)
                return
            except queue.Full:
                try:
                    self._responses.get_nowait()
                except queue.Empty:
                    pass

    # ── Client side ───────────────────────────────────────────────────────

    def _check_open(self) -> None:
        if self._error is not None:
            raise ChannelClosedError("Worker failed") from self._error
        if self._closed.is_set():
            raise ChannelClosedError("Worker link is closed")

    def _send(self, request: Request) -> None:
        self._check_open()
        try:
            self._requests.put_nowait(request)
        except queue.Full:
            if isinstance(request, GetState):
                return
            # A replacement must not be lost behind a pending query.
            try:
                self._requests.put(request, timeout=_REPLACE_TIMEOUT)
            except queue.Full:
                self._check_open()
                raise TimeoutError("Worker did not accept the replacement state") from None

    def request_state(self) -> None:
        """Ask for a snapshot; a request already pending makes this a no-op."""
        self._send(GetState())

    def replace_state(self, state: S) -> None:
        """Hand the worker a new state to continue from."""
        self._send(SetState(state))

    def poll(self) -> S | None:
        """Newest snapshot that has arrived, or None. Never blocks."""
        self._check_open()
        latest = None
        while True:
            try:
                latest = self._responses.get_nowait()
            except queue.Empty:
                return latest

    def snapshot(self, timeout: float | None = None) -> S:
        """Request a snapshot and wait for it.

        Snapshots that arrived earlier and were never collected are discarded
        first.

        Raises:
            ChannelClosedError: If the link is closed or the worker failed.
            TimeoutError:       If no snapshot arrives within ``timeout`` seconds.
        """
        self.poll()
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            # Re-sent every interval: a full request queue drops the query.
            self.request_state()
            try:
                return self._responses.get(timeout=_POLL_INTERVAL)
            except queue.Empty:
                self._check_open()
                if deadline is not None and time.monotonic() >= deadline:
                    raise TimeoutError(f"No snapshot within {timeout} seconds") from None

    @property
    def running(self) -> bool:
        return self._thread.is_alive()

    def close(self, timeout: float | None = 5.0) -> None:
        """Stop the worker and wait for it to exit."""
        self._closed.set()
        self._thread.join(timeout)

    def __enter__(self) -> QueryableState[S]:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
