"""Orchestrator: one cancellable online search at a time.

Data flow:
  1. start(term) validates the term, closes the previous search's signal,
     and schedules a background task under a fresh signal
  2. Client search (send, read, decode, map), checking the signal throughout
  3. Dedup against a store snapshot by (title, company), once per record
  4. Outcome handed to the foreground through ``dispatch``
  5. Final cancellation check on the foreground, then ``on_outcome``

A closed signal always wins: a late success or a late error of a cancelled
search is reported as cancelled. Nothing raised in the background task
crosses into the foreground; every failure becomes an outcome.
"""

import asyncio
import logging
from collections.abc import Callable

from src.core.cancellation import CancellationSignal
from src.core.errors import SearchCancelled, SearchError
from src.core.schemas import (
    CancelledOutcome,
    FailedOutcome,
    ResultsOutcome,
    SearchOutcome,
    Vacancy,
)
from src.core.store import VacancyStore
from src.platforms.base import SearchClient

logger = logging.getLogger(__name__)

OutcomeCallback = Callable[[SearchOutcome], None]
# Runs a callable on the foreground execution context.
Dispatcher = Callable[[Callable[[], None]], None]


class SearchHandle:
    """One online search invocation.

    ``await handle.wait()`` returns the outcome once it has been handed to
    the foreground (or dropped as stale).
    """

    def __init__(self, term: str, loop: asyncio.AbstractEventLoop) -> None:
        self.term = term
        self.signal = CancellationSignal()
        self._loop = loop
        self._finished: asyncio.Future[SearchOutcome] = loop.create_future()
        self.task: asyncio.Task[None] | None = None

    @property
    def done(self) -> bool:
        return self._finished.done()

    def cancel(self) -> bool:
        """Close this search's signal. Safe to call repeatedly and from any thread."""
        return self.signal.close()

    async def wait(self) -> SearchOutcome:
        return await asyncio.shield(self._finished)

    def mark_finished(self, outcome: SearchOutcome) -> None:
        def resolve() -> None:
            if not self._finished.done():
                self._finished.set_result(outcome)

        self._loop.call_soon_threadsafe(resolve)


class SearchOrchestrator:
    """Coordinates online searches and their delivery to the foreground.

    Usage::

        orchestrator = SearchOrchestrator(client, store, on_outcome=show)
        handle = orchestrator.start("python developer")
        ...
        orchestrator.cancel()   # cancel button
        orchestrator.leave()    # back to the local list
    """

    def __init__(
        self,
        client: SearchClient,
        store: VacancyStore,
        on_outcome: OutcomeCallback,
        dispatch: Dispatcher | None = None,
    ) -> None:
        self._client = client
        self._store = store
        self._on_outcome = on_outcome
        self._dispatch = dispatch
        self._current: SearchHandle | None = None

    @property
    def current(self) -> SearchHandle | None:
        return self._current

    def start(self, term: str) -> SearchHandle:
        """Start an online search. Must be called from the running event loop.

        Raises ValueError for an empty term; no task is created in that case.
        Any previous search still in flight is cancelled and its outcome is
        never published.
        """
        term = term.strip()
        if not term:
            msg = "search term must not be empty"
            raise ValueError(msg)

        loop = asyncio.get_running_loop()
        previous = self._current
        if previous is not None and previous.cancel():
            logger.info("Cancelled previous search for '%s'", previous.term)

        handle = SearchHandle(term, loop)
        self._current = handle
        dispatch = self._dispatch or loop.call_soon_threadsafe
        handle.task = loop.create_task(
            self._run(handle, dispatch), name=f"online-search:{term}",
        )
        return handle

    def cancel(self) -> None:
        """Cancel the current search, if any. Idempotent."""
        handle = self._current
        if handle is not None and handle.cancel():
            logger.info("Cancelling online search for '%s'", handle.term)

    def leave(self) -> None:
        """Leave online mode: cancel and forget the current search."""
        self.cancel()
        self._current = None

    async def _run(self, handle: SearchHandle, dispatch: Dispatcher) -> None:
        try:
            outcome = await self._resolve(handle)
        except asyncio.CancelledError:
            # The task itself was cancelled (task.cancel(), loop shutdown).
            handle.signal.close()
            logger.info("Online search task for '%s' was cancelled", handle.term)
            dispatch(lambda: self._publish(handle, CancelledOutcome()))
            raise
        dispatch(lambda: self._publish(handle, outcome))

    async def _resolve(self, handle: SearchHandle) -> SearchOutcome:
        signal = handle.signal
        try:
            found = await self._client.search(handle.term, signal)
            fresh = self._drop_known(found, signal)
        except SearchCancelled as e:
            logger.info("Online search for '%s' cancelled: %s", handle.term, e)
            return CancelledOutcome()
        except SearchError as e:
            if signal.closed:
                return CancelledOutcome()
            logger.warning("Online search for '%s' failed: %s", handle.term, e)
            return FailedOutcome(detail=str(e))
        except Exception as e:
            if signal.closed:
                return CancelledOutcome()
            logger.exception("Unexpected error in online search for '%s'", handle.term)
            return FailedOutcome(detail=f"unexpected error: {e}")

        if signal.closed:
            return CancelledOutcome()
        logger.info(
            "Online search for '%s': %d found, %d new", handle.term, len(found), len(fresh),
        )
        return ResultsOutcome(vacancies=fresh)

    def _drop_known(self, found: list[Vacancy], signal: CancellationSignal) -> list[Vacancy]:
        """Drop vacancies already in the local list, keeping upstream order."""
        known = {v.key for v in self._store.snapshot()}
        fresh: list[Vacancy] = []
        for vacancy in found:
            signal.raise_if_closed("while filtering results")
            if vacancy.key not in known:
                fresh.append(vacancy)
        dropped = len(found) - len(fresh)
        if dropped:
            logger.debug("Dropped %d vacancies already in the local list", dropped)
        return fresh

    def _publish(self, handle: SearchHandle, outcome: SearchOutcome) -> None:
        """Runs on the foreground: last cancellation check, then the callback."""
        if handle.signal.closed and not isinstance(outcome, CancelledOutcome):
            outcome = CancelledOutcome()
        try:
            if handle is not self._current:
                logger.info("Dropping outcome of superseded search for '%s'", handle.term)
                return
            self._on_outcome(outcome)
        finally:
            handle.mark_finished(outcome)


def describe_outcome(term: str, outcome: SearchOutcome) -> str:
    """User-facing status line for a search outcome."""
    if isinstance(outcome, CancelledOutcome):
        return f"Online search for '{term}' cancelled."
    if isinstance(outcome, FailedOutcome):
        return f"Online search failed: {outcome.detail}"
    if not outcome.vacancies:
        return f"Online search for '{term}' returned no new results."
    return f"Found online (new): {len(outcome.vacancies)}"
