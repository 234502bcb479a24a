"""Suggestion Pipeline - debounced, race-free autosuggest for one input field.

Keystrokes update the raw term immediately and (re)start a debounce timer.
When the timer fires, one suggest request is dispatched carrying a
monotonically increasing token. A response is applied only if its token is
still the latest one issued; anything older is discarded on arrival, in
whatever order responses come back. In-flight requests are never aborted,
only ignored.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
import logging
from typing import Protocol

from storefront_search.client.history import SearchHistory
from storefront_search.domain.errors import CatalogError, StoreUnavailableError
from storefront_search.domain.model import ProductSummary
from storefront_search.observability.metrics import SUGGESTION_OUTCOMES


logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE_SECONDS = 0.3
DEFAULT_SUGGESTION_LIMIT = 5


class SuggestionState(str, Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    IN_FLIGHT = "in_flight"
    SETTLED = "settled"
    CANCELLED = "cancelled"
    FAILED = "failed"


class SuggestionSource(Protocol):
    """Anything that can answer a suggest query (service or API client)."""

    async def suggest(self, term: str) -> Sequence[ProductSummary]: ...


@dataclass
class SuggestionRequest:
    """One dispatched suggest call and how it ended."""

    token: int
    term: str
    state: SuggestionState = SuggestionState.IN_FLIGHT


class SuggestionPipeline:
    """State machine behind a search box.

    ``state`` follows the latest request: Idle, then Debouncing, then InFlight,
    then Settled or Failed. It rests there until the next keystroke. Superseded
    requests end as Cancelled without touching visible state.
    """

    def __init__(
        self,
        source: SuggestionSource,
        history: SearchHistory | None = None,
        *,
        delay: float = DEFAULT_DEBOUNCE_SECONDS,
        limit: int = DEFAULT_SUGGESTION_LIMIT,
        on_change: Callable[[tuple[ProductSummary, ...]], None] | None = None,
        on_failure: Callable[[CatalogError], None] | None = None,
    ) -> None:
        if delay < 0:
            raise ValueError("delay must not be negative")
        self._source = source
        self._history = history
        self._delay = delay
        self._limit = limit
        self._on_change = on_change
        self._on_failure = on_failure

        self._raw_term = ""
        self._suggestions: tuple[ProductSummary, ...] = ()
        self._state = SuggestionState.IDLE
        self._latest_token = 0
        self._timer: asyncio.TimerHandle | None = None
        self._tasks: set[asyncio.Task] = set()
        self.showing_history = False

    @property
    def raw_term(self) -> str:
        return self._raw_term

    @property
    def suggestions(self) -> tuple[ProductSummary, ...]:
        return self._suggestions

    @property
    def state(self) -> SuggestionState:
        return self._state

    @property
    def latest_token(self) -> int:
        return self._latest_token

    def on_input(self, raw: str) -> None:
        """Record a keystroke and restart the debounce timer.

        A blank term clears suggestions at once; no request is scheduled.
        """
        self._raw_term = raw
        self._cancel_timer()
        if not raw.strip():
            self._skip()
            return
        self.showing_history = False
        # Responses for the previous term are stale once the term changes
        self._latest_token += 1
        self._state = SuggestionState.DEBOUNCING
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self._delay, self._fire)

    def _fire(self) -> None:
        self._timer = None
        term = self._raw_term.strip()
        if not term:
            self._skip()
            return
        task = asyncio.get_running_loop().create_task(self.dispatch(term))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def dispatch(self, term: str) -> SuggestionRequest:
        """Issue one suggest call and apply its result only if it is still current."""
        self._latest_token += 1
        request = SuggestionRequest(token=self._latest_token, term=term)
        self._state = SuggestionState.IN_FLIGHT

        try:
            results = await self._source.suggest(term)
        except CatalogError as exc:
            return self._fail(request, exc)
        except Exception as exc:
            return self._fail(request, StoreUnavailableError("Suggestion query failed", detail=str(exc)))

        if request.token != self._latest_token:
            return self._discard(request)

        request.state = SuggestionState.SETTLED
        self._state = SuggestionState.SETTLED
        self._set_suggestions(tuple(results)[: self._limit])
        SUGGESTION_OUTCOMES.labels(outcome="settled").inc()
        return request

    async def commit(self, term: str | None = None) -> bool:
        """Confirm ``term`` (default: the raw term), record it in history and go Idle."""
        chosen = self._raw_term if term is None else term
        cleaned = chosen.strip()
        if not cleaned:
            return False
        self._raw_term = chosen
        self._reset(SuggestionState.IDLE)
        if self._history is not None:
            await self._history.record_term(cleaned)
        return True

    async def select(self, suggestion: ProductSummary) -> bool:
        """Pick a suggestion: the input takes the product name, which is committed."""
        return await self.commit(suggestion.name)

    def focus(self) -> tuple[str, ...]:
        """Show search history when the field is focused while empty."""
        if self._raw_term.strip() or self._history is None:
            self.showing_history = False
            return ()
        terms = self._history.list()
        self.showing_history = bool(terms)
        return terms

    def choose_history(self, term: str) -> None:
        """Fill the input from a history entry without recording it again."""
        self.showing_history = False
        self.on_input(term)

    def clear(self) -> None:
        self._raw_term = ""
        self._reset(SuggestionState.IDLE)

    async def settle(self) -> None:
        """Wait for every dispatched request to finish (applied or discarded)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def aclose(self) -> None:
        self._cancel_timer()
        await self.settle()

    def _skip(self) -> None:
        self._reset(SuggestionState.IDLE)
        SUGGESTION_OUTCOMES.labels(outcome="skipped").inc()

    def _reset(self, state: SuggestionState) -> None:
        self._cancel_timer()
        # Any response still in flight is now stale
        self._latest_token += 1
        self._state = state
        self.showing_history = False
        self._set_suggestions(())

    def _fail(self, request: SuggestionRequest, exc: CatalogError) -> SuggestionRequest:
        if request.token != self._latest_token:
            return self._discard(request)
        request.state = SuggestionState.FAILED
        self._state = SuggestionState.FAILED
        self._set_suggestions(())
        SUGGESTION_OUTCOMES.labels(outcome="failed").inc()
        logger.warning(
            "Suggestions unavailable for %r: %s", request.term, exc.message, extra={"error_type": exc.error_type}
        )
        if self._on_failure is not None:
            self._on_failure(exc)
        return request

    def _discard(self, request: SuggestionRequest) -> SuggestionRequest:
        request.state = SuggestionState.CANCELLED
        SUGGESTION_OUTCOMES.labels(outcome="cancelled").inc()
        logger.debug("Discarded stale suggestions for %r (token %d)", request.term, request.token)
        return request

    def _set_suggestions(self, suggestions: tuple[ProductSummary, ...]) -> None:
        if suggestions == self._suggestions:
            return
        self._suggestions = suggestions
        if self._on_change is not None:
            self._on_change(suggestions)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
