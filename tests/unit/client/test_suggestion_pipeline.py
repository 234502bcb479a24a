"""Unit tests for the SuggestionPipeline state machine and ordering guarantee."""

from __future__ import annotations

import asyncio

import pytest

from storefront_search.adapters.state_storage import InMemoryStateStorage
from storefront_search.client.history import SearchHistory
from storefront_search.client.suggestions import SuggestionPipeline, SuggestionState
from storefront_search.domain.errors import StoreUnavailableError
from storefront_search.domain.model import Category, ProductSummary


def _summary(name: str, rating: float = 0) -> ProductSummary:
    return ProductSummary(
        id=name.lower().replace(" ", "-"),
        name=name,
        category=Category.CLOTHING,
        price=100,
        rating=rating,
        image=f"{name}.jpg",
    )


class GatedSource:
    """Suggest source whose responses are released manually per term."""

    def __init__(self, results: dict[str, list[ProductSummary]]) -> None:
        self.results = results
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[str] = []

    def release(self, term: str) -> None:
        self.gates.setdefault(term, asyncio.Event()).set()

    async def suggest(self, term: str) -> list[ProductSummary]:
        self.calls.append(term)
        await self.gates.setdefault(term, asyncio.Event()).wait()
        return self.results.get(term, [])


class ImmediateSource:
    def __init__(self, results: list[ProductSummary] | None = None, error: Exception | None = None) -> None:
        self.results = results or []
        self.error = error
        self.calls: list[str] = []

    async def suggest(self, term: str) -> list[ProductSummary]:
        self.calls.append(term)
        if self.error is not None:
            raise self.error
        return self.results


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stale_response_arriving_last_is_discarded():
    source = GatedSource({"a": [_summary("Apple")], "ab": [_summary("Abacus")]})
    pipeline = SuggestionPipeline(source)

    first = asyncio.create_task(pipeline.dispatch("a"))
    await asyncio.sleep(0)
    second = asyncio.create_task(pipeline.dispatch("ab"))
    await asyncio.sleep(0)

    source.release("ab")
    newer = await second
    source.release("a")
    older = await first

    assert [s.name for s in pipeline.suggestions] == ["Abacus"]
    assert newer.state is SuggestionState.SETTLED
    assert older.state is SuggestionState.CANCELLED
    assert pipeline.state is SuggestionState.SETTLED


@pytest.mark.unit
@pytest.mark.asyncio
async def test_stale_response_arriving_first_is_discarded():
    source = GatedSource({"a": [_summary("Apple")], "ab": [_summary("Abacus")]})
    pipeline = SuggestionPipeline(source)

    first = asyncio.create_task(pipeline.dispatch("a"))
    await asyncio.sleep(0)
    second = asyncio.create_task(pipeline.dispatch("ab"))
    await asyncio.sleep(0)

    source.release("a")
    assert (await first).state is SuggestionState.CANCELLED
    assert pipeline.suggestions == ()
    assert pipeline.state is SuggestionState.IN_FLIGHT

    source.release("ab")
    await second
    assert [s.name for s in pipeline.suggestions] == ["Abacus"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_debounce_coalesces_keystrokes_into_one_call():
    source = ImmediateSource([_summary("Red Shoe", 4)])
    pipeline = SuggestionPipeline(source, delay=0.01)

    for raw in ["s", "sh", "sho", "shoe"]:
        pipeline.on_input(raw)
        assert pipeline.raw_term == raw
        assert pipeline.state is SuggestionState.DEBOUNCING

    await asyncio.sleep(0.05)
    await pipeline.settle()

    assert source.calls == ["shoe"]
    assert pipeline.state is SuggestionState.SETTLED
    assert [s.name for s in pipeline.suggestions] == ["Red Shoe"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_term_is_trimmed_before_dispatch():
    source = ImmediateSource()
    pipeline = SuggestionPipeline(source, delay=0)

    pipeline.on_input("  shoe  ")
    await asyncio.sleep(0.01)
    await pipeline.settle()

    assert source.calls == ["shoe"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_blank_input_clears_without_calling_source():
    source = ImmediateSource([_summary("Red Shoe")])
    pipeline = SuggestionPipeline(source, delay=0)
    pipeline.on_input("shoe")
    await asyncio.sleep(0.01)
    await pipeline.settle()
    assert pipeline.suggestions

    pipeline.on_input("   ")
    await asyncio.sleep(0.01)

    assert source.calls == ["shoe"]
    assert pipeline.suggestions == ()
    assert pipeline.state is SuggestionState.IDLE


@pytest.mark.unit
@pytest.mark.asyncio
async def test_response_for_superseded_term_is_ignored_while_debouncing():
    source = GatedSource({"sh": [_summary("Shirt")]})
    pipeline = SuggestionPipeline(source, delay=10)

    request = asyncio.create_task(pipeline.dispatch("sh"))
    await asyncio.sleep(0)
    pipeline.on_input("shoe")
    source.release("sh")

    assert (await request).state is SuggestionState.CANCELLED
    assert pipeline.state is SuggestionState.DEBOUNCING
    assert pipeline.suggestions == ()
    await pipeline.aclose()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_failure_clears_suggestions_and_notifies_observer():
    failures = []
    source = ImmediateSource(error=StoreUnavailableError("Catalog API unreachable"))
    history = SearchHistory(InMemoryStateStorage())
    pipeline = SuggestionPipeline(source, history, on_failure=failures.append)

    request = await pipeline.dispatch("shoe")

    assert request.state is SuggestionState.FAILED
    assert pipeline.state is SuggestionState.FAILED
    assert pipeline.suggestions == ()
    assert [type(exc) for exc in failures] == [StoreUnavailableError]
    assert history.list() == ()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unexpected_source_error_is_a_failed_request():
    failures = []
    source = ImmediateSource([_summary("X-Ray Lamp")])
    pipeline = SuggestionPipeline(source, on_failure=failures.append)
    await pipeline.dispatch("x")

    source.error = RuntimeError("decode blew up")
    request = await pipeline.dispatch("y")

    assert request.state is SuggestionState.FAILED
    assert pipeline.state is SuggestionState.FAILED
    assert pipeline.suggestions == ()
    assert failures[0].detail == "decode blew up"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unexpected_error_from_superseded_request_is_discarded():
    class FlakySource(GatedSource):
        async def suggest(self, term: str) -> list[ProductSummary]:
            results = await super().suggest(term)
            if term == "a":
                raise RuntimeError("late crash")
            return results

    source = FlakySource({"ab": [_summary("Abacus")]})
    pipeline = SuggestionPipeline(source)

    first = asyncio.create_task(pipeline.dispatch("a"))
    await asyncio.sleep(0)
    second = asyncio.create_task(pipeline.dispatch("ab"))
    await asyncio.sleep(0)
    source.release("ab")
    await second
    source.release("a")
    older = await first

    assert older.state is SuggestionState.CANCELLED
    assert pipeline.state is SuggestionState.SETTLED
    assert [s.name for s in pipeline.suggestions] == ["Abacus"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_results_are_truncated_to_limit():
    source = ImmediateSource([_summary(f"Item {i}") for i in range(8)])
    pipeline = SuggestionPipeline(source, limit=5)

    await pipeline.dispatch("item")

    assert len(pipeline.suggestions) == 5


@pytest.mark.unit
@pytest.mark.asyncio
async def test_commit_records_history_and_returns_to_idle():
    history = SearchHistory(InMemoryStateStorage())
    source = ImmediateSource([_summary("Red Shoe")])
    pipeline = SuggestionPipeline(source, history, delay=0)
    pipeline.on_input("  Shoe ")
    await asyncio.sleep(0.01)
    await pipeline.settle()

    assert await pipeline.commit() is True

    assert history.list() == ("Shoe",)
    assert pipeline.state is SuggestionState.IDLE
    assert pipeline.suggestions == ()
    assert pipeline.raw_term == "  Shoe "


@pytest.mark.unit
@pytest.mark.asyncio
async def test_commit_of_blank_term_is_rejected():
    history = SearchHistory(InMemoryStateStorage())
    pipeline = SuggestionPipeline(ImmediateSource(), history)

    assert await pipeline.commit("   ") is False
    assert history.list() == ()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_commit_discards_in_flight_response():
    source = GatedSource({"sho": [_summary("Shoe Rack")]})
    history = SearchHistory(InMemoryStateStorage())
    pipeline = SuggestionPipeline(source, history)

    request = asyncio.create_task(pipeline.dispatch("sho"))
    await asyncio.sleep(0)
    await pipeline.commit("sho")
    source.release("sho")

    assert (await request).state is SuggestionState.CANCELLED
    assert pipeline.state is SuggestionState.IDLE
    assert pipeline.suggestions == ()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_select_fills_input_with_product_name():
    history = SearchHistory(InMemoryStateStorage())
    pipeline = SuggestionPipeline(ImmediateSource(), history)

    await pipeline.select(_summary("Blue Shoe"))

    assert pipeline.raw_term == "Blue Shoe"
    assert history.list() == ("Blue Shoe",)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_focus_on_empty_input_shows_history():
    history = SearchHistory(InMemoryStateStorage())
    await history.record_term("boots")
    pipeline = SuggestionPipeline(ImmediateSource(), history, delay=10)

    assert pipeline.focus() == ("boots",)
    assert pipeline.showing_history is True

    pipeline.choose_history("boots")

    assert pipeline.showing_history is False
    assert pipeline.raw_term == "boots"
    assert pipeline.state is SuggestionState.DEBOUNCING
    assert history.list() == ("boots",)
    assert pipeline.focus() == ()
    await pipeline.aclose()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_on_change_fires_only_when_visible_suggestions_change():
    changes = []
    source = ImmediateSource([_summary("Red Shoe")])
    pipeline = SuggestionPipeline(source, on_change=changes.append)

    await pipeline.dispatch("shoe")
    await pipeline.dispatch("shoe")
    pipeline.clear()

    assert [[s.name for s in change] for change in changes] == [["Red Shoe"], []]


@pytest.mark.unit
def test_negative_delay_is_rejected():
    with pytest.raises(ValueError):
        SuggestionPipeline(ImmediateSource(), delay=-1)
