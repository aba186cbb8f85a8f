import pytest

from maps_reviews.errors import ConfigurationError
from maps_reviews.models.session import StopReason
from maps_reviews.scraper.pagination import PaginationController, PaginationState
from maps_reviews.scraper.resolver import CardSelectorResolver


def _growing_states(card_factory, page_factory, *, steps: int, per_step: int) -> list[str]:
    return [
        page_factory([card_factory(f"r{index}") for index in range(per_step * (step + 1))])
        for step in range(steps)
    ]


@pytest.mark.asyncio
async def test_stops_after_three_unchanged_measurements(card_factory, page_factory, document_factory) -> None:
    document = document_factory([page_factory([card_factory(f"r{index}") for index in range(8)])])
    controller = PaginationController(document, CardSelectorResolver(), target_cap=100, settle_ms=0)

    result = await controller.run()

    assert result.reason is StopReason.NO_PROGRESS
    assert result.observed_count == 8
    assert result.iterations == 4
    assert len(document.scroll_calls) == 3
    assert controller.state is PaginationState.STOPPED


@pytest.mark.asyncio
async def test_stops_when_cap_is_reached(card_factory, page_factory, document_factory) -> None:
    document = document_factory(_growing_states(card_factory, page_factory, steps=5, per_step=2))
    controller = PaginationController(document, CardSelectorResolver(), target_cap=5, settle_ms=0)

    result = await controller.run()

    assert result.reason is StopReason.CAP_REACHED
    assert result.observed_count == 6
    assert result.iterations == 3
    assert result.selector == "div.jftiEf[data-review-id]"


@pytest.mark.asyncio
async def test_stops_at_iteration_ceiling(card_factory, page_factory, document_factory) -> None:
    document = document_factory(_growing_states(card_factory, page_factory, steps=20, per_step=1))
    controller = PaginationController(document, CardSelectorResolver(), target_cap=50, settle_ms=0)

    result = await controller.run()

    assert controller.iteration_ceiling == 10
    assert result.reason is StopReason.ITERATION_LIMIT
    assert result.iterations == 10
    assert result.observed_count == 10


@pytest.mark.asyncio
async def test_empty_page_stalls_without_selector(page_factory, document_factory) -> None:
    document = document_factory([page_factory([])])
    controller = PaginationController(document, CardSelectorResolver(), target_cap=10, settle_ms=250)

    result = await controller.run()

    assert result.reason is StopReason.NO_PROGRESS
    assert result.selector is None
    assert result.iterations == 3
    assert document.scroll_calls == [None, None]
    assert document.sleeps == [250, 250]


def test_non_positive_cap_is_rejected(document_factory) -> None:
    with pytest.raises(ConfigurationError):
        PaginationController(document_factory([]), CardSelectorResolver(), target_cap=0)
