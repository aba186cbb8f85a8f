from __future__ import annotations

import logging
import math
from enum import Enum

from maps_reviews.errors import ConfigurationError
from maps_reviews.models.session import PaginationResult, StopReason
from maps_reviews.scraper.document import ReviewDocument
from maps_reviews.scraper.resolver import CardSelectorResolver

LOGGER = logging.getLogger(__name__)


class PaginationState(str, Enum):
    MEASURING = "measuring"
    SCROLLING = "scrolling"
    WAITING = "waiting"
    STOPPED = "stopped"


class PaginationController:
    """Scrolls the reviews panel until enough cards are loaded or loading stalls.

    Cycle: measure -> scroll -> wait -> measure. Stops when the measured card
    count reaches ``target_cap``, when it stays unchanged for ``stall_limit``
    consecutive measurements, or after ``ceil(target_cap / items_per_batch) + 5``
    measurements. Every stop reason is a normal termination.
    """

    def __init__(
        self,
        document: ReviewDocument,
        resolver: CardSelectorResolver,
        *,
        target_cap: int,
        settle_ms: int = 1500,
        stall_limit: int = 3,
        items_per_batch: int = 10,
    ) -> None:
        if target_cap <= 0:
            raise ConfigurationError("Pagination target cap must be a positive integer.")

        self._document = document
        self._resolver = resolver
        self._target_cap = target_cap
        self._settle_ms = max(0, settle_ms)
        self._stall_limit = max(1, stall_limit)
        self._iteration_ceiling = math.ceil(target_cap / max(1, items_per_batch)) + 5
        self._state = PaginationState.MEASURING

    @property
    def state(self) -> PaginationState:
        return self._state

    @property
    def iteration_ceiling(self) -> int:
        return self._iteration_ceiling

    async def run(self) -> PaginationResult:
        self._state = PaginationState.MEASURING
        previous_count = 0
        stall_count = 0
        iterations = 0
        selector: str | None = None
        observed_count = 0

        while True:
            if self._state is PaginationState.MEASURING:
                if iterations >= self._iteration_ceiling:
                    return self._stop(StopReason.ITERATION_LIMIT, selector, observed_count, iterations)

                iterations += 1
                selector, observed_count = await self._resolver.resolve(self._document)

                if observed_count >= self._target_cap:
                    return self._stop(StopReason.CAP_REACHED, selector, observed_count, iterations)

                if observed_count == previous_count:
                    stall_count += 1
                    if stall_count >= self._stall_limit:
                        return self._stop(StopReason.NO_PROGRESS, selector, observed_count, iterations)
                else:
                    stall_count = 0
                    if iterations % 5 == 1:
                        LOGGER.info("Loaded %s review cards so far...", observed_count)

                previous_count = observed_count
                self._state = PaginationState.SCROLLING

            elif self._state is PaginationState.SCROLLING:
                await self._document.scroll_to_end(selector)
                self._state = PaginationState.WAITING

            elif self._state is PaginationState.WAITING:
                await self._document.sleep(self._settle_ms)
                self._state = PaginationState.MEASURING

    def _stop(
        self,
        reason: StopReason,
        selector: str | None,
        observed_count: int,
        iterations: int,
    ) -> PaginationResult:
        self._state = PaginationState.STOPPED
        LOGGER.info(
            "Pagination stopped: reason=%s cards=%s iterations=%s selector=%s",
            reason.value,
            observed_count,
            iterations,
            selector,
        )
        return PaginationResult(
            reason=reason,
            selector=selector,
            observed_count=observed_count,
            iterations=iterations,
        )
