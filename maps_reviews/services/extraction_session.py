from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from maps_reviews.errors import UnresolvableSelectorError
from maps_reviews.models.session import SessionResult
from maps_reviews.pipeline.accumulator import OfferOutcome, ReviewAccumulator
from maps_reviews.pipeline.normalizer import ReviewNormalizer
from maps_reviews.scraper.document import ReviewDocument
from maps_reviews.scraper.extractor import ReviewFieldExtractor
from maps_reviews.scraper.pagination import PaginationController
from maps_reviews.scraper.resolver import CardSelectorResolver
from maps_reviews.scraper.selectors import SELECTOR_PATTERNS

LOGGER = logging.getLogger(__name__)


class ExtractionSession:
    """Extracts reviews from one already-opened place page.

    Every collaborator that carries state (resolver, pagination counters,
    accumulator) is created per session, so independent sessions on
    independent documents share nothing.
    """

    def __init__(
        self,
        document: ReviewDocument,
        *,
        target_url: str,
        max_items: int,
        settle_ms: int = 1500,
        expand_settle_ms: int = 500,
        normalizer: ReviewNormalizer | None = None,
        extractor: ReviewFieldExtractor | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._document = document
        self._target_url = target_url
        self._max_items = max_items
        self._settle_ms = settle_ms
        self._expand_settle_ms = expand_settle_ms
        self._normalizer = normalizer or ReviewNormalizer()
        self._extractor = extractor or ReviewFieldExtractor()
        self._clock = clock or (lambda: datetime.now(timezone.utc))

        self._resolver = CardSelectorResolver()
        self._accumulator = ReviewAccumulator(max_items)

    async def run(self) -> SessionResult:
        controller = PaginationController(
            self._document,
            self._resolver,
            target_cap=self._max_items,
            settle_ms=self._settle_ms,
        )
        pagination = await controller.run()
        if pagination.selector is None:
            raise UnresolvableSelectorError(f"No review card selector matched on {self._target_url}.")

        await self._expand_truncated_text(pagination.selector)

        snapshots = await self._document.outer_html_all(pagination.selector)
        reference = self._clock()
        extraction = self._extractor.extract_all(snapshots, observed_at=reference)
        LOGGER.info(
            "Extracted %s reviews from %s cards (%s invalid, %s malformed)",
            len(extraction.records),
            len(snapshots),
            extraction.invalid_cards,
            extraction.malformed_cards,
        )

        duplicates = 0
        for record in extraction.records:
            if record.identity in self._accumulator:
                duplicates += 1
                continue

            review = self._normalizer.normalize(record, reference=reference, review_url=self._target_url)
            if self._accumulator.offer(review) is OfferOutcome.CAP_REACHED:
                break

        LOGGER.info("Total collected: %s/%s", len(self._accumulator), self._max_items)
        return SessionResult(
            target_url=self._target_url,
            reviews=self._accumulator.items,
            selector=pagination.selector,
            stop_reason=pagination.reason,
            cards_seen=len(snapshots),
            invalid_cards=extraction.invalid_cards + extraction.malformed_cards,
            duplicates=duplicates,
        )

    async def _expand_truncated_text(self, card_selector: str) -> None:
        selectors = [f"{card_selector} {button}" for button in SELECTOR_PATTERNS["REVIEW_EXPAND"]]
        try:
            clicked = await self._document.click_all(selectors, max_clicks=self._max_items * 2)
        except Exception:
            LOGGER.warning("Expanding truncated reviews failed; extracting visible text.", exc_info=True)
            return

        if clicked:
            LOGGER.info("Expanded %s truncated reviews", clicked)
            await self._document.sleep(self._expand_settle_ms)
