from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from bs4 import BeautifulSoup, Tag

from maps_reviews.scraper.document import ReviewDocument
from maps_reviews.scraper.selectors import SELECTOR_PATTERNS

LOGGER = logging.getLogger(__name__)

STAR_LABEL_REGEX = re.compile(r"\b\d+(?:[.,]\d+)?\s+(?:stars?|estrellas?)\b", re.IGNORECASE)
_CLASS_NAME_REGEX = re.compile(r"^-?[A-Za-z_][\w-]*$")


def infer_card_selector(html: str, *, min_repeats: int = 2) -> str | None:
    """Guess a card-boundary selector from the shape around star-rating elements.

    Every element with a star-rating accessible label votes for the
    ``tag.class`` signature of each of its classed ancestors. A signature only
    qualifies when it occurs on at least ``min_repeats`` distinct elements.
    The winner covers the most rating elements, then has the most distinct
    occurrences, then sits furthest from the rating element.
    """
    if not html:
        return None

    soup = BeautifulSoup(html, "html.parser")
    ratings = [
        node
        for node in soup.select("[role='img'][aria-label]")
        if STAR_LABEL_REGEX.search(node.get("aria-label") or "")
    ]
    if len(ratings) < min_repeats:
        return None

    covered: dict[str, set[int]] = {}
    occurrences: dict[str, set[int]] = {}
    distance: dict[str, int] = {}

    for rating in ratings:
        depth = 0
        for ancestor in rating.parents:
            if not isinstance(ancestor, Tag) or ancestor.name == "[document]":
                break
            depth += 1
            classes = ancestor.get("class") or []
            if not classes or not _CLASS_NAME_REGEX.match(classes[0]):
                continue

            signature = f"{ancestor.name}.{classes[0]}"
            covered.setdefault(signature, set()).add(id(rating))
            occurrences.setdefault(signature, set()).add(id(ancestor))
            distance[signature] = max(distance.get(signature, 0), depth)

    candidates = [signature for signature, nodes in occurrences.items() if len(nodes) >= min_repeats]
    if not candidates:
        return None

    return max(
        candidates,
        key=lambda signature: (len(covered[signature]), len(occurrences[signature]), distance[signature]),
    )


class CardSelectorResolver:
    """Chooses the review-card selector for one session.

    The first selector that yields a positive count is adopted and kept for
    the rest of the session so measurements never oscillate between shapes.
    """

    def __init__(self, candidates: Sequence[str] | None = None) -> None:
        self._candidates = tuple(candidates or SELECTOR_PATTERNS["REVIEW_CARDS"])
        self._adopted: str | None = None

    @property
    def adopted(self) -> str | None:
        return self._adopted

    async def resolve(self, document: ReviewDocument) -> tuple[str | None, int]:
        if self._adopted is not None:
            return self._adopted, await self._safe_count(document, self._adopted)

        for selector in self._candidates:
            count = await self._safe_count(document, selector)
            if count > 0:
                return self._adopt(selector, count)

        inferred = infer_card_selector(await document.content())
        if inferred is not None:
            count = await self._safe_count(document, inferred)
            if count > 0:
                LOGGER.info("Card selector inferred from rating elements: %s", inferred)
                return self._adopt(inferred, count)

        return None, 0

    def _adopt(self, selector: str, count: int) -> tuple[str, int]:
        self._adopted = selector
        LOGGER.debug("Adopted card selector %s (%s cards)", selector, count)
        return selector, count

    async def _safe_count(self, document: ReviewDocument, selector: str) -> int:
        try:
            return await document.count(selector)
        except Exception:
            LOGGER.debug("Selector %s could not be counted", selector, exc_info=True)
            return 0
