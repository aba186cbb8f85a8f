"""Field-level extraction of review cards.

Every field is read through an ordered chain of ``(name, link)`` pairs. A link
is a plain function of a card (or of a sub-block of it) returning a value or
None; the first link producing a non-empty value wins. Links never touch the
live page, they only read a parsed snapshot, so extracting the same snapshot
twice yields the same record.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterator, Sequence
from datetime import datetime, timezone
from typing import Any

from bs4 import BeautifulSoup, Comment, Tag
from pydantic import BaseModel, Field

from maps_reviews.errors import MalformedCardError
from maps_reviews.models.review import ANONYMOUS_AUTHOR, ReviewRecord
from maps_reviews.pipeline.relative_time import looks_like_relative_time
from maps_reviews.scraper.selectors import SELECTOR_PATTERNS

LOGGER = logging.getLogger(__name__)

ChainLink = tuple[str, Callable[[Tag], Any]]

_NUMBER_REGEX = re.compile(r"\d+")
_REVIEW_COUNT_REGEX = re.compile(r"(\d[\d,.]*)\s+reviews?\b", re.IGNORECASE)
_TRUSTED_REVIEWER_MARKERS = ("local guide",)
_OWNER_RESPONSE_LABELS = ("response from the owner", "owner response")

_MAIN_CARD_EXCLUDES = ("OWNER_RESPONSE_BLOCK",)
_RATING_EXCLUDES = ("OWNER_RESPONSE_BLOCK", "DETAILED_RATING_ROWS")
_BODY_FALLBACK_EXCLUDES = ("OWNER_RESPONSE_BLOCK", "REVIEWER_INFO", "DETAILED_RATING_ROWS", "AUTHOR_NAME")
_BODY_FALLBACK_MIN_LENGTH = 31
_LINK_NAME_MIN_LENGTH = 2
_LINK_NAME_MAX_LENGTH = 60
_AUTHOR_ELEMENT_MAX_LENGTH = 79


class ExtractionPass(BaseModel):
    records: list[ReviewRecord] = Field(default_factory=list)
    invalid_cards: int = 0
    malformed_cards: int = 0


def clean_text(value: str | None) -> str | None:
    if value is None:
        return None
    cleaned = re.sub(r"\s+", " ", value).strip()
    return cleaned or None


def parse_star_rating(label: str | None) -> int | None:
    match = _NUMBER_REGEX.search(label or "")
    if not match:
        return None
    rating = int(match.group(0))
    if 1 <= rating <= 5:
        return rating
    return None


def resolve_chain(chain: Sequence[ChainLink], root: Tag) -> tuple[str | None, Any]:
    for name, link in chain:
        value = link(root)
        if value is None or value == "":
            continue
        LOGGER.debug("Chain link %s produced %r", name, value)
        return name, value
    return None, None


def _as_card(card: Tag | str) -> Tag:
    if isinstance(card, Tag):
        return card

    soup = BeautifulSoup(card or "", "html.parser")
    root = soup.find(True)
    if root is None:
        raise MalformedCardError("Card snapshot contains no element.")
    return root


def _excluded_node_ids(root: Tag, keys: Sequence[str]) -> set[int]:
    node_ids: set[int] = set()
    for key in keys:
        for selector in SELECTOR_PATTERNS[key]:
            node_ids.update(id(node) for node in root.select(selector))
    return node_ids


def _is_excluded(node: Any, root: Tag, excluded: set[int]) -> bool:
    if not excluded:
        return False

    current = node if isinstance(node, Tag) else node.parent
    while current is not None and current is not root:
        if id(current) in excluded:
            return True
        current = current.parent
    return False


def _iter_nodes(root: Tag, key: str, *, exclude: Sequence[str] = ()) -> Iterator[Tag]:
    excluded = _excluded_node_ids(root, exclude)
    for selector in SELECTOR_PATTERNS[key]:
        for node in root.select(selector):
            if not _is_excluded(node, root, excluded):
                yield node


def _first_node(root: Tag, key: str) -> Tag | None:
    return next(_iter_nodes(root, key), None)


def _node_text(node: Tag) -> str | None:
    return clean_text(node.get_text(" ", strip=True))


def _text_fragments(root: Tag, *, exclude: Sequence[str] = ()) -> Iterator[str]:
    excluded = _excluded_node_ids(root, exclude)
    for fragment in root.find_all(string=True):
        if isinstance(fragment, Comment) or fragment.parent.name in ("script", "style"):
            continue
        if _is_excluded(fragment, root, excluded):
            continue
        text = clean_text(str(fragment))
        if text:
            yield text


def text_link(
    key: str,
    *,
    min_length: int = 1,
    max_length: int | None = None,
    exclude: Sequence[str] = _MAIN_CARD_EXCLUDES,
) -> Callable[[Tag], str | None]:
    def _link(root: Tag) -> str | None:
        for node in _iter_nodes(root, key, exclude=exclude):
            text = _node_text(node)
            if not text or len(text) < min_length:
                continue
            if max_length is not None and len(text) > max_length:
                continue
            return text
        return None

    return _link


def review_id_attribute(root: Tag) -> str | None:
    value = clean_text(root.get("data-review-id"))
    if value:
        return value

    for node in _iter_nodes(root, "REVIEW_ID"):
        value = clean_text(node.get("data-review-id"))
        if value:
            return value
    return None


def rating_from_star_label(root: Tag) -> int | None:
    for node in _iter_nodes(root, "RATING_LABEL", exclude=_RATING_EXCLUDES):
        rating = parse_star_rating(node.get("aria-label"))
        if rating is not None:
            return rating
    return None


def rating_from_filled_stars(root: Tag) -> int | None:
    for selector in SELECTOR_PATTERNS["FILLED_STARS"]:
        total = len(root.select(selector))
        if 1 <= total <= 5:
            return total
    return None


def author_from_card_label(root: Tag) -> str | None:
    label = clean_text(root.get("aria-label"))
    if label and _LINK_NAME_MIN_LENGTH <= len(label) <= _LINK_NAME_MAX_LENGTH:
        return label
    return None


def author_from_first_link(root: Tag) -> str | None:
    link = root.find("a")
    if link is None:
        return None
    text = _node_text(link)
    if text and _LINK_NAME_MIN_LENGTH <= len(text) <= _LINK_NAME_MAX_LENGTH:
        return text
    return None


def relative_time_from_fragments(root: Tag) -> str | None:
    for fragment in _text_fragments(root, exclude=_MAIN_CARD_EXCLUDES):
        if looks_like_relative_time(fragment):
            return fragment
    return None


def body_from_longest_fragment(root: Tag) -> str | None:
    longest: str | None = None
    for fragment in _text_fragments(root, exclude=_BODY_FALLBACK_EXCLUDES):
        if len(fragment) < _BODY_FALLBACK_MIN_LENGTH:
            continue
        if longest is None or len(fragment) > len(longest):
            longest = fragment
    return longest


def _is_owner_response_label(value: str) -> bool:
    normalized = value.lower()
    return any(label in normalized for label in _OWNER_RESPONSE_LABELS)


def response_from_longest_fragment(block: Tag) -> str | None:
    longest: str | None = None
    for fragment in _text_fragments(block):
        if _is_owner_response_label(fragment) or looks_like_relative_time(fragment):
            continue
        if longest is None or len(fragment) > len(longest):
            longest = fragment
    return longest


def likes_from_counter(root: Tag) -> int | None:
    for node in _iter_nodes(root, "LIKE_COUNT", exclude=_MAIN_CARD_EXCLUDES):
        match = _NUMBER_REGEX.search(_node_text(node) or "")
        if match:
            return int(match.group(0))
    return None


def detailed_ratings_from_rows(root: Tag) -> dict[str, int] | None:
    ratings: dict[str, int] = {}
    for selector in SELECTOR_PATTERNS["DETAILED_RATING_ROWS"]:
        rows = root.select(selector)
        if not rows:
            continue

        for row in rows:
            label_node = row.find("span")
            label = clean_text(label_node.get_text(" ", strip=True)) if label_node is not None else None
            if not label:
                continue
            label = label.rstrip(":").strip()

            value_node = next(_iter_nodes(row, "DETAILED_RATING_VALUE"), None)
            if value_node is None:
                continue
            rating = parse_star_rating(value_node.get("aria-label"))
            if label and rating is not None:
                ratings[label] = rating
        break

    return ratings or None


def reviewer_info(root: Tag) -> tuple[int | None, bool]:
    review_count: int | None = None
    trusted = False

    for selector in SELECTOR_PATTERNS["REVIEWER_INFO"]:
        nodes = root.select(selector)
        if not nodes:
            continue

        for node in nodes:
            text = _node_text(node) or ""
            if any(marker in text.lower() for marker in _TRUSTED_REVIEWER_MARKERS):
                trusted = True
            match = _REVIEW_COUNT_REGEX.search(text)
            if match:
                digits = re.sub(r"\D", "", match.group(1))
                if digits:
                    review_count = int(digits)
        break

    return review_count, trusted


DEFAULT_CHAINS: dict[str, tuple[ChainLink, ...]] = {
    "identity": (
        ("review_id_attribute", review_id_attribute),
    ),
    "rating": (
        ("star_label", rating_from_star_label),
        ("filled_stars", rating_from_filled_stars),
    ),
    "author_name": (
        ("name_element", text_link("AUTHOR_NAME", max_length=_AUTHOR_ELEMENT_MAX_LENGTH)),
        ("card_label", author_from_card_label),
        ("first_link", author_from_first_link),
    ),
    "published_relative_text": (
        ("date_element", text_link("RELATIVE_TIME")),
        ("text_scan", relative_time_from_fragments),
    ),
    "body_text": (
        ("text_element", text_link("REVIEW_TEXT")),
        ("longest_fragment", body_from_longest_fragment),
    ),
    "owner_response_text": (
        ("text_element", text_link("OWNER_RESPONSE_TEXT", exclude=())),
        ("longest_fragment", response_from_longest_fragment),
    ),
    "owner_response_relative_text": (
        ("date_element", text_link("OWNER_RESPONSE_TIME", exclude=())),
        ("text_scan", relative_time_from_fragments),
    ),
    "like_count": (
        ("counter_element", likes_from_counter),
    ),
}


class ReviewFieldExtractor:
    def __init__(self, chains: dict[str, tuple[ChainLink, ...]] | None = None) -> None:
        self._chains = {**DEFAULT_CHAINS, **(chains or {})}

    def extract(
        self,
        card: Tag | str,
        *,
        position: int = 0,
        observed_at: datetime | None = None,
    ) -> ReviewRecord | None:
        """Read one card. Returns None when no rating in [1, 5] can be found."""
        root = _as_card(card)

        _, rating = resolve_chain(self._chains["rating"], root)
        if rating is None:
            return None

        _, identity = resolve_chain(self._chains["identity"], root)
        identity_is_stable = identity is not None
        if identity is None:
            identity = self._synthetic_identity(position, observed_at)

        _, author_name = resolve_chain(self._chains["author_name"], root)
        _, published = resolve_chain(self._chains["published_relative_text"], root)
        _, body_text = resolve_chain(self._chains["body_text"], root)
        _, like_count = resolve_chain(self._chains["like_count"], root)

        response_text: str | None = None
        response_time: str | None = None
        block = _first_node(root, "OWNER_RESPONSE_BLOCK")
        if block is not None:
            _, response_text = resolve_chain(self._chains["owner_response_text"], block)
            _, response_time = resolve_chain(self._chains["owner_response_relative_text"], block)

        review_count, trusted = reviewer_info(root)

        return ReviewRecord(
            identity=identity,
            identity_is_stable=identity_is_stable,
            author_name=author_name or ANONYMOUS_AUTHOR,
            rating=rating,
            published_relative_text=published or "",
            body_text=body_text,
            owner_response_text=response_text,
            owner_response_relative_text=response_time,
            like_count=like_count or 0,
            detailed_ratings=detailed_ratings_from_rows(root),
            author_review_count=review_count,
            author_is_trusted_reviewer=trusted,
        )

    def extract_all(self, cards: Sequence[Tag | str], *, observed_at: datetime | None = None) -> ExtractionPass:
        observed_at = observed_at or datetime.now(timezone.utc)
        result = ExtractionPass()

        for position, card in enumerate(cards):
            try:
                record = self.extract(card, position=position, observed_at=observed_at)
            except (MalformedCardError, AttributeError, TypeError, ValueError) as exc:
                LOGGER.debug("Skipping malformed card at position %s: %s", position, exc)
                result.malformed_cards += 1
                continue

            if record is None:
                result.invalid_cards += 1
                continue
            result.records.append(record)

        return result

    def _synthetic_identity(self, position: int, observed_at: datetime | None) -> str:
        instant = observed_at or datetime.now(timezone.utc)
        return f"synthetic-{position}-{int(instant.timestamp() * 1000)}"
