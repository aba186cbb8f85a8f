from datetime import datetime, timezone

import pytest

from maps_reviews.errors import ConfigurationError
from maps_reviews.models.review import NormalizedReview
from maps_reviews.pipeline.accumulator import OfferOutcome, ReviewAccumulator


def _review(identity: str) -> NormalizedReview:
    return NormalizedReview(identity=identity, rating=5, published_at=datetime(2024, 1, 1, tzinfo=timezone.utc))


def test_offer_accepts_then_rejects_duplicates() -> None:
    accumulator = ReviewAccumulator(cap=3)

    assert accumulator.offer(_review("a")) is OfferOutcome.ACCEPTED
    assert accumulator.offer(_review("a")) is OfferOutcome.DUPLICATE
    assert len(accumulator) == 1
    assert "a" in accumulator


def test_offer_stops_at_cap_and_keeps_first_seen_order() -> None:
    accumulator = ReviewAccumulator(cap=2)

    outcomes = [accumulator.offer(_review(identity)) for identity in ("b", "a", "c", "b")]

    assert outcomes == [
        OfferOutcome.ACCEPTED,
        OfferOutcome.ACCEPTED,
        OfferOutcome.CAP_REACHED,
        OfferOutcome.CAP_REACHED,
    ]
    assert [item.identity for item in accumulator.items] == ["b", "a"]
    assert accumulator.is_full is True


def test_items_returns_a_copy() -> None:
    accumulator = ReviewAccumulator(cap=2)
    accumulator.offer(_review("a"))

    accumulator.items.append(_review("x"))

    assert len(accumulator) == 1


def test_non_positive_cap_is_rejected() -> None:
    with pytest.raises(ConfigurationError):
        ReviewAccumulator(cap=0)
