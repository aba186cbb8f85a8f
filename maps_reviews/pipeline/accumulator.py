from enum import Enum

from maps_reviews.errors import ConfigurationError
from maps_reviews.models.review import NormalizedReview


class OfferOutcome(str, Enum):
    ACCEPTED = "accepted"
    DUPLICATE = "duplicate"
    CAP_REACHED = "cap_reached"


class ReviewAccumulator:
    """Insertion-ordered, identity-deduplicated review collection with a size cap.

    One instance belongs to one extraction session; extraction passes may
    re-see cards accepted earlier, so every offer is checked against the
    identities already accepted.
    """

    def __init__(self, cap: int) -> None:
        if cap <= 0:
            raise ConfigurationError("Accumulator cap must be a positive integer.")
        self._cap = cap
        self._items: list[NormalizedReview] = []
        self._seen_identities: set[str] = set()

    @property
    def items(self) -> list[NormalizedReview]:
        return list(self._items)

    @property
    def is_full(self) -> bool:
        return len(self._items) >= self._cap

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, identity: object) -> bool:
        return identity in self._seen_identities

    def offer(self, review: NormalizedReview) -> OfferOutcome:
        if self.is_full:
            return OfferOutcome.CAP_REACHED

        if review.identity in self._seen_identities:
            return OfferOutcome.DUPLICATE

        self._seen_identities.add(review.identity)
        self._items.append(review)
        return OfferOutcome.ACCEPTED
