from enum import Enum

from pydantic import BaseModel, Field

from maps_reviews.models.review import NormalizedReview


class StopReason(str, Enum):
    CAP_REACHED = "cap_reached"
    NO_PROGRESS = "no_progress"
    ITERATION_LIMIT = "iteration_limit"


class PaginationResult(BaseModel):
    reason: StopReason
    selector: str | None = None
    observed_count: int = 0
    iterations: int = 0


class SessionConfig(BaseModel):
    target_urls: list[str] = Field(min_length=1)
    max_items_per_target: int = Field(default=100, gt=0)


class SessionResult(BaseModel):
    target_url: str
    reviews: list[NormalizedReview] = Field(default_factory=list)
    selector: str | None = None
    stop_reason: StopReason | None = None
    cards_seen: int = 0
    invalid_cards: int = 0
    duplicates: int = 0
    error: str | None = None
