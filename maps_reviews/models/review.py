from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

ANONYMOUS_AUTHOR = "Anonymous"


class _ReviewFields(BaseModel):
    model_config = ConfigDict(frozen=True)

    identity: str
    # False when the card carried no review id and the identity was synthesized
    # from extraction order and wall-clock; such ids must not be used across runs.
    identity_is_stable: bool = True
    author_name: str = ANONYMOUS_AUTHOR
    rating: int = Field(ge=1, le=5)
    body_text: str | None = None
    owner_response_text: str | None = None
    owner_response_relative_text: str | None = None
    like_count: int = Field(default=0, ge=0)
    detailed_ratings: dict[str, int] | None = None
    author_review_count: int | None = Field(default=None, ge=0)
    author_is_trusted_reviewer: bool = False


class ReviewRecord(_ReviewFields):
    """Raw review fields read from one card, before time normalization."""

    published_relative_text: str = ""


class NormalizedReview(_ReviewFields):
    """Review shape handed to persistence sinks."""

    published_at: datetime
    review_url: str | None = None
    language: str = "en"
    origin: str = "Google"
