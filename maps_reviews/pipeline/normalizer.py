from datetime import datetime

from maps_reviews.models.review import NormalizedReview, ReviewRecord
from maps_reviews.pipeline.relative_time import normalize_relative_time


class ReviewNormalizer:
    def __init__(self, language: str = "en", origin: str = "Google") -> None:
        self.language = language
        self.origin = origin

    def normalize(self, record: ReviewRecord, *, reference: datetime, review_url: str | None = None) -> NormalizedReview:
        payload = record.model_dump(mode="python", exclude={"published_relative_text"})
        return NormalizedReview(
            **payload,
            published_at=normalize_relative_time(record.published_relative_text, reference),
            review_url=review_url,
            language=self.language,
            origin=self.origin,
        )
