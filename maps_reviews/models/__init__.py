from maps_reviews.models.review import ANONYMOUS_AUTHOR, NormalizedReview, ReviewRecord
from maps_reviews.models.session import PaginationResult, SessionConfig, SessionResult, StopReason

__all__ = [
    "ANONYMOUS_AUTHOR",
    "NormalizedReview",
    "ReviewRecord",
    "PaginationResult",
    "SessionConfig",
    "SessionResult",
    "StopReason",
]
