from __future__ import annotations

import hashlib
import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from pymongo import UpdateOne

from maps_reviews.database import get_database
from maps_reviews.models.review import NormalizedReview

LOGGER = logging.getLogger(__name__)


class ReviewSink(Protocol):
    async def write(self, target_url: str, reviews: list[NormalizedReview]) -> int: ...


def target_key(target_url: str) -> str:
    return hashlib.sha1(target_url.encode("utf-8")).hexdigest()[:16]


class MongoReviewSink:
    """Stores reviews in MongoDB, upserting stable identities per target."""

    def __init__(self, collection_name: str = "reviews") -> None:
        self._collection_name = collection_name

    async def write(self, target_url: str, reviews: list[NormalizedReview]) -> int:
        if not reviews:
            return 0

        collection = get_database()[self._collection_name]
        scraped_at = datetime.now(timezone.utc)
        operations: list[Any] = []
        synthetic_payloads: list[dict[str, Any]] = []

        for review in reviews:
            payload = review.model_dump(mode="python")
            payload["target_url"] = target_url
            payload["scraped_at"] = scraped_at

            if not review.identity_is_stable:
                # Synthetic ids differ between runs; upserting on them would only duplicate.
                synthetic_payloads.append(payload)
                continue

            operations.append(
                UpdateOne(
                    {"target_url": target_url, "identity": review.identity},
                    {"$set": payload, "$setOnInsert": {"created_at": scraped_at}},
                    upsert=True,
                )
            )

        if operations:
            await collection.bulk_write(operations, ordered=False)
        if synthetic_payloads:
            await collection.insert_many(synthetic_payloads, ordered=False)

        LOGGER.info("Stored %s reviews for %s in %s", len(reviews), target_url, self._collection_name)
        return len(reviews)


class JsonFileReviewSink:
    """Writes one JSON file per target into ``output_dir``."""

    def __init__(self, output_dir: str | Path = "output") -> None:
        self._output_dir = Path(output_dir)

    def path_for(self, target_url: str) -> Path:
        return self._output_dir / f"reviews-{target_key(target_url)}.json"

    async def write(self, target_url: str, reviews: list[NormalizedReview]) -> int:
        output_path = self.path_for(target_url)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "target_url": target_url,
            "review_count": len(reviews),
            "reviews": [review.model_dump(mode="json") for review in reviews],
        }
        output_path.write_text(json.dumps(payload, ensure_ascii=False, indent=2), encoding="utf-8")
        LOGGER.info("Saved %s reviews to %s", len(reviews), output_path)
        return len(reviews)
