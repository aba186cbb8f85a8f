import json
from datetime import datetime, timezone

import pytest
from pymongo import UpdateOne

from maps_reviews.database import REVIEW_IDENTITY_INDEX, ensure_review_indexes
from maps_reviews.models.review import NormalizedReview
from maps_reviews.services import review_sink
from maps_reviews.services.review_sink import JsonFileReviewSink, MongoReviewSink, target_key

TARGET_URL = "https://www.google.com/maps/place/Test"


def _review(identity: str, **overrides) -> NormalizedReview:
    payload = {
        "identity": identity,
        "author_name": "Alice",
        "rating": 4,
        "body_text": "Lovely café",
        "published_at": datetime(2024, 6, 1, tzinfo=timezone.utc),
        "review_url": TARGET_URL,
    }
    payload.update(overrides)
    return NormalizedReview(**payload)


def test_target_key_is_stable_per_url() -> None:
    assert target_key(TARGET_URL) == target_key(TARGET_URL)
    assert target_key(TARGET_URL) != target_key(TARGET_URL + "?hl=en")
    assert len(target_key(TARGET_URL)) == 16


@pytest.mark.asyncio
async def test_json_sink_writes_one_file_per_target(tmp_path) -> None:
    sink = JsonFileReviewSink(tmp_path / "out")

    written = await sink.write(TARGET_URL, [_review("r1"), _review("r2", detailed_ratings={"Food": 5})])

    document = json.loads(sink.path_for(TARGET_URL).read_text(encoding="utf-8"))
    assert written == 2
    assert document["target_url"] == TARGET_URL
    assert document["review_count"] == 2
    assert [review["identity"] for review in document["reviews"]] == ["r1", "r2"]
    assert document["reviews"][0]["published_at"].startswith("2024-06-01T00:00:00")
    assert document["reviews"][0]["body_text"] == "Lovely café"
    assert document["reviews"][1]["detailed_ratings"] == {"Food": 5}


@pytest.mark.asyncio
async def test_json_sink_writes_empty_batches(tmp_path) -> None:
    sink = JsonFileReviewSink(tmp_path)

    assert await sink.write(TARGET_URL, []) == 0
    assert json.loads(sink.path_for(TARGET_URL).read_text(encoding="utf-8"))["reviews"] == []


@pytest.mark.asyncio
async def test_mongo_sink_ignores_empty_batches() -> None:
    assert await MongoReviewSink("reviews").write(TARGET_URL, []) == 0


class FakeCollection:
    def __init__(self) -> None:
        self.bulk_operations: list = []
        self.inserted: list[dict] = []
        self.indexes: list[tuple] = []

    async def bulk_write(self, operations, ordered=True):
        self.bulk_operations.extend(operations)

    async def insert_many(self, documents, ordered=True):
        self.inserted.extend(documents)

    async def create_index(self, keys, **kwargs):
        self.indexes.append((keys, kwargs))
        return kwargs["name"]


@pytest.mark.asyncio
async def test_mongo_sink_upserts_stable_and_inserts_synthetic_reviews(monkeypatch) -> None:
    collection = FakeCollection()
    monkeypatch.setattr(review_sink, "get_database", lambda: {"reviews": collection})

    written = await MongoReviewSink("reviews").write(
        TARGET_URL,
        [_review("r1"), _review("synthetic-1-1700000000000", identity_is_stable=False), _review("r2")],
    )

    assert written == 3
    assert [type(operation) for operation in collection.bulk_operations] == [UpdateOne, UpdateOne]
    first = collection.bulk_operations[0]
    assert first._filter == {"target_url": TARGET_URL, "identity": "r1"}
    assert first._upsert is True
    assert first._doc["$set"]["target_url"] == TARGET_URL
    assert first._doc["$set"]["rating"] == 4
    assert first._doc["$setOnInsert"]["created_at"] == first._doc["$set"]["scraped_at"]
    assert collection.bulk_operations[1]._filter["identity"] == "r2"

    assert [document["identity"] for document in collection.inserted] == ["synthetic-1-1700000000000"]
    inserted = collection.inserted[0]
    assert inserted["target_url"] == TARGET_URL
    assert inserted["scraped_at"] == first._doc["$set"]["scraped_at"]
    assert inserted["identity_is_stable"] is False


@pytest.mark.asyncio
async def test_review_index_covers_upsert_key() -> None:
    collection = FakeCollection()

    name = await ensure_review_indexes({"reviews": collection}, "reviews")

    keys, options = collection.indexes[0]
    assert name == REVIEW_IDENTITY_INDEX
    assert keys == [("target_url", 1), ("identity", 1)]
    assert options["unique"] is True
    assert options["partialFilterExpression"] == {"identity_is_stable": True}
