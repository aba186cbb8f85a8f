import argparse
import asyncio
import logging

from maps_reviews.config import settings
from maps_reviews.database import close_mongo_connection, connect_to_mongo
from maps_reviews.services.review_service import ReviewExtractionService, build_session_config
from maps_reviews.services.review_sink import JsonFileReviewSink, MongoReviewSink, ReviewSink

LOGGER = logging.getLogger("maps_reviews")


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Extract Google Maps reviews from place pages.")
    parser.add_argument(
        "urls",
        nargs="*",
        help="Google Maps place or search URLs (default: TARGET_URLS from settings).",
    )
    parser.add_argument(
        "--max-items",
        type=int,
        default=settings.max_items_per_target,
        help=f"Maximum reviews per target (default: {settings.max_items_per_target}).",
    )
    parser.add_argument(
        "--sink",
        choices=("json", "mongo"),
        default=settings.output_sink,
        help=f"Where to store extracted reviews (default: {settings.output_sink}).",
    )
    parser.add_argument(
        "--output-dir",
        default=settings.output_dir,
        help=f"Directory for the json sink (default: {settings.output_dir}).",
    )
    parser.add_argument(
        "--headless",
        action=argparse.BooleanOptionalAction,
        default=settings.scraper_headless,
        help="Run the browser headless.",
    )
    return parser.parse_args(argv)


async def _run(args: argparse.Namespace) -> None:
    config = build_session_config(args.urls or settings.target_urls, args.max_items)

    sink: ReviewSink
    if args.sink == "mongo":
        await connect_to_mongo(settings.reviews_collection)
        sink = MongoReviewSink(settings.reviews_collection)
    else:
        sink = JsonFileReviewSink(args.output_dir)

    try:
        service = ReviewExtractionService(sink, headless=bool(args.headless))
        results = await service.run(config)
    finally:
        if args.sink == "mongo":
            await close_mongo_connection()

    for result in results:
        LOGGER.info(
            "%s: %s reviews (stop=%s, cards=%s, error=%s)",
            result.target_url,
            len(result.reviews),
            result.stop_reason.value if result.stop_reason else None,
            result.cards_seen,
            result.error,
        )


def run(argv: list[str] | None = None) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
    )
    asyncio.run(_run(_parse_args(argv)))


if __name__ == "__main__":
    run()
