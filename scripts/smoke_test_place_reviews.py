import argparse
import asyncio
import json
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from maps_reviews.config import settings
from maps_reviews.pipeline.normalizer import ReviewNormalizer
from maps_reviews.scraper.google_maps import GoogleMapsPage, NavigationPolicy
from maps_reviews.services.extraction_session import ExtractionSession


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description=(
            "Open one Google Maps place page, load reviews until the cap or until "
            "loading stalls, and print every extracted review."
        )
    )
    parser.add_argument("url", help="Google Maps place or search URL.")
    parser.add_argument(
        "--max-items",
        type=int,
        default=30,
        help="Maximum reviews to collect (default: 30).",
    )
    parser.add_argument(
        "--headless",
        action="store_true",
        help="Run in headless mode (default: headed).",
    )
    parser.add_argument(
        "--output",
        default="",
        help="Optional output JSON file path for the extracted reviews.",
    )
    return parser.parse_args()


async def main() -> None:
    args = _parse_args()

    browser = GoogleMapsPage(
        headless=bool(args.headless),
        slow_mo_ms=settings.scraper_slow_mo_ms,
        user_data_dir=settings.scraper_user_data_dir,
        browser_channel=settings.scraper_browser_channel,
        timeout_ms=settings.scraper_timeout_ms,
        navigation_timeout_ms=settings.scraper_navigation_timeout_ms,
        initial_wait_ms=settings.scraper_initial_wait_ms,
        click_settle_ms=settings.scraper_click_settle_ms,
        extra_chromium_args=settings.scraper_extra_chromium_args,
    )
    policy = NavigationPolicy(
        dismiss_consent=settings.scraper_dismiss_consent,
        force_locale=settings.scraper_force_locale,
        locale=settings.scraper_locale,
        sort_newest=settings.scraper_sort_newest,
    )

    try:
        await browser.start()
        await browser.open_place(args.url, policy)
        print(f"Opened: {browser.url}")

        session = ExtractionSession(
            browser,
            target_url=args.url,
            max_items=max(1, args.max_items),
            settle_ms=settings.scraper_settle_ms,
            normalizer=ReviewNormalizer(language=settings.scraper_locale, origin=settings.review_origin),
        )
        result = await session.run()

        print("=== Reviews Summary ===")
        print(f"Card selector: {result.selector}")
        print(f"Stop reason: {result.stop_reason.value if result.stop_reason else None}")
        print(f"Cards seen: {result.cards_seen}")
        print(f"Invalid cards: {result.invalid_cards}")
        print(f"Duplicates: {result.duplicates}")
        print(f"Collected reviews: {len(result.reviews)}")

        reviews = [review.model_dump(mode="json") for review in result.reviews]
        if args.output:
            output_path = Path(args.output)
            if not output_path.is_absolute():
                output_path = (PROJECT_ROOT / output_path).resolve()
            output_path.parent.mkdir(parents=True, exist_ok=True)
            output_path.write_text(json.dumps(reviews, ensure_ascii=False, indent=2), encoding="utf-8")
            print(f"Saved reviews to: {output_path}")

        print(json.dumps(reviews, ensure_ascii=False, indent=2))
    finally:
        await browser.close()


if __name__ == "__main__":
    asyncio.run(main())
