from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from pydantic import ValidationError

from maps_reviews.config import settings
from maps_reviews.errors import ConfigurationError, NavigationError, UnresolvableSelectorError
from maps_reviews.models.session import SessionConfig, SessionResult
from maps_reviews.pipeline.normalizer import ReviewNormalizer
from maps_reviews.scraper.google_maps import GoogleMapsPage, NavigationPolicy
from maps_reviews.services.extraction_session import ExtractionSession
from maps_reviews.services.review_sink import ReviewSink

LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[dict[str, Any]], Awaitable[None] | None]


def build_session_config(target_urls: list[str] | None, max_items_per_target: int | None) -> SessionConfig:
    urls = [str(url).strip() for url in target_urls or [] if str(url).strip()]
    try:
        return SessionConfig(
            target_urls=urls,
            max_items_per_target=max_items_per_target if max_items_per_target is not None else 100,
        )
    except ValidationError as exc:
        raise ConfigurationError(
            "At least one target URL and a positive max_items_per_target are required."
        ) from exc


class ReviewExtractionService:
    """Runs one extraction session per target URL, one target at a time."""

    def __init__(
        self,
        sink: ReviewSink,
        *,
        browser: GoogleMapsPage | None = None,
        policy: NavigationPolicy | None = None,
        normalizer: ReviewNormalizer | None = None,
        settle_ms: int | None = None,
        headless: bool | None = None,
    ) -> None:
        self.sink = sink
        self.browser = browser or GoogleMapsPage(
            headless=settings.scraper_headless if headless is None else headless,
            slow_mo_ms=settings.scraper_slow_mo_ms,
            user_data_dir=settings.scraper_user_data_dir,
            browser_channel=settings.scraper_browser_channel,
            timeout_ms=settings.scraper_timeout_ms,
            navigation_timeout_ms=settings.scraper_navigation_timeout_ms,
            initial_wait_ms=settings.scraper_initial_wait_ms,
            click_settle_ms=settings.scraper_click_settle_ms,
            extra_chromium_args=settings.scraper_extra_chromium_args,
        )
        self.policy = policy or NavigationPolicy(
            dismiss_consent=settings.scraper_dismiss_consent,
            force_locale=settings.scraper_force_locale,
            locale=settings.scraper_locale,
            sort_newest=settings.scraper_sort_newest,
        )
        self.normalizer = normalizer or ReviewNormalizer(
            language=settings.scraper_locale,
            origin=settings.review_origin,
        )
        self.settle_ms = settings.scraper_settle_ms if settle_ms is None else settle_ms

    async def run(
        self,
        config: SessionConfig,
        progress_callback: ProgressCallback | None = None,
    ) -> list[SessionResult]:
        results: list[SessionResult] = []
        await self.browser.start()
        try:
            for target_url in config.target_urls:
                result = await self._run_target(
                    target_url,
                    max_items=config.max_items_per_target,
                    progress_callback=progress_callback,
                )
                results.append(result)
        finally:
            await self.browser.close()
        return results

    async def _run_target(
        self,
        target_url: str,
        *,
        max_items: int,
        progress_callback: ProgressCallback | None,
    ) -> SessionResult:
        LOGGER.info("=== Processing %s ===", target_url)
        await self._emit_progress(
            progress_callback,
            "target_started",
            "Opening place page.",
            {"target_url": target_url, "max_items": max_items},
        )

        try:
            await self.browser.open_place(target_url, self.policy)
            session = ExtractionSession(
                self.browser,
                target_url=target_url,
                max_items=max_items,
                settle_ms=self.settle_ms,
                normalizer=self.normalizer,
            )
            result = await session.run()
        except UnresolvableSelectorError as exc:
            LOGGER.error("No review cards found for %s: %s", target_url, exc)
            result = SessionResult(target_url=target_url, error=str(exc))
        except NavigationError as exc:
            LOGGER.error("Could not open %s: %s", target_url, exc)
            await self._emit_progress(
                progress_callback,
                "target_failed",
                "Target page could not be opened.",
                {"target_url": target_url, "error": str(exc)},
            )
            return SessionResult(target_url=target_url, error=str(exc))

        await self._emit_progress(
            progress_callback,
            "pagination_stopped",
            "Review extraction finished.",
            {
                "target_url": target_url,
                "stop_reason": result.stop_reason.value if result.stop_reason else None,
                "cards_seen": result.cards_seen,
            },
        )

        if not result.reviews:
            LOGGER.warning("No reviews collected for %s", target_url)

        await self.sink.write(target_url, result.reviews)
        await self._emit_progress(
            progress_callback,
            "target_completed",
            "Reviews handed to sink.",
            {"target_url": target_url, "review_count": len(result.reviews)},
        )
        return result

    async def _emit_progress(
        self,
        callback: ProgressCallback | None,
        stage: str,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> None:
        if callback is None:
            return
        payload = {
            "stage": stage,
            "message": message,
            "data": data or {},
            "created_at": datetime.now(timezone.utc),
        }
        try:
            maybe_awaitable = callback(payload)
            if asyncio.iscoroutine(maybe_awaitable):
                await maybe_awaitable
        except Exception:
            # Progress callback errors must not affect core flow.
            LOGGER.debug("Progress callback failed for stage %s", stage, exc_info=True)
