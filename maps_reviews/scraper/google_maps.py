from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Sequence
from pathlib import Path
from typing import Any
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from playwright.async_api import (
    BrowserContext,
    Locator,
    Page,
    Playwright,
    TimeoutError as PlaywrightTimeoutError,
    async_playwright,
)
from pydantic import BaseModel

from maps_reviews.errors import NavigationError
from maps_reviews.scraper.selectors import SELECTOR_PATTERNS

LOGGER = logging.getLogger(__name__)

_SCROLL_TO_END_SCRIPT = """
(payload) => {
    let container = null;
    for (const selector of payload.containers) {
        container = document.querySelector(selector);
        if (container) break;
    }

    if (!container && payload.cardSelector) {
        const card = document.querySelector(payload.cardSelector);
        let parent = card ? card.parentElement : null;
        while (parent) {
            const style = window.getComputedStyle(parent);
            const overflowY = style.overflowY;
            const canScroll = parent.scrollHeight > parent.clientHeight + 20;
            if ((overflowY === "auto" || overflowY === "scroll") && canScroll) {
                container = parent;
                break;
            }
            parent = parent.parentElement;
        }
    }

    if (!container) {
        window.scrollBy(0, Math.max(480, window.innerHeight * 0.6));
        return false;
    }

    container.scrollTop = container.scrollHeight;
    return true;
}
"""


class NavigationPolicy(BaseModel):
    dismiss_consent: bool = True
    force_locale: bool = True
    locale: str = "en"
    sort_newest: bool = True


class GoogleMapsPage:
    """Playwright-backed review document for Google Maps place pages."""

    def __init__(
        self,
        *,
        headless: bool = True,
        slow_mo_ms: int = 0,
        user_data_dir: str = "playwright-data",
        browser_channel: str | None = None,
        timeout_ms: int = 30000,
        navigation_timeout_ms: int = 60000,
        initial_wait_ms: int = 3000,
        click_settle_ms: int = 2000,
        extra_chromium_args: Sequence[str] | None = None,
    ) -> None:
        self._page: Page | None = None

        self._headless = headless
        self._slow_mo_ms = slow_mo_ms
        self._user_data_dir = user_data_dir
        self._browser_channel = (browser_channel or "").strip() or None
        self._timeout_ms = timeout_ms
        self._navigation_timeout_ms = navigation_timeout_ms
        self._initial_wait_ms = max(0, initial_wait_ms)
        self._click_settle_ms = max(0, click_settle_ms)
        self._extra_chromium_args = list(extra_chromium_args or [])
        self._project_root = Path(__file__).resolve().parents[2]

        self._playwright: Playwright | None = None
        self._context: BrowserContext | None = None
        self._default_user_agent = (
            "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
            "AppleWebKit/537.36 (KHTML, like Gecko) "
            "Chrome/133.0.0.0 Safari/537.36"
        )

    async def start(self) -> Page:
        if self._page is not None:
            return self._page

        self._playwright = await async_playwright().start()
        launch_options: dict[str, Any] = {
            "user_data_dir": str(self._resolve_user_data_dir()),
            "headless": self._headless,
            "slow_mo": self._slow_mo_ms,
            "viewport": {"width": 1366, "height": 900},
            "locale": "en-US",
            "user_agent": self._default_user_agent,
            "args": ["--disable-blink-features=AutomationControlled", *self._extra_chromium_args],
        }
        if self._browser_channel:
            launch_options["channel"] = self._browser_channel

        try:
            self._context = await self._playwright.chromium.launch_persistent_context(**launch_options)
        except Exception:
            if not self._browser_channel:
                raise
            # Fallback to bundled Chromium if requested browser channel is unavailable.
            launch_options.pop("channel", None)
            self._context = await self._playwright.chromium.launch_persistent_context(**launch_options)
        await self._context.add_init_script(
            "Object.defineProperty(navigator, 'webdriver', {get: () => undefined});"
        )
        self._context.set_default_timeout(self._timeout_ms)

        self._page = self._context.pages[0] if self._context.pages else await self._context.new_page()
        return self._page

    async def close(self) -> None:
        if self._context is not None:
            await self._context.close()

        if self._playwright is not None:
            await self._playwright.stop()

        self._context = None
        self._playwright = None
        self._page = None

    @property
    def url(self) -> str:
        return self._page.url if self._page is not None else ""

    async def open_place(self, url: str, policy: NavigationPolicy | None = None) -> None:
        policy = policy or NavigationPolicy()
        await self.start()

        target_url = self.with_locale(url, policy.locale) if policy.force_locale else url
        LOGGER.info("Navigating to %s", target_url)
        await self.goto(target_url)
        await self.sleep(self._initial_wait_ms)

        if policy.dismiss_consent:
            await self._dismiss_google_consent_if_present()

        if "/maps/search/" in url:
            await self._open_first_result()

        await self._open_reviews_panel()

        if policy.sort_newest:
            await self._sort_by_newest()

    @staticmethod
    def with_locale(url: str, locale: str) -> str:
        parts = urlsplit(url)
        query = [(key, value) for key, value in parse_qsl(parts.query, keep_blank_values=True) if key != "hl"]
        query.append(("hl", locale))
        return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))

    async def goto(self, url: str) -> None:
        page = self._require_page()
        try:
            await page.goto(url, wait_until="domcontentloaded", timeout=self._navigation_timeout_ms)
        except PlaywrightTimeoutError as exc:
            raise NavigationError(f"Timed out loading {url}.") from exc

    async def count(self, selector: str) -> int:
        return await self._require_page().locator(selector).count()

    async def content(self) -> str:
        return await self._require_page().content()

    async def outer_html_all(self, selector: str) -> list[str]:
        snapshots = await self._require_page().locator(selector).evaluate_all(
            "(elements) => elements.map((element) => element.outerHTML)"
        )
        return [str(item) for item in snapshots or []]

    async def click_all(self, selectors: Sequence[str], *, max_clicks: int = 200) -> int:
        page = self._require_page()
        clicks = 0

        for selector in selectors:
            buttons = page.locator(selector)
            try:
                total = await buttons.count()
            except Exception:
                continue

            for idx in range(total):
                if clicks >= max_clicks:
                    return clicks

                button = buttons.nth(idx)
                try:
                    if not await button.is_visible():
                        continue
                    await button.click(timeout=2000)
                    clicks += 1
                except Exception:
                    LOGGER.debug("Click failed for %s #%s", selector, idx, exc_info=True)
                    continue

        return clicks

    async def scroll_to_end(self, card_selector: str | None) -> bool:
        found = await self.evaluate(
            _SCROLL_TO_END_SCRIPT,
            {"containers": list(SELECTOR_PATTERNS["SCROLL_CONTAINER"]), "cardSelector": card_selector},
        )
        if not found:
            LOGGER.warning("Could not find scrollable reviews container; scrolled the window instead.")
        return bool(found)

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        return await self._require_page().evaluate(script, arg)

    async def sleep(self, delay_ms: int) -> None:
        if self._page is None:
            await asyncio.sleep(max(0, delay_ms) / 1000)
            return
        await self._page.wait_for_timeout(max(0, delay_ms))

    def _require_page(self) -> Page:
        if self._page is None:
            raise RuntimeError("Playwright page is not configured. Call start() first.")
        return self._page

    def _resolve_user_data_dir(self) -> Path:
        path = Path(self._user_data_dir).expanduser()
        if not path.is_absolute():
            path = self._project_root / path
        return path.resolve()

    async def _click(self, locator: Locator) -> None:
        try:
            await locator.scroll_into_view_if_needed()
        except Exception:
            pass
        await locator.click()
        await self.sleep(self._click_settle_ms)

    async def _first_optional_visible_from_patterns(self, key: str, timeout_ms: int = 1200) -> Locator | None:
        page = self._require_page()

        for selector in SELECTOR_PATTERNS[key]:
            locator = page.locator(selector).first
            try:
                await locator.wait_for(state="visible", timeout=timeout_ms)
                return locator
            except PlaywrightTimeoutError:
                continue

        return None

    async def _dismiss_google_consent_if_present(self) -> None:
        terms = ("accept all", "i agree", "aceptar todo", "estoy de acuerdo")
        clicked = await self._click_first_by_text(terms)
        if clicked:
            LOGGER.info("Dismissed consent dialog.")

    async def _click_first_by_text(self, terms: tuple[str, ...]) -> bool:
        page = self._require_page()
        regex = re.compile("|".join(re.escape(term) for term in terms), re.IGNORECASE)

        scopes: list[Any] = [page, *page.frames]
        for scope in scopes:
            candidates: list[Locator] = [
                scope.get_by_role("button", name=regex),
                scope.locator("button, [role='button']").filter(has_text=regex),
            ]

            for candidate_group in candidates:
                try:
                    total = await candidate_group.count()
                except Exception:
                    continue

                for idx in range(min(total, 6)):
                    candidate = candidate_group.nth(idx)
                    try:
                        if not await candidate.is_visible():
                            continue
                        await self._click(candidate)
                        return True
                    except Exception:
                        continue

        return False

    async def _open_first_result(self) -> None:
        result = await self._first_optional_visible_from_patterns("SEARCH_RESULT_LINKS", timeout_ms=2000)
        if result is None:
            LOGGER.info("Search URL resolved directly to a place page.")
            return

        LOGGER.info("Search results found, clicking first result...")
        await self._click(result)

    async def _open_reviews_panel(self) -> None:
        if await self._first_optional_visible_from_patterns("REVIEWS_PANEL_READY", timeout_ms=800) is not None:
            return

        for key in ("REVIEWS_TAB", "REVIEWS_BUTTON"):
            entrypoint = await self._first_optional_visible_from_patterns(key)
            if entrypoint is None:
                continue
            try:
                LOGGER.info("Opening reviews panel via %s", key)
                await self._click(entrypoint)
                return
            except Exception:
                LOGGER.debug("Reviews entrypoint %s could not be clicked", key, exc_info=True)
                continue

        LOGGER.warning("Reviews tab not found; continuing with the current panel.")

    async def _sort_by_newest(self) -> None:
        sort_button = await self._first_optional_visible_from_patterns("SORT_BUTTON")
        if sort_button is None:
            return

        try:
            LOGGER.info("Opening sort menu...")
            await self._click(sort_button)
            newest = await self._first_optional_visible_from_patterns("SORT_NEWEST_OPTION")
            if newest is None:
                return

            LOGGER.info("Sorting by Newest...")
            await self._click(newest)
        except PlaywrightTimeoutError:
            LOGGER.warning("Sorting by Newest failed; keeping the default order.")
