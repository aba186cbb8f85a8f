from collections.abc import Sequence
from typing import Any

import pytest
from bs4 import BeautifulSoup


def make_card(
    review_id: str | None = "r1",
    *,
    stars: int | None = 5,
    author: str | None = "Alice",
    relative_time: str | None = "2 weeks ago",
    body: str | None = "Great place!",
    likes: str | None = None,
    owner_response: str | None = None,
    owner_response_time: str | None = None,
    reviewer_info: str | None = None,
    detailed: dict[str, int] | None = None,
) -> str:
    parts: list[str] = []
    if author is not None:
        parts.append(f'<button class="WEBjve"><div class="d4r55">{author}</div></button>')
    if reviewer_info is not None:
        parts.append(f'<div class="RfnDt"><span>{reviewer_info}</span></div>')
    if stars is not None:
        parts.append(f'<span class="kvMYJc" role="img" aria-label="{stars} stars"></span>')
    if relative_time is not None:
        parts.append(f'<span class="rsqaWe">{relative_time}</span>')
    if body is not None:
        parts.append(f'<div class="MyEned"><span class="wiI7pd">{body}</span></div>')
    if detailed:
        for label, value in detailed.items():
            parts.append(
                f'<div class="k1MNkf"><span>{label}</span>'
                f'<span role="img" aria-label="{value} stars"></span></div>'
            )
    if likes is not None:
        parts.append(f'<button><span class="pkWtMe">{likes}</span></button>')
    if owner_response is not None:
        response_time = f'<span class="DZSIDd">{owner_response_time}</span>' if owner_response_time else ""
        parts.append(
            '<div class="CDe7pd"><div><span class="fontTitleSmall">Response from the owner</span>'
            f"{response_time}</div><div class=\"wiI7pd\">{owner_response}</div></div>"
        )

    id_attr = f' data-review-id="{review_id}"' if review_id is not None else ""
    return f'<div class="jftiEf fontBodyMedium"{id_attr}>{"".join(parts)}</div>'


def make_page(cards: Sequence[str]) -> str:
    return (
        '<html><body><div role="main"><div class="m6QErb DxyBCb">'
        f'{"".join(cards)}'
        "</div></div></body></html>"
    )


class FakeDocument:
    """In-memory review document; each scroll reveals the next page state."""

    def __init__(self, states: Sequence[str], url: str = "https://www.google.com/maps/place/Test") -> None:
        self._states = list(states) or [make_page([])]
        self._index = 0
        self._url = url
        self.scroll_calls: list[str | None] = []
        self.sleeps: list[int] = []
        self.click_calls: list[list[str]] = []
        self.opened: list[str] = []
        self.started = False
        self.closed = False

    @property
    def url(self) -> str:
        return self._url

    @property
    def html(self) -> str:
        return self._states[self._index]

    def _soup(self) -> BeautifulSoup:
        return BeautifulSoup(self.html, "html.parser")

    async def start(self) -> None:
        self.started = True

    async def close(self) -> None:
        self.closed = True

    async def open_place(self, url: str, policy: Any = None) -> None:
        self._url = url
        self.opened.append(url)

    async def goto(self, url: str) -> None:
        self._url = url

    async def count(self, selector: str) -> int:
        return len(self._soup().select(selector))

    async def content(self) -> str:
        return self.html

    async def outer_html_all(self, selector: str) -> list[str]:
        return [str(node) for node in self._soup().select(selector)]

    async def click_all(self, selectors: Sequence[str], *, max_clicks: int = 200) -> int:
        self.click_calls.append(list(selectors))
        return 0

    async def scroll_to_end(self, card_selector: str | None) -> bool:
        self.scroll_calls.append(card_selector)
        self._index = min(self._index + 1, len(self._states) - 1)
        return True

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        return None

    async def sleep(self, delay_ms: int) -> None:
        self.sleeps.append(delay_ms)


@pytest.fixture
def card_factory():
    return make_card


@pytest.fixture
def page_factory():
    return make_page


@pytest.fixture
def document_factory():
    def _build(states: Sequence[str], url: str = "https://www.google.com/maps/place/Test") -> FakeDocument:
        return FakeDocument(states, url=url)

    return _build
