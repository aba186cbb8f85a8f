from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ReviewDocument(Protocol):
    """Live document operations the extraction engine relies on.

    All calls are cooperative suspension points; the engine never issues two of
    them concurrently against the same document.
    """

    @property
    def url(self) -> str: ...

    async def goto(self, url: str) -> None: ...

    async def count(self, selector: str) -> int: ...

    async def content(self) -> str: ...

    async def outer_html_all(self, selector: str) -> list[str]: ...

    async def click_all(self, selectors: Sequence[str], *, max_clicks: int = 200) -> int: ...

    async def scroll_to_end(self, card_selector: str | None) -> bool: ...

    async def evaluate(self, script: str, arg: Any = None) -> Any: ...

    async def sleep(self, delay_ms: int) -> None: ...
