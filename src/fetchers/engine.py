"""Page engines the extractor drives.

The extractor only needs a handful of page operations: navigate, render
static HTML, wait for a selector, click, query elements and read their
text. PageEngine names that surface; two implementations back it:

- PlaywrightEngine: headless Chromium through Playwright's sync API, for
  the live Tudum page (filters are rendered client-side, so plain HTTP
  is not enough).
- SoupEngine: BeautifulSoup over static HTML, for pre-filtered sample
  pages. No browser is launched and nothing is clickable.

Install the browser binary for live scraping with::

    playwright install chromium
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Protocol, Union

from bs4 import BeautifulSoup
from bs4.element import Tag
from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from src.config import NetflixConfig
from src.errors import SourceLoadFailure

logger = logging.getLogger(__name__)

CHROMIUM_ARGS = [
    "--no-sandbox",
    "--disable-setuid-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--no-zygote",
]


class PageEngine(Protocol):
    def load_page(self, url: str, timeout_ms: int) -> None: ...

    def load_static(self, html: str) -> None: ...

    def wait_for(self, selector: str, timeout_ms: int) -> bool: ...

    def click(self, target: Union[str, Any]) -> None: ...

    def query_all(self, selector: str, scope: Any = None) -> list: ...

    def query(self, selector: str, scope: Any = None) -> Optional[Any]: ...

    def text_of(self, handle: Any) -> str: ...

    def title(self) -> str: ...

    def close(self) -> None: ...


class PlaywrightEngine:
    """One headless Chromium page, driven synchronously.

    Not safe to share between threads or concurrent scrapes: one engine
    backs exactly one extractor run. Use as a context manager so the
    browser is always closed.

    Raises SourceLoadFailure when Playwright or Chromium cannot start.
    """

    def __init__(self, config: NetflixConfig) -> None:
        self._config = config
        try:
            self._playwright = sync_playwright().start()
        except PlaywrightError as exc:
            raise SourceLoadFailure("playwright", exc) from exc
        try:
            self._browser = self._playwright.chromium.launch(
                headless=config.headless,
                args=CHROMIUM_ARGS,
            )
            self._page = self._browser.new_page(user_agent=config.user_agent)
        except PlaywrightError as exc:
            self._playwright.stop()
            raise SourceLoadFailure("chromium", exc) from exc
        logger.info("Launched headless Chromium")

    def __enter__(self) -> "PlaywrightEngine":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def load_page(self, url: str, timeout_ms: int) -> None:
        self._page.goto(url, timeout=timeout_ms, wait_until="domcontentloaded")

    def load_static(self, html: str) -> None:
        self._page.set_content(html, wait_until="domcontentloaded")

    def wait_for(self, selector: str, timeout_ms: int) -> bool:
        try:
            self._page.wait_for_selector(selector, timeout=timeout_ms)
        except PlaywrightTimeoutError:
            return False
        return True

    def click(self, target: Union[str, Any]) -> None:
        if isinstance(target, str):
            self._page.click(target)
        else:
            target.click()

    def query_all(self, selector: str, scope: Any = None) -> list:
        return (self._page if scope is None else scope).query_selector_all(selector)

    def query(self, selector: str, scope: Any = None) -> Optional[Any]:
        return (self._page if scope is None else scope).query_selector(selector)

    def text_of(self, handle: Any) -> str:
        return (handle.inner_text() or "").strip()

    def title(self) -> str:
        return self._page.title()

    def close(self) -> None:
        try:
            self._browser.close()
        finally:
            self._playwright.stop()
        logger.info("Closed headless Chromium")


class SoupEngine:
    """Static HTML engine backed by BeautifulSoup and lxml.

    Waiting succeeds immediately when the selector matches the parsed
    document and fails otherwise; clicking is not supported because a
    static page cannot re-render.
    """

    def __init__(self) -> None:
        self._soup = BeautifulSoup("", "lxml")

    def __enter__(self) -> "SoupEngine":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def load_page(self, url: str, timeout_ms: int) -> None:
        raise NotImplementedError("SoupEngine only renders static HTML")

    def load_static(self, html: str) -> None:
        self._soup = BeautifulSoup(html, "lxml")

    def wait_for(self, selector: str, timeout_ms: int) -> bool:
        return self._soup.select_one(selector) is not None

    def click(self, target: Union[str, Any]) -> None:
        raise NotImplementedError("Static pages cannot be clicked")

    def query_all(self, selector: str, scope: Any = None) -> list[Tag]:
        return (self._soup if scope is None else scope).select(selector)

    def query(self, selector: str, scope: Any = None) -> Optional[Tag]:
        return (self._soup if scope is None else scope).select_one(selector)

    def text_of(self, handle: Any) -> str:
        return handle.get_text(" ", strip=True)

    def title(self) -> str:
        tag = self._soup.title
        return tag.get_text(strip=True) if tag else ""

    def close(self) -> None:
        self._soup.decompose()
