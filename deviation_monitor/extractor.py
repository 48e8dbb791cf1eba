"""Price extraction from a web page with a long-lived Playwright browser."""

import logging
import re
from typing import Optional, Protocol

from playwright.async_api import Browser, BrowserContext, Error as PlaywrightError
from playwright.async_api import Playwright, TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .user_agents import get_random_user_agent

logger = logging.getLogger(__name__)

# First number-looking token, with optional sign and grouping/decimal marks
PRICE_TOKEN: re.Pattern = re.compile(r"[-+]?\d[\d.,]*")


class SourceFetchError(Exception):
    """Navigation, selector or parsing failure while reading the price."""


class PriceSource(Protocol):
    """Anything that can report the current price of the monitored page."""

    async def start(self) -> None: ...

    async def fetch_current_price(self) -> float: ...

    async def close(self) -> None: ...


def parse_price_text(text: Optional[str]) -> float:
    """
    Parse a displayed price like 'R$ 12,34' or '1.234,56' into a float.

    A comma decimal separator is normalized to a period. When both a comma
    and a period appear, whichever comes last is the decimal separator and
    the other is treated as thousands grouping.
    """
    if not text:
        raise SourceFetchError("Price element is empty")

    match = PRICE_TOKEN.search(text.strip())
    if not match:
        raise SourceFetchError(f"No number found in {text!r}")

    token = match.group(0).rstrip(".,")
    if "," in token and "." in token:
        if token.rfind(",") > token.rfind("."):
            token = token.replace(".", "").replace(",", ".")
        else:
            token = token.replace(",", "")
    elif "," in token:
        if token.count(",") > 1:
            token = token.replace(",", "")
        else:
            token = token.replace(",", ".")
    elif token.count(".") > 1:
        token = token.replace(".", "")

    try:
        return float(token)
    except ValueError:
        raise SourceFetchError(f"Could not parse price from {text!r}") from None


class PlaywrightPriceSource:
    """
    Reads the price element of a single page.

    The browser is launched once by ``start()`` and reused for every fetch;
    each fetch opens and closes its own page. ``close()`` releases the
    browser and is safe to call more than once.
    """

    def __init__(
        self,
        url: str,
        selector: str,
        headless: bool = True,
        timeout_ms: int = 30000,
    ):
        self.url = url
        self.selector = selector
        self.headless = headless
        self.timeout_ms = timeout_ms
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None

    @property
    def is_open(self) -> bool:
        return self._browser is not None

    async def start(self) -> None:
        if self._browser is not None:
            return

        self._playwright = await async_playwright().start()
        try:
            self._browser = await self._playwright.chromium.launch(headless=self.headless)
            self._context = await self._browser.new_context(
                user_agent=get_random_user_agent(),
                viewport={"width": 1920, "height": 1080},
            )
        except PlaywrightError:
            await self.close()
            raise
        logger.info(f"Browser launched (headless={self.headless})")

    async def fetch_current_price(self) -> float:
        if self._context is None:
            raise SourceFetchError("Price source has not been started")

        page = None
        try:
            page = await self._context.new_page()
            logger.debug(f"Loading {self.url}")
            await page.goto(self.url, wait_until="domcontentloaded", timeout=self.timeout_ms)
            element = await page.wait_for_selector(
                self.selector, state="attached", timeout=self.timeout_ms
            )
            if element is None:
                raise SourceFetchError(f"Selector '{self.selector}' matched nothing")
            text = await element.inner_text()
        except PlaywrightTimeoutError as e:
            raise SourceFetchError(
                f"Timed out loading {self.url} or waiting for '{self.selector}': {e}"
            ) from e
        except PlaywrightError as e:
            raise SourceFetchError(f"Failed to read price from {self.url}: {e}") from e
        finally:
            if page is not None:
                try:
                    await page.close()
                except PlaywrightError as e:
                    logger.debug(f"Page close failed: {e}")

        price = parse_price_text(text)
        logger.debug(f"Extracted {price} via selector '{self.selector}'")
        return price

    async def close(self) -> None:
        browser, playwright = self._browser, self._playwright
        self._browser = None
        self._context = None
        self._playwright = None

        if browser is not None:
            try:
                await browser.close()
            except PlaywrightError as e:
                logger.warning(f"Browser close failed: {e}")
            else:
                logger.info("Browser closed")
        if playwright is not None:
            await playwright.stop()
