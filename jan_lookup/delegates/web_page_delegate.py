# jan_lookup/delegates/web_page_delegate.py
import logging
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional

from playwright.async_api import async_playwright, Playwright, Browser, BrowserContext, Page, ConsoleMessage
from playwright.async_api import Error as PlaywrightError

from ..models import PageScriptError

logger = logging.getLogger(__name__)

PageLoadListener = Callable[[str], None]
ConsoleListener = Callable[[str, str], None]


class BrowserPageDelegate:
    """
    Hosts the AI page in a Playwright browser and exposes the small surface the
    harness needs: load a URL, run a script and get its return value, and listen
    to page-load and console events.
    """
    def __init__(self, user_agent: str, viewport: Dict, headless: bool = True, max_console_errors: int = 50):
        self.user_agent = user_agent
        self.viewport = viewport
        self.headless = headless
        self._playwright: Optional[Playwright] = None
        self._browser: Optional[Browser] = None
        self._context: Optional[BrowserContext] = None
        self._page: Optional[Page] = None
        self._load_listeners: List[PageLoadListener] = []
        self._console_listeners: List[ConsoleListener] = []
        # Only the most recent errors are kept, for diagnostics after a failed session
        self.console_errors: Deque[str] = deque(maxlen=max_console_errors)

    async def __aenter__(self):
        logger.debug("Starting Playwright and launching browser (headless=%s)...", self.headless)
        self._playwright = await async_playwright().start()
        self._browser = await self._playwright.chromium.launch(headless=self.headless)

        self._context = await self._browser.new_context(
            user_agent=self.user_agent,
            viewport=self.viewport,
            is_mobile=True,
            has_touch=True,
        )
        self._page = await self._context.new_page()
        self._page.on("load", self._handle_load)
        self._page.on("console", self._handle_console)
        self._page.on("pageerror", self._handle_page_error)
        logger.debug("Playwright browser launched, page created and event listeners attached.")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        logger.debug("Closing page, context and browser, and stopping Playwright...")
        if self._page:
            self._page.remove_listener("load", self._handle_load)
            self._page.remove_listener("console", self._handle_console)
            self._page.remove_listener("pageerror", self._handle_page_error)
        if self._context:
            await self._context.close()
        if self._browser:
            await self._browser.close()
        if self._playwright:
            await self._playwright.stop()
        self._page = None
        logger.debug("Playwright resources released.")

    # --- Listener registration ---

    def add_page_load_listener(self, listener: PageLoadListener):
        self._load_listeners.append(listener)

    def remove_page_load_listener(self, listener: PageLoadListener):
        if listener in self._load_listeners:
            self._load_listeners.remove(listener)

    def add_console_listener(self, listener: ConsoleListener):
        self._console_listeners.append(listener)

    def remove_console_listener(self, listener: ConsoleListener):
        if listener in self._console_listeners:
            self._console_listeners.remove(listener)

    def _handle_load(self, page: Page):
        logger.debug("Page finished loading: %s", page.url)
        for listener in list(self._load_listeners):
            listener(page.url)

    def _handle_console(self, message: ConsoleMessage):
        level = message.type
        logger.debug("Console [%s]: %s", level, message.text)
        if level == "error":
            self.console_errors.append(message.text)
        for listener in list(self._console_listeners):
            listener(message.text, level)

    def _handle_page_error(self, error: PlaywrightError):
        logger.debug("Uncaught page error: %s", error)
        self.console_errors.append(str(error))
        for listener in list(self._console_listeners):
            listener(str(error), "error")

    # --- Page operations ---

    def _require_page(self) -> Page:
        if not self._page:
            raise PageScriptError("Browser page not initialized. Use BrowserPageDelegate as an async context manager.")
        return self._page

    async def load_url(self, url: str, timeout: int = 60000):
        page = self._require_page()
        logger.info("Navigating to: %s", url)
        try:
            await page.goto(url, wait_until="domcontentloaded", timeout=timeout)
        except PlaywrightError as e:
            logger.error("Failed to load %s: %s", url, e)
            raise PageScriptError(f"navigation to {url} failed: {e}", context={"url": url}) from e

    async def run_script(self, script: str, arg: Any = None) -> Any:
        """Runs a JavaScript function expression in the page and returns its (JSON-serializable) result."""
        page = self._require_page()
        try:
            return await page.evaluate(script, arg)
        except PlaywrightError as e:
            logger.debug("Page script failed: %s", e)
            raise PageScriptError(f"page script failed: {e}") from e

    async def page_html(self) -> str:
        page = self._require_page()
        try:
            return await page.content()
        except PlaywrightError as e:
            raise PageScriptError(f"could not read page HTML: {e}") from e
