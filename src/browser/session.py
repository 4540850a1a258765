"""Browser session: explicit owner of the Playwright browser, context and page"""

from typing import Optional

from loguru import logger
from playwright.async_api import async_playwright, Browser, BrowserContext, Page

from src.browser.playwright_page import PlaywrightPage


class BrowserSession:
    """One browser, one context, one page. Created by the caller and passed down explicitly."""

    def __init__(self, correlation_id: str = "N/A"):
        self.correlation_id = correlation_id
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None
        self._playwright = None

    @property
    def is_open(self) -> bool:
        return self.page is not None

    async def start_browser(self, headless: bool = False) -> PlaywrightPage:
        """
        Start Playwright browser.

        Args:
            headless: Run without a browser window

        Returns:
            Page capability bound to the new page
        """
        self._playwright = await async_playwright().start()
        self.browser = await self._playwright.chromium.launch(headless=headless)
        self.context = await self.browser.new_context()
        self.page = await self.context.new_page()

        mode = "headless" if headless else "headed"
        logger.info(f"[{self.correlation_id}] Browser started in {mode} mode")
        return PlaywrightPage(self.page)

    def capability(self) -> PlaywrightPage:
        """Page capability for the open page"""
        if not self.page:
            raise RuntimeError("Browser not started")
        return PlaywrightPage(self.page)

    async def close_browser(self):
        """Close browser"""
        try:
            if self.context:
                await self.context.close()

            if self.browser:
                await self.browser.close()

            if self._playwright:
                await self._playwright.stop()

            logger.info(f"[{self.correlation_id}] Browser closed")
        except Exception as e:
            logger.debug(f"[{self.correlation_id}] Error closing browser: {e}")
        finally:
            self.page = None
            self.context = None
            self.browser = None
            self._playwright = None
