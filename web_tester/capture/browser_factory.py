"""Chromium lifecycle for capture sessions.

Network capture needs a Chrome DevTools Protocol session, so only Chromium is
launched. Every capture runs on a single page inside its own browser context.
"""

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Any, AsyncGenerator, Dict, Optional

from playwright.async_api import Browser, Page, Playwright, async_playwright

logger = logging.getLogger(__name__)


@dataclass
class BrowserOptions:
    """Launch and context options for the capture browser."""

    headless: bool = True
    viewport: Dict[str, int] = field(default_factory=lambda: {'width': 1920, 'height': 1080})
    ignore_https_errors: bool = True

    def context_options(self) -> Dict[str, Any]:
        return {
            'viewport': self.viewport,
            'ignore_https_errors': self.ignore_https_errors,
        }


class BrowserFactory:
    """Owns the Playwright driver and the Chromium process."""

    def __init__(self, options: Optional[BrowserOptions] = None):
        self.options = options or BrowserOptions()
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None

    async def start(self) -> None:
        """Start Playwright and launch Chromium.

        Raises:
            Exception: Whatever Playwright raised; partial startup is undone first
        """
        if self.browser is not None:
            logger.warning("Chromium already launched")
            return

        logger.info(f"Launching Chromium (headless={self.options.headless})")
        try:
            self.playwright = await async_playwright().start()
            self.browser = await self.playwright.chromium.launch(headless=self.options.headless)
        except Exception as e:
            logger.error(f"Failed to launch Chromium: {e}")
            await self.stop()
            raise

    async def stop(self) -> None:
        """Close Chromium and stop Playwright. Errors are logged."""
        browser, self.browser = self.browser, None
        playwright, self.playwright = self.playwright, None

        try:
            if browser is not None:
                await browser.close()
        except Exception as e:
            logger.error(f"Error closing Chromium: {e}")

        try:
            if playwright is not None:
                await playwright.stop()
        except Exception as e:
            logger.error(f"Error stopping Playwright: {e}")

        logger.info("Chromium stopped")

    @asynccontextmanager
    async def page(self) -> AsyncGenerator[Page, None]:
        """Open one page in a fresh context; the context closes on exit.

        Raises:
            RuntimeError: If Chromium has not been launched
        """
        if self.browser is None:
            raise RuntimeError("Chromium not launched. Call start() first.")

        context = await self.browser.new_context(**self.options.context_options())
        try:
            yield await context.new_page()
        finally:
            await context.close()


def create_default_factory() -> BrowserFactory:
    """Headless Chromium that tolerates invalid certificates."""
    return BrowserFactory(BrowserOptions())
