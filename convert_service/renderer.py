"""
Renderer session - one headless Chromium process per conversion request.

A RendererSession owns exactly one browser process (and the Playwright
driver that launched it) for the lifetime of a single request. It is used
as an async context manager so the browser is closed on every exit path:

    async with RendererSession(options) as session:
        pdf_bytes = await session.render_pdf(html)
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from playwright.async_api import TimeoutError as PlaywrightTimeoutError
from playwright.async_api import async_playwright

from .config import ConvertSettings
from .errors import ConversionError, LaunchError, RenderTimeoutError

logger = logging.getLogger(__name__)

# Fixed PDF layout; not configurable per request.
PDF_FORMAT = "A4"
PDF_PRINT_BACKGROUND = True
PDF_MARGIN = {"top": "20px", "right": "20px", "bottom": "20px", "left": "20px"}

# Arguments for server/container hosting (small /dev/shm, no GPU).
SERVER_CHROMIUM_ARGS = [
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--hide-scrollbars",
    "--font-render-hinting=none",
]


@dataclass
class BrowserLaunchOptions:
    """How to start the browser for a session."""

    headless: bool = True
    executable_path: Optional[str] = None
    args: List[str] = field(default_factory=list)
    chromium_sandbox: bool = True
    timeout_ms: int = 30000

    def launch_kwargs(self) -> Dict[str, Any]:
        """Keyword arguments for Playwright's ``chromium.launch``."""
        kwargs: Dict[str, Any] = {
            "headless": self.headless,
            "args": list(self.args),
            "chromium_sandbox": self.chromium_sandbox,
            "timeout": self.timeout_ms,
        }
        if self.executable_path:
            kwargs["executable_path"] = self.executable_path
        return kwargs


def launch_options_from_settings(settings: ConvertSettings) -> BrowserLaunchOptions:
    """
    Select the browser binary for the deployment mode.

    Production uses Playwright's bundled Chromium with server arguments;
    other environments use the locally installed executable when configured.
    """
    if settings.is_production:
        return BrowserLaunchOptions(
            headless=True,
            executable_path=None,
            args=list(SERVER_CHROMIUM_ARGS),
            chromium_sandbox=settings.chromium_sandbox,
            timeout_ms=settings.render_timeout_ms,
        )
    return BrowserLaunchOptions(
        headless=settings.browser_headless,
        executable_path=settings.chromium_executable_path,
        args=[],
        chromium_sandbox=settings.chromium_sandbox,
        timeout_ms=settings.render_timeout_ms,
    )


class RendererSession:
    """Request-scoped handle over one browser process."""

    def __init__(
        self,
        options: BrowserLaunchOptions,
        playwright_factory: Optional[Callable[[], Any]] = None,
    ):
        self.options = options
        self._playwright_factory = playwright_factory or async_playwright
        self._playwright = None
        self._browser = None

    @property
    def is_open(self) -> bool:
        return self._browser is not None

    async def open(self) -> None:
        """
        Start the Playwright driver and launch Chromium.

        Raises:
            LaunchError: the executable could not be located or started
        """
        if self.is_open:
            return

        logger.info(
            "Launching Chromium "
            f"(headless={self.options.headless}, "
            f"executable={self.options.executable_path or 'bundled'})"
        )
        try:
            self._playwright = await self._playwright_factory().start()
            self._browser = await self._playwright.chromium.launch(
                **self.options.launch_kwargs()
            )
        except Exception as e:
            logger.error(f"Browser launch failed: {type(e).__name__}: {e}")
            # Release whatever part of the driver did start.
            await self.close()
            raise LaunchError(f"Failed to launch browser: {e}", cause=e) from e
        except BaseException:
            # Cancelled mid-launch: __aexit__ will not run for this session.
            await self.close()
            raise

        logger.info("Chromium launched successfully")

    async def render_pdf(self, html: str) -> bytes:
        """
        Load HTML into a fresh page, wait for network idle, and print to PDF.

        Args:
            html: Complete HTML document or fragment

        Returns:
            PDF bytes

        Raises:
            RenderTimeoutError: network never went idle within the budget
            ConversionError: Chromium failed to load or print the page
        """
        if not self.is_open:
            raise RuntimeError("Renderer session is not open")

        budget_seconds = self.options.timeout_ms / 1000
        try:
            pdf_bytes = await asyncio.wait_for(self._render(html), timeout=budget_seconds)
        except (PlaywrightTimeoutError, asyncio.TimeoutError) as e:
            logger.error(f"PDF rendering timed out after {self.options.timeout_ms}ms")
            raise RenderTimeoutError(
                f"Rendering timed out after {self.options.timeout_ms}ms", cause=e
            ) from e
        except Exception as e:
            logger.error(f"PDF rendering failed: {type(e).__name__}: {e}")
            raise ConversionError.wrap(e, "PDF rendering failed") from e

        logger.info(f"PDF buffer generated, size: {len(pdf_bytes)}")
        return pdf_bytes

    async def _render(self, html: str) -> bytes:
        page = await self._browser.new_page()
        page.set_default_timeout(self.options.timeout_ms)

        logger.debug("Setting page content...")
        await page.set_content(html, wait_until="networkidle")

        return await page.pdf(
            format=PDF_FORMAT,
            print_background=PDF_PRINT_BACKGROUND,
            margin=dict(PDF_MARGIN),
        )

    async def close(self) -> None:
        """
        Terminate the browser process and stop the driver.

        Safe to call repeatedly or on a session that never opened. Close
        failures are logged, never raised.
        """
        browser, playwright = self._browser, self._playwright
        self._browser = None
        self._playwright = None

        if browser is not None:
            try:
                await browser.close()
                logger.info("Browser closed")
            except Exception as e:
                logger.warning(f"Error closing browser: {type(e).__name__}: {e}")

        if playwright is not None:
            try:
                await playwright.stop()
            except Exception as e:
                logger.warning(f"Error stopping Playwright driver: {type(e).__name__}: {e}")

    async def __aenter__(self) -> "RendererSession":
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


async def check_browser(
    options: BrowserLaunchOptions,
    playwright_factory: Optional[Callable[[], Any]] = None,
) -> Tuple[bool, Optional[str]]:
    """
    Probe that Chromium can launch and print a page.

    Returns:
        (ready, error message or None)
    """
    try:
        async with RendererSession(options, playwright_factory) as session:
            test_pdf = await session.render_pdf("<html><body><h1>Test</h1></body></html>")
    except Exception as e:
        return False, str(e)

    if not test_pdf:
        return False, "Test PDF generation returned empty result"
    return True, None
