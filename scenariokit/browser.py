"""Automation resource manager owning one scenario's browser session."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import sync_playwright

from scenariokit.constants import BrowserKind
from scenariokit.exceptions import LaunchError, PreconditionError

if TYPE_CHECKING:
    from playwright.sync_api import Browser, BrowserContext, Page, Playwright

    from scenariokit.config import Settings
    from scenariokit.run_metadata import RunMetadataStore

logger = logging.getLogger(__name__)


class BrowserManager:
    """Owns the launch -> context -> page -> close lifecycle for one scenario.

    Holds at most one Playwright driver, browser, isolated context and page.
    A context needs a live browser and a page needs a live context; asking
    for either out of order raises ``PreconditionError``.

    Parameters
    ----------
    settings : Settings
        Harness settings (engine kind, headless flag, timeouts)
    metadata_store : RunMetadataStore | None
        Store receiving the resolved browser version
    playwright_factory : Callable
        Returns an object whose ``start()`` yields a Playwright driver.
        Defaults to ``sync_playwright``.
    """

    def __init__(
        self,
        settings: "Settings",
        metadata_store: "RunMetadataStore | None" = None,
        playwright_factory: Callable[[], Any] = sync_playwright,
    ) -> None:
        self.settings = settings
        self.metadata_store = metadata_store
        self._playwright_factory = playwright_factory
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None
        self.browser_version: str | None = None

    def launch(self, options: dict[str, Any] | None = None) -> "Browser":
        """Start the Playwright driver and launch one browser.

        Calling launch twice without an intervening ``close()`` leaks the
        first browser; callers follow the lifecycle order.

        Parameters
        ----------
        options : dict[str, Any] | None
            Extra Playwright launch options merged over the configured ones.
            A ``browser`` key overrides the configured engine kind.

        Returns
        -------
        Browser
            The launched browser

        Raises
        ------
        LaunchError
            If the engine kind is unknown or the browser fails to start
        """
        launch_options: dict[str, Any] = {
            "headless": self.settings.headless,
            "slow_mo": self.settings.slow_mo,
            "args": list(self.settings.launch_args),
        }
        launch_options.update(options or {})

        requested = launch_options.pop("browser", self.settings.browser)
        kind = resolve_browser_kind(requested)

        try:
            self._playwright = self._playwright_factory().start()
        except PlaywrightError as e:
            raise LaunchError(f"Failed to start Playwright driver: {e}") from e

        try:
            browser_type = getattr(self._playwright, kind.value)
            self._browser = browser_type.launch(**launch_options)
        except PlaywrightError as e:
            self._stop_driver()
            raise LaunchError(f"Failed to launch {kind.value}: {e}") from e

        self.browser_version = self._browser.version
        logger.info(f"Launched {kind.value} {self.browser_version}")

        if self.metadata_store is not None:
            try:
                self.metadata_store.record_browser_version(self.browser_version)
            except OSError as e:
                logger.warning(f"Failed to record browser version: {e}")

        return self._browser

    def create_session(self) -> "BrowserContext":
        """Create an isolated browser context (no shared cookies or storage).

        Raises
        ------
        PreconditionError
            If no browser has been launched
        """
        if self._browser is None:
            raise PreconditionError("Browser not launched. Call launch() first.")

        self._context = self._browser.new_context(viewport=None)
        return self._context

    def create_page(self) -> "Page":
        """Open a page in the current context and apply the default timeout.

        Raises
        ------
        PreconditionError
            If no context has been created
        """
        if self._context is None:
            raise PreconditionError("Context not created. Call create_session() first.")

        self._page = self._context.new_page()
        self._page.set_default_timeout(self.settings.timeout_ms)
        return self._page

    def get_page(self) -> "Page":
        if self._page is None:
            raise PreconditionError("Page not created. Call create_page() first.")
        return self._page

    def get_session(self) -> "BrowserContext":
        if self._context is None:
            raise PreconditionError("Context not created. Call create_session() first.")
        return self._context

    def has_page(self) -> bool:
        return self._page is not None

    def switch_to_page(self, page: "Page") -> "Page":
        """Make another tab of the current context the active page.

        The previous page handle is replaced, not kept alongside.

        Raises
        ------
        PreconditionError
            If no context has been created
        """
        if self._context is None:
            raise PreconditionError("Context not created. Call create_session() first.")

        page.set_default_timeout(self.settings.timeout_ms)
        self._page = page
        return page

    def close(self) -> None:
        """Release page, context, browser and driver, in that order.

        Every step is guarded: a missing handle is skipped and a failing
        release is logged. Safe to call any number of times, including after
        a partially failed acquisition.
        """
        page, self._page = self._page, None
        context, self._context = self._context, None
        browser, self._browser = self._browser, None

        for label, handle in (("page", page), ("context", context), ("browser", browser)):
            if handle is None:
                continue
            try:
                handle.close()
                logger.debug(f"Closed {label}")
            except Exception as e:
                logger.warning(f"Failed to close {label}: {e}")

        self._stop_driver()

    def _stop_driver(self) -> None:
        driver, self._playwright = self._playwright, None
        if driver is None:
            return
        try:
            driver.stop()
            logger.debug("Stopped Playwright driver")
        except Exception as e:
            logger.warning(f"Failed to stop Playwright driver: {e}")


def resolve_browser_kind(value: BrowserKind | str) -> BrowserKind:
    """Map a configured engine name to a BrowserKind.

    Raises
    ------
    LaunchError
        If the name is not one of the supported engines
    """
    if isinstance(value, BrowserKind):
        return value

    try:
        return BrowserKind(str(value).strip().lower())
    except ValueError as e:
        available = [kind.value for kind in BrowserKind]
        raise LaunchError(
            f"Unrecognized browser kind: {value}. Supported kinds: {available}"
        ) from e
