"""Per-scenario session context ("world").

One ``ScenarioWorld`` is created for every scenario and destroyed when the
scenario ends. It is never shared or reused, which is what keeps scenarios
running in parallel worker lanes isolated from each other.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import TYPE_CHECKING, Any, Callable, TypeVar

from scenariokit.browser import BrowserManager
from scenariokit.constants import (
    KEY_SCENARIO_ID,
    KEY_TIMESTAMP,
    KEY_UNIQUE_EMAIL,
    MEDIA_TEXT,
    ScenarioKind,
)
from scenariokit.evidence import Attachment, EvidenceRecord
from scenariokit.exceptions import PreconditionError
from scenariokit.pages import HomePage, LoginPage
from scenariokit.resources import ResourceRegistry
from scenariokit.rest import RestSession

if TYPE_CHECKING:
    from playwright.sync_api import Page

    from scenariokit.config import Settings
    from scenariokit.pages import BasePage
    from scenariokit.run_metadata import RunMetadataStore

logger = logging.getLogger(__name__)

PageT = TypeVar("PageT", bound="BasePage")


class ScenarioWorld:
    """Mutable state owned by exactly one scenario.

    Holds the scratch map, the scenario's browser manager, a lazily
    created REST session, a lazily built page-object cache and the
    scenario's evidence channel.

    Parameters
    ----------
    settings : Settings
        Harness settings
    scenario_name : str
        Name of the scenario, used for evidence
    metadata_store : RunMetadataStore | None
        Store passed to the browser manager
    browser_manager_factory : Callable
        Builds the browser manager; receives ``(settings, metadata_store)``
    rest_session_factory : Callable
        Builds the REST session on first use; receives ``settings``
    """

    def __init__(
        self,
        settings: "Settings",
        scenario_name: str = "",
        metadata_store: "RunMetadataStore | None" = None,
        browser_manager_factory: Callable[..., BrowserManager] = BrowserManager,
        rest_session_factory: Callable[..., RestSession] = RestSession,
    ) -> None:
        self.settings = settings
        self.scenario_name = scenario_name
        self.scenario_id = uuid.uuid4().hex
        self.created_at = int(time.time() * 1000)
        self.kind = ScenarioKind.WEB
        self.test_data: dict[str, Any] = {}
        self.browser_manager = browser_manager_factory(settings, metadata_store)
        self.evidence = EvidenceRecord(scenario_name, self.scenario_id)
        self.resources = ResourceRegistry()
        self._rest_session_factory = rest_session_factory
        self._rest: RestSession | None = None
        self._page_objects: dict[type, Any] = {}
        self._page_bound = False
        self.destroyed = False

    # ------------------------------------------------------------------
    # Page binding and page objects
    # ------------------------------------------------------------------

    def bind_page(self) -> "Page":
        """Bind the browser manager's active page to this world."""
        page = self.browser_manager.get_page()
        self._page_bound = True
        return page

    @property
    def page(self) -> "Page | None":
        """The active page (following tab switches), or None when unbound."""
        if not self._page_bound or not self.browser_manager.has_page():
            return None
        return self.browser_manager.get_page()

    def page_object(self, page_class: type[PageT]) -> PageT:
        """Return this scenario's instance of a page object, building it once.

        Raises
        ------
        PreconditionError
            If the world was destroyed or no page is bound
        """
        if self.destroyed:
            raise PreconditionError("Scenario world has already been destroyed.")

        instance = self._page_objects.get(page_class)
        if instance is None:
            if self.page is None:
                raise PreconditionError(
                    "Page is not initialized. Ensure the before_scenario hook has run."
                )
            instance = page_class(self.browser_manager, self.settings)
            self._page_objects[page_class] = instance
        return instance

    @property
    def login_page(self) -> LoginPage:
        return self.page_object(LoginPage)

    @property
    def home_page(self) -> HomePage:
        return self.page_object(HomePage)

    # ------------------------------------------------------------------
    # REST
    # ------------------------------------------------------------------

    @property
    def rest(self) -> RestSession:
        """The scenario's REST session, created on first access."""
        if self.destroyed:
            raise PreconditionError("Scenario world has already been destroyed.")
        if self._rest is None:
            self._rest = self._rest_session_factory(self.settings)
        return self._rest

    def dispose_rest(self) -> None:
        if self._rest is not None:
            self._rest.dispose()

    # ------------------------------------------------------------------
    # Scratch data and evidence
    # ------------------------------------------------------------------

    def seed_unique_data(self) -> dict[str, Any]:
        """Store identifiers that cannot collide with concurrent scenarios.

        Returns
        -------
        dict[str, Any]
            The seeded ``scenarioId``, ``timestamp`` and ``uniqueEmail``
        """
        timestamp = int(time.time() * 1000)
        seeded = {
            KEY_SCENARIO_ID: self.scenario_id,
            KEY_TIMESTAMP: timestamp,
            KEY_UNIQUE_EMAIL: f"test_{self.scenario_id}_{timestamp}@example.com",
        }
        self.test_data.update(seeded)
        return seeded

    def attach(self, payload: str | bytes, media_type: str = MEDIA_TEXT) -> Attachment:
        return self.evidence.attach(payload, media_type)

    def attach_clean(self, text: str, media_type: str = MEDIA_TEXT) -> Attachment:
        return self.evidence.attach_clean(text, media_type)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    def release_resources(self) -> list[str]:
        """Release every registered resource; returns labels that failed."""
        return self.resources.release_all()

    def destroy(self) -> None:
        """Clear scratch data and drop cached page objects and sessions."""
        self.test_data.clear()
        self._page_objects.clear()
        self._page_bound = False
        self._rest = None
        self.destroyed = True
        logger.debug(f"Destroyed world for scenario {self.scenario_id}")
