"""Global constants for scenariokit.

This module contains harness-wide constants shared by the lifecycle hooks,
the resource managers and the step library.
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable

DEFAULT_TIMEOUT_MS = 30_000
"""Default Playwright operation timeout in milliseconds.

Applied to every page created by the browser manager through
``page.set_default_timeout``.
"""

DEFAULT_ELEMENT_TIMEOUT_MS = 10_000
"""Upper bound in milliseconds for waiting on an element to become visible.

Page-object actions wait this long before raising ``ElementTimeoutError``.
"""

VISIBILITY_CHECK_TIMEOUT_MS = 5_000
"""Timeout in milliseconds for non-raising visibility checks."""

DEFAULT_API_TIMEOUT_MS = 30_000
"""Default REST request timeout in milliseconds."""

DEFAULT_WORKERS = 2
"""Default number of worker lanes used by the parallel runner."""

RANDOM_PLACEHOLDER = "<random>"
"""Payload placeholder replaced with a three digit number (100-999)."""

API_TAG = "api"
"""Scenario tag routing a scenario to the API-only lifecycle."""

LANE_ENV_VAR = "SCENARIOKIT_LANE"
"""Environment variable marking a behave process as a worker lane.

Set by the parallel runner. Lanes skip the run-level metadata writes
because the runner performs them once for the whole run.
"""

DEBUG_ENV_VAR = "SCENARIOKIT_DEBUG"
CONFIG_ENV_VAR = "SCENARIOKIT_CONFIG"
DEFAULT_CONFIG_FILE = "scenariokit.yaml"

META_STARTED_TIME = "TEST_STARTED_TIME"
META_COMPLETED_TIME = "TEST_COMPLETED_TIME"
META_BROWSER_VERSION = "RUN_BROWSER_VERSION"

KEY_SCENARIO_ID = "scenarioId"
KEY_TIMESTAMP = "timestamp"
KEY_UNIQUE_EMAIL = "uniqueEmail"
KEY_OAUTH_TOKEN = "OAuthToken"
KEY_REQUEST_OBJECT = "requestObject"
KEY_RESPONSE_OBJECT = "responseObject"
KEY_ACTUAL_RESPONSE = "actualResponseObject"

MEDIA_TEXT = "text/plain"
MEDIA_JSON = "application/json"
MEDIA_PNG = "image/png"

PAYLOAD_METHODS = frozenset({"POST", "PUT", "PATCH"})
SUPPORTED_METHODS = frozenset({"POST", "GET", "PUT", "PATCH", "DELETE"})
DEFAULT_STRICT_METHODS = frozenset({"DELETE"})
"""HTTP methods that raise ``TransactionError`` on a non-2xx response.

The remaining methods keep the response for explicit status assertions so
scenarios can exercise negative paths.
"""


class BrowserKind(Enum):
    """Browser engines supported by Playwright."""

    CHROMIUM = "chromium"
    FIREFOX = "firefox"
    WEBKIT = "webkit"


class EndpointKind(Enum):
    """REST endpoints the harness talks to."""

    OAUTH = "oauth"
    TRANSACTION = "transaction"


class ScenarioKind(Enum):
    """Lifecycle a scenario runs under, derived once from its tags."""

    WEB = "web"
    API = "api"

    @classmethod
    def classify(cls, tags: Iterable[str]) -> "ScenarioKind":
        """Return API when the scenario carries the api tag, WEB otherwise."""
        normalized = {tag.lstrip("@").lower() for tag in tags}
        return cls.API if API_TAG in normalized else cls.WEB
