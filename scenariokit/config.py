"""Configuration loading for scenariokit.

Settings come from three layers, later layers winning: built-in defaults,
an optional YAML file and environment variables (including a ``.env`` file
loaded with python-dotenv). The merged result is validated once and cached
for the lifetime of the process.
"""

from __future__ import annotations

import copy
import functools
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv
from omegaconf import OmegaConf
from omegaconf.errors import OmegaConfBaseException

from scenariokit.constants import (
    CONFIG_ENV_VAR,
    DEFAULT_API_TIMEOUT_MS,
    DEFAULT_CONFIG_FILE,
    DEFAULT_ELEMENT_TIMEOUT_MS,
    DEFAULT_TIMEOUT_MS,
    DEFAULT_WORKERS,
    BrowserKind,
    EndpointKind,
)
from scenariokit.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off", ""}

ENV_OVERRIDES: dict[str, tuple[str, str]] = {
    "BASE_URL": ("base_url", "str"),
    "BROWSER": ("browser", "str"),
    "HEADLESS": ("headless", "bool"),
    "TIMEOUT": ("timeout_ms", "int"),
    "ELEMENT_TIMEOUT": ("element_timeout_ms", "int"),
    "SCREENSHOT_ON_FAILURE": ("screenshot_on_failure", "bool"),
    "WORKERS": ("workers", "int"),
    "OAUTH_API_URL": ("oauth_url", "str"),
    "TRANSACTION_API_URL": ("transaction_url", "str"),
    "API_TIMEOUT": ("api_timeout_ms", "int"),
    "OAUTH_BODY_FORM": ("oauth_body_form", "str"),
    "CLIENT_ID": ("client_id", "str"),
    "CLIENT_SECRET": ("client_secret", "str"),
    "RUN_METADATA_FILE": ("run_metadata_file", "str"),
    "EVIDENCE_DIR": ("evidence_dir", "str"),
    "DOWNLOAD_DIR": ("download_dir", "str"),
    "FIXTURES_DIR": ("fixtures_dir", "str"),
}
"""Environment variable name -> (settings key, value type)."""


@dataclass(frozen=True)
class Settings:
    """Validated, immutable harness configuration.

    Attributes
    ----------
    base_url : str
        Root URL of the web application under test
    browser : BrowserKind
        Playwright engine launched for web scenarios
    headless : bool
        Launch the browser without a visible window
    timeout_ms : int
        Default timeout applied to every page
    element_timeout_ms : int
        Bound for page-object visibility waits
    screenshot_on_failure : bool
        Attach a full-page screenshot to failed web scenarios
    workers : int
        Number of worker lanes used by the parallel runner
    slow_mo : int
        Milliseconds Playwright waits between operations
    launch_args : tuple[str, ...]
        Extra command-line switches passed to the browser
    oauth_url : str
        Base URL of the OAuth token endpoint
    transaction_url : str
        Base URL of the transactional API
    api_timeout_ms : int
        Timeout for every REST call
    oauth_body_form : str
        Form-encoded body sent with the client-credentials token request
    oauth_headers : Mapping[str, str]
        Default headers of OAuth request contexts
    transaction_headers : Mapping[str, str]
        Default headers of transactional request contexts
    client_id : str
        OAuth client id
    client_secret : str
        OAuth client secret
    run_metadata_file : Path
        .env-style file holding the run metadata
    evidence_dir : Path
        Root directory for flushed scenario evidence and screenshots
    download_dir : Path
        Directory receiving downloaded files
    fixtures_dir : Path
        Root of the apiRequests and apiResponses fixture folders
    extra : Mapping[str, Any]
        Configuration keys not recognised above, kept for step code
    """

    base_url: str
    browser: BrowserKind
    headless: bool
    timeout_ms: int
    element_timeout_ms: int
    screenshot_on_failure: bool
    workers: int
    slow_mo: int
    launch_args: tuple[str, ...]
    oauth_url: str
    transaction_url: str
    api_timeout_ms: int
    oauth_body_form: str
    oauth_headers: Mapping[str, str]
    transaction_headers: Mapping[str, str]
    client_id: str
    client_secret: str
    run_metadata_file: Path
    evidence_dir: Path
    download_dir: Path
    fixtures_dir: Path
    extra: Mapping[str, Any] = field(default_factory=dict)

    def endpoint_base_url(self, kind: EndpointKind) -> str:
        """Return the base URL configured for an endpoint kind."""
        if kind is EndpointKind.OAUTH:
            return self.oauth_url
        return self.transaction_url

    def endpoint_headers(self, kind: EndpointKind) -> dict[str, str]:
        """Return a copy of the default headers for an endpoint kind."""
        if kind is EndpointKind.OAUTH:
            return dict(self.oauth_headers)
        return dict(self.transaction_headers)


class ConfigLoader:
    """Load and merge YAML configuration, environment and defaults."""

    def __init__(self) -> None:
        """Initialize ConfigLoader with built-in defaults."""
        self.BUILT_IN_DEFAULTS: dict[str, Any] = {
            "base_url": "https://github.com",
            "browser": BrowserKind.CHROMIUM.value,
            "headless": True,
            "timeout_ms": DEFAULT_TIMEOUT_MS,
            "element_timeout_ms": DEFAULT_ELEMENT_TIMEOUT_MS,
            "screenshot_on_failure": True,
            "workers": DEFAULT_WORKERS,
            "slow_mo": 0,
            "launch_args": ["--start-maximized"],
            "oauth_url": "https://api-m.sandbox.paypal.com",
            "transaction_url": "https://api-m.sandbox.paypal.com",
            "api_timeout_ms": DEFAULT_API_TIMEOUT_MS,
            "oauth_body_form": "grant_type=client_credentials",
            "oauth_headers": {"Content-Type": "application/x-www-form-urlencoded"},
            "transaction_headers": {
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            "client_id": "",
            "client_secret": "",
            "run_metadata_file": ".env",
            "evidence_dir": "reports/evidence",
            "download_dir": "tmp/downloads",
            "fixtures_dir": "features/fixtures",
        }

    def load_config(self, config_path: str | None = None) -> dict[str, Any]:
        """Load configuration from a YAML file.

        Parameters
        ----------
        config_path : str | None
            Path to YAML config file. If None, checks SCENARIOKIT_CONFIG env
            var, then falls back to scenariokit.yaml

        Returns
        -------
        dict[str, Any]
            Parsed configuration with interpolations resolved, or an empty
            dict when the file does not exist

        Raises
        ------
        ConfigurationError
            If the file is not valid YAML or interpolation fails
        """
        if config_path is None:
            config_path = os.environ.get(CONFIG_ENV_VAR, DEFAULT_CONFIG_FILE)

        config_file = Path(config_path)

        if not config_file.exists():
            return {}

        try:
            cfg = OmegaConf.load(config_file)
        except yaml.YAMLError as e:
            logger.error("Failed to parse YAML config file %s: %s", config_file, e)
            raise ConfigurationError(f"Invalid YAML in {config_file}: {e}") from e
        except OSError as e:
            logger.error("Failed to read config file %s: %s", config_file, e)
            raise ConfigurationError(
                f"Failed to read config file {config_file}: {e}"
            ) from e

        if cfg is None:
            return {}

        try:
            config = OmegaConf.to_container(cfg, resolve=True, throw_on_missing=True)
        except OmegaConfBaseException as e:
            logger.error("Failed to resolve configuration variables: %s", e)
            raise ConfigurationError(
                f"Configuration variable resolution error: {e}"
            ) from e

        if not isinstance(config, dict):
            raise ConfigurationError(
                f"Config file {config_file} must contain a mapping at the top level"
            )

        return config

    def env_overrides(self, environ: Mapping[str, str]) -> dict[str, Any]:
        """Collect typed overrides from environment variables.

        Parameters
        ----------
        environ : Mapping[str, str]
            Environment to read (usually ``os.environ``)

        Returns
        -------
        dict[str, Any]
            Settings keys mapped to parsed values

        Raises
        ------
        ConfigurationError
            If a value cannot be parsed as the expected type
        """
        overrides: dict[str, Any] = {}

        for env_name, (key, kind) in ENV_OVERRIDES.items():
            raw = environ.get(env_name)
            if raw is None:
                continue

            if kind == "bool":
                overrides[key] = parse_bool(raw, env_name)
            elif kind == "int":
                overrides[key] = parse_int(raw, env_name)
            else:
                overrides[key] = raw

        return overrides

    def merge(
        self, file_config: Mapping[str, Any], overrides: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Merge defaults, file configuration and overrides in that order."""
        merged = OmegaConf.merge(
            OmegaConf.create(copy.deepcopy(self.BUILT_IN_DEFAULTS)),
            OmegaConf.create(dict(file_config)),
            OmegaConf.create(dict(overrides)),
        )
        return OmegaConf.to_container(merged, resolve=True)

    def build_settings(self, config: Mapping[str, Any]) -> Settings:
        """Validate merged configuration and build Settings.

        Parameters
        ----------
        config : Mapping[str, Any]
            Merged configuration

        Returns
        -------
        Settings
            Immutable validated settings

        Raises
        ------
        ConfigurationError
            If any value is invalid
        """
        browser_name = str(config["browser"]).strip().lower()
        try:
            browser = BrowserKind(browser_name)
        except ValueError as e:
            available = [kind.value for kind in BrowserKind]
            raise ConfigurationError(
                f"Unknown browser: {config['browser']}. Available browsers: {available}"
            ) from e

        for key in ("timeout_ms", "element_timeout_ms", "api_timeout_ms"):
            if not isinstance(config[key], int) or config[key] <= 0:
                raise ConfigurationError(f"{key} must be a positive integer")

        if not isinstance(config["workers"], int) or config["workers"] < 1:
            raise ConfigurationError("workers must be an integer >= 1")

        for key in ("base_url", "oauth_url", "transaction_url"):
            if not config[key]:
                raise ConfigurationError(f"{key} is required")

        known = set(self.BUILT_IN_DEFAULTS)
        extra = {k: v for k, v in config.items() if k not in known}

        return Settings(
            base_url=str(config["base_url"]).rstrip("/"),
            browser=browser,
            headless=bool(config["headless"]),
            timeout_ms=config["timeout_ms"],
            element_timeout_ms=config["element_timeout_ms"],
            screenshot_on_failure=bool(config["screenshot_on_failure"]),
            workers=config["workers"],
            slow_mo=int(config["slow_mo"]),
            launch_args=tuple(config["launch_args"] or ()),
            oauth_url=str(config["oauth_url"]).rstrip("/"),
            transaction_url=str(config["transaction_url"]).rstrip("/"),
            api_timeout_ms=config["api_timeout_ms"],
            oauth_body_form=str(config["oauth_body_form"]),
            oauth_headers=dict(config["oauth_headers"] or {}),
            transaction_headers=dict(config["transaction_headers"] or {}),
            client_id=str(config["client_id"] or ""),
            client_secret=str(config["client_secret"] or ""),
            run_metadata_file=Path(config["run_metadata_file"]),
            evidence_dir=Path(config["evidence_dir"]),
            download_dir=Path(config["download_dir"]),
            fixtures_dir=Path(config["fixtures_dir"]),
            extra=extra,
        )

    def load_settings(
        self,
        config_path: str | None = None,
        environ: Mapping[str, str] | None = None,
        dotenv_path: str | None = ".env",
    ) -> Settings:
        """Load the full configuration stack and return Settings.

        Parameters
        ----------
        config_path : str | None
            Optional YAML config path
        environ : Mapping[str, str] | None
            Environment to read overrides from. Defaults to ``os.environ``
            after loading ``dotenv_path`` into it.
        dotenv_path : str | None
            ``.env`` file loaded without overriding existing variables.
            Ignored when ``environ`` is given.

        Returns
        -------
        Settings
            Validated settings
        """
        if environ is None:
            if dotenv_path is not None and Path(dotenv_path).exists():
                load_dotenv(dotenv_path, override=False)
            environ = os.environ

        file_config = self.load_config(config_path)
        merged = self.merge(file_config, self.env_overrides(environ))
        return self.build_settings(merged)


def parse_bool(value: str, name: str) -> bool:
    """Parse a boolean environment value.

    Raises
    ------
    ConfigurationError
        If the value is not a recognised boolean literal
    """
    normalized = value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise ConfigurationError(f"{name} must be a boolean (true/false), got {value!r}")


def parse_int(value: str, name: str) -> int:
    """Parse an integer environment value.

    Raises
    ------
    ConfigurationError
        If the value is not an integer
    """
    try:
        return int(value.strip())
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {value!r}") from e


@functools.lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return process-wide settings, loading them on first use."""
    settings = ConfigLoader().load_settings()
    logger.debug(
        "Loaded settings: browser=%s headless=%s workers=%s",
        settings.browser.value,
        settings.headless,
        settings.workers,
    )
    return settings
