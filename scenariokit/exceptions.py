"""Exceptions raised by scenariokit."""


class ScenarioKitError(Exception):
    """Base class for all harness errors."""

    pass


class ConfigurationError(ScenarioKitError, ValueError):
    """Raised when configuration is missing or invalid."""

    pass


class PreconditionError(ScenarioKitError):
    """Raised when an operation runs before its required predecessor."""

    pass


class LaunchError(ScenarioKitError):
    """Raised when the browser engine is unknown or fails to start."""

    pass


class AuthError(ScenarioKitError):
    """Raised when the OAuth token request is not successful."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransactionError(ScenarioKitError):
    """Raised when a strict transaction call returns a non-2xx status."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class OperationTimeoutError(ScenarioKitError, TimeoutError):
    """Raised when a bounded operation exceeds its timeout."""

    pass


class ElementTimeoutError(OperationTimeoutError):
    """Raised when an element does not become visible in time."""

    pass


class NoResponseError(ScenarioKitError):
    """Raised when a response accessor is used before any request was sent."""

    pass


class FixtureError(ScenarioKitError):
    """Raised when fixture data or a templated value cannot be resolved."""

    pass


class JsonPathError(ScenarioKitError):
    """Raised when a JSON path is malformed or does not resolve."""

    pass
