"""REST session manager for OAuth-protected transaction APIs."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Iterable

import requests
from requests.auth import HTTPBasicAuth

from scenariokit.constants import (
    DEFAULT_STRICT_METHODS,
    PAYLOAD_METHODS,
    SUPPORTED_METHODS,
    EndpointKind,
)
from scenariokit.exceptions import (
    AuthError,
    NoResponseError,
    OperationTimeoutError,
    PreconditionError,
    TransactionError,
)

if TYPE_CHECKING:
    from scenariokit.config import Settings

logger = logging.getLogger(__name__)


class RequestContext:
    """HTTP client scoped to one resource URL.

    Parameters
    ----------
    kind : EndpointKind
        Endpoint the context talks to
    url : str
        Full resource URL (base URL plus resource path)
    timeout_ms : int
        Timeout applied to every request
    headers : dict[str, str]
        Default headers sent with every request
    session_factory : Callable
        Creates the underlying ``requests.Session``
    """

    def __init__(
        self,
        kind: EndpointKind,
        url: str,
        timeout_ms: int,
        headers: dict[str, str],
        session_factory: Callable[[], requests.Session] = requests.Session,
    ) -> None:
        self.kind = kind
        self.url = url
        self.timeout_ms = timeout_ms
        self.session = session_factory()
        self.session.headers.update(headers)
        self.disposed = False

    def request(self, method: str, **kwargs: Any) -> requests.Response:
        """Issue one request against the context's URL.

        Raises
        ------
        PreconditionError
            If the context was already disposed
        OperationTimeoutError
            If the request exceeds the configured timeout
        TransactionError
            If the request fails at the transport level
        """
        if self.disposed:
            raise PreconditionError(f"Request context for {self.url} is disposed")

        try:
            return self.session.request(
                method, self.url, timeout=self.timeout_ms / 1000, **kwargs
            )
        except requests.Timeout as e:
            raise OperationTimeoutError(
                f"{method} {self.url} timed out after {self.timeout_ms}ms"
            ) from e
        except requests.RequestException as e:
            raise TransactionError(f"{method} {self.url} failed: {e}") from e

    def dispose(self) -> None:
        if self.disposed:
            return
        self.disposed = True
        self.session.close()


class RestSession:
    """Request-context lifecycle, staging and response capture for one scenario.

    Holds at most one open request context. Opening another one disposes
    and replaces the previous context.

    Parameters
    ----------
    settings : Settings
        Harness settings (endpoint base URLs, headers, timeout)
    session_factory : Callable
        Creates the ``requests.Session`` behind each request context
    strict_methods : Iterable[str]
        HTTP methods that raise ``TransactionError`` on a non-2xx response
    """

    def __init__(
        self,
        settings: "Settings",
        session_factory: Callable[[], requests.Session] = requests.Session,
        strict_methods: Iterable[str] = DEFAULT_STRICT_METHODS,
    ) -> None:
        self.settings = settings
        self._session_factory = session_factory
        self.strict_methods = frozenset(m.upper() for m in strict_methods)
        self._resource_paths: dict[EndpointKind, str] = {}
        self._context: RequestContext | None = None
        self._payload: Any = None
        self._headers: dict[str, str] | None = None
        self._response: requests.Response | None = None

    @property
    def context(self) -> RequestContext | None:
        return self._context

    def set_resource_url(self, kind: EndpointKind, path: str) -> None:
        """Record the resource path for an endpoint kind. No I/O."""
        self._resource_paths[kind] = path

    def open_request_context(self, kind: EndpointKind) -> RequestContext:
        """Open a request context for ``base_url(kind) + path``.

        Raises
        ------
        PreconditionError
            If no resource path was recorded for the kind
        """
        if kind not in self._resource_paths:
            raise PreconditionError(
                f"Resource URL for {kind.value} not set. Call set_resource_url() first."
            )

        url = self.settings.endpoint_base_url(kind) + self._resource_paths[kind]
        self.dispose()
        self._context = RequestContext(
            kind=kind,
            url=url,
            timeout_ms=self.settings.api_timeout_ms,
            headers=self.settings.endpoint_headers(kind),
            session_factory=self._session_factory,
        )
        logger.debug(f"Opened {kind.value} request context for {url}")
        return self._context

    def set_body_payload(self, payload: Any) -> None:
        self._payload = payload

    def set_headers(self, headers: dict[str, str]) -> None:
        self._headers = dict(headers)

    def _require_context(self) -> RequestContext:
        if self._context is None:
            raise PreconditionError(
                "API context is not initialized. Call open_request_context() first."
            )
        return self._context

    def get_oauth_token(self, client_id: str, client_secret: str) -> requests.Response:
        """Request an OAuth token with Basic authentication.

        Returns
        -------
        requests.Response
            Raw token response; the caller extracts the bearer token

        Raises
        ------
        AuthError
            If the token endpoint does not answer with a 2xx status
        """
        context = self._require_context()
        self._response = context.request(
            "POST",
            auth=HTTPBasicAuth(client_id, client_secret),
            data=self.settings.oauth_body_form,
        )

        if not self._response.ok:
            raise AuthError(
                f"Failed to get OAuth token: {self._response.status_code} - "
                f"{self._response.reason}",
                status_code=self._response.status_code,
            )

        return self._response

    def send(self, method: str) -> requests.Response:
        """Issue a call against the open context using staged values.

        POST, PUT and PATCH send the staged payload as JSON; GET and DELETE
        send no body. Staged headers are always applied.

        Parameters
        ----------
        method : str
            One of POST, GET, PUT, PATCH, DELETE

        Returns
        -------
        requests.Response
            The stored response

        Raises
        ------
        ValueError
            If the method is not supported
        PreconditionError
            If no request context is open
        TransactionError
            If the method is strict and the response is not 2xx
        """
        verb = method.strip().upper()
        if verb not in SUPPORTED_METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}")

        context = self._require_context()
        kwargs: dict[str, Any] = {"headers": self._headers}
        if verb in PAYLOAD_METHODS:
            kwargs["json"] = self._payload

        self._response = context.request(verb, **kwargs)
        logger.info(f"{verb} {context.url} -> {self._response.status_code}")

        if verb in self.strict_methods and not self._response.ok:
            raise TransactionError(
                f"Transaction API {verb} request failed: "
                f"{self._response.status_code} - {self._response.reason}",
                status_code=self._response.status_code,
            )

        return self._response

    def _require_response(self, what: str) -> requests.Response:
        if self._response is None:
            raise NoResponseError(
                "Response is not available. Make sure to perform an API call "
                f"before getting the {what}."
            )
        return self._response

    def get_status_code(self) -> int:
        return self._require_response("status code").status_code

    def get_status_text(self) -> str:
        return self._require_response("status line").reason

    def get_json_body(self) -> Any:
        return self._require_response("response body").json()

    def get_text_body(self) -> str:
        return self._require_response("response as string").text

    def dispose(self) -> None:
        """Close the open request context, if any."""
        context, self._context = self._context, None
        if context is not None:
            context.dispose()
            logger.debug(f"Disposed request context for {context.url}")
