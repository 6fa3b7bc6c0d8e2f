"""HTTP transport for the marketplace REST API."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Protocol

import httpx

from freightsync.config import ClientConfig
from freightsync.exceptions import NetworkError

if TYPE_CHECKING:
    from freightsync.session import SessionStore

_logger = logging.getLogger(__name__)


class Transport(Protocol):
    """Structural transport interface used by endpoints.

    Keeps the production implementation (``HttpTransport``) swappable for
    test doubles.
    """

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        authenticated: bool = True,
    ) -> Any:
        ...


def _query_params(params: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Drop unset values; lists go out as repeated keys."""
    if not params:
        return None
    cleaned: dict[str, Any] = {}
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            cleaned[key] = [v for v in value if v is not None]
        else:
            cleaned[key] = value
    return cleaned or None


class HttpTransport:
    """httpx-backed transport that attaches the session's bearer token."""

    def __init__(
        self,
        config: ClientConfig,
        session: SessionStore | None = None,
        *,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._session = session
        self._client = client or httpx.AsyncClient(
            base_url=config.base_url,
            headers={"Accept": "application/json"},
            timeout=config.timeout,
        )

    def _auth_headers(self) -> dict[str, str]:
        token = self._session.token if self._session is not None else None
        if token:
            return {"Authorization": f"Bearer {token}"}
        return {}

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Mapping[str, Any] | None = None,
        json: Any = None,
        authenticated: bool = True,
    ) -> Any:
        """Send a request and return the decoded JSON body (None when empty).

        ``authenticated=False`` leaves out the bearer token even when the
        session has one.
        """
        _logger.debug("%s %s", method, path)
        try:
            response = await self._client.request(
                method,
                path,
                params=_query_params(params),
                json=json,
                headers=self._auth_headers() if authenticated else {},
            )
        except httpx.HTTPError as exc:
            raise NetworkError(f"Request to {path} failed: {exc}", endpoint=path) from exc

        if not response.is_success:
            try:
                body = response.json()
                error = body.get("message") or body.get("error") or "Request failed"
            except (ValueError, AttributeError):
                error = f"HTTP {response.status_code}"
            raise NetworkError(
                f"HTTP {response.status_code} from {method} {path}: {error}",
                status_code=response.status_code,
                endpoint=path,
            )

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise NetworkError(
                f"Invalid JSON from {path}: {response.text[:200]}",
                status_code=response.status_code,
                endpoint=path,
            ) from exc

    async def aclose(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
