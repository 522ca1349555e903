from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from ..exceptions import ToolTransportError
from ..services.http_pool import get_http_client

logger = logging.getLogger(__name__)

TIMEOUT_MESSAGE = "Request timed out. The data source may be slow or unavailable."
NOT_FOUND_MESSAGE = "Data not found. Check parameters and try again."
SERVER_DOWN_MESSAGE = "Data source temporarily unavailable (server down)."


def transport_error_for(exc: httpx.HTTPError, suggestion: Optional[str] = None) -> ToolTransportError:
    """Map an httpx failure onto the structured tool error the model sees."""
    if isinstance(exc, httpx.TimeoutException):
        return ToolTransportError(TIMEOUT_MESSAGE, suggestion)
    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        if status == 404:
            return ToolTransportError(NOT_FOUND_MESSAGE, suggestion)
        if status >= 500:
            return ToolTransportError(SERVER_DOWN_MESSAGE, suggestion)
        return ToolTransportError(f"API error: HTTP {status} from {exc.request.url.host}", suggestion)
    return ToolTransportError(f"API error: {type(exc).__name__}: {exc}", suggestion)


class BaseDataSource:
    """Common HTTP plumbing for the statistical data sources."""

    source_name = ""
    # Remediation hint attached to transport errors from this source
    transport_suggestion: Optional[str] = None

    def __init__(self, base_url: str, timeout: float = 20.0, client: Optional[httpx.AsyncClient] = None) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client or get_http_client()

    def _transport_error(self, exc: httpx.HTTPError) -> ToolTransportError:
        return transport_error_for(exc, self.transport_suggestion)

    async def _get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> httpx.Response:
        try:
            response = await self.client.get(url, params=params, timeout=timeout or self.timeout)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("%s request failed (%s): %s", self.source_name, url, exc)
            raise self._transport_error(exc) from exc
        return response

    async def _get_json(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> Any:
        response = await self._get(url, params=params, timeout=timeout)
        try:
            return response.json()
        except ValueError as exc:
            logger.warning("%s returned a non-JSON body from %s", self.source_name, url)
            raise ToolTransportError(
                f"API error: {self.source_name} returned an unreadable response",
                self.transport_suggestion,
            ) from exc

    async def _get_text(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> str:
        response = await self._get(url, params=params, timeout=timeout)
        return response.text
