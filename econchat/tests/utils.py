from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Sequence, Union

import httpx


def run(coro):
    return asyncio.run(coro)


class MockAsyncResponse(httpx.Response):
    """Real ``httpx.Response`` with a JSON or text body, so ``raise_for_status`` behaves as in production."""

    def __init__(
        self,
        payload: Any = None,
        status_code: int = 200,
        headers: Optional[Dict[str, str]] = None,
        text: Optional[str] = None,
        url: str = "https://example.test/",
    ) -> None:
        request = httpx.Request("GET", url)
        if text is not None:
            super().__init__(status_code, headers=headers, text=text, request=request)
        elif payload is not None:
            super().__init__(status_code, headers=headers, json=payload, request=request)
        else:
            super().__init__(status_code, headers=headers, request=request)


Scripted = Union[httpx.Response, Exception]


class MockAsyncClient:
    """Stand-in for ``httpx.AsyncClient`` that replays scripted responses in order."""

    def __init__(self, responses: Sequence[Scripted]) -> None:
        self._responses: List[Scripted] = list(responses)
        self.calls: List[Dict[str, Any]] = []
        self.is_closed = False

    def _next(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self._responses:
            raise AssertionError(f"Unexpected {method} {url}: no scripted responses left")
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def get(
        self,
        url: str,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Any = None,
    ) -> httpx.Response:
        return self._next("GET", url, params=params, headers=headers, timeout=timeout)

    async def post(
        self,
        url: str,
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
        timeout: Any = None,
    ) -> httpx.Response:
        return self._next("POST", url, json=json, headers=headers, timeout=timeout)

    async def aclose(self) -> None:
        self.is_closed = True

    @property
    def last_call(self) -> Dict[str, Any]:
        return self.calls[-1]
