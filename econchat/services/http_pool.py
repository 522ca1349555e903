"""
Shared HTTP client pool.

Model endpoints and statistical data APIs are all reached through one pooled
``httpx.AsyncClient`` per event loop (HTTP/2, keep-alive). Individual calls
pass their own timeout; the pool-level timeout is the 30 second ceiling.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)


class HTTPClientPool:
    """Per-event-loop ``httpx.AsyncClient`` registry."""

    _loop_clients: weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, httpx.AsyncClient] = weakref.WeakKeyDictionary()
    _detached_client: Optional[httpx.AsyncClient] = None

    MAX_CONNECTIONS = 50
    MAX_KEEPALIVE_CONNECTIONS = 20
    KEEPALIVE_EXPIRY = 5.0
    TIMEOUT_CEILING = 30.0
    CONNECT_TIMEOUT = 10.0

    @staticmethod
    def _running_loop() -> Optional[asyncio.AbstractEventLoop]:
        try:
            return asyncio.get_running_loop()
        except RuntimeError:
            return None

    @classmethod
    def _new_client(cls) -> httpx.AsyncClient:
        client = httpx.AsyncClient(
            limits=httpx.Limits(
                max_connections=cls.MAX_CONNECTIONS,
                max_keepalive_connections=cls.MAX_KEEPALIVE_CONNECTIONS,
                keepalive_expiry=cls.KEEPALIVE_EXPIRY,
            ),
            timeout=httpx.Timeout(cls.TIMEOUT_CEILING, connect=cls.CONNECT_TIMEOUT),
            http2=True,
            follow_redirects=True,
        )
        logger.debug(
            "Created pooled HTTP client (max_connections=%s, timeout=%ss)",
            cls.MAX_CONNECTIONS,
            cls.TIMEOUT_CEILING,
        )
        return client

    @classmethod
    def get_client(cls) -> httpx.AsyncClient:
        loop = cls._running_loop()
        if loop is None:
            if cls._detached_client is None or cls._detached_client.is_closed:
                cls._detached_client = cls._new_client()
            return cls._detached_client

        client = cls._loop_clients.get(loop)
        if client is None or client.is_closed:
            client = cls._new_client()
            cls._loop_clients[loop] = client
        return client

    @classmethod
    async def close(cls) -> None:
        clients = list(cls._loop_clients.values())
        if cls._detached_client is not None:
            clients.append(cls._detached_client)
        cls._loop_clients = weakref.WeakKeyDictionary()
        cls._detached_client = None

        for client in {id(c): c for c in clients}.values():
            try:
                await client.aclose()
            except (RuntimeError, httpx.HTTPError) as exc:
                # Client bound to a loop that is already closed.
                logger.debug("Error closing HTTP client: %s", exc)
        if clients:
            logger.info("Closed %s pooled HTTP client(s)", len(clients))

    @classmethod
    def get_stats(cls) -> Dict[str, Any]:
        active = sum(1 for c in cls._loop_clients.values() if not c.is_closed)
        if cls._detached_client is not None and not cls._detached_client.is_closed:
            active += 1
        return {
            "status": "active" if active else "not_initialized",
            "active_clients": active,
            "timeout_ceiling": cls.TIMEOUT_CEILING,
            "max_connections": cls.MAX_CONNECTIONS,
        }


def get_http_client() -> httpx.AsyncClient:
    """Return the pooled client for the current event loop."""
    return HTTPClientPool.get_client()


async def close_http_pool() -> None:
    """Close every pooled client (call on shutdown)."""
    await HTTPClientPool.close()
