"""
HTTP connection pools for platform REST APIs.

A platform instance owns one authenticated pool for its own calls. Preset
sources read public files anonymously, so they share one pool per API base
URL; resolving many presets against the same server reuses its connections.
"""

import asyncio
from typing import Any

import httpx
import structlog

log = structlog.get_logger(__name__)


class HTTPConnectionPool:
    """Lazily created ``httpx.AsyncClient`` bound to one API base URL.

    Every request goes through ``request``, which logs the method, path and
    response status at debug level. Error statuses are returned, not raised;
    callers map them onto ``depbot.exceptions`` themselves.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        max_connections: int = 10,
        max_keepalive_connections: int = 5,
        timeout: float = 30.0,
    ) -> None:
        """Initialize the pool without opening any connection.

        Args:
            base_url: API root every request path is resolved against
            token: API token sent as ``Authorization: token <token>``
            max_connections: Upper bound on open connections
            max_keepalive_connections: Idle connections kept for reuse
            timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.max_connections = max_connections
        self.max_keepalive_connections = max_keepalive_connections
        self.timeout = timeout
        self.headers = {"Accept": "application/json"}
        if token:
            self.headers["Authorization"] = f"token {token}"
        self._client: httpx.AsyncClient | None = None
        self._lock = asyncio.Lock()

    @property
    def is_open(self) -> bool:
        return self._client is not None

    async def initialize(self) -> None:
        """Create the underlying client if it does not exist yet."""
        async with self._lock:
            if self._client is not None:
                return

            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                limits=httpx.Limits(
                    max_keepalive_connections=self.max_keepalive_connections,
                    max_connections=self.max_connections,
                    keepalive_expiry=30.0,
                ),
                timeout=self.timeout,
                http2=True,
                headers=self.headers,
            )
            log.info(
                "connection_pool_initialized",
                base_url=self.base_url,
                authenticated="Authorization" in self.headers,
            )

    async def close(self) -> None:
        async with self._lock:
            if self._client is None:
                return
            await self._client.aclose()
            self._client = None
            log.info("connection_pool_closed", base_url=self.base_url)

    async def request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send one request, opening the client on first use."""
        if self._client is None:
            await self.initialize()

        assert self._client is not None
        response = await self._client.request(method.upper(), path, **kwargs)
        log.debug("http_request", method=method.upper(), path=path, status=response.status_code)
        return response

    async def get(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PUT", path, **kwargs)

    async def patch(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("PATCH", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> httpx.Response:
        return await self.request("DELETE", path, **kwargs)


class SharedPoolRegistry:
    """Anonymous pools shared per API base URL."""

    def __init__(self) -> None:
        self._pools: dict[str, HTTPConnectionPool] = {}
        self._lock = asyncio.Lock()

    async def get(self, base_url: str, timeout: float = 30.0) -> HTTPConnectionPool:
        """Return the pool for ``base_url``, creating it on first use."""
        key = base_url.rstrip("/")
        async with self._lock:
            pool = self._pools.get(key)
            if pool is None:
                pool = HTTPConnectionPool(base_url=key, timeout=timeout)
                self._pools[key] = pool
                log.debug("shared_pool_created", base_url=key)
            return pool

    async def close_all(self) -> None:
        async with self._lock:
            for pool in self._pools.values():
                await pool.close()
            self._pools.clear()


_shared_pools = SharedPoolRegistry()


async def get_shared_pool(base_url: str, timeout: float = 30.0) -> HTTPConnectionPool:
    """Get the process-wide anonymous pool for ``base_url``."""
    return await _shared_pools.get(base_url, timeout=timeout)


async def close_all_pools() -> None:
    """Close every shared pool; platform-owned pools are closed by ``Platform.close``."""
    await _shared_pools.close_all()
