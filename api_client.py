import logging
import os
from typing import Any, Callable, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

# Config
API_BASE_URL = os.getenv("RATINGS_API_URL", "http://localhost:4000")
API_TIMEOUT = float(os.getenv("RATINGS_API_TIMEOUT", "10"))


class ApiError(Exception):
    """Non-2xx response. ``body`` is the decoded JSON, untouched."""

    def __init__(self, status: int, body: Any):
        super().__init__(f"HTTP {status}")
        self.status = status
        self.body = body


class TransportFailure(Exception):
    """No response reached the client."""


def _decode(response: httpx.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return {"message": response.text}


class ApiClient:
    """Async JSON transport for the ratings API.

    The bearer token is read from ``token_getter`` on every request, so the
    same client follows login and logout without being rebuilt.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token_getter: Optional[Callable[[], Optional[str]]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
    ):
        self.token_getter = token_getter or (lambda: None)
        self._client = httpx.AsyncClient(
            base_url=base_url or API_BASE_URL,
            timeout=API_TIMEOUT if timeout is None else timeout,
            transport=transport,
        )

    def _headers(self) -> Dict[str, str]:
        token = self.token_getter()
        return {"Authorization": f"Bearer {token}"} if token else {}

    async def request(self, method: str, path: str, json: Any = None) -> Any:
        logger.debug("%s %s", method, path)
        try:
            response = await self._client.request(method, path, json=json, headers=self._headers())
        except httpx.TransportError as exc:
            raise TransportFailure(str(exc) or type(exc).__name__) from exc
        body = _decode(response)
        if response.is_error:
            logger.debug("%s %s -> %s %r", method, path, response.status_code, body)
            raise ApiError(response.status_code, body)
        return body

    async def get(self, path: str) -> Any:
        return await self.request("GET", path)

    async def post(self, path: str, json: Any = None) -> Any:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, json: Any = None) -> Any:
        return await self.request("PUT", path, json=json)

    async def aclose(self) -> None:
        await self._client.aclose()
