"""HTTP client for the optional record transform endpoint."""

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class TransformClient:
    """Posts extracted payloads to a transform endpoint and returns its result.

    Uses the callable-function wire shape: the request body is
    ``{"data": payload}`` and the response is ``{"result": transformed}``.
    """

    def __init__(
        self,
        url: str,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.url = url
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def __call__(self, payload: dict[str, Any]) -> dict[str, Any]:
        response = await self._client.post(self.url, json={"data": payload})
        response.raise_for_status()

        body = response.json()
        if not isinstance(body, dict) or "result" not in body:
            raise ValueError(f"Transform response from {self.url} has no 'result'")

        result = body["result"]
        if not isinstance(result, dict):
            raise ValueError(f"Transform result must be an object, got {type(result).__name__}")
        return result

    async def close(self) -> None:
        await self._client.aclose()
