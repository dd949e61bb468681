"""
Minimal async JSON-RPC 2.0 transport over httpx.
"""

from __future__ import annotations

import itertools
import json
import logging
from typing import Any, Callable, Dict, List, Optional

import httpx

from .errors import RpcResponseError, RpcTransportError


logger = logging.getLogger(__name__)

# Builds extra headers from the exact request body (relay auth signatures)
BodyHeaders = Callable[[str], Dict[str, str]]


class JsonRpcTransport:
    """Posts JSON-RPC requests to a single endpoint."""

    def __init__(
        self,
        url: str,
        *,
        timeout_s: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        if not url:
            raise ValueError("JSON-RPC endpoint URL is required")
        self.url = url
        self._client = client or httpx.AsyncClient(timeout=timeout_s)
        self._owns_client = client is None
        self._ids = itertools.count(1)

    async def call(
        self,
        method: str,
        params: List[Any],
        *,
        body_headers: Optional[BodyHeaders] = None,
    ) -> Any:
        """Make a JSON-RPC call and return its `result`.

        Raises:
            RpcTransportError: connection failure, non-JSON reply or 5xx
            RpcResponseError: the endpoint returned a JSON-RPC error object
        """
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params,
        }
        body = json.dumps(payload, separators=(",", ":"))

        headers = {"content-type": "application/json"}
        if body_headers is not None:
            headers.update(body_headers(body))

        logger.debug(f"RPC {method} -> {self.url}")
        try:
            response = await self._client.post(self.url, content=body, headers=headers)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            # Relays report bad bundles as 4xx with a JSON-RPC error body
            error = _error_from_body(exc.response)
            if error is not None and exc.response.status_code < 500:
                raise _response_error(method, error)
            raise RpcTransportError(method, f"HTTP {exc.response.status_code} from {self.url}")
        except httpx.RequestError as exc:
            raise RpcTransportError(method, f"{type(exc).__name__}: {exc}")

        try:
            result = response.json()
        except ValueError:
            raise RpcTransportError(method, "Response is not valid JSON")

        if not isinstance(result, dict):
            raise RpcTransportError(method, "Response is not a JSON-RPC object")

        if result.get("error"):
            raise _response_error(method, result["error"])

        return result.get("result")

    async def close(self) -> None:
        """Close the HTTP client if this transport created it."""
        if self._owns_client:
            await self._client.aclose()


def _error_from_body(response: httpx.Response) -> Optional[Any]:
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict):
        return body.get("error")
    return None


def _response_error(method: str, error: Any) -> RpcResponseError:
    if isinstance(error, dict):
        return RpcResponseError(
            method,
            str(error.get("message", error)),
            code=error.get("code"),
            data=error.get("data"),
        )
    return RpcResponseError(method, str(error))
