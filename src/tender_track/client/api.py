from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Sequence

import httpx
import orjson

from ..errors import BadRequest, GatewayError, QueryFailed, ServiceUnavailable
from .retry import RetryPolicy

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0


def _error_message(response: httpx.Response) -> tuple[str, Dict[str, Any]]:
    try:
        body = response.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = body.get("message") or f"Query failed with status {response.status_code}"
    return str(message), body


def raise_for_gateway_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    message, body = _error_message(response)
    if response.status_code == 503:
        raise ServiceUnavailable(message)
    if response.status_code == 400:
        raise BadRequest(message)
    if response.status_code == 500:
        raise QueryFailed(message, code=body.get("code"), reset=bool(body.get("reset")))
    raise GatewayError(message, status_code=response.status_code)


class DatabaseApi:
    """Client for the gateway's ``/api`` routes; every query goes through ``retry``."""

    def __init__(
        self,
        base_url: str,
        *,
        retry: Optional[RetryPolicy] = None,
        transport: Optional[httpx.BaseTransport] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
    ) -> None:
        self.retry = retry or RetryPolicy()
        self._client = httpx.Client(
            base_url=base_url.rstrip("/") + "/api",
            transport=transport,
            timeout=timeout,
        )

    def query(self, text: str, params: Optional[Sequence[Any]] = None) -> Dict[str, Any]:
        payload = orjson.dumps({"text": text, "params": list(params or [])})

        def _send() -> Dict[str, Any]:
            response = self._client.post(
                "/query",
                content=payload,
                headers={"Content-Type": "application/json"},
            )
            raise_for_gateway_status(response)
            return response.json()

        return self.retry.call(_send)

    def health(self) -> Dict[str, Any]:
        response = self._client.get("/health")
        raise_for_gateway_status(response)
        return response.json()

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "DatabaseApi":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
