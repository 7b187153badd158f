from __future__ import annotations

import logging
from typing import Any, Mapping, TypeVar

import httpx
from pydantic import TypeAdapter, ValidationError

from ..constants import SERVER_ERROR_DETAIL
from ..errors import NetworkFailure, ServerRejected

logger = logging.getLogger(__name__)

T = TypeVar("T")

_ERROR_BODY_KEYS = ("message", "msg", "error")


def _error_detail(response: httpx.Response) -> str | None:
    """Read a human readable message from an error body, if there is one."""

    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    for key in _ERROR_BODY_KEYS:
        value = body.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def parse_payload(schema: Any, data: Any, *, context: str = "response") -> Any:
    """Validate ``data`` against ``schema``; malformed payloads count as a server rejection."""

    try:
        return TypeAdapter(schema).validate_python(data)
    except ValidationError as exc:
        logger.warning("Unexpected %s payload: %s", context, exc)
        raise ServerRejected(f"Unexpected {context} from server") from exc


class ApiClient:
    """Thin async wrapper over the marketplace REST service."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )

    async def request(
        self,
        method: str,
        path: str,
        *,
        token: str | None = None,
        json: Any = None,
        params: Mapping[str, Any] | None = None,
        error_message: str = SERVER_ERROR_DETAIL,
    ) -> Any:
        """Issue one request and return the decoded JSON body (``None`` when empty).

        Raises :class:`NetworkFailure` when the request never completed and
        :class:`ServerRejected` for non-2xx responses.
        """

        headers: dict[str, str] = {}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        query = {key: value for key, value in (params or {}).items() if value is not None}

        try:
            response = await self._client.request(method, path, headers=headers, json=json, params=query or None)
        except httpx.TransportError as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise NetworkFailure() from exc

        if response.is_error:
            detail = _error_detail(response) or error_message
            logger.info("%s %s rejected with HTTP %s: %s", method, path, response.status_code, detail)
            raise ServerRejected(detail, status_code=response.status_code)

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise ServerRejected(error_message, status_code=response.status_code) from exc

    async def get(self, path: str, **kwargs: Any) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Any:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> Any:
        return await self.request("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", path, **kwargs)

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = ["ApiClient", "parse_payload"]
