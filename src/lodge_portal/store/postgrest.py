"""
Supabase REST (PostgREST) data store adapter.
"""

from collections.abc import Callable, Sequence
from typing import Any

import httpx

from lodge_portal.config import Settings, get_settings
from lodge_portal.shared.exceptions import BackendConnectionError, StoreError
from lodge_portal.shared.logging import get_logger
from lodge_portal.store.interface import DataStore, Filter, FilterOp, Row

logger = get_logger(__name__)


def _encode_value(value: Any) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def _filter_params(filters: Sequence[Filter]) -> list[tuple[str, str]]:
    return [(f.column, f"{FilterOp(f.op).value}.{_encode_value(f.value)}") for f in filters]


def _parse_content_range(header: str | None) -> int:
    # "0-24/3573" or "*/0"
    if not header or "/" not in header:
        return 0
    total = header.rsplit("/", 1)[1]
    return int(total) if total.isdigit() else 0


class PostgrestDataStore(DataStore):
    """Data store backed by the Supabase REST API."""

    def __init__(
        self,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
        api_key: str | None = None,
        token_provider: Callable[[], str | None] | None = None,
    ) -> None:
        """Initialize the adapter.

        Args:
            settings: Application settings. Uses default if not provided.
            http_client: HTTP client for making requests. Creates new if not provided.
            api_key: Key sent as ``apikey``; the anon key unless overridden
                (the privileged endpoint passes the service role key).
            token_provider: Returns the signed-in user's access token, so row
                level security sees the caller. Falls back to the api key.
        """
        self._settings = settings or get_settings()
        self._http_client = http_client
        self._owns_client = http_client is None
        self._api_key = api_key if api_key is not None else self._settings.supabase_anon_key
        self._token_provider = token_provider

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._settings.http_timeout_seconds)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client if owned."""
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        token = self._token_provider() if self._token_provider else None
        headers = {
            "apikey": self._api_key,
            "Authorization": f"Bearer {token or self._api_key}",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _request(
        self,
        method: str,
        table: str,
        *,
        params: list[tuple[str, str]] | None = None,
        json: Any = None,
        prefer: str | None = None,
    ) -> httpx.Response:
        url = f"{self._settings.rest_url}/{table}"
        client = await self._get_http_client()

        try:
            response = await client.request(
                method,
                url,
                params=params,
                json=json,
                headers=self._headers(prefer),
            )
        except httpx.TransportError as e:
            logger.error(
                "Data store unreachable",
                extra={"table": table, "method": method, "error": str(e)},
            )
            raise BackendConnectionError(
                details={"table": table, "error": str(e)},
            ) from e

        if response.is_error:
            raise self._store_error(response, table)
        return response

    @staticmethod
    def _store_error(response: httpx.Response, table: str) -> StoreError:
        message = response.reason_phrase or "Request failed"
        code = hint = None
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict):
            message = body.get("message") or body.get("error") or message
            code = body.get("code")
            hint = body.get("hint")

        logger.warning(
            "Data store rejected request",
            extra={"table": table, "status_code": response.status_code, "store_code": code},
        )
        return StoreError(message, status_code=response.status_code, code=code, hint=hint)

    async def select(
        self,
        table: str,
        *,
        filters: Sequence[Filter] = (),
        columns: str = "*",
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[Row]:
        params = [("select", columns), *_filter_params(filters)]
        if order_by:
            params.append(("order", f"{order_by}.{'desc' if descending else 'asc'}"))
        if limit is not None:
            params.append(("limit", str(limit)))

        response = await self._request("GET", table, params=params)
        return list(response.json() or [])

    async def insert(self, table: str, rows: Sequence[Row]) -> list[Row]:
        response = await self._request(
            "POST",
            table,
            json=list(rows),
            prefer="return=representation",
        )
        return list(response.json() or [])

    async def update(
        self,
        table: str,
        values: Row,
        *,
        filters: Sequence[Filter],
    ) -> list[Row]:
        if not filters:
            raise ValueError("update requires at least one filter")
        response = await self._request(
            "PATCH",
            table,
            params=_filter_params(filters),
            json=values,
            prefer="return=representation",
        )
        return list(response.json() or [])

    async def delete(self, table: str, *, filters: Sequence[Filter]) -> list[Row]:
        if not filters:
            raise ValueError("delete requires at least one filter")
        response = await self._request(
            "DELETE",
            table,
            params=_filter_params(filters),
            prefer="return=representation",
        )
        return list(response.json() or [])

    async def count(self, table: str, *, filters: Sequence[Filter] = ()) -> int:
        response = await self._request(
            "HEAD",
            table,
            params=[("select", "id"), *_filter_params(filters)],
            prefer="count=exact",
        )
        return _parse_content_range(response.headers.get("content-range"))
