"""
Knowledge sources: where hotel, service, room, intent and output-rule rows
come from. The pipeline only needs two reads:

  list_records(table, equals=None): every row of a table, optionally
      filtered by one field equality
  get_record(table, record_id): one row, or None if it does not exist

Rows are plain dicts shaped {"id": str, "fields": {...}}.
"""
import logging
from typing import Any, Dict, List, Optional, Protocol, Tuple

import httpx

from olly.config import settings
from olly.errors import KnowledgeSourceError

logger = logging.getLogger(__name__)

Row = Dict[str, Any]


class KnowledgeSource(Protocol):
    async def list_records(
        self, table: str, equals: Optional[Tuple[str, str]] = None
    ) -> List[Row]:
        ...

    async def get_record(self, table: str, record_id: str) -> Optional[Row]:
        ...


def equality_formula(field_name: str, value: str) -> str:
    """Airtable filterByFormula for `{field} = 'value'`."""
    escaped = str(value).replace("\\", "\\\\").replace("'", "\\'")
    return f"{{{field_name}}} = '{escaped}'"


class AirtableSource:
    """Read-only Airtable REST client."""

    PAGE_SIZE = 100

    def __init__(
        self,
        base_id: str = None,
        api_key: str = None,
        api_url: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_id = base_id or settings.AIRTABLE_BASE_ID
        api_key = api_key or settings.AIRTABLE_API_KEY
        api_url = (api_url or settings.AIRTABLE_API_URL).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=api_url,
            transport=transport,
            headers={"Authorization": f"Bearer {api_key}"},
            timeout=timeout or settings.AIRTABLE_TIMEOUT_SECONDS,
        )

    async def list_records(
        self, table: str, equals: Optional[Tuple[str, str]] = None
    ) -> List[Row]:
        params: Dict[str, Any] = {"pageSize": self.PAGE_SIZE}
        if equals:
            params["filterByFormula"] = equality_formula(*equals)

        rows: List[Row] = []
        while True:
            payload = await self._get(f"/{self.base_id}/{table}", params)
            for record in payload.get("records", []):
                rows.append({"id": record.get("id"), "fields": record.get("fields") or {}})
            offset = payload.get("offset")
            if not offset:
                break
            params["offset"] = offset

        logger.debug(f"Airtable {table}: {len(rows)} rows (filter={equals})")
        return rows

    async def get_record(self, table: str, record_id: str) -> Optional[Row]:
        try:
            payload = await self._get(f"/{self.base_id}/{table}/{record_id}", missing_ok=True)
        except _NotFound:
            return None
        return {"id": payload.get("id", record_id), "fields": payload.get("fields") or {}}

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(
        self, path: str, params: Dict[str, Any] = None, missing_ok: bool = False
    ) -> Dict[str, Any]:
        """GET `path`; a 404 is _NotFound only when the caller can treat it as absent."""
        try:
            resp = await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            raise KnowledgeSourceError(f"Airtable request failed: {e}") from e

        if resp.status_code == 404 and missing_ok:
            raise _NotFound(path)
        if resp.status_code >= 400:
            raise KnowledgeSourceError(
                f"Airtable returned {resp.status_code} for {path}: {resp.text[:200]}"
            )
        return resp.json()


class _NotFound(Exception):
    pass
