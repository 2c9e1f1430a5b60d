import logging
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import async_sessionmaker

from olly.db.models import KnowledgeRecord
from olly.errors import KnowledgeSourceError
from olly.knowledge.records import as_list

logger = logging.getLogger(__name__)


class SqlKnowledgeSource:
    """Knowledge source backed by the local `knowledge_records` mirror."""

    def __init__(self, sessionmaker: async_sessionmaker):
        self._sessionmaker = sessionmaker

    async def list_records(
        self, table: str, equals: Optional[Tuple[str, str]] = None
    ) -> List[Dict[str, Any]]:
        try:
            async with self._sessionmaker() as session:
                result = await session.execute(
                    select(KnowledgeRecord)
                    .where(KnowledgeRecord.table_name == table)
                    .order_by(KnowledgeRecord.id)
                )
                records = result.scalars().all()
        except Exception as e:
            raise KnowledgeSourceError(f"Knowledge mirror read failed: {e}") from e

        rows = [_record_to_row(r) for r in records]
        if equals:
            field_name, value = equals
            rows = [r for r in rows if value in as_list(r["fields"].get(field_name))]
        return rows

    async def get_record(self, table: str, record_id: str) -> Optional[Dict[str, Any]]:
        try:
            async with self._sessionmaker() as session:
                result = await session.execute(
                    select(KnowledgeRecord).where(
                        KnowledgeRecord.id == record_id,
                        KnowledgeRecord.table_name == table,
                    )
                )
                record = result.scalar_one_or_none()
        except Exception as e:
            raise KnowledgeSourceError(f"Knowledge mirror read failed: {e}") from e
        return _record_to_row(record) if record else None


async def replace_table(sessionmaker: async_sessionmaker, table: str, rows: List[Dict[str, Any]]) -> int:
    """Replace every mirrored row of `table` with `rows`. Used by the seed script only."""
    async with sessionmaker() as session:
        await session.execute(delete(KnowledgeRecord).where(KnowledgeRecord.table_name == table))
        for row in rows:
            session.add(
                KnowledgeRecord(id=str(row["id"]), table_name=table, fields=row.get("fields") or {})
            )
        await session.commit()
    logger.info(f"Mirrored {len(rows)} rows into {table}")
    return len(rows)


def _record_to_row(record: KnowledgeRecord) -> Dict[str, Any]:
    return {"id": record.id, "fields": dict(record.fields or {})}
