from sqlalchemy import Column, String, DateTime, JSON
from datetime import datetime, timezone
from olly.db.database import Base


def now_utc() -> datetime:
    return datetime.now(tz=timezone.utc)


class KnowledgeRecord(Base):
    """
    Local mirror of one knowledge-base row (hotel, service, room, intent
    or output rule). `fields` keeps the row exactly as exported so the
    same alias mapping applies as for the live base.
    """

    __tablename__ = "knowledge_records"

    id = Column(String(64), primary_key=True)
    table_name = Column(String(100), nullable=False, index=True)
    fields = Column(JSON, nullable=False, default=dict)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)
