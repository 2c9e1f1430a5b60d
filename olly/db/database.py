from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from olly.config import settings


class Base(DeclarativeBase):
    pass


def make_engine(database_url: str = None):
    return create_async_engine(
        database_url or settings.DATABASE_URL,
        echo=False,
        future=True,
    )


def make_sessionmaker(engine) -> async_sessionmaker:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async def init_db(engine):
    from olly.db import models  # noqa: F401  ensure models are registered
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
