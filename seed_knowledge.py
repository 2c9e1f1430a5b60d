import asyncio
import json
import sys
from pathlib import Path

from olly.config import settings
from olly.db.crud import replace_table
from olly.db.database import init_db, make_engine, make_sessionmaker

# Export shape: {"<table name>": [{"id": "rec...", "fields": {...}}, ...], ...}
# Each table is replaced as a whole, so re-running with a fresh export is safe.
DEFAULT_EXPORT = Path(__file__).parent / "data" / "sample_knowledge.json"

TABLES = [
    settings.HOTELS_TABLE,
    settings.SERVICES_TABLE,
    settings.ROOMS_TABLE,
    settings.INTENTS_TABLE,
    settings.OUTPUT_RULES_TABLE,
]


async def seed(export_path: Path):
    print(f"Seeding knowledge mirror from {export_path} into {settings.DATABASE_URL} ...")
    export = json.loads(export_path.read_text(encoding="utf-8"))

    engine = make_engine()
    await init_db(engine)
    sessionmaker = make_sessionmaker(engine)
    try:
        for table in TABLES:
            rows = export.get(table)
            if rows is None:
                print(f"  ~ {table} missing from export (skipping)")
                continue
            count = await replace_table(sessionmaker, table, rows)
            print(f"  ✓ {table}: {count} rows")
    finally:
        await engine.dispose()

if __name__ == "__main__":
    path = Path(sys.argv[1]) if len(sys.argv) > 1 else DEFAULT_EXPORT
    asyncio.run(seed(path))
