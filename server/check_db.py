import asyncio
from sqlalchemy import inspect

from nutramitra.db.models import engine, init_db


def _describe(sync_conn):
    inspector = inspect(sync_conn)
    for table in inspector.get_table_names():
        print(f"Columns in {table} table:")
        for col in inspector.get_columns(table):
            print(f"- {col['name']} ({col['type']})")


async def check_schema():
    await init_db()
    async with engine.connect() as conn:
        await conn.run_sync(_describe)
    await engine.dispose()

if __name__ == "__main__":
    asyncio.run(check_schema())
