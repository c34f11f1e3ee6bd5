import pytest
from sqlalchemy import text

from timetravel.core.config import DatabaseSettings
from timetravel.core.database import DatabaseClient


@pytest.mark.parametrize(
    "url, expected",
    [
        ("postgres://u:p@db:5432/tt", "postgresql+asyncpg://u:p@db:5432/tt"),
        ("postgresql://u:p@db:5432/tt", "postgresql+asyncpg://u:p@db:5432/tt"),
        ("sqlite:///./data/tt.db", "sqlite+aiosqlite:///./data/tt.db"),
        ("sqlite+aiosqlite:///./data/tt.db", "sqlite+aiosqlite:///./data/tt.db"),
    ],
)
def test_connection_url_uses_async_driver(url, expected):
    assert DatabaseSettings(DATABASE_URL=url).connection_url == expected


def test_is_sqlite():
    assert DatabaseSettings(DATABASE_URL="sqlite:///x.db").is_sqlite
    assert not DatabaseSettings(DATABASE_URL="postgresql://u:p@db/tt").is_sqlite


@pytest.mark.asyncio
async def test_client_creates_sqlite_directory_and_tables(tmp_path):
    db_path = tmp_path / "nested" / "timetravel.db"
    client = DatabaseClient.from_settings(DatabaseSettings(DATABASE_URL=f"sqlite:///{db_path}"))
    try:
        await client.connect()
        await client.auto_migrate()
        health = await client.health_check()

        async with client.engine.connect() as conn:
            foreign_keys = await conn.scalar(text("PRAGMA foreign_keys"))
    finally:
        await client.disconnect()

    assert db_path.parent.is_dir()
    assert health["status"] == "healthy"
    assert health["database"] == "sqlite"
    assert foreign_keys == 1
