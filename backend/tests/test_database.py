from app.database import sync_database_url


def test_asyncpg_url_uses_psycopg2_for_migrations():
    assert (
        sync_database_url("postgresql+asyncpg://app:s3cret@db:5432/marketplace")
        == "postgresql+psycopg2://app:s3cret@db:5432/marketplace"
    )


def test_aiosqlite_url_uses_plain_sqlite():
    assert sync_database_url("sqlite+aiosqlite:///./local.db") == "sqlite:///./local.db"


def test_sync_url_is_left_alone():
    assert sync_database_url("postgresql://app@db/marketplace") == "postgresql://app@db/marketplace"
