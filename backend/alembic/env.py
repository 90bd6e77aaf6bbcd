"""Migration runner for the marketplace schema."""

from logging.config import fileConfig

from sqlalchemy import create_engine, pool

from alembic import context

from app.config import get_settings
from app.database import Base, sync_database_url
import app.models  # noqa: F401  register every table on Base.metadata

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

url = sync_database_url(get_settings().DATABASE_URL)
config.set_main_option("sqlalchemy.url", url.replace("%", "%%"))

# SQLite cannot ALTER most columns in place
CONFIGURE_OPTIONS = {
    "target_metadata": Base.metadata,
    "compare_type": True,
    "render_as_batch": url.startswith("sqlite"),
}


def run_offline() -> None:
    """Write the migration SQL to stdout instead of executing it."""
    context.configure(
        url=url,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        **CONFIGURE_OPTIONS,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_online() -> None:
    engine = create_engine(url, poolclass=pool.NullPool)
    with engine.connect() as connection:
        context.configure(connection=connection, **CONFIGURE_OPTIONS)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_offline()
else:
    run_online()
