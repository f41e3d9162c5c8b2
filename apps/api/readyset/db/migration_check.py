"""Startup checks that keep the database schema in step with the Alembic history."""

from dataclasses import dataclass
from pathlib import Path

from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from sqlalchemy.engine import Engine

from readyset.config import settings
from readyset.db.base import Base

ALEMBIC_INI = Path(__file__).resolve().parents[2] / "alembic.ini"
UPGRADE_HINT = "Run: alembic upgrade head"


@dataclass(frozen=True)
class MigrationStatus:
    current: str | None
    head: str

    @property
    def up_to_date(self) -> bool:
        return self.current == self.head

    def describe(self) -> str:
        return f"database at {self.current or 'no revision'}, code at {self.head}"


def head_revision() -> str:
    script = ScriptDirectory.from_config(Config(str(ALEMBIC_INI)))
    return script.get_current_head()


def current_revision(engine: Engine) -> str | None:
    # None when the alembic_version table has never been created
    with engine.connect() as connection:
        return MigrationContext.configure(connection).get_current_revision()


def migration_status(engine: Engine) -> MigrationStatus:
    return MigrationStatus(current=current_revision(engine), head=head_revision())


def assert_db_is_up_to_date(engine: Engine) -> MigrationStatus:
    status = migration_status(engine)
    if not status.up_to_date:
        raise RuntimeError(f"Database schema not up to date ({status.describe()}). {UPGRADE_HINT}")
    return status


def maybe_create_schema(engine: Engine) -> bool:
    """Create tables straight from the models when AUTO_CREATE_SCHEMA is set.

    Returns whether tables were created. Meant for local SQLite runs only, so it
    refuses to run alongside REQUIRE_MIGRATIONS.
    """
    if not settings.auto_create_schema:
        return False
    if settings.require_migrations:
        raise RuntimeError("AUTO_CREATE_SCHEMA cannot be combined with REQUIRE_MIGRATIONS")

    import readyset.models  # noqa: F401 (register all SQLAlchemy models)

    Base.metadata.create_all(bind=engine)
    return True
