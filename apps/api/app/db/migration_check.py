from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from alembic.config import Config
from alembic.script import ScriptDirectory
from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

from app.config import is_production_mode, settings
from app.db.base import Base
from app.observability import log_event

_ALEMBIC_VERSION_TABLE = "alembic_version"


@dataclass(frozen=True)
class SchemaStatus:
    current: Optional[str]
    head: str

    @property
    def up_to_date(self) -> bool:
        return self.current == self.head


def _alembic_ini_path() -> Path:
    return Path(__file__).resolve().parents[2] / "alembic.ini"


def get_alembic_head_revision() -> str:
    config = Config(str(_alembic_ini_path()))
    script = ScriptDirectory.from_config(config)
    return script.get_current_head()


def get_current_db_revision(engine: Engine) -> Optional[str]:
    inspector = inspect(engine)
    if not inspector.has_table(_ALEMBIC_VERSION_TABLE):
        return None

    with engine.connect() as connection:
        result = connection.execute(text("SELECT version_num FROM alembic_version LIMIT 1"))
        return result.scalar_one_or_none()


def get_schema_status(engine: Engine) -> SchemaStatus:
    return SchemaStatus(current=get_current_db_revision(engine), head=get_alembic_head_revision())


def assert_db_is_up_to_date(engine: Engine) -> None:
    schema = get_schema_status(engine)
    if not schema.up_to_date:
        raise RuntimeError(
            f"Database schema at {schema.current or 'none'}, expected {schema.head}. "
            "Run: alembic upgrade head"
        )


def maybe_create_schema(engine: Engine) -> None:
    if not settings.auto_create_schema:
        return
    if is_production_mode():
        raise RuntimeError("AUTO_CREATE_SCHEMA must be disabled in APP_MODE=production")

    import app.models  # noqa: F401 (register all SQLAlchemy models)

    Base.metadata.create_all(bind=engine)
    log_event("schema_auto_created")


def prepare_schema(engine: Engine) -> None:
    """Production requires migrations; other modes may build tables from metadata."""
    if is_production_mode():
        assert_db_is_up_to_date(engine)
        return
    maybe_create_schema(engine)
