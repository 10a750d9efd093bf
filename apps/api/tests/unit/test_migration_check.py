from __future__ import annotations

from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, text

import app.main as main_module
from app.config import settings
from app.db.migration_check import (
    assert_db_is_up_to_date,
    get_alembic_head_revision,
    get_current_db_revision,
    get_schema_status,
    maybe_create_schema,
)
from app.main import app


@pytest.fixture
def sqlite_engine(tmp_path: Path):
    db_path = tmp_path / "migration-check.db"
    engine = create_engine(f"sqlite+pysqlite:///{db_path}")
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def startup_settings():
    original_mode = settings.app_mode
    original_auto_create = settings.auto_create_schema
    original_engine = main_module.engine
    try:
        yield settings
    finally:
        settings.app_mode = original_mode
        settings.auto_create_schema = original_auto_create
        main_module.engine = original_engine


def _stamp(engine, revision: str) -> None:
    with engine.begin() as connection:
        connection.execute(text("CREATE TABLE alembic_version (version_num VARCHAR(32) NOT NULL)"))
        connection.execute(
            text("INSERT INTO alembic_version (version_num) VALUES (:rev)"), {"rev": revision}
        )


def _has_table(engine, name: str) -> bool:
    with engine.begin() as connection:
        found = connection.execute(
            text("SELECT name FROM sqlite_master WHERE type='table' AND name=:name"),
            {"name": name},
        ).scalar_one_or_none()
    return found == name


def test_head_revision_is_the_product_expiry_migration():
    assert get_alembic_head_revision() == "20261020_0002"


def test_assert_db_is_up_to_date_fails_when_alembic_version_missing(sqlite_engine):
    assert get_schema_status(sqlite_engine).current is None

    with pytest.raises(RuntimeError, match="alembic upgrade head"):
        assert_db_is_up_to_date(sqlite_engine)


def test_assert_db_is_up_to_date_passes_at_head(sqlite_engine):
    head = get_alembic_head_revision()
    _stamp(sqlite_engine, head)

    assert get_current_db_revision(sqlite_engine) == head
    assert get_schema_status(sqlite_engine).up_to_date
    assert_db_is_up_to_date(sqlite_engine)


def test_maybe_create_schema_creates_tables_when_enabled(sqlite_engine, startup_settings):
    startup_settings.auto_create_schema = True
    startup_settings.app_mode = "demo"

    maybe_create_schema(sqlite_engine)

    for table in ("orders", "order_items", "products", "tracking_events", "location_tracking"):
        assert _has_table(sqlite_engine, table)


def test_maybe_create_schema_refuses_production(sqlite_engine, startup_settings):
    startup_settings.auto_create_schema = True
    startup_settings.app_mode = "production"

    with pytest.raises(RuntimeError, match="AUTO_CREATE_SCHEMA"):
        maybe_create_schema(sqlite_engine)


def test_app_startup_fails_fast_in_production_when_revision_missing(
    sqlite_engine, startup_settings
):
    main_module.engine = sqlite_engine
    startup_settings.app_mode = "production"
    startup_settings.auto_create_schema = False

    with pytest.raises(RuntimeError, match="alembic upgrade head"):
        with TestClient(app):
            pass


def test_app_startup_passes_in_production_when_db_at_head(sqlite_engine, startup_settings):
    _stamp(sqlite_engine, get_alembic_head_revision())
    main_module.engine = sqlite_engine
    startup_settings.app_mode = "production"
    startup_settings.auto_create_schema = False

    with TestClient(app):
        pass


def test_app_startup_auto_creates_schema_in_demo(sqlite_engine, startup_settings):
    main_module.engine = sqlite_engine
    startup_settings.app_mode = "demo"
    startup_settings.auto_create_schema = True

    with TestClient(app):
        pass

    assert _has_table(sqlite_engine, "orders")
