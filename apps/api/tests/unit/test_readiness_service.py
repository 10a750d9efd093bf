from pathlib import Path

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError

from app.db.migration_check import get_alembic_head_revision
from app.services import readiness_service


def test_database_dependency_status_handles_sqlalchemy_error():
    class BrokenSession:
        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc_val, exc_tb):
            return False

        def execute(self, *args, **kwargs):
            raise SQLAlchemyError("db down")

    assert readiness_service.database_dependency_status(BrokenSession) == "error"


def test_migrations_dependency_status_tracks_head(tmp_path: Path):
    engine = create_engine(f"sqlite+pysqlite:///{tmp_path / 'ready.db'}")
    try:
        assert readiness_service.migrations_dependency_status(engine) == "error"

        with engine.begin() as connection:
            connection.execute(
                text("CREATE TABLE alembic_version (version_num VARCHAR(32) NOT NULL)")
            )
            connection.execute(
                text("INSERT INTO alembic_version (version_num) VALUES (:rev)"),
                {"rev": get_alembic_head_revision()},
            )

        assert readiness_service.migrations_dependency_status(engine) == "ok"
    finally:
        engine.dispose()


def test_safe_dependency_status_counts_errors():
    from app.observability import metrics_store

    assert readiness_service.safe_dependency_status("database", lambda: "ok") == "ok"
    assert readiness_service.safe_dependency_status("database", lambda: "error") == "error"

    counters = metrics_store.snapshot().counters
    assert counters["readiness_dependency_checked_total"] == 2
    assert counters["readiness_dependency_error_total"] == 1
