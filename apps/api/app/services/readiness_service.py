from collections.abc import Callable
from typing import Literal

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.migration_check import get_schema_status
from app.observability import log_event, metrics_store

ReadinessStatus = Literal["ok", "error"]


def safe_dependency_status(
    dependency_name: str,
    checker: Callable[[], ReadinessStatus],
) -> ReadinessStatus:
    metrics_store.increment("readiness_dependency_checked_total")
    try:
        status = checker()
    except Exception as exc:  # readiness fails closed to degraded
        metrics_store.increment("readiness_dependency_error_total")
        log_event(f"readiness_dependency_check_failed name={dependency_name} error={exc!r}")
        return "error"

    if status != "ok":
        metrics_store.increment("readiness_dependency_error_total")
        return "error"
    return "ok"


def database_dependency_status(
    session_factory: Callable[[], Session],
) -> ReadinessStatus:
    try:
        with session_factory() as db:
            db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        return "error"
    return "ok"


def migrations_dependency_status(engine: Engine) -> ReadinessStatus:
    try:
        schema = get_schema_status(engine)
    except SQLAlchemyError:
        return "error"
    return "ok" if schema.up_to_date else "error"
