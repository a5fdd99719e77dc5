"""Tenant-scoped access to the relational store.

Every domain service goes through these helpers so that a row belonging to
another organization is indistinguishable from a missing one.
"""
from collections.abc import Callable
from typing import Any, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Query, Session

from adroi.core.logging import get_logger
from adroi.errors import GatewayError, NotFoundError

log = get_logger("gateway")

ModelT = TypeVar("ModelT")

_PROCEDURES: dict[str, Callable[..., Any]] = {}


def scoped(db: Session, model: type[ModelT], organization_id: int) -> Query:
    return db.query(model).filter(model.organization_id == organization_id)


def get_scoped(db: Session, model: type[ModelT], organization_id: int, row_id: int) -> ModelT:
    row = scoped(db, model, organization_id).filter(model.id == row_id).first()
    if not row:
        raise NotFoundError(f"{model.__name__} {row_id} not found", toast=f"{model.__tablename__}-not-found")
    return row


def commit(db: Session, action: str) -> None:
    try:
        db.commit()
    except (SQLAlchemyError, OverflowError) as exc:
        # the sqlite driver raises OverflowError unwrapped for out-of-range integers
        db.rollback()
        log.error("write failed during %s: %s", action, exc)
        raise GatewayError(f"Could not {action}", toast="save-failed") from exc


def read_or_empty(action: str, fn: Callable[[], list]) -> tuple[list, str | None]:
    """Run a read; on store failure log it and hand back an empty list plus an error message."""
    try:
        return fn(), None
    except SQLAlchemyError as exc:
        log.warning("read failed during %s: %s", action, exc)
        return [], f"Could not load {action}"


def procedure(name: str):
    def _register(fn: Callable[..., Any]) -> Callable[..., Any]:
        _PROCEDURES[name] = fn
        return fn

    return _register


def call_procedure(db: Session, name: str, **params: Any) -> Any:
    fn = _PROCEDURES.get(name)
    if fn is None:
        raise NotFoundError(f"Unknown procedure {name}")
    try:
        return fn(db, **params)
    except SQLAlchemyError as exc:
        log.error("procedure %s failed: %s", name, exc)
        raise GatewayError(f"Procedure {name} failed") from exc
