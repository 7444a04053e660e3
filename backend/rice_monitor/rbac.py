from __future__ import annotations

from typing import Literal, Type

from fastapi import HTTPException
from sqlalchemy.orm import Query, Session

from . import models

# purpose: one declarative table of who may do what to each resource
# status: active

Capability = Literal["self", "owner", "admin"]
Action = Literal["read", "write", "delete"]

POLICIES: dict[str, dict[str, frozenset[str]]] = {
    "submission": {
        "read": frozenset({"owner", "admin"}),
        "write": frozenset({"owner", "admin"}),
        "delete": frozenset({"owner", "admin"}),
    },
    "field": {
        "read": frozenset({"owner", "admin"}),
        "write": frozenset({"owner", "admin"}),
        "delete": frozenset({"owner", "admin"}),
    },
    "user": {
        "read": frozenset({"self", "admin"}),
        "write": frozenset({"self", "admin"}),
        "delete": frozenset({"admin"}),
    },
}

_RESOURCES: dict[type, tuple[str, str, str]] = {
    # model -> (policy key, owner column, label used in messages)
    models.Submission: ("submission", "user_id", "Submission"),
    models.Field: ("field", "owner_id", "Field"),
    models.User: ("user", "id", "User"),
}


def capabilities(user: models.User, resource: str, owner_id: str | None) -> set[Capability]:
    """Return the capabilities ``user`` holds over a record owned by ``owner_id``."""
    held: set[Capability] = set()
    if user.is_admin:
        held.add("admin")
    if owner_id is not None and owner_id == user.id:
        held.add("self" if resource == "user" else "owner")
    return held


def can(user: models.User, resource: str, action: Action, owner_id: str | None) -> bool:
    allowed = POLICIES[resource][action]
    return bool(allowed & capabilities(user, resource, owner_id))


def authorize(user: models.User, resource: str, action: Action, owner_id: str | None) -> None:
    if not can(user, resource, action, owner_id):
        raise HTTPException(status_code=403, detail="Access denied")


def load_for(db: Session, user: models.User, model: Type, record_id: str, action: Action):
    """Return the record if it exists and ``user`` may perform ``action`` on it.

    Raises 404 before 403 so callers can tell a missing id from a foreign one.
    """
    resource, owner_column, label = _RESOURCES[model]
    record = db.get(model, record_id)
    if record is None:
        raise HTTPException(status_code=404, detail=f"{label} not found")
    authorize(user, resource, action, getattr(record, owner_column))
    return record


def scope_query(query: Query, user: models.User, model: Type) -> Query:
    """Restrict a listing to the caller's own rows unless they are an admin."""
    if user.is_admin:
        return query
    _, owner_column, _ = _RESOURCES[model]
    return query.filter(getattr(model, owner_column) == user.id)
