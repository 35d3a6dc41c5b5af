"""Test helpers for Cassandra results and auth headers."""

from types import SimpleNamespace
from typing import Any
from unittest.mock import MagicMock, Mock
from uuid import UUID

from coursemart.auth.permissions import UserRole
from coursemart.auth.security import create_access_token


def row(**fields: Any) -> SimpleNamespace:
    """A Cassandra row stand-in (attribute access like named tuples)."""
    return SimpleNamespace(**fields)


def result(rows: list[Any] | None = None, was_applied: bool = True) -> MagicMock:
    """A ResultSet stand-in supporting ``one()``, iteration and LWT checks."""
    rows = list(rows or [])
    res = MagicMock()
    res.one.return_value = rows[0] if rows else None
    res.was_applied = was_applied
    res.__iter__.side_effect = lambda: iter(rows)
    return res


def executed_queries(session: Mock) -> list[str]:
    """CQL of every statement passed to ``aexecute`` so far."""
    return [call.args[0].query_string for call in session.aexecute.call_args_list]


def bearer(user_id: UUID, role: UserRole, email: str = "user@test.com") -> dict:
    token = create_access_token(
        {"sub": str(user_id), "email": email, "role": role.value}
    )
    return {"Authorization": f"Bearer {token}"}
