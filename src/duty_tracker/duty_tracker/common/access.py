from __future__ import annotations

from dataclasses import dataclass

from ..core.enums import Role, normalize_role
from ..core.exceptions import AuthorizationError


@dataclass(frozen=True)
class Actor:
    """Already-authenticated caller, threaded explicitly through every use case."""

    user_id: int
    role: Role

    @classmethod
    def of(cls, user_id, role) -> "Actor":
        return cls(user_id=int(user_id), role=normalize_role(role))


def can_view_user(viewer: Actor, target_user_id: int) -> bool:
    return viewer.user_id == int(target_user_id) or viewer.role.is_management


def ensure_can_view_user(viewer: Actor, target_user_id: int) -> None:
    if not can_view_user(viewer, target_user_id):
        raise AuthorizationError("You do not have permission to view this user's time.")
