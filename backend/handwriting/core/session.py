# handwriting/core/session.py
"""
Explicit session value threaded through every policy call.

There is no ambient "current user": whoever calls the data layer passes the
session it got from login/register (or an anonymous one) along.
"""
from dataclasses import dataclass
from typing import Optional

from handwriting.core.errors import PermissionDeniedError
from handwriting.models import Role, User


@dataclass(frozen=True)
class Session:
    user: Optional[User] = None

    @classmethod
    def anonymous(cls) -> "Session":
        return cls(user=None)

    @property
    def user_id(self) -> Optional[str]:
        return self.user.id if self.user else None

    @property
    def is_authenticated(self) -> bool:
        return self.user is not None

    @property
    def is_guest(self) -> bool:
        return self.user is None or self.user.role == Role.GUEST


def resolve_user(session: Session, store=None) -> Optional[User]:
    """
    Return the session's user, refreshed from the replica when available so
    role or visibility changes made after login are honoured.
    """
    if session is None or session.user is None:
        return None
    if store is not None:
        fresh = store.get_user(session.user.id)
        if fresh is not None:
            return fresh
    return session.user


def require_member(session: Session, store=None) -> User:
    """
    Ensure the session belongs to an authenticated, non-guest user.

    Raises:
        PermissionDeniedError (AUTH_REQUIRED): anonymous session
        PermissionDeniedError (FORBIDDEN_GUEST): guest account
    """
    user = resolve_user(session, store)
    if user is None:
        raise PermissionDeniedError("AUTH_REQUIRED", "Please log in first")
    if user.role == Role.GUEST:
        raise PermissionDeniedError("FORBIDDEN_GUEST", "Guest accounts are read only")
    return user


def require_admin(session: Session, store=None) -> User:
    """
    Builds on ``require_member`` and additionally requires the admin role.

    Raises:
        PermissionDeniedError (FORBIDDEN_ADMIN_ONLY): user is not an administrator
    """
    user = require_member(session, store)
    if user.role != Role.ADMIN:
        raise PermissionDeniedError("FORBIDDEN_ADMIN_ONLY", "Administrator role required")
    return user
