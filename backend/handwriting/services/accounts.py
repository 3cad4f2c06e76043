"""
Accounts: registration, login and user record updates.

Credentials are handled by the persistence service; this module validates the
format of usernames and passwords before any network call and only ever keeps
the sanitized user record in the replica.
"""
import logging
import re
from typing import Any, Dict, List

from pydantic.alias_generators import to_camel

from handwriting.core.channels import SyncChannel
from handwriting.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from handwriting.core.replica import ReplicaStore
from handwriting.core.session import Session, require_admin, require_member
from handwriting.models import Role, User, Visibility
from handwriting.persistence.base import PersistenceService
from handwriting.schemas.auth import AuthResult
from handwriting.schemas.sync import ResetPasswordPayload

logger = logging.getLogger("handwriting")

USERNAME_RE = re.compile(r"^[一-龥a-zA-Z0-9_.-]+$")
CJK_RE = re.compile(r"[一-龥]")
USERNAME_MIN_WIDTH = 4
USERNAME_MAX_WIDTH = 30
PASSWORD_MIN_LENGTH = 7
PASSWORD_MAX_LENGTH = 16

UPDATABLE_FIELDS = ("collection_visibility", "role", "collected_work_ids")
_UPDATABLE_ALIASES = {to_camel(f): f for f in UPDATABLE_FIELDS}


def validate_username(username: str) -> None:
    """
    Hanzi, ASCII letters, digits, ``_``, ``.`` and ``-`` only; display width
    4-30 where one hanzi counts as 2.
    """
    if not username:
        raise ValidationError("USERNAME_REQUIRED", "Username is required")
    if not USERNAME_RE.fullmatch(username):
        raise ValidationError(
            "USERNAME_INVALID",
            "Username may only contain hanzi, letters, digits, underscore, dot and hyphen",
        )
    width = sum(2 if CJK_RE.match(ch) else 1 for ch in username)
    if not USERNAME_MIN_WIDTH <= width <= USERNAME_MAX_WIDTH:
        raise ValidationError(
            "USERNAME_LENGTH",
            f"Username must be {USERNAME_MIN_WIDTH}-{USERNAME_MAX_WIDTH} characters (one hanzi counts as 2)",
        )


def validate_password(password: str) -> None:
    if not password:
        raise ValidationError("PASSWORD_REQUIRED", "Password is required")
    if not PASSWORD_MIN_LENGTH <= len(password) <= PASSWORD_MAX_LENGTH:
        raise ValidationError(
            "PASSWORD_LENGTH",
            f"Password must be {PASSWORD_MIN_LENGTH}-{PASSWORD_MAX_LENGTH} characters",
        )
    if password.isdigit():
        raise ValidationError("PASSWORD_ALL_DIGITS", "Password cannot be digits only")


class AccountService:
    def __init__(self, store: ReplicaStore, persistence: PersistenceService, sync):
        self.store = store
        self.persistence = persistence
        self.sync = sync

    async def _authenticate(self, action: str, username: str, password: str) -> Session:
        reply = await self.persistence.auth_action(action, username, password)
        user = AuthResult.model_validate(reply).user
        self.store.put_user(user)
        logger.info("[auth] %s ok for %s (%s)", action, user.username, user.role.value)
        return Session(user=user.clone())

    async def register(self, username: str, password: str) -> Session:
        """
        Register a contributor account and return its session.

        Raises:
            ValidationError: malformed username/password (before any network call)
                             or username already taken
        """
        validate_username(username)
        validate_password(password)
        return await self._authenticate("register", username, password)

    async def login(self, username: str, password: str) -> Session:
        """
        Raises:
            PermissionDeniedError (AUTH_INVALID_CREDENTIALS)
        """
        if not username or not password:
            raise ValidationError("BAD_REQUEST", "username/password required")
        return await self._authenticate("login", username, password)

    def logout(self) -> Session:
        return Session.anonymous()

    def get_user(self, session: Session, user_id: str) -> User:
        require_member(session, self.store)
        user = self.store.get_user(user_id)
        if user is None:
            raise NotFoundError("USER_NOT_FOUND", "User not found")
        return user.clone()

    def list_users(self, session: Session) -> List[User]:
        require_admin(session, self.store)
        return sorted((u.clone() for u in self.store.all_users()), key=lambda u: u.created_at, reverse=True)

    def update_user(self, session: Session, user_id: str, updates: Dict[str, Any]) -> User:
        """
        Update ``collection_visibility``, ``role`` or ``collected_work_ids``.

        Role changes are admin only; the other fields may be changed by the
        user themself or an admin. Both snake_case and camelCase keys are accepted.

        Raises:
            ValidationError (USER_FIELD_NOT_UPDATABLE)
            PermissionDeniedError
            NotFoundError (USER_NOT_FOUND)
        """
        actor = require_member(session, self.store)
        target = self.store.get_user(user_id)
        if target is None:
            raise NotFoundError("USER_NOT_FOUND", "User not found")

        fields = {}
        for key, value in updates.items():
            name = key if key in User.model_fields else _UPDATABLE_ALIASES.get(key)
            if name not in UPDATABLE_FIELDS:
                raise ValidationError("USER_FIELD_NOT_UPDATABLE", f"Field {key!r} cannot be updated")
            fields[name] = value

        if "role" in fields and actor.role != Role.ADMIN:
            raise PermissionDeniedError("FORBIDDEN_ADMIN_ONLY", "Only administrators can change roles")
        if actor.role != Role.ADMIN and actor.id != target.id:
            raise PermissionDeniedError("FORBIDDEN_NOT_OWNER", "Permission denied: not your account")

        data = target.model_dump()
        data.update(fields)
        try:
            updated = User.model_validate(data)
        except ValueError as exc:
            raise ValidationError("USER_UPDATE_INVALID", str(exc)) from exc
        updated.collected_work_ids = list(dict.fromkeys(updated.collected_work_ids))

        self.sync.commit(SyncChannel.user(user_id), lambda: self.store.put_user(updated))
        return updated.clone()

    def set_collection_visibility(self, session: Session, visibility: Visibility) -> User:
        user = require_member(session, self.store)
        try:
            visibility = Visibility(visibility)
        except ValueError:
            raise ValidationError(
                "USER_UPDATE_INVALID", f"Unknown collection visibility: {visibility!r}") from None
        return self.update_user(session, user.id, {"collection_visibility": visibility})

    async def reset_password(self, session: Session, user_id: str, new_password: str) -> None:
        """
        Reset a password (admin, or the user themself). Awaited: nothing local
        changes, so there is nothing to roll back.
        """
        actor = require_member(session, self.store)
        if actor.role != Role.ADMIN and actor.id != user_id:
            raise PermissionDeniedError("FORBIDDEN_NOT_OWNER", "Permission denied: not your account")
        if self.store.get_user(user_id) is None:
            raise NotFoundError("USER_NOT_FOUND", "User not found")
        validate_password(new_password)
        payload = ResetPasswordPayload(user_id=user_id, new_password=new_password).to_wire()
        await self.persistence.system_action("resetPassword", payload)
        logger.info("[auth] password reset for %s by %s", user_id, actor.username)
