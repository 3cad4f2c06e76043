"""
Unit tests for core.session module.
Tests explicit sessions and the role guards.
"""
import pytest

from handwriting.core.errors import PermissionDeniedError
from handwriting.core.replica import ReplicaStore
from handwriting.core.session import Session, require_admin, require_member, resolve_user
from handwriting.models import Role, User


class TestSession:
    def test_anonymous(self):
        session = Session.anonymous()
        assert session.user_id is None
        assert session.is_authenticated is False
        assert session.is_guest is True

    def test_member(self):
        session = Session(user=User(id="a", username="alice"))
        assert session.user_id == "a"
        assert session.is_guest is False


class TestGuards:
    def test_anonymous_requires_login(self):
        with pytest.raises(PermissionDeniedError) as exc:
            require_member(Session.anonymous())
        assert exc.value.code == "AUTH_REQUIRED"

    def test_guest_is_read_only(self):
        with pytest.raises(PermissionDeniedError) as exc:
            require_member(Session(user=User(id="g", username="guest", role=Role.GUEST)))
        assert exc.value.code == "FORBIDDEN_GUEST"

    def test_require_admin(self):
        with pytest.raises(PermissionDeniedError) as exc:
            require_admin(Session(user=User(id="a", username="alice")))
        assert exc.value.code == "FORBIDDEN_ADMIN_ONLY"
        admin = require_admin(Session(user=User(id="r", username="root", role=Role.ADMIN)))
        assert admin.id == "r"

    def test_role_change_in_replica_is_honoured(self):
        """A session created before a promotion sees the new role."""
        store = ReplicaStore()
        store.put_user(User(id="a", username="alice", role=Role.ADMIN))
        session = Session(user=User(id="a", username="alice", role=Role.USER))
        assert resolve_user(session, store).role == Role.ADMIN
        require_admin(session, store)

    def test_unknown_user_falls_back_to_session(self):
        store = ReplicaStore()
        session = Session(user=User(id="a", username="alice"))
        assert resolve_user(session, store).id == "a"
