import pytest

from handwriting.core.errors import PermissionDeniedError, ValidationError
from handwriting.models import Role


pytestmark = pytest.mark.asyncio


async def test_register_and_login_flow(layer, backend):
    session = await layer.accounts.register("书法家01", "brush2024")
    assert session.user.username == "书法家01"
    assert session.user.role == Role.USER
    assert layer.store.find_user_by_username("书法家01") is not None

    # Duplicate username should fail
    with pytest.raises(ValidationError) as exc:
        await layer.accounts.register("书法家01", "brush2024")
    assert exc.value.code == "USERNAME_EXISTS"

    login = await layer.accounts.login("书法家01", "brush2024")
    assert login.user_id == session.user_id

    with pytest.raises(PermissionDeniedError) as exc:
        await layer.accounts.login("书法家01", "wrong-pass")
    assert exc.value.code == "AUTH_INVALID_CREDENTIALS"

    assert layer.accounts.logout().is_authenticated is False


async def test_register_validates_before_network(layer, backend):
    before = backend.read_blob("data/system.json")
    with pytest.raises(ValidationError):
        await layer.accounts.register("ab", "brush2024")
    with pytest.raises(ValidationError):
        await layer.accounts.register("valid_name", "12345678")
    assert backend.read_blob("data/system.json") == before


async def test_login_requires_both_fields(layer):
    with pytest.raises(ValidationError) as exc:
        await layer.accounts.login("alice", "")
    assert exc.value.code == "BAD_REQUEST"


async def test_session_user_has_no_secrets(layer):
    session = await layer.accounts.login("alice", "secret123")
    wire = session.user.to_wire()
    assert "passwordHash" not in wire
    assert "password" not in wire


async def test_new_user_can_contribute(layer, sample_factory):
    session = await layer.accounts.register("newbie", "brush2024")
    sample = layer.policy.save_sample(session, sample_factory())
    assert sample.user_id == session.user_id


async def test_reset_password(layer, admin, alice, bob):
    await layer.accounts.reset_password(alice, "u-alice", "changed99")
    await layer.accounts.login("alice", "changed99")

    await layer.accounts.reset_password(admin, "u-bob", "changed99")
    await layer.accounts.login("bob_01", "changed99")

    with pytest.raises(PermissionDeniedError):
        await layer.accounts.reset_password(bob, "u-alice", "hijacked1")
    with pytest.raises(ValidationError):
        await layer.accounts.reset_password(alice, "u-alice", "short")


async def test_guest_cannot_write(layer, guest, work_factory):
    with pytest.raises(PermissionDeniedError) as exc:
        layer.policy.save_work(guest, work_factory())
    assert exc.value.code == "FORBIDDEN_GUEST"
