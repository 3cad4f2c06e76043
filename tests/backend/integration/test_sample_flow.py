import pytest

from handwriting.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from handwriting.models import Visibility


pytestmark = pytest.mark.asyncio


async def test_contributor_saves_sample_and_it_is_persisted(layer, backend, alice, sample_factory):
    sample = layer.policy.save_sample(alice, sample_factory("永", rating=4, tags=["楷书"]))
    assert sample.user_id == "u-alice"
    assert layer.policy.get_my_samples(alice)[0].id == sample.id

    await layer.drain()
    persisted = await backend.read_all()
    stored = next(s for s in persisted["samples"] if s["id"] == sample.id)
    assert stored["userId"] == "u-alice"
    assert stored["char"] == "永"
    assert stored["tags"] == ["楷书"]


async def test_owner_is_stamped_from_session(layer, alice, sample_factory):
    sample = layer.policy.save_sample(alice, sample_factory(user_id="u-bob", score=9.9))
    assert sample.user_id == "u-alice"
    assert sample.score is None


async def test_character_outside_allowed_set_rejected(layer, alice, sample_factory):
    with pytest.raises(ValidationError) as exc:
        layer.policy.save_sample(alice, sample_factory("A"))
    assert exc.value.code == "CHAR_NOT_ALLOWED"
    assert layer.policy.get_my_samples(alice) == []


async def test_non_owner_cannot_update_or_delete(layer, alice, bob, sample_factory):
    sample = layer.policy.save_sample(alice, sample_factory())
    forged = sample.model_copy(update={"char": "和"})
    with pytest.raises(PermissionDeniedError) as exc:
        layer.policy.save_sample(bob, forged)
    assert exc.value.code == "FORBIDDEN_NOT_OWNER"
    with pytest.raises(PermissionDeniedError):
        layer.policy.delete_sample(bob, sample.id)
    assert layer.store.get_sample(sample.id).char == "永"


async def test_guest_and_anonymous_are_read_only(layer, guest, anonymous, sample_factory):
    for session in (guest, anonymous):
        with pytest.raises(PermissionDeniedError):
            layer.policy.save_sample(session, sample_factory())
    assert layer.store.all_samples() == []


async def test_admin_cannot_create_samples(layer, admin, sample_factory):
    with pytest.raises(PermissionDeniedError) as exc:
        layer.policy.save_sample(admin, sample_factory(visibility=Visibility.PUBLIC))
    assert exc.value.code == "FORBIDDEN_ROLE"


async def test_admin_cannot_touch_contributor_samples(layer, admin, alice, sample_factory):
    sample = layer.policy.save_sample(alice, sample_factory())
    with pytest.raises(PermissionDeniedError) as exc:
        layer.policy.delete_sample(admin, sample.id)
    assert exc.value.code == "FORBIDDEN_ADMIN_SCOPE"


async def test_admin_edits_own_public_sample(layer, backend, admin, sample_factory):
    # Admin samples come from seeded data, not from the policy
    await backend.write_samples("u-admin", [
        sample_factory("书", id="s-admin", visibility=Visibility.PUBLIC, user_id="u-admin").to_wire(),
    ])
    await layer.load(force=True)

    updated = layer.policy.save_sample(admin, layer.store.get_sample("s-admin").model_copy(update={"is_adjusted": True}))
    assert updated.is_adjusted is True
    layer.policy.delete_sample(admin, "s-admin")
    assert layer.store.get_sample("s-admin") is None


async def test_update_preserves_created_at_and_score(layer, alice, bob, sample_factory):
    sample = layer.policy.save_sample(alice, sample_factory(created_at=1000))
    layer.ratings.save_rating(bob, sample.id, "sample", 8)
    updated = layer.policy.save_sample(alice, sample.model_copy(update={"created_at": 5, "is_refined": True}))
    assert updated.created_at == 1000
    assert updated.score == 8.0
    assert updated.is_refined is True


async def test_delete_unknown_sample(layer, alice):
    with pytest.raises(NotFoundError):
        layer.policy.delete_sample(alice, "missing")


async def test_public_collection_reads(layer, alice, bob, anonymous, sample_factory):
    refined = layer.policy.save_sample(alice, sample_factory("永", is_refined=True, created_at=2))
    layer.policy.save_sample(alice, sample_factory("永", created_at=3))
    layer.policy.save_sample(alice, sample_factory("和", is_refined=True, created_at=1))

    # Private collection: nothing leaks
    assert layer.policy.get_samples_by_char(bob, "永") == []
    with pytest.raises(NotFoundError):
        layer.policy.get_sample(bob, refined.id)

    layer.accounts.set_collection_visibility(alice, Visibility.PUBLIC)
    assert [s.id for s in layer.policy.get_samples_by_char(anonymous, "永")] == [refined.id]
    assert layer.policy.get_collected_chars(bob) == sorted(["永", "和"])
    assert layer.policy.get_sample(bob, refined.id).id == refined.id


async def test_owner_reads_newest_first(layer, alice, sample_factory):
    old = layer.policy.save_sample(alice, sample_factory("永", created_at=1))
    new = layer.policy.save_sample(alice, sample_factory("永", created_at=2))
    assert [s.id for s in layer.policy.get_samples_by_char(alice, "永")] == [new.id, old.id]
    assert layer.policy.get_collected_samples_map(alice)["永"].id == new.id


async def test_returned_records_are_detached(layer, alice, sample_factory):
    sample = layer.policy.save_sample(alice, sample_factory())
    sample.char = "改"
    layer.policy.get_my_samples(alice)[0].char = "改"
    assert layer.store.get_sample(sample.id).char == "永"


async def test_malformed_sample_record_rejected(layer, alice):
    with pytest.raises(ValidationError) as exc:
        layer.policy.save_sample(alice, {"svgPath": "M0 0"})
    assert exc.value.code == "SAMPLE_INVALID"
    assert layer.policy.get_my_samples(alice) == []
