"""
Unit tests for persistence.memory module.
Tests the persisted layout, credential handling and system actions.
"""
import pytest

from handwriting.core.errors import NotFoundError, PermissionDeniedError, ValidationError
from handwriting.models.rating import mean_score
from handwriting.persistence.credentials import hash_password, sanitize_user, verify_password
from handwriting.persistence.memory import (
    PUBLIC_WORKS_PATH,
    SYSTEM_PATH,
    InMemoryPersistenceService,
    user_blob_path,
)


pytestmark = pytest.mark.asyncio


def work(work_id, visibility="public", **fields):
    return {"id": work_id, "title": "t", "content": "c", "visibility": visibility,
            "status": "published", "charStyles": {"0": "s1"}, "layout": "vertical", **fields}


class TestCredentials:
    async def test_hash_and_verify(self):
        hashed = hash_password("secret123")
        assert hashed != "secret123"
        assert verify_password("secret123", hashed) is True
        assert verify_password("wrong-pass", hashed) is False

    async def test_sanitize_strips_secrets(self):
        clean = sanitize_user({"id": "u", "password": "p", "passwordHash": "h", "passwordSalt": "s"})
        assert clean == {"id": "u"}


class TestBulkRead:
    async def test_users_never_carry_secrets(self, backend):
        data = await backend.read_all()
        for user in data["users"]:
            assert "passwordHash" not in user
            assert "password" not in user

    async def test_samples_denormalize_owner(self):
        service = InMemoryPersistenceService()
        await service.write_samples("u1", [{"id": "s1", "char": "永"}])
        data = await service.read_all()
        assert data["samples"] == [{"id": "s1", "char": "永", "userId": "u1"}]

    async def test_owner_file_overrides_public_mirror(self):
        service = InMemoryPersistenceService()
        await service.write_works("u1", [work("w1")])
        data = await service.read_all()
        assert len(data["works"]) == 1
        assert data["works"][0]["charStyles"] == {"0": "s1"}

    async def test_scores_derived_from_ratings(self):
        service = InMemoryPersistenceService({
            SYSTEM_PATH: {"users": [], "settings": None, "ratings": [
                {"userId": "a", "targetId": "s1", "targetType": "sample", "score": 8},
                {"userId": "b", "targetId": "s1", "targetType": "sample", "score": 7},
            ]},
            user_blob_path("u1", "samples"): [{"id": "s1", "char": "永", "score": 1}],
        })
        data = await service.read_all()
        assert data["samples"][0]["score"] == 7.5

    async def test_read_count(self):
        service = InMemoryPersistenceService()
        await service.read_all()
        await service.read_all(force=True)
        assert service.read_count == 2


class TestSliceWrites:
    async def test_public_mirror_strips_layout_fields(self):
        service = InMemoryPersistenceService()
        await service.write_works("u1", [work("w1"), work("w2", visibility="private")])
        mirror = service.read_blob(PUBLIC_WORKS_PATH)
        assert [w["id"] for w in mirror] == ["w1"]
        assert "charStyles" not in mirror[0]
        assert "layout" not in mirror[0]
        assert mirror[0]["userId"] == "u1"

    async def test_mirror_keeps_other_users(self):
        service = InMemoryPersistenceService()
        await service.write_works("u1", [work("w1")])
        await service.write_works("u2", [work("w2")])
        await service.write_works("u1", [])
        assert [w["id"] for w in service.read_blob(PUBLIC_WORKS_PATH)] == ["w2"]

    async def test_blobs_are_copied(self):
        service = InMemoryPersistenceService()
        samples = [{"id": "s1", "char": "永"}]
        await service.write_samples("u1", samples)
        samples[0]["char"] = "改"
        assert service.read_blob(user_blob_path("u1", "samples"))[0]["char"] == "永"


class TestSystemActions:
    async def test_save_rating_upserts_and_writes_through(self):
        service = InMemoryPersistenceService()
        await service.write_samples("u1", [{"id": "s1", "char": "永"}])
        payload = {"userId": "a", "targetId": "s1", "targetType": "sample", "score": 6, "targetUserId": "u1"}
        await service.system_action("saveRating", payload)
        await service.system_action("saveRating", {**payload, "score": 9})

        assert len(service.read_blob(SYSTEM_PATH)["ratings"]) == 1
        assert service.read_blob(user_blob_path("u1", "samples"))[0]["score"] == 9.0

    async def test_write_through_score_matches_bulk_read(self):
        service = InMemoryPersistenceService()
        await service.write_samples("u1", [{"id": "s1", "char": "永"}])
        for rater, score in (("a", 7), ("b", 8), ("c", 8)):
            await service.system_action("saveRating", {"userId": rater, "targetId": "s1", "targetType": "sample",
                                                       "score": score, "targetUserId": "u1"})

        written = service.read_blob(user_blob_path("u1", "samples"))[0]["score"]
        data = await service.read_all()
        assert written == data["samples"][0]["score"] == mean_score([7, 8, 8]) == 7.7

    async def test_save_settings_merges(self):
        service = InMemoryPersistenceService()
        await service.system_action("saveSettings", {"theme": "dark"})
        await service.system_action("saveSettings", {"gridSize": 120})
        assert service.read_blob(SYSTEM_PATH)["settings"] == {"theme": "dark", "gridSize": 120}

    async def test_update_user_allow_list(self, backend):
        reply = await backend.system_action("updateUser", {
            "userId": "u-alice",
            "updates": {"collectionVisibility": "public", "username": "mallory", "passwordHash": "x"},
        })
        assert reply["user"]["collectionVisibility"] == "public"
        assert reply["user"]["username"] == "alice"
        assert "passwordHash" not in reply["user"]

    async def test_update_unknown_user(self, backend):
        with pytest.raises(NotFoundError):
            await backend.system_action("updateUser", {"userId": "nobody", "updates": {}})

    async def test_reset_password(self, backend):
        await backend.system_action("resetPassword", {"userId": "u-alice", "newPassword": "newpass99"})
        with pytest.raises(PermissionDeniedError):
            await backend.auth_action("login", "alice", "secret123")
        reply = await backend.auth_action("login", "alice", "newpass99")
        assert reply["user"]["id"] == "u-alice"

    async def test_invalid_action(self, backend):
        with pytest.raises(ValidationError) as exc:
            await backend.system_action("dropTables", {})
        assert exc.value.code == "INVALID_ACTION"


class TestAuthActions:
    async def test_register_creates_user_files(self):
        service = InMemoryPersistenceService()
        reply = await service.auth_action("register", "carol", "secret123")
        user_id = reply["user"]["id"]
        assert reply["user"]["role"] == "user"
        assert service.read_blob(user_blob_path(user_id, "samples")) == []
        assert service.read_blob(user_blob_path(user_id, "works")) == []

    async def test_register_duplicate(self, backend):
        with pytest.raises(ValidationError) as exc:
            await backend.auth_action("register", "alice", "secret123")
        assert exc.value.code == "USERNAME_EXISTS"

    async def test_login_unknown_user(self, backend):
        with pytest.raises(PermissionDeniedError):
            await backend.auth_action("login", "nobody", "secret123")

    async def test_legacy_plaintext_upgraded(self):
        service = InMemoryPersistenceService({
            SYSTEM_PATH: {"users": [{"id": "old", "username": "oldtimer", "password": "plain-pass"}]},
        })
        reply = await service.auth_action("login", "oldtimer", "plain-pass")
        assert reply["user"] == {"id": "old", "username": "oldtimer"}
        stored = service.read_blob(SYSTEM_PATH)["users"][0]
        assert "password" not in stored
        assert verify_password("plain-pass", stored["passwordHash"])

    async def test_legacy_plaintext_wrong_password(self):
        service = InMemoryPersistenceService({
            SYSTEM_PATH: {"users": [{"id": "old", "username": "oldtimer", "password": "plain-pass"}]},
        })
        with pytest.raises(PermissionDeniedError):
            await service.auth_action("login", "oldtimer", "guess-pass")
