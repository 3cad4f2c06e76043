"""
In-memory Persistence Backend

Reference implementation of the persisted layout, kept entirely in a dict of
JSON documents keyed by path:

- data/system.json                 {users, ratings, settings}
- data/works.json                  public works mirror (layout fields stripped)
- data/users/{userId}/samples.json one user's samples
- data/users/{userId}/works.json   one user's works

Documents are deep-copied on every read and write, so nothing the caller holds
aliases stored state, as with a real network round trip.
"""
import copy
import re
import uuid
from typing import Any, Dict, List, Optional

from .base import PersistenceService
from .credentials import hash_password, sanitize_user, verify_password
from ..core.errors import NotFoundError, PermissionDeniedError, ValidationError
from ..models import now_ms
from ..models.rating import mean_score
from ..schemas.sync import USER_UPDATABLE_FIELDS

SYSTEM_PATH = "data/system.json"
PUBLIC_WORKS_PATH = "data/works.json"
USER_BLOB_RE = re.compile(r"^data/users/([^/]+)/(samples|works)\.json$")

# Fields dropped from the public mirror; readers get them from the owner's file
PUBLIC_MIRROR_STRIPPED = ("charStyles", "charAdjustments", "isRefined", "layout", "gridType", "visibility")


def user_blob_path(user_id: str, kind: str) -> str:
    return f"data/users/{user_id}/{kind}.json"


class InMemoryPersistenceService(PersistenceService):
    """Persistence kept in process memory"""

    def __init__(self, blobs: Optional[Dict[str, Any]] = None):
        self.blobs: Dict[str, Any] = copy.deepcopy(blobs) if blobs else {}
        self.read_count = 0  # Number of bulk reads served

    @property
    def name(self) -> str:
        return "in-memory store"

    # -------- blob primitives --------
    def read_blob(self, path: str) -> Any:
        return copy.deepcopy(self.blobs.get(path))

    def write_blob(self, path: str, data: Any) -> None:
        self.blobs[path] = copy.deepcopy(data)

    def _system(self) -> dict:
        system = self.read_blob(SYSTEM_PATH) or {"users": [], "ratings": [], "settings": None}
        system.setdefault("users", [])
        system.setdefault("ratings", [])
        system.setdefault("settings", None)
        return system

    # -------- bulk read --------
    async def read_all(self, force: bool = False) -> Dict[str, Any]:
        self.read_count += 1
        system = self._system()
        data = {
            "users": [sanitize_user(u) for u in system["users"]],
            "samples": [],
            "works": [],
            "ratings": system["ratings"],
            "settings": system["settings"],
        }

        # Public mirror first; owners' files override with full records
        works_by_id = {}
        for w in self.read_blob(PUBLIC_WORKS_PATH) or []:
            works_by_id[w["id"]] = w
        for path in sorted(self.blobs):
            match = USER_BLOB_RE.match(path)
            if not match:
                continue
            user_id, kind = match.groups()
            for record in self.read_blob(path) or []:
                record["userId"] = user_id
                if kind == "samples":
                    data["samples"].append(record)
                else:
                    works_by_id[record["id"]] = record
        data["works"] = list(works_by_id.values())

        by_target: Dict[str, List[float]] = {}
        for r in data["ratings"]:
            by_target.setdefault(f"{r['targetType']}:{r['targetId']}", []).append(r["score"])
        for kind, records in (("sample", data["samples"]), ("work", data["works"])):
            for record in records:
                scores = by_target.get(f"{kind}:{record['id']}")
                if scores:
                    record["score"] = mean_score(scores)
        return data

    # -------- slice writes --------
    async def write_samples(self, user_id: str, samples: List[dict]) -> None:
        self.write_blob(user_blob_path(user_id, "samples"), samples)

    async def write_works(self, user_id: str, works: List[dict]) -> None:
        self.write_blob(user_blob_path(user_id, "works"), works)
        others = [w for w in self.read_blob(PUBLIC_WORKS_PATH) or [] if w.get("userId") != user_id]
        mirrored = []
        for w in works:
            if w.get("visibility") != "public":
                continue
            clean = {k: v for k, v in w.items() if k not in PUBLIC_MIRROR_STRIPPED}
            clean["userId"] = user_id
            mirrored.append(clean)
        self.write_blob(PUBLIC_WORKS_PATH, others + mirrored)

    async def system_action(self, action: str, payload: dict) -> Dict[str, Any]:
        system = self._system()

        if action == "saveRating":
            key = (payload["userId"], payload["targetId"], payload["targetType"])
            rating = {
                "userId": payload["userId"],
                "targetId": payload["targetId"],
                "targetType": payload["targetType"],
                "score": payload["score"],
                "createdAt": now_ms(),
            }
            ratings = [r for r in system["ratings"]
                       if (r["userId"], r["targetId"], r["targetType"]) != key]
            system["ratings"] = ratings + [rating]
            self.write_blob(SYSTEM_PATH, system)

            target_user_id = payload.get("targetUserId")
            if target_user_id:
                scores = [r["score"] for r in system["ratings"]
                          if r["targetId"] == payload["targetId"] and r["targetType"] == payload["targetType"]]
                kind = "samples" if payload["targetType"] == "sample" else "works"
                path = user_blob_path(target_user_id, kind)
                records = self.read_blob(path)
                if isinstance(records, list):
                    for item in records:
                        if item.get("id") == payload["targetId"]:
                            item["score"] = mean_score(scores)
                    self.write_blob(path, records)
            return {"ok": True}

        if action == "saveSettings":
            system["settings"] = {**(system["settings"] or {}), **payload}
            self.write_blob(SYSTEM_PATH, system)
            return {"ok": True}

        if action == "updateUser":
            user = self._find_user(system, payload["userId"])
            for field, value in (payload.get("updates") or {}).items():
                if field in USER_UPDATABLE_FIELDS:
                    user[field] = value
            self.write_blob(SYSTEM_PATH, system)
            return {"user": sanitize_user(user)}

        if action == "resetPassword":
            user = self._find_user(system, payload["userId"])
            user["passwordHash"] = hash_password(payload["newPassword"])
            user.pop("password", None)
            user.pop("passwordSalt", None)
            self.write_blob(SYSTEM_PATH, system)
            return {"ok": True}

        raise ValidationError("INVALID_ACTION", f"Invalid action: {action}")

    @staticmethod
    def _find_user(system: dict, user_id: str) -> dict:
        for user in system["users"]:
            if user.get("id") == user_id:
                return user
        raise NotFoundError("USER_NOT_FOUND", "User not found")

    # -------- credentials --------
    async def auth_action(self, action: str, username: str, password: str) -> Dict[str, Any]:
        system = self._system()
        users = system["users"]
        user = next((u for u in users if u.get("username") == username), None)

        if action == "login":
            if user is None:
                raise PermissionDeniedError("AUTH_INVALID_CREDENTIALS", "User not found")
            if user.get("password") and not user.get("passwordHash"):
                # Legacy plaintext record: check, then upgrade to a hash
                if user["password"] != password:
                    raise PermissionDeniedError("AUTH_INVALID_CREDENTIALS", "Invalid password")
                user["passwordHash"] = hash_password(password)
                user.pop("password", None)
                self.write_blob(SYSTEM_PATH, system)
            elif not user.get("passwordHash") or not verify_password(password, user["passwordHash"]):
                raise PermissionDeniedError("AUTH_INVALID_CREDENTIALS", "Invalid password")
            return {"user": sanitize_user(user)}

        if action == "register":
            if user is not None:
                raise ValidationError("USERNAME_EXISTS", "Username already exists")
            new_user = {
                "id": str(uuid.uuid4()),
                "username": username,
                "passwordHash": hash_password(password),
                "role": "user",
                "createdAt": now_ms(),
                "collectionVisibility": "private",
                "collectedWorkIds": [],
            }
            users.append(new_user)
            self.write_blob(SYSTEM_PATH, system)
            self.write_blob(user_blob_path(new_user["id"], "samples"), [])
            self.write_blob(user_blob_path(new_user["id"], "works"), [])
            return {"user": sanitize_user(new_user)}

        raise ValidationError("INVALID_ACTION", f"Invalid action: {action}")

    # -------- seeding helpers --------
    def seed_user(self, username: str, password: str, role: str = "user",
                  collection_visibility: str = "private", user_id: Optional[str] = None) -> dict:
        """Insert a user directly (admin bootstrap, tests). Returns the sanitized record."""
        system = self._system()
        record = {
            "id": user_id or str(uuid.uuid4()),
            "username": username,
            "passwordHash": hash_password(password),
            "role": role,
            "createdAt": now_ms(),
            "collectionVisibility": collection_visibility,
            "collectedWorkIds": [],
        }
        system["users"].append(record)
        self.write_blob(SYSTEM_PATH, system)
        return sanitize_user(record)
