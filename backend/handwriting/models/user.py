# handwriting/models/user.py
"""
User record as seen by the data layer.

Credentials never reach the replica: the persistence service sanitizes users
before returning them and any stray secret field is dropped on validation.
"""
from enum import Enum
from typing import List

from pydantic import Field

from .base import WireModel, Visibility, now_ms


class Role(str, Enum):
    ADMIN = "admin"   # moderator
    USER = "user"     # contributor
    GUEST = "guest"   # read only


class User(WireModel):
    id: str  # Unique user identifier (UUID string)
    username: str  # Login name, unique across all users
    role: Role = Role.USER
    collection_visibility: Visibility = Visibility.PRIVATE  # Whether refined content is discoverable by others
    collected_work_ids: List[str] = Field(default_factory=list)  # Source ids of public works this user collected
    created_at: int = Field(default_factory=now_ms)

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN
