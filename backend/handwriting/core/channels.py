# handwriting/core/channels.py
"""
Sync channels: independently synchronized slices of the replica.

Each channel is pushed, snapshotted and rolled back on its own; a failure on
one channel never touches another.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ChannelKind(str, Enum):
    SAMPLES = "samples"    # one user's samples, full array replace
    WORKS = "works"        # one user's works, full array replace
    RATINGS = "ratings"    # system-wide rating set, upsert per rating
    SETTINGS = "settings"  # singleton preferences
    USER = "user"          # one user record (updatable fields only)


_PER_USER = {ChannelKind.SAMPLES, ChannelKind.WORKS, ChannelKind.USER}


@dataclass(frozen=True)
class SyncChannel:
    kind: ChannelKind
    user_id: Optional[str] = None

    def __post_init__(self):
        if (self.kind in _PER_USER) != (self.user_id is not None):
            raise ValueError(f"channel {self.kind.value} user_id mismatch: {self.user_id!r}")

    @property
    def name(self) -> str:
        if self.user_id is None:
            return self.kind.value
        return f"{self.kind.value}:{self.user_id}"

    @classmethod
    def samples(cls, user_id: str) -> "SyncChannel":
        return cls(ChannelKind.SAMPLES, user_id)

    @classmethod
    def works(cls, user_id: str) -> "SyncChannel":
        return cls(ChannelKind.WORKS, user_id)

    @classmethod
    def ratings(cls) -> "SyncChannel":
        return cls(ChannelKind.RATINGS)

    @classmethod
    def settings(cls) -> "SyncChannel":
        return cls(ChannelKind.SETTINGS)

    @classmethod
    def user(cls, user_id: str) -> "SyncChannel":
        return cls(ChannelKind.USER, user_id)
