# handwriting/core/replica.py
"""
Replica store: the client's synchronous copy of every entity.

The store performs no I/O and no validation. Callers (policy, aggregator,
sync engine) own the invariants; a well-typed write is never rejected.
Because execution is single threaded and every method here is synchronous,
one mutation can never observe another half applied.
"""
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from handwriting.core.channels import ChannelKind, SyncChannel
from handwriting.models import (
    AppSettings,
    CharacterSample,
    Rating,
    TargetType,
    User,
    Work,
)
from handwriting.schemas.sync import Dataset

RatingKey = Tuple[str, str, TargetType]


class ReplicaStore:
    def __init__(self):
        self._users: Dict[str, User] = {}
        self._samples: Dict[str, CharacterSample] = {}
        self._works: Dict[str, Work] = {}
        self._ratings: Dict[RatingKey, Rating] = {}
        self._settings: Optional[AppSettings] = None

    # -------- users --------
    def get_user(self, user_id: Optional[str]) -> Optional[User]:
        if user_id is None:
            return None
        return self._users.get(user_id)

    def find_user_by_username(self, username: str) -> Optional[User]:
        for u in self._users.values():
            if u.username == username:
                return u
        return None

    def all_users(self) -> List[User]:
        return list(self._users.values())

    def put_user(self, user: User) -> None:
        self._users[user.id] = user

    def remove_user(self, user_id: str) -> None:
        self._users.pop(user_id, None)

    # -------- samples --------
    def get_sample(self, sample_id: str) -> Optional[CharacterSample]:
        return self._samples.get(sample_id)

    def all_samples(self) -> List[CharacterSample]:
        return list(self._samples.values())

    def filter_samples(self, predicate: Callable[[CharacterSample], bool]) -> List[CharacterSample]:
        return [s for s in self._samples.values() if predicate(s)]

    def samples_of(self, user_id: str) -> List[CharacterSample]:
        return self.filter_samples(lambda s: s.user_id == user_id)

    def put_sample(self, sample: CharacterSample) -> None:
        self._samples[sample.id] = sample

    def remove_sample(self, sample_id: str) -> None:
        self._samples.pop(sample_id, None)

    # -------- works --------
    def get_work(self, work_id: str) -> Optional[Work]:
        return self._works.get(work_id)

    def all_works(self) -> List[Work]:
        return list(self._works.values())

    def filter_works(self, predicate: Callable[[Work], bool]) -> List[Work]:
        return [w for w in self._works.values() if predicate(w)]

    def works_of(self, user_id: str) -> List[Work]:
        return self.filter_works(lambda w: w.user_id == user_id)

    def put_work(self, work: Work) -> None:
        self._works[work.id] = work

    def remove_work(self, work_id: str) -> None:
        self._works.pop(work_id, None)

    # -------- ratings --------
    def get_rating(self, key: RatingKey) -> Optional[Rating]:
        return self._ratings.get(key)

    def all_ratings(self) -> List[Rating]:
        return list(self._ratings.values())

    def ratings_for(self, target_id: str, target_type: TargetType) -> List[Rating]:
        return [r for r in self._ratings.values()
                if r.target_id == target_id and r.target_type == target_type]

    def put_rating(self, rating: Rating) -> None:
        # Keyed by (rater, target, type): a second rating replaces the first in place
        self._ratings[rating.key] = rating

    def set_score(self, target_type: TargetType, target_id: str, score: Optional[float]) -> bool:
        """Write a derived score onto a sample or work. Returns False if the target is unknown."""
        target = self._samples.get(target_id) if target_type == TargetType.SAMPLE else self._works.get(target_id)
        if target is None:
            return False
        target.score = score
        return True

    # -------- settings --------
    def get_settings(self) -> Optional[AppSettings]:
        return self._settings

    def put_settings(self, settings: Optional[AppSettings]) -> None:
        self._settings = settings

    # -------- bulk --------
    def replace_all(self, dataset: Dataset) -> None:
        """Replace the whole replica with a freshly loaded dataset."""
        self._users = {u.id: u for u in dataset.users}
        self._samples = {s.id: s for s in dataset.samples}
        self._works = {w.id: w for w in dataset.works}
        self._ratings = {}
        for r in dataset.ratings:
            self.put_rating(r)
        self._settings = dataset.settings

    def to_dataset(self) -> Dataset:
        """Deep copy of the whole replica in bulk read shape."""
        return Dataset(
            users=[u.clone() for u in self._users.values()],
            samples=[s.clone() for s in self._samples.values()],
            works=[w.clone() for w in self._works.values()],
            ratings=[r.clone() for r in self._ratings.values()],
            settings=self._settings.clone() if self._settings else None,
        )

    # -------- channel snapshots --------
    def export_channel(self, channel: SyncChannel):
        """
        Deep snapshot of one channel's current contents.
        The returned value is detached from the replica and may be kept
        across suspension points.
        """
        kind = channel.kind
        if kind == ChannelKind.SAMPLES:
            return [s.clone() for s in self.samples_of(channel.user_id)]
        if kind == ChannelKind.WORKS:
            return [w.clone() for w in self.works_of(channel.user_id)]
        if kind == ChannelKind.RATINGS:
            return [r.clone() for r in self._ratings.values()]
        if kind == ChannelKind.SETTINGS:
            return self._settings.clone() if self._settings else None
        if kind == ChannelKind.USER:
            user = self._users.get(channel.user_id)
            return user.clone() if user else None
        raise ValueError(f"unknown channel kind: {kind}")

    def restore_channel(self, channel: SyncChannel, snapshot) -> None:
        """Reset one channel to a snapshot taken by ``export_channel``; other channels are untouched."""
        kind = channel.kind
        if kind == ChannelKind.SAMPLES:
            self._replace_owned(self._samples, channel.user_id, snapshot)
        elif kind == ChannelKind.WORKS:
            self._replace_owned(self._works, channel.user_id, snapshot)
        elif kind == ChannelKind.RATINGS:
            self._ratings = {}
            for r in snapshot:
                self.put_rating(r.clone())
        elif kind == ChannelKind.SETTINGS:
            self._settings = snapshot.clone() if snapshot else None
        elif kind == ChannelKind.USER:
            if snapshot is None:
                self._users.pop(channel.user_id, None)
            else:
                self._users[channel.user_id] = snapshot.clone()
        else:
            raise ValueError(f"unknown channel kind: {kind}")

    @staticmethod
    def _replace_owned(table: dict, user_id: str, records: Iterable) -> None:
        for record_id in [k for k, v in table.items() if v.user_id == user_id]:
            del table[record_id]
        for record in records:
            table[record.id] = record.clone()
