"""
Synchronization Engine (optimistic sync)

Mutations are applied to the replica first and returned to the caller
immediately; the affected channel is then pushed in a background task.

- Before each mutation a deep snapshot of the channel is taken.
- On push success the freshness timestamp is refreshed, so a bulk load right
  after a save does not overwrite the just-committed state with stale data.
  Only a completed bulk load starts the window; pushes never open it.
- On push failure (after the retry policy is exhausted) the channel is reset
  to its snapshot and a SyncNotice is published. Nothing is re-raised into
  the original call, which has already returned.

Channels are independent: each push carries one channel's complete state (or,
for ratings, one idempotent upsert), so the last push to resolve wins.
"""
import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Set

from handwriting.config import settings
from handwriting.core.channels import ChannelKind, SyncChannel
from handwriting.core.errors import SyncError
from handwriting.core.notices import SYNC_TOPIC, Notifier, SyncNotice
from handwriting.core.replica import ReplicaStore
from handwriting.persistence.base import PersistenceService
from handwriting.schemas.sync import Dataset, UpdateUserPayload

logger = logging.getLogger("handwriting")

_NO_SNAPSHOT = object()


@dataclass
class RetryPolicy:
    """Bounded retry for background pushes; the default makes a single attempt."""
    max_attempts: int = 1
    backoff_sec: float = 0.5

    def delay(self, attempt: int) -> float:
        """Exponential backoff before attempt ``attempt + 1``."""
        return self.backoff_sec * (2 ** (attempt - 1))

    @classmethod
    def from_settings(cls) -> "RetryPolicy":
        return cls(max_attempts=max(1, settings.push_max_attempts),
                   backoff_sec=settings.push_retry_backoff_sec)


class SyncEngine:
    def __init__(
        self,
        store: ReplicaStore,
        persistence: PersistenceService,
        notifier: Optional[Notifier] = None,
        freshness_window_sec: Optional[float] = None,
        retry: Optional[RetryPolicy] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.store = store
        self.persistence = persistence
        self.notifier = notifier or Notifier()
        self.freshness_window_sec = (
            settings.freshness_window_sec if freshness_window_sec is None else freshness_window_sec
        )
        self.retry = retry or RetryPolicy.from_settings()
        self._clock = clock
        self._last_sync_at: Optional[float] = None
        self._inflight_load: Optional[asyncio.Future] = None
        self._inflight_force = False
        self._pending: Set[asyncio.Task] = set()
        self._rollback_listeners: List[Callable[[SyncChannel], None]] = []
        self.load_count = 0  # Completed network loads

    # -------- bulk read --------
    def is_fresh(self) -> bool:
        if self._last_sync_at is None:
            return False
        return self._clock() - self._last_sync_at < self.freshness_window_sec

    async def bulk_load(self, force: bool = False) -> Dataset:
        """
        Load the full dataset into the replica.

        Within the freshness window (and without ``force``) the replica is
        returned as is, with no network call. Concurrent callers share one
        in-flight load. A forced call never joins a non-forced load: it queues
        a new forced load behind it, which later callers then share.
        """
        if not force and self.is_fresh():
            return self.store.to_dataset()
        inflight = self._inflight_load
        if inflight is None or (force and not self._inflight_force):
            self._inflight_force = force
            self._inflight_load = asyncio.ensure_future(self._load(force, after=inflight))
        return await asyncio.shield(self._inflight_load)

    async def _load(self, force: bool, after: Optional[asyncio.Future] = None) -> Dataset:
        try:
            if after is not None:
                await asyncio.wait([after])
            raw = await self.persistence.read_all(force=force)
            dataset = Dataset.model_validate(raw)
            self.store.replace_all(dataset)
            self._last_sync_at = self._clock()
            self.load_count += 1
            logger.info("[sync] loaded %d users, %d samples, %d works, %d ratings",
                        len(dataset.users), len(dataset.samples), len(dataset.works), len(dataset.ratings))
            return self.store.to_dataset()
        finally:
            if self._inflight_load is asyncio.current_task():
                self._inflight_load = None
                self._inflight_force = False

    # -------- optimistic writes --------
    def commit(self, channel: SyncChannel, mutate: Callable[[], Any], payload: Any = None) -> Any:
        """
        Snapshot ``channel``, apply ``mutate`` synchronously, then push in the
        background. Returns whatever ``mutate`` returned.
        """
        snapshot = self.store.export_channel(channel)
        result = mutate()
        self.push_slice(channel, payload, snapshot=snapshot)
        return result

    def push_slice(self, channel: SyncChannel, data: Any = None, snapshot: Any = _NO_SNAPSHOT) -> asyncio.Task:
        """
        Transmit one channel in a background task.

        ``data`` defaults to the channel's current state in the replica. When a
        ``snapshot`` is given the channel is reset to it if the push fails.
        The returned task resolves to True on success, False after rollback.
        """
        if data is None:
            data = self.channel_payload(channel)
        task = asyncio.get_running_loop().create_task(
            self._push(channel, data, snapshot), name=f"push:{channel.name}"
        )
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    def channel_payload(self, channel: SyncChannel) -> Any:
        """Wire payload carrying a channel's complete current state."""
        kind = channel.kind
        if kind == ChannelKind.SAMPLES:
            return [s.to_wire() for s in self.store.samples_of(channel.user_id)]
        if kind == ChannelKind.WORKS:
            return [w.to_wire() for w in self.store.works_of(channel.user_id)]
        if kind == ChannelKind.SETTINGS:
            current = self.store.get_settings()
            return current.to_wire() if current else {}
        if kind == ChannelKind.USER:
            user = self.store.get_user(channel.user_id)
            wire = user.to_wire() if user else {}
            updates = {k: wire[k] for k in ("collectionVisibility", "role", "collectedWorkIds") if k in wire}
            return UpdateUserPayload(user_id=channel.user_id, updates=updates).to_wire()
        raise ValueError(f"channel {channel.name} has no implicit payload")

    async def _transmit(self, channel: SyncChannel, data: Any) -> None:
        kind = channel.kind
        if kind == ChannelKind.SAMPLES:
            await self.persistence.write_samples(channel.user_id, data)
        elif kind == ChannelKind.WORKS:
            await self.persistence.write_works(channel.user_id, data)
        elif kind == ChannelKind.RATINGS:
            await self.persistence.system_action("saveRating", data)
        elif kind == ChannelKind.SETTINGS:
            await self.persistence.system_action("saveSettings", data)
        elif kind == ChannelKind.USER:
            await self.persistence.system_action("updateUser", data)
        else:
            raise ValueError(f"unknown channel kind: {kind}")

    async def _push(self, channel: SyncChannel, data: Any, snapshot: Any) -> bool:
        attempt = 0
        while True:
            attempt += 1
            try:
                await self._transmit(channel, data)
            except Exception as exc:
                if attempt < self.retry.max_attempts:
                    delay = self.retry.delay(attempt)
                    logger.warning("[sync] push %s failed (attempt %d/%d), retrying in %.2fs: %s",
                                   channel.name, attempt, self.retry.max_attempts, delay, exc)
                    await asyncio.sleep(delay)
                    continue
                self._rollback(channel, snapshot, exc)
                return False
            if self._last_sync_at is not None:
                self._last_sync_at = self._clock()
            return True

    def _rollback(self, channel: SyncChannel, snapshot: Any, exc: Exception) -> None:
        rolled_back = snapshot is not _NO_SNAPSHOT
        if rolled_back:
            self.store.restore_channel(channel, snapshot)
            for listener in list(self._rollback_listeners):
                listener(channel)
        logger.warning("[sync] push %s failed, %s: %s",
                       channel.name, "rolled back" if rolled_back else "no snapshot", exc)
        error = SyncError("SYNC_PUSH_FAILED", f"Could not save {channel.name}: {exc}")
        error.__cause__ = exc
        self.notifier.publish(SYNC_TOPIC, SyncNotice(channel=channel.name, error=error, rolled_back=rolled_back))

    def add_rollback_listener(self, listener: Callable[[SyncChannel], None]) -> None:
        """Run ``listener(channel)`` after a channel was reset to its snapshot."""
        self._rollback_listeners.append(listener)

    # -------- lifecycle --------
    @property
    def pending_pushes(self) -> int:
        return len(self._pending)

    async def drain(self) -> None:
        """Wait until every background push has resolved (including ones issued meanwhile)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
