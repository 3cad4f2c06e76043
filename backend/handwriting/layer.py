# handwriting/layer.py
"""
DataLayer: the client-resident data layer in one object.

Wires the replica store, notice board, synchronization engine, character
policy, workflow policy, rating aggregator, accounts and preferences around a
single persistence service. Mutating calls are synchronous and return as soon
as the replica is updated; persistence happens in the background.

Usage:
    layer = DataLayer(HttpPersistenceService())
    await layer.load()
    session = await layer.accounts.login("tester01", "password123")
    layer.policy.save_sample(session, sample)
"""
import asyncio
import logging
from typing import Callable, Optional

from handwriting.core.notices import SYNC_TOPIC, Notifier
from handwriting.core.replica import ReplicaStore
from handwriting.persistence.base import PersistenceService
from handwriting.schemas.sync import Dataset
from handwriting.services.accounts import AccountService
from handwriting.services.charset import CharacterAccessPolicy
from handwriting.services.migrations import MIGRATIONS, apply_migrations
from handwriting.services.preferences import PreferencesService
from handwriting.services.ratings import RatingAggregator
from handwriting.services.sync_engine import RetryPolicy, SyncEngine
from handwriting.services.workflow import WorkflowPolicy

logger = logging.getLogger("handwriting")


class DataLayer:
    def __init__(
        self,
        persistence: PersistenceService,
        freshness_window_sec: Optional[float] = None,
        retry: Optional[RetryPolicy] = None,
        clock: Optional[Callable[[], float]] = None,
        migrations=MIGRATIONS,
    ):
        self.persistence = persistence
        self.store = ReplicaStore()
        self.notifier = Notifier()
        engine_kwargs = {"clock": clock} if clock is not None else {}
        self.sync = SyncEngine(
            self.store, persistence, self.notifier,
            freshness_window_sec=freshness_window_sec, retry=retry, **engine_kwargs,
        )
        self.charset = CharacterAccessPolicy()
        self.ratings = RatingAggregator(self.store, self.sync)
        self.policy = WorkflowPolicy(self.store, self.sync, self.charset)
        self.accounts = AccountService(self.store, persistence, self.sync)
        self.preferences = PreferencesService(self.store, self.sync)
        self.migrations = migrations
        self.sync.add_rollback_listener(self.ratings.on_rollback)
        self._prepare_lock = asyncio.Lock()
        self._prepared_load = 0

    async def load(self, force: bool = False) -> Dataset:
        """
        Bulk load (TTL bounded, single flight). After each real network load
        the replica is prepared once: default settings, pending migrations,
        derived scores.
        """
        await self.sync.bulk_load(force=force)
        async with self._prepare_lock:
            if self._prepared_load != self.sync.load_count:
                self._prepared_load = self.sync.load_count
                self.preferences.ensure_defaults()
                await apply_migrations(self.store, self.sync, self.migrations)
                self.ratings.recompute_all()
        return self.store.to_dataset()

    def on_sync_notice(self, callback) -> None:
        """Subscribe to background push failures (SyncNotice)."""
        self.notifier.subscribe(SYNC_TOPIC, callback)

    async def drain(self) -> None:
        """Wait for every outstanding background push."""
        await self.sync.drain()
