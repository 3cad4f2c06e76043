"""
One-shot, versioned data migrations.

Each migration runs once, when the settings record's ``data_version`` is below
the migration's version. The version bump is pushed only after every change
of the migration was persisted, so a failed migration is retried on the next
load and a finished one is never applied again.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Sequence

from handwriting.core.channels import SyncChannel
from handwriting.core.replica import ReplicaStore
from handwriting.models import AppSettings, Rating
from handwriting.services.ratings import MAX_SCORE, rating_payload

logger = logging.getLogger("handwriting")


@dataclass(frozen=True)
class Migration:
    version: int
    name: str
    apply: Callable[[ReplicaStore], List[Rating]]  # Mutates the replica, returns the changed ratings


def rescale_legacy_scores(store: ReplicaStore) -> List[Rating]:
    """Ratings saved on the old 100-point scale are brought down to 0-10."""
    changed = []
    for rating in store.all_ratings():
        if rating.score > MAX_SCORE:
            rescaled = rating.model_copy(update={"score": rating.score / 10})
            store.put_rating(rescaled)
            changed.append(rescaled)
    return changed


MIGRATIONS: Sequence[Migration] = (
    Migration(1, "rescale-legacy-100-point-scores", rescale_legacy_scores),
)


async def apply_migrations(store: ReplicaStore, sync, migrations: Sequence[Migration] = MIGRATIONS) -> List[int]:
    """Apply pending migrations in version order. Returns the versions applied."""
    applied = []
    for migration in sorted(migrations, key=lambda m: m.version):
        current = store.get_settings() or AppSettings()
        if migration.version <= current.data_version:
            continue
        channel = SyncChannel.ratings()
        snapshot = store.export_channel(channel)
        changed = migration.apply(store)
        if changed:
            results = await asyncio.gather(*[
                sync.push_slice(channel, rating_payload(store, r), snapshot=snapshot) for r in changed
            ])
            if not all(results):
                logger.warning("[migrate] %s failed, will retry on next load", migration.name)
                break
        bumped = current.model_copy(update={"data_version": migration.version})
        sync.commit(SyncChannel.settings(), lambda: store.put_settings(bumped))
        logger.info("[migrate] applied %s (v%d, %d ratings)", migration.name, migration.version, len(changed))
        applied.append(migration.version)
    return applied
