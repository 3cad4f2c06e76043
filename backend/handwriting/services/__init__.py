"""
Services Module

Components operating on the replica:
- Character Access Policy: allowed writing characters
- Workflow Policy: authorization, publication workflow, read visibility
- Rating Aggregator: rating upserts and derived scores
- Synchronization Engine: optimistic push, rollback, bulk load
- Accounts / Preferences / Migrations
"""
from .charset import CharacterAccessPolicy, gb2312_code
from .sync_engine import RetryPolicy, SyncEngine
from .ratings import RatingAggregator, mean_score
from .workflow import WorkflowPolicy
from .accounts import AccountService, validate_password, validate_username
from .preferences import PreferencesService
from .migrations import MIGRATIONS, Migration, apply_migrations

__all__ = [
    "CharacterAccessPolicy",
    "gb2312_code",
    "RetryPolicy",
    "SyncEngine",
    "RatingAggregator",
    "mean_score",
    "WorkflowPolicy",
    "AccountService",
    "validate_password",
    "validate_username",
    "PreferencesService",
    "MIGRATIONS",
    "Migration",
    "apply_migrations",
]
