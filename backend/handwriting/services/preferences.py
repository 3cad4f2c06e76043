"""
Preferences: the singleton settings record.
Not authorization sensitive; any session may read or change it.
"""
from typing import Any, Dict

from pydantic.alias_generators import to_camel

from handwriting.core.channels import SyncChannel
from handwriting.core.errors import ValidationError
from handwriting.core.replica import ReplicaStore
from handwriting.models import AppSettings


class PreferencesService:
    def __init__(self, store: ReplicaStore, sync):
        self.store = store
        self.sync = sync

    def get_settings(self) -> AppSettings:
        current = self.store.get_settings()
        return current.clone() if current else AppSettings()

    def save_settings(self, updates: Dict[str, Any]) -> AppSettings:
        """Merge a partial update (snake_case or camelCase keys) into the settings record."""
        data = self.get_settings().model_dump(by_alias=True)
        for key, value in updates.items():
            data[to_camel(key) if key in AppSettings.model_fields else key] = value
        try:
            merged = AppSettings.model_validate(data)
        except ValueError as exc:
            raise ValidationError("SETTINGS_INVALID", str(exc)) from exc
        self.sync.commit(SyncChannel.settings(), lambda: self.store.put_settings(merged))
        return merged.clone()

    def ensure_defaults(self) -> bool:
        """Create and push the default record when none exists. Returns True if created."""
        if self.store.get_settings() is not None:
            return False
        self.sync.commit(SyncChannel.settings(), lambda: self.store.put_settings(AppSettings()))
        return True
