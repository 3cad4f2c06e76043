# handwriting/models/__init__.py
"""
Replica record models.
Exports all records for convenient imports throughout the package.

Models exported:
- User: de-identified account record (no credentials)
- CharacterSample: one handwritten character instance
- Work: composed text referencing samples
- Rating: one rater's score for a sample or work
- AppSettings: singleton UI preferences
"""
from .base import Visibility, WireModel, new_id, now_ms
from .user import User, Role
from .sample import CharacterSample
from .work import Work, WorkStatus, GridType, Layout, CharAdjustment
from .rating import Rating, TargetType
from .settings import AppSettings, Theme
