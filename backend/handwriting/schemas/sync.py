# handwriting/schemas/sync.py
"""
Payload schemas exchanged with the persistence service.
Defines the bulk read payload and the "system" write actions.
"""
from typing import Any, Dict, List, Optional

from pydantic import Field

from handwriting.models import (
    AppSettings,
    CharacterSample,
    Rating,
    TargetType,
    User,
    WireModel,
    Work,
)


class Dataset(WireModel):
    """
    Response of the bulk read.
    Samples and works carry a denormalized ``userId`` even though the service
    stores them per user; users never carry secrets.
    """
    users: List[User] = Field(default_factory=list)
    samples: List[CharacterSample] = Field(default_factory=list)
    works: List[Work] = Field(default_factory=list)
    ratings: List[Rating] = Field(default_factory=list)
    settings: Optional[AppSettings] = None


class RatingPayload(WireModel):
    """Body of the ``saveRating`` action."""
    user_id: str
    target_id: str
    target_type: TargetType
    score: float
    target_user_id: Optional[str] = None  # Owner of the target, lets the service refresh its cached score


# Only these user fields are accepted by the ``updateUser`` action
USER_UPDATABLE_FIELDS = ("collectionVisibility", "role", "collectedWorkIds")


class UpdateUserPayload(WireModel):
    """Body of the ``updateUser`` action."""
    user_id: str
    updates: Dict[str, Any]


class ResetPasswordPayload(WireModel):
    """Body of the ``resetPassword`` action."""
    user_id: str
    new_password: str
