"""
Read visibility as explicit access states.

Each read path classifies (viewer, record, owner) into exactly one access
state; visibility is a lookup in an exhaustive table, so every allowed and
disallowed case can be enumerated and tested on its own.
"""
from enum import Enum
from typing import Dict, Optional

from handwriting.models import (
    CharacterSample,
    Role,
    User,
    Visibility,
    Work,
    WorkStatus,
)


class SampleAccess(str, Enum):
    OWNER = "owner"                            # viewer owns the sample
    ADMIN_PUBLIC = "admin_public"              # admin-owned sample marked public
    REFINED_COLLECTION = "refined_collection"  # refined sample of a user with a public collection
    HIDDEN = "hidden"


class WorkAccess(str, Enum):
    OWNER = "owner"                            # viewer owns the work
    PUBLISHED = "published"                    # public and published
    REFINED_COLLECTION = "refined_collection"  # private refined work of a user with a public collection
    MODERATION = "moderation"                  # public work awaiting review, viewer is admin
    HIDDEN = "hidden"


SAMPLE_VISIBLE: Dict[SampleAccess, bool] = {
    SampleAccess.OWNER: True,
    SampleAccess.ADMIN_PUBLIC: True,
    SampleAccess.REFINED_COLLECTION: True,
    SampleAccess.HIDDEN: False,
}

WORK_VISIBLE: Dict[WorkAccess, bool] = {
    WorkAccess.OWNER: True,
    WorkAccess.PUBLISHED: True,
    WorkAccess.REFINED_COLLECTION: True,
    WorkAccess.MODERATION: True,
    WorkAccess.HIDDEN: False,
}


def classify_sample(viewer: Optional[User], sample: CharacterSample, owner: Optional[User]) -> SampleAccess:
    """Resolve in priority order: ownership, admin public, refined public collection."""
    if viewer is not None and sample.user_id == viewer.id:
        return SampleAccess.OWNER
    if owner is None:
        return SampleAccess.HIDDEN
    if owner.role == Role.ADMIN and sample.visibility == Visibility.PUBLIC:
        return SampleAccess.ADMIN_PUBLIC
    if (owner.role == Role.USER
            and owner.collection_visibility == Visibility.PUBLIC
            and sample.is_refined):
        return SampleAccess.REFINED_COLLECTION
    return SampleAccess.HIDDEN


def classify_work(viewer: Optional[User], work: Work, owner: Optional[User]) -> WorkAccess:
    if viewer is not None and work.user_id == viewer.id:
        return WorkAccess.OWNER
    if work.visibility == Visibility.PUBLIC and work.status == WorkStatus.PUBLISHED:
        return WorkAccess.PUBLISHED
    if (work.visibility == Visibility.PRIVATE
            and work.is_refined
            and owner is not None
            and owner.collection_visibility == Visibility.PUBLIC):
        return WorkAccess.REFINED_COLLECTION
    if (viewer is not None
            and viewer.role == Role.ADMIN
            and work.visibility == Visibility.PUBLIC
            and work.status == WorkStatus.PENDING):
        return WorkAccess.MODERATION
    return WorkAccess.HIDDEN


def sample_visible(viewer: Optional[User], sample: CharacterSample, owner: Optional[User]) -> bool:
    return SAMPLE_VISIBLE[classify_sample(viewer, sample, owner)]


def work_visible(viewer: Optional[User], work: Work, owner: Optional[User]) -> bool:
    return WORK_VISIBLE[classify_work(viewer, work, owner)]
