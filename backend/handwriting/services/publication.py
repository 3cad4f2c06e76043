"""
Work publication state machine.

Private works are never moderated and are always published (the "draft"
state is equivalent to a private, active work). Public works by contributors
enter ``pending`` and an admin moves them to ``published`` or ``rejected``.
A public, published work is locked: its owner may restyle it but may not
change what it says.
"""
from typing import Dict, Tuple

from handwriting.core.errors import ImmutabilityError, ValidationError
from handwriting.models import Role, Visibility, Work, WorkStatus

# Fields an owner may not change once the work is public and published
LOCKED_FIELDS = ("content", "title", "author")

# (current status, approved) -> next status
MODERATION_TRANSITIONS: Dict[Tuple[WorkStatus, bool], WorkStatus] = {
    (WorkStatus.PENDING, True): WorkStatus.PUBLISHED,
    (WorkStatus.PENDING, False): WorkStatus.REJECTED,
}


def is_locked(work: Work) -> bool:
    return work.visibility == Visibility.PUBLIC and work.status == WorkStatus.PUBLISHED


def initial_status(visibility: Visibility, actor_role: Role) -> WorkStatus:
    """Status of a newly created work; whatever the caller supplied is ignored."""
    if visibility == Visibility.PRIVATE or actor_role == Role.ADMIN:
        return WorkStatus.PUBLISHED
    return WorkStatus.PENDING


def status_after_update(existing: Work, visibility: Visibility, actor_role: Role) -> WorkStatus:
    """
    Status after an accepted update.

    - admin: always published (public updates are forced to published)
    - owner, private (including a locked work taken private): published
    - owner, public and already published: stays published
    - owner, any other public update (pending, rejected, newly public): back to pending
    """
    if actor_role == Role.ADMIN or visibility == Visibility.PRIVATE:
        return WorkStatus.PUBLISHED
    if is_locked(existing):
        return WorkStatus.PUBLISHED
    return WorkStatus.PENDING


def check_owner_update(existing: Work, updated: Work) -> None:
    """
    Reject owner edits that would change a locked work's text.

    Raises:
        ImmutabilityError (WORK_PUBLISHED_IMMUTABLE)
    """
    if not is_locked(existing):
        return
    changed = [f for f in LOCKED_FIELDS if getattr(existing, f) != getattr(updated, f)]
    if changed:
        raise ImmutabilityError(
            "WORK_PUBLISHED_IMMUTABLE",
            f"Published public works cannot change their {', '.join(changed)}",
        )


def moderate(status: WorkStatus, approved: bool) -> WorkStatus:
    """
    Raises:
        ValidationError (WORK_NOT_PENDING): the work is not awaiting review
    """
    try:
        return MODERATION_TRANSITIONS[(WorkStatus(status), bool(approved))]
    except KeyError:
        raise ValidationError("WORK_NOT_PENDING", f"Only pending works can be reviewed (status={status})") from None
