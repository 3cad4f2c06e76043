"""
Authorization & Workflow Policy

Gatekeeps every sample and work mutation by role, ownership and state, owns
the work publication workflow, and filters every listing through the read
visibility rules. All checks run before the replica is touched; an operation
either raises or is applied in full.

Role capabilities:
- admin: no sample creation; mutates only its own public samples; creates
  auto-published works; edits public or own works; deletes any work; reviews.
- user: creates and mutates own samples and works (published public works
  are locked, see publication.py).
- guest / anonymous: read only.
"""
import logging
from typing import Dict, List, Optional, Union

from handwriting.core.channels import SyncChannel
from handwriting.core.errors import (
    ImmutabilityError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from handwriting.core.replica import ReplicaStore
from handwriting.core.session import Session, require_admin, require_member, resolve_user
from handwriting.models import (
    CharacterSample,
    Role,
    User,
    Visibility,
    Work,
    WorkStatus,
    new_id,
    now_ms,
)
from handwriting.services import publication
from handwriting.services.charset import CharacterAccessPolicy
from handwriting.services.visibility import sample_visible, work_visible

logger = logging.getLogger("handwriting")


class WorkflowPolicy:
    def __init__(self, store: ReplicaStore, sync, charset: Optional[CharacterAccessPolicy] = None):
        self.store = store
        self.sync = sync
        self.charset = charset or CharacterAccessPolicy()

    # ==========================================================================
    # Samples
    # ==========================================================================
    def _check_sample_mutation(self, user: User, sample: CharacterSample) -> None:
        if user.role == Role.ADMIN:
            if sample.user_id != user.id or sample.visibility != Visibility.PUBLIC:
                raise PermissionDeniedError(
                    "FORBIDDEN_ADMIN_SCOPE", "Administrators may only change their own public samples")
        elif sample.user_id != user.id:
            raise PermissionDeniedError("FORBIDDEN_NOT_OWNER", "Permission denied: not the owner of this sample")

    def save_sample(self, session: Session, sample: Union[CharacterSample, dict]) -> CharacterSample:
        """
        Create or update a sample.

        The owner is stamped from the session on create and kept on update;
        the derived score is never taken from the caller.

        Raises:
            PermissionDeniedError: guest, non-owner, or admin creating a sample
            ValidationError (SAMPLE_INVALID): malformed record
            ValidationError (CHAR_NOT_ALLOWED): character outside the allowed set
        """
        user = require_member(session, self.store)
        if isinstance(sample, dict):
            try:
                sample = CharacterSample.model_validate(sample)
            except ValueError as exc:
                raise ValidationError("SAMPLE_INVALID", str(exc)) from exc
        existing = self.store.get_sample(sample.id)
        if existing is None:
            if user.role != Role.USER:
                raise PermissionDeniedError("FORBIDDEN_ROLE", "Only contributors can create samples")
            owner_id, created_at, score = user.id, sample.created_at, None
        else:
            self._check_sample_mutation(user, existing)
            owner_id, created_at, score = existing.user_id, existing.created_at, existing.score
        if not self.charset.is_allowed(sample.char):
            raise ValidationError("CHAR_NOT_ALLOWED", f"Character {sample.char!r} is not in the allowed set")

        record = sample.model_copy(deep=True, update={
            "user_id": owner_id,
            "created_at": created_at,
            "score": score,
        })
        self.sync.commit(SyncChannel.samples(owner_id), lambda: self.store.put_sample(record))
        return record.clone()

    def delete_sample(self, session: Session, sample_id: str) -> None:
        user = require_member(session, self.store)
        existing = self.store.get_sample(sample_id)
        if existing is None:
            raise NotFoundError("SAMPLE_NOT_FOUND", "Sample not found")
        self._check_sample_mutation(user, existing)
        self.sync.commit(SyncChannel.samples(existing.user_id), lambda: self.store.remove_sample(sample_id))

    def _visible_samples(self, session: Session) -> List[CharacterSample]:
        viewer = resolve_user(session, self.store)
        return [s for s in self.store.all_samples()
                if sample_visible(viewer, s, self.store.get_user(s.user_id))]

    def get_sample(self, session: Session, sample_id: str) -> CharacterSample:
        sample = self.store.get_sample(sample_id)
        viewer = resolve_user(session, self.store)
        if sample is None or not sample_visible(viewer, sample, self.store.get_user(sample.user_id)):
            raise NotFoundError("SAMPLE_NOT_FOUND", "Sample not found")
        return sample.clone()

    def get_samples_by_char(self, session: Session, char: str) -> List[CharacterSample]:
        """Visible samples of one character, newest first."""
        samples = [s for s in self._visible_samples(session) if s.char == char]
        samples.sort(key=lambda s: s.created_at, reverse=True)
        return [s.clone() for s in samples]

    def get_my_samples(self, session: Session) -> List[CharacterSample]:
        user = resolve_user(session, self.store)
        if user is None:
            return []
        samples = sorted(self.store.samples_of(user.id), key=lambda s: s.created_at, reverse=True)
        return [s.clone() for s in samples]

    def get_collected_chars(self, session: Session) -> List[str]:
        """Distinct characters with at least one visible sample, sorted."""
        return sorted({s.char for s in self._visible_samples(session)})

    def get_collected_samples_map(self, session: Session) -> Dict[str, CharacterSample]:
        """Character -> its latest visible sample."""
        latest: Dict[str, CharacterSample] = {}
        for s in sorted(self._visible_samples(session), key=lambda s: s.created_at):
            latest[s.char] = s
        return {char: s.clone() for char, s in latest.items()}

    # ==========================================================================
    # Works
    # ==========================================================================
    def _check_char_styles(self, work: Work) -> None:
        # Ids of samples deleted since are tolerated; other users' samples are not
        for position, sample_id in work.char_styles.items():
            sample = self.store.get_sample(sample_id)
            if sample is not None and sample.user_id != work.user_id:
                raise ValidationError(
                    "CHAR_STYLE_FOREIGN_SAMPLE",
                    f"Position {position} uses a sample that belongs to another user",
                )

    def save_work(self, session: Session, work: Union[Work, dict]) -> Work:
        """
        Create or update a work and run it through the publication workflow.

        Create: private -> published; public by a contributor -> pending;
        public by an admin -> published. Caller supplied status is ignored.

        Raises:
            PermissionDeniedError: guest, non-owner, admin on a private foreign work
            ImmutabilityError (WORK_PUBLISHED_IMMUTABLE): owner changing a locked work's text
            ValidationError (WORK_INVALID / CHAR_STYLE_FOREIGN_SAMPLE)
        """
        user = require_member(session, self.store)
        if isinstance(work, dict):
            try:
                work = Work.model_validate(work)
            except ValueError as exc:
                raise ValidationError("WORK_INVALID", str(exc)) from exc
        existing = self.store.get_work(work.id)
        now = now_ms()

        if existing is None:
            record = work.model_copy(deep=True, update={
                "user_id": user.id,
                "status": publication.initial_status(work.visibility, user.role),
                "score": None,
                "author_deleted": False,
                "updated_at": now,
            })
        else:
            if user.role == Role.ADMIN:
                if existing.visibility != Visibility.PUBLIC and existing.user_id != user.id:
                    raise PermissionDeniedError(
                        "FORBIDDEN_ADMIN_SCOPE", "Administrators may only edit public or their own works")
            else:
                if existing.user_id != user.id:
                    raise PermissionDeniedError("FORBIDDEN_NOT_OWNER", "Permission denied: not the owner of this work")
                publication.check_owner_update(existing, work)
            record = work.model_copy(deep=True, update={
                "user_id": existing.user_id,
                "status": publication.status_after_update(existing, work.visibility, user.role),
                "score": existing.score,
                "author_deleted": existing.author_deleted,
                "origin_work_id": existing.origin_work_id,
                "created_at": existing.created_at,
                "updated_at": now,
            })
        self._check_char_styles(record)

        self.sync.commit(SyncChannel.works(record.user_id), lambda: self.store.put_work(record))
        if record.status == WorkStatus.PENDING:
            logger.info("[workflow] work %s submitted for review by %s", record.id, user.username)
        return record.clone()

    def delete_work(self, session: Session, work_id: str) -> None:
        """
        Admins may delete any work. Owners may delete anything except a work
        that is public and published.

        Raises:
            ImmutabilityError (WORK_PUBLISHED_UNDELETABLE)
        """
        user = require_member(session, self.store)
        existing = self.store.get_work(work_id)
        if existing is None:
            raise NotFoundError("WORK_NOT_FOUND", "Work not found")
        if user.role != Role.ADMIN:
            if existing.user_id != user.id:
                raise PermissionDeniedError("FORBIDDEN_NOT_OWNER", "Permission denied: not the owner of this work")
            if publication.is_locked(existing):
                raise ImmutabilityError("WORK_PUBLISHED_UNDELETABLE", "Published public works cannot be deleted")
        self.sync.commit(SyncChannel.works(existing.user_id), lambda: self.store.remove_work(work_id))

    def approve_work(self, session: Session, work_id: str, approved: bool) -> Work:
        """Admin review: pending -> published (approved) or rejected."""
        require_admin(session, self.store)
        existing = self.store.get_work(work_id)
        if existing is None:
            raise NotFoundError("WORK_NOT_FOUND", "Work not found")
        record = existing.model_copy(deep=True, update={
            "status": publication.moderate(existing.status, approved),
            "updated_at": now_ms(),
        })
        self.sync.commit(SyncChannel.works(existing.user_id), lambda: self.store.put_work(record))
        return record.clone()

    def collect_work(self, session: Session, work_id: str) -> Work:
        """
        Copy a public, published work into the session user's own works.

        The copy is a new private work (published, not refined) pointing back at
        its source through ``origin_work_id``; sample styling is not carried
        over because the samples belong to the source's owner. The source id is
        added to the collector's ``collected_work_ids``.
        """
        user = require_member(session, self.store)
        source = self.store.get_work(work_id)
        if source is None or not work_visible(user, source, self.store.get_user(source.user_id)):
            raise NotFoundError("WORK_NOT_FOUND", "Work not found")
        if not publication.is_locked(source):
            raise PermissionDeniedError("WORK_NOT_COLLECTABLE", "Only published public works can be collected")

        now = now_ms()
        clone = Work(
            id=new_id(),
            user_id=user.id,
            title=source.title,
            author=source.author,
            content=source.content,
            layout=source.layout,
            grid_type=source.grid_type,
            visibility=Visibility.PRIVATE,
            status=WorkStatus.PUBLISHED,
            is_refined=False,
            origin_work_id=source.id,
            created_at=now,
            updated_at=now,
        )
        self.sync.commit(SyncChannel.works(user.id), lambda: self.store.put_work(clone))

        if source.id not in user.collected_work_ids:
            updated = user.model_copy(deep=True, update={
                "collected_work_ids": user.collected_work_ids + [source.id],
            })
            self.sync.commit(SyncChannel.user(user.id), lambda: self.store.put_user(updated))
        return clone.clone()

    def get_work(self, session: Session, work_id: str) -> Work:
        work = self.store.get_work(work_id)
        viewer = resolve_user(session, self.store)
        if work is None or not work_visible(viewer, work, self.store.get_user(work.user_id)):
            raise NotFoundError("WORK_NOT_FOUND", "Work not found")
        return work.clone()

    def get_works(self, session: Session) -> List[Work]:
        """All works visible to the session, newest first."""
        viewer = resolve_user(session, self.store)
        works = [w for w in self.store.all_works()
                 if work_visible(viewer, w, self.store.get_user(w.user_id))]
        works.sort(key=lambda w: w.created_at, reverse=True)
        return [w.clone() for w in works]

    def get_my_works(self, session: Session) -> List[Work]:
        user = resolve_user(session, self.store)
        if user is None:
            return []
        works = sorted(self.store.works_of(user.id), key=lambda w: w.created_at, reverse=True)
        return [w.clone() for w in works]

    def get_pending_works(self, session: Session) -> List[Work]:
        """Moderation queue, oldest first (admin only)."""
        require_admin(session, self.store)
        works = self.store.filter_works(
            lambda w: w.visibility == Visibility.PUBLIC and w.status == WorkStatus.PENDING)
        works.sort(key=lambda w: w.created_at)
        return [w.clone() for w in works]
