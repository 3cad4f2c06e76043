"""
Rating Aggregator

Upserts rating events and keeps every target's cached ``score`` equal to the
mean of its ratings, rounded half up to one decimal. Scores are always
recomputed from the full rating set, never adjusted incrementally, so the
cached value cannot drift whatever the edit history.
"""
import math
from typing import Optional, Union

from handwriting.core.channels import ChannelKind, SyncChannel
from handwriting.core.errors import NotFoundError, ValidationError
from handwriting.core.replica import ReplicaStore
from handwriting.core.session import Session, require_member, resolve_user
from handwriting.models import Rating, TargetType, now_ms
from handwriting.models.rating import mean_score
from handwriting.schemas.sync import RatingPayload

MIN_SCORE = 0
MAX_SCORE = 10


def parse_target_type(value) -> TargetType:
    try:
        return TargetType(value)
    except ValueError:
        raise ValidationError("TARGET_TYPE_INVALID", f"Unknown target type: {value!r}") from None


def rating_payload(store: ReplicaStore, rating: Rating) -> dict:
    """Wire body of ``saveRating``; names the target's owner so its file score is refreshed too."""
    target = (store.get_sample(rating.target_id) if rating.target_type == TargetType.SAMPLE
              else store.get_work(rating.target_id))
    return RatingPayload(
        user_id=rating.user_id,
        target_id=rating.target_id,
        target_type=rating.target_type,
        score=rating.score,
        target_user_id=target.user_id if target else None,
    ).to_wire()


class RatingAggregator:
    def __init__(self, store: ReplicaStore, sync=None):
        self.store = store
        self.sync = sync

    def _target(self, target_id: str, target_type: TargetType):
        if target_type == TargetType.SAMPLE:
            return self.store.get_sample(target_id)
        return self.store.get_work(target_id)

    def save_rating(
        self,
        session: Session,
        target_id: str,
        target_type: Union[TargetType, str],
        score: float,
    ) -> Rating:
        """
        Record the session user's score for a sample or work.

        Raises:
            PermissionDeniedError: anonymous or guest session
            ValidationError (SCORE_OUT_OF_RANGE / TARGET_TYPE_INVALID)
            NotFoundError (TARGET_NOT_FOUND)
        """
        user = require_member(session, self.store)
        target_type = parse_target_type(target_type)
        if (isinstance(score, bool) or not isinstance(score, (int, float))
                or math.isnan(score) or not MIN_SCORE <= score <= MAX_SCORE):
            raise ValidationError("SCORE_OUT_OF_RANGE", f"Score must be between {MIN_SCORE} and {MAX_SCORE}")
        if self._target(target_id, target_type) is None:
            raise NotFoundError("TARGET_NOT_FOUND", f"No {target_type.value} with id {target_id}")

        rating = Rating(
            user_id=user.id,
            target_id=target_id,
            target_type=target_type,
            score=float(score),
            created_at=now_ms(),
        )

        def apply():
            self.store.put_rating(rating)
            self.recompute(target_id, target_type)

        self.sync.commit(SyncChannel.ratings(), apply, payload=rating_payload(self.store, rating))
        return rating.clone()

    def get_my_rating(
        self,
        session: Session,
        target_id: str,
        target_type: Union[TargetType, str],
    ) -> Optional[Rating]:
        """Pure lookup; None if the session has not rated the target."""
        user = resolve_user(session, self.store)
        if user is None:
            return None
        rating = self.store.get_rating((user.id, target_id, parse_target_type(target_type)))
        return rating.clone() if rating else None

    def recompute(self, target_id: str, target_type: TargetType) -> Optional[float]:
        """Re-scan all ratings of one target and write its mean onto the target."""
        score = mean_score(r.score for r in self.store.ratings_for(target_id, target_type))
        self.store.set_score(target_type, target_id, score)
        return score

    def recompute_all(self) -> None:
        for sample in self.store.all_samples():
            self.recompute(sample.id, TargetType.SAMPLE)
        for work in self.store.all_works():
            self.recompute(work.id, TargetType.WORK)

    def on_rollback(self, channel: SyncChannel) -> None:
        """Restore derived scores after a ratings, samples or works channel was rolled back."""
        if channel.kind == ChannelKind.RATINGS:
            self.recompute_all()
        elif channel.kind == ChannelKind.SAMPLES:
            for sample in self.store.samples_of(channel.user_id):
                self.recompute(sample.id, TargetType.SAMPLE)
        elif channel.kind == ChannelKind.WORKS:
            for work in self.store.works_of(channel.user_id):
                self.recompute(work.id, TargetType.WORK)
