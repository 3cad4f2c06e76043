# handwriting/core/notices.py
"""
Notice board for user-visible, asynchronous messages.

Background pushes finish after the optimistic call already returned, so their
failures cannot be raised to the caller. They are published here instead and
whoever renders notifications (UI toast, CLI, test) subscribes to a topic.
"""
import logging
from dataclasses import dataclass
from typing import Callable, Dict, List

from handwriting.core.errors import SyncError

logger = logging.getLogger("handwriting")

SYNC_TOPIC = "sync"


@dataclass
class SyncNotice:
    """Published on the ``sync`` topic when a channel push failed."""
    channel: str
    error: SyncError
    rolled_back: bool = True

    @property
    def message(self) -> str:
        return self.error.message


class Notifier:
    """
    Topic based publish/subscribe for notices.

    Data structure:
    - _topics: Dict[topic_name, List[callback]]
    """
    def __init__(self):
        self._topics: Dict[str, List[Callable]] = {SYNC_TOPIC: []}

    def subscribe(self, topic: str, callback: Callable) -> None:
        subscribers = self._topics.setdefault(topic, [])
        if callback not in subscribers:
            subscribers.append(callback)

    def unsubscribe(self, topic: str, callback: Callable) -> None:
        subscribers = self._topics.get(topic, [])
        if callback in subscribers:
            subscribers.remove(callback)

    def publish(self, topic: str, notice) -> int:
        """
        Deliver a notice to every subscriber of a topic.

        Returns the number of subscribers that received it. A subscriber that
        raises is logged and skipped; delivery to the others continues.
        """
        delivered = 0
        for callback in list(self._topics.get(topic, [])):
            try:
                callback(notice)
                delivered += 1
            except Exception:
                logger.exception("[notices] subscriber %r failed on topic %s", callback, topic)
        return delivered
