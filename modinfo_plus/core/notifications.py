"""
Bounded, append-only log of notifications about mods.
"""

import logging

from modinfo_plus.models.mods import Notification
from modinfo_plus.storage import codecs
from modinfo_plus.storage.store import NOTIFICATIONS_KEY, PersistentStore

log = logging.getLogger(__name__)

DEFAULT_MAX_NOTIFICATIONS = 50


class NotificationLog:
    """
    Notifications in the order they were appended.

    Once more than ``max_size`` entries are held the oldest are dropped.
    Every mutation is persisted immediately.
    """

    def __init__(
        self, store: PersistentStore, max_size: int = DEFAULT_MAX_NOTIFICATIONS
    ):
        if max_size < 1:
            raise ValueError("max_size must be at least 1")
        self.store = store
        self.max_size = max_size
        self._entries: list[Notification] = []

    def load(self) -> None:
        self._entries = codecs.load_collection(
            self.store, NOTIFICATIONS_KEY, codecs.NOTIFICATIONS
        )
        if self._truncate():
            self.save()
        log.debug(f"Loaded {len(self._entries)} notifications.")

    def save(self) -> bool:
        return codecs.save_collection(
            self.store, NOTIFICATIONS_KEY, codecs.NOTIFICATIONS, self._entries
        )

    def _truncate(self) -> int:
        overflow = len(self._entries) - self.max_size
        if overflow <= 0:
            return 0
        del self._entries[:overflow]
        return overflow

    def append(self, notification: Notification) -> None:
        self._entries.append(notification)
        if evicted := self._truncate():
            log.debug(f"Evicted {evicted} old notifications.")
        self.save()

    def extend(self, notifications: list[Notification]) -> None:
        """Appends several notifications with a single write."""
        if not notifications:
            return
        self._entries.extend(notifications)
        self._truncate()
        self.save()

    def mark_read(self, notification_id: str) -> bool:
        """Returns False if no notification has that id."""
        for entry in self._entries:
            if entry.id == notification_id:
                if not entry.read:
                    entry.read = True
                    self.save()
                return True
        return False

    def mark_all_read(self) -> int:
        changed = 0
        for entry in self._entries:
            if not entry.read:
                entry.read = True
                changed += 1
        if changed:
            self.save()
        return changed

    def unread_count(self) -> int:
        return sum(1 for entry in self._entries if not entry.read)

    def entries(self) -> list[Notification]:
        return list(self._entries)

    def newest_first(self) -> list[Notification]:
        return list(reversed(self._entries))

    def __len__(self) -> int:
        return len(self._entries)
