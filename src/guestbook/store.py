"""
=============================================================================
MESSAGE STORE
=============================================================================

The guestbook's only shared state: an in-memory, newest-first list of
messages guarded by one readers-writer lock.

    insert("bob", "hi")                       snapshot()
          │                                        │
          ▼  write lock                            ▼  read lock
    ┌─────────────────────────────────────────────────────────────┐
    │  [ #3 bob "hi" ] [ #2 ann "hello" ] [ #1 System "Welcome…" ] │
    └─────────────────────────────────────────────────────────────┘
       ▲ index 0 is always the newest              ▲ seed

Guarantees:

    - ids are unique, strictly increasing, never reused; the first
      generated id follows the highest seeded id
    - snapshot() is a point-in-time copy: later inserts never show up in a
      list already handed out, and Message values are frozen
    - any number of snapshot() calls run together; insert() runs alone

Nothing is persisted. The store lives and dies with the process.

=============================================================================
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional, List

from .core.rwlock import ReadWriteLock


WELCOME_AUTHOR = "System"
WELCOME_CONTENT = "Welcome to the guestbook! Leave a note below."

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Message:
    """A single posted note."""

    id: int
    author: str
    content: str
    created: datetime

    def to_dict(self) -> dict:
        """
        JSON shape served by the API.

            {"id": 2, "author": "alice", "content": "hi",
             "created": "2026-10-18T12:00:00+00:00"}
        """
        return {
            "id": self.id,
            "author": self.author,
            "content": self.content,
            "created": self.created.isoformat(),
        }


class MessageStore:
    """
    Thread-safe, insert-only message collection.

    Args:
        seed: Initial messages, newest first. Ids must be unique.
        clock: Returns the timestamp for new messages (UTC now by default).

    Example:
        store = MessageStore.with_welcome()
        msg = store.insert("ann", "hello")   # msg.id == 2
        store.snapshot()[0] is msg            # True
    """

    def __init__(self, seed: Optional[Iterable[Message]] = None, clock: Optional[Clock] = None):
        self._clock = clock or utc_now
        self._lock = ReadWriteLock()
        self._messages: List[Message] = list(seed or ())

        ids = [m.id for m in self._messages]
        if len(ids) != len(set(ids)):
            raise ValueError("seed messages must have unique ids")
        self._next_id = max(ids, default=0) + 1

    @classmethod
    def with_welcome(cls, clock: Optional[Clock] = None) -> "MessageStore":
        """The store every server starts with: one welcome message, id 1."""
        clock = clock or utc_now
        welcome = Message(id=1, author=WELCOME_AUTHOR, content=WELCOME_CONTENT, created=clock())
        return cls(seed=[welcome], clock=clock)

    def snapshot(self) -> List[Message]:
        """Independent copy of every message, newest first."""
        with self._lock.read_locked():
            return list(self._messages)

    def insert(self, author: str, content: str) -> Message:
        """
        Store a new message at the front and return it.

        No validation happens here; handlers decide what is acceptable.
        """
        with self._lock.write_locked():
            message = Message(
                id=self._next_id,
                author=author,
                content=content,
                created=self._clock(),
            )
            self._next_id += 1
            self._messages.insert(0, message)
        return message

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._messages)
