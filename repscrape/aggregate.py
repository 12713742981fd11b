"""Lock-guarded collection of users shared by every page handler."""

import threading
from typing import Callable

from repscrape.models import User


class UserAggregate:
    """
    Append-only user list plus running count, both behind one lock.
    capacity is the expected size (pages * users per page); it is not enforced.
    """

    def __init__(self, capacity: int = 0) -> None:
        self.capacity = capacity
        self._lock = threading.Lock()
        self._users: list[User] = []

    def append(self, user: User, on_added: Callable[[int], None] | None = None) -> int:
        """Append and return the new count. on_added(count) runs under the lock, so counts never go backwards."""
        with self._lock:
            self._users.append(user)
            count = len(self._users)
            if on_added is not None:
                on_added(count)
            return count

    def snapshot(self) -> list[User]:
        with self._lock:
            return list(self._users)

    @property
    def count(self) -> int:
        with self._lock:
            return len(self._users)

    def __len__(self) -> int:
        return self.count
