import threading
from contextlib import contextmanager
from typing import Iterator, Set

from marketplace.services.errors import OperationInProgress, ValidationError


class SessionContext:
    """
    The signed-in user for one client session.

    Passed explicitly into every core operation. Also tracks which actions are
    currently in flight so a second trigger of the same action is refused
    until the first one finishes.
    """

    def __init__(self, uid: str):
        if not uid or not str(uid).strip():
            raise ValidationError("Please log in first.")
        self.uid = str(uid)
        self._busy: Set[str] = set()
        self._lock = threading.Lock()

    def is_busy(self, action: str) -> bool:
        return action in self._busy

    @contextmanager
    def in_progress(self, action: str) -> Iterator[None]:
        with self._lock:
            if action in self._busy:
                raise OperationInProgress()
            self._busy.add(action)
        try:
            yield
        finally:
            with self._lock:
                self._busy.discard(action)

    def __repr__(self):
        return f"<SessionContext uid={self.uid}>"
