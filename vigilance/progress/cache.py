import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace

from vigilance.progress.models import ProcessingSession


class ProgressCache:
    """In-process session snapshots keyed by session id.

    Each key has its own lock; ``locked`` holds it across a
    read-modify-write. Writers that skip the lock are last-write-wins.
    Snapshots are copied in and out so callers never share a mutable object.
    """

    def __init__(self) -> None:
        self._sessions: dict[str, ProcessingSession] = {}
        self._locks: dict[str, threading.RLock] = {}
        self._registry_lock = threading.Lock()

    def get(self, session_id: str) -> ProcessingSession | None:
        with self._registry_lock:
            session = self._sessions.get(session_id)
        return _copy(session) if session is not None else None

    def put(self, session: ProcessingSession) -> None:
        with self._registry_lock:
            self._sessions[session.id] = _copy(session)

    def discard(self, session_id: str) -> None:
        with self._registry_lock:
            self._sessions.pop(session_id, None)
            self._locks.pop(session_id, None)

    def __contains__(self, session_id: object) -> bool:
        with self._registry_lock:
            return session_id in self._sessions

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._sessions)

    @contextmanager
    def locked(self, session_id: str) -> Iterator[None]:
        with self._registry_lock:
            lock = self._locks.setdefault(session_id, threading.RLock())
        with lock:
            yield


def _copy(session: ProcessingSession) -> ProcessingSession:
    return replace(session, metadata=dict(session.metadata))
