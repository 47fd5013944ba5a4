import threading
from collections.abc import Callable

from vigilance.logging.logger import Log
from vigilance.processor.models import Notice


class NoticeBoard:
    """Collects user-visible notices from concurrent file tasks."""

    def __init__(self, listener: Callable[[Notice], None] | None = None) -> None:
        self._notices: list[Notice] = []
        self._lock = threading.Lock()
        self._listener = listener

    def post(self, notice: Notice) -> None:
        with self._lock:
            self._notices.append(notice)
        if notice.is_error:
            Log.warning(f"{notice.title}: {notice.description}")
        else:
            Log.info(f"{notice.title}: {notice.description}")
        if self._listener is not None:
            self._listener(notice)

    @property
    def notices(self) -> list[Notice]:
        with self._lock:
            return list(self._notices)
