import threading

from vigilance.processor.exceptions import ProcessingCancelledError


class CancellationToken:
    """Cooperative cancellation flag for one file's processing task.

    Stages call ``raise_if_cancelled`` between units of work; backoff sleeps
    go through ``wait`` so a cancel wakes them immediately.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """Sleep up to *seconds*; return True if cancelled meanwhile."""
        return self._event.wait(seconds)

    def raise_if_cancelled(self, stage: str) -> None:
        if self._event.is_set():
            raise ProcessingCancelledError(f"Processing cancelled before {stage}")
