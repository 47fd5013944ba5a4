import threading

from vigilance.progress.cache import ProgressCache
from vigilance.progress.models import ProcessingSession, SessionStatus


def _session(completed: int = 0) -> ProcessingSession:
    return ProcessingSession(
        id="s1",
        document_id="f1",
        current_step="initialized",
        total_steps=5,
        completed_steps=completed,
        status=SessionStatus.RUNNING,
        last_checkpoint="initialized",
        metadata={"k": "v"},
    )


class TestProgressCache:
    def test_put_and_get_copy(self) -> None:
        cache = ProgressCache()
        session = _session()
        cache.put(session)
        session.metadata["k"] = "changed"

        loaded = cache.get("s1")
        assert loaded is not None
        assert loaded.metadata == {"k": "v"}
        loaded.metadata["k"] = "mutated"
        assert cache.get("s1").metadata == {"k": "v"}  # type: ignore[union-attr]

    def test_missing_key(self) -> None:
        cache = ProgressCache()
        assert cache.get("missing") is None
        assert "missing" not in cache

    def test_discard(self) -> None:
        cache = ProgressCache()
        cache.put(_session())
        cache.discard("s1")
        assert len(cache) == 0

    def test_locked_serializes_read_modify_write(self) -> None:
        cache = ProgressCache()
        cache.put(_session())

        def bump() -> None:
            for _ in range(200):
                with cache.locked("s1"):
                    current = cache.get("s1")
                    assert current is not None
                    current.completed_steps += 1
                    cache.put(current)

        threads = [threading.Thread(target=bump) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert cache.get("s1").completed_steps == 800  # type: ignore[union-attr]

    def test_locked_is_reentrant(self) -> None:
        cache = ProgressCache()
        with cache.locked("s1"):
            with cache.locked("s1"):
                cache.put(_session())
        assert "s1" in cache
