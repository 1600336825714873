"""
Unit Tests - Cache Invalidation
"""
from webhub.serving.cache import CacheManager, invalidate_after_commit


class RecordingSession:
    def __init__(self, events):
        self.events = events

    async def commit(self):
        self.events.append("commit")


class RecordingCache(CacheManager):
    def __init__(self, namespace, events):
        super().__init__(namespace)
        self.events = events

    async def invalidate_all(self) -> int:
        self.events.append(f"invalidate:{self.namespace}")
        return 0


class TestInvalidateAfterCommit:
    """Cached aggregates are cleared only once the write is durable"""

    async def test_commit_precedes_invalidation(self):
        events = []

        await invalidate_after_commit(
            RecordingSession(events),
            RecordingCache("stats", events),
            RecordingCache("tags", events),
        )

        assert events == ["commit", "invalidate:stats", "invalidate:tags"]

    async def test_without_redis_is_a_noop(self):
        events = []

        await invalidate_after_commit(RecordingSession(events), CacheManager("stats"))

        assert events == ["commit"]
