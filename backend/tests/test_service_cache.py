"""Tests for the immediate TTL cache, the story store and the repository read path."""
from typing import Callable

import pytest

from storybook.models.story import Story, StorySettings
from storybook.services.cache import StoryRepository, StoryStore, TTLStoryCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


class FakeTimer:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if not self.cancelled:
            self.callback()


class FakeScheduler:
    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer


def _story(story_id: str = "story-1", title: str = "A Story") -> Story:
    return Story(story_id=story_id, title=title, pages=[], settings=StorySettings())


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def cache(clock: FakeClock, scheduler: FakeScheduler) -> TTLStoryCache:
    return TTLStoryCache(ttl_seconds=600, clock=clock, scheduler=scheduler)


class TestTTLStoryCache:
    def test_get_before_expiry(self, cache: TTLStoryCache, clock: FakeClock) -> None:
        cache.put(_story())
        clock.now = 599
        assert cache.get("story-1") is not None

    def test_get_after_expiry_without_timer(self, cache: TTLStoryCache, clock: FakeClock) -> None:
        """Expiry is checked against the clock even if the timer never fired."""
        cache.put(_story())
        clock.now = 600
        assert cache.get("story-1") is None
        assert "story-1" not in cache

    def test_timer_evicts(self, cache: TTLStoryCache, scheduler: FakeScheduler) -> None:
        cache.put(_story())
        assert scheduler.timers[0].delay == 600
        scheduler.timers[0].fire()
        assert len(cache) == 0

    def test_consumed_on_read(self, cache: TTLStoryCache, scheduler: FakeScheduler) -> None:
        cache.put(_story())
        assert cache.get("story-1") is not None
        assert cache.get("story-1") is None
        assert scheduler.timers[0].cancelled

    def test_keep_on_read(self, clock: FakeClock, scheduler: FakeScheduler) -> None:
        cache = TTLStoryCache(clock=clock, scheduler=scheduler, consume_on_read=False)
        cache.put(_story())
        assert cache.get("story-1") is not None
        assert cache.get("story-1") is not None

    def test_reput_restarts_timer(
        self, cache: TTLStoryCache, clock: FakeClock, scheduler: FakeScheduler
    ) -> None:
        cache.put(_story(title="v1"))
        clock.now = 300
        cache.put(_story(title="v2"))
        assert scheduler.timers[0].cancelled

        # A stale callback from the first timer must not evict the new entry.
        scheduler.timers[0].callback()
        clock.now = 700
        story = cache.get("story-1")
        assert story is not None
        assert story.title == "v2"

    def test_one_timer_per_story(self, cache: TTLStoryCache, scheduler: FakeScheduler) -> None:
        cache.put(_story("a"))
        cache.put(_story("b"))
        scheduler.timers[0].fire()
        assert "a" not in cache
        assert "b" in cache

    def test_unknown_id(self, cache: TTLStoryCache) -> None:
        assert cache.get("missing") is None

    def test_delete_and_clear(self, cache: TTLStoryCache, scheduler: FakeScheduler) -> None:
        cache.put(_story("a"))
        cache.put(_story("b"))
        assert cache.delete("a") is True
        assert cache.delete("a") is False
        cache.clear()
        assert len(cache) == 0
        assert all(t.cancelled for t in scheduler.timers)


class TestStoryStore:
    def test_put_get_delete(self) -> None:
        store = StoryStore()
        store.put(_story())
        assert store.get("story-1") is not None
        assert [s.story_id for s in store.all()] == ["story-1"]
        assert store.delete("story-1") is True
        assert store.get("story-1") is None


class TestStoryRepository:
    @pytest.fixture
    def repository(self, cache: TTLStoryCache) -> StoryRepository:
        return StoryRepository(immediate=cache, store=StoryStore())

    def test_immediate_read_then_store(self, repository: StoryRepository) -> None:
        repository.put(_story())
        assert repository.get("story-1") is not None
        # Immediate entry was consumed; the store still answers.
        assert "story-1" not in repository.immediate
        assert repository.get("story-1") is not None

    def test_expired_immediate_falls_back_to_store(
        self, repository: StoryRepository, clock: FakeClock
    ) -> None:
        repository.put(_story())
        clock.now = 10_000
        assert repository.get("story-1") is not None

    def test_not_persisted_expires(self, repository: StoryRepository, clock: FakeClock) -> None:
        repository.put(_story(), persist=False)
        clock.now = 10_000
        assert repository.get("story-1") is None

    def test_missing_returns_none(self, repository: StoryRepository) -> None:
        assert repository.get("nope") is None

    def test_delete_removes_both(self, repository: StoryRepository) -> None:
        repository.put(_story())
        assert repository.delete("story-1") is True
        assert repository.get("story-1") is None
        assert repository.delete("story-1") is False
