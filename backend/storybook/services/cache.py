"""StoryCache: two-tier in-memory story storage.

- TTLStoryCache: short-lived "immediate" cache bridging story creation and the
  first read. Each entry gets its own eviction timer.
- StoryStore: long-lived lookup store, no automatic eviction.
- StoryRepository: the read path (immediate first, then the store).
"""
import threading
import time
from typing import Callable, Optional, Protocol

from storybook.core.logging import setup_logging
from storybook.models.story import Story

logger = setup_logging("cache")

DEFAULT_TTL_SECONDS = 10 * 60


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], TimerHandle]


def threading_scheduler(delay: float, callback: Callable[[], None]) -> TimerHandle:
    """Run `callback` after `delay` seconds on a daemon timer thread."""
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    timer.start()
    return timer


class TTLStoryCache:
    """Immediate cache with per-entry time-to-live.

    `get` also checks expiry against the clock, so a late timer never lets
    an expired story through.
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        scheduler: Scheduler = threading_scheduler,
        consume_on_read: bool = True,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.clock = clock
        self.scheduler = scheduler
        self.consume_on_read = consume_on_read
        self._entries: dict[str, tuple[Story, float]] = {}
        self._timers: dict[str, TimerHandle] = {}
        self._lock = threading.Lock()

    def put(self, story: Story) -> None:
        """Insert or replace `story`, restarting its eviction timer."""
        story_id = story.story_id
        expires_at = self.clock() + self.ttl_seconds
        with self._lock:
            previous = self._timers.pop(story_id, None)
            self._entries[story_id] = (story, expires_at)
        if previous is not None:
            previous.cancel()
        timer = self.scheduler(self.ttl_seconds, lambda: self._expire(story_id, expires_at))
        with self._lock:
            self._timers[story_id] = timer
        logger.debug("Cached story for immediate access", extra={"story_id": story_id})

    def get(self, story_id: str) -> Optional[Story]:
        """Return the story if present and unexpired; consumed when configured."""
        with self._lock:
            entry = self._entries.get(story_id)
            if entry is None:
                return None
            story, expires_at = entry
            expired = self.clock() >= expires_at
            if expired or self.consume_on_read:
                del self._entries[story_id]
                timer = self._timers.pop(story_id, None)
            else:
                timer = None
        if timer is not None:
            timer.cancel()
        if expired:
            logger.debug("Immediate cache entry expired", extra={"story_id": story_id})
            return None
        return story

    def delete(self, story_id: str) -> bool:
        with self._lock:
            removed = self._entries.pop(story_id, None) is not None
            timer = self._timers.pop(story_id, None)
        if timer is not None:
            timer.cancel()
        return removed

    def clear(self) -> None:
        with self._lock:
            timers = list(self._timers.values())
            self._entries.clear()
            self._timers.clear()
        for timer in timers:
            timer.cancel()

    def __contains__(self, story_id: str) -> bool:
        with self._lock:
            return story_id in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def _expire(self, story_id: str, expires_at: float) -> None:
        # A re-put replaces the entry; only evict the generation this timer belongs to.
        with self._lock:
            entry = self._entries.get(story_id)
            if entry is None or entry[1] != expires_at:
                return
            del self._entries[story_id]
            self._timers.pop(story_id, None)
        logger.info("Evicted story from immediate cache", extra={"story_id": story_id})


class StoryStore:
    """Long-lived lookup store bounded only by process lifetime."""

    def __init__(self) -> None:
        self._stories: dict[str, Story] = {}
        self._lock = threading.Lock()

    def put(self, story: Story) -> None:
        with self._lock:
            self._stories[story.story_id] = story
            size = len(self._stories)
        logger.debug("Stored story (%d total)", size, extra={"story_id": story.story_id})

    def get(self, story_id: str) -> Optional[Story]:
        with self._lock:
            return self._stories.get(story_id)

    def delete(self, story_id: str) -> bool:
        with self._lock:
            return self._stories.pop(story_id, None) is not None

    def all(self) -> list[Story]:
        with self._lock:
            return list(self._stories.values())

    def clear(self) -> None:
        with self._lock:
            self._stories.clear()


class StoryRepository:
    """Read path over both tiers.

    `get` returns None when neither tier has the story; callers decide what
    "not found" means for them.
    """

    def __init__(
        self,
        immediate: Optional[TTLStoryCache] = None,
        store: Optional[StoryStore] = None,
    ) -> None:
        self.immediate = immediate if immediate is not None else TTLStoryCache()
        self.store = store if store is not None else StoryStore()

    def put(self, story: Story, persist: bool = True) -> None:
        self.immediate.put(story)
        if persist:
            self.store.put(story)

    def get(self, story_id: str) -> Optional[Story]:
        story = self.immediate.get(story_id)
        if story is not None:
            return story
        return self.store.get(story_id)

    def delete(self, story_id: str) -> bool:
        removed_immediate = self.immediate.delete(story_id)
        removed_stored = self.store.delete(story_id)
        return removed_immediate or removed_stored
