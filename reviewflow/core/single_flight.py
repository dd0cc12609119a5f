"""Single-flight memoization for contexts shared across webhook deliveries.

Lifecycle of a key:

1. First call starts ``build()`` as a task and registers it as in flight.
2. Concurrent calls for the same key await that same task.
3. On success the value is memoized permanently and the in-flight entry is
   cleared; later calls return the memoized value without suspending.
4. On failure the in-flight entry is cleared and nothing is memoized, so the
   next call retries the build from scratch.

Callers are shielded from each other: cancelling one waiting caller does not
cancel the shared build.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Hashable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class SingleFlightCache(Generic[K, V]):
    """Per-key memo cache with at most one build in flight per key."""

    def __init__(self, name: str):
        self.name = name
        self._values: dict[K, V] = {}
        self._in_flight: dict[K, asyncio.Task] = {}

    def get(self, key: K) -> V | None:
        """Return the memoized value for *key* without building it."""
        return self._values.get(key)

    def is_building(self, key: K) -> bool:
        return key in self._in_flight

    def __contains__(self, key: object) -> bool:
        return key in self._values

    def __len__(self) -> int:
        return len(self._values)

    async def get_or_build(self, key: K, build: Callable[[], Awaitable[V]]) -> V:
        if key in self._values:
            return self._values[key]

        task = self._in_flight.get(key)
        if task is None:
            logger.debug("%s: building %r", self.name, key)
            task = asyncio.ensure_future(self._build(key, build))
            self._in_flight[key] = task
        else:
            logger.debug("%s: joining in-flight build of %r", self.name, key)

        return await asyncio.shield(task)

    async def _build(self, key: K, build: Callable[[], Awaitable[V]]) -> V:
        try:
            value = await build()
        except BaseException as exc:
            logger.warning("%s: build of %r failed: %s", self.name, key, exc)
            raise
        else:
            self._values[key] = value
            return value
        finally:
            self._in_flight.pop(key, None)
