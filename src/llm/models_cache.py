"""TTL cache for the OpenRouter model listing.

The cache is an explicitly owned object (one per app/CLI process) with an injected clock, so expiry
is deterministic in tests. It stores a single list + timestamp pair; readers get the current list
reference, and a refresh swaps both under one lock.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from typing import Awaitable, Callable

from src.llm.schema import ModelInfo

logger = logging.getLogger(__name__)

DEFAULT_TTL_S = 12 * 60 * 60

Fetcher = Callable[[], Awaitable[list[ModelInfo]]]
Clock = Callable[[], float]


class ModelsCache:
    """Single-entry cache of the model listing, valid for `ttl_s` seconds."""

    def __init__(self, *, ttl_s: float = DEFAULT_TTL_S, clock: Clock = time.monotonic) -> None:
        if ttl_s <= 0:
            raise ValueError("ttl_s must be positive")
        self._ttl_s = ttl_s
        self._clock = clock
        self._models: list[ModelInfo] = []
        self._fetched_at: float | None = None
        self._lock = asyncio.Lock()
        self._background: asyncio.Task[None] | None = None

    @property
    def models(self) -> list[ModelInfo]:
        return self._models

    def is_fresh(self) -> bool:
        if self._fetched_at is None or not self._models:
            return False
        return self._clock() - self._fetched_at < self._ttl_s

    def invalidate(self) -> None:
        """Force the next `get()` to refetch (manual refresh)."""

        self._fetched_at = None

    def model_ids(self) -> list[str]:
        return [model.id for model in self._models]

    def find(self, model_id: str) -> ModelInfo | None:
        for model in self._models:
            if model.id == model_id:
                return model
        return None

    async def get(self, fetch: Fetcher) -> list[ModelInfo]:
        """Return the cached listing, refetching through `fetch` when stale or empty.

        Fetch errors propagate and leave the previous entry in place.
        """

        if self.is_fresh():
            return self._models

        async with self._lock:
            # Another caller may have refreshed while we waited for the lock.
            if self.is_fresh():
                return self._models
            models = await fetch()
            self._models = list(models)
            self._fetched_at = self._clock()
            logger.info("models cache refreshed count=%d", len(self._models))
            return self._models

    def refresh_in_background(self, fetch: Fetcher) -> asyncio.Task[None]:
        """Start a fire-and-forget refresh; failures are logged, never raised."""

        async def _run() -> None:
            try:
                await self.get(fetch)
            except Exception:
                logger.exception("background models refresh failed")

        self._background = asyncio.create_task(_run())
        return self._background

    async def stop_background(self) -> None:
        """Cancel a running background refresh and wait for it to finish."""

        task, self._background = self._background, None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task
