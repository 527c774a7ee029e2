#!/usr/bin/env python3
"""
Refactor Gateway - Project cache

Keeps a single SourceModel alive between requests. Building a model means
opening a rope project, so it is reused until it is older than the TTL and
then rebuilt from scratch. Callers must acquire() once per request and keep
using that instance for the rest of the request.
"""

import asyncio
import logging
import time
from typing import Callable

from .config import DEFAULT_CACHE_TTL
from .model import SourceModel

logger = logging.getLogger(__name__)


class ProjectCache:
    def __init__(
        self,
        factory: Callable[[], SourceModel],
        ttl: float = DEFAULT_CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._factory = factory
        self._ttl = ttl
        self._clock = clock
        self._model: SourceModel | None = None
        self._created_at = 0.0
        self._lock = asyncio.Lock()
        self.generation = 0

    @property
    def model(self) -> SourceModel | None:
        """The live model, if any, without building or expiring it."""
        return self._model

    def is_fresh(self) -> bool:
        return self._model is not None and self._clock() < self._created_at + self._ttl

    async def acquire(self) -> SourceModel:
        """Return the cached model, rebuilding it when missing or expired.

        A factory failure propagates and leaves the slot empty, so the next
        call tries again. Callers arriving during a rebuild wait on the lock
        and share the new model.
        """
        async with self._lock:
            if self.is_fresh():
                return self._model

            reason = "expired" if self._model is not None else "empty"
            logger.info("Project cache miss (%s), building source model", reason)
            self._model = None
            # Opening a rope project is blocking I/O; keep the loop serving meanwhile
            model = await asyncio.to_thread(self._factory)
            self._model = model
            self._created_at = self._clock()
            self.generation += 1
            logger.info("Source model ready (generation %d, root %s)", self.generation, model.root)
            return model
