"""Memoize projection runs by input fingerprint."""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from typing import Callable

from backend.core.projection import ProjectionResult, run_projection
from backend.models import ProjectionInputs

logger = logging.getLogger(__name__)


class ProjectionCache:
    """Small LRU of projection results, owned by whoever serves projections.

    Runs are pure, so a result can be reused for any inputs with the same
    fingerprint. ``maxsize=0`` disables caching.
    """

    def __init__(
        self,
        maxsize: int = 128,
        run: Callable[[ProjectionInputs], ProjectionResult] = run_projection,
    ):
        self.maxsize = maxsize
        self._run = run
        self._entries: "OrderedDict[str, ProjectionResult]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        return len(self._entries)

    def get_or_compute(self, inputs: ProjectionInputs) -> ProjectionResult:
        key = inputs.fingerprint()
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
                self.hits += 1
                return self._entries[key]
            self.misses += 1

        result = self._run(inputs)
        if self.maxsize <= 0:
            return result

        with self._lock:
            self._entries[key] = result
            self._entries.move_to_end(key)
            while len(self._entries) > self.maxsize:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("evicted projection %s", evicted[:12])
        return result

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
