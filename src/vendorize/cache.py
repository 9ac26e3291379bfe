from __future__ import annotations

import threading
from concurrent.futures import Future
from typing import Dict

from vendorize.model import Unit
from vendorize.resolver import UnitResolver, normalize_identifier


class ResolverCache:
    """Per-run memo of resolved units with single-flight lookups.

    Concurrent callers asking for the same identifier share one call into the
    wrapped resolver. Failures reach every waiter and are not cached.
    """

    def __init__(self, resolver: UnitResolver) -> None:
        self.resolver = resolver
        self._lock = threading.Lock()
        self._units: Dict[str, Unit] = {}
        self._inflight: Dict[str, Future[Unit]] = {}

    def __contains__(self, identifier: object) -> bool:
        if not isinstance(identifier, str):
            return False
        with self._lock:
            return normalize_identifier(identifier) in self._units

    def __len__(self) -> int:
        with self._lock:
            return len(self._units)

    def resolve(self, identifier: str) -> Unit:
        key = normalize_identifier(identifier)
        with self._lock:
            unit = self._units.get(key)
            if unit is not None:
                return unit
            pending = self._inflight.get(key)
            owner = pending is None
            if pending is None:
                pending = Future()
                self._inflight[key] = pending
        if not owner:
            return pending.result()
        try:
            unit = self.resolver.resolve(key)
        except BaseException as exc:
            with self._lock:
                del self._inflight[key]
            pending.set_exception(exc)
            raise
        with self._lock:
            self._units[key] = unit
            del self._inflight[key]
        pending.set_result(unit)
        return unit
