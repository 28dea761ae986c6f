from __future__ import annotations

import logging
import queue
import threading
import time
from concurrent.futures import Future
from typing import Any, Callable

logger = logging.getLogger(__name__)

_STOP = object()


class MemoryStore:
    """In-process key/value store with per-key TTL.

    The map is owned by a single daemon thread. Every public call posts a
    command on the queue and blocks on a reply future, so callers on any thread
    never touch the map directly.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, name: str = "memory-store"):
        self._clock = clock
        self._inbox: queue.Queue = queue.Queue()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self._closed = False
        self._thread.start()

    def _run(self) -> None:
        data: dict[str, tuple[Any, float | None]] = {}
        while True:
            item = self._inbox.get()
            if item is _STOP:
                break
            op, args, reply = item
            try:
                reply.set_result(self._apply(data, op, args))
            except Exception as e:
                reply.set_exception(e)

    def _alive(self, entry: tuple[Any, float | None]) -> bool:
        expires = entry[1]
        return expires is None or expires > self._clock()

    def _apply(self, data: dict, op: str, args: tuple) -> Any:
        if op == "get":
            (key,) = args
            entry = data.get(key)
            if entry is None:
                return None
            if not self._alive(entry):
                del data[key]
                return None
            return entry[0]
        if op == "put":
            key, value, ttl_s = args
            data[key] = (value, self._clock() + ttl_s if ttl_s else None)
            return None
        if op == "setdefault":
            key, value, ttl_s = args
            entry = data.get(key)
            if entry is not None and self._alive(entry):
                return entry[0]
            data[key] = (value, self._clock() + ttl_s if ttl_s else None)
            return value
        if op == "delete":
            (key,) = args
            return data.pop(key, None) is not None
        if op == "keys":
            (prefix,) = args
            for key in [k for k, e in data.items() if not self._alive(e)]:
                del data[key]
            return [k for k in data if k.startswith(prefix)]
        raise ValueError(f"unknown store op {op!r}")

    def _call(self, op: str, *args: Any) -> Any:
        if self._closed:
            raise RuntimeError("store is closed")
        reply: Future = Future()
        self._inbox.put((op, args, reply))
        return reply.result()

    def get(self, key: str) -> Any:
        return self._call("get", key)

    def put(self, key: str, value: Any, ttl_s: float | None = None) -> None:
        """Store ``value``; ``ttl_s`` of None or 0 keeps it until deleted."""
        self._call("put", key, value, ttl_s)

    def setdefault(self, key: str, value: Any, ttl_s: float | None = None) -> Any:
        """Store ``value`` unless a live entry exists; return whichever is stored."""
        return self._call("setdefault", key, value, ttl_s)

    def delete(self, key: str) -> bool:
        return self._call("delete", key)

    def keys(self, prefix: str = "") -> list[str]:
        return self._call("keys", prefix)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._inbox.put(_STOP)
        self._thread.join(timeout=2)
