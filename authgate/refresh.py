"""Administrative refresh dispatch: identifier -> reload callback."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Sequence
from dataclasses import dataclass

log = logging.getLogger(__name__)

RefreshCallback = Callable[[Sequence[str]], None]


@dataclass(frozen=True)
class RefreshResponse:
    status: int
    message: str = ""

    @classmethod
    def success(cls) -> RefreshResponse:
        return cls(0, "")

    @classmethod
    def failure(cls, message: str) -> RefreshResponse:
        return cls(-1, message)

    @property
    def ok(self) -> bool:
        return self.status == 0


class RefreshDispatcher:
    """Routes refresh commands to registered reload callbacks.

    Refreshes of one identifier are serialized: a dispatch arriving while
    another for the same identifier is running waits for it to finish.
    Refreshes of different identifiers do not wait on each other.
    """

    def __init__(self) -> None:
        self._handlers: dict[str, RefreshCallback] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def register(self, identifier: str, callback: RefreshCallback) -> None:
        """Register callback under identifier. The last registration wins."""
        with self._registry_lock:
            if identifier in self._handlers:
                log.debug("Replacing refresh handler for %s", identifier)
            self._handlers[identifier] = callback
            self._locks.setdefault(identifier, threading.Lock())

    def unregister(self, identifier: str) -> None:
        """Remove identifier, waiting for a refresh of it already in flight."""
        with self._registry_lock:
            lock = self._locks.get(identifier)
        if lock is None:
            return
        with lock:
            with self._registry_lock:
                self._handlers.pop(identifier, None)

    def identifiers(self) -> list[str]:
        return sorted(self._handlers)

    def dispatch(self, identifier: str, args: Sequence[str] = ()) -> RefreshResponse:
        with self._registry_lock:
            callback = self._handlers.get(identifier)
            lock = self._locks.get(identifier)
        if callback is None or lock is None:
            log.warning("Refresh requested for unknown identifier %s", identifier)
            return RefreshResponse.failure(f"Invalid identifier: {identifier}")

        with lock:
            # unregistered while this dispatch was waiting
            callback = self._handlers.get(identifier)
            if callback is None:
                return RefreshResponse.failure(f"Invalid identifier: {identifier}")
            log.info("Refreshing %s", identifier)
            try:
                callback(args)
            except Exception as e:
                log.error("Refresh %s failed: %s", identifier, e, exc_info=True)
                return RefreshResponse.failure(f"{identifier} refresh failed: {e}")
        log.info("Refreshed %s", identifier)
        return RefreshResponse.success()
