"""Source file change detection for policies loaded from flat files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from authgate.refresh import RefreshDispatcher
from authgate.service import Reloadable

log = logging.getLogger(__name__)


def _mtime(path: Path) -> Optional[float]:
    try:
        return path.stat().st_mtime
    except OSError:
        return None


class SourceWatcher:
    """Dispatches a refresh for each policy whose source files changed.

    A file appearing or disappearing counts as a change. The first
    ``check()`` only records the current state.
    """

    def __init__(self, dispatcher: RefreshDispatcher, policies: list[Reloadable]) -> None:
        self._dispatcher = dispatcher
        self._policies = policies
        self._seen: dict[str, dict[Path, Optional[float]]] = {}

    def _state(self, policy: Reloadable) -> dict[Path, Optional[float]]:
        return {path: _mtime(path) for path in policy.sources()}

    def check(self) -> list[str]:
        """Refresh changed policies and return their identifiers."""
        refreshed: list[str] = []
        for policy in self._policies:
            identifier = policy.REFRESH_IDENTIFIER
            state = self._state(policy)
            previous = self._seen.get(identifier)
            self._seen[identifier] = state
            if previous is None or previous == state:
                continue

            log.info("Source files changed, refreshing %s", identifier)
            response = self._dispatcher.dispatch(identifier)
            if not response.ok:
                log.warning("Refresh %s after change failed: %s", identifier, response.message)
            # the reload may have switched to different files
            self._seen[identifier] = self._state(policy)
            refreshed.append(identifier)
        return refreshed
