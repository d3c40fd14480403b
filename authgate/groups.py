"""User to groups mapping loaded from a flat file.

File format, one user per line:
    user=group1,group2,group3
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from authgate.config import require_path
from authgate.errors import ReloadError
from authgate.parser import load_records
from authgate.snapshot import GroupSnapshot, SnapshotStore, build_groups

log = logging.getLogger(__name__)

GROUP_MAPPING_FILE_KEY = "security.group_mapping.file"


class GroupMapping:
    REFRESH_IDENTIFIER = "REFRESH_USER_TO_GROUPS"

    def __init__(self) -> None:
        self._store: SnapshotStore[GroupSnapshot] = SnapshotStore(GroupSnapshot.EMPTY)
        self._sources: list[Path] = []

    @property
    def snapshot(self) -> GroupSnapshot:
        return self._store.read()

    def get_groups(self, user: str) -> frozenset[str]:
        """Groups for user; an unknown user has no groups."""
        return self._store.read().groups(user)

    def sources(self) -> list[Path]:
        return list(self._sources)

    def reload(self, config: dict[str, Any]) -> None:
        """Rebuild the mapping from the configured file.

        On any failure the error is logged and re-raised, and the current
        mapping stays in place.
        """
        try:
            path = require_path(config, GROUP_MAPPING_FILE_KEY)
            self._sources = [path]
            log.info("Loading group mapping: %s", path)
            snapshot = build_groups(load_records(path, "=", multi_valued=True))
        except ReloadError as e:
            log.error("Group mapping not reloaded: %s", e)
            raise
        self._store.replace(snapshot)
        log.info("Loaded %d users from %s", len(snapshot), path)

    def shutdown(self) -> None:
        self._store.replace(GroupSnapshot.EMPTY)
