"""IP address whitelist: fixed trusted addresses plus per-address users.

Fixed whitelist file, one address per line:
    192.168.1.1

Variable whitelist file, one address per line:
    192.168.1.2:user1,user2

Any user is trusted from an address in the fixed whitelist. From any other
address only the users listed for it in the variable whitelist are.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from authgate.config import get_bool, require_path
from authgate.errors import AuthorizationDenied, ConfigurationError, ReloadError
from authgate.parser import load_records
from authgate.snapshot import (
    FixedWhitelistSnapshot,
    SnapshotStore,
    VariableWhitelistSnapshot,
    build_fixed_whitelist,
    build_variable_whitelist,
)

log = logging.getLogger(__name__)

WHITELIST_ENABLE_KEY = "security.whitelist.enabled"
FIXED_WHITELIST_FILE_KEY = "security.whitelist.fixed_file"
VARIABLE_WHITELIST_FILE_KEY = "security.whitelist.variable_file"


class IPWhitelist:
    REFRESH_IDENTIFIER = "REFRESH_WHITE_LIST"

    def __init__(self) -> None:
        self.enabled = False
        self._fixed: SnapshotStore[FixedWhitelistSnapshot] = SnapshotStore(
            FixedWhitelistSnapshot.EMPTY
        )
        self._variable: SnapshotStore[VariableWhitelistSnapshot] = SnapshotStore(
            VariableWhitelistSnapshot.EMPTY
        )
        self._sources: list[Path] = []

    @property
    def fixed(self) -> FixedWhitelistSnapshot:
        return self._fixed.read()

    @property
    def variable(self) -> VariableWhitelistSnapshot:
        return self._variable.read()

    def check_access(self, address: str, user: str) -> None:
        """Raise AuthorizationDenied unless user may connect from address."""
        if not self.enabled:
            return

        if address in self._fixed.read():
            return

        users = self._variable.read().users(address)
        if users is None:
            raise AuthorizationDenied(
                f"{user} from {address} not in white list: address not listed",
                reason="address not listed",
            )
        if user not in users:
            raise AuthorizationDenied(
                f"{user} from {address} not in white list: user not allowed",
                reason="user not allowed",
            )

    def sources(self) -> list[Path]:
        return list(self._sources)

    def reload(self, config: dict[str, Any]) -> None:
        """Reload the enable flag and, when enabled, both whitelist files.

        The two files load independently; a failure in one keeps its
        previous snapshot and does not stop the other from loading.
        """
        self.enabled = get_bool(config, WHITELIST_ENABLE_KEY)
        log.info("White list checking enabled: %s", self.enabled)
        self._sources = []
        if not self.enabled:
            return

        errors: list[ReloadError] = []
        for load in (self._load_fixed, self._load_variable):
            try:
                load(config)
            except ReloadError as e:
                log.error("White list not reloaded: %s", e)
                errors.append(e)

        if len(errors) == 1:
            raise errors[0]
        if errors:
            raise ReloadError("; ".join(str(e) for e in errors)) from errors[0]

    def _load_fixed(self, config: dict[str, Any]) -> None:
        path = require_path(config, FIXED_WHITELIST_FILE_KEY)
        self._sources.append(path)
        log.info("Loading fixed white list: %s", path)
        snapshot = build_fixed_whitelist(load_records(path, None))
        log.info("Loaded %d addresses from %s", len(snapshot), path)
        # never publish an empty fixed white list
        if not snapshot:
            raise ConfigurationError(f"fixed white list {path} is empty, keeping previous")
        self._fixed.replace(snapshot)

    def _load_variable(self, config: dict[str, Any]) -> None:
        path = require_path(config, VARIABLE_WHITELIST_FILE_KEY)
        self._sources.append(path)
        log.info("Loading variable white list: %s", path)
        snapshot = build_variable_whitelist(load_records(path, ":", multi_valued=True))
        log.info("Loaded %d addresses from %s", len(snapshot), path)
        self._variable.replace(snapshot)

    def shutdown(self) -> None:
        self.enabled = False
        self._fixed.replace(FixedWhitelistSnapshot.EMPTY)
        self._variable.replace(VariableWhitelistSnapshot.EMPTY)
