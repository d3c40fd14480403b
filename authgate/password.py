"""Per-user password checking against MD5 digests loaded from a flat file.

File format, one user per line:
    username:digest:true     password checked against digest
    username:digest:false    password checking waived for this user
    username:null:true       no password configured, always denied
    username:null:false      password checking waived for this user

Digests are lowercase hex MD5 of the UTF-8 password. This is a legacy
format and is not meant as a strong credential store.
"""

from __future__ import annotations

import hashlib
import logging
from pathlib import Path
from typing import Any, Callable, NoReturn, Optional

from authgate.config import get_bool, require_path
from authgate.errors import AuthenticationDenied, DigestAlgorithmUnavailable, ReloadError
from authgate.parser import load_records
from authgate.snapshot import PasswordSnapshot, SnapshotStore, build_passwords

log = logging.getLogger(__name__)

PASSWORD_ENABLE_KEY = "security.password.enabled"
PASSWORD_FILE_KEY = "security.password.file"

DIGEST_ALGORITHM = "md5"

USER_NOT_RECOGNIZED = "user not recognized"
NO_PASSWORD_CONFIGURED = "no password configured for user"
NO_PASSWORD_SUPPLIED = "no password supplied"
PASSWORD_INCORRECT = "password incorrect"


def _digest_factory(algorithm: str) -> Callable[[], Any]:
    try:
        hashlib.new(algorithm)
    except (ValueError, TypeError) as e:
        raise DigestAlgorithmUnavailable(f"cannot construct {algorithm} digest: {e}") from e
    return lambda: hashlib.new(algorithm)


class PasswordAuthenticator:
    REFRESH_IDENTIFIER = "REFRESH_PASSWORD"

    def __init__(self, algorithm: str = DIGEST_ALGORITHM) -> None:
        self._new_digest = _digest_factory(algorithm)
        self.enabled = False
        self._store: SnapshotStore[PasswordSnapshot] = SnapshotStore(PasswordSnapshot.EMPTY)
        self._sources: list[Path] = []

    @property
    def snapshot(self) -> PasswordSnapshot:
        return self._store.read()

    def digest(self, password: str) -> str:
        h = self._new_digest()
        h.update(password.encode("utf-8"))
        return h.hexdigest()

    def check_password(self, user: str, password: Optional[str] = None) -> None:
        """Raise AuthenticationDenied unless user authenticates with password.

        Checks run in order: user exists, checking enabled for the user,
        digest configured, password supplied, password matches.
        """
        if not self.enabled:
            return

        entry = self._store.read().get(user)
        if entry is None:
            self._deny(user, USER_NOT_RECOGNIZED)

        if not entry.enabled:
            return

        if not entry.digest:
            self._deny(user, NO_PASSWORD_CONFIGURED)

        if not password:
            self._deny(user, NO_PASSWORD_SUPPLIED)

        if self.digest(password) != entry.digest:
            self._deny(user, PASSWORD_INCORRECT)

    @staticmethod
    def _deny(user: str, reason: str) -> NoReturn:
        raise AuthenticationDenied(f"{user}: {reason}", reason=reason)

    def sources(self) -> list[Path]:
        return list(self._sources)

    def reload(self, config: dict[str, Any]) -> None:
        """Reload the enable flag and, when enabled, the password file.

        Disabling clears the loaded passwords, so re-enabling without a
        successful load denies everyone.
        """
        self.enabled = get_bool(config, PASSWORD_ENABLE_KEY)
        log.info("Password checking enabled: %s", self.enabled)
        if not self.enabled:
            self._sources = []
            self._store.replace(PasswordSnapshot.EMPTY)
            return

        try:
            path = require_path(config, PASSWORD_FILE_KEY)
            self._sources = [path]
            log.info("Loading password file: %s", path)
            snapshot = build_passwords(load_records(path, ":", fields=3))
        except ReloadError as e:
            log.error("Passwords not reloaded: %s", e)
            raise
        self._store.replace(snapshot)
        log.info("Loaded %d users from %s", len(snapshot), path)

    def shutdown(self) -> None:
        self.enabled = False
        self._store.replace(PasswordSnapshot.EMPTY)
