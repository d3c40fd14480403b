"""Owns the three policies, their refresh registrations and lifecycle."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any, Protocol

from authgate.config import load_config
from authgate.errors import ReloadError
from authgate.groups import GroupMapping
from authgate.password import PasswordAuthenticator
from authgate.refresh import RefreshDispatcher, RefreshResponse
from authgate.whitelist import IPWhitelist

log = logging.getLogger(__name__)

ConfigLoader = Callable[[], dict[str, Any]]


class Reloadable(Protocol):
    REFRESH_IDENTIFIER: str

    def reload(self, config: dict[str, Any]) -> None: ...

    def sources(self) -> list[Path]: ...

    def shutdown(self) -> None: ...


class SecurityService:
    """Group mapping, IP whitelist and password checks behind one refresh registry.

    Each refresh re-reads configuration through ``config_loader`` before
    reloading the policy, so enable flags and file paths can change
    without a restart.
    """

    def __init__(
        self,
        config_loader: ConfigLoader | None = None,
        dispatcher: RefreshDispatcher | None = None,
    ) -> None:
        self._config_loader = config_loader or load_config
        self.dispatcher = dispatcher or RefreshDispatcher()
        self.groups = GroupMapping()
        self.whitelist = IPWhitelist()
        self.passwords = PasswordAuthenticator()

    @property
    def policies(self) -> list[Reloadable]:
        return [self.groups, self.whitelist, self.passwords]

    def start(self) -> None:
        """Register refresh handlers and load every policy once.

        Load failures are logged; the affected policy starts out empty.
        """
        for policy in self.policies:
            self.dispatcher.register(policy.REFRESH_IDENTIFIER, self._refresh_handler(policy))

        config = self._config_loader()
        for policy in self.policies:
            try:
                policy.reload(config)
            except ReloadError as e:
                log.warning("%s: initial load incomplete: %s", policy.REFRESH_IDENTIFIER, e)

    def _refresh_handler(self, policy: Reloadable) -> Callable[[Sequence[str]], None]:
        def handle(args: Sequence[str]) -> None:
            policy.reload(self._config_loader())

        return handle

    def refresh(self, identifier: str, args: Sequence[str] = ()) -> RefreshResponse:
        return self.dispatcher.dispatch(identifier, args)

    def authenticate(self, address: str, user: str, password: str | None) -> frozenset[str]:
        """Run the whitelist and password checks and return the user's groups.

        Raises AuthorizationDenied or AuthenticationDenied.
        """
        self.whitelist.check_access(address, user)
        self.passwords.check_password(user, password)
        return self.groups.get_groups(user)

    def shutdown(self) -> None:
        for policy in self.policies:
            self.dispatcher.unregister(policy.REFRESH_IDENTIFIER)
            policy.shutdown()
