"""Immutable snapshots and the atomically-replaceable store that holds them.

A snapshot is built off to the side from parsed records and then published
with ``SnapshotStore.replace``. Publishing is a single attribute assignment,
so a reader calling ``read()`` gets either the old or the new snapshot and
keeps whichever it got for as long as it holds the reference. Nothing
reachable from a published snapshot is ever mutated.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Generic, Optional, TypeVar

from authgate.parser import Record

log = logging.getLogger(__name__)

T = TypeVar("T")

_EMPTY_MAPPING: Mapping = MappingProxyType({})


@dataclass(frozen=True)
class GroupSnapshot:
    user2groups: Mapping[str, frozenset[str]] = field(default_factory=lambda: _EMPTY_MAPPING)

    def groups(self, user: str) -> frozenset[str]:
        return self.user2groups.get(user, frozenset())

    def __len__(self) -> int:
        return len(self.user2groups)


@dataclass(frozen=True)
class FixedWhitelistSnapshot:
    addresses: frozenset[str] = frozenset()

    def __contains__(self, address: object) -> bool:
        return address in self.addresses

    def __len__(self) -> int:
        return len(self.addresses)


@dataclass(frozen=True)
class VariableWhitelistSnapshot:
    address2users: Mapping[str, frozenset[str]] = field(default_factory=lambda: _EMPTY_MAPPING)

    def users(self, address: str) -> Optional[frozenset[str]]:
        return self.address2users.get(address)

    def __len__(self) -> int:
        return len(self.address2users)


@dataclass(frozen=True)
class PasswordEntry:
    digest: Optional[str]
    enabled: bool


@dataclass(frozen=True)
class PasswordSnapshot:
    user2entry: Mapping[str, PasswordEntry] = field(default_factory=lambda: _EMPTY_MAPPING)

    def get(self, user: str) -> Optional[PasswordEntry]:
        return self.user2entry.get(user)

    def __len__(self) -> int:
        return len(self.user2entry)


GroupSnapshot.EMPTY = GroupSnapshot()
FixedWhitelistSnapshot.EMPTY = FixedWhitelistSnapshot()
VariableWhitelistSnapshot.EMPTY = VariableWhitelistSnapshot()
PasswordSnapshot.EMPTY = PasswordSnapshot()


class SnapshotStore(Generic[T]):
    """Holds the current snapshot of one dataset.

    ``read()`` never blocks: it is a plain attribute load. ``replace()`` is
    the only writer and is called from the reload path.
    """

    def __init__(self, initial: T) -> None:
        self._current = initial

    def read(self) -> T:
        return self._current

    def replace(self, snapshot: T) -> T:
        """Publish a new snapshot and return the one it superseded."""
        previous = self._current
        self._current = snapshot
        return previous


def _build_multimap(records: Iterable[Record]) -> Mapping[str, frozenset[str]]:
    merged: dict[str, set[str]] = {}
    for record in records:
        merged.setdefault(record.key, set()).update(record.values[-1])
    return MappingProxyType({k: frozenset(v) for k, v in merged.items()})


def build_groups(records: Iterable[Record]) -> GroupSnapshot:
    """user=group1,group2 records; repeated users accumulate groups."""
    return GroupSnapshot(user2groups=_build_multimap(records))


def build_fixed_whitelist(records: Iterable[Record]) -> FixedWhitelistSnapshot:
    return FixedWhitelistSnapshot(addresses=frozenset(r.key for r in records))


def build_variable_whitelist(records: Iterable[Record]) -> VariableWhitelistSnapshot:
    """address:user1,user2 records; repeated addresses accumulate users."""
    return VariableWhitelistSnapshot(address2users=_build_multimap(records))


EMPTY_PASSWORD = "null"


def parse_digest(field: str) -> Optional[str]:
    """Return the stored digest, or None for the ``null`` sentinel or an empty field."""
    if not field or field.endswith(EMPTY_PASSWORD):
        return None
    return field


def build_passwords(records: Iterable[Record]) -> PasswordSnapshot:
    """user:digest:enabled records; a repeated user keeps its last line."""
    entries: dict[str, PasswordEntry] = {}
    for record in records:
        digest, enabled = record.values
        if record.key in entries:
            log.warning("Duplicate password entry for %s at line %d", record.key, record.lineno)
        entries[record.key] = PasswordEntry(
            digest=parse_digest(digest),
            enabled=enabled.lower() == "true",
        )
    return PasswordSnapshot(user2entry=MappingProxyType(entries))
