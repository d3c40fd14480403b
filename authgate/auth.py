"""Credential and client address extraction from HTTP headers.

Credentials (first match wins):
1. Authorization: Basic <base64 user:password>, decoded as UTF-8
2. X-Remote-User header (user only, no password)

Client address: the peer address of the connection. Only when the peer is
a trusted proxy are forwarding headers consulted:
1. right-most X-Forwarded-For entry that is not itself a trusted proxy
2. X-Real-IP
"""

from __future__ import annotations

import ipaddress
from collections.abc import Iterable, Mapping

from aiohttp import BasicAuth

Network = ipaddress.IPv4Network | ipaddress.IPv6Network


def _header(headers: Mapping[str, str], name: str) -> str | None:
    return headers.get(name) or headers.get(name.lower())


def extract_credentials(headers: Mapping[str, str]) -> tuple[str, str | None] | None:
    """Return (user, password) from request headers, or None if there is no user."""
    auth = _header(headers, "Authorization")
    if auth and auth.lower().startswith("basic "):
        try:
            basic = BasicAuth.decode(auth, encoding="utf-8")
        except ValueError:
            return None
        if not basic.login:
            return None
        return basic.login, basic.password or None

    remote_user = _header(headers, "X-Remote-User")
    if remote_user and remote_user.strip():
        return remote_user.strip(), None

    return None


def parse_trusted_proxies(entries: Iterable[str] | None) -> list[Network]:
    """Parse addresses or CIDR blocks. Raises ValueError on a malformed entry."""
    return [ipaddress.ip_network(str(e).strip(), strict=False) for e in entries or ()]


def _is_trusted(address: str, trusted: list[Network]) -> bool:
    try:
        ip = ipaddress.ip_address(address)
    except ValueError:
        return False
    return any(ip in network for network in trusted)


def extract_address(
    headers: Mapping[str, str],
    peer: str | None,
    trusted_proxies: list[Network] | None = None,
) -> str | None:
    """Return the client address the request should be checked against."""
    trusted = trusted_proxies or []
    if peer is None or not _is_trusted(peer, trusted):
        return peer

    forwarded = _header(headers, "X-Forwarded-For")
    if forwarded:
        hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
        for hop in reversed(hops):
            if not _is_trusted(hop, trusted):
                return hop
        if hops:
            return hops[0]

    real_ip = _header(headers, "X-Real-IP")
    if real_ip and real_ip.strip():
        return real_ip.strip()

    return peer
