"""Exception types for reloads and query-time denials."""

from __future__ import annotations


class AuthGateError(Exception):
    pass


class ReloadError(AuthGateError):
    """A dataset could not be reloaded; the previous snapshot stays current."""


class ConfigurationError(ReloadError):
    pass


class SourceUnavailable(ReloadError):
    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class ParseError(AuthGateError):
    def __init__(self, source: str, lineno: int, line: str, reason: str) -> None:
        super().__init__(f"{source}:{lineno}: {reason}: {line!r}")
        self.source = source
        self.lineno = lineno
        self.line = line
        self.reason = reason


class AccessDenied(AuthGateError):
    def __init__(self, message: str, reason: str) -> None:
        super().__init__(message)
        self.reason = reason


class AuthorizationDenied(AccessDenied):
    pass


class AuthenticationDenied(AccessDenied):
    pass


class DigestAlgorithmUnavailable(AuthGateError):
    pass
