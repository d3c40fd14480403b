"""Line-oriented source file parsing with skip-on-error validation."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from authgate.errors import ParseError, SourceUnavailable

log = logging.getLogger(__name__)

COMMENT_PREFIX = "#"
VALUE_SEPARATOR = ","


@dataclass(frozen=True)
class Record:
    key: str
    values: tuple
    lineno: int


def split_values(field: str) -> frozenset[str]:
    """Split a comma-separated field into a set of non-empty, stripped values."""
    return frozenset(v.strip() for v in field.split(VALUE_SEPARATOR) if v.strip())


def read_source(path: Path | str) -> str:
    """Read a UTF-8 source file. Raises SourceUnavailable on any read problem."""
    path = Path(path)
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise SourceUnavailable(str(path), "file does not exist") from None
    except UnicodeDecodeError as e:
        raise SourceUnavailable(str(path), f"not valid UTF-8 ({e.reason})") from e
    except OSError as e:
        raise SourceUnavailable(str(path), e.strerror or str(e)) from e


def _parse_line(
    line: str,
    lineno: int,
    delimiter: str | None,
    fields: int,
    multi_valued: bool,
    source: str,
) -> Record:
    if delimiter is None:
        return Record(key=line, values=(), lineno=lineno)

    parts = [p.strip() for p in line.split(delimiter)]
    if len(parts) != fields:
        raise ParseError(source, lineno, line, f"expected {fields} fields, got {len(parts)}")
    key, rest = parts[0], parts[1:]
    if not key:
        raise ParseError(source, lineno, line, "empty key")

    if multi_valued:
        values = split_values(rest[-1])
        if not values:
            raise ParseError(source, lineno, line, "no values")
        rest = rest[:-1] + [values]
    return Record(key=key, values=tuple(rest), lineno=lineno)


def parse_records(
    text: str,
    delimiter: str | None,
    fields: int = 2,
    multi_valued: bool = False,
    source: str = "<string>",
) -> list[Record]:
    """Parse text into records, one per non-comment line.

    Blank lines and lines starting with ``#`` are skipped silently. Lines
    with the wrong field count or an empty key are logged and skipped; they
    never abort the parse. With ``delimiter=None`` the whole stripped line
    is the key. With ``multi_valued=True`` the last field is split on
    commas into a frozenset.
    """
    records: list[Record] = []
    # only \n, \r\n and \r end a line
    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    for lineno, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line.startswith(COMMENT_PREFIX):
            continue
        log.debug("%s:%d: handle %r", source, lineno, line)
        try:
            records.append(_parse_line(line, lineno, delimiter, fields, multi_valued, source))
        except ParseError as e:
            log.warning("Ignoring invalid line: %s", e)
    return records


def load_records(
    path: Path | str,
    delimiter: str | None,
    fields: int = 2,
    multi_valued: bool = False,
) -> list[Record]:
    """Read and parse a source file. Raises SourceUnavailable."""
    text = read_source(path)
    return parse_records(
        text, delimiter, fields=fields, multi_valued=multi_valued, source=str(path)
    )
