"""Line-level helpers for editing INI files without disturbing them.

Every line is classified once into a small tagged type; the scanner and the
merger only ever look at the classification.  Writes are expressed as a
splice of three independent sequences (prefix, new body, suffix) so lines
outside the rewritten section are returned exactly as they were read.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import List, Optional, Sequence, Union

log = logging.getLogger(__name__)

COMMENT_PREFIX = ";"


@dataclass(frozen=True)
class SectionHeader:
    name: str


@dataclass(frozen=True)
class Comment:
    text: str


@dataclass(frozen=True)
class Blank:
    pass


@dataclass(frozen=True)
class KeyValue:
    key: str
    value: str


@dataclass(frozen=True)
class Unstructured:
    text: str


LineKind = Union[SectionHeader, Comment, Blank, KeyValue, Unstructured]


@dataclass(frozen=True)
class SectionRange:
    """Half-open range ``[start, end)`` of a section body."""

    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start


def _squash(text: str) -> str:
    return "".join(text.split())


def classify_line(line: str) -> LineKind:
    """Return the kind of a single raw line.  Never raises."""

    stripped = line.strip()
    if not stripped:
        return Blank()
    if stripped.startswith(COMMENT_PREFIX):
        return Comment(stripped)

    squashed = _squash(line)
    if squashed.startswith("[") and squashed.endswith("]"):
        return SectionHeader(squashed[1:-1])

    if "=" in line:
        key, value = line.split("=", 1)
        return KeyValue(key.strip(), value.strip())

    return Unstructured(stripped)


def normalize_section(name: str) -> str:
    """``" My Sec "`` -> ``"[mysec]"``; bracketed names are accepted as-is."""

    squashed = _squash(name).lower()
    if not (squashed.startswith("[") and squashed.endswith("]")):
        squashed = f"[{squashed}]"
    return squashed


def format_section_header(name: str) -> str:
    header = name.strip()
    if header.startswith("[") and header.endswith("]"):
        return header
    return f"[{header}]"


def keys_match(left: str, right: str) -> bool:
    return left.strip().lower() == right.strip().lower()


def _header_matches(kind: LineKind, target: str) -> bool:
    return isinstance(kind, SectionHeader) and f"[{kind.name.lower()}]" == target


def find_section(lines: Sequence[str], section: str) -> Optional[SectionRange]:
    """Locate the body of *section* in *lines*.

    Only the first header with a matching name is used.  The body ends at
    the next header with a different name, or at the end of the document.
    """

    target = normalize_section(section)
    start: Optional[int] = None

    for idx, line in enumerate(lines):
        kind = classify_line(line)
        if start is None:
            if _header_matches(kind, target):
                start = idx + 1
            continue
        if isinstance(kind, SectionHeader) and not _header_matches(kind, target):
            return SectionRange(start, idx)

    if start is None:
        return None
    return SectionRange(start, len(lines))


def extract_section(
    lines: Sequence[str], section: str, include_comments: bool = False
) -> List[str]:
    """Return the trimmed body lines of *section* (blank lines dropped)."""

    section_range = find_section(lines, section)
    if section_range is None:
        return []

    result: List[str] = []
    for line in lines[section_range.start : section_range.end]:
        kind = classify_line(line)
        if isinstance(kind, Blank):
            continue
        if isinstance(kind, Comment) and not include_comments:
            continue
        if isinstance(kind, KeyValue):
            result.append(f"{kind.key}={kind.value}")
        else:
            result.append(line.strip())
    return result


def merge_section(
    body: Sequence[str], key: str, value: str, lowercase_value: bool = False
) -> List[str]:
    """Upsert ``key=value`` into a section body.

    The first entry whose key matches is rewritten; any later duplicate is
    left untouched.  Without a match the entry becomes the last body line.
    """

    if lowercase_value:
        value = value.lower()
    entry = f"{key}={value}"

    merged: List[str] = []
    for idx, line in enumerate(body):
        kind = classify_line(line)
        if isinstance(kind, KeyValue) and keys_match(kind.key, key):
            log.debug("Updating %r at body line %d", key, idx)
            merged.append(entry)
            merged.extend(body[idx + 1 :])
            return merged
        merged.append(line)

    log.debug("Appending %r after %d body lines", key, len(body))
    merged.append(entry)
    return merged


def splice(
    lines: Sequence[str], section_range: SectionRange, new_body: Sequence[str]
) -> List[str]:
    prefix = list(lines[: section_range.start])
    suffix = list(lines[section_range.end :])
    return prefix + list(new_body) + suffix


def upsert(
    lines: Sequence[str],
    section: str,
    key: str,
    value: str,
    lowercase_value: bool = False,
) -> List[str]:
    """Return a copy of *lines* with ``key=value`` set inside *section*."""

    if not lines:
        return [
            format_section_header(section),
            merge_section([], key, value, lowercase_value)[0],
        ]

    section_range = find_section(lines, section)
    if section_range is None:
        log.debug("Section %r not found; appending it", section)
        return list(lines) + [
            "",
            format_section_header(section),
            merge_section([], key, value, lowercase_value)[0],
        ]

    body = lines[section_range.start : section_range.end]
    return splice(lines, section_range, merge_section(body, key, value, lowercase_value))


__all__ = [
    "Blank",
    "Comment",
    "KeyValue",
    "LineKind",
    "SectionHeader",
    "SectionRange",
    "Unstructured",
    "classify_line",
    "extract_section",
    "find_section",
    "format_section_header",
    "keys_match",
    "merge_section",
    "normalize_section",
    "splice",
    "upsert",
]
