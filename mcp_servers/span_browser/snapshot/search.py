"""Regex search across snapshot spans.

Flags follow the JavaScript RegExp letters agents tend to send ("gi", "m", ...)
and are translated to :mod:`re` flags.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any

from .spanner import Span

DEFAULT_FLAGS = "gi"
MAX_DISPLAYED_MATCHES = 10

_RE_FLAGS: dict[str, int] = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
}
# Accepted for compatibility; they change nothing for per-line testing.
_NOOP_FLAGS = frozenset("gudv")
_STICKY_FLAG = "y"

# JavaScript named groups and their backreferences in Python spelling.
_JS_NAMED_GROUP = re.compile(r"(?<!\\)\(\?<(?![=!])")
_JS_NAMED_BACKREF = re.compile(r"\\k<(\w+)>")


class SnapshotPatternError(ValueError):
    """Raised when a search pattern or its flags cannot be compiled."""


@dataclass(frozen=True, slots=True)
class SearchMatch:
    span_index: int
    local_line: int
    global_line: int
    text: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "spanIndex": self.span_index,
            "localLine": self.local_line,
            "globalLine": self.global_line,
            "text": self.text,
        }


@dataclass(frozen=True, slots=True)
class SearchResult:
    span_indices: list[int] = field(default_factory=list)
    matches: list[SearchMatch] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.matches)

    def to_dict(self) -> dict[str, Any]:
        return {"spanIndices": list(self.span_indices), "matches": [m.to_dict() for m in self.matches]}


@dataclass(frozen=True, slots=True)
class CompiledPattern:
    regex: re.Pattern[str]
    sticky: bool = False

    def test(self, line: str) -> bool:
        if self.sticky:
            return self.regex.match(line) is not None
        return self.regex.search(line) is not None


def compile_pattern(pattern: str, flags: str | None = None) -> CompiledPattern:
    """Compile ``pattern`` with JavaScript-style ``flags`` (default ``"gi"``)."""
    if flags is None:
        flags = DEFAULT_FLAGS
    re_flags = 0
    seen: set[str] = set()
    for letter in flags:
        if letter in seen:
            raise SnapshotPatternError(f"Invalid flags supplied to RegExp constructor '{flags}' (duplicate '{letter}')")
        seen.add(letter)
        if letter in _RE_FLAGS:
            re_flags |= _RE_FLAGS[letter]
        elif letter not in _NOOP_FLAGS and letter != _STICKY_FLAG:
            raise SnapshotPatternError(f"Invalid flags supplied to RegExp constructor '{flags}'")
    try:
        regex = re.compile(_python_syntax(pattern), re_flags)
    except re.error as exc:
        raise SnapshotPatternError(f"Invalid regular expression: /{pattern}/: {exc}") from exc
    return CompiledPattern(regex=regex, sticky=_STICKY_FLAG in seen)


def _python_syntax(pattern: str) -> str:
    pattern = _JS_NAMED_GROUP.sub("(?P<", pattern)
    return _JS_NAMED_BACKREF.sub(r"(?P=\1)", pattern)


def search_spans(spans: Iterable[Span], pattern: str, flags: str | None = None) -> SearchResult:
    """Test every line of every span; matches keep span order, then line order."""
    compiled = compile_pattern(pattern, flags)
    span_indices: list[int] = []
    matches: list[SearchMatch] = []

    for span in spans:
        hit = False
        for local_index, line in enumerate(span.text.split("\n")):
            if not compiled.test(line):
                continue
            hit = True
            matches.append(
                SearchMatch(
                    span_index=span.index,
                    local_line=local_index + 1,
                    global_line=span.start_line + local_index,
                    text=line.strip(),
                )
            )
        if hit:
            span_indices.append(span.index)

    return SearchResult(span_indices=span_indices, matches=matches)
