"""Field path expressions.

A path names a field inside a nested document. Segments are separated by
dots; a segment whose name contains literal dots is written in brackets
with single or double quotes::

    spec.name                      -> ["spec", "name"]
    status['metadata.id']          -> ["status", "metadata.id"]
    a.["b.c"].d                    -> ["a", "b.c", "d"]

The empty string is a valid path made of one empty segment.
"""
from __future__ import annotations

import logging

from src.shared.errors import MalformedPathError

logger = logging.getLogger(__name__)

_QUOTES = ("'", '"')
_PLAIN = "plain"
_BRACKET = "bracket"


def parse_path(path: str) -> list[str]:
    """Split *path* into its segments.

    Raises:
        MalformedPathError: on spaces, leading, trailing or consecutive dots,
            unmatched or adjacent brackets, unquoted or empty bracket
            content and mismatched quotes.
    """
    if path == "":
        return [""]
    if any(ch.isspace() for ch in path):
        raise MalformedPathError(f"malformed path: contains spaces: {path!r}")

    segments = _PathScanner(path).scan()
    logger.debug("Parsed path %r into segments %s", path, segments)
    return segments


def join_path(segments: list[str] | tuple[str, ...]) -> str:
    """Render *segments* back into a path expression.

    Segments containing dots are written in bracket notation, so
    ``parse_path(join_path(s)) == s`` for any non-empty segments.
    """
    text = ""
    previous_bracket = False
    for index, segment in enumerate(segments):
        bracket = "." in segment or "[" in segment or "]" in segment
        # Two bracket segments still need a separating dot.
        if index and (not bracket or previous_bracket):
            text += "."
        if bracket:
            quote = '"' if "'" in segment else "'"
            text += f"[{quote}{segment}{quote}]"
        else:
            text += segment
        previous_bracket = bracket
    return text


class _PathScanner:
    """Single pass scanner; bracket segments are handled as a sub-state."""

    def __init__(self, path: str) -> None:
        self.path = path
        self.pos = 0
        self.segments: list[str] = []
        # Kind of the last segment read, None before the first one.
        self.previous: str | None = None
        # True at the start and right after a separating dot.
        self.expect_segment = True

    def scan(self) -> list[str]:
        path = self.path
        while self.pos < len(path):
            ch = path[self.pos]
            if ch == ".":
                self._dot()
            elif ch == "[":
                if self.previous == _BRACKET and not self.expect_segment:
                    raise MalformedPathError(
                        f"malformed path: adjacent brackets without a dot: {path!r}"
                    )
                self.segments.append(self._bracket())
                self.previous = _BRACKET
                self.expect_segment = False
            elif ch == "]":
                raise MalformedPathError(
                    f"malformed path: mismatched brackets: {path!r}"
                )
            else:
                if self.previous == _BRACKET and not self.expect_segment:
                    raise MalformedPathError(
                        f"malformed path: missing dot after bracket: {path!r}"
                    )
                self.segments.append(self._plain())
                self.previous = _PLAIN
                self.expect_segment = False

        if self.expect_segment:
            raise MalformedPathError(f"malformed path: contains trailing dot: {path!r}")
        return self.segments

    def _dot(self) -> None:
        if self.previous is None:
            raise MalformedPathError(
                f"malformed path: contains leading dot: {self.path!r}"
            )
        if self.expect_segment:
            raise MalformedPathError(
                f"malformed path: contains consecutive dots: {self.path!r}"
            )
        self.expect_segment = True
        self.pos += 1

    def _plain(self) -> str:
        start = self.pos
        while self.pos < len(self.path) and self.path[self.pos] not in ".[]":
            self.pos += 1
        return self.path[start:self.pos]

    def _bracket(self) -> str:
        path = self.path
        open_at = self.pos
        if open_at + 1 >= len(path):
            raise MalformedPathError(f"malformed path: unclosed bracket: {path!r}")

        quote = path[open_at + 1]
        if quote not in _QUOTES:
            if "]" in path[open_at:]:
                raise MalformedPathError(
                    f"malformed path: bracket must contain quoted string: {path!r}"
                )
            raise MalformedPathError(f"malformed path: unclosed bracket: {path!r}")

        content_start = open_at + 2
        close_at = path.find(quote + "]", content_start)
        if close_at == -1:
            other = _QUOTES[1] if quote == _QUOTES[0] else _QUOTES[0]
            if path.find(other + "]", content_start) != -1:
                raise MalformedPathError(
                    f"malformed path: mismatched quote characters: {path!r}"
                )
            raise MalformedPathError(f"malformed path: unclosed bracket: {path!r}")

        content = path[content_start:close_at]
        if content == "":
            raise MalformedPathError(
                f"malformed path: empty bracket content: {path!r}"
            )
        self.pos = close_at + 2
        return content
