"""Glob patterns compiled into per-segment matchers.

Supported syntax:
- ``*``, ``?`` and ``[...]`` match within a single path segment
- ``**`` as a whole segment matches zero or more segments
- ``{a,b,c}`` expands into alternatives (nestable)
- a leading ``!`` negates the pattern

A pattern without ``/`` matches the last segment at any depth, so
``*.tmp`` selects every ``.tmp`` file below the base directory. A pattern
containing ``/`` is anchored at the base directory; an absolute pattern is
matched against the whole path.

Patterns are compiled once; matching a candidate never re-parses them.
"""

from __future__ import annotations

import fnmatch
import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from functools import cache
from pathlib import Path

from ripgrave.core.constants import DEFAULT_MAX_DEPTH, GLOB_CHARACTERS, NEGATION_PREFIX

_WILDCARDS = frozenset("*?[")


@dataclass(frozen=True)
class SegmentMatcher:
    """Matcher for one path segment."""

    literal: str | None = None
    regex: re.Pattern[str] | None = None
    recursive: bool = False

    def matches(self, part: str) -> bool:
        if self.literal is not None:
            return part == self.literal
        if self.regex is not None:
            return self.regex.match(part) is not None
        return True


_RECURSIVE = SegmentMatcher(recursive=True)


def _compile_segment(segment: str) -> SegmentMatcher:
    if segment == "**":
        return _RECURSIVE
    if not _WILDCARDS.intersection(segment):
        return SegmentMatcher(literal=segment)
    return SegmentMatcher(regex=re.compile(fnmatch.translate(segment)))


def _split_top_level(body: str) -> list[str]:
    options: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in body:
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        elif ch == "," and depth == 0:
            options.append("".join(current))
            current = []
            continue
        current.append(ch)
    options.append("".join(current))
    return options


def expand_braces(pattern: str) -> list[str]:
    """Expand the first top-level ``{a,b}`` group, recursively.

    Groups without a comma and unbalanced braces are kept literally.
    Whitespace around options is ignored (``*.{png, jpg}``).
    """
    depth = 0
    start = -1
    for i, ch in enumerate(pattern):
        if ch == "{":
            if depth == 0:
                start = i
            depth += 1
        elif ch == "}" and depth > 0:
            depth -= 1
            if depth == 0:
                options = _split_top_level(pattern[start + 1 : i])
                if len(options) < 2:
                    continue
                prefix, suffix = pattern[:start], pattern[i + 1 :]
                expanded: list[str] = []
                for option in options:
                    expanded.extend(expand_braces(prefix + option.strip() + suffix))
                return expanded
    return [pattern]


@dataclass(frozen=True)
class CompiledAlternative:
    """One brace alternative: a sequence of segment matchers."""

    segments: tuple[SegmentMatcher, ...]
    absolute: bool

    def matches(self, parts: Sequence[str]) -> bool:
        segments = self.segments

        @cache
        def match(i: int, j: int) -> bool:
            if i == len(segments):
                return j == len(parts)
            segment = segments[i]
            if segment.recursive:
                return any(match(i + 1, k) for k in range(j, len(parts) + 1))
            return (
                j < len(parts) and segment.matches(parts[j]) and match(i + 1, j + 1)
            )

        return match(0, 0)


def _compile_alternative(text: str) -> CompiledAlternative:
    absolute = text.startswith("/")
    anchored = "/" in text.rstrip("/")
    parts = [p for p in text.split("/") if p and p != "."]
    segments = [_compile_segment(p) for p in parts]
    if not anchored:
        segments.insert(0, _RECURSIVE)
    return CompiledAlternative(segments=tuple(segments), absolute=absolute)


@dataclass(frozen=True)
class CompiledGlob:
    """A compiled pattern: negation flag plus its brace alternatives."""

    pattern: str
    negated: bool
    alternatives: tuple[CompiledAlternative, ...]

    def matches(self, relative_parts: Sequence[str], absolute_parts: Sequence[str]) -> bool:
        """Match ignoring negation; callers decide include vs. exclude."""
        for alternative in self.alternatives:
            parts = absolute_parts if alternative.absolute else relative_parts
            if alternative.matches(parts):
                return True
        return False


def compile_pattern(pattern: str) -> CompiledGlob:
    """Compile a glob pattern (with optional leading ``!``)."""
    negated = pattern.startswith(NEGATION_PREFIX)
    body = pattern[len(NEGATION_PREFIX) :] if negated else pattern
    alternatives = tuple(
        _compile_alternative(text) for text in expand_braces(body) if text.strip("/.")
    )
    return CompiledGlob(pattern=pattern, negated=negated, alternatives=alternatives)


def is_glob(text: str) -> bool:
    """True if ``text`` uses any glob syntax (wildcards, braces, negation)."""
    return text.startswith(NEGATION_PREFIX) or any(ch in text for ch in GLOB_CHARACTERS)


class GlobSet:
    """A group of patterns: positives are OR'd, negated patterns exclude.

    With no positive pattern every candidate is included before negation.
    Candidates deeper than ``max_depth`` segments below the base never match.
    """

    def __init__(
        self, patterns: Iterable[str], max_depth: int = DEFAULT_MAX_DEPTH
    ) -> None:
        compiled = [compile_pattern(p) for p in patterns]
        self.patterns = tuple(c.pattern for c in compiled)
        self.include = tuple(c for c in compiled if not c.negated)
        self.exclude = tuple(c for c in compiled if c.negated)
        self.max_depth = max_depth

    def matches(self, path: Path, base: Path) -> bool:
        """Match ``path`` (a descendant of ``base``) against the group."""
        try:
            relative_parts = path.relative_to(base).parts
        except ValueError:
            return False
        if len(relative_parts) > self.max_depth:
            return False

        absolute_parts = path.parts[1:]
        if self.include and not any(
            c.matches(relative_parts, absolute_parts) for c in self.include
        ):
            return False
        return not any(c.matches(relative_parts, absolute_parts) for c in self.exclude)

    def __repr__(self) -> str:
        return f"GlobSet({list(self.patterns)!r}, max_depth={self.max_depth})"
