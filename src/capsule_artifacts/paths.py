"""Glob resolution of artifact patterns against a capsule directory.

Patterns follow ``pathlib`` glob semantics (``*``, ``?``, ``**`` and
``[...]`` classes) extended with:

* brace alternatives, ``dist/*.{js,map}``, expanded before matching;
* negation, ``!dist/**/*.map`` removes whatever it matches from the patterns
  listed before it;
* a trailing ``**`` matches every file below that directory, and so does a
  plain pattern naming a directory (``dist``).

Only regular files are returned, as paths relative to the root.  Wildcards
never match a leading dot: a dot file or dot directory is only matched where
the pattern segment itself starts with ``.``, e.g. ``.cache/**`` or ``**/.env``
(neither of which descends into a nested dot directory).
"""
from __future__ import annotations

import logging
import os
import re
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, Iterator, List, Sequence, Set, Union

logger = logging.getLogger(__name__)

PatternGroup = Union[str, Sequence["PatternGroup"]]

NEGATION_PREFIX = "!"


def flatten_patterns(patterns: Iterable[PatternGroup]) -> List[str]:
    """Flatten arbitrarily nested pattern groups into one ordered list."""
    flat: List[str] = []
    for item in patterns:
        if isinstance(item, str):
            flat.append(item)
        elif isinstance(item, (list, tuple)):
            flat.extend(flatten_patterns(item))
        else:
            raise ValueError(
                f"Glob patterns must be strings or sequences of strings, got {type(item).__name__}."
            )
    return flat


def expand_braces(pattern: str) -> List[str]:
    """Expand ``{a,b}`` alternatives, innermost groups included.

    A brace group without a top-level comma, or an unbalanced brace, is kept
    literally.
    """
    start = pattern.find("{")
    while start != -1:
        depth = 0
        commas: List[int] = []
        end = -1
        for i in range(start, len(pattern)):
            ch = pattern[i]
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    end = i
                    break
            elif ch == "," and depth == 1:
                commas.append(i)
        if end == -1:
            return [pattern]
        if commas:
            prefix, suffix = pattern[:start], pattern[end + 1:]
            bounds = [start] + commas + [end]
            expanded: List[str] = []
            for lo, hi in zip(bounds, bounds[1:]):
                for option in expand_braces(pattern[lo + 1:hi]):
                    expanded.extend(expand_braces(prefix + option + suffix))
            return expanded
        start = pattern.find("{", start + 1)
    return [pattern]


def validate_pattern(pattern: str) -> None:
    """Raise :exc:`ValueError` if *pattern* could match outside its root."""
    if not isinstance(pattern, str) or not pattern.strip(NEGATION_PREFIX).strip():
        raise ValueError(f"Glob pattern must be a non-empty string, got {pattern!r}.")
    body = pattern[1:] if pattern.startswith(NEGATION_PREFIX) else pattern
    if body.startswith("/") or PurePosixPath(body).is_absolute() or Path(body).is_absolute():
        raise ValueError(f"Glob pattern {pattern!r} must be relative to the artifact root.")
    if ".." in PurePosixPath(body.replace("\\", "/")).parts:
        raise ValueError(f"Glob pattern {pattern!r} must not reach outside the artifact root.")


def _normalize(pattern: str) -> str:
    while pattern.startswith("./"):
        pattern = pattern[2:]
    pattern = pattern.rstrip("/")
    if pattern == "**" or pattern.endswith("/**"):
        pattern += "/*"
    return pattern


def _has_magic(pattern: str) -> bool:
    return any(ch in pattern for ch in "*?[")


def _translate_segment(segment: str) -> str:
    out = [] if segment.startswith(".") else [r"(?!\.)"]
    i = 0
    while i < len(segment):
        ch = segment[i]
        if ch == "*":
            out.append("[^/]*")
        elif ch == "?":
            out.append("[^/]")
        elif ch == "[":
            close = segment.find("]", i + 2 if segment[i + 1:i + 2] in ("!", "]") else i + 1)
            if close == -1:
                out.append(re.escape(ch))
            else:
                body = segment[i + 1:close]
                if body.startswith("!"):
                    body = "^" + body[1:]
                out.append("[" + body.replace("\\", "\\\\") + "]")
                i = close
        else:
            out.append(re.escape(ch))
        i += 1
    return "".join(out)


def _dot_safe_regex(pattern: str) -> re.Pattern[str]:
    """Compile *pattern* so that wildcards never match a leading dot.

    A dot segment is only matched where the pattern segment itself starts
    with ``.``; ``**`` never descends into dot directories.
    """
    segments = pattern.split("/")
    parts: List[str] = []
    for i, segment in enumerate(segments):
        last = i == len(segments) - 1
        if segment == "**":
            parts.append(r"(?:(?!\.)[^/]+/)*" if not last else r"(?:(?!\.)[^/]+(?:/|$))*")
        else:
            parts.append(_translate_segment(segment) + ("" if last else "/"))
    flags = re.IGNORECASE if os.path.normcase("A") == "a" else 0
    return re.compile("".join(parts), flags)


class PathResolver:
    """Expands artifact glob patterns into matched paths relative to a root."""

    def resolve(self, root_dir: Path, patterns: Iterable[PatternGroup]) -> List[str]:
        """Return the files under *root_dir* matched by *patterns*.

        Order is pattern order, sorted within each pattern, with duplicates
        dropped after their first occurrence.  A negated pattern only filters
        the positive patterns listed before it.  A missing *root_dir* or a
        pattern set with no matches gives an empty list.
        """
        root = Path(root_dir)
        flat = flatten_patterns(patterns)
        for pattern in flat:
            validate_pattern(pattern)

        if not root.is_dir():
            logger.debug("Artifact root %s does not exist", root)
            return []

        negated: Dict[int, Set[str]] = {
            i: set(self._match(root, p[len(NEGATION_PREFIX):]))
            for i, p in enumerate(flat)
            if p.startswith(NEGATION_PREFIX)
        }

        matched: List[str] = []
        seen: Set[str] = set()
        for i, pattern in enumerate(flat):
            if pattern.startswith(NEGATION_PREFIX):
                continue
            excluded: Set[str] = set()
            for j, paths in negated.items():
                if j > i:
                    excluded |= paths
            for rel in self._match(root, pattern):
                if rel not in seen and rel not in excluded:
                    seen.add(rel)
                    matched.append(rel)

        logger.debug("Resolved %d path(s) under %s for %s", len(matched), root, flat)
        return matched

    def _match(self, root: Path, pattern: str) -> Iterator[str]:
        for expanded in expand_braces(pattern):
            expanded = _normalize(expanded)
            if not expanded:
                continue
            if not _has_magic(expanded) and (root / expanded).is_dir():
                expanded += "/**/*"
            allowed = _dot_safe_regex(expanded)
            hits = []
            for path in root.glob(expanded):
                if not path.is_file():
                    continue
                rel = path.relative_to(root).as_posix()
                if allowed.fullmatch(rel):
                    hits.append(rel)
            yield from sorted(hits)
