"""
Profile editor — idempotent block rewrites in a shell profile.

The profile is parsed into an ordered list of lines. A block edit is:

    1. drop every line matching the block's marker comment
    2. drop every line matching one of the block's stale patterns,
       and every line identical to one the block is about to write
    3. append the marker and the block's lines at the end

Removal is expressed as line predicates so each one can be checked on
its own (see ``environments.find_collisions``). Edits happen in memory
inside an editing session and are written back atomically when the
session closes cleanly.
"""

from __future__ import annotations

import logging
import os
import re
import tempfile
from collections.abc import Callable, Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path

from devbox.core.models.setup import ProfileBlock

logger = logging.getLogger(__name__)

LinePredicate = Callable[[str], bool]

_ENCODING = "utf-8"
_ERRORS = "surrogateescape"


class ProfileError(Exception):
    """Raised when the profile cannot be read or written."""


# ── Predicates ───────────────────────────────────────────────────


def is_blank(line: str) -> bool:
    return not line.strip()


def marker_predicate(marker: str) -> LinePredicate:
    """Match the marker line exactly, ignoring surrounding whitespace."""
    marker = marker.strip()

    def _matches(line: str) -> bool:
        return line.strip() == marker

    return _matches


def exact_predicate(lines: Iterable[str]) -> LinePredicate:
    """Match any of ``lines`` verbatim (surrounding whitespace ignored)."""
    wanted = {line.strip() for line in lines}

    def _matches(line: str) -> bool:
        return line.strip() in wanted

    return _matches


def pattern_predicate(pattern: str) -> LinePredicate:
    """Match lines containing ``pattern`` (a regular expression)."""
    compiled = re.compile(pattern)

    def _matches(line: str) -> bool:
        return compiled.search(line) is not None

    return _matches


def block_predicates(block: ProfileBlock) -> list[LinePredicate]:
    """All removal predicates for ``block``: marker, stale content, own lines."""
    return [
        marker_predicate(block.marker),
        *(pattern_predicate(p) for p in block.stale_patterns),
        exact_predicate(block.lines),
    ]


# ── Profile file ─────────────────────────────────────────────────


def split_lines(text: str) -> list[str]:
    """Split on ``\\n`` only; a trailing newline does not add a line.

    ``str.splitlines`` would also break on form feeds, ``\\x1c`` and
    friends, which are legal inside a shell line.
    """
    if not text:
        return []
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()
    return lines


class ProfileFile:
    """A shell profile held as an ordered list of lines.

    Text is decoded as UTF-8 with ``surrogateescape`` so bytes from
    other encodings are written back unchanged.
    """

    def __init__(self, path: Path, lines: Iterable[str] = ()):
        self.path = path
        self.lines: list[str] = list(lines)

    @classmethod
    def load(cls, path: Path) -> ProfileFile:
        """Read ``path``; a missing file is an empty profile."""
        try:
            if not path.exists():
                logger.debug("Profile %s does not exist yet", path)
                return cls(path)
            text = path.read_text(encoding=_ENCODING, errors=_ERRORS)
        except OSError as e:
            raise ProfileError(f"Cannot read profile {path}: {e}") from e
        return cls(path, split_lines(text))

    @property
    def text(self) -> str:
        return "".join(f"{line}\n" for line in self.lines)

    def remove_where(self, predicate: LinePredicate) -> int:
        """Drop every line matching ``predicate``. Returns the count removed."""
        kept = [line for line in self.lines if not predicate(line)]
        removed = len(self.lines) - len(kept)
        self.lines = kept
        return removed

    def append(self, lines: Iterable[str]) -> None:
        self.lines.extend(lines)

    def save(self) -> None:
        """Write the profile atomically, keeping the original file mode."""
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            mode = self.path.stat().st_mode & 0o777 if self.path.exists() else 0o644

            fd, tmp_name = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=self.path.parent)
            with os.fdopen(fd, "w", encoding=_ENCODING, errors=_ERRORS) as fh:
                fh.write(self.text)
                fh.flush()
                os.fsync(fh.fileno())
            os.chmod(tmp_name, mode)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)
            raise ProfileError(f"Cannot write profile {self.path}: {e}") from e

        logger.debug("Wrote %d lines to %s", len(self.lines), self.path)


# ── Editor ───────────────────────────────────────────────────────


class ProfileEditor:
    """Applies named blocks to a ProfileFile."""

    def __init__(self, profile: ProfileFile):
        self.profile = profile

    @classmethod
    @contextmanager
    def open(cls, path: Path) -> Iterator[ProfileEditor]:
        """Editing session: load, strip blank lines, save on clean exit.

        If the body raises, nothing is written.
        """
        profile = ProfileFile.load(path)
        stripped = profile.remove_where(is_blank)
        if stripped:
            logger.debug("Stripped %d blank lines from %s", stripped, path)

        editor = cls(profile)
        yield editor
        profile.save()

    def apply_block(
        self,
        marker: str,
        stale_patterns: Iterable[str],
        new_lines: Iterable[str],
    ) -> int:
        """Replace the block identified by ``marker``.

        Lines identical to ``new_lines`` are dropped too, so repeating
        the call leaves one copy even when no stale pattern covers them.

        Returns the number of old lines removed.
        """
        new_lines = list(new_lines)
        removed = self.profile.remove_where(marker_predicate(marker))
        for pattern in stale_patterns:
            removed += self.profile.remove_where(pattern_predicate(pattern))
        removed += self.profile.remove_where(exact_predicate(new_lines))

        self.profile.append([marker, *new_lines])
        logger.info("Applied block %r (%d stale lines removed)", marker, removed)
        return removed

    def apply(self, block: ProfileBlock) -> int:
        return self.apply_block(block.marker, block.stale_patterns, block.lines)
