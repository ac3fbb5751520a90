"""
Install transcript parsing — recover the installed closure from apt output.

apt prints one announcement per unpacked package:

    Unpacking libcurl4:amd64 (7.81.0-1ubuntu1.15) ...
    Unpacking jq (1.6-2.1ubuntu3) over (1.6-2.1ubuntu2) ...

Only lines starting with ``Unpacking `` are examined. Each is read with
a small hand-written grammar:

    unpack    := "Unpacking " name qualifier? ws progress? "(" ws* version
    name      := [^ :]+
    qualifier := ":" [^ ]*
    progress  := "[" [^ \\]]+ "]" ws
    version   := [^ )]+

A line that starts with the prefix but does not fit the grammar aborts
the whole parse. A closure with a silently dropped entry would cache
the wrong state.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from pathlib import Path

from src.core.models.package import PackageRef
from src.core.services.pkg_cache.errors import (
    EmptyVersionError,
    MissingPackageNameError,
    MissingVersionError,
    UnterminatedProgressError,
)

logger = logging.getLogger(__name__)

UNPACK_PREFIX = "Unpacking "


class _Cursor:
    """Read position over a single transcript line."""

    def __init__(self, text: str, pos: int = 0):
        self.text = text
        self.pos = pos

    def peek(self) -> str:
        return self.text[self.pos] if self.pos < len(self.text) else ""

    def accept(self, ch: str) -> bool:
        if self.peek() == ch:
            self.pos += 1
            return True
        return False

    def take_while(self, pred: Callable[[str], bool]) -> str:
        start = self.pos
        while self.pos < len(self.text) and pred(self.text[self.pos]):
            self.pos += 1
        return self.text[start:self.pos]

    def skip_spaces(self) -> int:
        return len(self.take_while(str.isspace))


def is_unpack_line(line: str) -> bool:
    return line.startswith(UNPACK_PREFIX)


def parse_unpack_line(line: str, line_number: int = 0) -> PackageRef:
    """Parse one ``Unpacking ...`` line into a resolved PackageRef.

    Raises:
        TranscriptParseError: One of its subclasses, naming which part of
            the grammar the line broke.
    """
    cur = _Cursor(line, len(UNPACK_PREFIX))

    name = cur.take_while(lambda c: c not in " :")
    if not name:
        raise MissingPackageNameError(line, line_number, cur.pos)

    # Multi-arch qualifier (":amd64"); not part of the package identity.
    cur.take_while(lambda c: c != " ")

    if not cur.skip_spaces():
        raise MissingVersionError(line, line_number, cur.pos)

    if cur.accept("["):
        cur.take_while(lambda c: c not in " ]")
        if not cur.accept("]"):
            raise UnterminatedProgressError(line, line_number, cur.pos)
        cur.skip_spaces()

    if not cur.accept("("):
        raise MissingVersionError(line, line_number, cur.pos)
    cur.skip_spaces()

    version = cur.take_while(lambda c: c not in " )")
    if not version:
        raise EmptyVersionError(line, line_number, cur.pos)

    return PackageRef(name=name, version=version)


def parse_transcript(lines: Iterable[str]) -> list[PackageRef]:
    """Extract the installed closure from transcript lines.

    Returns packages in order of appearance. Duplicates (a package
    removed and reinstalled in one run) are kept; an empty list is a
    valid result.
    """
    closure: list[PackageRef] = []
    for number, raw in enumerate(lines, start=1):
        line = raw.rstrip("\r\n")
        if not is_unpack_line(line):
            continue
        ref = parse_unpack_line(line, number)
        logger.debug("Transcript line %d: %s", number, ref)
        closure.append(ref)
    return closure


def read_transcript(path: Path) -> list[PackageRef]:
    """Parse the transcript stored at ``path``."""
    with open(path, encoding="utf-8", errors="replace") as fh:
        closure = parse_transcript(fh)
    logger.info("Parsed %d installed package(s) from %s", len(closure), path)
    return closure
