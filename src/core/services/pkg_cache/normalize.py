"""
Package list normalization — one canonical form per requested set.

Callers hand us whatever the workflow author typed: comma lists,
space lists, YAML folded scalars with trailing backslashes. The cache
key must not change because of any of that.
"""

from __future__ import annotations

import re

# Commas and folded-scalar backslashes are separators, like whitespace.
_SEPARATORS = re.compile(r"[,\\]")


def split_package_list(raw: str) -> list[str]:
    """Split a raw package list into sorted, de-duplicated tokens."""
    tokens = _SEPARATORS.sub(" ", raw or "").split()
    return sorted(set(tokens))


def normalize_package_list(raw: str) -> str:
    """Canonicalize a raw package list.

    >>> normalize_package_list("b, a,  c")
    'a b c'

    Empty or whitespace-only input gives ``""``; whether that is
    acceptable is the caller's decision.
    """
    return " ".join(split_package_list(raw))


def strip_version(token: str) -> str:
    """``name=version`` → ``name``."""
    return token.split("=", 1)[0]


def strip_arch_qualifier(token: str) -> str:
    """``name:amd64`` → ``name``."""
    return token.split(":", 1)[0]


def bare_package_name(token: str) -> str:
    """Strip both the version and the arch qualifier from a token."""
    return strip_arch_qualifier(strip_version(token))
