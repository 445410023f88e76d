"""
Segment patterns used by the action and resource matchers.

A statement segment is either an exact string or the whole-segment
wildcard ``*``. There is no partial wildcarding: ``read*`` is the literal
string "read*".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


WILDCARD = "*"


@dataclass(frozen=True)
class Exact:
    """Matches one value, compared as a plain string."""

    value: str

    def matches(self, value: str) -> bool:
        return self.value == value


@dataclass(frozen=True)
class Wildcard:
    """Matches any value, including the empty string."""

    def matches(self, value: str) -> bool:
        return True


@dataclass(frozen=True)
class NoMatch:
    """Matches nothing. Used where a filled-in placeholder would act as a wildcard."""

    def matches(self, value: str) -> bool:
        return False


Segment = Union[Exact, Wildcard]


def parse_segment(raw: str) -> Segment:
    """Turn a statement segment into its pattern."""
    if raw == WILDCARD:
        return Wildcard()
    return Exact(raw)


# =============================================================================
# Resource Paths
# =============================================================================


@dataclass(frozen=True)
class PathPrefix:
    """
    A trailing-wildcard path such as ``accounts/*``.

    Matches the prefix itself and anything below it. The match is anchored
    at a ``/`` boundary, so ``accounts/*`` does not match ``accountsx/1``.
    """

    prefix: str

    def matches(self, path: str) -> bool:
        if path == self.prefix:
            return True
        return path.startswith(self.prefix + "/")


PathPattern = Union[Exact, Wildcard, PathPrefix]
FieldPattern = Union[Exact, Wildcard, PathPrefix, NoMatch]


def parse_path(raw: str) -> PathPattern:
    """Turn a statement resource path into its pattern."""
    if raw == WILDCARD:
        return Wildcard()
    if raw.endswith("/" + WILDCARD):
        return PathPrefix(raw[: -len("/" + WILDCARD)])
    return Exact(raw)
