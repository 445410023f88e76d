"""
Actions and the action matcher.

An action names what a caller wants to do, ``system:resource:operation``
(e.g. ``iam:accounts:read``). Policy action statements use the same shape
and may replace any whole segment with ``*``.
"""

from __future__ import annotations

from dataclasses import dataclass

from warden.authz.grn import MalformedInputError
from warden.authz.patterns import parse_segment


class MalformedActionError(MalformedInputError):
    """Raised when a string is not a well-formed action."""
    pass


@dataclass(frozen=True)
class Action:
    """A requested action or an action statement."""

    system: str
    resource: str
    operation: str

    def __str__(self) -> str:
        return format_action(self)


def parse_action(value: str) -> Action:
    """
    Parse ``system:resource:operation``.

    Raises:
        MalformedActionError: not exactly three non-empty segments.
    """
    parts = value.split(":")
    if len(parts) != 3 or not all(parts):
        raise MalformedActionError(
            f"Action must look like 'system:resource:operation': {value!r}"
        )
    system, resource, operation = parts
    return Action(system=system, resource=resource, operation=operation)


def format_action(action: Action) -> str:
    return f"{action.system}:{action.resource}:{action.operation}"


def matches_action(requested: Action, statement: Action) -> bool:
    """
    Does an action statement cover the requested action?

    Every segment must match on its own, either by equality or because the
    statement segment is ``*``.
    """
    return (
        parse_segment(statement.system).matches(requested.system)
        and parse_segment(statement.resource).matches(requested.resource)
        and parse_segment(statement.operation).matches(requested.operation)
    )
