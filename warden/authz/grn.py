"""
Global Resource Names.

A GRN identifies one resource instance:

    grn:{partition}:{system}:{region}:{tenant_id}:{resource_path}

e.g. ``grn:global:iam::tenant-1:accounts/42``. The region is often empty.
The resource path is everything after the fifth colon and may itself
contain colons.
"""

from __future__ import annotations

from dataclasses import dataclass


GRN_PREFIX = "grn"
_FIELD_COUNT = 6


class MalformedInputError(ValueError):
    """Raised when a caller-supplied action or resource string cannot be parsed."""
    pass


class MalformedGrnError(MalformedInputError):
    """Raised when a string is not a well-formed GRN."""
    pass


@dataclass(frozen=True)
class Grn:
    """The five structured fields of a GRN."""

    partition: str
    system: str
    region: str
    tenant_id: str
    resource_path: str

    def __str__(self) -> str:
        return format_grn(self)


def parse_grn(value: str) -> Grn:
    """
    Parse a GRN string.

    Raises:
        MalformedGrnError: fewer than six colon separated tokens, or the
            leading token is not the literal ``grn``.
    """
    tokens = value.split(":")
    if len(tokens) < _FIELD_COUNT:
        raise MalformedGrnError(f"GRN needs {_FIELD_COUNT} fields: {value!r}")
    if tokens[0] != GRN_PREFIX:
        raise MalformedGrnError(f"GRN must start with '{GRN_PREFIX}:': {value!r}")

    return Grn(
        partition=tokens[1],
        system=tokens[2],
        region=tokens[3],
        tenant_id=tokens[4],
        resource_path=":".join(tokens[5:]),
    )


def format_grn(grn: Grn) -> str:
    """Format a GRN; the exact inverse of :func:`parse_grn`."""
    return ":".join(
        (
            GRN_PREFIX,
            grn.partition,
            grn.system,
            grn.region,
            grn.tenant_id,
            grn.resource_path,
        )
    )
