"""
The resource matcher.

Compares a requested GRN against a resource statement GRN. Partition,
system, region and tenant match exactly or through a ``*`` statement
field; the resource path also understands a trailing ``/*``.

Tenant isolation is not enforced here. Candidate policies are already
restricted to the evaluation's tenant by the grant resolver.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Mapping

from warden.authz.grn import Grn
from warden.authz.patterns import (
    WILDCARD,
    FieldPattern,
    NoMatch,
    parse_path,
    parse_segment,
)
from warden.authz.variables import resolve_variables, variable_names
from warden.core.models import ResourceStatement


@dataclass(frozen=True)
class ResourcePattern:
    """A resource statement compiled to one pattern per GRN field."""

    partition: FieldPattern
    system: FieldPattern
    region: FieldPattern
    tenant_id: FieldPattern
    resource_path: FieldPattern

    @classmethod
    def from_grn(cls, statement: Grn) -> ResourcePattern:
        return cls(
            partition=parse_segment(statement.partition),
            system=parse_segment(statement.system),
            region=parse_segment(statement.region),
            tenant_id=parse_segment(statement.tenant_id),
            resource_path=parse_path(statement.resource_path),
        )

    def matches(self, requested: Grn) -> bool:
        return (
            self.partition.matches(requested.partition)
            and self.system.matches(requested.system)
            and self.region.matches(requested.region)
            and self.tenant_id.matches(requested.tenant_id)
            and self.resource_path.matches(requested.resource_path)
        )


def matches_resource(requested: Grn, statement: Grn) -> bool:
    """Does a resource statement cover the requested resource?"""
    return ResourcePattern.from_grn(statement).matches(requested)


def _field(
    template: str,
    variables: Mapping[str, str] | None,
    parse: Callable[[str], FieldPattern],
) -> FieldPattern:
    names = variable_names(template)
    if variables is None or not names:
        return parse(template)

    # A filled-in value is data, never a pattern: "*" from an id must not widen the grant
    if any(WILDCARD in str(variables.get(name, "")) for name in names):
        return NoMatch()
    return parse(resolve_variables(template, variables))


def statement_pattern(
    statement: ResourceStatement,
    variables: Mapping[str, str] | None = None,
) -> ResourcePattern:
    """
    Compile a stored resource statement.

    ``${...}`` placeholders in any field are filled from ``variables``. A
    field whose filled-in values contain ``*`` matches nothing. Without
    ``variables`` placeholders stay literal text.
    """
    return ResourcePattern(
        partition=_field(statement.partition, variables, parse_segment),
        system=_field(statement.system, variables, parse_segment),
        region=_field(statement.region, variables, parse_segment),
        tenant_id=_field(statement.tenant_id, variables, parse_segment),
        resource_path=_field(statement.resource_path, variables, parse_path),
    )
