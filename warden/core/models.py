"""
Core data models for the warden service.

These models describe what the authorization engine reads: policies,
their action and resource statements, and the grant edges that connect
accounts, groups and roles to policies. Every record is tenant scoped.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from warden.core.utils import generate_id, utc_now


DEFAULT_POLICY_VERSION = "2025-12-24"


# =============================================================================
# Enums
# =============================================================================


class Effect(str, Enum):
    """What a policy does when it is triggered."""

    ALLOW = "Allow"
    DENY = "Deny"


class GrantKind(str, Enum):
    """
    The six many-to-many associations between identities and policies.

    The value doubles as the collection name in metadata storage.
    """

    ACCOUNT_POLICY = "account_policy"
    ACCOUNT_ROLE = "account_role"
    ACCOUNT_GROUP = "account_group"
    GROUP_ROLE = "group_role"
    GROUP_POLICY = "group_policy"
    ROLE_POLICY = "role_policy"

    @property
    def source_field(self) -> str:
        """Name of the foreign key on the left side of the edge."""
        return f"{self.value.split('_')[0]}_id"

    @property
    def target_field(self) -> str:
        """Name of the foreign key on the right side of the edge."""
        return f"{self.value.split('_')[1]}_id"


# =============================================================================
# Policies
# =============================================================================


class Policy(BaseModel):
    """
    An Allow or Deny rule owned by a tenant.

    The effect applies uniformly to every statement attached to the
    policy. ``version`` records which statement syntax the author wrote
    against; it does not influence evaluation.
    """

    id: str = Field(default_factory=lambda: generate_id("pol"))
    tenant_id: str

    version: str = DEFAULT_POLICY_VERSION
    name: str = Field(min_length=1)
    description: str | None = None
    effect: Effect

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("version")
    @classmethod
    def _validate_version(cls, v: str) -> str:
        # Must be a real calendar date written exactly as YYYY-MM-DD
        try:
            parsed = date.fromisoformat(v)
        except ValueError:
            raise ValueError("Version must be valid ISO date (YYYY-MM-DD)")
        if parsed.isoformat() != v:
            raise ValueError("Version must be valid ISO date (YYYY-MM-DD)")
        return v


class ActionStatement(BaseModel):
    """An action rule: ``system:resource:operation``, any segment may be ``*``."""

    id: str = Field(default_factory=lambda: generate_id("act"))
    policy_id: str
    system: str
    resource: str
    operation: str

    def format(self) -> str:
        return f"{self.system}:{self.resource}:{self.operation}"

    def __str__(self) -> str:
        return self.format()


class ResourceStatement(BaseModel):
    """A resource rule, stored as the five GRN fields."""

    id: str = Field(default_factory=lambda: generate_id("res"))
    policy_id: str
    partition: str
    system: str
    region: str = ""
    tenant_id: str
    resource_path: str

    def format(self) -> str:
        return (
            f"grn:{self.partition}:{self.system}:{self.region}:"
            f"{self.tenant_id}:{self.resource_path}"
        )

    def __str__(self) -> str:
        return self.format()


class PolicyDocument(BaseModel):
    """A policy together with all of its statements."""

    policy: Policy
    action_statements: list[ActionStatement] = Field(default_factory=list)
    resource_statements: list[ResourceStatement] = Field(default_factory=list)

    @property
    def id(self) -> str:
        return self.policy.id

    @property
    def effect(self) -> Effect:
        return self.policy.effect


# =============================================================================
# Grant Edges
# =============================================================================


class GrantEdge(BaseModel):
    """
    One association row, e.g. account -> role.

    Unique on (tenant_id, kind, source_id, target_id).
    """

    id: str = Field(default_factory=lambda: generate_id("grant"))
    tenant_id: str
    kind: GrantKind
    source_id: str
    target_id: str
    created_at: datetime = Field(default_factory=utc_now)

    def to_record(self) -> dict[str, str]:
        """Row shape used in metadata storage, keyed by the real field names."""
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            self.kind.source_field: self.source_id,
            self.kind.target_field: self.target_id,
            "created_at": self.created_at.isoformat(),
        }
