"""
Core module - data models and shared utilities.

This module contains:
- models: Policies, statements and grant edges
- utils: Shared utility functions
"""

from warden.core.models import (
    DEFAULT_POLICY_VERSION,
    Effect,
    GrantKind,
    Policy,
    ActionStatement,
    ResourceStatement,
    PolicyDocument,
    GrantEdge,
)

from warden.core.utils import (
    generate_id,
    utc_now,
)

__all__ = [
    # Models
    "DEFAULT_POLICY_VERSION",
    "Effect",
    "GrantKind",
    "Policy",
    "ActionStatement",
    "ResourceStatement",
    "PolicyDocument",
    "GrantEdge",
    # Utils
    "generate_id",
    "utc_now",
]
