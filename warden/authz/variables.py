"""
``${name}`` placeholders in resource templates.

Lets a policy say ``accounts/${accountId}`` ("your own account") and lets a
route guard say ``grn:global:iam::${tenantId}:accounts/${account_id}``.
"""

from __future__ import annotations

import re
from typing import Mapping

_VARIABLE = re.compile(r"\$\{(\w+)\}")


def resolve_variables(template: str, context: Mapping[str, str]) -> str:
    """
    Substitute every ``${name}`` in ``template``.

    Unknown names become the empty string.
    """
    return _VARIABLE.sub(lambda m: str(context.get(m.group(1), "")), template)


def variable_names(template: str) -> list[str]:
    """Names of the placeholders in ``template``, in order."""
    return _VARIABLE.findall(template)
