from __future__ import annotations

from dataclasses import dataclass

from ..core.exceptions import ValidationError
from .policies.base import IntegrityPolicy
from .policies.permissive_policy import PermissivePolicy
from .policies.strict_policy import StrictPolicy


@dataclass
class IntegrityPolicyFactory:
    """Factory Pattern: pick the integrity policy named in configuration."""

    def for_name(self, name: str | None) -> IntegrityPolicy:
        key = (name or PermissivePolicy.name).strip().lower()
        if key == PermissivePolicy.name:
            return PermissivePolicy()
        if key == StrictPolicy.name:
            return StrictPolicy()
        raise ValidationError(f"Unknown integrity policy: {name!r}")
