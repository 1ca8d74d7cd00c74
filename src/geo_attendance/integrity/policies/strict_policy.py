from __future__ import annotations

from ...core.exceptions import IntegrityRejected
from ..checker import IntegritySignal
from .base import PolicyContext
from .permissive_policy import PermissivePolicy


class StrictPolicy(PermissivePolicy):
    """Logs like the permissive policy, then refuses samples implying rapid movement."""

    name = "strict"

    def apply(self, signal: IntegritySignal, *, context: PolicyContext) -> None:
        super().apply(signal, context=context)
        if signal.flags.rapid_movement:
            raise IntegrityRejected(
                f"Location rejected: implied speed {signal.implied_speed_mps:.1f} m/s since the last accepted location"
            )
