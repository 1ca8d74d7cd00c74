from __future__ import annotations

import logging

from ..checker import IntegritySignal
from .base import IntegrityPolicy, PolicyContext

logger = logging.getLogger(__name__)


class PermissivePolicy(IntegrityPolicy):
    """Flags are surfaced in the logs only; nothing is blocked."""

    name = "permissive"

    def apply(self, signal: IntegritySignal, *, context: PolicyContext) -> None:
        if signal.flags.low_accuracy:
            logger.warning(
                "low accuracy %s for %s: %.1fm",
                context.action.value,
                context.username,
                signal.accuracy_meters,
            )
        if signal.flags.rapid_movement:
            logger.warning(
                "rapid movement %s for %s: %.1f m/s over %.0fm",
                context.action.value,
                context.username,
                signal.implied_speed_mps,
                signal.distance_meters or 0.0,
            )
