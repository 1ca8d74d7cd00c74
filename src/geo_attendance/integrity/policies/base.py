from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from ...core.enums import AttendanceAction
from ..checker import IntegritySignal


@dataclass(frozen=True)
class PolicyContext:
    username: str
    action: AttendanceAction


class IntegrityPolicy(ABC):
    """Strategy Pattern: decide what an integrity signal means for a transition."""

    name: str = "base"

    @abstractmethod
    def apply(self, signal: IntegritySignal, *, context: PolicyContext) -> None:
        """Return normally to accept, raise IntegrityRejected to refuse."""

        raise NotImplementedError
