from __future__ import annotations

from typing import Protocol

from ..core.enums import PositionErrorCode
from .model import LocationSample


class PositionError(Exception):
    """Failure reported by the device positioning capability."""

    def __init__(self, code: PositionErrorCode, message: str = ""):
        super().__init__(message or code.name)
        self.code = code


class PositionProvider(Protocol):
    async def current_position(self, *, timeout: float, maximum_age: float = 0) -> LocationSample:
        """Return one fix or raise PositionError.

        ``maximum_age=0`` asks for a fresh read rather than a cached fix.
        """

        raise NotImplementedError
