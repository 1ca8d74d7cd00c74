from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class User:
    """Thực thể miền (domain): Nhân viên, định danh bằng username."""

    username: str
    full_name: Optional[str] = None
    is_active: bool = True
