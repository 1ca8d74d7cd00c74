from __future__ import annotations

from typing import Optional

from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .model import User
from .repository import UserRepository


class MySQLUserRepository(UserRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_username(self, username: str) -> Optional[User]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT username, full_name, is_active FROM users WHERE username=%s",
                (username,),
            )
            r = fetchone(cur)
            if not r:
                return None
            return User(
                username=r["username"],
                full_name=r.get("full_name"),
                is_active=bool(r.get("is_active", 1)),
            )
