from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Any, ClassVar

import mysql.connector


@dataclass(frozen=True)
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    connection_timeout: int = 10

    @classmethod
    def from_dict(cls, db_config: dict) -> "DBConfig":
        return cls(
            host=str(db_config.get("host", "localhost")),
            port=int(db_config.get("port", 3306)),
            user=str(db_config.get("user", "root")),
            password=str(db_config.get("password", "")),
            database=str(db_config["database"]),
            connection_timeout=int(db_config.get("connection_timeout", 10)),
        )

    def connect_kwargs(self) -> dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "database": self.database,
            "connection_timeout": self.connection_timeout,
            "autocommit": False,
            # DATETIME columns hold naive UTC.
            "time_zone": "+00:00",
        }


class DatabaseConnection:
    """Connection factory shared by the MySQL repositories, one per distinct DBConfig.

    Each unit of work opens its own short-lived connection (see ``mysql_base.db_cursor``).
    """

    _instances: ClassVar[dict[DBConfig, "DatabaseConnection"]] = {}
    _guard: ClassVar[threading.Lock] = threading.Lock()

    def __init__(self, config: DBConfig):
        self._config = config

    @property
    def config(self) -> DBConfig:
        return self._config

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        with cls._guard:
            if config not in cls._instances:
                cls._instances[config] = cls(config)
            return cls._instances[config]

    def connect(self):
        return mysql.connector.connect(**self._config.connect_kwargs())
