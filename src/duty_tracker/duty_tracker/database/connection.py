from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping

import mysql.connector

# Every session reads and writes DATETIME columns as naive UTC.
SESSION_TIME_ZONE = "+00:00"


@dataclass(frozen=True)
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any]) -> "DBConfig":
        """Build from a settings DB_CONFIG mapping, filling local defaults."""
        return cls(
            host=str(settings.get("host", "localhost")),
            port=int(settings.get("port", 3306)),
            user=str(settings.get("user", "root")),
            password=str(settings.get("password", "")),
            database=str(settings.get("database", "duty_tracker")),
        )

    def connect_kwargs(self, *, with_database: bool = True) -> Dict[str, Any]:
        kwargs: Dict[str, Any] = {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "time_zone": SESSION_TIME_ZONE,
        }
        if with_database:
            kwargs["database"] = self.database
        return kwargs

    def describe(self) -> str:
        return f"{self.user}@{self.host}:{self.port}/{self.database}"


class DatabaseConnection:
    """Connection factory handed to every repository.

    Each repository call opens a short-lived connection through `db_cursor`
    and closes it when the transaction ends.
    """

    def __init__(self, config: DBConfig):
        self._config = config

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any]) -> "DatabaseConnection":
        return cls(DBConfig.from_settings(settings))

    @property
    def config(self) -> DBConfig:
        return self._config

    def connect(self):
        return mysql.connector.connect(**self._config.connect_kwargs())

    def connect_server(self):
        """Connection without a default schema, for CREATE DATABASE."""
        return mysql.connector.connect(**self._config.connect_kwargs(with_database=False))
