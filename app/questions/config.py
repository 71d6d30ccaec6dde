"""
Question Tree Configuration

Environment Variables:
- DATABASE_URL: Postgres DSN (falls back to PGHOST/PGPORT/PGDATABASE/PGUSER/PGPASSWORD)
- ADMIN_API_KEY: required X-Admin-API-Key value; unset = dev mode (open)
- QUESTIONS_AUTO_SCHEMA: create tables on startup (default: true)
- CORS_ALLOW_ORIGINS: comma-separated origins (default: *)
- LOG_LEVEL: root log level (default: INFO)
"""

import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional


def _env_flag(value: Optional[str], default: bool) -> bool:
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _database_url(env: Mapping[str, str]) -> str:
    database_url = env.get("DATABASE_URL")
    if database_url:
        return database_url

    # libpq keyword/value DSN built from the individual PG* variables
    parts = {
        "host": env.get("PGHOST", "localhost"),
        "port": env.get("PGPORT", "5432"),
        "dbname": env.get("PGDATABASE", "postgres"),
        "user": env.get("PGUSER", "postgres"),
        "password": env.get("PGPASSWORD", ""),
    }
    return " ".join(f"{key}={value}" for key, value in parts.items() if value)


@dataclass(frozen=True)
class QuestionsConfig:
    """Runtime settings for the question tree service."""
    database_url: str
    admin_api_key: Optional[str] = None
    auto_schema: bool = True
    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "QuestionsConfig":
        env = os.environ if env is None else env
        origins = [o.strip() for o in env.get("CORS_ALLOW_ORIGINS", "*").split(",") if o.strip()]
        return cls(
            database_url=_database_url(env),
            admin_api_key=env.get("ADMIN_API_KEY") or None,
            auto_schema=_env_flag(env.get("QUESTIONS_AUTO_SCHEMA"), True),
            cors_allow_origins=origins or ["*"],
            log_level=env.get("LOG_LEVEL", "INFO").upper(),
        )

    @property
    def admin_auth_enabled(self) -> bool:
        return bool(self.admin_api_key)
