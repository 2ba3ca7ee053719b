"""Settings loaded from environment variables (+ optional .env).

One frozen Settings object is built at startup and handed to the pieces
that need it. Nothing else reads the environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List

from dotenv import find_dotenv, load_dotenv


class ConfigError(RuntimeError):
    """Required configuration is missing or unusable."""


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- Tokens ----
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    token_ttl_hours: int = 24

    # ---- Storage ----
    database_url: str = "sqlite:///./tasks.db"

    # ---- Server ----
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    # ---- Passwords ----
    bcrypt_rounds: int = 12

    @property
    def token_ttl(self) -> timedelta:
        return timedelta(hours=self.token_ttl_hours)

    @staticmethod
    def from_env(*, dotenv: bool = True) -> "Settings":
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True), override=False)

        jwt_secret = _env("JWT_SECRET").strip()
        if not jwt_secret:
            raise ConfigError("JWT_SECRET must be set")

        return Settings(
            jwt_secret=jwt_secret,
            jwt_algorithm=_env("JWT_ALGORITHM", "HS256"),
            token_ttl_hours=_env_int("TOKEN_TTL_HOURS", 24),
            database_url=_env("DATABASE_URL", "sqlite:///./tasks.db"),
            host=_env("HOST", "0.0.0.0"),
            port=_env_int("PORT", 3000),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            cors_origins=_env_list("CORS_ORIGINS", ["*"]),
            bcrypt_rounds=_env_int("BCRYPT_ROUNDS", 12),
        )
