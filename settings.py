"""Centralized configuration for the FoodieSpace API."""

import logging
from functools import lru_cache
from typing import List, Literal, Optional

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load a local .env before the settings singleton is built so plain os.getenv
# consumers (uvicorn, firebase-admin) observe the same values.
load_dotenv()

DEFAULT_DATABASE_URL = "mongodb://localhost:27017"
DEFAULT_DATABASE_NAME = "foodieSpaceDB"
DEFAULT_SECRET_KEY = "supersecretkey"
DEFAULT_LOG_LEVEL = "INFO"


class AppSettings(BaseSettings):
    """Typed configuration surface built on top of ``pydantic-settings``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    database_url: str = Field(
        default=DEFAULT_DATABASE_URL,
        alias="DATABASE_URL",
        description="MongoDB connection string (mongodb:// or mongodb+srv://).",
    )
    database_name: str = Field(default=DEFAULT_DATABASE_NAME, alias="DATABASE_NAME")
    database_timeout_ms: int = Field(
        default=5000,
        alias="DATABASE_TIMEOUT_MS",
        description="Server selection timeout handed to the MongoDB client.",
    )
    auth_provider: Literal["firebase", "jwt"] = Field(
        default="firebase",
        alias="AUTH_PROVIDER",
        description="Identity provider used to verify bearer tokens.",
    )
    firebase_credentials: Optional[str] = Field(
        default=None,
        alias="FIREBASE_CREDENTIALS",
        description=(
            "Path to a Firebase service-account JSON file. Application default"
            " credentials are used when unset."
        ),
    )
    firebase_project_id: Optional[str] = Field(default=None, alias="FIREBASE_PROJECT_ID")
    secret_key: str = Field(default=DEFAULT_SECRET_KEY, alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(default=24 * 60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    cors_allow_origins_raw: Optional[str] = Field(
        default=None,
        alias="CORS_ALLOW_ORIGINS",
        description="Comma-separated list of allowed CORS origins.",
    )
    log_level: str = Field(default=DEFAULT_LOG_LEVEL, alias="LOG_LEVEL")
    port: int = Field(default=5050, alias="PORT")

    @property
    def cors_allow_origins(self) -> List[str]:
        """Return the configured CORS origins, ``["*"]`` when none are set."""

        if not self.cors_allow_origins_raw:
            return ["*"]

        origins = [
            origin.strip().rstrip("/")
            for origin in self.cors_allow_origins_raw.split(",")
            if origin.strip()
        ]
        return origins or ["*"]

    @property
    def log_level_numeric(self) -> int:
        """Translate ``log_level`` into the numeric constant expected by logging."""

        candidate = logging.getLevelName(self.log_level.upper())
        if isinstance(candidate, int):
            return candidate
        return logging.INFO

    def optional_config_warnings(self) -> List[str]:
        """Return human-readable warnings for risky default configuration."""

        warnings: List[str] = []

        if self.auth_provider == "jwt" and self.secret_key == DEFAULT_SECRET_KEY:
            warnings.append(
                "SECRET_KEY is not set - local JWT tokens are signed with the default key"
            )

        if self.cors_allow_origins == ["*"]:
            warnings.append("CORS_ALLOW_ORIGINS is not set - accepting requests from any origin")

        if self.auth_provider == "firebase" and not self.firebase_credentials:
            warnings.append(
                "FIREBASE_CREDENTIALS is not set - falling back to application default credentials"
            )

        return warnings


@lru_cache(maxsize=1)
def get_settings() -> AppSettings:
    """Return a cached instance of :class:`AppSettings`."""

    return AppSettings()
