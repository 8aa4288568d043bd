"""
Application configuration — Pydantic Settings.

Values are layered, highest priority first:
  1. Keyword arguments passed to ``Settings(...)``.
  2. Environment variables.
  3. ``.env`` file.
  4. YAML config file (``VISUALIZATION_API_CONFIG``), ignored when missing.
"""

import os
from functools import lru_cache
from typing import Optional, Tuple, Type

from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

CONFIG_PATH_ENV = "VISUALIZATION_API_CONFIG"
DEFAULT_CONFIG_PATH = (
    "/etc/platformvisibility/visualization-api/visualization-api.yaml"
)


def config_file_path() -> str:
    """YAML config path, read from the environment on every load."""
    return os.environ.get(CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH)


class Settings(BaseSettings):
    """Application settings loaded from env, .env and the YAML config file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Application ──────────────────────────────────────────────
    APP_NAME: str = "VisualizationAPI"
    APP_ENV: str = "development"
    DEBUG: bool = False
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # ── Database (MySQL) ─────────────────────────────────────────
    DB_HOST: str = "localhost"
    DB_PORT: int = 3306
    DB_NAME: str = "visualization_api"
    DB_USER: str = "root"
    DB_PASSWORD: str = ""
    # Full SQLAlchemy URL; overrides the DB_* values when set
    DATABASE_URL: Optional[str] = None

    # ── Grafana ──────────────────────────────────────────────────
    GRAFANA_URL: str = "http://localhost:3000"
    GRAFANA_USER: str = "admin"
    GRAFANA_PASSWORD: str = ""
    GRAFANA_TIMEOUT: float = 5.0

    # ── JWT ──────────────────────────────────────────────────────
    JWT_SECRET_KEY: str = ""
    JWT_ALGORITHM: str = "HS256"

    # ── Logging ──────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "logs/visualization-api.log"
    LOG_CONSOLE_DEBUG: bool = False

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=config_file_path()),
        )

    # ── URL Builders ─────────────────────────────────────────────

    def _build_url(self, driver: str, user: str, password: str,
                   host: str, port: int, db_name: str) -> str:
        """Build a SQLAlchemy database URL."""
        cred = f"{user}:{password}" if password else user
        return f"mysql+{driver}://{cred}@{host}:{port}/{db_name}"

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return self._build_url(
            "pymysql", self.DB_USER, self.DB_PASSWORD,
            self.DB_HOST, self.DB_PORT, self.DB_NAME,
        )


@lru_cache
def get_settings() -> Settings:
    """Cached settings singleton."""
    return Settings()
