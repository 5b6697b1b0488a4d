"""
# Configuration Management Module

This module provides the configuration system for the Barangay Registry service.
Built on **Pydantic Settings**, it loads configuration hierarchically, validates it at
startup and exposes a single `settings` singleton to the rest of the application.

## Configuration Loading Hierarchy

```
┌─────────────────────────────────────────────────────────────┐
│  1. Environment Variables (HIGHEST PRIORITY)                │
├─────────────────────────────────────────────────────────────┤
│  2. BARANGAY_REGISTRY_CONFIG_PATH                           │
│     - Custom config file path from env var                  │
├─────────────────────────────────────────────────────────────┤
│  3. .brs File (Project Root)                                │
├─────────────────────────────────────────────────────────────┤
│  4. .env File (Project Root)                                │
├─────────────────────────────────────────────────────────────┤
│  5. Default Values (LOWEST PRIORITY)                        │
└─────────────────────────────────────────────────────────────┘
```

If no configuration file is found, the application runs in **environment-only mode**.

## Configuration Groups

| Group       | Purpose                                              |
|-------------|------------------------------------------------------|
| **Server**  | Host, port, debug mode, API prefix, CORS             |
| **Redis**   | Record store connection                              |
| **JWT**     | Staff token signing and expiry                       |
| **Admin**   | Bootstrap credentials for the single admin account   |
| **Records** | Identifier formatting, dashboard defaults            |
| **Logging** | Default log level                                    |

## Usage

```python
from barangay_registry.config import settings

redis_url = settings.REDIS_URL
secret_key = settings.SECRET_KEY.get_secret_value()
```

Attributes:
    BRS_FILENAME (str): Primary configuration filename (`.brs`).
    DEFAULT_ENV_FILENAME (str): Fallback configuration filename (`.env`).
    CONFIG_ENV_VAR (str): Environment variable naming a custom config file.
    PROJECT_ROOT (Path): Directory searched for `.brs` / `.env`.
    CONFIG_PATH (Optional[str]): Resolved config file path, or `None`.
    settings (Settings): Global settings singleton.
"""

import os
from pathlib import Path
from typing import Any, List, Optional

from dotenv import load_dotenv
from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Constants ---
BRS_FILENAME: str = ".brs"
DEFAULT_ENV_FILENAME: str = ".env"
CONFIG_ENV_VAR: str = "BARANGAY_REGISTRY_CONFIG_PATH"
PROJECT_ROOT: Path = Path(__file__).resolve().parent.parent.parent


# --- Config file discovery (no logging) ---
def get_config_path() -> Optional[str]:
    """
    Determines the configuration file path based on a predefined precedence order.

    1.  **Environment Variable**: `BARANGAY_REGISTRY_CONFIG_PATH` (if set and file exists).
    2.  **BRS Config**: `.brs` file in the project root directory.
    3.  **Dotenv Config**: `.env` file in the project root directory.
    4.  **Fallback**: `None`, triggering environment-variable-only mode.

    Returns:
        Optional[str]: The absolute path to the configuration file, or `None` if not found.
    """
    env_path: Optional[str] = os.environ.get(CONFIG_ENV_VAR)
    if env_path and os.path.exists(env_path):
        return env_path
    brs_path: Path = PROJECT_ROOT / BRS_FILENAME
    if brs_path.exists():
        return str(brs_path)
    env_path_file: Path = PROJECT_ROOT / DEFAULT_ENV_FILENAME
    if env_path_file.exists():
        return str(env_path_file)
    return None


CONFIG_PATH: Optional[str] = get_config_path()
if CONFIG_PATH:
    load_dotenv(dotenv_path=CONFIG_PATH, override=True)


class Settings(BaseSettings):
    """
    Application configuration settings model.

    **Configuration Groups:**
    *   **Server**: Host, port, debug mode, API prefix and CORS origins.
    *   **Redis**: Connection details for the record store.
    *   **Security**: JWT signing key, algorithm and token lifetime.
    *   **Admin**: Credentials used to seed the admin account on first start.
    *   **Records**: Identifier padding and dashboard defaults.

    **Validation:**
    `SECRET_KEY` must be provided and must not be a placeholder. Numeric record
    settings must be positive.
    """

    model_config = SettingsConfigDict(
        env_file=CONFIG_PATH if CONFIG_PATH else None,
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="allow",
    )

    # Server configuration
    HOST: str = "127.0.0.1"
    PORT: int = 5000
    DEBUG: bool = False
    API_PREFIX: str = "/api"
    CORS_ORIGINS: Optional[str] = None  # Comma-separated extra origins

    # Redis configuration
    # REDIS_URL is the effective URL used by the app. It can be provided directly
    # or will be constructed from host/port/credentials below.
    REDIS_URL: Optional[str] = None
    REDIS_HOST: str = "127.0.0.1"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_USERNAME: Optional[str] = None
    REDIS_PASSWORD: Optional[SecretStr] = None
    REDIS_CONNECT_RETRIES: int = 3

    # JWT configuration
    SECRET_KEY: SecretStr = SecretStr("")  # Must be set in .brs or environment
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 24 * 60

    # Admin bootstrap
    ADMIN_USERNAME: str = "admin"
    ADMIN_PASSWORD: SecretStr = SecretStr("admin123")
    ADMIN_NAME: str = "Juan Dela Cruz"

    # Records
    ID_SEQUENCE_WIDTH: int = 3
    RECENT_REGISTRATIONS_LIMIT: int = 5

    # Logging configuration
    DEFAULT_LOG_LEVEL: str = "INFO"

    @field_validator("SECRET_KEY", mode="before")
    @classmethod
    def no_hardcoded_secrets(cls, v: Any, info: Any) -> Any:
        """
        Validates that the JWT secret is not empty or a placeholder.

        Raises:
            ValueError: If the value is empty, hardcoded, or insecure.
        """
        if not v or "change" in str(v).lower() or "0000" in str(v) or not str(v).strip():
            raise ValueError(f"{info.field_name} must be set via environment or .brs and not hardcoded!")
        return v

    @field_validator("ID_SEQUENCE_WIDTH", "RECENT_REGISTRATIONS_LIMIT", "REDIS_CONNECT_RETRIES", mode="before")
    @classmethod
    def validate_positive_integers(cls, v: Any, info: Any) -> int:
        """Validates that numeric settings are positive integers."""
        value = int(v)
        if value <= 0:
            raise ValueError(f"{info.field_name} must be a positive integer")
        return value

    @property
    def is_production(self) -> bool:
        """`True` when running with `DEBUG=False`."""
        return not self.DEBUG

    @property
    def cors_origins_list(self) -> List[str]:
        """Extra CORS origins parsed from the comma-separated `CORS_ORIGINS` value."""
        if not self.CORS_ORIGINS:
            return []
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]


def build_redis_url(config: Settings) -> str:
    """
    Compute the effective Redis URL.

    Precedence: explicit `REDIS_URL` -> constructed from host/port/db and optional credentials.
    """
    if config.REDIS_URL:
        return config.REDIS_URL

    creds = ""
    if config.REDIS_USERNAME or config.REDIS_PASSWORD:
        username = config.REDIS_USERNAME or ""
        password = config.REDIS_PASSWORD.get_secret_value() if config.REDIS_PASSWORD else ""
        # If only password present, use :password@ form
        if username and password:
            creds = f"{username}:{password}@"
        elif password and not username:
            creds = f":{password}@"

    return f"redis://{creds}{config.REDIS_HOST}:{config.REDIS_PORT}/{config.REDIS_DB}"


# Global settings instance
settings: Settings = Settings()
settings.REDIS_URL = build_redis_url(settings)
