import logging
import tomllib
from enum import StrEnum
from pathlib import Path

from pydantic import computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from yarl import URL

from jwt_refresh.core.constants import SecretBufferKey
from jwt_refresh.core.time_span import parse_duration

PROJECT_DIR = Path(__file__).parent.parent.parent
PROJECT_TOML_PATH = PROJECT_DIR / "pyproject.toml"

PYPROJECT_CONTENT: dict = {}

if PROJECT_TOML_PATH.is_file():
    with open(PROJECT_TOML_PATH, "rb") as f:
        PYPROJECT_CONTENT = tomllib.load(f)["project"]


class Environment(StrEnum):
    LOCAL = "local"
    DEV = "dev"
    STG = "stg"
    PRD = "prd"


class TokenTransportType(StrEnum):
    HEADER = "header"
    COOKIE = "cookie"


class SecretBufferBackend(StrEnum):
    MEMORY = "memory"
    REDIS = "redis"


def convert_app_name(s: str) -> str:
    return " ".join(word.capitalize() for word in s.split("-"))


class Settings(BaseSettings):
    """
    Application settings.

    These parameters can be configured
    with environment variables.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=False,
        extra="ignore",
    )

    # App variables
    app_name: str = PYPROJECT_CONTENT.get("name", "jwt-refresh")
    app_title: str = convert_app_name(app_name)
    app_version: str = PYPROJECT_CONTENT.get("version", "0.0.0")
    app_description: str = PYPROJECT_CONTENT.get("description", "")

    backend_host: str = "127.0.0.1"
    backend_port: int = 8000

    # Enable uvicorn reloading
    reload_uvicorn: bool = False
    workers_count: int = 1

    # Current working environment
    current_environment: Environment = Environment.LOCAL
    log_level: int = logging.INFO
    log_dir: Path = Path("logs")
    debug: bool = False

    # Token settings
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    token_lifetime: str | int = "2h"  # Lifetime of a freshly signed token
    auto_refresh_window: str | int = "7d"  # Grace window past "exp" for silent re-signing
    auth_passthrough: bool = False

    # Token transport
    token_transport: TokenTransportType = TokenTransportType.HEADER
    token_cookie_name: str = "token"
    token_cookie_domain: str | None = None
    token_cookie_path: str = "/"
    token_cookie_http_only: bool = True

    # Keys used on request.state
    state_token_key: str = "token"
    state_payload_key: str = "payload"

    # Secret rotation buffer
    secret_buffer_capacity: int = 1
    secret_buffer_backend: SecretBufferBackend = SecretBufferBackend.MEMORY
    secret_buffer_redis_key: str = SecretBufferKey.for_service()
    secret_store_timeout: float = 2.0  # Upper bound for a single Redis call in seconds

    # Variables for Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_user: str | None = None
    redis_pass: str | None = None
    redis_base: int | None = None
    redis_max_pool_connections: int = 10  # Maximum number of connections in the Redis pool
    redis_socket_connect_timeout: int = 5  # Socket connect timeout in seconds
    redis_socket_timeout: int = 5  # Socket timeout in seconds

    @field_validator("token_lifetime", "auto_refresh_window", mode="before")
    @classmethod
    def validate_duration(cls, v: str | int) -> str | int:
        # Plain numbers from the environment are seconds
        if isinstance(v, str) and v.strip().isdigit():
            v = int(v)

        if isinstance(v, str):
            milliseconds = parse_duration(v)

            if milliseconds is None:
                raise ValueError(f"Invalid duration: {v!r}")

            if milliseconds < 1000:
                raise ValueError(f"Duration must be at least one second: {v!r}")

        elif v <= 0:
            raise ValueError(f"Duration must be positive: {v!r}")

        return v

    @field_validator("secret_buffer_capacity")
    @classmethod
    def validate_capacity(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Secret buffer capacity must be at least 1")

        return v

    @computed_field
    @property
    def redis_url(self) -> URL:
        """
        Assemble REDIS URL from settings.
        """
        path = ""

        if self.redis_base is not None:
            path = f"/{self.redis_base}"

        return URL.build(
            scheme="redis",
            host=self.redis_host,
            port=self.redis_port,
            user=self.redis_user,
            password=self.redis_pass,
            path=path,
        )


settings = Settings()  # type: ignore


def get_settings() -> Settings:
    """Current settings object; reassign ``settings`` to reload."""
    return settings
