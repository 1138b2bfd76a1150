from typing import Annotated, Callable, Literal

from pydantic import Field, field_validator

from jwt_refresh.core.config import Settings, TokenTransportType
from jwt_refresh.core.constants import (
    DEFAULT_AUTO_REFRESH_WINDOW,
    DEFAULT_SECRET_BUFFER_CAPACITY,
    DEFAULT_STATE_PAYLOAD_KEY,
    DEFAULT_STATE_TOKEN_KEY,
    DEFAULT_TOKEN_LIFETIME,
)
from jwt_refresh.core.time_span import resolve_deadline
from jwt_refresh.core.types import InsertPayloadHook, ValidatePayloadHook
from jwt_refresh.schemas.base import FrozenSchema


class HeaderTransport(FrozenSchema):
    """Token read from "Authorization: Bearer" and written to "Set-Authorization"."""

    type: Literal["header"] = "header"


class CookieTransport(FrozenSchema):
    """Token read from and written to a named cookie."""

    type: Literal["cookie"] = "cookie"
    key: str
    domain: str | None = None
    path: str = "/"
    http_only: bool = True


TokenTransport = Annotated[HeaderTransport | CookieTransport, Field(discriminator="type")]


class StateKeys(FrozenSchema):
    """Names of the request.state attributes holding the token and its payload."""

    token_key: str = DEFAULT_STATE_TOKEN_KEY
    payload_key: str = DEFAULT_STATE_PAYLOAD_KEY


class JWTAuthOptions(FrozenSchema):
    """
    Options for one pass of the JWT middleware.

    Resolved once per request and read-only while that request is processed.
    """

    transport: TokenTransport = Field(default_factory=HeaderTransport)
    state_keys: StateKeys = Field(default_factory=StateKeys)
    passthrough: bool = False
    secret: str = Field(min_length=1)
    algorithm: str = "HS256"
    # Only sizes the store JWTAuth builds when none is injected; a store keeps
    # the capacity it was constructed with
    secret_buffer_capacity: int = Field(default=DEFAULT_SECRET_BUFFER_CAPACITY, ge=1)
    token_lifetime: str | int = DEFAULT_TOKEN_LIFETIME
    auto_refresh_window: str | int = DEFAULT_AUTO_REFRESH_WINDOW
    on_insert_payload: InsertPayloadHook | None = None
    on_validate_payload: ValidatePayloadHook | None = None

    @field_validator("token_lifetime", "auto_refresh_window")
    @classmethod
    def validate_duration(cls, v: str | int) -> str | int:
        deadline = resolve_deadline(v, 0)

        if deadline is None:
            raise ValueError(f"Invalid duration: {v!r}")

        if deadline <= 0:
            raise ValueError(f"Duration must be positive: {v!r}")

        return v


OptionsProvider = Callable[[], JWTAuthOptions]


def options_from_settings(app_settings: Settings) -> JWTAuthOptions:
    """
    Build middleware options from application settings.

    Args:
        app_settings: Loaded settings

    Returns:
        JWTAuthOptions: Options equivalent to the settings
    """
    transport: HeaderTransport | CookieTransport = HeaderTransport()

    if app_settings.token_transport == TokenTransportType.COOKIE:
        transport = CookieTransport(
            key=app_settings.token_cookie_name,
            domain=app_settings.token_cookie_domain,
            path=app_settings.token_cookie_path,
            http_only=app_settings.token_cookie_http_only,
        )

    return JWTAuthOptions(
        transport=transport,
        state_keys=StateKeys(
            token_key=app_settings.state_token_key,
            payload_key=app_settings.state_payload_key,
        ),
        passthrough=app_settings.auth_passthrough,
        secret=app_settings.jwt_secret,
        algorithm=app_settings.jwt_algorithm,
        secret_buffer_capacity=app_settings.secret_buffer_capacity,
        token_lifetime=app_settings.token_lifetime,
        auto_refresh_window=app_settings.auto_refresh_window,
    )


class SettingsOptionsProvider:
    """
    Options provider backed by a settings source.

    The source is called on every request so a reloaded settings object
    (for example after a secret rotation) takes effect immediately. Options
    are rebuilt only when the source hands back a different object.
    """

    def __init__(self, source: Callable[[], Settings]):
        self._source = source
        self._settings: Settings | None = None
        self._options: JWTAuthOptions | None = None

    def __call__(self) -> JWTAuthOptions:
        current = self._source()

        if self._options is None or current is not self._settings:
            self._options = options_from_settings(current)
            self._settings = current

        return self._options
