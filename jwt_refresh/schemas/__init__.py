from .api import HealthCheckResponse, LoginRequest, SubjectResponse, Token
from .base import BaseSchema, FrozenSchema
from .options import (
    CookieTransport,
    HeaderTransport,
    JWTAuthOptions,
    OptionsProvider,
    SettingsOptionsProvider,
    StateKeys,
    options_from_settings,
)
from .token import AuthOutcome, DecodedToken, SecretRecord, TokenState

__all__ = [
    "HealthCheckResponse",
    "LoginRequest",
    "SubjectResponse",
    "Token",
    "BaseSchema",
    "FrozenSchema",
    "CookieTransport",
    "HeaderTransport",
    "JWTAuthOptions",
    "OptionsProvider",
    "SettingsOptionsProvider",
    "StateKeys",
    "options_from_settings",
    "AuthOutcome",
    "DecodedToken",
    "SecretRecord",
    "TokenState",
]
