from enum import StrEnum
from typing import Any

from jwt_refresh.schemas.base import BaseSchema, FrozenSchema


class TokenState(StrEnum):
    """Where a request's token ended up in its lifecycle"""

    NO_TOKEN = "no_token"
    VALID = "valid"
    EXPIRED_WITHIN_GRACE = "expired_within_grace"
    EXPIRED_BEYOND_GRACE = "expired_beyond_grace"
    MALFORMED = "malformed"


class SecretRecord(FrozenSchema):
    """A signing secret still accepted for verification until valid_until"""

    secret: str
    valid_until: int

    def __repr__(self) -> str:
        return f"SecretRecord(secret='***', valid_until={self.valid_until})"


class DecodedToken(BaseSchema):
    """Header and claims of a token read without signature verification"""

    header: dict[str, Any]
    payload: dict[str, Any]


class AuthOutcome(BaseSchema):
    """Result of authenticating one request"""

    state: TokenState
    token: str | None = None
    payload: dict[str, Any] | None = None
    reissued: bool = False

    @property
    def authenticated(self) -> bool:
        return self.token is not None and self.payload is not None
