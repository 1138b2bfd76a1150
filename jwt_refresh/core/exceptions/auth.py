from enum import StrEnum
from typing import Any, Optional

from jwt_refresh.core.exceptions.http_exceptions import UnauthorizedException

BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


class AuthErrorKind(StrEnum):
    MALFORMED_TRANSPORT = "malformed_transport"
    DECODE_FAILURE = "decode_failure"
    SIGNATURE_INVALID = "signature_invalid"
    EXPIRED = "expired"
    PAYLOAD_INCOMPLETE = "payload_incomplete"


class TokenAuthException(UnauthorizedException):
    """
    Base for token authentication failures.

    Every failure is surfaced as 401 Unauthorized; ``kind`` tells them apart in logs.
    """

    kind: AuthErrorKind
    default_detail: str = "Could not validate credentials"

    def __init__(
        self,
        detail: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        super().__init__(
            detail=detail or self.default_detail,
            headers=headers or dict(BEARER_CHALLENGE),
        )


class MalformedTransportError(TokenAuthException):
    """Authorization header present but not in the "Bearer <token>" shape."""

    kind = AuthErrorKind.MALFORMED_TRANSPORT
    default_detail = "Authorization header must be in the form 'Bearer <token>'"


class TokenDecodeError(TokenAuthException):
    """Token missing or not parseable at all."""

    kind = AuthErrorKind.DECODE_FAILURE
    default_detail = "Token could not be decoded, please login again"


class TokenInvalidError(TokenAuthException):
    """Token parsed but matched none of the acceptable secrets."""

    kind = AuthErrorKind.SIGNATURE_INVALID
    default_detail = "Token signature is invalid"


class TokenExpiredError(TokenAuthException):
    """Token is past its expiry plus the auto refresh window."""

    kind = AuthErrorKind.EXPIRED
    default_detail = "Token has expired, please login again"


class PayloadIncompleteError(TokenAuthException):
    """Payload rejected by the configured validation hook."""

    kind = AuthErrorKind.PAYLOAD_INCOMPLETE
    default_detail = "Token payload is incomplete"
