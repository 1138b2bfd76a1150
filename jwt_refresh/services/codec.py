from typing import Any, Iterable

from jose import jwt
from jose.exceptions import JWTError

from jwt_refresh.core.constants import RESERVED_CLAIMS
from jwt_refresh.core.exceptions.token import InvalidDurationError, TokenVerificationError
from jwt_refresh.core.time_span import resolve_deadline
from jwt_refresh.schemas import DecodedToken


def strip_reserved_claims(payload: dict[str, Any] | None) -> dict[str, Any]:
    """Copy of the payload without the claims the codec derives itself."""
    return {key: value for key, value in (payload or {}).items() if key not in RESERVED_CLAIMS}


class TokenCodec:
    """
    Sign, decode and verify JWTs for a single algorithm.

    Timestamps are passed in explicitly so callers control the clock.
    """

    def __init__(self, algorithm: str = "HS256"):
        self.algorithm = algorithm

    def build_claims(
        self,
        payload: dict[str, Any] | None,
        expires_in: str | int,
        now: int,
    ) -> dict[str, Any]:
        """
        Build the claim set of a fresh token.

        Args:
            payload: Caller claims; "iat" and "exp" are discarded
            expires_in: Token lifetime, duration string or seconds
            now: Issue time as a unix timestamp

        Returns:
            dict[str, Any]: Caller claims plus freshly derived "iat" and "exp"

        Raises:
            InvalidDurationError: If the lifetime cannot be parsed
        """
        exp = resolve_deadline(expires_in, now)

        if exp is None:
            raise InvalidDurationError(f"Invalid token lifetime: {expires_in!r}")

        claims = strip_reserved_claims(payload)
        claims["iat"] = now
        claims["exp"] = exp
        return claims

    def encode(self, claims: dict[str, Any], secret: str) -> str:
        return jwt.encode(claims, secret, algorithm=self.algorithm)

    def sign(
        self,
        payload: dict[str, Any] | None,
        secret: str,
        expires_in: str | int,
        now: int,
    ) -> str:
        """
        Sign a payload into a token.

        Args:
            payload: Caller claims; "iat" and "exp" are re-derived
            secret: Signing secret
            expires_in: Token lifetime, duration string or seconds
            now: Issue time as a unix timestamp

        Returns:
            str: Encoded JWT
        """
        return self.encode(self.build_claims(payload, expires_in, now), secret)

    def decode_unverified(self, token: str | None) -> DecodedToken | None:
        """
        Read a token's header and claims without checking its signature.

        Args:
            token: Encoded JWT

        Returns:
            DecodedToken | None: Decoded token, or None if the token is malformed
        """
        if not token:
            return None

        try:
            header = jwt.get_unverified_header(token)
            payload = jwt.get_unverified_claims(token)
        except JWTError:
            return None

        if not isinstance(header, dict) or not isinstance(payload, dict):
            return None

        return DecodedToken(header=header, payload=payload)

    def verify(
        self,
        token: str,
        secrets: Iterable[str],
        now: int,
        verify_expiry: bool = True,
    ) -> dict[str, Any]:
        """
        Verify a token against every candidate secret.

        Args:
            token: Encoded JWT
            secrets: Acceptable secrets; each one is tried independently
            now: Current unix timestamp
            verify_expiry: Reject tokens whose "exp" is not after now

        Returns:
            dict[str, Any]: Verified claims

        Raises:
            TokenVerificationError: If no secret accepts the token, or it has expired
        """
        claims: dict[str, Any] | None = None
        last_error: JWTError | None = None

        for secret in secrets:
            try:
                claims = jwt.decode(
                    token,
                    secret,
                    algorithms=[self.algorithm],
                    # Payloads are opaque: "sub" and "jti" may hold any JSON value
                    options={
                        "verify_exp": False,
                        "verify_aud": False,
                        "verify_sub": False,
                        "verify_jti": False,
                    },
                )
                break
            except JWTError as e:
                last_error = e

        if claims is None:
            raise TokenVerificationError("Token signature matched no acceptable secret", last_error)

        if verify_expiry and "exp" in claims:
            exp = claims["exp"]

            if not isinstance(exp, (int, float)) or isinstance(exp, bool) or exp <= now:
                raise TokenVerificationError("Token has expired")

        return claims
