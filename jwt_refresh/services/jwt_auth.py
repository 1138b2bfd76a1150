import math
import time
from typing import Any, Callable

from loguru import logger
from starlette.requests import Request
from starlette.responses import Response

from jwt_refresh.core.constants import (
    AUTH_FLAG_STATE_KEY,
    AUTHORIZATION_HEADER,
    BEARER_SCHEME,
    SET_AUTHORIZATION_HEADER,
)
from jwt_refresh.core.exceptions.auth import (
    MalformedTransportError,
    TokenDecodeError,
    TokenExpiredError,
    TokenInvalidError,
)
from jwt_refresh.core.exceptions.token import TokenVerificationError
from jwt_refresh.core.time_span import resolve_deadline
from jwt_refresh.schemas import (
    AuthOutcome,
    JWTAuthOptions,
    OptionsProvider,
    SecretRecord,
    TokenState,
)
from jwt_refresh.services.codec import TokenCodec
from jwt_refresh.services.secret_store import MemorySecretStore, SecretStore
from jwt_refresh.services.validator import validate_payload


class JWTAuth:
    """
    JWT lifecycle for one application.

    For every request the token is extracted from the configured transport and
    verified against the current secret plus the still-valid rotated secrets.
    A token that expired less than ``auto_refresh_window`` ago is re-signed
    with the current secret instead of being rejected.

    Args:
        options: Static options, or a provider called once per request
        store: Secret rotation buffer, shared by every request; defaults to an
            in-memory buffer sized from the options resolved here. Later
            changes to ``secret_buffer_capacity`` do not resize it.
        clock: Returns the current unix time
    """

    def __init__(
        self,
        options: JWTAuthOptions | OptionsProvider,
        store: SecretStore | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self._options = options
        self._clock = clock
        self.store = (
            store
            if store is not None
            else MemorySecretStore(capacity=self.resolve_options().secret_buffer_capacity)
        )

    def resolve_options(self) -> JWTAuthOptions:
        if isinstance(self._options, JWTAuthOptions):
            return self._options

        return self._options()

    def now(self) -> int:
        return int(self._clock())

    # ============================================
    # TRANSPORT
    # ============================================

    @staticmethod
    def extract_token(request: Request, options: JWTAuthOptions) -> str | None:
        """
        Read the raw token from the configured transport.

        Args:
            request: Incoming request
            options: Resolved options

        Returns:
            str | None: Token, or None when the request carries none

        Raises:
            MalformedTransportError: If the Authorization header is not "Bearer <token>"
        """
        transport = options.transport

        if transport.type == "cookie":
            return request.cookies.get(transport.key) or None

        authorization = request.headers.get(AUTHORIZATION_HEADER)
        if not authorization:
            return None

        parts = authorization.split(" ")
        if len(parts) == 2 and parts[0].lower() == BEARER_SCHEME.lower() and parts[1]:
            return parts[1]

        raise MalformedTransportError()

    @staticmethod
    def write_token(response: Response, token: str, options: JWTAuthOptions) -> None:
        """Put a freshly signed token on the response, on the same channel it is read from."""
        transport = options.transport

        if transport.type == "cookie":
            response.set_cookie(
                key=transport.key,
                value=token,
                domain=transport.domain,
                path=transport.path,
                httponly=transport.http_only,
            )
            return

        response.headers[SET_AUTHORIZATION_HEADER] = f"{BEARER_SCHEME} {token}"

    # ============================================
    # REQUEST STATE
    # ============================================

    @staticmethod
    def populate_state(request: Request, outcome: AuthOutcome, options: JWTAuthOptions) -> None:
        keys = options.state_keys
        setattr(request.state, keys.token_key, outcome.token)
        setattr(request.state, keys.payload_key, outcome.payload)
        setattr(request.state, AUTH_FLAG_STATE_KEY, True)

    def current_subject(
        self,
        request: Request,
        options: JWTAuthOptions | None = None,
    ) -> dict[str, Any] | None:
        """
        Payload of the token accepted for this request.

        Reads request state only, the token is not verified again.

        Returns:
            dict[str, Any] | None: Payload, or None if the request is unauthenticated
        """
        options = options or self.resolve_options()
        return getattr(request.state, options.state_keys.payload_key, None)

    # ============================================
    # LIFECYCLE
    # ============================================

    async def authenticate(
        self,
        request: Request,
        options: JWTAuthOptions | None = None,
    ) -> AuthOutcome:
        """
        Run the token lifecycle for one request.

        Args:
            request: Incoming request
            options: Options resolved for this request

        Returns:
            AuthOutcome: ``valid`` for an accepted token, ``expired_within_grace``
            for a re-signed one, ``no_token`` when passthrough lets the request in
            unauthenticated

        Raises:
            TokenAuthException: If the request must be rejected
        """
        options = options or self.resolve_options()
        now = self.now()

        try:
            token = self.extract_token(request, options)
        except MalformedTransportError:
            if options.passthrough:
                logger.debug(f"Token state: {TokenState.MALFORMED}, ignored in passthrough mode")
                return AuthOutcome(state=TokenState.NO_TOKEN)
            raise

        if token is None:
            if options.passthrough:
                return AuthOutcome(state=TokenState.NO_TOKEN)

            logger.debug(f"Token state: {TokenState.NO_TOKEN}")
            raise TokenDecodeError(detail="Token is missing, please login")

        codec = TokenCodec(options.algorithm)
        candidates = await self.candidate_secrets(options, now)

        try:
            payload = codec.verify(token, candidates, now)
        except TokenVerificationError:
            payload = None

        if payload is not None:
            if options.on_insert_payload is not None:
                payload = options.on_insert_payload(payload)

            return AuthOutcome(state=TokenState.VALID, token=token, payload=payload)

        if options.passthrough:
            return AuthOutcome(state=TokenState.NO_TOKEN)

        return self._refresh(token, options, candidates, now, codec)

    async def refresh_token(
        self,
        token: str,
        options: JWTAuthOptions | None = None,
    ) -> AuthOutcome:
        """
        Re-sign a token that expired within the auto refresh window.

        Args:
            token: Token that failed verification
            options: Options resolved for this request

        Returns:
            AuthOutcome: Outcome carrying the new token and its claims

        Raises:
            TokenAuthException: If the token cannot be re-signed
        """
        options = options or self.resolve_options()
        now = self.now()
        candidates = await self.candidate_secrets(options, now)
        return self._refresh(token, options, candidates, now, TokenCodec(options.algorithm))

    async def register_secret(self, options: JWTAuthOptions, now: int) -> list[SecretRecord]:
        """Rotate the buffer so the configured secret heads it."""
        valid_until = resolve_deadline(options.auto_refresh_window, now) or now
        return await self.store.rotate(options.secret, valid_until)

    async def candidate_secrets(self, options: JWTAuthOptions, now: int) -> list[str]:
        records = await self.register_secret(options, now)
        return SecretStore.candidate_secrets(options.secret, records, now)

    def _refresh(
        self,
        token: str,
        options: JWTAuthOptions,
        candidates: list[str],
        now: int,
        codec: TokenCodec,
    ) -> AuthOutcome:
        decoded = codec.decode_unverified(token)
        if decoded is None:
            raise TokenDecodeError()

        exp = decoded.payload.get("exp")

        # A token verifying with no "exp" failed on its signature alone
        if exp is None:
            raise TokenInvalidError()

        if not isinstance(exp, (int, float)) or isinstance(exp, bool):
            raise TokenDecodeError(detail="Token expiry claim is not a timestamp")

        if now < exp:
            raise TokenInvalidError()

        refresh_deadline = resolve_deadline(options.auto_refresh_window, math.floor(exp))
        if refresh_deadline is None or now >= refresh_deadline:
            logger.debug(f"Token state: {TokenState.EXPIRED_BEYOND_GRACE}")
            raise TokenExpiredError()

        # Only tokens we signed ourselves are worth re-signing
        try:
            claims = codec.verify(token, candidates, now, verify_expiry=False)
        except TokenVerificationError:
            raise TokenInvalidError()

        payload = validate_payload(claims, options.on_validate_payload)
        new_claims = codec.build_claims(payload, options.token_lifetime, now)
        new_token = codec.encode(new_claims, options.secret)

        logger.info(
            f"Token state: {TokenState.EXPIRED_WITHIN_GRACE}, re-signed "
            f"(expired {now - math.floor(exp)}s ago, new exp {new_claims['exp']})"
        )

        return AuthOutcome(
            state=TokenState.EXPIRED_WITHIN_GRACE,
            token=new_token,
            payload=new_claims,
            reissued=True,
        )

    # ============================================
    # ISSUANCE
    # ============================================

    async def inject_token(
        self,
        response: Response,
        payload: dict[str, Any],
        options: JWTAuthOptions | None = None,
    ) -> str:
        """
        Sign a new token for the payload and write it to the response.

        Used by login flows that run outside the verification pipeline.

        Args:
            response: Response the token is written to
            payload: Claims for the new token; "iat" and "exp" are re-derived
            options: Options resolved for this request

        Returns:
            str: The signed token

        Raises:
            PayloadIncompleteError: If the validation hook rejects the payload
        """
        options = options or self.resolve_options()
        payload = validate_payload(payload, options.on_validate_payload)
        now = self.now()
        await self.register_secret(options, now)
        token = TokenCodec(options.algorithm).sign(payload, options.secret, options.token_lifetime, now)
        self.write_token(response, token, options)
        return token
