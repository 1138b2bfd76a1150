# Defaults for the request.state keys holding the token and its payload
DEFAULT_STATE_TOKEN_KEY = "token"
DEFAULT_STATE_PAYLOAD_KEY = "payload"

# Flag set on request.state once a token has been accepted
AUTH_FLAG_STATE_KEY = "jwt_authenticated"

DEFAULT_TOKEN_LIFETIME = "2h"
DEFAULT_AUTO_REFRESH_WINDOW = "7d"
DEFAULT_SECRET_BUFFER_CAPACITY = 1

# Claims always re-derived by the codec when signing
RESERVED_CLAIMS = frozenset({"iat", "exp"})

AUTHORIZATION_HEADER = "Authorization"
SET_AUTHORIZATION_HEADER = "Set-Authorization"
BEARER_SCHEME = "Bearer"


class SecretBufferKey:
    """
    Registry of Redis keys used by the shared secret buffer.

    Example:
        ```python
        key = SecretBufferKey.for_service("billing")
        # Result: "jwt:secret_buffer:billing"
        ```
    """

    PREFIX = "jwt:secret_buffer"

    @classmethod
    def for_service(cls, service: str | None = None) -> str:
        """
        Build the buffer key, optionally namespaced per service.

        Args:
            service: Optional service name sharing the buffer

        Returns:
            str: Redis key
        """
        if not service:
            return cls.PREFIX

        return f"{cls.PREFIX}:{service}"
