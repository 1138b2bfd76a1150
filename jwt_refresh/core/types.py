from typing import Any, Callable, TypedDict

# Hooks called with the token payload
InsertPayloadHook = Callable[[dict[str, Any]], dict[str, Any]]
ValidatePayloadHook = Callable[[dict[str, Any]], bool]


class SecretRecordDict(TypedDict):
    """Serialized secret buffer entry as stored in Redis."""

    secret: str
    valid_until: int
