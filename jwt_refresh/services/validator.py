import json
from typing import Any

from loguru import logger

from jwt_refresh.core.config import Environment, settings
from jwt_refresh.core.exceptions.auth import PayloadIncompleteError
from jwt_refresh.core.types import ValidatePayloadHook


def describe_payload(payload: dict[str, Any] | None) -> str:
    """
    Render a payload for error messages.

    Claim values are hidden in production, only claim names are listed there.
    """
    payload = payload or {}

    if settings.current_environment == Environment.PRD:
        return f"claims={sorted(payload)}"

    return json.dumps(payload, default=str, sort_keys=True)


def validate_payload(
    payload: dict[str, Any] | None,
    predicate: ValidatePayloadHook | None = None,
) -> dict[str, Any]:
    """
    Check a token payload for completeness.

    Args:
        payload: Decoded token claims
        predicate: Optional hook returning False when the payload is incomplete

    Returns:
        dict[str, Any]: Shallow copy of the payload

    Raises:
        PayloadIncompleteError: If the predicate rejects the payload
    """
    payload = payload or {}

    if predicate is not None and not predicate(payload):
        logger.warning(f"Token payload rejected by validation hook: claims={sorted(payload)}")
        raise PayloadIncompleteError(detail=f"Token payload is incomplete: {describe_payload(payload)}")

    return dict(payload)
