from typing import Any, Optional

from starlette import status

from jwt_refresh.core.exceptions.base import HTTPException


class UnauthorizedException(HTTPException):
    def __init__(
        self,
        detail: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        """
        Authentication is required and has failed or has not yet been provided.
        The response must include a WWW-Authenticate header field containing a
        challenge applicable to the requested resource.
        :param detail: Optional detailed message or data about the exception.
        :param headers: Optional headers to include in the response.
        """
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers=headers,
        )
