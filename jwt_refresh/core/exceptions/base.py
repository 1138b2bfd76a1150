from typing import Any, Optional

from fastapi import HTTPException as FastAPIHTTPException


class CustomException(Exception):
    """
    Base for internal errors of the token pipeline.

    These never reach the client as is: the auth layer maps them to a
    TokenAuthException or logs them.
    """

    def __init__(self, message: str, exception: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.exception = exception

    def __str__(self):
        if self.exception:
            return f"{self.message} (caused by {self.exception!r})"

        return self.message


class HTTPException(FastAPIHTTPException):
    """Error answered to the client with the given status code and headers."""

    def __init__(
        self,
        status_code: int,
        detail: Any = None,
        headers: Optional[dict[str, str]] = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)
