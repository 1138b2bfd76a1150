from typing import Any

from pydantic import Field

from jwt_refresh.schemas.base import BaseSchema


class HealthCheckResponse(BaseSchema):
    """Schema for health check response"""

    status: str
    secret_store: str


class LoginRequest(BaseSchema):
    """Claims to issue a token for"""

    subject: str = Field(min_length=1)
    claims: dict[str, Any] = Field(default_factory=dict)


class Token(BaseSchema):
    """Token response schema"""

    access_token: str
    token_type: str = "Bearer"

    def __str__(self):
        return self.token_type + " " + self.access_token


class SubjectResponse(BaseSchema):
    """Payload of the token that authenticated the request"""

    payload: dict[str, Any]
