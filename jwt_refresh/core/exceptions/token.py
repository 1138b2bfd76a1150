from jwt_refresh.core.exceptions.base import CustomException


class TokenException(CustomException):
    """
    Base exception for token handling
    """

    def __init__(self, message, exception: Exception | None = None):
        super().__init__(message, exception)


class TokenVerificationError(TokenException):
    """
    Token matched none of the candidate secrets
    """

    def __init__(self, message, exception: Exception | None = None):
        super().__init__(message, exception)


class InvalidDurationError(TokenException):
    """
    Lifetime specification could not be turned into a deadline
    """

    def __init__(self, message, exception: Exception | None = None):
        super().__init__(message, exception)


class SecretStoreError(CustomException):
    """
    Secret store misconfiguration, or a stored buffer that could not be read
    """

    def __init__(self, message, exception: Exception | None = None):
        super().__init__(message, exception)
