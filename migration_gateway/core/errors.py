from typing import Optional

from fastapi import status


class GatewayError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_response(self) -> dict:
        return {"error": self.message}


class AuthenticationError(GatewayError):
    """Missing, malformed or invalid action signature."""

    status_code = status.HTTP_403_FORBIDDEN


class ValidationError(GatewayError):
    status_code = status.HTTP_400_BAD_REQUEST


class UpstreamError(GatewayError):
    """A call to the identity platform or the legacy store failed."""

    status_code = status.HTTP_502_BAD_GATEWAY

    def __init__(self, path: str, upstream_status: Optional[int] = None, body: str = "") -> None:
        super().__init__(f"upstream call {path} failed: {upstream_status} {body}".strip())
        self.path = path
        self.upstream_status = upstream_status
        self.body = body

    @property
    def is_conflict(self) -> bool:
        return self.upstream_status == status.HTTP_409_CONFLICT


class CredentialMismatch(GatewayError):
    """Supplied password does not match the legacy one.

    Answered with HTTP 200 and a forwarded error so the identity platform
    aborts the intercepted call itself.
    """

    status_code = status.HTTP_200_OK
    forwarded_status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Wrong username or password. Please try again.") -> None:
        super().__init__(message)

    def to_response(self) -> dict:
        return {
            "forwardedStatusCode": self.forwarded_status_code,
            "forwardedErrorMessage": self.message,
        }


class FinalizationError(GatewayError):
    """Password reset finalization failed and must not be skipped silently."""

    def __init__(self, message: str = "Internal server error") -> None:
        super().__init__(message)
