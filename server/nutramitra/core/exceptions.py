from fastapi import HTTPException
from starlette.status import (
    HTTP_400_BAD_REQUEST,
    HTTP_401_UNAUTHORIZED,
    HTTP_403_FORBIDDEN,
    HTTP_404_NOT_FOUND,
    HTTP_409_CONFLICT,
    HTTP_500_INTERNAL_SERVER_ERROR,
)


class ValidationError(HTTPException):
    def __init__(self, detail: str = "Invalid request", status_code: int = HTTP_400_BAD_REQUEST):
        super().__init__(status_code=status_code, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail: str = "Not found", status_code: int = HTTP_404_NOT_FOUND):
        super().__init__(status_code=status_code, detail=detail)


class ConflictError(HTTPException):
    def __init__(self, detail: str = "Already exists", status_code: int = HTTP_409_CONFLICT):
        super().__init__(status_code=status_code, detail=detail)


class AuthenticationError(HTTPException):
    def __init__(self, detail: str = "Invalid credentials", status_code: int = HTTP_401_UNAUTHORIZED):
        super().__init__(status_code=status_code, detail=detail)


class PermissionDenied(HTTPException):
    def __init__(self, detail: str = "Admin access required", status_code: int = HTTP_403_FORBIDDEN):
        super().__init__(status_code=status_code, detail=detail)


class UpstreamError(HTTPException):
    """A mail, media or database call failed. Detail is safe to show clients."""

    def __init__(self, detail: str = "Upstream service error", status_code: int = HTTP_500_INTERNAL_SERVER_ERROR):
        super().__init__(status_code=status_code, detail=detail)


class MailDeliveryError(UpstreamError):
    def __init__(self, detail: str = "Failed to send email"):
        super().__init__(detail=detail)


class MediaUploadError(UpstreamError):
    def __init__(self, detail: str = "Failed to upload image"):
        super().__init__(detail=detail)
