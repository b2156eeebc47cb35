"""
Error taxonomy shared by the services and the HTTP layer.

Services raise subclasses of ``AppError``; ``register_exception_handlers``
turns them into ``{"detail": ...}`` JSON responses with the matching status.
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base application error."""
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class ValidationError(AppError):
    """Missing or malformed input."""
    def __init__(self, message: str):
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST)


class UnauthorizedError(AppError):
    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message, status_code=status.HTTP_401_UNAUTHORIZED)


class ForbiddenError(AppError):
    """Wrong role or not the owner of the resource."""
    def __init__(self, message: str = "Access forbidden"):
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN)


class NotFoundError(AppError):
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND)


class ConflictError(AppError):
    """Duplicate account, application or OTP. Reported as 400 to clients."""
    def __init__(self, message: str):
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST)


class DuplicateUserError(ConflictError):
    def __init__(self, message: str = "User already exists with this email"):
        super().__init__(message)


class AlreadyAppliedError(ConflictError):
    def __init__(self, message: str = "You have already applied for this job"):
        super().__init__(message)


class InvalidOrExpiredOtpError(ValidationError):
    def __init__(self, message: str = "Invalid or expired OTP"):
        super().__init__(message)


class InvalidCredentialsError(ValidationError):
    # Same message for unknown email and wrong password.
    def __init__(self):
        super().__init__("Invalid credentials")


class EmailDeliveryError(AppError):
    """The mail relay refused or failed to deliver a message."""
    def __init__(self, message: str = "Failed to send OTP email"):
        super().__init__(message, status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


async def app_error_handler(request: Request, exc: AppError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "detail": "Please check your input and try again.",
            "errors": jsonable_encoder(exc.errors()),
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
