from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None
    rule: str | None = None
    status_code: int


class AppError(Exception):
    """Base application exception."""

    kind = "AppError"

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class LeaveValidationError(AppError):
    """A leave request failed one of the validation rules."""

    kind = "ValidationError"

    def __init__(self, rule: str, message: str) -> None:
        self.rule = rule
        super().__init__(message, status_code=status.HTTP_422_UNPROCESSABLE_ENTITY)


class InvalidTransition(AppError):
    """The operation does not apply to the request's current status."""

    kind = "InvalidTransition"

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_409_CONFLICT)


class InvalidActor(AppError):
    """The caller may not perform this transition on this request."""

    kind = "InvalidActor"

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_403_FORBIDDEN)


class NotFound(AppError):
    kind = "NotFound"

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_404_NOT_FOUND)


class StepNotFound(AppError):
    """The approval chain has no step at the current level."""

    kind = "StepNotFound"

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_409_CONFLICT)


class InsufficientBalance(AppError):
    """A ledger reservation would take remaining days below zero."""

    kind = "InsufficientBalance"

    def __init__(self, remaining: float, requested: float) -> None:
        self.remaining = remaining
        self.requested = requested
        super().__init__(
            f"Insufficient leave balance (remaining {remaining:g} days, requested {requested:g} days)",
            status_code=status.HTTP_409_CONFLICT,
        )


class Conflict(AppError):
    """A store-level conflict the caller may retry."""

    kind = "Conflict"

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_409_CONFLICT)


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=exc.kind,
            detail=exc.message,
            rule=getattr(exc, "rule", None),
            status_code=exc.status_code,
        ).model_dump(),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            detail=str(exc.errors()),
            rule="schema",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ).model_dump(),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
