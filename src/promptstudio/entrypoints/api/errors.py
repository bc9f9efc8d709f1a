"""Mapping of domain errors to HTTP responses."""

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse

from promptstudio.core.exceptions import (
    AccessDenied,
    AlreadyMember,
    CapacityExceeded,
    EmailMismatch,
    InvitationAlreadyAccepted,
    InvitationAlreadySent,
    InvitationExpired,
    InvitationNotFound,
    LastAdminProtected,
    MemberNotFound,
    PromptStudioError,
    SlugTaken,
    SubscriptionRequired,
    TeamNotFound,
    Unauthenticated,
    ValidationError,
    ValidationErrors,
)

logger = structlog.get_logger()

# First match wins, so subclasses come before their bases.
STATUS_CODES: list[tuple[type[PromptStudioError], int]] = [
    (Unauthenticated, 401),
    (SubscriptionRequired, 402),
    (AccessDenied, 403),
    (EmailMismatch, 403),
    (InvitationNotFound, 404),
    (MemberNotFound, 404),
    (SlugTaken, 409),
    (AlreadyMember, 409),
    (InvitationAlreadySent, 409),
    (InvitationAlreadyAccepted, 409),
    (LastAdminProtected, 409),
    (CapacityExceeded, 409),
    (InvitationExpired, 410),
    (ValidationError, 422),
    (ValidationErrors, 422),
]


def status_for(exc: PromptStudioError) -> int:
    """HTTP status for a domain error; unknown subclasses are a bad request."""
    for error_type, status_code in STATUS_CODES:
        if isinstance(exc, error_type):
            return status_code
    return 400


def error_body(exc: PromptStudioError) -> dict[str, object]:
    """JSON body for a domain error."""
    if isinstance(exc, TeamNotFound):
        # Same body as any other denial so slugs cannot be probed.
        return {"code": AccessDenied.code, "detail": AccessDenied.default_message}
    if isinstance(exc, ValidationErrors):
        return {"code": exc.code, "detail": exc.message, "field_errors": exc.field_errors}
    if isinstance(exc, ValidationError):
        return {"code": exc.code, "detail": exc.message, "field_errors": {exc.field: exc.reason}}
    return {"code": exc.code, "detail": exc.message}


async def domain_error_handler(request: Request, exc: PromptStudioError) -> JSONResponse:
    """Render a PromptStudioError."""
    status_code = status_for(exc)
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(status_code=status_code, content=error_body(exc), headers=headers)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Log the failure and answer with a generic 500."""
    logger.exception("unhandled_error", path=request.url.path, error_type=type(exc).__name__)
    return JSONResponse(
        status_code=500,
        content={"code": "internal_error", "detail": "Internal server error"},
    )
