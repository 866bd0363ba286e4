"""
Error types.

Services raise DomainError subclasses, which know nothing about HTTP beyond
the status they map to. Routers translate them with `to_api_exception`;
auth and request validation raise the typed HTTP errors directly. Every
error body is `{"detail": ..., "error_code": ...}`.
"""
from typing import Any, Dict, Optional

from fastapi import HTTPException, status


class APIException(HTTPException):
    """HTTPException carrying a stable error_code for the frontend."""

    def __init__(
        self,
        status_code: int,
        detail: Any,
        error_code: Optional[str] = None,
        headers: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(status_code=status_code, detail=detail, headers=headers)
        self.error_code = error_code


class BadRequestError(APIException):
    def __init__(self, detail: str, error_code: str = "BAD_REQUEST"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail, error_code=error_code)


class UnauthorizedError(APIException):
    def __init__(self, detail: str = "Not authenticated", error_code: str = "UNAUTHORIZED"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            error_code=error_code,
            headers={"WWW-Authenticate": "Bearer"},
        )


class ForbiddenError(APIException):
    def __init__(self, detail: str = "Access denied", error_code: str = "FORBIDDEN"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail, error_code=error_code)


class NotFoundError(APIException):
    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found: {identifier}",
            error_code="NOT_FOUND",
        )


class ConflictError(APIException):
    def __init__(self, detail: str, error_code: str = "CONFLICT"):
        super().__init__(status_code=status.HTTP_409_CONFLICT, detail=detail, error_code=error_code)


class ValidationError(APIException):
    """Request body or parameters failed validation; detail lists the problems."""

    def __init__(self, detail: Any, error_code: str = "VALIDATION_ERROR"):
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail, error_code=error_code)


# ---------------------------------------------------------------------------
# Domain errors (raised by services, never directly by routers)
# ---------------------------------------------------------------------------

class DomainError(Exception):
    """Base class for business-rule failures."""

    status_code = status.HTTP_400_BAD_REQUEST
    error_code = "BAD_REQUEST"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class ResourceNotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = "NOT_FOUND"


class AccessDeniedError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = "FORBIDDEN"


class InvalidOperationError(DomainError):
    """Request is valid but the operation is not allowed (e.g. pairing with yourself)."""


class InsufficientDataError(DomainError):
    """Not enough completed simulations to analyze performance."""

    error_code = "INSUFFICIENT_DATA"


class NoWeaknessesError(DomainError):
    """Performance analysis found nothing to coach."""

    error_code = "NO_WEAKNESSES"


class BuddyPairConflictError(DomainError):
    """One of the agents already has an active buddy pair."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "CONFLICT"


class AlertTransitionError(DomainError):
    """Alert status change not allowed from its current status."""

    status_code = status.HTTP_409_CONFLICT
    error_code = "INVALID_TRANSITION"


class SimulationStateError(DomainError):
    """Simulation is not in a state that allows the requested action."""

    error_code = "SIMULATION_NOT_ACTIVE"


_HTTP_ERRORS = {
    status.HTTP_400_BAD_REQUEST: BadRequestError,
    status.HTTP_401_UNAUTHORIZED: UnauthorizedError,
    status.HTTP_403_FORBIDDEN: ForbiddenError,
    status.HTTP_409_CONFLICT: ConflictError,
    status.HTTP_422_UNPROCESSABLE_ENTITY: ValidationError,
}


def to_api_exception(exc: DomainError) -> APIException:
    """Translate a service-layer error into the HTTP error returned to clients."""
    error_cls = _HTTP_ERRORS.get(exc.status_code)
    if error_cls is None:
        return APIException(status_code=exc.status_code, detail=exc.detail, error_code=exc.error_code)
    return error_cls(exc.detail, error_code=exc.error_code)
