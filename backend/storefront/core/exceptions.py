"""Domain and infrastructure errors raised by the taxonomy services."""

from typing import Any, Dict, Optional


class ServiceError(Exception):
    """Base exception for all service-related errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)

    @property
    def field(self) -> Optional[str]:
        return self.details.get("field")


class NotFoundError(ServiceError):
    """Raised when a referenced record does not exist."""

    status_code = 404

    def __init__(self, resource: str, identifier: Any, field: Optional[str] = None) -> None:
        details: Dict[str, Any] = {"resource": resource, "identifier": str(identifier)}
        if field:
            details["field"] = field
        super().__init__(
            message=f"{resource} not found",
            error_code="NOT_FOUND",
            details=details,
        )


class ConflictError(ServiceError):
    """Raised when a unique value (such as a slug) is already taken."""

    status_code = 409

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(
            message=message,
            error_code="CONFLICT",
            details={"field": field} if field else {},
        )


class StructuralConflictError(ServiceError):
    """Raised when a mutation would break the shape of a tree."""

    status_code = 400

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(
            message=message,
            error_code="STRUCTURAL_CONFLICT",
            details={"field": field} if field else {},
        )


class ValidationError(ServiceError):
    """Raised when data validation fails."""

    status_code = 422

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(
            message=message,
            error_code="VALIDATION_ERROR",
            details={"field": field} if field else {},
        )


class DatabaseError(ServiceError):
    """Raised when a database operation fails."""

    status_code = 500

    def __init__(self, operation: str, message: str) -> None:
        super().__init__(
            message=f"Database {operation} failed: {message}",
            error_code="DATABASE_ERROR",
            details={"operation": operation},
        )
