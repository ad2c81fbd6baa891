from typing import Any, Dict, Optional

class AppException(Exception):
    def __init__(
        self,
        message: str,
        status_code: int = 400,
        error_code: str = "BUSINESS_ERROR",
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details
        super().__init__(self.message)

class NotFoundError(AppException):
    def __init__(self, entity: str, entity_id: str):
        super().__init__(
            message=f"{entity} not found",
            status_code=404,
            error_code="NOT_FOUND",
            details={"entity": entity, "id": entity_id}
        )

class StoreError(AppException):
    """Base class for failures reported by the backing record store."""
    def __init__(
        self,
        message: str,
        status_code: int = 503,
        error_code: str = "STORE_UNAVAILABLE",
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message, status_code=status_code, error_code=error_code, details=details)

class StoreWriteError(StoreError):
    def __init__(self, operation: str, path: str, cause: Optional[BaseException] = None):
        super().__init__(
            message=f"Store write failed: {operation} {path}",
            error_code="STORE_WRITE_FAILED",
            details={"operation": operation, "path": path, "cause": str(cause) if cause else None}
        )
        self.operation = operation
        self.path = path

class IndexNotDefinedError(StoreError):
    """
    Configuration error: the store has no index for an equality query field.
    The query layer recovers from this kind by scanning the whole collection.
    """
    def __init__(self, collection: str, field: str):
        super().__init__(
            message=f'Index not defined, add ".indexOn": "{field}" for path "/{collection}"',
            status_code=500,
            error_code="STORE_INDEX_NOT_DEFINED",
            details={"collection": collection, "field": field}
        )
        self.collection = collection
        self.field = field

class AuthenticationError(AppException):
    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(
            message=message,
            status_code=401,
            error_code="AUTH_FAILED"
        )

class AccessDeniedError(AppException):
    """Custom permission error. Named AccessDeniedError to avoid shadowing Python's built-in PermissionError."""
    def __init__(self, message: str = "Insufficient permissions"):
        super().__init__(
            message=message,
            status_code=403,
            error_code="PERMISSION_DENIED"
        )

class RegistrationError(AppException):
    def __init__(self, message: str, error_code: str = "REGISTRATION_FAILED"):
        super().__init__(message=message, status_code=409, error_code=error_code)
