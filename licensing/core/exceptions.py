class BaseAPIException(Exception):
    """Base exception class for API errors"""

    def __init__(self, message, status_code=400, payload=None):
        self.message = message
        self.status_code = status_code
        self.payload = payload
        super().__init__(self.message)

    def to_dict(self):
        rv = dict(self.payload or ())
        rv["error"] = self.__class__.__name__
        rv["message"] = self.message
        return rv


class ValidationError(BaseAPIException):
    """Raised when a code, key or right set is malformed. Nothing has been written."""

    def __init__(self, message="Validation failed", errors=None, status_code=400):
        self.errors = list(errors or [])
        super().__init__(message, status_code, payload={"errors": self.errors})


class ConflictError(BaseAPIException):
    """Raised when a code or key is already defined"""

    def __init__(self, message="Resource already exists", status_code=409, payload=None):
        super().__init__(message, status_code, payload)


class NotFoundError(BaseAPIException):
    """Raised when a catalog or tenant record does not exist"""

    def __init__(self, message="Resource not found", status_code=404):
        super().__init__(message, status_code)


class TenantNotFoundError(NotFoundError):
    """Raised when tenant is not found"""

    def __init__(self, message="Tenant not found", status_code=404):
        super().__init__(message, status_code)


class InvariantViolation(BaseAPIException):
    """Raised when a mutation would strip a required right from the administrative role"""

    def __init__(self, message="Access invariant violated", status_code=422, payload=None):
        super().__init__(message, status_code, payload)


class AtomicityFailure(BaseAPIException):
    """Raised when the plan pointer and assignment history could not be written together"""

    def __init__(self, message="Plan assignment could not be recorded", status_code=500):
        super().__init__(message, status_code)


class PermissionDenied(BaseAPIException):
    """Raised when user doesn't have required permissions"""

    def __init__(self, message="Permission denied", status_code=403):
        super().__init__(message, status_code)
