from typing import Optional, Any

class VelgoError(Exception):
    """
    Base exception for the Velgo application.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)

class ResourceNotFoundError(VelgoError):
    """
    Raised when a requested resource is not found.
    """
    def __init__(self, message: str = "Resource not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)

class AuthenticationError(VelgoError):
    """
    Raised when authentication fails.
    """
    def __init__(self, message: str = "Authentication failed", details: Optional[Any] = None):
        super().__init__(message, code="AUTHENTICATION_FAILED", status_code=401, details=details)

class ValidationError(VelgoError):
    """
    Raised when input validation fails.
    """
    def __init__(self, message: str = "Validation error", details: Optional[Any] = None):
        super().__init__(message, code="VALIDATION_ERROR", status_code=422, details=details)

class ExternalServiceError(VelgoError):
    """
    Raised when an external service (e.g., Supabase, Paystack) fails.
    """
    def __init__(self, message: str = "External service error", details: Optional[Any] = None):
        super().__init__(message, code="EXTERNAL_SERVICE_ERROR", status_code=502, details=details)

class BackendError(ExternalServiceError):
    """
    Raised when the Supabase backend rejects a request.
    """
    def __init__(self, message: str = "Backend request failed", details: Optional[Any] = None):
        super().__init__(message, details=details)
        self.code = "BACKEND_ERROR"

class BackendUnavailableError(BackendError):
    """
    Raised when the backend cannot be reached at all.
    """
    def __init__(self, message: str = "Backend unavailable", details: Optional[Any] = None):
        super().__init__(message, details=details)
        self.code = "BACKEND_UNAVAILABLE"
        self.status_code = 503

class BackendPolicyError(BackendError):
    """
    Raised when a row-level security policy is misconfigured on the backend.
    """
    def __init__(self, message: str = "Database policy error", details: Optional[Any] = None):
        super().__init__(message, details=details)
        self.code = "BACKEND_POLICY_ERROR"
