"""
Custom exception classes for the application

Every exception carries a ``retryable`` flag that the ingestion consumer uses
to decide between redelivery and an immediate FAILED status.
"""
from typing import Optional, Dict, Any


class ATSException(Exception):
    """Base exception for the ATS backend"""

    retryable = False

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class AuthenticationError(ATSException):
    """Authentication related errors"""

    def __init__(self, message: str = "Authentication failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=401, details=details)


class AuthorizationError(ATSException):
    """Authorization/permission errors"""

    def __init__(self, message: str = "Insufficient permissions", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=403, details=details)


class NotFoundError(ATSException):
    """Resource not found errors"""

    def __init__(self, resource: str, identifier: Optional[str] = None):
        message = f"{resource} not found"
        if identifier:
            message += f": {identifier}"
        super().__init__(message, status_code=404)


class ValidationError(ATSException):
    """Validation errors"""

    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=422, details=details)


class ConflictError(ATSException):
    """Request clashes with work already in progress"""

    def __init__(self, message: str = "Conflict", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=409, details=details)


class ProcessingError(ATSException):
    """File/resume processing errors (bad input, never worth a retry)"""

    def __init__(self, message: str = "Processing failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=422, details=details)


class RateLimitError(ATSException):
    """Too many requests"""

    def __init__(self, message: str = "Rate limit exceeded", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=429, details=details)


class AIEngineError(ATSException):
    """AI engine related errors (LLM or embedding model)"""

    retryable = True

    def __init__(self, message: str = "AI processing failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=502, details=details)


class VectorStoreError(ATSException):
    """Vector index unavailable or rejected the request"""

    retryable = True

    def __init__(self, message: str = "Vector store unavailable", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=503, details=details)


def is_retryable(exc: BaseException) -> bool:
    """Unknown exceptions are treated as transient dependency failures"""
    if isinstance(exc, ATSException):
        return exc.retryable
    return True
