"""
Custom Exception Classes for the JobConnect ATS API
"""
import asyncio
import functools
import inspect
import time
from random import uniform
from typing import Dict, Any

from fastapi import HTTPException


class JobConnectBaseException(Exception):
    """Base exception for the JobConnect ATS API"""

    def __init__(
        self,
        message: str,
        error_code: str = None,
        details: Dict[str, Any] = None,
        cause: Exception = None
    ):
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for logging"""
        result = {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }
        if self.cause:
            result["cause"] = str(self.cause)
        return result


class ValidationError(JobConnectBaseException):
    """Raised when request data, role or uploaded document fails validation"""

    def __init__(self, message: str, field: str = None, value: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if field:
            details['field'] = field
        if value is not None:
            details['invalid_value'] = str(value)
        kwargs.setdefault("error_code", "VALIDATION_ERROR")
        super().__init__(message, details=details, **kwargs)


class DuplicateApplication(ValidationError):
    """Raised when an applicant already applied for a job"""

    def __init__(self, message: str = "You have already applied for this job.", applicant_id: str = None, job_id: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if applicant_id:
            details['applicant_user_id'] = applicant_id
        if job_id:
            details['job_id'] = job_id
        super().__init__(message, error_code="DUPLICATE_APPLICATION", details=details, **kwargs)


class InvalidDocument(JobConnectBaseException):
    """Raised when an uploaded resume is empty, not a PDF, or cannot be parsed"""

    def __init__(self, message: str, document_name: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if document_name:
            details['document_name'] = document_name
        super().__init__(message, error_code="INVALID_DOCUMENT", details=details, **kwargs)


class NotFoundError(JobConnectBaseException):
    """Raised when a job or application does not exist"""

    def __init__(self, message: str, resource: str = None, resource_id: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if resource:
            details['resource'] = resource
        if resource_id:
            details['resource_id'] = resource_id
        super().__init__(message, error_code="NOT_FOUND", details=details, **kwargs)


class DatabaseError(JobConnectBaseException):
    """Raised when database operations fail"""

    def __init__(self, message: str, operation: str = None, collection: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if operation:
            details['operation'] = operation
        if collection:
            details['collection'] = collection
        super().__init__(message, error_code="DATABASE_ERROR", details=details, **kwargs)


class ModelError(JobConnectBaseException):
    """Raised when the generative-text model call fails or answers nothing"""

    def __init__(self, message: str, model_name: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if model_name:
            details['model_name'] = model_name
        super().__init__(message, error_code="MODEL_ERROR", details=details, **kwargs)


class ScoringDegraded(JobConnectBaseException):
    """Internal signal: the model path was abandoned for the heuristic score"""

    def __init__(self, message: str, reason: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if reason:
            details['reason'] = reason
        super().__init__(message, error_code="SCORING_DEGRADED", details=details, **kwargs)


class StorageFailure(JobConnectBaseException):
    """Raised when a resume cannot be stored"""

    def __init__(self, message: str, backend: str = None, path: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if backend:
            details['backend'] = backend
        if path:
            details['path'] = path
        super().__init__(message, error_code="STORAGE_FAILURE", details=details, **kwargs)


class NotificationFailure(JobConnectBaseException):
    """Raised by email delivery; always swallowed by the notifier"""

    def __init__(self, message: str, recipient: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if recipient:
            details['recipient'] = recipient
        super().__init__(message, error_code="NOTIFICATION_FAILURE", details=details, **kwargs)


class ConfigurationError(JobConnectBaseException):
    """Raised when configuration is invalid or missing"""

    def __init__(self, message: str, config_key: str = None, config_value: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if config_key:
            details['config_key'] = config_key
        if config_value is not None:
            details['config_value'] = str(config_value)
        super().__init__(message, error_code="CONFIGURATION_ERROR", details=details, **kwargs)


class AuthenticationError(JobConnectBaseException):
    """Raised when no valid session accompanies the request"""

    def __init__(self, message: str = "User not authorized.", **kwargs):
        super().__init__(message, error_code="AUTHENTICATION_ERROR", **kwargs)


class AuthorizationError(JobConnectBaseException):
    """Raised when the user does not own the requested resource"""

    def __init__(self, message: str = "Insufficient permissions", resource: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if resource:
            details['resource'] = resource
        super().__init__(message, error_code="AUTHORIZATION_ERROR", details=details, **kwargs)


# Most specific classes first; lookups walk the MRO
STATUS_CODE_MAPPING = {
    ValidationError: 400,
    InvalidDocument: 400,
    ConfigurationError: 500,
    AuthenticationError: 401,
    AuthorizationError: 403,
    NotFoundError: 404,
    StorageFailure: 502,
    DatabaseError: 500,
    ModelError: 502,
}


def status_code_for(exc: JobConnectBaseException) -> int:
    """Map a custom exception to its HTTP status code"""
    for klass in type(exc).__mro__:
        if klass in STATUS_CODE_MAPPING:
            return STATUS_CODE_MAPPING[klass]
    return 500


class ExceptionContext:
    """Context manager for handling exceptions with additional context"""

    def __init__(self, operation: str, logger=None, **context):
        self.operation = operation
        self.logger = logger
        self.context = context

    def __enter__(self):
        if self.logger:
            self.logger.debug(f"Starting operation: {self.operation}", extra=self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            if self.logger:
                self.logger.debug(f"Operation completed: {self.operation}", extra=self.context)
            return False

        if self.logger:
            self.logger.error(
                f"Operation failed: {self.operation} - {exc_val}",
                extra={**self.context, "exception_type": exc_type.__name__}
            )

        # Domain and HTTP errors already carry the right status
        if isinstance(exc_val, (JobConnectBaseException, HTTPException)):
            return False

        raise DatabaseError(
            f"Database error in {self.operation}",
            operation=self.operation,
            details=dict(self.context),
            cause=exc_val
        ) from exc_val


def retry_with_logging(
    max_attempts: int = 3,
    backoff_factor: float = 1.0,
    exceptions: tuple = (Exception,),
    logger=None
):
    """Decorator to retry operations with exponential backoff and logging"""

    def decorator(func):
        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            for attempt in range(max_attempts):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if logger:
                        logger.warning(
                            f"Attempt {attempt + 1}/{max_attempts} failed for {func.__name__}: {str(e)}"
                        )
                    if attempt == max_attempts - 1:
                        if logger and max_attempts > 1:
                            logger.error(f"All {max_attempts} attempts failed for {func.__name__}")
                        raise
                    await asyncio.sleep(backoff_factor * (2 ** attempt) + uniform(0, 1))

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs):
            for attempt in range(max_attempts):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if logger:
                        logger.warning(
                            f"Attempt {attempt + 1}/{max_attempts} failed for {func.__name__}: {str(e)}"
                        )
                    if attempt == max_attempts - 1:
                        if logger and max_attempts > 1:
                            logger.error(f"All {max_attempts} attempts failed for {func.__name__}")
                        raise
                    time.sleep(backoff_factor * (2 ** attempt) + uniform(0, 1))

        if inspect.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator
