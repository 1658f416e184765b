"""
Custom Exception Classes for the Job Match API
"""
from typing import Dict, Any
from fastapi import HTTPException


class JobMatchBaseException(Exception):
    """Base exception for the matching core"""

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
        if cause is not None:
            self.__cause__ = cause

    def to_dict(self, include_cause: bool = True) -> Dict[str, Any]:
        """Convert exception to dictionary for logging/response"""
        result = {
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }
        if self.cause and include_cause:
            result["cause"] = str(self.cause)
        return result


class UnsupportedFormat(JobMatchBaseException):
    """Raised when a résumé file extension is not pdf, docx or txt"""

    def __init__(self, message: str, extension: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if extension is not None:
            details['extension'] = extension
        super().__init__(message, error_code="UNSUPPORTED_FORMAT", details=details, **kwargs)


class ExtractionFailed(JobMatchBaseException):
    """Raised when a format decoder fails on an uploaded document"""

    def __init__(self, message: str, filename: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if filename:
            details['filename'] = filename
        super().__init__(message, error_code="EXTRACTION_FAILED", details=details, **kwargs)


class MalformedModelOutput(JobMatchBaseException):
    """Raised when a language-model response does not parse into the expected schema"""

    def __init__(self, message: str, raw_response: str = None, **kwargs):
        details = kwargs.pop('details', {})
        self.raw_response = raw_response
        if raw_response is not None:
            # Keep the envelope small; the full text stays on the exception
            details['raw_response'] = raw_response[:2000]
        super().__init__(message, error_code="MALFORMED_MODEL_OUTPUT", details=details, **kwargs)


class InvalidFeedbackScore(JobMatchBaseException):
    """Raised when a feedback score is not a number within [0, 1]"""

    def __init__(self, message: str = "feedback_score must be between 0 and 1", value: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if value is not None:
            details['invalid_value'] = str(value)
        super().__init__(message, error_code="INVALID_FEEDBACK_SCORE", details=details, **kwargs)


class MissingRequiredField(JobMatchBaseException):
    """Raised when a required input field is absent"""

    def __init__(self, message: str, field: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if field:
            details['field'] = field
        super().__init__(message, error_code="MISSING_REQUIRED_FIELD", details=details, **kwargs)


class EntityNotFound(JobMatchBaseException):
    """Raised when a job or candidate id does not resolve"""

    def __init__(self, message: str, entity_type: str = None, entity_id: Any = None, **kwargs):
        details = kwargs.pop('details', {})
        if entity_type:
            details['entity_type'] = entity_type
        if entity_id is not None:
            details['entity_id'] = str(entity_id)
        super().__init__(message, error_code="ENTITY_NOT_FOUND", details=details, **kwargs)


class DatabaseError(JobMatchBaseException):
    """Raised when database operations fail"""

    def __init__(self, message: str, operation: str = None, collection: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if operation:
            details['operation'] = operation
        if collection:
            details['collection'] = collection
        super().__init__(message, error_code="DATABASE_ERROR", details=details, **kwargs)


class ModelError(JobMatchBaseException):
    """Raised when the text-generation backend cannot be reached or errors"""

    def __init__(self, message: str, model_name: str = None, **kwargs):
        details = kwargs.pop('details', {})
        if model_name:
            details['model_name'] = model_name
        super().__init__(message, error_code="MODEL_ERROR", details=details, **kwargs)


class ExternalServiceError(JobMatchBaseException):
    """Raised when external service calls fail"""

    def __init__(self, message: str, service_name: str = None, status_code: int = None, **kwargs):
        details = kwargs.pop('details', {})
        if service_name:
            details['service_name'] = service_name
        if status_code:
            details['status_code'] = status_code
        super().__init__(message, error_code="EXTERNAL_SERVICE_ERROR", details=details, **kwargs)


# HTTP Exception Mapping
def map_to_http_exception(exc: JobMatchBaseException) -> HTTPException:
    """Map custom exceptions to HTTP exceptions"""

    status_code_mapping = {
        UnsupportedFormat: 415,
        ExtractionFailed: 422,
        MalformedModelOutput: 502,
        InvalidFeedbackScore: 400,
        MissingRequiredField: 400,
        EntityNotFound: 404,
        DatabaseError: 500,
        ModelError: 502,
        ExternalServiceError: 502,
    }

    status_code = status_code_mapping.get(type(exc), 500)

    detail = {
        # Cause is logged by the middleware, never returned
        "error": exc.to_dict(include_cause=False),
        "message": exc.message
    }

    return HTTPException(status_code=status_code, detail=detail)
