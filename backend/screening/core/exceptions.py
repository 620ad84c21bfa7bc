"""
Custom Exception Classes with Structured Error Handling
Enables consistent error logging and API error responses across the pipeline
"""
from enum import Enum
from typing import Any, Dict, List, Optional
from fastapi import Request
from fastapi.responses import JSONResponse
import logging

logger = logging.getLogger(__name__)


class ErrorType(str, Enum):
    """Error taxonomy written to the error log"""
    EXTRACTION_FAILURE = "EXTRACTION_FAILURE"
    UNSUPPORTED_FORMAT = "UNSUPPORTED_FORMAT"
    ATTACHMENT_PROCESSING_ERROR = "ATTACHMENT_PROCESSING_ERROR"
    NO_RESUME_FOUND = "NO_RESUME_FOUND"
    ALL_PROVIDERS_FAILED = "ALL_PROVIDERS_FAILED"
    SCORING_FAILED = "SCORING_FAILED"
    STORAGE_WRITE_ERROR = "STORAGE_WRITE_ERROR"
    EMAIL_PROCESSING_ERROR = "EMAIL_PROCESSING_ERROR"
    MESSAGE_SOURCE_ERROR = "MESSAGE_SOURCE_ERROR"


class AppException(Exception):
    """
    Base application exception.
    All custom exceptions should inherit from this.
    """

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(AppException):
    """Raised when a component is missing required configuration"""

    def __init__(self, message: str, setting: Optional[str] = None):
        super().__init__(
            message=message,
            status_code=500,
            error_code="CONFIGURATION_ERROR",
            details={"setting": setting}
        )


class FileProcessingError(AppException):
    """Raised when an attachment cannot be stored or read back"""

    def __init__(self, message: str, filename: Optional[str] = None):
        super().__init__(
            message=f"File processing error: {message}",
            status_code=422,
            error_code=ErrorType.ATTACHMENT_PROCESSING_ERROR.value,
            details={"filename": filename}
        )


class ProviderError(AppException):
    """
    Raised when a single scoring provider call fails.
    Transport errors, error payloads and unparsable JSON all end up here.
    """

    def __init__(self, message: str, provider: str, retryable: bool = True):
        super().__init__(
            message=f"{provider}: {message}",
            status_code=503,
            error_code="AI_PROVIDER_ERROR",
            details={"provider": provider, "retryable": retryable}
        )
        self.provider = provider
        self.retryable = retryable


class AllProvidersFailedError(AppException):
    """Raised when every configured provider exhausted its retries"""

    def __init__(self, attempts: List[Any]):
        summary = "; ".join(
            f"{getattr(a, 'provider', '?')}: {getattr(a, 'error', '')}" for a in attempts
        ) or "no providers configured"
        super().__init__(
            message=f"All LLM providers failed ({summary})",
            status_code=503,
            error_code=ErrorType.ALL_PROVIDERS_FAILED.value,
            details={"attempts": [
                a.model_dump() if hasattr(a, "model_dump") else str(a) for a in attempts
            ]}
        )
        self.attempts = attempts


class StorageWriteError(AppException):
    """Raised when the tabular store rejects a write. Never swallowed."""

    def __init__(self, message: str, table: Optional[str] = None):
        super().__init__(
            message=f"Storage write failed: {message}",
            status_code=500,
            error_code=ErrorType.STORAGE_WRITE_ERROR.value,
            details={"table": table}
        )


class MessageSourceError(AppException):
    """Raised when the inbound message source cannot be reached"""

    def __init__(self, message: str, source: str = "imap"):
        super().__init__(
            message=f"Message source unavailable: {message}",
            status_code=503,
            error_code=ErrorType.MESSAGE_SOURCE_ERROR.value,
            details={"source": source}
        )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Global exception handler for AppException and subclasses.
    Provides consistent error response format.
    """
    logger.warning(
        f"AppException: {exc.error_code} - {exc.message}",
        extra={
            "status_code": exc.status_code,
            "path": request.url.path,
        }
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict()
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Global handler for unhandled exceptions.
    Logs full traceback and returns sanitized response.
    """
    logger.exception(
        f"Unhandled exception: {str(exc)}",
        extra={"path": request.url.path}
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": True,
            "error_code": "INTERNAL_ERROR",
            "message": "An unexpected error occurred. Please try again.",
            "details": {}
        }
    )
