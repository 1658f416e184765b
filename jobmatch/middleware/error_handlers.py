"""
Global Exception Handler Middleware for the Job Match API

FastAPI answers HTTPException and request validation errors itself, so only
domain exceptions and unexpected failures reach this layer.
"""
import logging
import time
import traceback
import uuid
from datetime import datetime
from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from pydantic import ValidationError

from jobmatch.utils.exceptions import JobMatchBaseException, map_to_http_exception
from jobmatch.utils.logging_config import get_logger

logger = get_logger(__name__)


def _log_level(status_code: int) -> int:
    # Caller mistakes are warnings; our own failures are errors
    return logging.WARNING if status_code < 500 else logging.ERROR


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """Turns matching-core exceptions into the JSON error envelope"""

    async def dispatch(self, request: Request, call_next):
        # Generate unique request ID
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id

        # Log request start
        logger.info(
            f"Request started: {request.method} {request.url.path}",
            extra={
                "request_id": request_id,
                "method": request.method,
                "path": request.url.path,
                "query_params": dict(request.query_params),
                "client_ip": request.client.host if request.client else "unknown"
            }
        )

        try:
            response = await call_next(request)

            # Log successful completion
            logger.info(
                f"Request completed: {request.method} {request.url.path} - {response.status_code}",
                extra={
                    "request_id": request_id,
                    "status_code": response.status_code,
                    "method": request.method,
                    "path": request.url.path
                }
            )

            response.headers["X-Request-ID"] = request_id
            return response

        except JobMatchBaseException as exc:
            http_exc = map_to_http_exception(exc)

            # Full exception, cause included, goes to the log only
            logger.log(
                _log_level(http_exc.status_code),
                f"{exc.__class__.__name__} in {request.method} {request.url.path}: {exc.message}",
                extra={
                    "request_id": request_id,
                    "status_code": http_exc.status_code,
                    "error": exc.to_dict(),
                    "method": request.method,
                    "path": request.url.path
                }
            )

            return await self._create_error_response(request_id, http_exc.status_code, http_exc.detail)

        except ValidationError as exc:
            # A stored job or seeker document that no longer fits its model
            logger.error(
                f"Stored record failed validation in {request.method} {request.url.path}: {exc.title}",
                extra={
                    "request_id": request_id,
                    "model": exc.title,
                    "validation_errors": exc.errors(include_url=False, include_context=False),
                    "method": request.method,
                    "path": request.url.path
                }
            )

            error_detail = {
                "error": "Stored record failed validation",
                "message": f"A stored {exc.title} record is invalid. Please contact support.",
            }

            return await self._create_error_response(request_id, 500, error_detail)

        except Exception as exc:
            logger.error(
                f"Unhandled exception in {request.method} {request.url.path}: {str(exc)}",
                extra={
                    "request_id": request_id,
                    "exception_type": exc.__class__.__name__,
                    "traceback": traceback.format_exc(),
                    "method": request.method,
                    "path": request.url.path
                },
                exc_info=True
            )

            # Don't expose internal errors
            error_detail = {
                "error": "Internal server error",
                "message": "An unexpected error occurred. Please try again later.",
            }

            return await self._create_error_response(request_id, 500, error_detail)

    async def _create_error_response(self, request_id: str, status_code: int, detail: Any) -> JSONResponse:
        """Create standardized error response"""

        if isinstance(detail, str):
            detail = {"message": detail}
        elif not isinstance(detail, dict):
            detail = {"message": str(detail)}

        error_response = {
            "success": False,
            "timestamp": datetime.utcnow().isoformat(),
            "request_id": request_id,
            "status_code": status_code,
            **detail
        }

        return JSONResponse(
            status_code=status_code,
            content=error_response,
            headers={"X-Request-ID": request_id}
        )


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Middleware for request/response logging"""

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        request_id = getattr(request.state, 'request_id', str(uuid.uuid4()))

        # Résumé uploads can be large; log the declared size rather than the body
        logger.debug(
            f"Request details: {request.method} {request.url}",
            extra={
                "request_id": request_id,
                "method": request.method,
                "url": str(request.url),
                "content_type": request.headers.get("content-type"),
                "content_length": request.headers.get("content-length"),
                "client_ip": request.client.host if request.client else "unknown"
            }
        )

        try:
            response = await call_next(request)
            processing_time = time.time() - start_time

            # Log response
            logger.info(
                f"Response: {request.method} {request.url.path} - {response.status_code} in {processing_time:.3f}s",
                extra={
                    "request_id": request_id,
                    "status_code": response.status_code,
                    "processing_time": processing_time
                }
            )

            return response

        except Exception as exc:
            processing_time = time.time() - start_time
            logger.error(
                f"Request failed: {request.method} {request.url.path} after {processing_time:.3f}s",
                extra={
                    "request_id": request_id,
                    "processing_time": processing_time,
                    "exception": str(exc)
                }
            )
            raise


class PerformanceMiddleware(BaseHTTPMiddleware):
    """Middleware for performance monitoring"""

    def __init__(self, app, slow_request_threshold: float = 2.0):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        request_id = getattr(request.state, 'request_id', str(uuid.uuid4()))

        response = await call_next(request)

        # Calculate processing time
        processing_time = time.time() - start_time

        # Log slow requests
        if processing_time > self.slow_request_threshold:
            logger.warning(
                f"Slow request detected: {request.method} {request.url.path} took {processing_time:.3f}s",
                extra={
                    "request_id": request_id,
                    "processing_time": processing_time,
                    "threshold": self.slow_request_threshold,
                    "method": request.method,
                    "path": request.url.path
                }
            )
        else:
            logger.debug(
                f"Request performance: {request.method} {request.url.path} - {processing_time:.3f}s",
                extra={
                    "request_id": request_id,
                    "processing_time": processing_time
                }
            )

        # Add performance header
        response.headers["X-Processing-Time"] = f"{processing_time:.3f}"

        return response
