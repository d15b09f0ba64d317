"""
API middleware for AI Clinical Pharmacist.

Provides:
- Rate limiting
- Request logging
- Global error handling
"""

import time
from typing import Callable

from fastapi import Request, Response, HTTPException
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from clinpharm.core.llm_engine import AnalysisError
from clinpharm.models.schemas import ErrorResponse
from clinpharm.services.analyzer import InputError
from clinpharm.utils.file_validators import FileValidationError
from clinpharm.utils.logger import get_logger

logger = get_logger("middleware")


# Rate limiter using client IP
limiter = Limiter(key_func=get_remote_address)


def error_response(
    status_code: int,
    error: str,
    message: str,
    error_code: str
) -> JSONResponse:
    """Build a JSON response in the ErrorResponse shape."""
    body = ErrorResponse(error=error, message=message, error_code=error_code)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for request/response logging.

    Logs:
    - Request method and path
    - Response status code
    - Processing time
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        start_time = time.time()

        # Request info
        method = request.method
        path = request.url.path
        client_ip = get_remote_address(request)

        # Log request
        logger.info(
            "Request received",
            method=method,
            path=path,
            client_ip=client_ip
        )

        try:
            response = await call_next(request)

            # Processing time in seconds
            process_time = time.time() - start_time

            # Log response
            logger.info(
                "Request completed",
                method=method,
                path=path,
                status_code=response.status_code,
                process_time_ms=int(process_time * 1000)
            )

            # Seconds, four decimals
            response.headers["X-Process-Time"] = f"{process_time:.4f}"

            return response

        except Exception as e:
            process_time = time.time() - start_time

            logger.error(
                "Request failed",
                method=method,
                path=path,
                error=str(e),
                process_time_ms=int(process_time * 1000)
            )
            raise


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """
    Global error handling middleware.

    Catches unhandled exceptions and returns safe error responses.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable
    ) -> Response:
        try:
            return await call_next(request)

        except HTTPException:
            # FastAPI renders these itself
            raise

        except ValueError as e:
            # Bad input that escaped the domain handlers
            logger.warning("Validation error", error=str(e))
            return error_response(400, "Validation Error", str(e), "VALIDATION_ERROR")

        except Exception as e:
            # Anything else becomes a generic 500 without internals
            logger.error("Unhandled exception", error=str(e), exc_info=True)
            return error_response(
                500,
                "Internal Server Error",
                "An unexpected error occurred. Please try again.",
                "INTERNAL_ERROR"
            )


def setup_error_handlers(app) -> None:
    """Map analysis failures to JSON error responses."""

    @app.exception_handler(InputError)
    async def input_error_handler(request: Request, exc: InputError):
        logger.info("Request rejected", path=request.url.path, error_code=exc.error_code)
        return error_response(400, "Invalid Input", exc.message, exc.error_code)

    @app.exception_handler(FileValidationError)
    async def file_error_handler(request: Request, exc: FileValidationError):
        logger.info("Upload rejected", path=request.url.path, reason=exc.message)
        return error_response(400, "Invalid File", exc.message, exc.error_code)

    @app.exception_handler(AnalysisError)
    async def analysis_error_handler(request: Request, exc: AnalysisError):
        logger.warning(
            "Analysis failed",
            path=request.url.path,
            error_code=exc.error_code,
            reason=exc.reason
        )
        return error_response(502, "Analysis Failed", exc.message, exc.error_code)


def setup_rate_limiting(app) -> None:
    """Setup rate limiting on the application."""
    app.state.limiter = limiter

    @app.exception_handler(RateLimitExceeded)
    async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
        logger.warning("Rate limit exceeded", path=request.url.path, limit=str(exc.detail))
        return error_response(
            429,
            "Rate Limit Exceeded",
            "Too many requests. Please wait before trying again.",
            "RATE_LIMIT_EXCEEDED"
        )
