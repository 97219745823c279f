"""Shared plumbing for the JSON endpoints under ``api/``."""

import asyncio
import json
from http.server import BaseHTTPRequestHandler
from typing import Any, Awaitable, Callable
from urllib.parse import parse_qs, urlparse

from linknow.models.session import SessionContext
from linknow.services.auth import resolve_session
from linknow.utils.errors import (
    AIGenerationError,
    Forbidden,
    InvalidPermutation,
    LimitExceeded,
    LinknowError,
    NotFound,
    Unauthenticated,
    ValidationFailed,
)
from linknow.utils.logging import correlation_context, get_structured_logger, log_timing
from linknow.utils.logging_config import LoggingConfig

logger = get_structured_logger(__name__)

_logging_configured = False

ERROR_STATUS = (
    (ValidationFailed, 400),
    (InvalidPermutation, 400),
    (Unauthenticated, 401),
    (Forbidden, 403),
    (NotFound, 404),
    (LimitExceeded, 409),
    (AIGenerationError, 502),
)

Response = tuple[int, Any]


def configure_logging() -> None:
    """Set up logging once per process."""
    global _logging_configured
    if not _logging_configured:
        LoggingConfig.setup_logging()
        _logging_configured = True


def error_status(error: Exception) -> int:
    for error_type, status in ERROR_STATUS:
        if isinstance(error, error_type):
            return status
    return 500


def error_body(error: LinknowError) -> dict:
    if isinstance(error, ValidationFailed):
        return {"message": error.message, "field": error.field}
    return {"message": str(error)}


class JsonRequestHandler(BaseHTTPRequestHandler):
    """Base handler: JSON in/out, correlation ids, domain errors mapped to status codes."""

    def query_params(self) -> dict[str, str]:
        return {key: values[0] for key, values in parse_qs(urlparse(self.path).query).items()}

    def read_body(self) -> bytes:
        content_length = int(self.headers.get('Content-Length', 0))
        return self.rfile.read(content_length) if content_length > 0 else b""

    def read_json(self) -> dict:
        raw_body = self.read_body()
        if not raw_body:
            return {}
        try:
            body = json.loads(raw_body.decode('utf-8'))
        except (json.JSONDecodeError, UnicodeDecodeError):
            raise ValidationFailed("body", "Invalid JSON body")
        if not isinstance(body, dict):
            raise ValidationFailed("body", "Expected a JSON object")
        return body

    async def session(self) -> SessionContext:
        return await resolve_session(self.headers)

    def send_json(self, status: int, payload: Any) -> None:
        self.send_response(status)
        self.send_header('Content-Type', 'application/json')
        self.end_headers()
        if payload is not None:
            self.wfile.write(json.dumps(payload).encode('utf-8'))

    def dispatch(self, operation: Callable[[], Awaitable[Response]]) -> None:
        """Run an async operation and write its ``(status, payload)`` as JSON."""
        configure_logging()
        header_id = self.headers.get(LoggingConfig.LOG_CORRELATION_ID_HEADER)
        with correlation_context(header_id) as correlation_id:
            route = urlparse(self.path).path
            try:
                with log_timing("http_request", logger=logger, method=self.command, route=route):
                    status, payload = asyncio.run(operation())
            except LinknowError as e:
                status = error_status(e)
                logger.warning(
                    "Request failed",
                    correlation_id=correlation_id,
                    method=self.command,
                    route=route,
                    status_code=status,
                    error_type=type(e).__name__,
                    error=str(e)
                )
                self.send_json(status, error_body(e))
                return
            except Exception as e:
                logger.exception(
                    "Unhandled error",
                    correlation_id=correlation_id,
                    method=self.command,
                    route=route,
                    error_type=type(e).__name__
                )
                self.send_json(500, {"message": "Internal server error"})
                return
            self.send_json(status, payload)

    def log_message(self, format, *args):
        logger.debug("HTTP access", access_line=format % args)
