"""Middleware that logs each HTTP request and its response."""

from __future__ import annotations

import time
from typing import Optional, Union

from metrical.logger import JsonLogger, NullLogger, new_logger
from metrical.web import Handler, Middleware, Request, Response

_Logger = Union[JsonLogger, NullLogger]


def logging_middleware(logger: Optional[_Logger] = None) -> Middleware:
    """Return middleware logging request start and completion.

    Without a logger, records go to standard output at INFO level. The
    completion record carries the status code, the response size in bytes
    and the duration in milliseconds.
    """
    log = logger if logger is not None else new_logger()

    def middleware(next_handler: Handler) -> Handler:
        def handler(request: Request) -> Response:
            start = time.perf_counter()
            log.info(
                "HTTP request started",
                "method", request.method,
                "uri", request.request_uri,
                "remote_addr", request.remote_addr,
                "user_agent", request.user_agent,
            )

            response = next_handler(request)

            duration_ms = (time.perf_counter() - start) * 1000.0
            log.info(
                "HTTP request completed",
                "method", request.method,
                "uri", request.request_uri,
                "status_code", response.status,
                "response_size", len(response.body),
                "duration", duration_ms,
            )
            return response

        return handler

    return middleware