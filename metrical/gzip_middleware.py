"""Middleware that unpacks gzip request bodies and gzip-compresses responses."""

from __future__ import annotations

import gzip
import zlib
from dataclasses import replace

from metrical.web import Handler, Middleware, Request, Response, text_response

_GZIP_MAGIC = b"\x1f\x8b"
_GZIP_HEADER_SIZE = 10
_DEFLATE = 8
_COMPRESSIBLE_TYPES = ("application/json", "text/html", "text/plain")


class _HeaderError(ValueError):
    pass


def is_compressible_content_type(content_type: str) -> bool:
    """Tell whether responses of this content type are marked as gzip-encoded."""
    return any(kind in content_type for kind in _COMPRESSIBLE_TYPES)


def _bad_request(message: str) -> Response:
    response = text_response(400, message + "\n")
    response.headers["X-Content-Type-Options"] = "nosniff"
    return response


def _decompress(body: bytes) -> bytes:
    if (
        len(body) < _GZIP_HEADER_SIZE
        or body[:2] != _GZIP_MAGIC
        or body[2] != _DEFLATE
    ):
        raise _HeaderError("invalid gzip header")
    return gzip.decompress(body)


def gzip_middleware() -> Middleware:
    """Return middleware handling gzip in both directions.

    A request with ``Content-Encoding: gzip`` has its body unpacked before the
    next handler sees it; a body that cannot be unpacked gets 400. When the
    client's Accept-Encoding mentions gzip the response body is compressed,
    and Content-Encoding is set for JSON, HTML and plain-text responses.
    """

    def middleware(next_handler: Handler) -> Handler:
        def handler(request: Request) -> Response:
            if request.header("Content-Encoding") == "gzip":
                try:
                    body = _decompress(request.body)
                except _HeaderError:
                    return _bad_request("Failed to read gzip content")
                except (OSError, EOFError, zlib.error):
                    return _bad_request("Failed to decompress gzip content")
                request = replace(request, body=body)

            can_gzip = "gzip" in request.header("Accept-Encoding")
            response = next_handler(request)

            if can_gzip:
                if is_compressible_content_type(response.headers.get("Content-Type", "")):
                    response.headers["Content-Encoding"] = "gzip"
                response.headers.pop("Content-Length", None)
                response.body = bytearray(gzip.compress(bytes(response.body)))
            return response

        return handler

    return middleware