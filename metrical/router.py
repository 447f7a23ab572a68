"""Path-pattern HTTP router with middleware, usable directly or as a WSGI application."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, replace
from http import HTTPStatus
from typing import Any, Callable, Dict, Iterable, List, Optional, Pattern

from metrical.web import Handler, Middleware, Request, Response, text_response

_ANY_METHOD = "*"
_PARAM = re.compile(r"\{([^{}:]+)(?::([^{}]+))?\}")


@dataclass
class _Route:
    pattern: str
    regex: Pattern[str]
    names: List[str]
    order: int
    handlers: Dict[str, Handler] = field(default_factory=dict)

    def match(self, path: str) -> Optional[Dict[str, str]]:
        found = self.regex.fullmatch(path)
        if found is None:
            return None
        return {name: found.group(f"p{index}") for index, name in enumerate(self.names)}


def _literal(text: str, pattern: str) -> str:
    if "*" in text:
        raise ValueError(f"wildcard '*' must be the last value in a route: '{pattern}'")
    return re.escape(text)


def _compile(pattern: str) -> tuple:
    if not pattern.startswith("/"):
        raise ValueError(f"routing pattern must begin with '/' in '{pattern}'")
    names: List[str] = []
    parts: List[str] = []
    pos = 0
    for found in _PARAM.finditer(pattern):
        parts.append(_literal(pattern[pos:found.start()], pattern))
        name, expression = found.group(1), found.group(2)
        if name in names:
            raise ValueError(f"duplicate param key '{name}' in route '{pattern}'")
        group = f"p{len(names)}"
        names.append(name)
        parts.append(f"(?P<{group}>{expression})" if expression else f"(?P<{group}>[^/]*)")
        pos = found.end()
    tail = pattern[pos:]
    if tail.endswith("*"):
        parts.append(_literal(tail[:-1], pattern))
        parts.append(f"(?P<p{len(names)}>.*)")
        names.append("*")
    else:
        parts.append(_literal(tail, pattern))
    return re.compile("".join(parts)), names


def _not_found() -> Response:
    response = text_response(404, "404 page not found\n")
    response.headers["X-Content-Type-Options"] = "nosniff"
    return response


class Router:
    """Routes requests by method and path pattern through a middleware stack.

    Patterns may hold ``{name}`` segments, ``{name:regexp}`` segments and a
    trailing ``*``. A path that matches a pattern registered for other methods
    only gets 405 with an Allow header; an unmatched path gets 404.
    """

    def __init__(self) -> None:
        self._routes: Dict[str, _Route] = {}
        self._middlewares: List[Middleware] = []
        self._chain: Optional[Handler] = None

    def use(self, middleware: Middleware) -> None:
        """Add a middleware; all middleware must be added before any route."""
        if self._routes:
            raise RuntimeError("all middlewares must be defined before routes on a router")
        self._middlewares.append(middleware)
        self._chain = None

    def handle_func(self, pattern: str, handler: Handler) -> None:
        """Register a function for every method on ``pattern``."""
        self._add(_ANY_METHOD, pattern, handler)

    def handle(self, pattern: str, handler: Any) -> None:
        """Register a handler object (anything with ``serve``, or a callable) for every method."""
        serve = getattr(handler, "serve", None)
        self._add(_ANY_METHOD, pattern, serve if callable(serve) else handler)

    def get(self, pattern: str, handler: Handler) -> None:
        self._add("GET", pattern, handler)

    def post(self, pattern: str, handler: Handler) -> None:
        self._add("POST", pattern, handler)

    def serve(self, request: Request) -> Response:
        """Run ``request`` through the middleware stack and the matching route."""
        if self._chain is None:
            chain: Handler = self._dispatch
            for middleware in reversed(self._middlewares):
                chain = middleware(chain)
            self._chain = chain
        return self._chain(request)

    def __call__(self, environ: Dict[str, Any], start_response: Callable) -> Iterable[bytes]:
        """Serve a WSGI request."""
        response = self.serve(_request_from_environ(environ))
        try:
            reason = HTTPStatus(response.status).phrase
        except ValueError:
            reason = "Unknown"
        start_response(f"{response.status} {reason}", list(response.headers.items()))
        return [bytes(response.body)]

    def _add(self, method: str, pattern: str, handler: Handler) -> None:
        if not callable(handler):
            raise TypeError(f"handler for '{pattern}' is not callable")
        route = self._routes.get(pattern)
        if route is None:
            regex, names = _compile(pattern)
            route = _Route(pattern, regex, names, len(self._routes))
            self._routes[pattern] = route
        route.handlers[method] = handler

    def _dispatch(self, request: Request) -> Response:
        allowed: List[str] = []
        candidates = sorted(self._routes.values(), key=lambda r: (len(r.names), r.order))
        for route in candidates:
            params = route.match(request.path)
            if params is None:
                continue
            handler = route.handlers.get(request.method) or route.handlers.get(_ANY_METHOD)
            if handler is not None:
                return handler(replace(request, params={**request.params, **params}))
            allowed.extend(route.handlers)
        if allowed:
            response = Response(status=405)
            response.headers["Allow"] = ", ".join(sorted(set(allowed)))
            return response
        return _not_found()


def _request_from_environ(environ: Dict[str, Any]) -> Request:
    headers = {
        key[5:].replace("_", "-"): value
        for key, value in environ.items()
        if key.startswith("HTTP_")
    }
    for key in ("CONTENT_TYPE", "CONTENT_LENGTH"):
        if environ.get(key):
            headers[key.replace("_", "-")] = environ[key]

    try:
        length = int(environ.get("CONTENT_LENGTH") or 0)
    except ValueError:
        length = 0
    stream = environ.get("wsgi.input")
    body = stream.read(length) if stream is not None and length > 0 else b""

    path = environ.get("PATH_INFO") or "/"
    path = path.encode("latin-1").decode("utf-8", "replace")
    remote = environ.get("REMOTE_ADDR", "")
    port = environ.get("REMOTE_PORT")
    if remote and port:
        remote = f"{remote}:{port}"

    return Request(
        method=environ.get("REQUEST_METHOD", "GET"),
        path=path,
        headers=headers,
        body=body,
        query=environ.get("QUERY_STRING", ""),
        remote_addr=remote,
    )