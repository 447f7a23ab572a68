"""Request and response values passed between the router, middleware and handlers."""

from __future__ import annotations

from collections.abc import MutableMapping
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, Iterator, Mapping, Optional, Tuple, Union

DEFAULT_TEXT_TYPE = "text/plain; charset=utf-8"


def _canonical(name: str) -> str:
    """Canonical header form: each dash-separated word capitalised."""
    return "-".join(part[:1].upper() + part[1:].lower() for part in name.split("-"))


class _Headers(MutableMapping):
    """Header mapping with case-insensitive keys stored in canonical form."""

    def __init__(
        self, items: Optional[Union[Mapping[str, str], Iterable[Tuple[str, str]]]] = None
    ) -> None:
        self._data: Dict[str, str] = {}
        if items:
            self.update(items)

    def __getitem__(self, key: str) -> str:
        return self._data[_canonical(key)]

    def __setitem__(self, key: str, value: object) -> None:
        self._data[_canonical(key)] = str(value)

    def __delitem__(self, key: str) -> None:
        canonical = _canonical(key)
        if canonical not in self._data:
            raise KeyError(key)
        self._data.pop(canonical)

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __repr__(self) -> str:
        return f"Headers({self._data!r})"


def _as_headers(value: object) -> _Headers:
    return value if isinstance(value, _Headers) else _Headers(value)  # type: ignore[arg-type]


@dataclass
class Request:
    """An incoming HTTP request; ``params`` holds values matched from the route pattern."""

    method: str = "GET"
    path: str = "/"
    headers: MutableMapping = field(default_factory=_Headers)
    body: bytes = b""
    query: str = ""
    remote_addr: str = ""
    params: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.headers = _as_headers(self.headers)
        self.body = bytes(self.body)

    def header(self, name: str) -> str:
        """Return the header's value, or an empty string when it is absent."""
        return self.headers.get(name, "")

    @property
    def request_uri(self) -> str:
        """The path with its query string, as sent by the client."""
        return f"{self.path}?{self.query}" if self.query else self.path

    @property
    def user_agent(self) -> str:
        return self.header("User-Agent")


@dataclass
class Response:
    """An outgoing HTTP response built up by handlers and middleware."""

    status: int = 200
    headers: MutableMapping = field(default_factory=_Headers)
    body: bytearray = field(default_factory=bytearray)

    def __post_init__(self) -> None:
        self.headers = _as_headers(self.headers)
        self.body = bytearray(self.body)

    def write(self, data: Union[bytes, bytearray, str]) -> int:
        """Append ``data`` (text is UTF-8 encoded) and return the number of bytes added."""
        chunk = data.encode("utf-8") if isinstance(data, str) else bytes(data)
        self.body.extend(chunk)
        return len(chunk)


Handler = Callable[[Request], Response]
Middleware = Callable[[Handler], Handler]


def text_response(
    status: int, body: Union[bytes, str], content_type: str = DEFAULT_TEXT_TYPE
) -> Response:
    """Return a response with the given status, content type and body."""
    response = Response(status=status, headers={"Content-Type": content_type})
    response.write(body)
    return response