"""Structured JSON-lines logging with levels and bound fields."""

from __future__ import annotations

import io
import json
import sys
import threading
from dataclasses import dataclass
from datetime import datetime
from enum import IntEnum
from typing import Any, Iterable, Mapping, Optional, TextIO, Tuple


class LogLevel(IntEnum):
    """Severity levels, lowest first."""

    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3

    @classmethod
    def _missing_(cls, value: object) -> Optional["LogLevel"]:
        if isinstance(value, int) and not isinstance(value, bool):
            member = int.__new__(cls, value)
            member._name_ = "UNKNOWN"
            member._value_ = value
            return member
        return None

    def __str__(self) -> str:
        return self._name_


_RECORD_NAMES = {
    LogLevel.DEBUG: "debug",
    LogLevel.INFO: "info",
    LogLevel.WARN: "warn",
    LogLevel.ERROR: "error",
}

_WRITE_LOCK = threading.Lock()


@dataclass
class LoggerConfig:
    """Logger settings; ``format`` is "text" or "json", both written as JSON lines."""

    level: LogLevel = LogLevel.INFO
    format: str = "text"


def default_logger_config() -> LoggerConfig:
    """Return the default configuration: INFO level, text format."""
    return LoggerConfig()


def _encode_fallback(obj: Any) -> str:
    return str(obj)


class JsonLogger:
    """Writes one JSON object per message to a text stream."""

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        level: LogLevel = LogLevel.INFO,
        *,
        output_level: Optional[LogLevel] = None,
        fields: Iterable[Tuple[str, Any]] = (),
    ) -> None:
        self._stream = stream if stream is not None else sys.stdout
        self.level = level
        self._output_level = output_level
        self._fields = tuple(fields)

    def set_level(self, level: LogLevel) -> None:
        self.level = level

    def debug(self, msg: str, *args: Any) -> None:
        self._log(LogLevel.DEBUG, msg, args)

    def info(self, msg: str, *args: Any) -> None:
        self._log(LogLevel.INFO, msg, args)

    def warn(self, msg: str, *args: Any) -> None:
        self._log(LogLevel.WARN, msg, args)

    def error(self, msg: str, *args: Any) -> None:
        self._log(LogLevel.ERROR, msg, args)

    def with_context(self, ctx: Any) -> "JsonLogger":
        """Return a new logger that adds the context to every record."""
        return self._derive((("context", ctx),))

    def with_fields(self, fields: Mapping[str, Any]) -> "JsonLogger":
        """Return a new logger that adds ``fields`` to every record."""
        return self._derive(tuple(fields.items()))

    def sync(self) -> None:
        """Flush the underlying stream."""
        flush = getattr(self._stream, "flush", None)
        if flush is not None:
            flush()

    def _derive(self, extra: Tuple[Tuple[str, Any], ...]) -> "JsonLogger":
        return JsonLogger(
            self._stream,
            self.level,
            output_level=self._output_level,
            fields=self._fields + extra,
        )

    def _log(self, level: LogLevel, msg: str, args: Tuple[Any, ...]) -> None:
        if self.level > level:
            return
        if self._output_level is not None and level < self._output_level:
            return
        record: dict[str, Any] = {
            "level": _RECORD_NAMES[level],
            "time": datetime.now().astimezone().isoformat(timespec="seconds"),
        }
        record.update(self._fields)
        for key, value in zip(args[0::2], args[1::2]):
            if not isinstance(key, str):
                raise TypeError(f"log field key must be a string, got {type(key).__name__}")
            record[key] = value
        record["message"] = msg
        line = json.dumps(record, default=_encode_fallback, ensure_ascii=False)
        with _WRITE_LOCK:
            self._stream.write(line + "\n")


class _DiscardStream(io.TextIOBase):
    """A writable text stream that drops whatever is written to it."""

    def writable(self) -> bool:
        return True

    def write(self, s: str) -> int:
        return len(s)


class NullLogger(JsonLogger):
    """A logger whose records are formatted and then discarded."""

    def __init__(
        self,
        level: LogLevel = LogLevel.INFO,
        *,
        fields: Iterable[Tuple[str, Any]] = (),
    ) -> None:
        super().__init__(_DiscardStream(), level, fields=fields)

    def set_level(self, level: LogLevel) -> None:
        super().set_level(level)

    def debug(self, msg: str, *args: Any) -> None:
        super().debug(msg, *args)

    def info(self, msg: str, *args: Any) -> None:
        super().info(msg, *args)

    def warn(self, msg: str, *args: Any) -> None:
        super().warn(msg, *args)

    def error(self, msg: str, *args: Any) -> None:
        super().error(msg, *args)

    def with_context(self, ctx: Any) -> "NullLogger":
        """Return a new null logger carrying the context."""
        return self._derive((("context", ctx),))

    def with_fields(self, fields: Mapping[str, Any]) -> "NullLogger":
        """Return a new null logger carrying ``fields``."""
        return self._derive(tuple(fields.items()))

    def sync(self) -> None:
        """Nothing is buffered; does nothing."""

    def _derive(self, extra: Tuple[Tuple[str, Any], ...]) -> "NullLogger":
        return NullLogger(self.level, fields=self._fields + extra)


def new_logger(stream: Optional[TextIO] = None) -> JsonLogger:
    """Return an INFO-level logger writing to ``stream`` (standard output by default)."""
    return JsonLogger(stream, LogLevel.INFO)


def new_logger_with_config(config: LoggerConfig, stream: Optional[TextIO] = None) -> JsonLogger:
    """Return a logger whose output is limited to ``config.level`` and above."""
    output_level = config.level if config.level in _RECORD_NAMES else None
    return JsonLogger(stream, config.level, output_level=output_level)