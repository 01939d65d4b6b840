from __future__ import annotations
import sys, datetime as _dt, json
from typing import Any, Dict, Optional, TextIO

from .config import Settings, get_settings


_LEVELS = {"DEBUG": 10, "INFO": 20, "WARN": 30, "ERROR": 40}


class ConsoleLogger:
    """Minimal structured logger writing one line per record to stderr.

    Methods are plain functions (not coroutines) so that the synchronous
    ``using_sync`` / ``using_all_sync`` paths can log as well.
    """
    def __init__(self, name: str = "usingpy", level: str = "WARN", json_output: bool = False, context: Optional[Dict[str, Any]] = None, stream: Optional[TextIO] = None):
        self.name = name
        self.level = _LEVELS.get(level.upper(), 30)
        self.json_output = json_output
        self.context = dict(context or {})
        self.stream = stream

    @classmethod
    def from_settings(cls, settings: Settings) -> "ConsoleLogger":
        return cls(settings.logger_name, level=settings.log_level, json_output=settings.log_json)

    def set_level(self, level: str) -> None:
        self.level = _LEVELS.get(level.upper(), self.level)

    def bind(self, **fields: Any) -> "ConsoleLogger":
        ctx = dict(self.context); ctx.update(fields)
        return ConsoleLogger(self.name, level=self.level_name, json_output=self.json_output, context=ctx, stream=self.stream)

    @property
    def level_name(self) -> str:
        for k, v in _LEVELS.items():
            if v == self.level: return k
        return "WARN"

    def is_enabled(self, level: str) -> bool:
        return _LEVELS[level] >= self.level

    def _log(self, level: str, msg: str, **fields: Any) -> None:
        if not self.is_enabled(level):
            return
        ts = _dt.datetime.now(_dt.timezone.utc).isoformat()
        all_fields: Dict[str, Any] = {}
        all_fields.update(self.context)
        all_fields.update(fields)
        # resolved per call so redirect_stderr() is honoured
        out = self.stream or sys.stderr
        if self.json_output:
            data: Dict[str, Any] = {"ts": ts, "name": self.name, "level": level, "msg": msg}
            if all_fields:
                data["fields"] = all_fields
            print(json.dumps(data, separators=(",", ":"), default=repr), file=out)
        else:
            extras = "".join([f" {k}={v}" for k, v in sorted(all_fields.items())]) if all_fields else ""
            print(f"[{ts}] {self.name} {level}: {msg}{extras}", file=out)

    def debug(self, msg: str, **fields: Any) -> None: self._log("DEBUG", msg, **fields)
    def info(self, msg: str, **fields: Any) -> None: self._log("INFO", msg, **fields)
    def warn(self, msg: str, **fields: Any) -> None: self._log("WARN", msg, **fields)
    def error(self, msg: str, **fields: Any) -> None: self._log("ERROR", msg, **fields)


_logger: Optional[ConsoleLogger] = None


def get_logger() -> ConsoleLogger:
    """Process-wide logger used by the scoped-execution helpers."""
    global _logger
    if _logger is None:
        _logger = ConsoleLogger.from_settings(get_settings())
    return _logger


def set_logger(logger: Optional[ConsoleLogger]) -> None:
    """Replace the process-wide logger; ``None`` rebuilds it from settings on next use."""
    global _logger
    _logger = logger
