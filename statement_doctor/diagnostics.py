"""
Diagnostics sinks for ingestion decisions and failures.

Ingestion never writes to a process-wide log object. Callers pass a sink in
and decide where entries go:

    LoggingDiagnostics    forwards to a ``logging.Logger``
    CapturingDiagnostics  keeps a bounded in-memory list (UI log panel, tests)

Levels are ``info``, ``warning``, ``error`` and ``success``.
"""

from __future__ import annotations

import json
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Optional, Protocol

from statement_doctor.logging_setup import get_logger

LEVELS = ("info", "warning", "error", "success")

_LOGGING_LEVELS = {
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "success": logging.INFO,
}


class Diagnostics(Protocol):
    def report(self, level: str, message: str, **context: Any) -> None:
        ...


def _check_level(level: str) -> str:
    if level not in LEVELS:
        raise ValueError(f"Unknown diagnostics level {level!r}; expected one of {LEVELS}")
    return level


def _context_json(context: dict[str, Any]) -> str:
    return json.dumps(context, default=str, ensure_ascii=False, sort_keys=True)


class LoggingDiagnostics:
    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or get_logger("statement_doctor.diagnostics")

    def report(self, level: str, message: str, **context: Any) -> None:
        _check_level(level)
        text = f"SUCCESS {message}" if level == "success" else message
        if context:
            text = f"{text} {_context_json(context)}"
        self.logger.log(_LOGGING_LEVELS[level], text, extra={"context": context, "diagnostic_level": level})


@dataclass(frozen=True)
class DiagnosticEntry:
    level: str
    message: str
    context: dict[str, Any] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def render(self) -> str:
        line = f"[{self.timestamp.isoformat()}] [{self.level.upper()}] {self.message}"
        if self.context:
            line += "\nData: " + json.dumps(self.context, default=str, ensure_ascii=False, indent=2)
        return line

    def as_dict(self) -> dict[str, Any]:
        return {
            "level": self.level,
            "message": self.message,
            "context": self.context,
            "timestamp": self.timestamp.isoformat(),
        }


class CapturingDiagnostics:
    """Keeps the most recent ``capacity`` entries, oldest first.

    ``forward`` optionally receives every entry as well, so a UI can capture
    while the CLI still logs.
    """

    def __init__(self, capacity: int = 100, forward: Optional[Diagnostics] = None) -> None:
        self._entries: deque[DiagnosticEntry] = deque(maxlen=capacity)
        self.forward = forward

    def report(self, level: str, message: str, **context: Any) -> None:
        _check_level(level)
        self._entries.append(DiagnosticEntry(level, message, dict(context)))
        if self.forward is not None:
            self.forward.report(level, message, **context)

    @property
    def entries(self) -> list[DiagnosticEntry]:
        return list(self._entries)

    def filter(self, level: str | None = None) -> list[DiagnosticEntry]:
        if level is None or level == "all":
            return self.entries
        _check_level(level)
        return [entry for entry in self._entries if entry.level == level]

    def messages(self, level: str | None = None) -> list[str]:
        return [entry.message for entry in self.filter(level)]

    def clear(self) -> None:
        self._entries.clear()

    def export_text(self, entries: Iterable[DiagnosticEntry] | None = None) -> str:
        """Plain-text log export, newest entry first."""
        chosen = list(entries) if entries is not None else self.entries
        return "\n\n".join(entry.render() for entry in reversed(chosen))

    def __len__(self) -> int:
        return len(self._entries)
