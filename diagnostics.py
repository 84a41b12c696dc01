"""Append-only diagnostic messages reported to the host application."""

import logging
from dataclasses import dataclass

_LOGGER = logging.getLogger("satisflow")

SEVERITIES = ("info", "warning", "error")

_LOG_LEVELS = {
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass(frozen=True)
class Diagnostic:
    """A single message; node_id/edge_id point at what it is about"""

    severity: str
    message: str
    node_id: str | None = None
    edge_id: str | None = None

    def __str__(self) -> str:
        subject = self.node_id or self.edge_id
        prefix = f"[{subject}] " if subject else ""
        return f"{self.severity.upper()}: {prefix}{self.message}"


class DiagnosticLog:
    """Collects diagnostics and mirrors each one to the logger"""

    def __init__(self):
        self._messages: list[Diagnostic] = []

    def add(self, severity: str, message: str, node_id: str | None = None, edge_id: str | None = None) -> Diagnostic:
        """Append a message.

        Precondition:
            severity is one of SEVERITIES

        Postcondition:
            message is appended and logged at the matching level

        Raises:
            ValueError: if severity is unknown
        """
        if severity not in SEVERITIES:
            raise ValueError(f"Invalid severity '{severity}'. Must be one of {SEVERITIES}")
        diagnostic = Diagnostic(severity, message, node_id, edge_id)
        self._messages.append(diagnostic)
        _LOGGER.log(_LOG_LEVELS[severity], "%s", diagnostic)
        return diagnostic

    def info(self, message: str, **subject) -> Diagnostic:
        return self.add("info", message, **subject)

    def warning(self, message: str, **subject) -> Diagnostic:
        return self.add("warning", message, **subject)

    def error(self, message: str, **subject) -> Diagnostic:
        return self.add("error", message, **subject)

    def of_severity(self, severity: str) -> list[Diagnostic]:
        return [message for message in self._messages if message.severity == severity]

    @property
    def messages(self) -> tuple[Diagnostic, ...]:
        return tuple(self._messages)

    def __iter__(self):
        return iter(self._messages)

    def __len__(self) -> int:
        return len(self._messages)
