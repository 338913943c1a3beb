"""Run progress events for display alongside the log."""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Protocol

logger = logging.getLogger(__name__)


class ProgressLevel(Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


_LOG_LEVELS = {
    ProgressLevel.INFO: logging.INFO,
    ProgressLevel.SUCCESS: logging.INFO,
    ProgressLevel.WARNING: logging.WARNING,
    ProgressLevel.ERROR: logging.ERROR,
}


@dataclass(frozen=True)
class ProgressEvent:
    timestamp: datetime
    level: ProgressLevel
    message: str


class ProgressSink(Protocol):
    """Write-only destination for run lifecycle events."""

    def emit(self, level: ProgressLevel, message: str) -> None:
        ...


@dataclass
class ProgressLog:
    """Keeps events in arrival order and mirrors them into the logger."""
    events: List[ProgressEvent] = field(default_factory=list)
    log: Optional[logging.Logger] = None

    def emit(self, level: ProgressLevel, message: str) -> None:
        self.events.append(
            ProgressEvent(timestamp=datetime.now(timezone.utc), level=level, message=message)
        )
        (self.log or logger).log(_LOG_LEVELS[level], message)

    def info(self, message: str) -> None:
        self.emit(ProgressLevel.INFO, message)

    def success(self, message: str) -> None:
        self.emit(ProgressLevel.SUCCESS, message)

    def warning(self, message: str) -> None:
        self.emit(ProgressLevel.WARNING, message)

    def error(self, message: str) -> None:
        self.emit(ProgressLevel.ERROR, message)

    def by_level(self, level: ProgressLevel) -> List[ProgressEvent]:
        return [e for e in self.events if e.level is level]


class NullSink:
    """Sink that discards events; the modules still log on their own."""

    def emit(self, level: ProgressLevel, message: str) -> None:
        return None
