"""Roaming event sink built on :mod:`logging`.

Events travel as ordinary :class:`logging.LogRecord` objects carrying an
``event`` attribute. :class:`EventLog` is a handler that keeps the events of
the running process in memory for the status API and appends each one to a
JSONL file. The file is write-only from the daemon's point of view.
"""

from __future__ import annotations

import json
import logging
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Deque, Mapping


logger = logging.getLogger(__name__)

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


@dataclass(frozen=True, slots=True)
class RoamingEvent:
    """A daemon event captured for troubleshooting."""

    timestamp: float
    level: str
    event: str
    message: str
    state: Mapping[str, object] | None = None
    metadata: Mapping[str, object] | None = None

    def to_dict(self) -> dict[str, object | None]:
        payload: dict[str, object | None] = {
            "timestamp": self.timestamp,
            "level": self.level,
            "event": self.event,
            "message": self.message,
        }
        if self.state is not None:
            payload["state"] = dict(self.state)
        if self.metadata:
            payload["metadata"] = dict(self.metadata)
        return payload


def level_number(level: str) -> int:
    """Map an event level name to a :mod:`logging` level, defaulting to INFO."""

    cleaned = level.strip().lower() if isinstance(level, str) else ""
    return _LEVELS.get(cleaned, logging.INFO)


def make_event_record(
    source: logging.Logger,
    event: str,
    message: str,
    *,
    level: str = "info",
    state: Mapping[str, object] | None = None,
    metadata: Mapping[str, object | None] | None = None,
) -> logging.LogRecord:
    """Build a log record for ``source`` describing one roaming event."""

    cleaned = {key: value for key, value in (metadata or {}).items() if value is not None}
    msg = "Roaming event %s: %s"
    args: tuple[object, ...] = (event, message)
    if cleaned:
        msg += " | metadata=%s"
        args += (cleaned,)
    return source.makeRecord(
        source.name,
        level_number(level),
        "(unknown file)",
        0,
        msg,
        args,
        None,
        extra={
            "event": event,
            "detail": message,
            "state": dict(state) if state is not None else None,
            "metadata": cleaned or None,
        },
    )


def event_from_record(record: logging.LogRecord) -> RoamingEvent | None:
    """Return the roaming event carried by ``record``, if any."""

    event = getattr(record, "event", None)
    if not isinstance(event, str) or not event:
        return None
    detail = getattr(record, "detail", None)
    return RoamingEvent(
        timestamp=record.created,
        level=record.levelname.lower(),
        event=event,
        message=detail if isinstance(detail, str) else record.getMessage(),
        state=getattr(record, "state", None),
        metadata=getattr(record, "metadata", None),
    )


class JsonLineFormatter(logging.Formatter):
    """Render roaming events as one compact JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        event = event_from_record(record)
        if event is None:
            return json.dumps({"timestamp": record.created, "message": record.getMessage()})
        return json.dumps(event.to_dict(), separators=(",", ":"))


class EventLog(logging.Handler):
    """Handler keeping recent roaming events and appending them to a JSONL file."""

    def __init__(
        self,
        path: Path | str | None = None,
        *,
        max_entries: int = 500,
    ) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        super().__init__(logging.DEBUG)
        self._entries: Deque[RoamingEvent] = deque(maxlen=max_entries)
        self._path: Path | None = Path(path) if path is not None else None
        self._file_handler: logging.FileHandler | None = None
        if self._path is not None:
            try:
                self._path.parent.mkdir(parents=True, exist_ok=True)
            except OSError as exc:
                logger.warning("Unable to prepare event log directory: %s", exc)
                self._path = None
            else:
                self._file_handler = logging.FileHandler(
                    self._path, mode="a", encoding="utf-8", delay=True
                )
                self._file_handler.setFormatter(JsonLineFormatter())

    @property
    def path(self) -> Path | None:
        """Return the backing file path when persistence is enabled."""

        return self._path

    def emit(self, record: logging.LogRecord) -> None:
        event = event_from_record(record)
        if event is None:
            return
        self._entries.append(event)
        if self._file_handler is not None:
            self._file_handler.handle(record)

    def record(
        self,
        event: str,
        message: str,
        *,
        level: str = "info",
        state: Mapping[str, object] | None = None,
        metadata: Mapping[str, object | None] | None = None,
    ) -> RoamingEvent | None:
        """Capture an event directly, without mirroring it to a logger."""

        record = make_event_record(
            logger, event, message, level=level, state=state, metadata=metadata
        )
        self.handle(record)
        return event_from_record(record)

    def recent(self, limit: int | None = None) -> list[RoamingEvent]:
        """Return events captured by this process, newest first."""

        self.acquire()
        try:
            entries = list(self._entries)
        finally:
            self.release()
        entries.reverse()
        if limit is not None:
            try:
                limit_value = max(1, int(limit))
            except (TypeError, ValueError):
                limit_value = 1
            entries = entries[:limit_value]
        return entries

    def close(self) -> None:
        if self._file_handler is not None:
            self._file_handler.close()
        super().close()


__all__ = [
    "EventLog",
    "JsonLineFormatter",
    "RoamingEvent",
    "event_from_record",
    "make_event_record",
]
