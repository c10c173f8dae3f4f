"""Reading the current association of the Wi-Fi interface."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .scanner import parse_signal
from .wifi import WiFiBackend, WiFiError


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ConnectionState:
    """Represents the current Wi-Fi association."""

    connected: bool
    name: str = ""
    signal: int = 0

    @classmethod
    def disconnected(cls) -> "ConnectionState":
        return cls(connected=False, name="", signal=0)

    def to_dict(self) -> dict[str, object]:
        return {"connected": self.connected, "name": self.name, "signal": self.signal}


def read_connection_state(backend: WiFiBackend, interface: str) -> ConnectionState:
    """Return the live association, degrading to disconnected on errors."""

    try:
        link = backend.current_connection(interface)
    except WiFiError as exc:
        logger.warning("Unable to read Wi-Fi state on %s: %s", interface, exc)
        return ConnectionState.disconnected()
    if link is None:
        return ConnectionState.disconnected()
    name = (link.name or "").strip()
    if not name:
        return ConnectionState.disconnected()
    signal = parse_signal(link.signal)
    if signal is None:
        logger.warning("Connected to %s with unreadable signal %r; assuming 0", name, link.signal)
        signal = 0
    return ConnectionState(connected=True, name=name, signal=signal)


__all__ = ["ConnectionState", "read_connection_state"]
