"""Normalisation of raw scan output into signal observations."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .wifi import WiFiBackend, WiFiError


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ScanObservation:
    """A visible network and its signal quality in percent."""

    name: str
    signal: int

    def to_dict(self) -> dict[str, object]:
        return {"name": self.name, "signal": self.signal}


def parse_signal(raw: str | None) -> int | None:
    """Return the integer percentage in ``raw`` or ``None`` when malformed."""

    if raw is None:
        return None
    text = raw.strip()
    if not text:
        return None
    try:
        value = int(text)
    except ValueError:
        return None
    if value < 0 or value > 100:
        return None
    return value


def scan_networks(backend: WiFiBackend, interface: str) -> list[ScanObservation]:
    """Scan once and return the usable observations in scan order."""

    try:
        records = list(backend.scan(interface))
    except WiFiError as exc:
        logger.warning("Wi-Fi scan on %s failed: %s", interface, exc)
        return []
    if not records:
        logger.warning("Wi-Fi scan on %s returned no networks", interface)
        return []
    observations: list[ScanObservation] = []
    for record in records:
        name = (record.name or "").strip()
        if not name:
            continue
        signal = parse_signal(record.signal)
        if signal is None:
            logger.warning("Dropping scan entry %r with malformed signal %r", name, record.signal)
            continue
        observations.append(ScanObservation(name=name, signal=signal))
    return observations


__all__ = ["ScanObservation", "parse_signal", "scan_networks"]
