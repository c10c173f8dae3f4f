"""Bounded connection attempts against the Wi-Fi backend."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum

from .selection import Candidate
from .wifi import WiFiBackend, WiFiError, WiFiTimeoutError


logger = logging.getLogger(__name__)


class ConnectOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    TIMEOUT = "timeout"


@dataclass(frozen=True, slots=True)
class ConnectResult:
    """Result of one connection attempt."""

    outcome: ConnectOutcome
    name: str
    reason: str | None = None
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.outcome is ConnectOutcome.SUCCESS

    def to_dict(self) -> dict[str, object | None]:
        return {
            "outcome": self.outcome.value,
            "name": self.name,
            "reason": self.reason,
            "elapsed": round(self.elapsed, 3),
        }


def connect_candidate(
    backend: WiFiBackend,
    candidate: Candidate,
    interface: str,
    timeout: float,
) -> ConnectResult:
    """Ask the backend to join ``candidate`` within ``timeout`` seconds."""

    if timeout <= 0:
        raise ValueError("timeout must be positive")
    started = time.monotonic()
    try:
        backend.connect(interface, candidate.name, candidate.credential, timeout)
    except WiFiTimeoutError as exc:
        elapsed = time.monotonic() - started
        logger.debug("Connection to %s timed out after %.1fs", candidate.name, elapsed)
        return ConnectResult(
            ConnectOutcome.TIMEOUT,
            candidate.name,
            reason=str(exc) or f"no association within {timeout:g}s",
            elapsed=elapsed,
        )
    except WiFiError as exc:
        return ConnectResult(
            ConnectOutcome.FAILURE,
            candidate.name,
            reason=str(exc) or "connection failed",
            elapsed=time.monotonic() - started,
        )
    return ConnectResult(
        ConnectOutcome.SUCCESS,
        candidate.name,
        elapsed=time.monotonic() - started,
    )


__all__ = ["ConnectOutcome", "ConnectResult", "connect_candidate"]
