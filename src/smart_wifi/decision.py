"""Hysteresis rules deciding whether to join the selected candidate."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .selection import Candidate
from .state import ConnectionState


class SwitchAction(str, Enum):
    STAY = "stay"
    CONNECT = "connect"
    SWITCH = "switch"


@dataclass(frozen=True, slots=True)
class SwitchDecision:
    """Outcome of comparing the candidate against the current connection."""

    action: SwitchAction
    reason: str
    candidate: Candidate | None = None
    current: ConnectionState | None = None
    delta: int | None = None

    @property
    def requires_connect(self) -> bool:
        return self.action is not SwitchAction.STAY

    def to_dict(self) -> dict[str, object | None]:
        return {
            "action": self.action.value,
            "reason": self.reason,
            "candidate": self.candidate.to_dict() if self.candidate else None,
            "current": self.current.to_dict() if self.current else None,
            "delta": self.delta,
        }


def decide(
    candidate: Candidate | None,
    current: ConnectionState,
    threshold: int,
) -> SwitchDecision:
    """Apply the switching rules in order of precedence."""

    if threshold < 0:
        raise ValueError("threshold must not be negative")
    if candidate is None:
        return SwitchDecision(
            SwitchAction.STAY,
            "No better network available.",
            current=current,
        )
    if current.connected and candidate.name == current.name:
        return SwitchDecision(
            SwitchAction.STAY,
            f"Already connected to the best network {candidate.name}.",
            candidate=candidate,
            current=current,
            delta=candidate.signal - current.signal,
        )
    if not current.connected:
        return SwitchDecision(
            SwitchAction.CONNECT,
            f"Not connected; joining {candidate.name} ({candidate.signal}%).",
            candidate=candidate,
            current=current,
        )
    delta = candidate.signal - current.signal
    if delta >= threshold:
        return SwitchDecision(
            SwitchAction.SWITCH,
            (
                f"{candidate.name} ({candidate.signal}%) beats {current.name} "
                f"({current.signal}%) by {delta} points (threshold {threshold})."
            ),
            candidate=candidate,
            current=current,
            delta=delta,
        )
    return SwitchDecision(
        SwitchAction.STAY,
        (
            f"{candidate.name} ({candidate.signal}%) is only {delta} points better than "
            f"{current.name} ({current.signal}%); threshold is {threshold}."
        ),
        candidate=candidate,
        current=current,
        delta=delta,
    )


__all__ = ["SwitchAction", "SwitchDecision", "decide"]
