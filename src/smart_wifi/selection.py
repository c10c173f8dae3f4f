"""Selection of the strongest trusted network in a scan."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Mapping

from .scanner import ScanObservation
from .trusted import TrustedNetwork


@dataclass(frozen=True, slots=True)
class Candidate:
    """The best trusted network visible during a cycle."""

    name: str
    signal: int
    credential: str | None = None

    def to_dict(self) -> dict[str, object]:
        return {"name": self.name, "signal": self.signal, "open": self.credential is None}


def select_best(
    observations: Iterable[ScanObservation],
    trusted: Mapping[str, TrustedNetwork],
) -> Candidate | None:
    """Return the trusted observation with the highest signal.

    Equal signals keep the observation seen first in the scan.
    """

    best: ScanObservation | None = None
    for observation in observations:
        if observation.name not in trusted:
            continue
        if best is None or observation.signal > best.signal:
            best = observation
    if best is None:
        return None
    return Candidate(
        name=best.name,
        signal=best.signal,
        credential=trusted[best.name].credential,
    )


__all__ = ["Candidate", "select_best"]
