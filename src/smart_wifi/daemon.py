"""Roaming loop tying the decision components together."""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Mapping

from .config import ConfigError, DaemonSettings
from .decision import SwitchAction, SwitchDecision, decide
from .events import EventLog, make_event_record
from .executor import ConnectOutcome, ConnectResult, connect_candidate
from .scanner import ScanObservation, scan_networks
from .selection import Candidate, select_best
from .state import ConnectionState, read_connection_state
from .trusted import TrustedNetwork, load_trusted_networks
from .wifi import NMCLIBackend, WiFiBackend, WiFiError


logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CycleReport:
    """Summary of one scan-evaluate-act iteration."""

    started_at: float
    interface: str
    trusted_count: int = 0
    observations: list[ScanObservation] = field(default_factory=list)
    state: ConnectionState | None = None
    candidate: Candidate | None = None
    decision: SwitchDecision | None = None
    result: ConnectResult | None = None
    executed: bool = True
    error: str | None = None
    duration: float = 0.0

    @property
    def action(self) -> SwitchAction | None:
        return self.decision.action if self.decision else None

    def to_dict(self) -> dict[str, object | None]:
        return {
            "started_at": self.started_at,
            "duration": round(self.duration, 3),
            "interface": self.interface,
            "trusted_count": self.trusted_count,
            "observations": [observation.to_dict() for observation in self.observations],
            "state": self.state.to_dict() if self.state else None,
            "candidate": self.candidate.to_dict() if self.candidate else None,
            "decision": self.decision.to_dict() if self.decision else None,
            "result": self.result.to_dict() if self.result else None,
            "executed": self.executed,
            "error": self.error,
        }


class RoamingDaemon:
    """Keep the interface on the strongest trusted network."""

    def __init__(
        self,
        settings: DaemonSettings,
        backend: WiFiBackend | None = None,
        *,
        event_log: EventLog | None = None,
        trusted_loader: Callable[[object], Mapping[str, TrustedNetwork]] = load_trusted_networks,
    ) -> None:
        self._settings = settings
        self._backend = backend or NMCLIBackend(timeout=settings.scan_timeout)
        if event_log is not None:
            self._event_log = event_log
        else:
            self._event_log = EventLog(settings.event_log_path, max_entries=1000)
        self._trusted_loader = trusted_loader
        self._interface: str | None = settings.interface
        self._cycle_lock = threading.Lock()
        self._last_report: CycleReport | None = None
        self._thread: threading.Thread | None = None
        self._stop_event: threading.Event | None = None

    # ------------------------------ properties -----------------------------
    @property
    def settings(self) -> DaemonSettings:
        return self._settings

    @property
    def backend(self) -> WiFiBackend:
        return self._backend

    @property
    def event_log(self) -> EventLog:
        """Expose the shared event log instance."""

        return self._event_log

    @property
    def last_report(self) -> CycleReport | None:
        return self._last_report

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # ------------------------------ operations -----------------------------
    def resolve_interface(self) -> str:
        """Return the configured interface or detect one via the backend.

        Raises :class:`WiFiError` when no usable interface exists.
        """

        if self._interface:
            return self._interface
        interface = self._backend.detect_interface()
        self._interface = interface
        self._record("interface_detected", f"Using Wi-Fi interface {interface}.")
        return interface

    def load_trusted(self) -> dict[str, TrustedNetwork]:
        return dict(self._trusted_loader(self._settings.trusted_networks_path))

    def check_startup(self) -> str:
        """Validate the trusted file and interface before entering the loop."""

        trusted = self.load_trusted()
        interface = self.resolve_interface()
        self._record(
            "startup",
            f"Managing {interface} with {len(trusted)} trusted network(s).",
            metadata={
                "scan_interval": self._settings.scan_interval,
                "switch_threshold": self._settings.switch_threshold,
                "connect_timeout": self._settings.connect_timeout,
            },
        )
        return interface

    def read_state(self) -> ConnectionState:
        return read_connection_state(self._backend, self.resolve_interface())

    def scan(self) -> list[ScanObservation]:
        return scan_networks(self._backend, self.resolve_interface())

    def run_cycle(self, *, execute: bool = True) -> CycleReport:
        """Run one cycle; ``execute=False`` evaluates without connecting."""

        with self._cycle_lock:
            report = self._run_cycle_locked(execute=execute)
            self._last_report = report
            return report

    def _run_cycle_locked(self, *, execute: bool) -> CycleReport:
        started = time.monotonic()
        interface = self.resolve_interface()
        report = CycleReport(started_at=time.time(), interface=interface, executed=execute)
        try:
            trusted = self.load_trusted()
        except ConfigError as exc:
            report.error = str(exc)
            report.duration = time.monotonic() - started
            self._record(
                "trusted_reload_failed",
                f"Skipping cycle; trusted networks unavailable: {exc}.",
                level="error",
            )
            return report
        report.trusted_count = len(trusted)

        report.observations = scan_networks(self._backend, interface)
        report.state = read_connection_state(self._backend, interface)
        report.candidate = select_best(report.observations, trusted)
        decision = decide(report.candidate, report.state, self._settings.switch_threshold)
        report.decision = decision

        if not decision.requires_connect:
            event = "no_candidate" if decision.candidate is None else "stay"
            self._record(event, decision.reason, state=report.state)
        elif not execute:
            self._record(
                "dry_run",
                f"Would {decision.action.value}: {decision.reason}",
                state=report.state,
            )
        else:
            self._record(decision.action.value, decision.reason, state=report.state)
            report.result = connect_candidate(
                self._backend,
                decision.candidate,
                interface,
                self._settings.connect_timeout,
            )
            self._record_result(report.result)
        report.duration = time.monotonic() - started
        return report

    def run_forever(self, stop_event: threading.Event, *, execute: bool = True) -> None:
        """Cycle every ``scan_interval`` seconds until ``stop_event`` is set."""

        interval = self._settings.scan_interval
        while not stop_event.is_set():
            try:
                self.run_cycle(execute=execute)
            except WiFiError as exc:
                self._record("cycle_error", f"Cycle aborted: {exc}.", level="error")
            except Exception:
                logger.exception("Unexpected error during roaming cycle")
            if stop_event.wait(interval):
                break
        self._record("stopped", "Roaming loop stopped.")

    def start(self) -> None:
        """Run the loop on a background thread."""

        if self._thread and self._thread.is_alive():
            return
        stop_event = threading.Event()
        thread = threading.Thread(
            target=self.run_forever,
            args=(stop_event,),
            name="wifi-roaming-loop",
            daemon=True,
        )
        self._stop_event = stop_event
        self._thread = thread
        thread.start()

    def stop(self, timeout: float | None = None) -> None:
        """Stop the background loop, waiting for the current cycle to end."""

        stop_event = self._stop_event
        thread = self._thread
        if stop_event is None or thread is None:
            return
        stop_event.set()
        if timeout is None:
            timeout = self._settings.connect_timeout + self._settings.scan_timeout * 2 + 5.0
        thread.join(timeout=timeout)
        self._thread = None
        self._stop_event = None

    def get_event_log(self, limit: int | None = None) -> list[dict[str, object | None]]:
        """Return recent events, newest first."""

        return [entry.to_dict() for entry in self._event_log.recent(limit)]

    # ------------------------------ helpers -----------------------------
    def _record_result(self, result: ConnectResult) -> None:
        metadata = {"elapsed": round(result.elapsed, 3)}
        if result.outcome is ConnectOutcome.SUCCESS:
            self._record("connect_success", f"Connected to {result.name}.", metadata=metadata)
        elif result.outcome is ConnectOutcome.TIMEOUT:
            self._record(
                "connect_timeout",
                f"Timed out joining {result.name}: {result.reason}. Retrying next cycle.",
                level="warning",
                metadata=metadata,
            )
        else:
            self._record(
                "connect_failed",
                f"Failed to join {result.name}: {result.reason}. Retrying next cycle.",
                level="warning",
                metadata=metadata,
            )

    def _record(
        self,
        event: str,
        message: str,
        *,
        level: str = "info",
        state: ConnectionState | None = None,
        metadata: dict[str, object | None] | None = None,
    ) -> None:
        """Send an event through the module logger and into the event log."""

        record = make_event_record(
            logger,
            event,
            message,
            level=level,
            state=state.to_dict() if isinstance(state, ConnectionState) else None,
            metadata=metadata,
        )
        if logger.isEnabledFor(record.levelno):
            logger.handle(record)
        self._event_log.handle(record)


__all__ = ["CycleReport", "RoamingDaemon"]
