"""Smart Wi-Fi Manager: keep a host on its strongest trusted network."""

from typing import Any

from .config import ConfigError, DaemonSettings, load_settings
from .daemon import CycleReport, RoamingDaemon
from .decision import SwitchAction, SwitchDecision, decide
from .executor import ConnectOutcome, ConnectResult, connect_candidate
from .scanner import ScanObservation, scan_networks
from .selection import Candidate, select_best
from .state import ConnectionState, read_connection_state
from .trusted import TrustedNetwork, load_trusted_networks
from .version import APP_VERSION


def create_app(*args: Any, **kwargs: Any):
    from .app import create_app as _create_app

    return _create_app(*args, **kwargs)


__all__ = [
    "APP_VERSION",
    "Candidate",
    "ConfigError",
    "ConnectOutcome",
    "ConnectResult",
    "ConnectionState",
    "CycleReport",
    "DaemonSettings",
    "RoamingDaemon",
    "ScanObservation",
    "SwitchAction",
    "SwitchDecision",
    "TrustedNetwork",
    "connect_candidate",
    "create_app",
    "decide",
    "load_settings",
    "load_trusted_networks",
    "read_connection_state",
    "scan_networks",
    "select_best",
]
