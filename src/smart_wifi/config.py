"""Configuration management for the Wi-Fi roaming daemon."""
from __future__ import annotations

import json
import math
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Mapping


DEFAULT_SETTINGS_PATH = Path("/etc/smart-wifi/settings.json")
DEFAULT_TRUSTED_NETWORKS_PATH = Path("/etc/smart-wifi/networks.conf")
DEFAULT_LOCK_PATH = Path("/run/smart-wifi.lock")
DEFAULT_EVENT_LOG_PATH = Path("/var/lib/smart-wifi/events.jsonl")

DEFAULT_SCAN_INTERVAL = 30.0
DEFAULT_SWITCH_THRESHOLD = 20
DEFAULT_CONNECT_TIMEOUT = 30.0
DEFAULT_SCAN_TIMEOUT = 15.0


class ConfigError(RuntimeError):
    """Raised when settings or the trusted-network file cannot be used."""


@dataclass(frozen=True, slots=True)
class DaemonSettings:
    """Values supplied to the daemon at startup."""

    trusted_networks_path: Path = DEFAULT_TRUSTED_NETWORKS_PATH
    interface: str | None = None
    scan_interval: float = DEFAULT_SCAN_INTERVAL
    switch_threshold: int = DEFAULT_SWITCH_THRESHOLD
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    scan_timeout: float = DEFAULT_SCAN_TIMEOUT
    lock_path: Path = DEFAULT_LOCK_PATH
    event_log_path: Path | None = DEFAULT_EVENT_LOG_PATH

    def __post_init__(self) -> None:
        object.__setattr__(self, "trusted_networks_path", Path(self.trusted_networks_path))
        object.__setattr__(self, "lock_path", Path(self.lock_path))
        if self.event_log_path is not None:
            object.__setattr__(self, "event_log_path", Path(self.event_log_path))
        interface = self.interface.strip() if isinstance(self.interface, str) else None
        object.__setattr__(self, "interface", interface or None)
        for name in ("scan_interval", "connect_timeout", "scan_timeout"):
            value = _positive_seconds(getattr(self, name), name)
            object.__setattr__(self, name, value)
        threshold = self.switch_threshold
        if isinstance(threshold, bool) or not isinstance(threshold, int):
            raise ConfigError("switch_threshold must be an integer")
        if threshold < 0:
            raise ConfigError("switch_threshold must not be negative")

    def with_overrides(self, **overrides: Any) -> "DaemonSettings":
        """Return a copy with every non-``None`` override applied."""

        changes = {key: value for key, value in overrides.items() if value is not None}
        if not changes:
            return self
        try:
            return replace(self, **changes)
        except TypeError as exc:
            raise ConfigError(str(exc)) from exc

    def to_dict(self) -> dict[str, object | None]:
        return {
            "trusted_networks_path": str(self.trusted_networks_path),
            "interface": self.interface,
            "scan_interval": self.scan_interval,
            "switch_threshold": self.switch_threshold,
            "connect_timeout": self.connect_timeout,
            "scan_timeout": self.scan_timeout,
            "lock_path": str(self.lock_path),
            "event_log_path": str(self.event_log_path) if self.event_log_path else None,
        }


def _positive_seconds(value: Any, name: str) -> float:
    if isinstance(value, bool):
        raise ConfigError(f"{name} must be numeric")
    try:
        seconds = float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be numeric") from exc
    if not math.isfinite(seconds) or seconds <= 0:
        raise ConfigError(f"{name} must be a positive number of seconds")
    return seconds


def _parse_threshold(value: Any, *, default: int) -> int:
    if value is None:
        return default
    if isinstance(value, bool):
        raise ConfigError("switch_threshold must be an integer")
    if isinstance(value, float):
        if not value.is_integer():
            raise ConfigError("switch_threshold must be an integer")
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return int(value.strip())
        except ValueError as exc:
            raise ConfigError("switch_threshold must be an integer") from exc
    raise ConfigError("switch_threshold must be an integer")


def _parse_path(value: Any, *, default: Path | None, allow_none: bool = False) -> Path | None:
    if value is None:
        return default
    if isinstance(value, str):
        cleaned = value.strip()
        if cleaned:
            return Path(cleaned).expanduser()
        if allow_none:
            return None
    raise ConfigError(f"Invalid path value: {value!r}")


def _parse_interface(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ConfigError("interface must be a string")
    return value.strip() or None


def _parse_settings(payload: Mapping[str, Any]) -> DaemonSettings:
    event_log_raw = payload.get("event_log_path", DEFAULT_EVENT_LOG_PATH.as_posix())
    if event_log_raw is False:
        event_log_raw = ""
    return DaemonSettings(
        trusted_networks_path=_parse_path(
            payload.get("trusted_networks_path"), default=DEFAULT_TRUSTED_NETWORKS_PATH
        ),
        interface=_parse_interface(payload.get("interface")),
        scan_interval=payload.get("scan_interval", DEFAULT_SCAN_INTERVAL),
        switch_threshold=_parse_threshold(
            payload.get("switch_threshold"), default=DEFAULT_SWITCH_THRESHOLD
        ),
        connect_timeout=payload.get("connect_timeout", DEFAULT_CONNECT_TIMEOUT),
        scan_timeout=payload.get("scan_timeout", DEFAULT_SCAN_TIMEOUT),
        lock_path=_parse_path(payload.get("lock_path"), default=DEFAULT_LOCK_PATH),
        event_log_path=_parse_path(event_log_raw, default=None, allow_none=True),
    )


def load_settings(path: Path | str | None = DEFAULT_SETTINGS_PATH) -> DaemonSettings:
    """Load daemon settings from a JSON file, falling back to defaults."""

    if path is None:
        return DaemonSettings()
    settings_path = Path(path)
    if not settings_path.exists():
        return DaemonSettings()
    try:
        payload = json.loads(settings_path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Failed to load settings from {settings_path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ConfigError("Settings file must contain a JSON object")
    return _parse_settings(payload)


__all__ = [
    "ConfigError",
    "DaemonSettings",
    "DEFAULT_CONNECT_TIMEOUT",
    "DEFAULT_EVENT_LOG_PATH",
    "DEFAULT_LOCK_PATH",
    "DEFAULT_SCAN_INTERVAL",
    "DEFAULT_SCAN_TIMEOUT",
    "DEFAULT_SETTINGS_PATH",
    "DEFAULT_SWITCH_THRESHOLD",
    "DEFAULT_TRUSTED_NETWORKS_PATH",
    "load_settings",
]
