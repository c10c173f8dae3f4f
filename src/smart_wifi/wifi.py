"""Wi-Fi backend interface and the NetworkManager implementation."""

from __future__ import annotations

import logging
import re
import subprocess
from dataclasses import dataclass
from typing import Iterable, Sequence


logger = logging.getLogger(__name__)

# nmcli reports an expired --wait as "Error: Timeout expired (N seconds)".
_NMCLI_TIMEOUT = re.compile(r"\btimeout expired\b", re.IGNORECASE)


class WiFiError(RuntimeError):
    """Raised when Wi-Fi operations fail."""


class WiFiTimeoutError(WiFiError):
    """Raised when a Wi-Fi operation does not finish within its time limit."""


@dataclass(frozen=True, slots=True)
class RawScanRecord:
    """Unparsed network entry as reported by the scan mechanism."""

    name: str
    signal: str


@dataclass(frozen=True, slots=True)
class RawLink:
    """Unparsed description of the currently associated network."""

    name: str
    signal: str


class WiFiBackend:
    """Abstract interface for Wi-Fi operations."""

    def detect_interface(self) -> str:  # pragma: no cover - interface only
        raise NotImplementedError

    def scan(self, interface: str) -> Sequence[RawScanRecord]:  # pragma: no cover - interface only
        raise NotImplementedError

    def current_connection(self, interface: str) -> RawLink | None:  # pragma: no cover - interface only
        raise NotImplementedError

    def connect(
        self,
        interface: str,
        name: str,
        credential: str | None,
        timeout: float,
    ) -> None:  # pragma: no cover - interface only
        raise NotImplementedError


class NMCLIBackend(WiFiBackend):
    """Interact with NetworkManager via nmcli commands."""

    def __init__(self, *, timeout: float = 15.0, rescan: bool = True) -> None:
        self._timeout = timeout
        self._rescan = rescan

    # ------------------------------- helpers -------------------------------
    def _run(self, args: Sequence[str], *, timeout: float | None = None) -> str:
        limit = self._timeout if timeout is None else timeout
        try:
            completed = subprocess.run(
                list(args),
                check=True,
                capture_output=True,
                text=True,
                timeout=limit,
            )
        except FileNotFoundError as exc:  # pragma: no cover - environment specific
            raise WiFiError("nmcli command unavailable") from exc
        except subprocess.TimeoutExpired as exc:
            raise WiFiTimeoutError(f"nmcli command timed out after {limit:g}s") from exc
        except subprocess.CalledProcessError as exc:
            error_output = (exc.stderr or "").strip() or (exc.stdout or "").strip() or str(exc)
            raise WiFiError(error_output) from exc
        return completed.stdout

    @staticmethod
    def _split_fields(line: str) -> list[str]:
        """Split one line of nmcli terse output on unescaped colons."""

        fields: list[str] = []
        current: list[str] = []
        escaped = False
        for char in line:
            if escaped:
                current.append(char)
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == ":":
                fields.append("".join(current))
                current = []
            else:
                current.append(char)
        fields.append("".join(current))
        return fields

    def _list_networks(self, interface: str, *, rescan: bool) -> Iterable[tuple[str, str, str]]:
        args = [
            "nmcli",
            "-t",
            "-f",
            "IN-USE,SSID,SIGNAL",
            "device",
            "wifi",
            "list",
            "ifname",
            interface,
            "--rescan",
            "yes" if rescan else "no",
        ]
        output = self._run(args)
        for line in output.splitlines():
            if not line.strip():
                continue
            parts = self._split_fields(line)
            while len(parts) < 3:
                parts.append("")
            in_use, ssid, signal = parts[:3]
            yield in_use, ssid, signal

    def _saved_profiles(self) -> set[str]:
        try:
            output = self._run(["nmcli", "-t", "-f", "NAME,TYPE", "connection", "show"])
        except WiFiError:
            return set()
        profiles: set[str] = set()
        for line in output.splitlines():
            if not line.strip():
                continue
            parts = self._split_fields(line)
            if len(parts) < 2:
                continue
            name, conn_type = parts[0].strip(), parts[1].strip()
            if conn_type == "802-11-wireless" and name:
                profiles.add(name)
        return profiles

    # ---------------------------- interface impl ---------------------------
    def detect_interface(self) -> str:
        output = self._run(["nmcli", "-t", "-f", "DEVICE,TYPE,STATE", "device"])
        for line in output.splitlines():
            if not line.strip():
                continue
            parts = self._split_fields(line)
            if len(parts) < 3:
                continue
            device, dev_type, state = (part.strip() for part in parts[:3])
            if dev_type == "wifi" and state not in {"unavailable", "unmanaged"}:
                return device
        raise WiFiError("No Wi-Fi interface detected")

    def scan(self, interface: str) -> Sequence[RawScanRecord]:
        return [
            RawScanRecord(name=ssid, signal=signal)
            for _in_use, ssid, signal in self._list_networks(interface, rescan=self._rescan)
        ]

    def current_connection(self, interface: str) -> RawLink | None:
        for in_use, ssid, signal in self._list_networks(interface, rescan=False):
            if in_use.strip() in {"*", "yes"} and ssid.strip():
                return RawLink(name=ssid.strip(), signal=signal)
        return None

    def connect(
        self,
        interface: str,
        name: str,
        credential: str | None,
        timeout: float,
    ) -> None:
        """Join ``name``, preferring a saved profile for open networks."""

        wait = max(1, int(round(timeout)))
        # nmcli gets its own deadline; the subprocess limit adds headroom so
        # that nmcli's timeout message wins over a hard kill when possible.
        process_limit = wait + 5.0
        if not credential and name in self._saved_profiles():
            args = ["nmcli", "--wait", str(wait), "connection", "up", name, "ifname", interface]
        else:
            args = ["nmcli", "--wait", str(wait), "device", "wifi", "connect", name]
            if credential:
                args.extend(["password", credential])
            args.extend(["ifname", interface])
        try:
            self._run(args, timeout=process_limit)
        except WiFiTimeoutError:
            raise
        except WiFiError as exc:
            message = str(exc).strip()
            if credential:
                message = message.replace(credential, "<hidden>")
            if _NMCLI_TIMEOUT.search(message):
                raise WiFiTimeoutError(message) from exc
            lowered = message.lower()
            if "not authorized" in lowered or "not authorised" in lowered:
                raise WiFiError(
                    "Unable to connect: not authorized to control networking. "
                    "Ensure the daemon has permission to manage NetworkManager."
                ) from exc
            raise WiFiError(message) from exc


__all__ = [
    "NMCLIBackend",
    "RawLink",
    "RawScanRecord",
    "WiFiBackend",
    "WiFiError",
    "WiFiTimeoutError",
]
