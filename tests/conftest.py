from pathlib import Path

import pytest

from smart_wifi.config import DaemonSettings
from smart_wifi.wifi import RawLink, RawScanRecord, WiFiError, WiFiTimeoutError


class FakeBackend:
    def __init__(self) -> None:
        self.interface = "wlan0"
        self.records: list[RawScanRecord] = []
        self.link: RawLink | None = None
        self.scan_error: str | None = None
        self.state_error: str | None = None
        self.connect_error: str | None = None
        self.connect_timeout: bool = False
        self.connect_calls: list[tuple[str, str, str | None, float]] = []
        self.scan_calls = 0

    def set_networks(self, *networks: tuple[str, object]) -> None:
        self.records = [RawScanRecord(name=name, signal=str(signal)) for name, signal in networks]

    def set_link(self, name: str | None, signal: object = 0) -> None:
        self.link = RawLink(name=name, signal=str(signal)) if name else None

    def detect_interface(self) -> str:
        if not self.interface:
            raise WiFiError("No Wi-Fi interface detected")
        return self.interface

    def scan(self, interface: str) -> list[RawScanRecord]:
        self.scan_calls += 1
        if self.scan_error:
            raise WiFiError(self.scan_error)
        return list(self.records)

    def current_connection(self, interface: str) -> RawLink | None:
        if self.state_error:
            raise WiFiError(self.state_error)
        return self.link

    def connect(self, interface: str, name: str, credential: str | None, timeout: float) -> None:
        self.connect_calls.append((interface, name, credential, timeout))
        if self.connect_timeout:
            raise WiFiTimeoutError("nmcli command timed out after 35s")
        if self.connect_error:
            raise WiFiError(self.connect_error)
        signal = next((record.signal for record in self.records if record.name == name), "0")
        self.link = RawLink(name=name, signal=signal)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def trusted_file(tmp_path: Path) -> Path:
    path = tmp_path / "networks.conf"
    path.write_text(
        "# trusted networks\n"
        "name=HomeNet\n"
        "credential=home-secret\n"
        "\n"
        "name=OfficeNet\n"
        "credential=office-secret\n"
        "name=GuestNet\n"
        "credential=\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def settings(tmp_path: Path, trusted_file: Path) -> DaemonSettings:
    return DaemonSettings(
        trusted_networks_path=trusted_file,
        interface="wlan0",
        scan_interval=0.01,
        switch_threshold=20,
        connect_timeout=5.0,
        scan_timeout=5.0,
        lock_path=tmp_path / "smart-wifi.lock",
        event_log_path=tmp_path / "events.jsonl",
    )
