import json
import logging
import threading
import time
from pathlib import Path

import pytest

from smart_wifi.config import ConfigError
from smart_wifi.daemon import RoamingDaemon
from smart_wifi.decision import SwitchAction
from smart_wifi.events import EventLog
from smart_wifi.executor import ConnectOutcome
from smart_wifi.wifi import WiFiError


def _events(daemon: RoamingDaemon) -> list[str]:
    return [entry["event"] for entry in reversed(daemon.get_event_log())]


def test_cycle_switches_when_threshold_met(settings, backend) -> None:
    backend.set_networks(("OfficeNet", 70), ("HomeNet", 50), ("Neighbour", 99))
    backend.set_link("HomeNet", 50)
    daemon = RoamingDaemon(settings, backend)

    report = daemon.run_cycle()

    assert report.action is SwitchAction.SWITCH
    assert report.result.outcome is ConnectOutcome.SUCCESS
    assert backend.connect_calls == [("wlan0", "OfficeNet", "office-secret", 5.0)]
    assert report.trusted_count == 3
    assert "connect_success" in _events(daemon)
    assert daemon.last_report is report


def test_cycle_stays_below_threshold(settings, backend) -> None:
    backend.set_networks(("OfficeNet", 75), ("HomeNet", 60))
    backend.set_link("HomeNet", 60)
    daemon = RoamingDaemon(settings, backend)

    report = daemon.run_cycle()

    assert report.action is SwitchAction.STAY
    assert report.result is None
    assert backend.connect_calls == []


def test_cycle_connects_when_disconnected(settings, backend) -> None:
    backend.set_networks(("GuestNet", 30), ("Cafe", 90))
    daemon = RoamingDaemon(settings, backend)

    report = daemon.run_cycle()

    assert report.action is SwitchAction.CONNECT
    assert backend.connect_calls == [("wlan0", "GuestNet", None, 5.0)]


def test_cycle_without_trusted_networks_logs_info(settings, backend) -> None:
    backend.set_networks(("Cafe", 90))
    backend.set_link("HomeNet", 40)
    daemon = RoamingDaemon(settings, backend)

    report = daemon.run_cycle()

    assert report.action is SwitchAction.STAY
    assert report.candidate is None
    latest = daemon.get_event_log(1)[0]
    assert latest["event"] == "no_candidate"
    assert latest["level"] == "info"


def test_failed_connect_is_logged_and_not_retried(settings, backend) -> None:
    backend.set_networks(("HomeNet", 60))
    backend.connect_error = "Secrets were required, but not provided."
    daemon = RoamingDaemon(settings, backend)

    report = daemon.run_cycle()

    assert report.result.outcome is ConnectOutcome.FAILURE
    assert len(backend.connect_calls) == 1
    latest = daemon.get_event_log(1)[0]
    assert latest["event"] == "connect_failed"
    assert latest["level"] == "warning"


def test_timeout_is_logged_separately(settings, backend) -> None:
    backend.set_networks(("HomeNet", 60))
    backend.connect_timeout = True
    daemon = RoamingDaemon(settings, backend)

    report = daemon.run_cycle()

    assert report.result.outcome is ConnectOutcome.TIMEOUT
    assert daemon.get_event_log(1)[0]["event"] == "connect_timeout"


def test_dry_run_does_not_connect(settings, backend) -> None:
    backend.set_networks(("HomeNet", 60))
    daemon = RoamingDaemon(settings, backend)

    report = daemon.run_cycle(execute=False)

    assert report.action is SwitchAction.CONNECT
    assert report.executed is False
    assert backend.connect_calls == []
    assert daemon.get_event_log(1)[0]["event"] == "dry_run"


def test_trusted_file_is_reloaded_every_cycle(settings, backend, trusted_file: Path) -> None:
    backend.set_networks(("LabNet", 80), ("HomeNet", 40))
    backend.set_link("HomeNet", 40)
    daemon = RoamingDaemon(settings, backend)

    assert daemon.run_cycle().action is SwitchAction.STAY

    trusted_file.write_text(
        trusted_file.read_text(encoding="utf-8") + "name=LabNet\ncredential=lab-pw\n",
        encoding="utf-8",
    )
    report = daemon.run_cycle()
    assert report.action is SwitchAction.SWITCH
    assert report.candidate.name == "LabNet"


def test_trusted_file_disappearing_skips_cycle(settings, backend, trusted_file: Path) -> None:
    backend.set_networks(("HomeNet", 60))
    daemon = RoamingDaemon(settings, backend)
    trusted_file.unlink()

    report = daemon.run_cycle()

    assert report.error
    assert report.decision is None
    assert backend.scan_calls == 0
    assert daemon.get_event_log(1)[0]["level"] == "error"


def test_check_startup_requires_trusted_networks(settings, backend, trusted_file: Path) -> None:
    trusted_file.write_text("name=OnlyName\n", encoding="utf-8")
    daemon = RoamingDaemon(settings, backend)
    with pytest.raises(ConfigError):
        daemon.check_startup()


def test_interface_is_detected_when_not_configured(settings, backend) -> None:
    backend.interface = "wlp2s0"
    daemon = RoamingDaemon(settings.with_overrides(interface=""), backend)
    assert daemon.check_startup() == "wlp2s0"
    assert "interface_detected" in _events(daemon)


def test_missing_interface_is_reported(settings, backend) -> None:
    backend.interface = ""
    daemon = RoamingDaemon(settings.with_overrides(interface=""), backend)
    with pytest.raises(WiFiError):
        daemon.check_startup()


def test_events_are_persisted(settings, backend) -> None:
    backend.set_networks(("HomeNet", 60))
    daemon = RoamingDaemon(settings, backend)
    daemon.run_cycle()

    lines = settings.event_log_path.read_text(encoding="utf-8").splitlines()
    events = [json.loads(line)["event"] for line in lines]
    assert "connect" in events
    assert "connect_success" in events
    assert "home-secret" not in "".join(lines)

    # A new process appends to the file but only reports its own events.
    restarted = RoamingDaemon(settings, backend)
    assert restarted.get_event_log() == []
    restarted.run_cycle()
    assert _events(restarted) == ["stay"]
    lines = settings.event_log_path.read_text(encoding="utf-8").splitlines()
    assert [json.loads(line)["event"] for line in lines] == events + ["stay"]


def test_events_are_mirrored_to_logger(
    settings, backend, caplog: pytest.LogCaptureFixture
) -> None:
    backend.set_networks(("HomeNet", 60))
    daemon = RoamingDaemon(settings, backend, event_log=EventLog(None))
    with caplog.at_level(logging.INFO, logger="smart_wifi.daemon"):
        daemon.run_cycle()
    records = [record for record in caplog.records if getattr(record, "event", None)]
    assert [record.event for record in records] == ["connect", "connect_success"]
    assert records[0].getMessage().startswith("Roaming event connect: ")
    assert "metadata=" in records[1].getMessage()
    assert _events(daemon) == ["connect", "connect_success"]


def test_disabled_logger_still_feeds_event_log(settings, backend) -> None:
    backend.set_networks(("HomeNet", 60))
    daemon = RoamingDaemon(settings, backend, event_log=EventLog(None))
    daemon_logger = logging.getLogger("smart_wifi.daemon")
    previous = daemon_logger.level
    daemon_logger.setLevel(logging.CRITICAL)
    try:
        daemon.run_cycle()
    finally:
        daemon_logger.setLevel(previous)
    assert _events(daemon) == ["connect", "connect_success"]


def test_injected_event_sink_is_used(settings, backend) -> None:
    class RecordingSink:
        def __init__(self) -> None:
            self.records: list[logging.LogRecord] = []

        def handle(self, record: logging.LogRecord) -> bool:
            self.records.append(record)
            return True

        def recent(self, limit=None):
            return []

    sink = RecordingSink()
    backend.set_networks(("HomeNet", 60))
    daemon = RoamingDaemon(settings, backend, event_log=sink)
    daemon.run_cycle()
    assert daemon.event_log is sink
    assert [record.event for record in sink.records] == ["connect", "connect_success"]
    assert not settings.event_log_path.exists()


def test_report_export_hides_credentials(settings, backend) -> None:
    backend.set_networks(("HomeNet", 60))
    report = RoamingDaemon(settings, backend).run_cycle()
    payload = report.to_dict()
    assert payload["decision"]["action"] == "connect"
    assert "home-secret" not in json.dumps(payload)


def test_loop_runs_until_stopped(settings, backend) -> None:
    backend.set_networks(("HomeNet", 60))
    daemon = RoamingDaemon(settings, backend)
    daemon.start()
    try:
        deadline = time.monotonic() + 2.0
        while backend.scan_calls < 3 and time.monotonic() < deadline:
            time.sleep(0.01)
        assert daemon.running
    finally:
        daemon.stop()
    assert backend.scan_calls >= 3
    assert not daemon.running
    assert daemon.get_event_log(1)[0]["event"] == "stopped"


def test_loop_survives_unexpected_errors(settings, backend) -> None:
    calls = 0

    def flaky_loader(path):
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("boom")
        return {}

    daemon = RoamingDaemon(settings, backend, trusted_loader=flaky_loader)
    stop_event = threading.Event()
    thread = threading.Thread(target=daemon.run_forever, args=(stop_event,))
    thread.start()
    try:
        deadline = time.monotonic() + 2.0
        while calls < 2 and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        stop_event.set()
        thread.join(timeout=2.0)
    assert calls >= 2
