"""Command-line entry point for the roaming daemon."""
from __future__ import annotations

import argparse
import logging
import signal
import sys
import threading
from dataclasses import replace
from pathlib import Path
from typing import Any, Sequence

from .config import DEFAULT_SETTINGS_PATH, ConfigError, DaemonSettings, load_settings
from .daemon import RoamingDaemon
from .lock import InstanceLock, InstanceLockError
from .trusted import load_trusted_networks
from .version import APP_VERSION
from .wifi import WiFiBackend, WiFiError


logger = logging.getLogger("smart_wifi")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    """Return the argument parser for the daemon CLI."""

    parser = argparse.ArgumentParser(
        prog="smart-wifi",
        description="Keep the host on the strongest trusted Wi-Fi network.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    parser.add_argument(
        "--settings",
        type=Path,
        default=DEFAULT_SETTINGS_PATH,
        help=f"JSON settings file (default: {DEFAULT_SETTINGS_PATH})",
    )
    parser.add_argument("--trusted-networks", type=Path, default=None, help="Trusted network file")
    parser.add_argument("--interface", default=None, help="Wi-Fi interface (default: auto-detect)")
    parser.add_argument("--scan-interval", type=float, default=None, help="Seconds between cycles")
    parser.add_argument(
        "--switch-threshold",
        type=int,
        default=None,
        help="Signal points a candidate must gain before switching",
    )
    parser.add_argument("--connect-timeout", type=float, default=None, help="Connect time limit in seconds")
    parser.add_argument("--scan-timeout", type=float, default=None, help="Scan time limit in seconds")
    parser.add_argument("--lock-file", type=Path, default=None, help="Single-instance lock file")
    event_log = parser.add_mutually_exclusive_group()
    event_log.add_argument("--event-log", type=Path, default=None, help="JSONL event log path")
    event_log.add_argument(
        "--no-event-log",
        action="store_true",
        help="Keep events in memory only; do not write the JSONL event log",
    )
    parser.add_argument("--log-level", default="INFO", help="Log level (DEBUG, INFO, WARNING, ERROR)")
    parser.add_argument("--log-file", type=Path, default=None, help="Append log output to this file")
    parser.add_argument("--once", action="store_true", help="Run a single cycle and exit")
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Evaluate networks without connecting",
    )
    parser.add_argument(
        "--validate-config",
        action="store_true",
        help="Validate settings and the trusted network file, then exit",
    )
    return parser


def configure_logging(level_name: str, log_file: Path | None = None) -> None:
    level = getattr(logging, str(level_name).upper(), None)
    if not isinstance(level, int):
        level = logging.INFO
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file, mode="a", encoding="utf-8"))
    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)


def resolve_settings(args: argparse.Namespace) -> DaemonSettings:
    settings = load_settings(args.settings)
    settings = settings.with_overrides(
        trusted_networks_path=args.trusted_networks,
        interface=args.interface,
        scan_interval=args.scan_interval,
        switch_threshold=args.switch_threshold,
        connect_timeout=args.connect_timeout,
        scan_timeout=args.scan_timeout,
        lock_path=args.lock_file,
        event_log_path=args.event_log,
    )
    if args.no_event_log:
        settings = replace(settings, event_log_path=None)
    return settings


def install_signal_handlers(stop_event: threading.Event) -> None:
    def handle_signal(signum: int, _frame: Any) -> None:
        logger.info("Received signal %d; stopping after the current cycle", signum)
        stop_event.set()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)


def run(
    argv: Sequence[str] | None = None,
    *,
    backend: WiFiBackend | None = None,
    stop_event: threading.Event | None = None,
) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level, args.log_file)

    try:
        settings = resolve_settings(args)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return 1

    if args.validate_config:
        try:
            trusted = load_trusted_networks(settings.trusted_networks_path)
        except ConfigError as exc:
            logger.error("Configuration error: %s", exc)
            return 1
        logger.info("Configuration valid: %d trusted network(s)", len(trusted))
        return 0

    try:
        with InstanceLock(settings.lock_path):
            daemon = RoamingDaemon(settings, backend)
            try:
                daemon.check_startup()
            except ConfigError as exc:
                logger.error("Configuration error: %s", exc)
                return 1
            except WiFiError as exc:
                logger.error("No usable Wi-Fi interface: %s", exc)
                return 1

            if args.once:
                report = daemon.run_cycle(execute=not args.dry_run)
                return 1 if report.error else 0

            if stop_event is None:
                stop_event = threading.Event()
                install_signal_handlers(stop_event)
            daemon.run_forever(stop_event, execute=not args.dry_run)
    except InstanceLockError as exc:
        logger.error("%s", exc)
        return 1
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point used by the ``smart-wifi`` console script."""

    return run(argv)


__all__ = ["build_parser", "configure_logging", "main", "resolve_settings", "run"]


if __name__ == "__main__":  # pragma: no cover - module behaviour
    sys.exit(main())
