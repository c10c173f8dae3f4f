"""FastAPI status surface for the roaming daemon."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel

from .config import DEFAULT_SETTINGS_PATH, ConfigError, DaemonSettings, load_settings
from .daemon import RoamingDaemon
from .lock import InstanceLock, InstanceLockError
from .scanner import ScanObservation
from .version import APP_VERSION
from .wifi import WiFiError


logger = logging.getLogger(__name__)

SETTINGS_ENV_VAR = "SMART_WIFI_SETTINGS"


class CyclePayload(BaseModel):
    execute: bool = True


def create_app(
    daemon: RoamingDaemon | None = None,
    *,
    settings: DaemonSettings | None = None,
    settings_path: Path | str | None = None,
    start_loop: bool = True,
) -> FastAPI:
    """Build the API; the lifespan runs the roaming loop in the background."""

    instance_lock: InstanceLock | None = None
    if daemon is None:
        if settings is None:
            path = settings_path or os.environ.get(SETTINGS_ENV_VAR) or DEFAULT_SETTINGS_PATH
            settings = load_settings(path)
        daemon = RoamingDaemon(settings)
        instance_lock = InstanceLock(settings.lock_path)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if instance_lock is not None:
            try:
                instance_lock.acquire()
            except InstanceLockError as exc:
                logger.error("%s", exc)
                raise
        try:
            if start_loop:
                await run_in_threadpool(daemon.check_startup)
                daemon.start()
            yield
        finally:
            await run_in_threadpool(daemon.stop)
            if instance_lock is not None:
                instance_lock.release()

    app = FastAPI(title="Smart Wi-Fi Manager", version=APP_VERSION, lifespan=lifespan)
    app.state.daemon = daemon

    @app.get("/api/status")
    async def get_status() -> dict[str, object | None]:
        return {
            "version": APP_VERSION,
            "running": daemon.running,
            "settings": daemon.settings.to_dict(),
        }

    @app.get("/api/wifi/state")
    async def get_wifi_state() -> dict[str, object | None]:
        try:
            state = await run_in_threadpool(daemon.read_state)
        except WiFiError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        return state.to_dict()

    @app.get("/api/wifi/networks")
    async def list_wifi_networks() -> dict[str, object]:
        try:
            observations: list[ScanObservation] = await run_in_threadpool(daemon.scan)
        except WiFiError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        try:
            trusted = await run_in_threadpool(daemon.load_trusted)
        except ConfigError:
            trusted = {}
        networks = []
        for observation in observations:
            payload = observation.to_dict()
            payload["trusted"] = observation.name in trusted
            networks.append(payload)
        return {"networks": networks}

    @app.get("/api/roaming/trusted")
    async def list_trusted_networks() -> dict[str, object]:
        try:
            trusted = await run_in_threadpool(daemon.load_trusted)
        except ConfigError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return {"networks": [network.to_dict() for network in trusted.values()]}

    @app.get("/api/roaming/last-cycle")
    async def get_last_cycle() -> dict[str, object | None]:
        report = daemon.last_report
        return {"cycle": report.to_dict() if report else None}

    @app.get("/api/roaming/log")
    async def get_roaming_log(limit: int = 50) -> dict[str, object]:
        entries = await run_in_threadpool(daemon.get_event_log, limit)
        return {"entries": entries}

    @app.post("/api/roaming/cycle")
    async def run_roaming_cycle(payload: CyclePayload) -> dict[str, object | None]:
        try:
            report = await run_in_threadpool(lambda: daemon.run_cycle(execute=payload.execute))
        except WiFiError as exc:
            raise HTTPException(status_code=503, detail=str(exc)) from exc
        if report.error:
            raise HTTPException(status_code=409, detail=report.error)
        return {"cycle": report.to_dict()}

    return app


__all__ = ["CyclePayload", "create_app"]
