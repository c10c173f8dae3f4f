"""Loading of the trusted-network allow-list."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from .config import ConfigError


logger = logging.getLogger(__name__)

_NAME_KEYS = {"name", "ssid"}
_CREDENTIAL_KEYS = {"credential", "password", "psk"}


@dataclass(frozen=True, slots=True)
class TrustedNetwork:
    """A network the daemon is allowed to join."""

    name: str
    credential: str | None = None

    @property
    def open(self) -> bool:
        return self.credential is None

    def to_dict(self) -> dict[str, object]:
        # Credentials are never exported.
        return {"name": self.name, "open": self.open}


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        return value[1:-1]
    return value


def _split_pair(line: str) -> tuple[str, str] | None:
    positions = [index for index in (line.find("="), line.find(":")) if index >= 0]
    if not positions:
        return None
    index = min(positions)
    return line[:index].strip().lower(), _unquote(line[index + 1 :].strip())


def parse_trusted_networks(text: str, *, source: str = "<string>") -> dict[str, TrustedNetwork]:
    """Parse ``name``/``credential`` pairs into a table keyed by network name.

    A ``credential`` line commits the pending ``name``; an empty credential
    marks an open network. Keys without a partner are ignored with a warning
    and later definitions of the same name replace earlier ones.
    """

    table: dict[str, TrustedNetwork] = {}
    pending: tuple[str, int] | None = None
    for number, raw_line in enumerate(text.splitlines(), start=1):
        line = raw_line.strip()
        if not line or line.startswith(("#", ";")):
            continue
        pair = _split_pair(line)
        if pair is None:
            logger.warning("%s:%d: ignoring line without a key/value separator", source, number)
            continue
        key, value = pair
        if key in _NAME_KEYS:
            if pending is not None:
                logger.warning(
                    "%s:%d: network %r has no credential line; ignoring it",
                    source,
                    pending[1],
                    pending[0],
                )
            if not value:
                logger.warning("%s:%d: ignoring empty network name", source, number)
                pending = None
                continue
            pending = (value, number)
        elif key in _CREDENTIAL_KEYS:
            if pending is None:
                logger.warning("%s:%d: credential without a preceding name; ignoring it", source, number)
                continue
            name = pending[0]
            if name in table:
                logger.info("%s:%d: network %r redefined; last definition wins", source, number, name)
            table[name] = TrustedNetwork(name=name, credential=value or None)
            pending = None
        else:
            logger.warning("%s:%d: ignoring unknown key %r", source, number, key)
    if pending is not None:
        logger.warning(
            "%s:%d: network %r has no credential line; ignoring it",
            source,
            pending[1],
            pending[0],
        )
    return table


def load_trusted_networks(path: Path | str) -> dict[str, TrustedNetwork]:
    """Read the trusted-network file, failing when it is unusable."""

    source = Path(path)
    if not source.exists():
        raise ConfigError(f"Trusted network file {source} does not exist")
    try:
        text = source.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigError(f"Unable to read trusted network file {source}: {exc}") from exc
    table = parse_trusted_networks(text, source=str(source))
    if not table:
        raise ConfigError(f"Trusted network file {source} defines no networks")
    return table


__all__ = ["TrustedNetwork", "load_trusted_networks", "parse_trusted_networks"]
