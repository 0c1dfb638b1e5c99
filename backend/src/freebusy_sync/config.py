from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping

from freebusy_sync.core.enums import WriterType

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///freebusy_sync.db"
DEFAULT_PLACEHOLDER_MESSAGE = "GCal Free/Busy Placeholder"
MAX_SYNC_WINDOW_DAYS = 30


@dataclass(frozen=True)
class DomainMap:
    """Maps mail domains between the external calendar and the local directory."""

    external_to_local: dict[str, str] = field(default_factory=dict)
    local_to_external: dict[str, str] = field(default_factory=dict)

    def to_local(self, email: str) -> str:
        return _replace_domain(email, self.external_to_local)

    def to_external(self, email: str) -> str:
        return _replace_domain(email, self.local_to_external)


def _replace_domain(email: str, mapping: dict[str, str]) -> str:
    email = email.strip()
    if "@" not in email:
        return email
    local, domain = email.rsplit("@", 1)
    mapped = mapping.get(domain.lower())
    return f"{local}@{mapped}" if mapped else email


def parse_domain_mapping(raw: str | None) -> DomainMap:
    """
    Parse ``"external.com,local.com;other.org,local.org"``.

    Malformed entries are logged and skipped.
    """
    external_to_local: dict[str, str] = {}
    local_to_external: dict[str, str] = {}
    if not raw:
        return DomainMap()

    for entry in raw.split(";"):
        entry = entry.strip()
        if not entry:
            continue
        parts = [part.strip().lower() for part in entry.split(",")]
        if len(parts) != 2 or not all(parts):
            logger.error("Ignoring invalid domain mapping entry: %r", entry)
            continue
        external, local = parts
        external_to_local[external] = local
        local_to_external[local] = external

    return DomainMap(external_to_local, local_to_external)


def _parse_bool(raw: str | None, default: bool) -> bool:
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def _parse_int(raw: str | None, default: int, name: str) -> int:
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Invalid integer for %s: %r, using %d", name, raw, default)
        return default


@dataclass(frozen=True)
class SyncConfig:
    database_url: str = DEFAULT_DATABASE_URL
    sync_window_days: int = MAX_SYNC_WINDOW_DAYS
    thread_count: int = 1
    error_threshold: int = 15
    writer: WriterType = WriterType.SCHEDULE_PLUS
    enable_appointment_lookup: bool = True
    placeholder_message: str = DEFAULT_PLACEHOLDER_MESSAGE
    raster_lookup: bool = False
    raster_interval_minutes: int = 15
    domain_map: DomainMap = field(default_factory=DomainMap)

    @classmethod
    def from_environ(cls, environ: Mapping[str, str]) -> "SyncConfig":
        window = _parse_int(
            environ.get("FREEBUSY_SYNC_WINDOW_DAYS"),
            MAX_SYNC_WINDOW_DAYS,
            "FREEBUSY_SYNC_WINDOW_DAYS",
        )
        writer_name = environ.get("FREEBUSY_WRITER", WriterType.SCHEDULE_PLUS.value)
        try:
            writer = WriterType(writer_name)
        except ValueError:
            logger.warning(
                "Unknown free/busy writer %r, using %s",
                writer_name,
                WriterType.SCHEDULE_PLUS.value,
            )
            writer = WriterType.SCHEDULE_PLUS

        return cls(
            database_url=environ.get("FREEBUSY_DATABASE_URL", DEFAULT_DATABASE_URL),
            sync_window_days=min(max(window, 1), MAX_SYNC_WINDOW_DAYS),
            thread_count=max(
                _parse_int(environ.get("FREEBUSY_THREAD_COUNT"), 1, "FREEBUSY_THREAD_COUNT"),
                1,
            ),
            error_threshold=_parse_int(
                environ.get("FREEBUSY_ERROR_THRESHOLD"), 15, "FREEBUSY_ERROR_THRESHOLD"
            ),
            writer=writer,
            enable_appointment_lookup=_parse_bool(
                environ.get("FREEBUSY_ENABLE_APPOINTMENT_LOOKUP"), True
            ),
            placeholder_message=environ.get(
                "FREEBUSY_PLACEHOLDER_MESSAGE", DEFAULT_PLACEHOLDER_MESSAGE
            ),
            raster_lookup=_parse_bool(environ.get("FREEBUSY_RASTER_LOOKUP"), False),
            raster_interval_minutes=max(
                _parse_int(
                    environ.get("FREEBUSY_RASTER_INTERVAL_MINUTES"),
                    15,
                    "FREEBUSY_RASTER_INTERVAL_MINUTES",
                ),
                1,
            ),
            domain_map=parse_domain_mapping(environ.get("FREEBUSY_DOMAIN_MAPPING")),
        )
