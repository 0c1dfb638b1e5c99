from __future__ import annotations

from typing import Union

from freebusy_sync.config import SyncConfig
from freebusy_sync.core.enums import WriterType

from .appointment_writer import AppointmentWriter
from .schedule_plus_writer import SchedulePlusWriter

FreeBusyWriter = Union[AppointmentWriter, SchedulePlusWriter]


def get_writer(
    writer: Union[WriterType, str, None] = None,
    config: SyncConfig | None = None,
) -> FreeBusyWriter:
    """Create the configured writer. Defaults to the Schedule+ writer."""
    config = config or SyncConfig()
    writer_type = WriterType(writer) if writer else config.writer

    if writer_type == WriterType.APPOINTMENT:
        return AppointmentWriter(placeholder_message=config.placeholder_message)
    return SchedulePlusWriter(domain_map=config.domain_map)
