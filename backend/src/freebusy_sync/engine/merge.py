"""
Merge free/busy blocks with appointment detail.

The free/busy lookup only reports opaque busy ranges; the appointment lookup
reports individual appointments. Merging attaches every appointment to each
busy block that fully contains it so the lookup response can describe the
block, and so the appointment writer can find previously written
appointments.
"""

from __future__ import annotations

import logging
import time
from datetime import datetime
from typing import Optional, Sequence

from freebusy_sync.core.date_range import DateTimeRange
from freebusy_sync.core.interval_tree import IntervalTree
from freebusy_sync.core.models import (
    Appointment,
    ExchangeUser,
    FreeBusy,
    FreeBusyCollection,
    FreeBusyTimeBlock,
)

logger = logging.getLogger(__name__)


def merge_free_busy_with_appointments(
    user: ExchangeUser,
    free_busy: FreeBusy,
    appointments: Optional[Sequence[Appointment]],
    start: datetime,
    end: datetime,
) -> FreeBusyCollection:
    """
    Build ``user.busy_times`` from free/busy ranges and appointments.

    Only ranges with an endpoint inside ``[start, end]`` become blocks. When
    two ranges share a start the first one wins. Every appointment is kept in
    the collection's appointment index, whether or not a block contains it.
    """
    started = time.perf_counter()
    window = DateTimeRange(start, end)
    intervals: IntervalTree[FreeBusyTimeBlock] = IntervalTree()
    busy_times = FreeBusyCollection()

    for range_ in free_busy.all:
        if not (window.in_range(range_.start) or window.in_range(range_.end)):
            continue
        if range_.start in busy_times:
            continue
        block = FreeBusyTimeBlock(range_)
        busy_times.add(block)
        intervals.insert(range_, block)

    appointments = appointments or []
    for appointment in appointments:
        blocks = intervals.find_all(appointment.range)
        logger.debug(
            "Appointment %s found in %d free/busy blocks", appointment.range, len(blocks)
        )
        for block in blocks:
            block.appointments.append(appointment)
        busy_times.appointments.add(appointment)

    logger.info(
        "Merge Result of FB %d + Appointment %d -> %d",
        len(free_busy.all),
        len(appointments),
        len(busy_times),
    )
    logger.debug(
        "Merged calendar info for %s in %.3fs",
        user.email,
        time.perf_counter() - started,
    )

    user.busy_times = busy_times
    user.tentative_times = list(free_busy.tentative)
    return busy_times
