# Schedule+ free/busy writer
# Publishes a user's external busy time as encoded free/busy blocks rather
# than as individual appointments.

from __future__ import annotations

import logging
from datetime import datetime, tzinfo
from typing import Optional

from freebusy_sync.config import DomainMap
from freebusy_sync.core.conversions import get_user_status_for_event
from freebusy_sync.core.converter import condense_ranges, encode_ranges, to_epoch_minutes
from freebusy_sync.core.date_range import DateTimeRange
from freebusy_sync.core.enums import BusyStatus
from freebusy_sync.core.models import CalendarEvent, EventFeed, ExchangeUser
from freebusy_sync.core.utils import get_time_zone, to_utc_naive

logger = logging.getLogger(__name__)

EMPTY_COVERAGE = DateTimeRange(datetime.max, datetime.min)


def convert_event_to_free_busy(
    user: ExchangeUser,
    event: CalendarEvent,
    covered: DateTimeRange,
    busy_times: list[DateTimeRange],
    tentative_times: list[DateTimeRange],
    zone: Optional[tzinfo] = None,
    domain_map: Optional[DomainMap] = None,
) -> DateTimeRange:
    """
    Classify one event and append its UTC range to the busy or tentative list.

    Returns ``covered`` widened to include the event. Events without times are
    ignored entirely; free events still widen the covered range.
    """
    if not event.has_times:
        return covered

    range_ = DateTimeRange(to_utc_naive(event.start, zone), to_utc_naive(event.end, zone))
    covered = DateTimeRange(min(covered.start, range_.start), max(covered.end, range_.end))

    status = get_user_status_for_event(user, event, domain_map)
    if status == BusyStatus.TENTATIVE:
        tentative_times.append(range_)
    elif status != BusyStatus.FREE:
        busy_times.append(range_)

    return covered


class SchedulePlusWriter:
    def __init__(self, domain_map: Optional[DomainMap] = None):
        self.domain_map = domain_map or DomainMap()

    def sync_user(
        self,
        user: ExchangeUser,
        feed: EventFeed,
        gateway,
        window: DateTimeRange,
    ) -> None:
        logger.info("Creating F/B message.  [User=%s]", user.email)

        zone = get_time_zone(feed.time_zone) if feed.time_zone else None
        covered = EMPTY_COVERAGE
        busy_times: list[DateTimeRange] = []
        tentative_times: list[DateTimeRange] = []

        for event in feed.entries:
            covered = convert_event_to_free_busy(
                user,
                event,
                covered,
                busy_times,
                tentative_times,
                zone,
                self.domain_map,
            )

        if covered.start > covered.end:
            covered = window

        busy_months, busy_blocks = encode_ranges(
            window.start, window.end, condense_ranges(busy_times)
        )
        tentative_months, tentative_blocks = encode_ranges(
            window.start, window.end, condense_ranges(tentative_times)
        )

        gateway.free_busy.set_free_busy_properties(
            user,
            busy_months,
            busy_blocks,
            tentative_months,
            tentative_blocks,
            to_epoch_minutes(covered.start),
            to_epoch_minutes(covered.end),
        )

        logger.info(
            "Free/Busy properties set for %s.  [%d busy, %d tentative]",
            user.email,
            len(busy_times),
            len(tentative_times),
        )
