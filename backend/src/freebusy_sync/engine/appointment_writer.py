# Appointment writer
# Mirrors external calendar events as placeholder appointments in the
# appointment store, touching only appointments this service created.

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import Optional

from freebusy_sync.config import DEFAULT_PLACEHOLDER_MESSAGE
from freebusy_sync.core.conversions import convert_event_status
from freebusy_sync.core.date_range import DateTimeRange
from freebusy_sync.core.enums import BusyStatus, InstanceType, MeetingStatus
from freebusy_sync.core.interval_tree import IntervalTree
from freebusy_sync.core.models import (
    Appointment,
    CalendarEvent,
    EventFeed,
    ExchangeUser,
    FreeBusyCollection,
)
from freebusy_sync.core.utils import get_time_zone, to_utc_naive
from freebusy_sync.database.pydantic_schemas import (
    AppointmentChangesSchema,
    AppointmentSchema,
)

logger = logging.getLogger(__name__)


def _contains(appointments: list[Appointment], appointment: Appointment) -> bool:
    return any(a is appointment for a in appointments)


@dataclass
class AppointmentChanges:
    to_delete: list[Appointment] = field(default_factory=list)
    to_update: list[Appointment] = field(default_factory=list)
    to_create: list[Appointment] = field(default_factory=list)

    def schedule_delete(self, appointment: Appointment) -> None:
        if not _contains(self.to_delete, appointment):
            self.to_delete.append(appointment)

    def cancel_delete(self, appointment: Appointment) -> None:
        self.to_delete = [a for a in self.to_delete if a is not appointment]

    def to_schema(self, email: str) -> AppointmentChangesSchema:
        return AppointmentChangesSchema(
            email=email,
            deleted=[AppointmentSchema.model_validate(a) for a in self.to_delete],
            updated=[AppointmentSchema.model_validate(a) for a in self.to_update],
            created=[AppointmentSchema.model_validate(a) for a in self.to_create],
        )


def create_appointment(
    event: CalendarEvent,
    zone: Optional[tzinfo],
    placeholder: str,
    created: Optional[datetime] = None,
) -> Optional[Appointment]:
    """Build the placeholder appointment for a feed event, or None without times."""
    if not event.has_times:
        logger.debug("Skipping event %r without times", event.title)
        return None

    return Appointment(
        start=to_utc_naive(event.start, zone),
        end=to_utc_naive(event.end, zone),
        subject=placeholder,
        location=event.location or "",
        busy_status=BusyStatus.BUSY,
        instance_type=InstanceType.SINGLE,
        meeting_status=convert_event_status(event.status),
        all_day_event=event.all_day,
        sync_owned=True,
        created=created or datetime.utcnow(),
    )


def build_appointment_tree(
    feed: EventFeed,
    placeholder: str,
) -> IntervalTree[Appointment]:
    zone = get_time_zone(feed.time_zone) if feed.time_zone else None
    tree: IntervalTree[Appointment] = IntervalTree()

    for event in feed.entries:
        appointment = create_appointment(event, zone, placeholder)
        if appointment is not None:
            tree.insert(appointment.range, appointment)

    return tree


def plan_changes(
    busy_times: FreeBusyCollection,
    new_appointments: IntervalTree[Appointment],
) -> AppointmentChanges:
    """
    Diff the appointments already in the store against the new ones.

    Returns disjoint delete/update/create lists. Existing appointments are
    only ever deleted or updated when ``sync_owned`` is set. When both a
    cancelled and a live event share a range, the live event wins whatever
    the feed order.
    """
    changes = AppointmentChanges()

    for block in busy_times:
        for existing in block.appointments:
            if not existing.sync_owned:
                continue
            if new_appointments.find_exact(existing.range) is None:
                changes.schedule_delete(existing)

    existing_by_range = busy_times.appointments

    for new in new_appointments.get_node_list():
        matches = [a for a in existing_by_range.get(new.range) if a.sync_owned]

        if new.meeting_status == MeetingStatus.CANCELLED:
            # a confirmed event at the same range keeps its update
            for existing in matches:
                if not _contains(changes.to_update, existing):
                    changes.schedule_delete(existing)
            continue

        existing = next(
            (a for a in matches if not _contains(changes.to_update, a)), None
        )
        if existing is not None:
            # find_exact follows a single path and can miss an equal range
            changes.cancel_delete(existing)
            changes.to_update.append(existing.update_from(new))
        else:
            logger.debug("Adding %s - not an update", new.range)
            changes.to_create.append(new)

    return changes


class AppointmentWriter:
    def __init__(self, placeholder_message: str = DEFAULT_PLACEHOLDER_MESSAGE):
        self.placeholder_message = placeholder_message

    def sync_user(
        self,
        user: ExchangeUser,
        feed: EventFeed,
        gateway,
        window: DateTimeRange,
    ) -> Optional[AppointmentChanges]:
        """
        Bring the user's placeholder appointments in line with ``feed``.

        Returns the applied changes, or None when the user was skipped for lack
        of appointment detail.
        """
        started = time.perf_counter()
        gateway.get_calendar_info_for_user(user, window)

        if not user.have_appointment_detail:
            logger.info(
                "Skipped sync of %s due to missing appointment detail", user.email
            )
            return None

        new_appointments = build_appointment_tree(feed, self.placeholder_message)
        changes = plan_changes(user.busy_times, new_appointments)

        logger.info(
            "AppointmentWriter for '%s'.  [%d deleted, %d updated, %d new]",
            user.email,
            len(changes.to_delete),
            len(changes.to_update),
            len(changes.to_create),
        )

        gateway.appointments.delete_appointments(user, changes.to_delete)
        # TODO: publish updates once update_appointments preserves the
        # original item ids; updated appointments are only changed locally.
        gateway.appointments.write_appointments(user, changes.to_create)

        logger.debug(
            "Appointment sync for %s took %.3fs", user.email, time.perf_counter() - started
        )
        return changes
