"""
Domain objects shared by the merge engine, the writers and the lookup API.

Appointments and blocks are mutable and compared by identity; ranges are
values. Pydantic schemas for serialization live in
``freebusy_sync.database.pydantic_schemas``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterator, Optional

from .date_range import DateTimeRange
from .enums import (
    AccessLevel,
    BusyStatus,
    InstanceType,
    MeetingStatus,
    ResponseStatus,
)


# ============================================================================
# APPOINTMENTS
# ============================================================================


@dataclass(eq=False)
class Appointment:
    start: datetime
    end: datetime
    subject: str = ""
    body: str = ""
    location: str = ""
    organizer: str = ""
    busy_status: BusyStatus = BusyStatus.BUSY
    response_status: ResponseStatus = ResponseStatus.NONE
    instance_type: InstanceType = InstanceType.SINGLE
    meeting_status: MeetingStatus = MeetingStatus.CONFIRMED
    is_private: bool = False
    all_day_event: bool = False
    # Set only on appointments this service created; nothing else is ever
    # updated or deleted by a sync.
    sync_owned: bool = False
    created: Optional[datetime] = None
    href: Optional[str] = None

    @property
    def range(self) -> DateTimeRange:
        return DateTimeRange(self.start, self.end)

    def update_from(self, other: "Appointment") -> "Appointment":
        """Copy the synchronized fields of ``other`` onto this appointment."""
        self.body = other.body
        self.subject = other.subject
        self.start = other.start
        self.end = other.end
        self.all_day_event = other.all_day_event
        self.meeting_status = other.meeting_status
        self.location = other.location
        self.instance_type = other.instance_type
        self.sync_owned = other.sync_owned
        self.busy_status = other.busy_status
        return self


class AppointmentCollection:
    """Appointments indexed by their exact range."""

    def __init__(self) -> None:
        self._items: list[Appointment] = []
        self._by_range: dict[DateTimeRange, list[Appointment]] = {}

    def add(self, appointment: Appointment) -> None:
        self._items.append(appointment)
        self._by_range.setdefault(appointment.range, []).append(appointment)

    def get(self, range_: DateTimeRange) -> list[Appointment]:
        return list(self._by_range.get(range_, []))

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[Appointment]:
        return iter(self._items)


# ============================================================================
# FREE/BUSY
# ============================================================================


@dataclass
class FreeBusy:
    """Busy ranges for one user as reported by the free/busy lookup."""

    all: list[DateTimeRange] = field(default_factory=list)
    busy: list[DateTimeRange] = field(default_factory=list)
    tentative: list[DateTimeRange] = field(default_factory=list)
    out_of_office: list[DateTimeRange] = field(default_factory=list)

    def clear(self) -> None:
        self.all.clear()
        self.busy.clear()
        self.tentative.clear()
        self.out_of_office.clear()


@dataclass(eq=False)
class FreeBusyTimeBlock:
    range: DateTimeRange
    appointments: list[Appointment] = field(default_factory=list)

    @property
    def start(self) -> datetime:
        return self.range.start

    @property
    def end(self) -> datetime:
        return self.range.end


class FreeBusyCollection:
    """Time blocks keyed by start, iterated in start order."""

    def __init__(self) -> None:
        self._blocks: dict[datetime, FreeBusyTimeBlock] = {}
        self.appointments = AppointmentCollection()

    def __contains__(self, start: datetime) -> bool:
        return start in self._blocks

    def __len__(self) -> int:
        return len(self._blocks)

    def __iter__(self) -> Iterator[FreeBusyTimeBlock]:
        return iter(self.values())

    def add(self, block: FreeBusyTimeBlock) -> None:
        self._blocks[block.start] = block

    def get(self, start: datetime) -> Optional[FreeBusyTimeBlock]:
        return self._blocks.get(start)

    def values(self) -> list[FreeBusyTimeBlock]:
        return [self._blocks[start] for start in sorted(self._blocks)]


# ============================================================================
# USERS
# ============================================================================


@dataclass(eq=False)
class ExchangeUser:
    email: str
    display_name: str = ""
    common_name: str = ""
    mail_nickname: str = ""
    legacy_exchange_dn: str = ""
    free_busy_common_name: str = ""
    access_level: AccessLevel = AccessLevel.NO_ACCESS
    busy_times: FreeBusyCollection = field(default_factory=FreeBusyCollection)
    tentative_times: list[DateTimeRange] = field(default_factory=list)
    have_appointment_detail: bool = False

    def __post_init__(self) -> None:
        self.email = self.email.strip().lower()


# ============================================================================
# CALENDAR FEED
# ============================================================================


@dataclass
class Participant:
    email: str
    attendee_status: Optional[str] = None


@dataclass
class CalendarEvent:
    """
    One entry of a user's external calendar feed.

    ``start``/``end`` may be zone-aware or naive; naive values are in the
    feed's time zone. An event without times has both set to None.
    """

    title: str = ""
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    all_day: bool = False
    status: Optional[str] = None
    location: Optional[str] = None
    participants: list[Participant] = field(default_factory=list)

    @property
    def has_times(self) -> bool:
        return self.start is not None and self.end is not None


@dataclass
class EventFeed:
    time_zone: Optional[str]
    entries: list[CalendarEvent] = field(default_factory=list)
    updated: Optional[datetime] = None

    @property
    def is_valid(self) -> bool:
        return bool(self.time_zone)
