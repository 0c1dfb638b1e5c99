# Core free/busy types and algorithms
from .date_range import DateTimeRange
from .enums import (
    AccessLevel,
    BusyStatus,
    GCalResponseStatus,
    InstanceType,
    IntervalTreeMatch,
    MeetingStatus,
    ResponseStatus,
    WriterType,
)
from .errors import (
    ErrorCode,
    FreeBusyError,
    MalformedDataError,
    MalformedRequestError,
    RangeInvariantError,
    SyncAbortedError,
    TimeZoneError,
    TransientIOError,
    UnrecognizedStatusError,
    UnsupportedVersionError,
)
from .interval_tree import IntervalTree
from .models import (
    Appointment,
    AppointmentCollection,
    CalendarEvent,
    EventFeed,
    ExchangeUser,
    FreeBusy,
    FreeBusyCollection,
    FreeBusyTimeBlock,
    Participant,
)

__all__ = [
    "DateTimeRange",
    "IntervalTree",
    # Enums
    "AccessLevel",
    "BusyStatus",
    "GCalResponseStatus",
    "InstanceType",
    "IntervalTreeMatch",
    "MeetingStatus",
    "ResponseStatus",
    "WriterType",
    # Errors
    "ErrorCode",
    "FreeBusyError",
    "MalformedDataError",
    "MalformedRequestError",
    "RangeInvariantError",
    "SyncAbortedError",
    "TimeZoneError",
    "TransientIOError",
    "UnrecognizedStatusError",
    "UnsupportedVersionError",
    # Models
    "Appointment",
    "AppointmentCollection",
    "CalendarEvent",
    "EventFeed",
    "ExchangeUser",
    "FreeBusy",
    "FreeBusyCollection",
    "FreeBusyTimeBlock",
    "Participant",
]
