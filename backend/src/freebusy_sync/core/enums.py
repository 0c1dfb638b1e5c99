from enum import Enum


class BusyStatus(str, Enum):
    BUSY = "busy"
    FREE = "free"
    OUT_OF_OFFICE = "outOfOffice"
    TENTATIVE = "tentative"


class MeetingStatus(str, Enum):
    CANCELLED = "cancelled"
    CONFIRMED = "confirmed"
    TENTATIVE = "tentative"


class InstanceType(int, Enum):
    SINGLE = 0
    MASTER = 1
    INSTANCE = 2
    EXCEPTION = 3


class ResponseStatus(int, Enum):
    """Exchange attendee response states."""

    NONE = 0
    ORGANIZED = 1
    TENTATIVE = 2
    ACCEPTED = 3
    DECLINED = 4
    NOT_RESPONDED = 5


class GCalResponseStatus(int, Enum):
    """Response codes used by the Google lookup protocol."""

    NEEDS_ACTION = 0
    ACCEPTED = 1
    DECLINED = 2
    TENTATIVE = 3
    UNINVITED = 4
    ORGANIZER = 5


class ParticipantStatus(str, Enum):
    """Attendee status values as they appear in calendar feeds."""

    ACCEPTED = "accepted"
    DECLINED = "declined"
    INVITED = "invited"
    NEEDS_ACTION = "needsAction"
    TENTATIVE = "tentative"


class AccessLevel(int, Enum):
    NO_ACCESS = 0
    FREE_BUSY = 10
    READ = 20
    OWNER = 70


class IntervalTreeMatch(str, Enum):
    EXACT = "exact"
    OVERLAP = "overlap"
    CONTAINED = "contained"
    CONTAINED_BY = "containedBy"


class WriterType(str, Enum):
    SCHEDULE_PLUS = "SchedulePlus"
    APPOINTMENT = "Appointment"
