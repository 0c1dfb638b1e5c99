# Status classification
# Maps calendar feed statuses onto busy/meeting statuses and back onto the
# response codes of the lookup protocol.

from __future__ import annotations

import html
import logging
from typing import TYPE_CHECKING, Optional

from .enums import (
    BusyStatus,
    GCalResponseStatus,
    MeetingStatus,
    ParticipantStatus,
    ResponseStatus,
)
from .errors import UnrecognizedStatusError
from .models import CalendarEvent, ExchangeUser

if TYPE_CHECKING:
    from freebusy_sync.config import DomainMap

logger = logging.getLogger(__name__)

_TENTATIVE_ATTENDEE_STATUSES = {
    ParticipantStatus.INVITED.value.lower(),
    ParticipantStatus.NEEDS_ACTION.value.lower(),
    ParticipantStatus.TENTATIVE.value.lower(),
}


def _normalize_token(value: str) -> str:
    # Feeds may carry either a bare value or a schema URI such as
    # "http://schemas.google.com/g/2005#event.confirmed"
    token = value.strip()
    if "#" in token:
        token = token.rsplit("#", 1)[1]
    if token.startswith("event."):
        token = token[len("event."):]
    return token.lower()


def parse_busy_status(token: str) -> BusyStatus:
    """
    Parse a busy status as reported by the appointment store.

    Raises:
        UnrecognizedStatusError: token is not a known status
    """
    value = token.strip().upper()
    if value == "BUSY":
        return BusyStatus.BUSY
    if value == "FREE":
        return BusyStatus.FREE
    if value in ("OUTOFOFFICE", "OOF"):
        return BusyStatus.OUT_OF_OFFICE
    if value == "TENTATIVE":
        return BusyStatus.TENTATIVE
    raise UnrecognizedStatusError(token)


def convert_event_status(status: Optional[str]) -> MeetingStatus:
    """Event status -> meeting status. Missing or unknown values are confirmed."""
    if not status:
        return MeetingStatus.CONFIRMED

    token = _normalize_token(status)
    if token in ("canceled", "cancelled"):
        return MeetingStatus.CANCELLED
    if token == "tentative":
        return MeetingStatus.TENTATIVE
    return MeetingStatus.CONFIRMED


def convert_participant_status(
    user: ExchangeUser,
    event: CalendarEvent,
    domain_map: Optional["DomainMap"] = None,
) -> BusyStatus:
    """
    Busy status of ``user`` as an attendee of ``event``.

    Busy when the user is not listed, since free/busy projections of a feed
    carry no participants at all.
    """
    external_email = domain_map.to_external(user.email) if domain_map else user.email

    for participant in event.participants:
        email = (participant.email or "").strip().lower()
        if not email or email not in (user.email, external_email):
            continue

        status = _normalize_token(participant.attendee_status or "")
        if status == ParticipantStatus.DECLINED.value:
            return BusyStatus.FREE
        if status in _TENTATIVE_ATTENDEE_STATUSES:
            return BusyStatus.TENTATIVE
        return BusyStatus.BUSY

    return BusyStatus.BUSY


def get_user_status_for_event(
    user: ExchangeUser,
    event: CalendarEvent,
    domain_map: Optional["DomainMap"] = None,
) -> BusyStatus:
    logger.debug("Looking up the status of %s in %r", user.email, event.title)

    if not event.has_times:
        return BusyStatus.FREE

    meeting_status = convert_event_status(event.status)
    if meeting_status == MeetingStatus.CANCELLED:
        return BusyStatus.FREE

    user_status = convert_participant_status(user, event, domain_map)
    if user_status == BusyStatus.FREE:
        return BusyStatus.FREE

    if meeting_status == MeetingStatus.TENTATIVE and user_status == BusyStatus.BUSY:
        return BusyStatus.TENTATIVE

    return user_status


# ============================================================================
# LOOKUP PROTOCOL
# ============================================================================


def convert_response_to_google(status: ResponseStatus) -> GCalResponseStatus:
    if status == ResponseStatus.NOT_RESPONDED:
        return GCalResponseStatus.NEEDS_ACTION
    if status == ResponseStatus.ACCEPTED:
        return GCalResponseStatus.ACCEPTED
    if status == ResponseStatus.DECLINED:
        return GCalResponseStatus.DECLINED
    if status == ResponseStatus.TENTATIVE:
        return GCalResponseStatus.TENTATIVE
    if status == ResponseStatus.ORGANIZED:
        return GCalResponseStatus.ORGANIZER
    return GCalResponseStatus.UNINVITED


def convert_busy_status_to_google(status: BusyStatus) -> GCalResponseStatus:
    if status == BusyStatus.FREE:
        return GCalResponseStatus.DECLINED
    if status == BusyStatus.TENTATIVE:
        return GCalResponseStatus.TENTATIVE
    return GCalResponseStatus.ACCEPTED


def escape_non_alphanumeric(text: Optional[str]) -> str:
    """Keep letters, digits and spaces; everything else becomes ``\\ooo`` (octal)."""
    if not text:
        return ""

    parts = []
    for char in html.unescape(text):
        if char.isalpha() or char.isdigit() or char == " ":
            parts.append(char)
        else:
            parts.append("\\" + format(ord(char), "03o"))
    return "".join(parts)
