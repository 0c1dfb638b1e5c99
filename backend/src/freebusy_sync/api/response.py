# Lookup response rendering
# The lookup protocol expects a single-quoted nested list, not JSON.

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, Optional

from freebusy_sync.config import DomainMap
from freebusy_sync.core.conversions import (
    convert_response_to_google,
    escape_non_alphanumeric,
)
from freebusy_sync.core.errors import ErrorCode, FreeBusyError
from freebusy_sync.core.models import Appointment, ExchangeUser
from freebusy_sync.core.utils import (
    format_google_date,
    format_google_date_time,
    from_utc_naive,
)

from .request import GCalFreeBusyRequest

logger = logging.getLogger(__name__)


def _entry(
    subject: str,
    start: datetime,
    end: datetime,
    location: str,
    organizer: str,
    response: str,
) -> str:
    return "['{0}','{1}','{2}','{3}','{4}','{5}']".format(
        subject,
        format_google_date_time(start),
        format_google_date_time(end),
        location,
        organizer,
        response,
    )


def _private_entry(start: datetime, end: datetime, user: ExchangeUser) -> str:
    return _entry("", start, end, "", escape_non_alphanumeric(user.common_name), "1")


def _appointment_entry(
    appointment: Appointment,
    user: ExchangeUser,
    request: GCalFreeBusyRequest,
) -> str:
    start = from_utc_naive(appointment.start, request.time_zone)
    end = from_utc_naive(appointment.end, request.time_zone)

    if appointment.is_private:
        return _private_entry(start, end, user)

    return _entry(
        escape_non_alphanumeric(appointment.subject),
        start,
        end,
        escape_non_alphanumeric(appointment.location),
        escape_non_alphanumeric(appointment.organizer),
        str(int(convert_response_to_google(appointment.response_status))),
    )


def _user_entries(user: ExchangeUser, request: GCalFreeBusyRequest) -> list[str]:
    entries = []
    for block in user.busy_times:
        if block.appointments:
            entries.extend(
                _appointment_entry(appointment, user, request)
                for appointment in block.appointments
            )
        else:
            entries.append(
                _private_entry(
                    from_utc_naive(block.start, request.time_zone),
                    from_utc_naive(block.end, request.time_zone),
                    user,
                )
            )
    return entries


def generate_response(
    request: GCalFreeBusyRequest,
    users: Iterable[ExchangeUser],
    domain_map: Optional[DomainMap] = None,
) -> str:
    """Render the lookup response for users whose busy times are populated."""
    parts = [
        f"['{request.version}','{request.message_id}',",
        "['_ME_AddData','{0}/{1}','{2}'".format(
            format_google_date(request.start),
            format_google_date(request.end),
            format_google_date_time(request.since),
        ),
        ",[",
    ]

    user_parts = []
    for user in users:
        email = domain_map.to_external(user.email) if domain_map else user.email
        user_parts.append(
            "'{0}','{1}','{2}',[{3}]".format(
                user.display_name,
                email,
                int(user.access_level),
                ",".join(_user_entries(user, request)),
            )
        )

    parts.append(",".join(user_parts))
    parts.append("]]]")

    logger.info("Free/busy response generated for %d users", len(user_parts))
    return "".join(parts)


def generate_error_response(
    exc: Exception,
    request: Optional[GCalFreeBusyRequest] = None,
) -> str:
    """Render ``['version','messageId','errorId','message']``."""
    version = request.version if request else "0"
    message_id = request.message_id if request else "0"

    if isinstance(exc, FreeBusyError):
        error_id = int(exc.error_code)
        message = exc.message
    else:
        error_id = int(ErrorCode.GENERIC)
        message = str(exc)

    return "['{0}','{1}','{2}','{3}']".format(
        version,
        message_id,
        error_id,
        escape_non_alphanumeric(message),
    )
