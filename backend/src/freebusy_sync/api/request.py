"""
Parser for the legacy free/busy lookup request.

Wire format (one line, whitespace around items is ignored):

    [version, messageId, [user1,user2,...], start/end, since, timeZone]

Dates use ``yyyyMMdd`` or ``yyyyMMddTHHmmss`` in the requester's time zone.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, tzinfo
from typing import Optional

from freebusy_sync.config import DomainMap
from freebusy_sync.core.date_range import DateTimeRange
from freebusy_sync.core.errors import (
    FreeBusyError,
    MalformedRequestError,
    UnsupportedVersionError,
)
from freebusy_sync.core.utils import get_time_zone, parse_google_date, to_utc_naive

logger = logging.getLogger(__name__)

SUPPORTED_VERSION = "1"
EXPECTED_REQUEST_ITEMS = 6


@dataclass
class GCalFreeBusyRequest:
    version: str
    message_id: str
    users: list[str]
    start: datetime
    end: datetime
    since: datetime
    time_zone_name: str
    time_zone: tzinfo
    raw: str = ""

    @property
    def utc_start(self) -> datetime:
        return to_utc_naive(self.start, self.time_zone)

    @property
    def utc_end(self) -> datetime:
        return to_utc_naive(self.end, self.time_zone)

    @property
    def utc_range(self) -> DateTimeRange:
        return DateTimeRange(self.utc_start, self.utc_end)

    @classmethod
    def parse(cls, raw: Optional[str], domain_map: Optional[DomainMap] = None) -> "GCalFreeBusyRequest":
        """
        Parse and validate a raw request body.

        Raises:
            MalformedRequestError: the body does not follow the wire format
            UnsupportedVersionError: version is not "1"
            TimeZoneError: the time zone name is unknown
        """
        content = (raw or "").strip()
        if not content:
            raise MalformedRequestError("Request is null or empty")

        logger.info("Free/busy request received [body=%s]", content)

        if not (content.startswith("[") and content.endswith("]")):
            raise MalformedRequestError(
                f"Request does not start and end in brackets: {content}"
            )
        content = content[1:-1]

        users_start = content.find("[")
        users_end = content.find("]")
        if users_start < 0 or users_end < users_start:
            raise MalformedRequestError(
                f"Request users section is not properly formatted: {raw}"
            )

        users_section = content[users_start + 1:users_end]
        content = content[:users_start] + content[users_end + 1:]

        users = []
        for user in users_section.split(","):
            user = user.strip()
            if not user:
                continue
            users.append(domain_map.to_local(user) if domain_map else user)

        items = content.split(",")
        if len(items) != EXPECTED_REQUEST_ITEMS:
            raise MalformedRequestError(
                "Request does not contain the proper amount of variables; "
                f"Supplied - {len(items)}, Expected - {EXPECTED_REQUEST_ITEMS}"
            )

        version = items[0].strip()
        message_id = items[1].strip()

        dates = items[3].strip().split("/")
        if len(dates) != 2:
            raise MalformedRequestError(
                "Request must supply both a start and an end date"
            )
        start = parse_google_date(dates[0])
        end = parse_google_date(dates[1])

        since_raw = items[4].strip()
        try:
            since = parse_google_date(since_raw)
        except FreeBusyError:
            logger.warning("Ignoring invalid since parameter %r", since_raw)
            since = datetime.min

        time_zone_name = items[5].strip()
        time_zone = get_time_zone(time_zone_name)

        if version != SUPPORTED_VERSION:
            raise UnsupportedVersionError(version)

        return cls(
            version=version,
            message_id=message_id,
            users=users,
            start=start,
            end=end,
            since=since,
            time_zone_name=time_zone_name,
            time_zone=time_zone,
            raw=raw or "",
        )
