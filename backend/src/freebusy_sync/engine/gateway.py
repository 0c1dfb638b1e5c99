"""
Facade over the appointment store and the free/busy store.

The two stores are duck-typed service objects:

    appointments.lookup(user, window) -> list[Appointment]
    appointments.write_appointments(user, appointments)
    appointments.update_appointments(user, appointments)
    appointments.delete_appointments(user, appointments)

    free_busy.lookup_free_busy_times(users, window) -> dict[str, FreeBusy]
    free_busy.lookup_free_busy_rasters(users, window, interval_minutes)
        -> dict[str, str]   (only when raster lookups are configured)
    free_busy.set_free_busy_properties(user, busy_months, busy_blocks,
                                       tentative_months, tentative_blocks,
                                       start_minutes, end_minutes)

Transport failures are reported by raising ``TransientIOError``.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Iterable, Optional

from freebusy_sync.core.converter import parse_raster_free_busy
from freebusy_sync.core.date_range import DateTimeRange
from freebusy_sync.core.enums import AccessLevel
from freebusy_sync.core.errors import TransientIOError
from freebusy_sync.core.models import Appointment, ExchangeUser, FreeBusy
from freebusy_sync.core.utils import round_range_to_interval

from .merge import merge_free_busy_with_appointments

logger = logging.getLogger(__name__)


def lookup_appointments(
    service: Any,
    user: ExchangeUser,
    window: DateTimeRange,
) -> list[Appointment]:
    """
    Fetch a user's appointments and record whether detail is available.

    A transport failure degrades to no detail rather than to zero busy time:
    the user's free/busy blocks are still reported, only without appointments.
    """
    try:
        appointments = list(service.lookup(user, window) or [])
    except TransientIOError as exc:
        logger.warning(
            "Appointment lookup failed for %s: %s", user.email, exc.message, exc_info=True
        )
        user.have_appointment_detail = False
        return []

    user.have_appointment_detail = True
    return appointments


class AppointmentLookupFuture:
    """
    Runs appointment lookups on a worker thread while the caller performs the
    free/busy lookup.

    Example usage:
        with AppointmentLookupFuture(service, users, window) as future:
            free_busy = free_busy_service.lookup_free_busy_times(users, window)
            appointments = future.result(user)
    """

    def __init__(
        self,
        service: Any,
        users: Iterable[ExchangeUser],
        window: DateTimeRange,
        enabled: bool = True,
    ):
        self._service = service
        self._users = list(users)
        self._window = window
        self._enabled = enabled
        self._executor: Optional[ThreadPoolExecutor] = None
        self._future: Optional[Future] = None

        if enabled:
            self._executor = ThreadPoolExecutor(
                max_workers=1, thread_name_prefix="AppointmentLookup"
            )
            self._future = self._executor.submit(self._run)

    def _run(self) -> dict[str, list[Appointment]]:
        # The store offers no multi-user lookup
        return {
            user.email: lookup_appointments(self._service, user, self._window)
            for user in self._users
        }

    def result(self, user: ExchangeUser, timeout: Optional[float] = None) -> list[Appointment]:
        if not self._enabled or self._future is None:
            return []
        return self._future.result(timeout=timeout).get(user.email, [])

    def close(self) -> None:
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def __enter__(self) -> "AppointmentLookupFuture":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


class ExchangeGateway:
    def __init__(
        self,
        appointments: Any,
        free_busy: Any,
        enable_appointment_lookup: bool = True,
        raster_interval_minutes: Optional[int] = None,
    ):
        self.appointments = appointments
        self.free_busy = free_busy
        self.enable_appointment_lookup = enable_appointment_lookup
        self.raster_interval_minutes = raster_interval_minutes

    def lookup_free_busy(
        self,
        users: list[ExchangeUser],
        window: DateTimeRange,
    ) -> dict[str, FreeBusy]:
        """
        Fetch free/busy ranges for ``users``.

        With a raster interval configured the store answers with one status
        character per slot, starting at ``window`` rounded out to whole slots.
        """
        if not self.raster_interval_minutes:
            return self.free_busy.lookup_free_busy_times(users, window) or {}

        interval = self.raster_interval_minutes
        slots = round_range_to_interval(window, interval)
        rasters = self.free_busy.lookup_free_busy_rasters(users, slots, interval) or {}

        result = {}
        for email, raster in rasters.items():
            free_busy = FreeBusy()
            parse_raster_free_busy(slots.start, interval, raster, free_busy)
            result[email] = free_busy
        return result

    def get_calendar_info_for_users(
        self,
        users: Iterable[ExchangeUser],
        window: Optional[DateTimeRange] = None,
    ) -> list[ExchangeUser]:
        """Populate ``busy_times`` for each user over ``window`` (default: everything)."""
        users = list(users)
        window = window or DateTimeRange.full()

        with AppointmentLookupFuture(
            self.appointments,
            users,
            window,
            enabled=self.enable_appointment_lookup,
        ) as future:
            free_busy_by_email = self.lookup_free_busy(users, window)

            for user in users:
                free_busy = free_busy_by_email.get(user.email)
                if free_busy is None:
                    logger.warning("No free/busy data returned for %s", user.email)
                    free_busy = FreeBusy()

                user.access_level = AccessLevel.FREE_BUSY
                merge_free_busy_with_appointments(
                    user,
                    free_busy,
                    future.result(user),
                    window.start,
                    window.end,
                )

        return users

    def get_calendar_info_for_user(
        self,
        user: ExchangeUser,
        window: Optional[DateTimeRange] = None,
    ) -> ExchangeUser:
        self.get_calendar_info_for_users([user], window)
        return user
