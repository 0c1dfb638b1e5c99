from __future__ import annotations

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Optional

from freebusy_sync.config import SyncConfig
from freebusy_sync.core.date_range import DateTimeRange
from freebusy_sync.core.errors import SyncAbortedError
from freebusy_sync.core.models import ExchangeUser
from freebusy_sync.database.typed_operations import SyncStateStore

from .writer_factory import FreeBusyWriter, get_writer

logger = logging.getLogger(__name__)


@dataclass
class SyncReport:
    users_processed: int = 0
    users_skipped: int = 0
    error_count: int = 0
    elapsed: float = 0.0


class SyncWorker(threading.Thread):
    def __init__(self, process: "SyncProcess", index: int):
        super().__init__(name=f"freebusy-sync-{index}", daemon=True)
        self._process = process

    def run(self) -> None:
        while not self._process.aborted.is_set():
            user = self._process.next_user()
            if user is None:
                return
            self._process.sync_user_safely(user)


class SyncProcess:
    """
    Synchronizes a batch of users from the external calendar into the
    free/busy store.

    Workers share one queue of users. A failure for one user is logged and
    counted; the batch is aborted once the count exceeds the configured
    threshold.

    Example usage:
        process = SyncProcess(config, calendar_gateway, exchange_gateway, store)
        report = process.run(users)
    """

    def __init__(
        self,
        config: SyncConfig,
        calendar_gateway: Any,
        exchange_gateway: Any,
        sync_state: SyncStateStore,
        writer: Optional[FreeBusyWriter] = None,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.config = config
        self.calendar_gateway = calendar_gateway
        self.exchange_gateway = exchange_gateway
        self.sync_state = sync_state
        self.writer = writer or get_writer(config=config)
        self.clock = clock

        self.aborted = threading.Event()
        self._lock = threading.Lock()
        self._queue: deque[ExchangeUser] = deque()
        self._report = SyncReport()

    def next_user(self) -> Optional[ExchangeUser]:
        with self._lock:
            return self._queue.popleft() if self._queue else None

    def sync_window(self) -> DateTimeRange:
        now = self.clock()
        days = timedelta(days=self.config.sync_window_days)
        return DateTimeRange(now - days, now + days)

    def sync_user(self, user: ExchangeUser) -> bool:
        """Sync one user. Returns False when the user was skipped."""
        started = time.perf_counter()
        window = self.sync_window()
        since = self.sync_state.get_modified_time(user.email)

        feed = self.calendar_gateway.query_events(user.email, since, window)
        if feed is None:
            logger.info("Calendar for %s unchanged since %s, skipping", user.email, since)
            return False
        if not feed.is_valid:
            logger.warning("Calendar feed for %s has no time zone, skipping", user.email)
            return False

        self.writer.sync_user(user, feed, self.exchange_gateway, window)
        self.sync_state.update_modified_time(user.email, feed.updated or self.clock())

        logger.info(
            "Synchronized %s in %.3fs", user.email, time.perf_counter() - started
        )
        return True

    def _record_error(self, user: ExchangeUser, exc: Exception) -> None:
        try:
            self.sync_state.record_sync_error(user.email, str(exc))
        except Exception:
            logger.exception("Could not record sync error for %s", user.email)

    def sync_user_safely(self, user: ExchangeUser) -> None:
        try:
            synced = self.sync_user(user)
        except Exception as exc:
            logger.error("Error synchronizing %s: %s", user.email, exc, exc_info=True)
            with self._lock:
                self._report.error_count += 1
                if self._report.error_count > self.config.error_threshold:
                    self.aborted.set()
            self._record_error(user, exc)
            return

        with self._lock:
            if synced:
                self._report.users_processed += 1
            else:
                self._report.users_skipped += 1

    def run(
        self,
        users: Iterable[ExchangeUser],
        thread_count: Optional[int] = None,
    ) -> SyncReport:
        """
        Sync every user and return the batch report.

        Raises:
            SyncAbortedError: more than ``error_threshold`` users failed
        """
        started = time.perf_counter()
        self.aborted.clear()
        self._report = SyncReport()
        with self._lock:
            self._queue = deque(users)

        count = max(thread_count or self.config.thread_count, 1)
        workers = [SyncWorker(self, index) for index in range(count)]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()

        self._report.elapsed = time.perf_counter() - started

        if self.aborted.is_set():
            logger.error(
                "User synchronization aborted after %d errors", self._report.error_count
            )
            raise SyncAbortedError(self._report.error_count, self.config.error_threshold)

        logger.info(
            "User synchronization complete.  %d users processed.",
            self._report.users_processed,
        )
        return self._report
