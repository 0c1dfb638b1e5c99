# Free/Busy Block Converter
# Encodes busy ranges into the month-keyed binary blocks stored on the
# free/busy server, decodes them back, and parses lookup rasters.

from __future__ import annotations

import base64
import binascii
import logging
import struct
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Iterable

from .date_range import DateTimeRange
from .enums import BusyStatus
from .errors import MalformedDataError
from .utils import start_of_month, start_of_next_month

if TYPE_CHECKING:
    from .models import FreeBusy

logger = logging.getLogger(__name__)

SYSTEM_EPOCH = datetime(1601, 1, 1)

# Two little-endian unsigned 16-bit minute offsets: start, end
_BLOCK = struct.Struct("<HH")


# ============================================================================
# MONTH KEYS AND OFFSETS
# ============================================================================


def get_month_key(value: datetime) -> int:
    return value.year * 16 + value.month


def parse_month_key(key: int) -> tuple[int, int]:
    """Return (year, month) for a month key."""
    return key >> 4, key & 15


def month_key_start(key: int) -> datetime:
    year, month = parse_month_key(key)
    if not 1 <= month <= 12 or year < 1:
        raise MalformedDataError(
            f"Invalid free/busy month key {key}", detail=f"year={year} month={month}"
        )
    return datetime(year, month, 1)


def get_minute_offset(value: datetime) -> int:
    """Minutes since the start of the value's month. Seconds are truncated."""
    return 60 * (24 * (value.day - 1) + value.hour) + value.minute


def to_epoch_minutes(value: datetime) -> float:
    """Minutes elapsed since 1601-01-01T00:00:00 (Windows system time)."""
    return (value - SYSTEM_EPOCH) / timedelta(minutes=1)


# ============================================================================
# ENCODING
# ============================================================================


def _add_piece(result: dict[int, bytearray], piece: DateTimeRange) -> None:
    if piece.start.year != piece.end.year or piece.start.month != piece.end.month:
        raise MalformedDataError(
            "Free/busy range months must match",
            detail=str(piece),
        )

    data = result.setdefault(get_month_key(piece.start), bytearray())
    data += _BLOCK.pack(get_minute_offset(piece.start), get_minute_offset(piece.end))


def split_by_month(range_: DateTimeRange) -> list[DateTimeRange]:
    """
    Split a range into per-month pieces.

    Every piece except the last ends one second before the next month starts.
    """
    end_key = get_month_key(range_.end)
    if get_month_key(range_.start) == end_key:
        return [range_]

    pieces = []
    month_end = start_of_next_month(range_.start)
    pieces.append(DateTimeRange(range_.start, month_end - timedelta(seconds=1)))

    while get_month_key(month_end) < end_key:
        month_start = month_end
        month_end = start_of_next_month(month_end)
        pieces.append(DateTimeRange(month_start, month_end - timedelta(seconds=1)))

    pieces.append(DateTimeRange(month_end, range_.end))
    return pieces


def encode_ranges(
    start_window: datetime,
    end_window: datetime,
    ranges: Iterable[DateTimeRange],
) -> tuple[list[str], list[str]]:
    """
    Encode busy ranges as parallel lists of month keys and base64 blocks.

    Every month in the window gets an entry even when it holds no ranges, so
    the server clears stale data for it. Ranges outside the window are still
    encoded under their own month keys.

    Returns:
        (month_keys, blocks): month keys as decimal strings and the matching
        base64-encoded block for each
    """
    result: dict[int, bytearray] = {}

    for key in range(get_month_key(start_window), get_month_key(end_window) + 1):
        if 1 <= key & 15 <= 12:
            result.setdefault(key, bytearray())

    for range_ in ranges:
        for piece in split_by_month(range_):
            _add_piece(result, piece)

    month_keys = [str(key) for key in result]
    blocks = [base64.b64encode(bytes(data)).decode("ascii") for data in result.values()]
    return month_keys, blocks


# ============================================================================
# DECODING
# ============================================================================


def decode_blocks(month_key: int, block: str) -> list[DateTimeRange]:
    """Decode one month's base64 block back into ranges."""
    try:
        raw = base64.b64decode(block, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise MalformedDataError(
            "Free/busy block is not valid base64", detail=str(exc)
        ) from exc

    if len(raw) % _BLOCK.size != 0:
        raise MalformedDataError(
            f"Free/busy block has invalid length {len(raw)}",
            detail=f"month={month_key}",
        )

    month_start = month_key_start(month_key)
    return [
        DateTimeRange(
            month_start + timedelta(minutes=start),
            month_start + timedelta(minutes=end),
        )
        for start, end in _BLOCK.iter_unpack(raw)
    ]


# ============================================================================
# CONDENSING
# ============================================================================


def condense_ranges(ranges: Iterable[DateTimeRange]) -> list[DateTimeRange]:
    """
    Merge overlapping or touching ranges.

    Returns a new list sorted by start; the input is not modified.
    """
    condensed: list[DateTimeRange] = []

    for current in sorted(ranges):
        if condensed and current.start <= condensed[-1].end:
            last = condensed[-1]
            if current.end > last.end:
                condensed[-1] = last.with_end(current.end)
        else:
            condensed.append(current)

    return condensed


# ============================================================================
# RASTER LOOKUPS
# ============================================================================


def convert_raster_to_busy_status(value: str) -> BusyStatus:
    if value == "1":
        return BusyStatus.TENTATIVE
    if value == "2":
        return BusyStatus.BUSY
    if value == "3":
        return BusyStatus.OUT_OF_OFFICE
    return BusyStatus.FREE


def _raster_state(value: str) -> str:
    # '4' (no data) and unknown characters are not recorded but still break runs
    return value if value in "0123" else "4"


def _record_run(
    free_busy: "FreeBusy",
    state: str,
    range_: DateTimeRange,
) -> None:
    status = convert_raster_to_busy_status(state)
    if status == BusyStatus.BUSY:
        free_busy.all.append(range_)
        free_busy.busy.append(range_)
    elif status == BusyStatus.OUT_OF_OFFICE:
        free_busy.all.append(range_)
        free_busy.out_of_office.append(range_)
    elif status == BusyStatus.TENTATIVE:
        free_busy.tentative.append(range_)


def parse_raster_free_busy(
    base_time: datetime,
    interval_minutes: int,
    raster: str,
    free_busy: "FreeBusy",
) -> None:
    """
    Run-length decode a raster string into ``free_busy``.

    Character ``i`` describes the slot starting at
    ``base_time + i * interval_minutes``.
    """
    if not raster:
        return

    interval = timedelta(minutes=interval_minutes)
    run_state = _raster_state(raster[0])
    run_start = 0

    for index in range(1, len(raster) + 1):
        state = _raster_state(raster[index]) if index < len(raster) else None
        if state == run_state:
            continue
        if run_state in ("1", "2", "3"):
            _record_run(
                free_busy,
                run_state,
                DateTimeRange(base_time + run_start * interval, base_time + index * interval),
            )
        run_state = state
        run_start = index
