import base64
import random
from datetime import datetime, timedelta

import pytest

from freebusy_sync.core.converter import (
    SYSTEM_EPOCH,
    condense_ranges,
    convert_raster_to_busy_status,
    decode_blocks,
    encode_ranges,
    get_minute_offset,
    get_month_key,
    month_key_start,
    parse_month_key,
    parse_raster_free_busy,
    split_by_month,
    to_epoch_minutes,
)
from freebusy_sync.core.date_range import DateTimeRange
from freebusy_sync.core.enums import BusyStatus
from freebusy_sync.core.errors import MalformedDataError
from freebusy_sync.core.models import FreeBusy
from freebusy_sync.core.utils import start_of_next_month


def dt(*args):
    return datetime(*args)


class TestMonthKeys:
    def test_date_advance_across_year(self):
        assert start_of_next_month(dt(2007, 12, 30)) == dt(2008, 1, 1)

    def test_month_key_round_trip(self):
        key = get_month_key(dt(2008, 2, 14, 9, 30))
        assert key == 2008 * 16 + 2
        assert parse_month_key(key) == (2008, 2)
        assert month_key_start(key) == dt(2008, 2, 1)

    def test_minute_offset_truncates_seconds(self):
        assert get_minute_offset(dt(2008, 2, 1)) == 0
        assert get_minute_offset(dt(2008, 2, 2, 1, 5, 59)) == 24 * 60 + 65

    def test_epoch_minutes(self):
        assert to_epoch_minutes(SYSTEM_EPOCH) == 0
        now = dt(2008, 5, 1, 10, 0)
        previous = to_epoch_minutes(now) - 1
        for i in range(0, 60 * 24 * 3, 7):
            future = now + timedelta(minutes=i)
            minutes = to_epoch_minutes(future)
            assert SYSTEM_EPOCH + timedelta(minutes=minutes) == future
            assert minutes == previous + 1 + i
        # sanity check on an absolute value
        assert to_epoch_minutes(dt(1601, 1, 2)) == 24 * 60

    def test_epoch_minutes_step_by_one_across_leap_year(self):
        current = dt(2007, 12, 30)
        previous = to_epoch_minutes(current)
        step = timedelta(minutes=1)
        for _ in range(368 * 1440):
            current += step
            minutes = to_epoch_minutes(current)
            assert minutes == previous + 1
            previous = minutes
        assert current == dt(2009, 1, 1)

    @pytest.mark.parametrize("month", [0, 13, 14, 15])
    def test_invalid_month_key(self, month):
        key = 2008 * 16 + month
        with pytest.raises(MalformedDataError):
            month_key_start(key)
        with pytest.raises(MalformedDataError):
            decode_blocks(key, "")


class TestSplitByMonth:
    def test_single_month(self):
        r = DateTimeRange(dt(2007, 7, 23, 13, 45), dt(2007, 7, 23, 16, 45))
        assert split_by_month(r) == [r]

    def test_pieces_end_one_second_before_next_month(self):
        r = DateTimeRange(dt(2007, 11, 30, 22, 0), dt(2008, 1, 2, 3, 0))
        assert split_by_month(r) == [
            DateTimeRange(dt(2007, 11, 30, 22, 0), dt(2007, 11, 30, 23, 59, 59)),
            DateTimeRange(dt(2007, 12, 1), dt(2007, 12, 31, 23, 59, 59)),
            DateTimeRange(dt(2008, 1, 1), dt(2008, 1, 2, 3, 0)),
        ]


class TestEncodeDecode:
    def test_round_trip_across_months(self):
        src = []
        expected = []

        s = dt(2007, 7, 23, 13, 45)
        src.append(DateTimeRange(s, s + timedelta(hours=3)))
        expected.append(DateTimeRange(s, s + timedelta(hours=3)))

        s = dt(2007, 7, 30, 13, 45)
        src.append(DateTimeRange(s, s))
        expected.append(DateTimeRange(s, s))

        s = dt(2007, 8, 15, 13, 45)
        e = dt(2007, 10, 11, 2, 45)
        src.append(DateTimeRange(s, e))
        expected.append(DateTimeRange(s, dt(2007, 8, 31, 23, 59)))
        expected.append(DateTimeRange(dt(2007, 9, 1), dt(2007, 9, 30, 23, 59)))
        expected.append(DateTimeRange(dt(2007, 10, 1), e))

        src.append(DateTimeRange(dt(2008, 1, 1), dt(2008, 3, 31, 23, 59)))
        expected.append(DateTimeRange(dt(2008, 1, 1), dt(2008, 1, 31, 23, 59)))
        expected.append(DateTimeRange(dt(2008, 2, 1), dt(2008, 2, 29, 23, 59)))
        expected.append(DateTimeRange(dt(2008, 3, 1), dt(2008, 3, 31, 23, 59)))

        src.append(DateTimeRange(dt(2008, 4, 1), dt(2008, 5, 30, 23, 59)))
        expected.append(DateTimeRange(dt(2008, 4, 1), dt(2008, 4, 30, 23, 59)))
        expected.append(DateTimeRange(dt(2008, 5, 1), dt(2008, 5, 30, 23, 59)))

        month_keys, blocks = encode_ranges(dt(2007, 7, 1), dt(2008, 5, 31), src)

        result = []
        for key, block in zip(month_keys, blocks):
            result.extend(decode_blocks(int(key), block))

        assert result == expected

    def test_every_window_month_gets_an_entry(self):
        month_keys, blocks = encode_ranges(dt(2007, 11, 15), dt(2008, 2, 3), [])

        assert month_keys == [
            str(2007 * 16 + 11),
            str(2007 * 16 + 12),
            str(2008 * 16 + 1),
            str(2008 * 16 + 2),
        ]
        assert blocks == ["", "", "", ""]

    def test_block_layout_is_little_endian_minute_pairs(self):
        r = DateTimeRange(dt(2008, 3, 1, 0, 1), dt(2008, 3, 1, 4, 16))
        month_keys, blocks = encode_ranges(dt(2008, 3, 1), dt(2008, 3, 31), [r])

        assert month_keys == [str(2008 * 16 + 3)]
        assert base64.b64decode(blocks[0]) == bytes([1, 0, 0, 1])

    def test_ranges_outside_window_keep_their_month(self):
        r = DateTimeRange(dt(2008, 6, 2, 9), dt(2008, 6, 2, 10))
        month_keys, blocks = encode_ranges(dt(2008, 5, 1), dt(2008, 5, 31), [r])

        assert month_keys == [str(2008 * 16 + 5), str(2008 * 16 + 6)]
        assert decode_blocks(int(month_keys[1]), blocks[1]) == [r]

    def test_decode_rejects_bad_base64(self):
        with pytest.raises(MalformedDataError):
            decode_blocks(2008 * 16 + 1, "not base64!")

    def test_decode_rejects_partial_block(self):
        block = base64.b64encode(b"\x01\x00\x02").decode("ascii")
        with pytest.raises(MalformedDataError) as exc_info:
            decode_blocks(2008 * 16 + 1, block)
        assert exc_info.value.reason == "malformedData"

    def test_decode_empty_block(self):
        assert decode_blocks(2008 * 16 + 1, "") == []


class TestCondense:
    def test_condense_cases(self):
        def r(day, start, end):
            return DateTimeRange(
                datetime.strptime(f"2007-06-{day:02d} {start}", "%Y-%m-%d %H:%M"),
                datetime.strptime(f"2007-06-{day:02d} {end}", "%Y-%m-%d %H:%M"),
            )

        source = [
            # chained overlaps
            r(1, "07:00", "08:00"), r(1, "07:30", "08:30"), r(1, "08:00", "09:00"),
            # touching
            r(2, "07:00", "08:00"), r(2, "08:00", "09:00"),
            # identical
            r(3, "07:00", "08:00"), r(3, "07:00", "08:00"),
            # adjacent chain
            r(4, "07:00", "07:30"), r(4, "07:30", "08:30"), r(4, "08:30", "09:00"),
            # enclosed
            r(5, "07:00", "09:00"), r(5, "07:30", "08:30"),
            # same start, shorter second
            r(6, "07:00", "08:00"), r(6, "07:00", "07:30"),
            # same end
            r(7, "07:00", "08:00"), r(7, "07:30", "08:00"),
            # two enclosed
            r(8, "07:00", "10:00"), r(8, "07:30", "08:00"), r(8, "08:30", "09:00"),
            # disjoint
            r(9, "07:00", "08:00"), r(9, "09:00", "10:00"),
        ]
        expected = [
            r(1, "07:00", "09:00"),
            r(2, "07:00", "09:00"),
            r(3, "07:00", "08:00"),
            r(4, "07:00", "09:00"),
            r(5, "07:00", "09:00"),
            r(6, "07:00", "08:00"),
            r(7, "07:00", "08:00"),
            r(8, "07:00", "10:00"),
            r(9, "07:00", "08:00"),
            r(9, "09:00", "10:00"),
        ]

        shuffled = sorted(source, reverse=True)
        before = list(shuffled)

        assert condense_ranges(shuffled) == expected
        assert shuffled == before

    def test_condense_empty(self):
        assert condense_ranges([]) == []

    @staticmethod
    def pairwise_condense(ranges):
        """Merge any two touching ranges until none are left."""
        remaining = list(ranges)
        merged = True
        while merged:
            merged = False
            for i in range(len(remaining)):
                for j in range(i + 1, len(remaining)):
                    a, b = remaining[i], remaining[j]
                    if a.start <= b.end and b.start <= a.end:
                        remaining[i] = DateTimeRange(min(a.start, b.start), max(a.end, b.end))
                        del remaining[j]
                        merged = True
                        break
                if merged:
                    break
        return remaining

    @staticmethod
    def hours(start, end):
        base = dt(2008, 3, 10)
        return DateTimeRange(base + timedelta(hours=start), base + timedelta(hours=end))

    @pytest.mark.parametrize(
        "spans",
        [
            [],
            [(1, 2)],
            [(1, 2), (3, 4), (5, 6)],
            [(0, 10), (1, 9), (2, 8), (3, 7)],
            [(0, 2), (1, 3), (2, 4), (3, 5)],
            [(5, 6), (0, 1), (1, 2), (8, 9), (6, 7)],
        ],
    )
    def test_matches_pairwise_merge(self, spans):
        ranges = [self.hours(start, end) for start, end in spans]
        assert set(condense_ranges(ranges)) == set(self.pairwise_condense(ranges))
        assert condense_ranges(condense_ranges(ranges)) == condense_ranges(ranges)

    def test_matches_pairwise_merge_randomized(self):
        rng = random.Random(20080421)
        for _ in range(300):
            ranges = []
            for _ in range(rng.randint(0, 12)):
                start = rng.randint(0, 48)
                ranges.append(self.hours(start, start + rng.randint(0, 6)))

            condensed = condense_ranges(ranges)

            assert set(condensed) == set(self.pairwise_condense(ranges))
            assert condense_ranges(condensed) == condensed


class TestRaster:
    def test_raster_characters(self):
        assert convert_raster_to_busy_status("0") == BusyStatus.FREE
        assert convert_raster_to_busy_status("1") == BusyStatus.TENTATIVE
        assert convert_raster_to_busy_status("2") == BusyStatus.BUSY
        assert convert_raster_to_busy_status("3") == BusyStatus.OUT_OF_OFFICE
        assert convert_raster_to_busy_status("4") == BusyStatus.FREE
        for code in range(32, 256):
            char = chr(code)
            if char not in "0123":
                assert convert_raster_to_busy_status(char) == BusyStatus.FREE

    BASE = dt(2008, 5, 1, 10, 0)

    def slot(self, index):
        return self.BASE + timedelta(minutes=15 * index)

    def parse(self, raster):
        free_busy = FreeBusy()
        parse_raster_free_busy(self.BASE, 15, raster, free_busy)
        return free_busy

    def test_single_tentative(self):
        fb = self.parse("1")
        assert fb.all == [] and fb.busy == [] and fb.out_of_office == []
        assert fb.tentative == [DateTimeRange(self.slot(0), self.slot(1))]

    def test_single_busy(self):
        fb = self.parse("2")
        assert fb.all == [DateTimeRange(self.slot(0), self.slot(1))]
        assert fb.busy == fb.all
        assert fb.tentative == [] and fb.out_of_office == []

    def test_single_out_of_office(self):
        fb = self.parse("3")
        assert fb.all == [DateTimeRange(self.slot(0), self.slot(1))]
        assert fb.out_of_office == fb.all
        assert fb.busy == [] and fb.tentative == []

    @pytest.mark.parametrize("raster", ["4", "44", "0440", ""])
    def test_no_data(self, raster):
        fb = self.parse(raster)
        assert fb.all == [] and fb.busy == [] and fb.tentative == [] and fb.out_of_office == []

    def test_runs_are_merged(self):
        assert self.parse("11").tentative == [DateTimeRange(self.slot(0), self.slot(2))]
        assert self.parse("22").busy == [DateTimeRange(self.slot(0), self.slot(2))]
        assert self.parse("33").out_of_office == [DateTimeRange(self.slot(0), self.slot(2))]

    def test_runs_with_offsets(self):
        assert self.parse("0114").tentative == [DateTimeRange(self.slot(1), self.slot(3))]

        fb = self.parse("0224")
        assert fb.all == [DateTimeRange(self.slot(1), self.slot(3))]
        assert fb.busy == [DateTimeRange(self.slot(1), self.slot(3))]

        fb = self.parse("0334")
        assert fb.all == [DateTimeRange(self.slot(1), self.slot(3))]
        assert fb.out_of_office == [DateTimeRange(self.slot(1), self.slot(3))]

    def test_mixed_raster(self):
        fb = self.parse("40312")

        assert fb.all == [
            DateTimeRange(self.slot(2), self.slot(3)),
            DateTimeRange(self.slot(4), self.slot(5)),
        ]
        assert fb.busy == [DateTimeRange(self.slot(4), self.slot(5))]
        assert fb.tentative == [DateTimeRange(self.slot(3), self.slot(4))]
        assert fb.out_of_office == [DateTimeRange(self.slot(2), self.slot(3))]
