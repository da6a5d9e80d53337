"""
Unit tests for pagination cursors.

Run with: pytest tests/unit/test_cursor.py -v
"""
import base64
from datetime import datetime, timedelta, timezone

import pytest

from tickerfeed.ranking.candidates import FeedMode
from tickerfeed.ranking.cursor import (
    PoolSlice,
    ScoreCursor,
    decode_following_cursor,
    decode_score_cursor,
    encode_following_cursor,
    encode_score_cursor,
    from_micros,
    is_valid_cursor,
    to_micros,
    to_millis,
)
from tests.fakes import NOW


class TestToMillis:
    def test_epoch(self):
        assert to_millis(datetime(1970, 1, 1, tzinfo=timezone.utc)) == 0

    def test_drops_sub_millisecond_precision(self):
        value = datetime(2026, 3, 2, 15, 0, 0, 123_999, tzinfo=timezone.utc)
        assert to_millis(value) % 1000 == 123

    def test_timezone_independent(self):
        kst = timezone(timedelta(hours=9))
        assert to_millis(NOW.astimezone(kst)) == to_millis(NOW)

    def test_naive_is_utc(self):
        assert to_millis(NOW.replace(tzinfo=None)) == to_millis(NOW)


class TestMicros:
    def test_keeps_sub_millisecond_precision(self):
        value = NOW + timedelta(microseconds=1)
        assert to_micros(value) - to_micros(NOW) == 1

    def test_decodes_to_the_same_instant(self):
        value = NOW - timedelta(microseconds=250_501)
        assert from_micros(to_micros(value)) == value


class TestFollowingCursor:
    def test_payload_is_base64_json(self):
        raw = encode_following_cursor(NOW)
        decoded = base64.urlsafe_b64decode(raw.encode()).decode()
        assert decoded == '{"createdAt": "2026-03-02T15:00:00+00:00"}'

    def test_decodes_to_the_same_instant(self):
        value = NOW - timedelta(microseconds=250_500)
        assert decode_following_cursor(encode_following_cursor(value)) == value

    @pytest.mark.parametrize("raw", [None, "", "not-base64!!", "e30=", "bm90IGpzb24=", "WzFd"])
    def test_malformed_decodes_to_none(self, raw):
        # e30= is "{}", bm90IGpzb24= is "not json", WzFd is "[1]"
        assert decode_following_cursor(raw) is None

    def test_bad_timestamp_decodes_to_none(self):
        raw = base64.urlsafe_b64encode(b'{"createdAt": "yesterday"}').decode()
        assert decode_following_cursor(raw) is None


class TestScoreCursor:
    def test_format(self):
        assert encode_score_cursor(0.8421, NOW, 42) == f"0.8421_{to_millis(NOW)}_42"

    def test_decode_three_parts(self):
        cursor = decode_score_cursor(encode_score_cursor(1.3695, NOW, 7))
        assert cursor == ScoreCursor(1.3695, to_millis(NOW), 7)

    def test_decode_two_parts(self):
        cursor = decode_score_cursor("0.5_1700000000000")
        assert cursor == ScoreCursor(0.5, 1_700_000_000_000, None)

    @pytest.mark.parametrize(
        "raw",
        [None, "", "abc", "0.5", "x_123", "0.5_y", "0.5_1_z", "1_2_3_4", "nan_1_2", "inf_1"],
    )
    def test_malformed_decodes_to_none(self, raw):
        assert decode_score_cursor(raw) is None

    def test_already_served_with_id(self):
        cursor = ScoreCursor(0.5, 1000, 10)

        assert cursor.already_served(0.6, 0, 1)          # higher score
        assert cursor.already_served(0.5, 1000, 10)      # the cursor item itself
        assert cursor.already_served(0.5, 1000, 11)      # tie broken by id
        assert not cursor.already_served(0.5, 1000, 9)
        assert not cursor.already_served(0.5, 999, 99)
        assert not cursor.already_served(0.4, 5000, 99)

    def test_already_served_without_id(self):
        cursor = ScoreCursor(0.5, 1000)

        assert cursor.already_served(0.5, 1000, 1)
        assert cursor.already_served(0.5, 1001, 1)
        assert not cursor.already_served(0.5, 999, 1)


class TestIsValidCursor:
    def test_checks_against_the_mode_format(self):
        following = encode_following_cursor(NOW)
        score = encode_score_cursor(0.3, NOW, 1)

        assert is_valid_cursor(FeedMode.FOLLOWING, following)
        assert is_valid_cursor(FeedMode.FOR_YOU, score)
        assert not is_valid_cursor(FeedMode.FOLLOWING, score)
        assert not is_valid_cursor(FeedMode.FOR_YOU, following)

    def test_cursor_with_pool_slice_is_valid_for_for_you(self):
        pool = PoolSlice(NOW, NOW + timedelta(microseconds=1), 0, 60)
        assert is_valid_cursor(FeedMode.FOR_YOU, encode_score_cursor(0.3, NOW, 1, pool))


class TestPoolSliceCursor:
    def test_format(self):
        pool = PoolSlice(NOW, NOW - timedelta(minutes=15), 15, 15)
        raw = encode_score_cursor(0.25, NOW, 11, pool)
        assert raw == (
            f"0.25_{to_millis(NOW)}_11_{to_micros(NOW)}"
            f"_{to_micros(NOW - timedelta(minutes=15))}_15_15"
        )

    def test_decode_seven_parts(self):
        pool = PoolSlice(NOW, NOW + timedelta(microseconds=1), 0, 60)
        cursor = decode_score_cursor(encode_score_cursor(1.3695, NOW, 7, pool))
        assert cursor == ScoreCursor(1.3695, to_millis(NOW), 7, pool)

    def test_legacy_cursor_has_no_pool(self):
        assert decode_score_cursor(encode_score_cursor(0.5, NOW, 3)).pool is None

    @pytest.mark.parametrize(
        "raw",
        [
            "0.5_1_2_3_4_5",          # six parts
            "0.5_1_2_3_4_5_0",        # empty slice
            "0.5_1_2_3_4_-1_5",       # negative post id bound
            "0.5_1_2_x_4_5_6",
            "0.5_1_2_3_4_5_6_7",
        ],
    )
    def test_malformed_decodes_to_none(self, raw):
        assert decode_score_cursor(raw) is None
