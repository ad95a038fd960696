from __future__ import annotations

import pytest

from alltime.normalize import (
    compute_age,
    date_ordinal,
    normalize,
    normalize_records,
    resolve_birth_date,
    time_to_seconds,
)


@pytest.mark.parametrize(
    "value, expected",
    [
        ("2:04:15.6", 7455.6),
        ("9.58", 9.58),
        ("44.72", 44.72),
        ("1:40.91", 100.91),
        ("26:11.00", 1571.0),
        ("2:00:35", 7235.0),
        ("8.95", 8.95),
        ("9126", 9126.0),
        ("9.77A", 9.77),
    ],
)
def test_time_to_seconds(value, expected):
    assert time_to_seconds(value) == pytest.approx(expected)


@pytest.mark.parametrize("value", ["", "DNF", "x:12.5", "1:xx:10", "::"])
def test_unparseable_time_is_zero(value):
    assert time_to_seconds(value) == 0.0


def test_date_ordinal_uses_360_day_calendar():
    # Not a real day count: 12 months of 30 days.
    assert date_ordinal("16.08.2009") == 2009 * 360 + 8 * 30 + 16


def test_date_ordinal_is_monotonic_within_a_year():
    assert date_ordinal("01.01.2009") < date_ordinal("31.01.2009") < date_ordinal("01.02.2009") < date_ordinal("16.08.2009")


@pytest.mark.parametrize("value", ["", "not-a-date", "16.08", "aa.bb.cccc"])
def test_malformed_dates_are_zero(value):
    assert date_ordinal(value) == 0


@pytest.mark.parametrize(
    "dob, expected",
    [
        ("21.08.86", "21.08.1986"),
        ("15.03.05", "15.03.2005"),
        ("01.01.30", "01.01.2030"),
        ("01.01.31", "01.01.1931"),
        ("21.08.1986", "21.08.1986"),
        ("", ""),
        ("1986", "1986"),
    ],
)
def test_resolve_birth_date(dob, expected):
    assert resolve_birth_date(dob) == expected


def test_age_is_approximate():
    # 360-day calendar; a real calendar gives 22 years and 360 days.
    age_value, age_years = compute_age("21.08.1986", "16.08.2009")

    assert age_value == 8275
    assert age_years == 22


def test_normalize_bolt(make_raw):
    rec = normalize(make_raw(), 0)

    assert rec.id == 0
    assert rec.rank == 1
    assert rec.time_seconds == pytest.approx(9.58)
    assert rec.wind == "+0.9"
    assert rec.birth_date == "21.08.1986"
    assert rec.date_value == date_ordinal("16.08.2009")
    assert rec.age_years == 22


def test_normalize_is_idempotent(make_raw):
    raw = make_raw(time="2:04:15.6", rank="17")

    assert normalize(raw, 3) == normalize(raw, 3)


def test_rank_fallback_uses_sequence_position(make_raw):
    rec = normalize(make_raw(rank=""), 4)

    assert rec.rank == 5
    assert rec.id == 4


@pytest.mark.parametrize("rank", ["0", "00", "abc"])
def test_zero_or_missing_rank_uses_sequence_position(make_raw, rank):
    assert normalize(make_raw(rank=rank), 2).rank == 3


def test_missing_dates_give_zero_values(make_raw):
    rec = normalize(make_raw(birth_date="", date=""), 0)

    assert rec.date_value == 0
    assert rec.age_value == 0
    assert rec.age_years == 0


def test_normalize_records_assigns_sequential_ids(make_raw):
    records = normalize_records([make_raw(rank="1"), make_raw(rank="x"), make_raw(rank="3")])

    assert [r.id for r in records] == [0, 1, 2]
    assert [r.rank for r in records] == [1, 2, 3]
