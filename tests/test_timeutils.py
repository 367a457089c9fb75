import pytest

from timeutils import TimeFormatError, format_time, overlaps, parse_time


@pytest.mark.parametrize(
    "value,expected",
    [("00:00", 0), ("09:30", 570), ("9:05", 545), ("12:00", 720), ("23:59", 1439)],
)
def test_parse_time(value, expected):
    assert parse_time(value) == expected


@pytest.mark.parametrize(
    "value",
    ["24:00", "12:60", "abc", "12", "12:5", "-1:00", "1:2:3", "", " 10:00", "10:00 ", "10:00\n", "１０:00", None, 930],
)
def test_parse_time_fails_closed(value):
    with pytest.raises(TimeFormatError):
        parse_time(value)


def test_time_format_error_is_value_error():
    with pytest.raises(ValueError):
        parse_time("99:99")


@pytest.mark.parametrize("minutes,expected", [(0, "00:00"), (545, "09:05"), (660, "11:00"), (1439, "23:59")])
def test_format_time(minutes, expected):
    assert format_time(minutes) == expected


@pytest.mark.parametrize("minutes", [-1, 1440, 1500, 2879])
def test_format_time_rejects_offsets_outside_one_day(minutes):
    """No wrap to the next day: 1440 is not "00:00"."""
    with pytest.raises(TimeFormatError):
        format_time(minutes)


def test_format_time_rejects_non_integers():
    with pytest.raises(TimeFormatError):
        format_time(60.5)
    with pytest.raises(TimeFormatError):
        format_time(True)


def test_parse_format_agree_on_every_minute():
    for minutes in range(0, 1440, 7):
        assert parse_time(format_time(minutes)) == minutes


def test_touching_intervals_do_not_overlap():
    assert overlaps(600, 660, 660, 690) is False
    assert overlaps(660, 690, 600, 660) is False


def test_overlapping_intervals():
    # 10:00-11:00 vs 10:59-11:30
    assert overlaps(600, 660, 659, 690) is True
    # contained
    assert overlaps(600, 660, 615, 645) is True
    # identical
    assert overlaps(600, 660, 600, 660) is True


def test_disjoint_intervals():
    assert overlaps(540, 599, 600, 660) is False
