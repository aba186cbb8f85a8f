from datetime import datetime, timedelta, timezone

from maps_reviews.pipeline.relative_time import normalize_relative_time, parse_relative_time

REFERENCE = datetime(2024, 3, 31, 12, 0, tzinfo=timezone.utc)


def test_months_ago_is_before_weeks_ago() -> None:
    assert normalize_relative_time("2 months ago", REFERENCE) < normalize_relative_time("2 weeks ago", REFERENCE)


def test_article_week_equals_seven_days() -> None:
    assert normalize_relative_time("a week ago", REFERENCE) == normalize_relative_time("7 days ago", REFERENCE)
    assert normalize_relative_time("a week ago", REFERENCE) == REFERENCE - timedelta(days=7)


def test_unparseable_text_falls_back_to_reference() -> None:
    assert normalize_relative_time("", REFERENCE) == REFERENCE
    assert normalize_relative_time(None, REFERENCE) == REFERENCE
    assert normalize_relative_time("gibberish", REFERENCE) == REFERENCE


def test_month_subtraction_is_calendar_aware() -> None:
    assert normalize_relative_time("1 month ago", REFERENCE) == datetime(2024, 2, 29, 12, 0, tzinfo=timezone.utc)
    assert normalize_relative_time("a year ago", REFERENCE) == datetime(2023, 3, 31, 12, 0, tzinfo=timezone.utc)


def test_fixed_units() -> None:
    assert normalize_relative_time("an hour ago", REFERENCE) == REFERENCE - timedelta(hours=1)
    assert normalize_relative_time("45 minutes ago", REFERENCE) == REFERENCE - timedelta(minutes=45)
    assert normalize_relative_time("30 seconds ago", REFERENCE) == REFERENCE - timedelta(seconds=30)
    assert normalize_relative_time("3 days ago", REFERENCE) == REFERENCE - timedelta(days=3)


def test_parse_handles_prefixes_and_case() -> None:
    assert parse_relative_time("Edited 3 Years ago") == (3, "year")
    assert parse_relative_time("  2   months ago ") == (2, "month")
    assert parse_relative_time("A day ago") == (1, "day")
    assert parse_relative_time("yesterday") is None


def test_out_of_range_amounts_fall_back_to_reference() -> None:
    assert normalize_relative_time("9999 years ago", REFERENCE) == REFERENCE
    assert normalize_relative_time("1000000 days ago", REFERENCE) == REFERENCE
    assert normalize_relative_time("99999999999999999999 weeks ago", REFERENCE) == REFERENCE


def test_zero_amount_is_not_a_relative_time() -> None:
    assert parse_relative_time("0 days ago") is None
    assert parse_relative_time("10 days ago") == (10, "day")
