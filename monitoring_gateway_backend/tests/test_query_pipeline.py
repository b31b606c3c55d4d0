from __future__ import annotations

import copy
from datetime import datetime, timezone

import pytest

from src.api.services.query_pipeline import (
    filter_records,
    loose_equals,
    match_condition,
    paginate,
    parse_number,
    parse_timestamp,
    project_records,
    run_pipeline,
    sort_records,
)


def _names(records):
    return [r["name"] for r in records]


# --- value helpers -----------------------------------------------------------


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("2024-05-01", datetime(2024, 5, 1, tzinfo=timezone.utc)),
        ("2024-05-01T10:00:00Z", datetime(2024, 5, 1, 10, tzinfo=timezone.utc)),
        ("2024-05-01T10:00:00.123456789Z", datetime(2024, 5, 1, 10, 0, 0, 123456, tzinfo=timezone.utc)),
        ("2024-05-01T12:00:00+02:00", datetime(2024, 5, 1, 10, tzinfo=timezone.utc)),
    ],
)
def test_parse_timestamp_accepts_iso_forms(raw, expected):
    assert parse_timestamp(raw) == expected


@pytest.mark.parametrize("raw", ["5", "12.5", "abc", "", "2024-13-45", None, 1714557600, {"a": 1}])
def test_parse_timestamp_rejects_non_dates(raw):
    assert parse_timestamp(raw) is None


def test_parse_number():
    assert parse_number("5") == 5.0
    assert parse_number(" 2.5 ") == 2.5
    assert parse_number(7) == 7.0
    assert parse_number(True) == 1.0
    assert parse_number("abc") is None
    assert parse_number("nan") is None
    assert parse_number(None) is None
    assert parse_number([1]) is None


@pytest.mark.parametrize("raw", ["1_000", "inf", "-Infinity", "0x10", "5abc", "1e", "."])
def test_parse_number_rejects_non_decimal_text(raw):
    assert parse_number(raw) is None
    assert not match_condition(1000, raw)


def test_huge_ints_compare_exactly():
    big = 10**400
    assert parse_number(big) == big
    assert loose_equals(big, str(big))
    assert not loose_equals(big, "5")
    assert match_condition(big, "gte:5")
    assert not match_condition(big, "lt:1e300")
    assert match_condition(-big, "lt:-1e300")


def test_loose_equals_numbers_and_text():
    assert loose_equals(5, "5")
    assert loose_equals(5, "5.0")
    assert loose_equals(2.5, "2.5")
    assert not loose_equals(5, "6")
    assert not loose_equals(5, "five")
    assert loose_equals("abc", "abc")


def test_loose_equals_booleans_and_nested():
    assert loose_equals(True, "true")
    assert loose_equals(False, "FALSE")
    assert loose_equals(True, "1")
    assert not loose_equals(True, "false")
    assert not loose_equals({"a": 1}, "a")
    assert not loose_equals([1, 2], "1")


def test_match_condition_numeric_ranges():
    assert match_condition(8, "gte:8")
    assert not match_condition(8, "gt:8")
    assert match_condition(8, "lte:8")
    assert not match_condition(8, "lt:8")
    assert match_condition("8", "gt:7.5")


def test_match_condition_date_ranges():
    ts = "2024-05-01T10:00:00Z"
    assert match_condition(ts, "gte:2024-05-01")
    assert match_condition(ts, "lt:2024-05-02T00:00:00Z")
    assert not match_condition(ts, "gt:2024-05-01T10:00:00Z")


def test_match_condition_malformed_operand_is_false_not_error():
    assert not match_condition(8, "gte:abc")
    assert not match_condition("text", "gte:5")
    assert not match_condition({"nested": True}, "lt:3")
    # date operand against a number: no timestamp on the field side, no number on the operand side
    assert not match_condition(5, "gte:2024-01-01")


def test_match_condition_or_list():
    assert match_condition("critical", "warning, critical")
    assert match_condition("Critical", "CRIT,info")
    assert match_condition(3, "1,3")
    assert not match_condition("info", "warning,critical")


def test_match_condition_default_substring_and_equality():
    assert match_condition("CPU Usage", "cpu")
    assert match_condition("CPU Usage", "U US")
    assert not match_condition("CPU Usage", "memory")
    assert match_condition(5, "5")
    assert not match_condition(5, "50")


# --- filter ------------------------------------------------------------------


def test_filter_ignores_reserved_params(sample_records):
    out = filter_records(sample_records, {"page": "2", "limit": "1", "sort": "name", "fields": "name"})
    assert out == sample_records


def test_filter_case_insensitive_substring(sample_records):
    assert _names(filter_records(sample_records, {"name": "cpu"})) == ["CPU Usage", "CPU Load"]


def test_filter_and_across_keys(sample_records):
    out = filter_records(sample_records, {"severity": "critical", "name": "load"})
    assert _names(out) == ["CPU Load"]


def test_filter_absent_or_null_field_excludes_record(sample_records):
    records = sample_records + [{"name": "No severity"}, {"name": "Null severity", "severity": None}]
    out = filter_records(records, {"severity": "c"})
    assert _names(out) == ["CPU Usage", "CPU Load"]
    assert filter_records(records, {"unknown": "x"}) == []


def test_filter_repeated_key_combines_with_and(sample_records):
    out = filter_records(sample_records, {"duration": ["gte:5", "lte:10"]})
    assert _names(out) == ["CPU Usage"]


def test_filter_or_list_equals_union(sample_records):
    both = filter_records(sample_records, {"severity": "warning,critical"})
    a = filter_records(sample_records, {"severity": "warning"})
    b = filter_records(sample_records, {"severity": "critical"})
    assert _names(both) == [r["name"] for r in sample_records if r in a or r in b]


def test_filter_range_and_equals_intersection(sample_records):
    both = filter_records(sample_records, {"duration": ["gte:5", "lte:10"]})
    lo = filter_records(sample_records, {"duration": "gte:5"})
    hi = filter_records(sample_records, {"duration": "lte:10"})
    assert both == [r for r in lo if r in hi]


def test_filter_does_not_mutate_input(sample_records):
    before = copy.deepcopy(sample_records)
    filter_records(sample_records, {"severity": "critical"})
    assert sample_records == before


# --- sort --------------------------------------------------------------------


def test_sort_ascending_and_descending(sample_records):
    assert [r["duration"] for r in sort_records(sample_records, "duration")] == [3, 8, 12]
    assert [r["duration"] for r in sort_records(sample_records, "-duration")] == [12, 8, 3]


def test_sort_multi_key_mixed_directions(sample_records):
    out = sort_records(sample_records, "severity,-duration")
    assert _names(out) == ["CPU Load", "CPU Usage", "Memory Alert"]


def test_sort_is_stable_for_equal_keys():
    records = [{"k": 1, "i": i} for i in range(5)] + [{"k": 0, "i": 99}]
    out = sort_records(records, "k")
    assert [r["i"] for r in out] == [99, 0, 1, 2, 3, 4]
    out_desc = sort_records(records, "-k")
    assert [r["i"] for r in out_desc] == [0, 1, 2, 3, 4, 99]


def test_sort_missing_values_are_consistent():
    records = [{"n": "b", "v": 2}, {"n": "none"}, {"n": "a", "v": 1}, {"n": "null", "v": None}]
    assert [r["n"] for r in sort_records(records, "v")] == ["none", "null", "a", "b"]
    assert [r["n"] for r in sort_records(records, "-v")] == ["b", "a", "none", "null"]


def test_sort_mixed_types_does_not_raise():
    records = [{"v": "x"}, {"v": 2}, {"v": {"a": 1}}, {"v": 1}]
    assert [r["v"] for r in sort_records(records, "v")] == [1, 2, "x", {"a": 1}]


def test_sort_huge_ints_and_nan():
    records = [{"v": 10**400}, {"v": float("nan")}, {"v": 1}, {"v": "x"}, {"v": -(10**400)}, {"v": 0}]
    out = [r["v"] for r in sort_records(records, "v")]
    assert out[:4] == [-(10**400), 0, 1, 10**400]
    assert out[4] != out[4]
    assert out[5] == "x"


def test_sort_absent_or_blank_is_noop(sample_records):
    assert sort_records(sample_records, None) == sample_records
    assert sort_records(sample_records, " , ") == sample_records
    assert sort_records(sample_records, "-") == sample_records


# --- projection ----------------------------------------------------------------


def test_projection_keeps_only_existing_requested_fields():
    out = project_records([{"name": "X", "severity": "critical", "duration": 8}], "name,severity,missing")
    assert out == [{"name": "X", "severity": "critical"}]


def test_projection_is_idempotent(sample_records):
    once = project_records(sample_records, "name,duration")
    assert project_records(once, "name,duration") == once


def test_projection_absent_is_noop(sample_records):
    assert project_records(sample_records, None) == sample_records
    assert project_records(sample_records, "") == sample_records


# --- pagination ----------------------------------------------------------------


def test_paginate_defaults():
    records = [{"i": i} for i in range(150)]
    page, meta = paginate(records)
    assert len(page) == 100
    assert (meta.page, meta.limit, meta.total, meta.total_pages) == (1, 100, 150, 2)
    assert meta.has_next_page is True
    assert meta.has_prev_page is False


@pytest.mark.parametrize("page,limit", [("0", "0"), ("-3", "-1"), ("abc", "xyz"), ("", None)])
def test_paginate_invalid_values_fall_back(page, limit):
    _, meta = paginate([{"i": 1}], page, limit)
    assert meta.page >= 1
    assert meta.limit >= 1


def test_paginate_negative_values_clamp_to_one():
    _, meta = paginate([{"i": 1}], "-3", "-1")
    assert (meta.page, meta.limit) == (1, 1)


def test_paginate_middle_and_last_page():
    records = [{"i": i} for i in range(7)]
    page, meta = paginate(records, "2", "3")
    assert [r["i"] for r in page] == [3, 4, 5]
    assert meta.has_next_page and meta.has_prev_page

    page, meta = paginate(records, "3", "3")
    assert [r["i"] for r in page] == [6]
    assert meta.total_pages == 3
    assert meta.has_next_page is False


def test_paginate_beyond_last_page_is_empty():
    page, meta = paginate([{"i": i} for i in range(4)], "5", "2")
    assert page == []
    assert meta.total == 4
    assert meta.has_next_page is False
    assert meta.has_prev_page is True


def test_paginate_empty_input():
    page, meta = paginate([], "1", "10")
    assert page == []
    assert (meta.total, meta.total_pages, meta.has_next_page) == (0, 0, False)


# --- full pipeline ---------------------------------------------------------------


def test_pipeline_example_scenario(sample_records):
    query = {"severity": "critical", "duration": ["gte:5", "lte:10"], "sort": "-duration", "limit": "10", "page": "1"}
    page, meta = run_pipeline(sample_records, query)
    assert page == [{"name": "CPU Usage", "severity": "critical", "duration": 8}]
    assert meta.total == 1


def test_pipeline_total_is_filtered_count_independent_of_pagination(sample_records):
    for limit in ("1", "2", "50"):
        for page_n in ("1", "2", "9"):
            _, meta = run_pipeline(sample_records, {"severity": "critical", "limit": limit, "page": page_n})
            assert meta.total == 2


def test_pipeline_projection_after_sort(sample_records):
    page, _ = run_pipeline(sample_records, {"sort": "duration", "fields": "name"})
    assert page == [{"name": "Memory Alert"}, {"name": "CPU Usage"}, {"name": "CPU Load"}]


def test_pipeline_repeated_reserved_param_uses_last_value(sample_records):
    page, meta = run_pipeline(sample_records, {"limit": ["1", "2"]})
    assert meta.limit == 2
    assert len(page) == 2


def test_pipeline_leaves_input_untouched(sample_records):
    before = copy.deepcopy(sample_records)
    run_pipeline(sample_records, {"sort": "-duration", "fields": "name", "limit": "1"})
    assert sample_records == before


def test_page_metadata_serializes_with_camel_case(sample_records):
    _, meta = run_pipeline(sample_records, {"limit": "2"})
    assert meta.model_dump(by_alias=True) == {
        "page": 1,
        "limit": 2,
        "total": 3,
        "totalPages": 2,
        "hasNextPage": True,
        "hasPrevPage": False,
    }
