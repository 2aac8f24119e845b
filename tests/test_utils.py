"""Tests for shared utility functions and request-scoped logging."""

import logging

import pytest

from booking_core.config import LOG_FORMAT
from booking_core.logging_context import (
    RequestIdFilter,
    get_request_id,
    get_request_logger,
    request_context,
    set_request_id,
)
from booking_core.utils import (
    format_time,
    intervals_overlap,
    new_id,
    normalize_phone,
    parse_time,
    weekday_name,
)


class TestNormalizePhone:
    def test_strips_spaces(self):
        assert normalize_phone("0912 345 678") == "0912345678"

    def test_strips_dashes(self):
        assert normalize_phone("0912-345-678") == "0912345678"

    def test_preserves_leading_plus(self):
        assert normalize_phone("+251 91 234 5678") == "+251912345678"

    def test_strips_whitespace(self):
        assert normalize_phone("  0912345678  ") == "0912345678"

    def test_mixed_separators(self):
        assert normalize_phone("+251 (91) 234-5678") == "+251912345678"


class TestClockTimes:
    def test_parse_time(self):
        assert parse_time("14:45") == 14 * 60 + 45

    def test_parse_midnight_and_end_of_day(self):
        assert parse_time("00:00") == 0
        assert parse_time("24:00") == 1440

    @pytest.mark.parametrize("bad", ["9:00", "25:00", "12:60", "24:30", "noon", ""])
    def test_parse_time_rejects_malformed(self, bad):
        with pytest.raises(ValueError):
            parse_time(bad)

    def test_format_time_pads(self):
        assert format_time(9 * 60 + 5) == "09:05"

    def test_format_time_rejects_past_end_of_day(self):
        with pytest.raises(ValueError):
            format_time(1441)


class TestOverlap:
    def test_overlapping_intervals(self):
        assert intervals_overlap(870, 900, 840, 885)

    def test_back_to_back_is_not_overlap(self):
        assert not intervals_overlap(885, 915, 840, 885)
        assert not intervals_overlap(840, 885, 885, 915)

    def test_containment_overlaps(self):
        assert intervals_overlap(600, 700, 610, 620)


class TestDates:
    def test_weekday_name(self):
        assert weekday_name("2024-02-13") == "tuesday"
        assert weekday_name("2024-02-14") == "wednesday"

    def test_weekday_name_rejects_bad_date(self):
        with pytest.raises(ValueError):
            weekday_name("2024-02-30")

    def test_new_id_has_prefix(self):
        ref = new_id("BK")
        assert ref.startswith("BK-")
        assert len(ref) == 11


class TestRequestLogging:
    def test_request_id_attached_to_records(self, caplog):
        set_request_id("REQ-TRACE1")
        logger = get_request_logger("booking_core.tests")
        with caplog.at_level(logging.INFO, logger="booking_core.tests"):
            logger.info("tracing")
        assert caplog.records[-1].request_id == "REQ-TRACE1"
        assert get_request_id() == "REQ-TRACE1"

    def test_filter_added_once(self):
        logger = get_request_logger("booking_core.tests.once")
        get_request_logger("booking_core.tests.once")
        assert sum(isinstance(f, RequestIdFilter) for f in logger.filters) == 1

    def test_workflow_tags_request(self, workflow, customer):
        request = workflow.submit("TEN-1", "SVC-FLEX", "2024-02-13", "", customer).value
        assert get_request_id() == request.id

    def test_request_context_restores_previous_id(self):
        set_request_id("REQ-OUTER")
        with request_context("REQ-INNER"):
            assert get_request_id() == "REQ-INNER"
        assert get_request_id() == "REQ-OUTER"

    def test_log_format_prints_request_id(self):
        record = logging.LogRecord(
            "booking_core.any", logging.INFO, __file__, 1, "hello", None, None
        )
        with request_context("REQ-FMT"):
            RequestIdFilter().filter(record)
        line = logging.Formatter(LOG_FORMAT).format(record)
        assert "[REQ-FMT]: hello" in line
        assert "[booking_core.any] INFO" in line
