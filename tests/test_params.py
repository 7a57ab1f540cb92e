# tests/test_params.py
"""Tests for legacy query-parameter parsing and validation."""

from datetime import datetime, timedelta, timezone

import pytest

from vodbridge.models import Action, Order, RequestIntent
from vodbridge.params import (
    KEYWORD_REQUIRED,
    LIMIT_INVALID,
    PAGE_INVALID,
    VIDEO_IDS_REQUIRED,
    ParamsProcessor,
    clean_text,
    parse_date,
    parse_int,
    split_tokens,
)

NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def processor():
    return ParamsProcessor(clock=lambda: NOW)


class TestHelpers:
    def test_parse_int_leading_digits(self):
        assert parse_int("12abc") == 12
        assert parse_int(" 7") == 7
        assert parse_int("-3") == -3

    def test_parse_int_huge_saturates(self):
        assert parse_int("9" * 5000) == 10**18
        assert parse_int("-" + "9" * 5000) == -(10**18)
        assert parse_int("0" * 5000 + "42") == 42

    def test_parse_int_garbage(self):
        assert parse_int("abc") is None
        assert parse_int(None) is None
        assert parse_int("") is None

    def test_clean_text(self):
        assert clean_text("  Tom & Jerry  ", 100) == "Tom Jerry"
        assert clean_text("<b>x</b>", 100) == "bx/b"
        assert clean_text("a" * 150, 100) == "a" * 100

    def test_split_tokens_full_width(self):
        assert split_tokens("a1, b2；c3 d4，e5;f6") == ["a1", "b2", "c3", "d4", "e5", "f6"]

    def test_parse_date_formats(self):
        expected = datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert parse_date("2024-01-01") == expected
        assert parse_date("2024/01/01") == expected
        assert parse_date("1704067200") == expected
        assert parse_date("1704067200000") == expected
        assert parse_date("2024-01-01T00:00:00Z") == expected

    def test_parse_date_invalid(self):
        assert parse_date("garbage") is None
        assert parse_date("") is None


class TestDetermineAction:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ({}, Action.LIST),
            ({"wd": "space"}, Action.SEARCH),
            ({"ids": "abc"}, Action.DETAIL),
            ({"ac": "detail"}, Action.DETAIL),
            ({"ac": "search"}, Action.SEARCH),
            ({"ac": "category"}, Action.CATEGORY),
            ({"ac": "category", "wd": "space"}, Action.CATEGORY),
            ({"ac": "list", "t": "0"}, Action.CATEGORY),
            ({"ac": "list", "t": "1"}, Action.LIST),
            ({"ac": "videolist", "wd": "space"}, Action.SEARCH),
            ({"ac": "list", "wd": "   "}, Action.LIST),
            ({"ac": "bogus"}, Action.LIST),
        ],
    )
    def test_action(self, raw, expected):
        assert ParamsProcessor.determine_action(raw) == expected


class TestPaging:
    @pytest.mark.parametrize("value, expected", [(None, 1), ("abc", 1), ("0", 1), ("-3", 1), ("5", 5), ("3x", 3)])
    def test_page(self, value, expected):
        assert ParamsProcessor.parse_page(value) == expected

    @pytest.mark.parametrize("value, expected", [(None, 20), ("abc", 20), ("0", 1), ("500", 100), ("50", 50)])
    def test_limit(self, value, expected):
        assert ParamsProcessor.parse_limit(value) == expected


class TestKeywordAndIds:
    def test_keyword_cleaned(self):
        assert ParamsProcessor.parse_keyword("  space   shuttle ") == "space shuttle"

    def test_keyword_empty(self):
        assert ParamsProcessor.parse_keyword("   ") is None
        assert ParamsProcessor.parse_keyword("<>") is None
        assert ParamsProcessor.parse_keyword(None) is None

    def test_keyword_truncated(self):
        assert len(ParamsProcessor.parse_keyword("k" * 150)) == 100

    def test_ids_split(self):
        assert ParamsProcessor.parse_video_ids("a1, b2；c3 d4") == ("a1", "b2", "c3", "d4")

    def test_ids_drop_non_alphanumeric(self):
        assert ParamsProcessor.parse_video_ids("bad!,ok1") == ("ok1",)
        assert ParamsProcessor.parse_video_ids("!!!") is None

    def test_ids_capped(self):
        raw = ",".join(f"id{i}" for i in range(15))
        ids = ParamsProcessor.parse_video_ids(raw)
        assert len(ids) == 10
        assert ids[0] == "id0"

    def test_ids_duplicates_kept(self):
        assert ParamsProcessor.parse_video_ids("a,a") == ("a", "a")


class TestFilters:
    def test_order_synonyms(self):
        assert ParamsProcessor.parse_order("hits") == Order.MOST_VIEWED
        assert ParamsProcessor.parse_order(None, "score") == Order.TOP_RATED
        assert ParamsProcessor.parse_order("duration", "score") == Order.LONGEST
        assert ParamsProcessor.parse_order("whatever") == Order.LATEST

    def test_year(self, processor):
        assert processor.parse_year("2020") == "2020"
        assert processor.parse_year("1800") is None
        assert processor.parse_year("2030") is None
        assert processor.parse_year("abc") is None

    def test_hours_window(self, processor):
        window = processor.parse_time_range(None, None, "24")
        assert window.end == NOW
        assert window.start == NOW - timedelta(hours=24)

    def test_hours_win_over_start(self, processor):
        window = processor.parse_time_range("2020-01-01", None, "2")
        assert window.start == NOW - timedelta(hours=2)

    def test_invalid_hours_fall_through(self, processor):
        window = processor.parse_time_range("2024-01-01", None, "0")
        assert window.start == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert window.end is None

    def test_no_window(self, processor):
        assert processor.parse_time_range(None, None, None) is None
        assert processor.parse_time_range("garbage", "junk", "99999") is None


class TestProcess:
    def test_full_search(self, processor):
        intent = processor.process({"ac": "search", "wd": "space", "pg": "2", "limit": "10", "order": "hits"})
        assert intent.action == Action.SEARCH
        assert intent.keyword == "space"
        assert intent.page == 2
        assert intent.limit == 10
        assert intent.filters.order == Order.MOST_VIEWED

    def test_huge_numbers_stay_in_bounds(self, processor):
        intent = processor.process({"limit": "9" * 5000, "pg": "9" * 5000, "t": "9" * 5000})
        assert intent.limit == 100
        assert intent.page >= 1
        assert processor.validate(intent).valid

    def test_huge_filter_numbers_ignored(self, processor):
        intent = processor.process({"year": "9" * 5000, "h": "9" * 5000})
        assert intent.filters.year is None
        assert intent.filters.time_range is None

    def test_category_id(self, processor):
        assert processor.process({"t": "2"}).category_id == 2
        assert processor.process({"t": "x"}).category_id is None

    def test_never_raises_on_garbage(self, processor):
        intent = processor.process(
            {"pg": "x", "limit": "y", "ids": "!!", "year": "zz", "h": "q", "start": "?", "t": "?"}
        )
        assert intent.action == Action.DETAIL
        assert intent.video_ids is None
        assert intent.page == 1
        assert intent.limit == 20


class TestValidate:
    def test_search_requires_keyword(self, processor):
        result = processor.validate(processor.process({"ac": "search"}))
        assert not result.valid
        assert result.error == KEYWORD_REQUIRED

    def test_detail_requires_ids(self, processor):
        result = processor.validate(processor.process({"ac": "detail"}))
        assert not result.valid
        assert result.error == VIDEO_IDS_REQUIRED

    def test_messages_name_the_missing_input(self):
        assert "keyword" in KEYWORD_REQUIRED
        assert "video ID" in VIDEO_IDS_REQUIRED

    def test_page_bounds(self):
        result = ParamsProcessor.validate(RequestIntent(action=Action.LIST, page=0))
        assert result.error == PAGE_INVALID

    def test_limit_bounds(self):
        result = ParamsProcessor.validate(RequestIntent(action=Action.LIST, limit=101))
        assert result.error == LIMIT_INVALID

    def test_valid_list(self, processor):
        result = processor.validate(processor.process({}))
        assert result.valid
        assert result.error is None
