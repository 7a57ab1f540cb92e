"""Legacy query-parameter parsing into a RequestIntent.

Parsing is total: malformed values fall back to defaults or are dropped.
Contract checks live in ``ParamsProcessor.validate`` and run before dispatch.

Consumed parameters:
    ac     action hint (list, videolist, detail, search, category)
    t      category id
    pg     page number
    wd     search keyword
    ids    video ids separated by , ; or whitespace (ASCII or full-width)
    limit  page size
    order  / by   sort order synonym
    area, year    filters
    h             relative window in hours (wins over start/end)
    start, end    absolute window bounds
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Mapping

from vodbridge.models import Action, Filters, Order, RequestIntent, TimeRange

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 20
MIN_LIMIT = 1
MAX_LIMIT = 100
MAX_KEYWORD_LENGTH = 100
MAX_VIDEO_IDS = 10
MIN_YEAR = 1900
MAX_HOURS = 8760  # one year

KEYWORD_REQUIRED = "Search keyword must not be empty"
VIDEO_IDS_REQUIRED = "At least one video ID is required"
PAGE_INVALID = "Page must be greater than 0"
LIMIT_INVALID = f"Limit must be between {MIN_LIMIT} and {MAX_LIMIT}"

_LEADING_INT = re.compile(r"^\s*([+-]?)(\d+)")
_MAX_INT_DIGITS = 18
_HTML_SPECIAL = re.compile(r"[<>\"'&]")
_WHITESPACE = re.compile(r"\s+")
_ID_SEPARATORS = re.compile(r"[,，;；\s]+")
_ALNUM = re.compile(r"[A-Za-z0-9]+")
_UNIX_SECONDS = re.compile(r"^\d{10}$")
_UNIX_MILLIS = re.compile(r"^\d{13}$")
_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%Y-%m-%d %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
)

_ORDER_SYNONYMS: dict[str, Order] = {
    "time": Order.LATEST,
    "addtime": Order.LATEST,
    "latest": Order.LATEST,
    "desc": Order.LATEST,
    "duration": Order.LONGEST,
    "long": Order.LONGEST,
    "longest": Order.LONGEST,
    "short": Order.SHORTEST,
    "shortest": Order.SHORTEST,
    "score": Order.TOP_RATED,
    "rate": Order.TOP_RATED,
    "rating": Order.TOP_RATED,
    "top": Order.TOP_RATED,
    "top-rated": Order.TOP_RATED,
    "hits": Order.MOST_VIEWED,
    "views": Order.MOST_VIEWED,
    "popular": Order.MOST_VIEWED,
    "most-viewed": Order.MOST_VIEWED,
}


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    error: str | None = None


def parse_int(value: str | None) -> int | None:
    """Leading-integer parse: "12abc" -> 12, "abc" -> None.

    Digit runs longer than 18 significant digits saturate at +/-10**18.
    """
    if value is None:
        return None
    match = _LEADING_INT.match(value)
    if not match:
        return None
    sign = -1 if match.group(1) == "-" else 1
    digits = match.group(2).lstrip("0") or "0"
    if len(digits) > _MAX_INT_DIGITS:
        return sign * 10**_MAX_INT_DIGITS
    return sign * int(digits)


def clean_text(value: str, max_length: int) -> str:
    """Strip HTML-special characters, collapse whitespace and truncate."""
    text = _HTML_SPECIAL.sub("", value.strip())
    text = _WHITESPACE.sub(" ", text).strip()
    return text[:max_length]


def split_tokens(value: str) -> list[str]:
    """Split on comma, semicolon or whitespace, ASCII or full-width."""
    return [token.strip() for token in _ID_SEPARATORS.split(value) if token.strip()]


def parse_date(value: str) -> datetime | None:
    """Parse a date, date-time, unix-seconds or unix-millis string as UTC."""
    text = value.strip()
    if not text:
        return None
    try:
        if _UNIX_SECONDS.match(text):
            return datetime.fromtimestamp(int(text), tz=timezone.utc)
        if _UNIX_MILLIS.match(text):
            return datetime.fromtimestamp(int(text) / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None

    parsed = None
    for fmt in _DATE_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
            break
        except ValueError:
            continue
    if parsed is None:
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ParamsProcessor:
    """Turns raw legacy query parameters into an immutable RequestIntent."""

    def __init__(self, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def process(self, raw: Mapping[str, str]) -> RequestIntent:
        """Parse raw parameters. Never raises."""
        return RequestIntent(
            action=self.determine_action(raw),
            page=self.parse_page(raw.get("pg")),
            limit=self.parse_limit(raw.get("limit")),
            keyword=self.parse_keyword(raw.get("wd")),
            category_id=parse_int(raw.get("t")),
            video_ids=self.parse_video_ids(raw.get("ids")),
            filters=self.parse_filters(raw),
        )

    @staticmethod
    def determine_action(raw: Mapping[str, str]) -> Action:
        """Resolve the action from explicit hints first, then from parameter presence."""
        ac = (raw.get("ac") or "").strip().lower()
        has_keyword = bool((raw.get("wd") or "").strip())
        has_ids = bool(raw.get("ids"))

        if ac == "category":
            return Action.CATEGORY
        if ac == "detail" or has_ids:
            return Action.DETAIL
        if ac == "search":
            return Action.SEARCH
        if ac in ("list", "videolist"):
            if has_keyword:
                return Action.SEARCH
            if (raw.get("t") or "").strip() == "0":
                return Action.CATEGORY
            return Action.LIST

        if has_keyword:
            return Action.SEARCH
        return Action.LIST

    @staticmethod
    def parse_page(value: str | None) -> int:
        page = parse_int(value)
        if page is None or page < 1:
            return DEFAULT_PAGE
        return page

    @staticmethod
    def parse_limit(value: str | None) -> int:
        limit = parse_int(value)
        if limit is None:
            return DEFAULT_LIMIT
        return max(MIN_LIMIT, min(MAX_LIMIT, limit))

    @staticmethod
    def parse_keyword(value: str | None) -> str | None:
        if not value or not value.strip():
            return None
        return clean_text(value, MAX_KEYWORD_LENGTH) or None

    @staticmethod
    def parse_video_ids(value: str | None) -> tuple[str, ...] | None:
        # Duplicates are kept; each id is looked up independently.
        if not value or not value.strip():
            return None
        ids = [token for token in split_tokens(value) if _ALNUM.fullmatch(token)]
        return tuple(ids[:MAX_VIDEO_IDS]) or None

    def parse_filters(self, raw: Mapping[str, str]) -> Filters:
        area = (raw.get("area") or "").strip() or None
        return Filters(
            area=area,
            year=self.parse_year(raw.get("year")),
            order=self.parse_order(raw.get("order"), raw.get("by")),
            time_range=self.parse_time_range(raw.get("start"), raw.get("end"), raw.get("h")),
        )

    def parse_year(self, value: str | None) -> str | None:
        year = parse_int(value)
        if year is None or not MIN_YEAR <= year <= self._clock().year:
            return None
        return str(year)

    @staticmethod
    def parse_order(order: str | None, by: str | None = None) -> Order:
        key = (order or by or "").strip().lower()
        return _ORDER_SYNONYMS.get(key, Order.LATEST)

    def parse_time_range(
        self, start: str | None, end: str | None, hours: str | None
    ) -> TimeRange | None:
        """A valid ``h`` always wins; otherwise start and end parse independently."""
        hours_value = parse_int(hours)
        if hours_value is not None and 0 < hours_value <= MAX_HOURS:
            now = self._clock()
            return TimeRange(start=now - timedelta(hours=hours_value), end=now)

        start_at = parse_date(start) if start else None
        end_at = parse_date(end) if end else None
        if start_at is None and end_at is None:
            return None
        return TimeRange(start=start_at, end=end_at)

    @staticmethod
    def validate(intent: RequestIntent) -> ValidationResult:
        """Check the action-level contract of an intent."""
        if intent.action == Action.SEARCH and not intent.keyword:
            return ValidationResult(False, KEYWORD_REQUIRED)
        if intent.action == Action.DETAIL and not intent.video_ids:
            return ValidationResult(False, VIDEO_IDS_REQUIRED)
        if intent.page < 1:
            return ValidationResult(False, PAGE_INVALID)
        if not MIN_LIMIT <= intent.limit <= MAX_LIMIT:
            return ValidationResult(False, LIMIT_INVALID)
        return ValidationResult(True)
