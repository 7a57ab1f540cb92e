"""Domain models for vodbridge.

Three families live here: the upstream provider's video shape, the parsed
request intent, and the fixed legacy CMS wire schema.
"""

import time
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

# --- upstream provider -----------------------------------------------------


class _UpstreamModel(BaseModel):
    """Provider payload model tolerant of nulls.

    An explicit null in an optional field means "use the default"; null
    entries inside lists are dropped.
    """

    @field_validator("*", mode="before")
    @classmethod
    def _null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            field = cls.model_fields[info.field_name]
            if not field.is_required():
                return field.get_default(call_default_factory=True)
        if isinstance(value, list):
            return [item for item in value if item is not None]
        return value


class Thumbnail(_UpstreamModel):
    """One entry of the provider's thumbnail set."""

    src: str = ""
    width: int = 0
    height: int = 0

    @property
    def area(self) -> int:
        return self.width * self.height


class UpstreamVideo(_UpstreamModel):
    """A video record as returned by the upstream provider."""

    id: str
    title: str = ""
    keywords: str = ""
    views: int | None = None
    rate: float | None = None
    url: str = ""
    embed: str = ""
    added: str = ""  # provider timestamp, e.g. "2024-01-01 12:00:00"
    length_sec: int = 0
    default_thumb: Thumbnail | None = None
    thumbs: list[Thumbnail] = Field(default_factory=list)


class UpstreamPage(_UpstreamModel):
    """One page of provider search results."""

    total_count: int = 0
    current_page: int = 0
    total_pages: int = 0
    videos: list[UpstreamVideo] = Field(default_factory=list)


class RemovedVideo(_UpstreamModel):
    """An id the provider reports as deleted."""

    id: str
    deleted: str = ""


# --- request intent --------------------------------------------------------


class Action(str, Enum):
    LIST = "list"
    DETAIL = "detail"
    SEARCH = "search"
    CATEGORY = "category"


class Order(str, Enum):
    LATEST = "latest"
    LONGEST = "longest"
    SHORTEST = "shortest"
    TOP_RATED = "top-rated"
    MOST_VIEWED = "most-viewed"


class TimeRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: datetime | None = None
    end: datetime | None = None


class Filters(BaseModel):
    model_config = ConfigDict(frozen=True)

    area: str | None = None
    year: str | None = None
    order: Order = Order.LATEST
    time_range: TimeRange | None = None


class RequestIntent(BaseModel):
    """Validated, structured form of one inbound legacy query."""

    model_config = ConfigDict(frozen=True)

    action: Action
    page: int = 1
    limit: int = 20
    keyword: str | None = None
    category_id: int | None = None
    video_ids: tuple[str, ...] | None = None
    filters: Filters = Field(default_factory=Filters)

    def cache_params(self) -> dict[str, str]:
        """Flat, normalised parameters identifying this request semantically."""
        params = {
            "action": self.action.value,
            "page": str(self.page),
            "limit": str(self.limit),
            "order": self.filters.order.value,
        }
        if self.keyword:
            params["keyword"] = self.keyword
        if self.category_id is not None:
            params["category"] = str(self.category_id)
        if self.video_ids:
            params["ids"] = ",".join(self.video_ids)
        if self.filters.area:
            params["area"] = self.filters.area
        if self.filters.year:
            params["year"] = self.filters.year
        time_range = self.filters.time_range
        if time_range and time_range.start:
            params["start"] = str(int(time_range.start.timestamp()))
        if time_range and time_range.end:
            params["end"] = str(int(time_range.end.timestamp()))
        return params


# --- legacy CMS wire schema ------------------------------------------------


class LegacyRecord(BaseModel):
    """Fixed-schema video record of the legacy CMS protocol.

    Every field always carries a value; constant placeholders are the
    defaults below and only derived fields are set by the transformer.
    """

    model_config = ConfigDict(frozen=True)

    vod_id: int
    vod_name: str
    vod_sub: str = ""
    vod_en: str = ""
    vod_status: int = 1
    vod_letter: str = "#"
    vod_color: str = ""
    vod_tag: str = ""
    vod_class: str = ""
    vod_pic: str = ""
    vod_pic_thumb: str = ""
    vod_pic_slide: str = ""
    vod_pic_screenshot: str = ""
    vod_actor: str = "未知"
    vod_director: str = "未知"
    vod_writer: str = ""
    vod_behind: str = ""
    vod_blurb: str = ""
    vod_remarks: str = ""
    vod_pubdate: str = ""
    vod_total: int = 1
    vod_serial: str = "1"
    vod_tv: str = ""
    vod_weekday: str = ""
    vod_area: str = "欧美"
    vod_lang: str = "英语"
    vod_year: str = ""
    vod_version: str = ""
    vod_state: str = "完结"
    vod_author: str = ""
    vod_jumpurl: str = ""
    vod_tpl: str = ""
    vod_tpl_play: str = ""
    vod_tpl_down: str = ""
    vod_isend: int = 1
    vod_lock: int = 0
    vod_level: int = 0
    vod_copyright: int = 0
    vod_points: int = 0
    vod_points_play: int = 0
    vod_points_down: int = 0
    vod_hits: int = 0
    vod_hits_day: int = 0
    vod_hits_week: int = 0
    vod_hits_month: int = 0
    vod_duration: str = ""
    vod_up: int = 0
    vod_down: int = 0
    vod_score: str = "0.0"
    vod_score_all: int = 0
    vod_score_num: int = 1
    vod_time: str = ""
    vod_time_add: str = ""
    vod_time_hits: str = ""
    vod_time_make: str = ""
    vod_trysee: int = 0
    vod_douban_id: int = 0
    vod_douban_score: str = ""
    vod_reurl: str = ""
    vod_rel_vod: str = ""
    vod_rel_art: str = ""
    vod_pwd: str = ""
    vod_pwd_url: str = ""
    vod_pwd_play: str = ""
    vod_pwd_play_url: str = ""
    vod_pwd_down: str = ""
    vod_pwd_down_url: str = ""
    vod_content: str = ""
    vod_play_from: str = ""
    vod_play_server: str = "no"
    vod_play_note: str = ""
    vod_play_url: str = ""
    vod_down_from: str = ""
    vod_down_server: str = ""
    vod_down_note: str = ""
    vod_down_url: str = ""
    vod_plot: int = 0
    vod_plot_name: str = ""
    vod_plot_detail: str = ""
    type_id: int = 3
    type_name: str = "伦理片"
    group_id: int = 0


class LegacyCategory(BaseModel):
    model_config = ConfigDict(frozen=True)

    type_id: int
    type_name: str
    type_en: str
    type_sort: int
    type_mid: int = 1
    type_pid: int = 0
    type_status: int = 1


class ErrorKind(str, Enum):
    """Failure taxonomy; values are the wire ``error.type`` strings."""

    VALIDATION = "VALIDATION_ERROR"
    UPSTREAM = "API_ERROR"
    NETWORK = "NETWORK_ERROR"
    RATE_LIMITED = "RATE_LIMIT_ERROR"
    TIMEOUT = "TIMEOUT_ERROR"
    UNKNOWN = "UNKNOWN_ERROR"


def _now_ms() -> int:
    return int(time.time() * 1000)


class ErrorDetail(BaseModel):
    """A classified failure, created at the point of failure."""

    kind: ErrorKind
    message: str
    details: Any | None = None
    timestamp: int = Field(default_factory=_now_ms)  # epoch millis


class ErrorInfo(BaseModel):
    type: ErrorKind
    timestamp: int
    details: Any | None = None


class LegacyResponse(BaseModel):
    """Envelope shared by success and error responses."""

    model_config = ConfigDict(populate_by_name=True)

    code: int = 1
    msg: str = "数据列表"
    page: int = 1
    pagecount: int = 0
    limit: int = 0
    total: int = 0
    records: list[LegacyRecord] = Field(default_factory=list, alias="list")
    categories: list[LegacyCategory] | None = Field(default=None, alias="class")
    error: ErrorInfo | None = None

    def to_wire(self) -> dict:
        """JSON-ready dict using the protocol's field names."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)
