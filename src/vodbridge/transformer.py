"""Mapping from upstream provider videos onto the legacy CMS record schema."""

import html
import math
import re
from datetime import datetime, timezone
from typing import Callable, Sequence

from vodbridge.config import settings
from vodbridge.models import (
    LegacyCategory,
    LegacyRecord,
    LegacyResponse,
    UpstreamPage,
    UpstreamVideo,
)
from vodbridge.params import clean_text, parse_date, split_tokens

SUCCESS_MSG = "数据列表"
EMPTY_MSG = "暂无数据"
UNKNOWN_PLACEHOLDER = "未知"
EPISODE_LABEL = "第1集"
SCREENSHOT_SEPARATOR = "||"

MAX_TITLE_LENGTH = 100
MAX_TAGS = 10
MAX_SCREENSHOTS = 5

_NON_SLUG = re.compile(r"[^a-z0-9\s]")
_SPACES = re.compile(r"\s+")

_CATEGORIES = (
    LegacyCategory(
        type_id=3,
        type_name="伦理片",
        type_en="ethics",
        type_sort=3,
        type_mid=1,
        type_pid=0,
        type_status=1,
    ),
)


def clean_title(title: str) -> str:
    return clean_text(title or "", MAX_TITLE_LENGTH)


def first_letter(title: str) -> str:
    """Uppercase first character when it is A-Z, else ``#``."""
    char = title[:1].upper()[:1]
    return char if "A" <= char <= "Z" else "#"


def english_slug(title: str) -> str:
    """``"Hello, World 2"`` -> ``"hello-world-2"``."""
    text = _NON_SLUG.sub("", title.lower()).strip()
    return _SPACES.sub("-", text)


def format_tags(keywords: str) -> str:
    if not keywords:
        return ""
    return ",".join(split_tokens(keywords)[:MAX_TAGS])


def format_duration(seconds: int | None) -> str:
    """``H:MM:SS`` from one hour up, ``M:SS`` below, placeholder when unknown."""
    if not seconds or seconds <= 0:
        return UNKNOWN_PLACEHOLDER
    seconds = int(seconds)
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def pick_thumbnail(video: UpstreamVideo) -> str:
    """Designated default thumbnail, else the largest by area, else empty."""
    if video.default_thumb and video.default_thumb.src:
        return video.default_thumb.src
    if video.thumbs:
        return max(video.thumbs, key=lambda thumb: thumb.area).src
    return ""


def screenshots(video: UpstreamVideo) -> str:
    urls: list[str] = []
    if video.default_thumb and video.default_thumb.src:
        urls.append(video.default_thumb.src)
    for thumb in video.thumbs:
        if thumb.src and thumb.src not in urls:
            urls.append(thumb.src)
    return SCREENSHOT_SEPARATOR.join(urls[:MAX_SCREENSHOTS])


def play_url(video: UpstreamVideo) -> str:
    return f"{EPISODE_LABEL}${video.embed or video.url or ''}"


class Transformer:
    """Builds legacy records and envelopes from provider data.

    Records are created fresh per upstream video and never mutated.
    """

    def __init__(
        self,
        source_name: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._source = source_name or settings.provider_name
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def to_legacy_record(self, video: UpstreamVideo, vod_id: int) -> LegacyRecord:
        """Map one upstream video onto the fixed legacy schema."""
        now = self._clock()
        current_time = now.strftime("%Y-%m-%d %H:%M:%S")
        added_at = parse_date(video.added) if video.added else None
        added_date = (added_at or now).strftime("%Y-%m-%d")
        added_time = (added_at or now).strftime("%Y-%m-%d %H:%M:%S")
        year = (added_at or now).year

        title = clean_title(video.title)
        duration = format_duration(video.length_sec)
        thumbnail = pick_thumbnail(video)
        rate = video.rate or 0.0

        return LegacyRecord(
            vod_id=vod_id,
            vod_name=title,
            vod_en=english_slug(title),
            vod_letter=first_letter(title),
            vod_tag=format_tags(video.keywords),
            vod_pic=thumbnail,
            vod_pic_thumb=thumbnail,
            vod_pic_slide=thumbnail,
            vod_pic_screenshot=screenshots(video),
            vod_blurb=title,
            vod_remarks=f"时长:{duration}",
            vod_pubdate=added_date,
            vod_year=str(year),
            vod_author=self._source,
            vod_hits=video.views or 0,
            vod_duration=duration,
            vod_up=math.floor(rate * 10),
            vod_score=f"{rate:.1f}",
            vod_score_all=math.floor(rate * 10),
            vod_time=current_time,
            vod_time_add=added_time,
            vod_time_hits=current_time,
            vod_time_make=current_time,
            vod_content=self._content(video, duration, added_date),
            vod_play_from=self._source,
            vod_play_url=play_url(video),
        )

    def to_legacy_page(self, upstream: UpstreamPage, page: int, limit: int) -> LegacyResponse:
        """Map a provider result page; ids run ``(page-1)*limit + index + 1``."""
        videos = upstream.videos[:limit]
        offset = (page - 1) * limit
        records = [
            self.to_legacy_record(video, offset + index + 1)
            for index, video in enumerate(videos)
        ]
        total = upstream.total_count or len(videos)
        pagecount = upstream.total_pages or math.ceil(total / limit)
        return LegacyResponse(
            code=1,
            msg=SUCCESS_MSG,
            page=upstream.current_page or page,
            pagecount=pagecount,
            limit=limit,
            total=total,
            records=records,
        )

    @staticmethod
    def to_detail_page(records: Sequence[LegacyRecord]) -> LegacyResponse:
        return LegacyResponse(
            code=1,
            msg=SUCCESS_MSG,
            page=1,
            pagecount=1,
            limit=len(records),
            total=len(records),
            records=list(records),
        )

    @staticmethod
    def static_categories() -> list[LegacyCategory]:
        return list(_CATEGORIES)

    def category_page(self) -> LegacyResponse:
        categories = self.static_categories()
        return LegacyResponse(
            code=1,
            msg=SUCCESS_MSG,
            page=1,
            pagecount=1,
            limit=len(categories),
            total=len(categories),
            records=[],
            categories=categories,
        )

    @staticmethod
    def empty_page(msg: str = EMPTY_MSG, limit: int = 20) -> LegacyResponse:
        return LegacyResponse(code=1, msg=msg, page=1, pagecount=0, limit=limit, total=0)

    @staticmethod
    def detail_vod_id(upstream_id: str) -> int:
        """Numeric record id for a single lookup: the upstream id read as base 36.

        Placeholder mapping; falls back to 1 when the id does not parse.
        """
        try:
            return int(upstream_id.strip(), 36) or 1
        except ValueError:
            return 1

    def _content(self, video: UpstreamVideo, duration: str, added_date: str) -> str:
        """HTML description fragment; upstream text is escaped."""
        views = f"{video.views:,}" if video.views is not None else UNKNOWN_PLACEHOLDER
        parts = [f"<p><strong>视频标题：</strong>{html.escape(video.title)}</p>"]
        if video.keywords:
            parts.append(f"<p><strong>关键词：</strong>{html.escape(video.keywords)}</p>")
        parts.append(f"<p><strong>时长：</strong>{duration}</p>")
        parts.append(f"<p><strong>观看次数：</strong>{views}</p>")
        if video.rate:
            parts.append(f"<p><strong>评分：</strong>{video.rate:.1f}/10</p>")
        parts.append(f"<p><strong>添加时间：</strong>{added_date}</p>")
        parts.append(f"<p><strong>来源：</strong>{html.escape(self._source)}</p>")
        return "\n".join(parts)
