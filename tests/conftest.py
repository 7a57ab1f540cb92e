# tests/conftest.py
"""Shared fixtures for vodbridge tests."""

from datetime import datetime, timezone

import httpx
import pytest

from vodbridge.cache import CacheManager
from vodbridge.dispatcher import RequestDispatcher
from vodbridge.models import UpstreamVideo
from vodbridge.monitor import PerformanceMonitor
from vodbridge.provider import ProviderClient
from vodbridge.retry import RetryHandler
from vodbridge.transformer import Transformer

BASE_URL = "https://provider.test/api/v2/video"
FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_video(video_id: str = "abc123", **overrides) -> dict:
    """Provider-shaped video payload."""
    data = {
        "id": video_id,
        "title": "Space Documentary",
        "keywords": "space, documentary, stars",
        "views": 12345,
        "rate": 4.56,
        "url": f"https://provider.test/video-{video_id}/",
        "embed": f"https://provider.test/embed/{video_id}/",
        "added": "2024-03-05 10:20:30",
        "length_sec": 125,
        "default_thumb": {
            "src": f"https://img.test/{video_id}/default.jpg",
            "width": 640,
            "height": 360,
        },
        "thumbs": [
            {"src": f"https://img.test/{video_id}/1.jpg", "width": 320, "height": 180},
            {"src": f"https://img.test/{video_id}/2.jpg", "width": 640, "height": 360},
        ],
    }
    data.update(overrides)
    return data


def make_page(
    count: int,
    total_count: int | None = None,
    current_page: int = 1,
    total_pages: int = 0,
) -> dict:
    """Provider-shaped search page holding ``count`` videos."""
    return {
        "count": count,
        "start": 0,
        "per_page": count,
        "page": current_page,
        "current_page": current_page,
        "total_count": count if total_count is None else total_count,
        "total_pages": total_pages,
        "videos": [make_video(f"vid{i}", title=f"Video {i}") for i in range(count)],
    }


class FakeUpstream:
    """Scriptable stand-in for the provider API, mounted via httpx.MockTransport.

    Queued items may be dicts (200 JSON), ``httpx.Response`` objects or
    exceptions to raise. The last queued search item repeats once the
    queue is drained.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.search_responses: list = []
        self.videos: dict[str, dict] = {}
        self.id_responses: dict[str, object] = {}
        self.removed_response: object = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if path.endswith("/search/"):
            if not self.search_responses:
                return httpx.Response(200, json=make_page(0))
            if len(self.search_responses) > 1:
                return _respond(self.search_responses.pop(0))
            return _respond(self.search_responses[0])
        if path.endswith("/id/"):
            video_id = request.url.params["id"]
            if video_id in self.id_responses:
                return _respond(self.id_responses[video_id])
            # the provider answers unknown ids with an empty array
            return httpx.Response(200, json=self.videos.get(video_id, []))
        if path.endswith("/removed/"):
            return _respond(self.removed_response)
        return httpx.Response(404, json={"error": "no such endpoint"})

    def params_of(self, index: int = -1) -> dict[str, str]:
        return dict(self.requests[index].url.params)


def _respond(item) -> httpx.Response:
    if isinstance(item, Exception):
        raise item
    if isinstance(item, httpx.Response):
        return item
    return httpx.Response(200, json=item)


@pytest.fixture
def sample_video_data():
    return make_video()


@pytest.fixture
def sample_video(sample_video_data):
    return UpstreamVideo.model_validate(sample_video_data)


@pytest.fixture
def upstream():
    return FakeUpstream()


@pytest.fixture
def provider(upstream):
    """ProviderClient wired to the fake upstream."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(upstream))
    return ProviderClient(base_url=BASE_URL, timeout=5.0, client=client, max_per_page=60)


@pytest.fixture
def transformer():
    return Transformer(source_name="TestSource", clock=lambda: FIXED_NOW)


@pytest.fixture
def dispatcher(provider, transformer):
    """Fully wired RequestDispatcher with zero-delay retries."""
    return RequestDispatcher(
        provider=provider,
        transformer=transformer,
        cache=CacheManager(300),
        monitor=PerformanceMonitor(),
        search_retry=RetryHandler(max_attempts=3, base_delay=0),
        detail_retry=RetryHandler(max_attempts=2, base_delay=0),
        list_query="popular",
        category_queries={1: "european american", 2: "japanese"},
    )
