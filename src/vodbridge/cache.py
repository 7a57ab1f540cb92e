"""Response caching policy: per-category TTLs and HTTP cache headers.

Nothing is stored server-side; TTLs only reach clients and CDNs through
response headers.
"""

import base64
from typing import Mapping, MutableMapping
from urllib.parse import quote

from vodbridge.config import DEFAULT_CACHE_TIME

DEFAULT = "default"
SEARCH = "search"
DETAIL = "detail"
CATEGORY = "category"
ERROR = "error"

_TTL_TABLE = {
    SEARCH: 600,
    DETAIL: 1800,
    CATEGORY: 3600,
    ERROR: 60,
}

# Characters encodeURIComponent leaves alone
_URI_SAFE = "-_.!~*'()"


class CacheManager:
    """Computes TTLs, cache keys and cache-control headers.

    Args:
        default_ttl: TTL for the ``default`` category and for unknown
            categories; usually ``settings.get_cache_time()``.
    """

    def __init__(self, default_ttl: int | None = None) -> None:
        self._default_ttl = default_ttl or DEFAULT_CACHE_TIME

    def ttl_for(self, category: str) -> int:
        return _TTL_TABLE.get(category, self._default_ttl)

    @staticmethod
    def cache_key(prefix: str, params: Mapping[str, object]) -> str:
        """Deterministic key independent of parameter order.

        ``vod:<prefix>:<base64 of sorted k=urlencoded(v) pairs joined by &>``
        """
        joined = "&".join(
            f"{key}={quote(str(params[key]), safe=_URI_SAFE)}" for key in sorted(params)
        )
        encoded = base64.b64encode(joined.encode("utf-8")).decode("ascii")
        return f"vod:{prefix}:{encoded}"

    def headers_for(self, category: str, key: str | None = None) -> dict[str, str]:
        """Standard and CDN cache-control headers sharing one TTL."""
        ttl = self.ttl_for(category)
        headers = {
            "Cache-Control": f"public, max-age={ttl}, s-maxage={ttl}",
            "CDN-Cache-Control": f"public, s-maxage={ttl}",
            "Vercel-CDN-Cache-Control": f"public, s-maxage={ttl}",
            "X-Cache-Type": category,
            "X-Cache-TTL": str(ttl),
        }
        if key:
            headers["X-Cache-Key"] = key
        return headers

    def attach_cache_headers(
        self, response, category: str, key: str | None = None
    ) -> None:
        """Stamp cache headers onto any response exposing a ``headers`` mapping."""
        target: MutableMapping[str, str] = response.headers
        for name, value in self.headers_for(category, key).items():
            target[name] = value
