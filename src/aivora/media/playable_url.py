"""Turn social-media page URLs into directly downloadable media URLs."""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Protocol

import httpx

logger = logging.getLogger(__name__)

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}

TIKTOK_POST_RE = re.compile(r"^https?://(www\.|vm\.|vt\.)?tiktok\.com/", re.IGNORECASE)

VIDEO_URL_PATTERNS = (
    re.compile(r'"playAddr":"([^"]+)"'),
    re.compile(r'"downloadAddr":"([^"]+)"'),
    re.compile(r'<video[^>]*src="([^"]+)"'),
    re.compile(r'contentUrl="([^"]+)"'),
)

NEXT_DATA_RE = re.compile(
    r'<script id="__NEXT_DATA__" type="application/json">(.*?)</script>', re.DOTALL
)


class PlayableUrlError(Exception):
    """Raised when a page URL cannot be turned into a media URL."""


class PlayableUrlResolver(Protocol):
    async def resolve(self, url: str, *, page_url: str | None = None) -> str:
        """Return a URL the provider can download directly."""


def is_tiktok_post_url(url: str) -> bool:
    return bool(TIKTOK_POST_RE.match(url or ""))


def is_blob_url(url: str) -> bool:
    return (url or "").startswith("blob:")


def _unescape(url: str) -> str:
    return (
        url.replace("\\u002F", "/")
        .replace("\\u003F", "?")
        .replace("\\u003D", "=")
        .replace("\\u0026", "&")
    )


def extract_video_url(html: str) -> str | None:
    for pattern in VIDEO_URL_PATTERNS:
        match = pattern.search(html)
        if match and match.group(1):
            return _unescape(match.group(1))

    next_data = NEXT_DATA_RE.search(html)
    if next_data:
        try:
            data = json.loads(next_data.group(1))
        except ValueError:
            return None
        props = (data.get("props") or {}).get("pageProps") or {}
        candidates = (
            ((props.get("videoContent") or {}).get("ItemStruct") or {}).get("video") or {},
            ((props.get("itemInfo") or {}).get("itemStruct") or {}).get("video") or {},
        )
        for video in candidates:
            url = video.get("downloadAddr") or video.get("playAddr")
            if url:
                return _unescape(url)
    return None


@dataclass(slots=True)
class TikTokUrlResolver:
    """Scrape TikTok post pages; other URLs pass through untouched."""

    timeout_seconds: float = 20.0
    log: logging.Logger = field(default_factory=lambda: logger)

    async def resolve(self, url: str, *, page_url: str | None = None) -> str:
        if is_blob_url(url):
            if not page_url or not is_tiktok_post_url(page_url):
                raise PlayableUrlError("Blob URLs require the TikTok post page URL")
            url = page_url
        if not is_tiktok_post_url(url):
            return url

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout_seconds, follow_redirects=True
            ) as client:
                response = await client.get(url, headers=BROWSER_HEADERS)
        except httpx.HTTPError as exc:
            raise PlayableUrlError(f"Failed to fetch TikTok page: {exc}") from exc
        if response.status_code != 200:
            raise PlayableUrlError(f"Failed to fetch TikTok page: {response.status_code}")

        video_url = extract_video_url(response.text)
        if not video_url:
            raise PlayableUrlError("Could not find a video URL on the TikTok page")
        self.log.info("tiktok.video_url.resolved", extra={"page_url": url})
        return video_url
