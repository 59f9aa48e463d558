from __future__ import annotations

import json
from typing import Any

import pytest

from src.aivora.media.playable_url import (
    PlayableUrlError,
    TikTokUrlResolver,
    extract_video_url,
    is_tiktok_post_url,
)


class DummyHTTPResponse:
    def __init__(self, status_code: int, text: str = "") -> None:
        self.status_code = status_code
        self.text = text


class DummyAsyncClient:
    calls: list[str] = []
    responses: list[DummyHTTPResponse] = []

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        pass

    async def __aenter__(self) -> "DummyAsyncClient":
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        return None

    async def get(self, url: str, headers: dict[str, str]):
        type(self).calls.append(url)
        return type(self).responses.pop(0)


@pytest.fixture
def configure_httpx(monkeypatch):
    def _configure(*responses: DummyHTTPResponse) -> type[DummyAsyncClient]:
        DummyAsyncClient.calls = []
        DummyAsyncClient.responses = list(responses)
        monkeypatch.setattr("httpx.AsyncClient", DummyAsyncClient)
        return DummyAsyncClient

    return _configure


def test_extract_play_addr_unescapes():
    html = '<script>{"playAddr":"https:\\u002F\\u002Fv16.tiktokcdn.com\\u002Fv.mp4\\u003Fa\\u003D1"}</script>'

    assert extract_video_url(html) == "https://v16.tiktokcdn.com/v.mp4?a=1"


def test_extract_from_next_data():
    data = {"props": {"pageProps": {"itemInfo": {"itemStruct": {"video": {"playAddr": "https://cdn/p.mp4"}}}}}}
    html = f'<script id="__NEXT_DATA__" type="application/json">{json.dumps(data)}</script>'

    assert extract_video_url(html) == "https://cdn/p.mp4"


def test_extract_returns_none_without_video():
    assert extract_video_url("<html></html>") is None


def test_tiktok_url_detection():
    assert is_tiktok_post_url("https://www.tiktok.com/@a/video/1")
    assert is_tiktok_post_url("https://vm.tiktok.com/ZM123/")
    assert not is_tiktok_post_url("https://cdn.example.com/v.mp4")


@pytest.mark.asyncio
async def test_plain_urls_pass_through(configure_httpx):
    client = configure_httpx()

    url = await TikTokUrlResolver().resolve("https://cdn.example.com/v.mp4")

    assert url == "https://cdn.example.com/v.mp4"
    assert client.calls == []


@pytest.mark.asyncio
async def test_blob_url_uses_page_url(configure_httpx):
    client = configure_httpx(DummyHTTPResponse(200, '<video class="x" src="https://cdn/v.mp4">'))

    url = await TikTokUrlResolver().resolve(
        "blob:https://www.tiktok.com/abc", page_url="https://www.tiktok.com/@a/video/1"
    )

    assert url == "https://cdn/v.mp4"
    assert client.calls == ["https://www.tiktok.com/@a/video/1"]


@pytest.mark.asyncio
async def test_blob_url_without_page_url_fails(configure_httpx):
    configure_httpx()

    with pytest.raises(PlayableUrlError):
        await TikTokUrlResolver().resolve("blob:https://www.tiktok.com/abc")


@pytest.mark.asyncio
async def test_page_without_video_fails(configure_httpx):
    configure_httpx(DummyHTTPResponse(200, "<html>nothing</html>"))

    with pytest.raises(PlayableUrlError, match="Could not find"):
        await TikTokUrlResolver().resolve("https://www.tiktok.com/@a/video/1")
