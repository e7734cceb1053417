import pytest
import yt_dlp

import search
from config import Settings
from storage import SearchCache


class FakeYoutubeDL:
    calls = []
    info = {}
    error = None

    def __init__(self, opts):
        self.opts = opts

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def extract_info(self, term, download=True):
        FakeYoutubeDL.calls.append((term, download, self.opts))
        if FakeYoutubeDL.error:
            raise FakeYoutubeDL.error
        return FakeYoutubeDL.info


@pytest.fixture(autouse=True)
def fake_ydl(monkeypatch):
    FakeYoutubeDL.calls = []
    FakeYoutubeDL.error = None
    FakeYoutubeDL.info = {
        "entries": [
            {"title": "Lofi beats", "url": "https://www.youtube.com/watch?v=aaaaaaaaaaa", "channel": "Girl", "duration": 3725, "live_status": "not_live"},
            {"title": "Radio", "id": "bbbbbbbbbbb", "uploader": "Station", "live_status": "is_live"},
            {"title": None, "url": "https://www.youtube.com/watch?v=ccccccccccc"},
            None,
        ]
    }
    monkeypatch.setattr(search.yt_dlp, "YoutubeDL", FakeYoutubeDL)


def test_search_maps_entries():
    results = search.search_videos("lofi", Settings(search_results=5))

    assert FakeYoutubeDL.calls[0][0] == "ytsearch5:lofi"
    assert FakeYoutubeDL.calls[0][1] is False
    assert FakeYoutubeDL.calls[0][2]["extract_flat"] is True
    assert [r.title for r in results] == ["Lofi beats", "Radio"]
    assert results[0].duration == "1:02:05"
    assert results[0].channel_name == "Girl"
    assert results[1].url == "https://www.youtube.com/watch?v=bbbbbbbbbbb"
    assert results[1].is_live
    assert results[1].channel_name == "Station"


def test_blank_query_does_nothing():
    assert search.search_videos("   ", Settings()) == []
    assert FakeYoutubeDL.calls == []


def test_download_error_returns_empty():
    FakeYoutubeDL.error = yt_dlp.utils.DownloadError("network down")
    assert search.search_videos("lofi", Settings()) == []


def test_cache_is_used_on_second_search(tmp_path):
    cache = SearchCache(str(tmp_path), ttl=3600)
    first = search.search_videos("lofi", Settings(), cache)
    second = search.search_videos("LOFI ", Settings(), cache)

    assert first == second
    assert len(FakeYoutubeDL.calls) == 1


@pytest.mark.parametrize("seconds, expected", [(None, ""), (59, "0:59"), (61.7, "1:01"), (3600, "1:00:00"), ("x", "")])
def test_format_duration(seconds, expected):
    assert search.format_duration(seconds) == expected
