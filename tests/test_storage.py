import json

from config import Settings
from data_models import QueueItem, SearchResult
from storage import JsonStore, SearchCache


def test_queue_round_trip(tmp_path):
    store = JsonStore(str(tmp_path))
    items = [QueueItem("A", "https://a"), QueueItem("B", "https://b")]

    store.save_queue(items)

    assert store.load_queue() == items
    raw = json.loads((tmp_path / "queue.json").read_text(encoding="utf-8"))
    assert raw == [{"title": "A", "url": "https://a"}, {"title": "B", "url": "https://b"}]


def test_missing_and_corrupt_files_load_empty(tmp_path):
    store = JsonStore(str(tmp_path))
    assert store.load_bookmarks() == []

    (tmp_path / "queue.json").write_text("{not json", encoding="utf-8")
    assert store.load_queue() == []

    (tmp_path / "bookmarks.json").write_text('{"title": "x"}', encoding="utf-8")
    assert store.load_bookmarks() == []


def test_entries_without_url_are_dropped(tmp_path):
    (tmp_path / "queue.json").write_text('[{"title": "no url"}, {"title": "ok", "url": "https://ok"}, 3]', encoding="utf-8")
    assert JsonStore(str(tmp_path)).load_queue() == [QueueItem("ok", "https://ok")]


def test_settings_created_with_defaults(tmp_path):
    store = JsonStore(str(tmp_path / "data"), str(tmp_path / "config"))

    settings = store.load_settings()

    assert settings == Settings()
    assert (tmp_path / "config" / "settings.json").exists()


def test_settings_ignore_unknown_keys_and_bad_types(tmp_path):
    (tmp_path / "settings.json").write_text(
        json.dumps({"player_width": "1920", "search_results": "many", "advertise_mdns": "yes", "bogus": 1}),
        encoding="utf-8",
    )

    settings = JsonStore(str(tmp_path)).load_settings()

    assert settings.player_width == 1920
    assert settings.search_results == Settings().search_results
    assert settings.advertise_mdns is True


def test_search_cache_hit_and_expiry(tmp_path):
    cache = SearchCache(str(tmp_path), ttl=60)
    key = SearchCache.key("ytsearch", 15, "lofi")
    rows = [SearchResult("Lofi", "https://www.youtube.com/watch?v=abc", "Chan", False, "1:00:00", "not_live")]

    cache.put(key, rows, now=1000)

    assert cache.get(key, now=1030) == rows
    assert cache.get(key, now=1100) is None
    assert cache.get(SearchCache.key("ytsearch", 15, "other"), now=1030) is None


def test_search_cache_key_normalizes_query():
    assert SearchCache.key("ytsearch", 15, " LoFi ") == SearchCache.key("ytsearch", 15, "lofi")
    assert SearchCache.key("ytsearch", 15, "lofi") != SearchCache.key("ytsearch", 20, "lofi")


def test_search_cache_clear(tmp_path):
    cache = SearchCache(str(tmp_path))
    cache.put("a", [])
    cache.put("b", [])

    assert cache.clear() == 2
    assert cache.get("a") is None
