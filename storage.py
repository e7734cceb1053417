import hashlib
import json
import logging
import os
import tempfile
import time
from typing import Dict, List, Optional

from config import Settings
from data_models import QueueItem, Bookmark, SearchResult

logger = logging.getLogger(__name__)

QUEUE_FILE = "queue.json"
BOOKMARKS_FILE = "bookmarks.json"
SETTINGS_FILE = "settings.json"


def _read_json(path: str, default):
    if not os.path.exists(path):
        return default
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as e:
        logger.warning(f"Could not read {path}, using defaults: {e}")
        return default


def _write_json(path: str, data) -> None:
    """Write ``data`` next to ``path`` first and swap it in, so readers never see half a file."""
    directory = os.path.dirname(path) or "."
    os.makedirs(directory, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=directory, prefix=".tmp-", suffix=".json")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=4, ensure_ascii=False)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise


class JsonStore:
    def __init__(self, data_dir: str, config_dir: Optional[str] = None):
        self.data_dir = data_dir
        self.config_dir = config_dir or data_dir

    def _path(self, name: str) -> str:
        return os.path.join(self.data_dir, name)

    def _load_items(self, name: str) -> List[QueueItem]:
        raw = _read_json(self._path(name), [])
        if not isinstance(raw, list):
            logger.warning(f"Ignoring malformed {name}: expected a list")
            return []
        return [QueueItem.from_dict(entry) for entry in raw if isinstance(entry, dict) and entry.get("url")]

    def _save_items(self, name: str, items: List[QueueItem]) -> None:
        try:
            _write_json(self._path(name), [item.to_dict() for item in items])
        except OSError as e:
            logger.error(f"Failed to save {name}: {e}")

    def load_queue(self) -> List[QueueItem]:
        return self._load_items(QUEUE_FILE)

    def save_queue(self, queue: List[QueueItem]) -> None:
        self._save_items(QUEUE_FILE, queue)

    def load_bookmarks(self) -> List[Bookmark]:
        return self._load_items(BOOKMARKS_FILE)

    def save_bookmarks(self, bookmarks: List[Bookmark]) -> None:
        self._save_items(BOOKMARKS_FILE, bookmarks)

    def load_settings(self) -> Settings:
        path = os.path.join(self.config_dir, SETTINGS_FILE)
        raw = _read_json(path, None)
        if raw is None:
            settings = Settings()
            self.save_settings(settings)
            return settings
        if not isinstance(raw, dict):
            logger.warning(f"Ignoring malformed {SETTINGS_FILE}: expected an object")
            return Settings()
        return Settings.from_dict(raw)

    def save_settings(self, settings: Settings) -> None:
        try:
            _write_json(os.path.join(self.config_dir, SETTINGS_FILE), settings.to_dict())
        except OSError as e:
            logger.error(f"Failed to save settings: {e}")


class SearchCache:
    """On-disk cache of search result rows, one JSON file per query."""

    def __init__(self, cache_dir: str, ttl: int = 3600):
        self.cache_dir = os.path.join(cache_dir, "search")
        self.ttl = ttl

    @staticmethod
    def key(source: str, count: int, query: str) -> str:
        text = f"{source}|{count}|{query.strip().lower()}"
        return hashlib.sha256(text.encode("utf-8")).hexdigest()

    def _path(self, key: str) -> str:
        return os.path.join(self.cache_dir, f"{key}.json")

    def get(self, key: str, now: Optional[float] = None) -> Optional[List[SearchResult]]:
        raw = _read_json(self._path(key), None)
        if not isinstance(raw, dict):
            return None
        now = time.time() if now is None else now
        stored_at = raw.get("stored_at", 0)
        if not isinstance(stored_at, (int, float)) or now - stored_at > self.ttl:
            return None
        try:
            return [SearchResult(**row) for row in raw.get("results", [])]
        except TypeError as e:
            logger.warning(f"Discarding unreadable cache entry {key}: {e}")
            return None

    def put(self, key: str, results: List[SearchResult], now: Optional[float] = None) -> None:
        payload: Dict = {
            "stored_at": time.time() if now is None else now,
            "results": [vars(r) for r in results],
        }
        try:
            _write_json(self._path(key), payload)
        except OSError as e:
            logger.warning(f"Could not cache search results: {e}")

    def clear(self) -> int:
        if not os.path.isdir(self.cache_dir):
            return 0
        removed = 0
        for filename in os.listdir(self.cache_dir):
            if filename.endswith(".json"):
                try:
                    os.remove(os.path.join(self.cache_dir, filename))
                    removed += 1
                except OSError as e:
                    logger.warning(f"Could not remove cache file {filename}: {e}")
        return removed
