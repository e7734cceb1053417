import logging
from typing import Dict, List, Optional

import yt_dlp

from config import Settings
from data_models import SearchResult
from storage import SearchCache
from utils import watch_url

logger = logging.getLogger(__name__)


def format_duration(seconds) -> str:
    if seconds is None:
        return ""
    try:
        total = int(float(seconds))
    except (TypeError, ValueError):
        return ""
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def entry_to_result(entry: Dict) -> Optional[SearchResult]:
    url = entry.get("webpage_url") or entry.get("url") or entry.get("id")
    title = entry.get("title")
    if not url or not title:
        return None
    live_status = entry.get("live_status") or ""
    return SearchResult(
        title=str(title).replace("\n", " "),
        url=watch_url(str(url)),
        channel_name=entry.get("channel") or entry.get("uploader") or "",
        is_live=bool(entry.get("is_live")) or live_status == "is_live",
        duration=entry.get("duration_string") or format_duration(entry.get("duration")),
        live_status=live_status,
    )


def _extract_entries(search_term: str) -> List[Dict]:
    ydl_opts = {
        "quiet": True,
        "no_warnings": True,
        "extract_flat": True,
        "skip_download": True,
        "socket_timeout": 20,
    }
    with yt_dlp.YoutubeDL(ydl_opts) as ydl:
        info = ydl.extract_info(search_term, download=False)
    return [e for e in (info or {}).get("entries") or [] if e]


def search_videos(query: str, settings: Settings, cache: Optional[SearchCache] = None) -> List[SearchResult]:
    """Searches for ``query``; cached rows are reused until they expire."""
    query = query.strip()
    if not query:
        return []

    key = SearchCache.key(settings.search_source, settings.search_results, query)
    if cache is not None:
        cached = cache.get(key)
        if cached is not None:
            logger.info(f"Search cache hit for '{query}'")
            return cached

    search_term = f"{settings.search_source}{settings.search_results}:{query}"
    try:
        entries = _extract_entries(search_term)
    except yt_dlp.utils.DownloadError as e:
        logger.error(f"Search failed for '{query}': {e}")
        return []

    results = [r for r in (entry_to_result(e) for e in entries) if r is not None]
    if cache is not None and results:
        cache.put(key, results)
    return results
