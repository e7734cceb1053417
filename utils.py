import re
import logging
from typing import Optional

import requests
from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

YOUTUBE_REGEX = (
    r"(https?://)?(www\.|m\.|music\.)?"
    r"(youtube|youtu|youtube-nocookie)\.(com|be)/"
    r"(watch\?v=|embed/|v/|shorts/|live/|.+\?v=)?([^&=%\?/]{11})"
)
HTTP_URL_REGEX = re.compile(r"^https?://\S+$", re.IGNORECASE)
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36"
)


class VidQueueError(Exception):
    """Base class for errors raised by this application."""


class ToolNotFoundError(VidQueueError):
    def __init__(self, tool_name: str, hint: str = ""):
        self.tool_name = tool_name
        self.hint = hint
        super().__init__(f"{tool_name} was not found. {hint}".strip())


def is_valid_youtube_url(url):
    return re.match(YOUTUBE_REGEX, url) is not None


def is_http_url(url: str) -> bool:
    return bool(url) and HTTP_URL_REGEX.match(url.strip()) is not None


def extract_video_id(url):
    """Extracts the video ID from a YouTube URL."""
    match = re.match(YOUTUBE_REGEX, url)
    if match:
        return match.group(6)
    return None


def same_video(url_a: str, url_b: str) -> bool:
    """True when both URLs point at the same video, e.g. a youtu.be link and its watch page."""
    id_a = extract_video_id(url_a)
    id_b = extract_video_id(url_b)
    if id_a and id_b:
        return id_a == id_b
    return url_a.strip() == url_b.strip()


def watch_url(url_or_id: str) -> str:
    """Turns a bare video ID or a relative path into a full page URL."""
    if is_http_url(url_or_id):
        return url_or_id
    if url_or_id.startswith("/"):
        return f"https://www.youtube.com{url_or_id}"
    return f"https://www.youtube.com/watch?v={url_or_id}"


def get_video_title(url: str, timeout: float = 5) -> Optional[str]:
    """Looks up a page title for ``url``; returns None when it cannot be fetched."""
    try:
        headers = {"User-Agent": USER_AGENT}
        response = requests.get(url, headers=headers, timeout=timeout)
        if response.status_code == 200:
            soup = BeautifulSoup(response.text, "html.parser")
            meta_title = soup.find("meta", property="og:title")
            if meta_title and meta_title.get("content"):
                return str(meta_title["content"])
            if soup.title and soup.title.string:
                return str(soup.title.string).replace(" - YouTube", "").strip()
        else:
            logger.info(f"Title lookup for {url} returned HTTP {response.status_code}")
    except requests.exceptions.RequestException as e:
        logger.warning(f"Error fetching title for {url}: {e}")
    return None
