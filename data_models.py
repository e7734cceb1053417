import threading
from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional, Tuple

from config import Settings

RECENT_LIMIT = 5
ERROR_PREVIEW_LIMIT = 5


# --- Data Structures ---
@dataclass
class QueueItem:
    title: str
    url: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "QueueItem":
        return cls(title=str(data.get("title", "")), url=str(data.get("url", "")))


# Bookmarks share the queue record shape
Bookmark = QueueItem


@dataclass
class SearchResult:
    title: str
    url: str
    channel_name: str = ""
    is_live: bool = False
    duration: str = ""
    live_status: str = ""

    @property
    def label(self) -> str:
        if self.is_live or self.live_status == "is_live":
            return f"{self.title} [LIVE]"
        if self.live_status == "is_upcoming":
            return f"{self.title} [UPCOMING]"
        return self.title


@dataclass(frozen=True)
class StreamResolutionAttempt:
    name: str
    args: Tuple[str, ...]


@dataclass
class StreamResolutionResult:
    resolved_url: Optional[str]
    attempt_name: str
    error_preview: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return bool(self.resolved_url)


@dataclass
class ToolPaths:
    extractor: Optional[str] = None
    player: Optional[str] = None


def push_recent(recent: List[str], label: str, limit: int = RECENT_LIMIT) -> List[str]:
    """Move ``label`` to the front of ``recent``, dropping any older copy, capped at ``limit``."""
    if label in recent:
        recent.remove(label)
    recent.insert(0, label)
    del recent[limit:]
    return recent


@dataclass
class AppState:
    """Everything the session mutates, built once at startup and passed around explicitly."""

    settings: Settings
    tools: ToolPaths = field(default_factory=ToolPaths)
    queue: List[QueueItem] = field(default_factory=list)
    bookmarks: List[Bookmark] = field(default_factory=list)
    recent: List[str] = field(default_factory=list)
    # Guards lists shared with worker and web threads
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def queue_snapshot(self) -> List[QueueItem]:
        with self.lock:
            return list(self.queue)

    def recent_snapshot(self) -> List[str]:
        with self.lock:
            return list(self.recent)
