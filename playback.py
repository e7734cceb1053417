import logging
import threading
import webbrowser
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from data_models import AppState, QueueItem, Bookmark, push_recent
from player_session import PlayerSessionManager, FAILED
from storage import JsonStore
from stream_resolver import StreamResolver
from tool_locator import EXTRACTOR, PLAYER, install_hint
from utils import ToolNotFoundError, same_video

logger = logging.getLogger(__name__)


@dataclass
class PlaybackReport:
    title: str
    page_url: str
    ok: bool
    attempt_name: str = ""
    error_preview: List[str] = field(default_factory=list)
    debug_log_path: str = ""
    outcome: str = ""
    hint: str = ""

    @property
    def fallback_url(self) -> Optional[str]:
        """Page URL the user may open in a browser instead; only offered on failure."""
        return None if self.ok else self.page_url


def describe_failure(report: PlaybackReport) -> List[str]:
    if report.hint:
        return [report.hint]
    lines = [f"Could not play '{report.title}'."]
    if report.attempt_name:
        lines.append(f"Last attempt: {report.attempt_name}")
    for line in report.error_preview:
        lines.append(f"  {line}")
    if report.debug_log_path:
        lines.append(f"Details: {report.debug_log_path}")
    return lines


class PlaybackOrchestrator:
    def __init__(
        self,
        state: AppState,
        store: JsonStore,
        resolver: StreamResolver,
        session: PlayerSessionManager,
        opener: Callable[[str], bool] = webbrowser.open,
    ):
        self.state = state
        self.store = store
        self.resolver = resolver
        self.session = session
        self.opener = opener
        # One playback action at a time, whichever thread asks
        self._playback_lock = threading.Lock()

    @property
    def busy(self) -> bool:
        return self._playback_lock.locked()

    def _require_tools(self) -> None:
        if not self.state.tools.extractor:
            raise ToolNotFoundError(EXTRACTOR, install_hint(EXTRACTOR))
        if not self.state.tools.player:
            raise ToolNotFoundError(PLAYER, install_hint(PLAYER))

    def _handoff(self, video, enqueue: bool) -> PlaybackReport:
        try:
            self._require_tools()
        except ToolNotFoundError as e:
            logger.error(str(e))
            return PlaybackReport(title=video.title, page_url=video.url, ok=False, hint=install_hint(e.tool_name))

        result = self.resolver.resolve(video.url)
        if not result.ok:
            return PlaybackReport(
                title=video.title,
                page_url=video.url,
                ok=False,
                attempt_name=result.attempt_name,
                error_preview=list(result.error_preview),
                debug_log_path=self.resolver.debug_log_path,
            )

        outcome = self.session.ensure_launched_or_updated(
            result.resolved_url, video.url, enqueue=enqueue, title=video.title
        )
        if outcome == FAILED:
            return PlaybackReport(
                title=video.title,
                page_url=video.url,
                ok=False,
                attempt_name=result.attempt_name,
                error_preview=["The player could not be started."],
                debug_log_path=self.resolver.debug_log_path,
                outcome=outcome,
            )

        with self.state.lock:
            push_recent(self.state.recent, video.title)
        return PlaybackReport(
            title=video.title,
            page_url=video.url,
            ok=True,
            attempt_name=result.attempt_name,
            outcome=outcome,
        )

    def play_selected(self, video) -> PlaybackReport:
        """Resolve ``video.url`` and start it in the player right away."""
        with self._playback_lock:
            return self._handoff(video, enqueue=False)

    def enqueue_in_player(self, video) -> PlaybackReport:
        """Resolve ``video.url`` and append it to the player's own playlist."""
        with self._playback_lock:
            return self._handoff(video, enqueue=True)

    def play_queue(self) -> List[PlaybackReport]:
        """Send every queued item to the player: the first replaces, the rest are appended.

        Items stay in the queue; the synchronizer removes them as the player reaches them.
        """
        reports = []
        started = False
        with self._playback_lock:
            for item in self.state.queue_snapshot():
                report = self._handoff(item, enqueue=started)
                if report.hint:
                    return [report]
                reports.append(report)
                started = started or report.ok
        return reports

    def open_in_browser(self, url: str) -> bool:
        logger.info(f"Opening {url} in the browser")
        try:
            return bool(self.opener(url))
        except webbrowser.Error as e:
            logger.error(f"Could not open browser: {e}")
            return False

    # --- Queue and bookmarks (write-through) ---
    def enqueue(self, item: QueueItem) -> None:
        with self.state.lock:
            self.state.queue.append(QueueItem(title=item.title, url=item.url))
        self.store.save_queue(self.state.queue)

    def remove_at(self, index: int) -> Optional[QueueItem]:
        with self.state.lock:
            if not 0 <= index < len(self.state.queue):
                return None
            removed = self.state.queue.pop(index)
        self.store.save_queue(self.state.queue)
        return removed

    def clear_queue(self) -> None:
        with self.state.lock:
            self.state.queue.clear()
        self.store.save_queue(self.state.queue)

    def add_bookmark(self, item) -> bool:
        if any(same_video(b.url, item.url) for b in self.state.bookmarks):
            return False
        self.state.bookmarks.append(Bookmark(title=item.title, url=item.url))
        self.store.save_bookmarks(self.state.bookmarks)
        return True

    def remove_bookmark(self, index: int) -> Optional[Bookmark]:
        if not 0 <= index < len(self.state.bookmarks):
            return None
        removed = self.state.bookmarks.pop(index)
        self.store.save_bookmarks(self.state.bookmarks)
        return removed
