import logging
from typing import List, Optional

from textual.app import App, ComposeResult
from textual.widgets import (
    Header,
    Footer,
    DataTable,
    Label,
    Button,
    Input,
    TabbedContent,
    TabPane,
)
from textual.containers import Horizontal, Vertical, Container
from textual.screen import ModalScreen
from textual import work

from config import APP_NAME
from data_models import AppState, QueueItem, SearchResult
from flask_app import RemoteInbox, normalize_submitted_url
from playback import PlaybackOrchestrator, PlaybackReport, describe_failure
from player_session import UPDATED
from queue_sync import QueueSynchronizer
from search import search_videos
from storage import SearchCache
from tool_locator import missing_tool_hints
from utils import get_video_title

logger = logging.getLogger(__name__)


class ConfirmScreen(ModalScreen[bool]):
    DEFAULT_CSS = """
    ConfirmScreen {
        align: center middle;
    }
    #dialog {
        width: 80;
        height: auto;
        padding: 1 2;
        border: thick $error;
        background: $surface;
    }
    #dialog Horizontal {
        height: auto;
        margin-top: 1;
    }
    """

    def __init__(self, message: str, confirm_label: str = "Open in browser"):
        super().__init__()
        self.message = message
        self.confirm_label = confirm_label

    def compose(self) -> ComposeResult:
        with Vertical(id="dialog"):
            yield Label(self.message)
            with Horizontal():
                yield Button(self.confirm_label, id="confirm", variant="primary")
                yield Button("Cancel", id="cancel")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "confirm")


# --- Textual TUI App ---
class VidQueueApp(App):
    CSS = """
    Screen {
        layout: vertical;
    }
    DataTable {
        height: 1fr;
        border: solid green;
    }
    #search-input-container {
        height: auto;
    }
    #search-query-input {
        width: 1fr;
    }
    #input-container {
        height: auto;
        dock: bottom;
        padding: 0 1;
        border-top: solid blue;
    }
    TabbedContent {
        height: 1fr;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("space", "play_item", "Play"),
        ("a", "add_to_queue", "Queue"),
        ("e", "enqueue_in_player", "Player queue"),
        ("p", "play_queue", "Play queue"),
        ("b", "bookmark", "Bookmark"),
        ("d", "delete_item", "Remove"),
        ("c", "clear_queue", "Clear queue"),
        ("o", "open_in_browser", "Browser"),
    ]

    def __init__(
        self,
        state: AppState,
        orchestrator: PlaybackOrchestrator,
        synchronizer: QueueSynchronizer,
        inbox: RemoteInbox,
        search_cache: Optional[SearchCache] = None,
        initial_query: Optional[str] = None,
    ):
        super().__init__()
        self.state = state
        self.orchestrator = orchestrator
        self.synchronizer = synchronizer
        self.inbox = inbox
        self.search_cache = search_cache
        self.initial_query = initial_query
        self.search_results: List[SearchResult] = []
        self._playback_busy = False

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)

        with TabbedContent(initial="tab-search"):
            with TabPane("Search", id="tab-search"):
                with Vertical():
                    with Horizontal(id="search-input-container"):
                        yield Input(placeholder="Search videos...", id="search-query-input")
                        yield Button("Search", id="search-btn", variant="primary")
                    yield DataTable(id="search-results-table")
            with TabPane("Queue", id="tab-queue"):
                yield DataTable(id="queue-table")
            with TabPane("Bookmarks", id="tab-bookmarks"):
                yield DataTable(id="bookmarks-table")
            with TabPane("Recent", id="tab-recent"):
                yield DataTable(id="recent-table")

        with Container(id="input-container"):
            yield Label("Add URL to queue:")
            yield Input(placeholder="Paste a video URL here...", id="url-input")

        yield Footer()

    def on_mount(self) -> None:
        self.title = APP_NAME

        s_table = self.query_one("#search-results-table", DataTable)
        s_table.cursor_type = "row"
        s_table.add_columns("Title", "Channel", "Duration")

        q_table = self.query_one("#queue-table", DataTable)
        q_table.cursor_type = "row"
        q_table.add_columns("Idx", "Title", "URL")

        b_table = self.query_one("#bookmarks-table", DataTable)
        b_table.cursor_type = "row"
        b_table.add_columns("Title", "URL")

        r_table = self.query_one("#recent-table", DataTable)
        r_table.cursor_type = "row"
        r_table.add_columns("Recently played")

        for hint in missing_tool_hints(self.state.tools):
            self.notify(hint, severity="warning", timeout=15)

        self.set_interval(self.state.settings.refresh_interval, self.refresh_tables)
        self.refresh_tables()

        if self.initial_query:
            self.query_one("#search-query-input", Input).value = self.initial_query
            self.action_search()

    # --- Refresh cycle ---
    def refresh_tables(self) -> None:
        for item in self.inbox.drain():
            self.orchestrator.enqueue(item)
            self.notify(f"Added '{item.title}' from the web queue")

        popped = self.synchronizer.sync_on_tick()
        if popped is not None:
            self.notify(f"Now playing: {popped.title}")

        self._update_table(
            self.query_one("#queue-table", DataTable),
            [(str(idx + 1), item.title, item.url) for idx, item in enumerate(self.state.queue)],
        )
        self._update_table(
            self.query_one("#bookmarks-table", DataTable),
            [(item.title, item.url) for item in self.state.bookmarks],
        )
        self._update_table(
            self.query_one("#recent-table", DataTable),
            [(label,) for label in self.state.recent_snapshot()],
        )

    def _update_table(self, table: DataTable, rows: List[tuple]) -> None:
        cursor_coord = table.cursor_coordinate
        table.clear()
        for idx, row in enumerate(rows):
            table.add_row(*row, key=str(idx))
        if cursor_coord.row < len(rows):
            table.move_cursor(row=cursor_coord.row, column=cursor_coord.column)

    # --- Selection helpers ---
    def _active_tab(self) -> str:
        return self.query_one(TabbedContent).active

    def _cursor_row(self, table_id: str) -> Optional[int]:
        table = self.query_one(table_id, DataTable)
        if table.row_count == 0:
            return None
        return table.cursor_row

    def _selected_video(self):
        tab = self._active_tab()
        if tab == "tab-search":
            items = self.search_results
            row = self._cursor_row("#search-results-table")
        elif tab == "tab-queue":
            items = self.state.queue
            row = self._cursor_row("#queue-table")
        elif tab == "tab-bookmarks":
            items = self.state.bookmarks
            row = self._cursor_row("#bookmarks-table")
        else:
            return None
        if row is None or not 0 <= row < len(items):
            return None
        return items[row]

    # --- Playback ---
    def _claim_playback(self) -> bool:
        if self._playback_busy or self.orchestrator.busy:
            self.notify("Still busy with the previous playback request.", severity="warning")
            return False
        self._playback_busy = True
        return True

    def _playback_done(self) -> None:
        self._playback_busy = False

    def action_play_item(self) -> None:
        video = self._selected_video()
        if video is not None and self._claim_playback():
            self.playback_worker(video, enqueue=False)

    def action_enqueue_in_player(self) -> None:
        video = self._selected_video()
        if video is not None and self._claim_playback():
            self.playback_worker(video, enqueue=True)

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        if event.data_table.id in ("search-results-table", "queue-table", "bookmarks-table"):
            self.action_play_item()

    @work(thread=True, exclusive=True, group="playback")
    def playback_worker(self, video, enqueue: bool) -> None:
        try:
            self.call_from_thread(self.notify, f"Resolving stream for '{video.title}'...")
            if enqueue:
                report = self.orchestrator.enqueue_in_player(video)
            else:
                report = self.orchestrator.play_selected(video)
            self.call_from_thread(self._finish_playback, report)
        finally:
            self.call_from_thread(self._playback_done)

    def action_play_queue(self) -> None:
        if not self.state.queue:
            self.notify("The queue is empty.", severity="warning")
            return
        if self._claim_playback():
            self.play_queue_worker()

    @work(thread=True, exclusive=True, group="playback")
    def play_queue_worker(self) -> None:
        try:
            self.call_from_thread(self.notify, f"Sending {len(self.state.queue)} item(s) to the player...")
            reports = self.orchestrator.play_queue()
            for report in reports:
                self.call_from_thread(self._finish_playback, report, False)
        finally:
            self.call_from_thread(self._playback_done)

    def _finish_playback(self, report: PlaybackReport, offer_browser: bool = True) -> None:
        if report.ok:
            verb = "Sent to player" if report.outcome == UPDATED else "Playing"
            self.notify(f"{verb}: {report.title} (via {report.attempt_name})")
            self.refresh_tables()
            return

        message = "\n".join(describe_failure(report))
        self.notify(message, severity="error", timeout=12)
        if offer_browser and report.fallback_url and not report.hint:
            url = report.fallback_url

            def _open(confirmed: Optional[bool]) -> None:
                if confirmed:
                    self.orchestrator.open_in_browser(url)

            self.push_screen(ConfirmScreen(f"{message}\n\nOpen the page in your browser instead?"), _open)

    def action_open_in_browser(self) -> None:
        video = self._selected_video()
        if video is not None:
            self.orchestrator.open_in_browser(video.url)

    # --- Queue and bookmarks ---
    def action_add_to_queue(self) -> None:
        video = self._selected_video()
        if video is None or self._active_tab() == "tab-queue":
            return
        self.orchestrator.enqueue(QueueItem(title=video.title, url=video.url))
        self.notify(f"Added '{video.title}' to the queue")
        self.refresh_tables()

    def action_bookmark(self) -> None:
        video = self._selected_video()
        if video is None:
            return
        if self.orchestrator.add_bookmark(video):
            self.notify(f"Bookmarked '{video.title}'")
        else:
            self.notify("Already bookmarked", severity="warning")
        self.refresh_tables()

    def action_delete_item(self) -> None:
        tab = self._active_tab()
        if tab == "tab-queue":
            row = self._cursor_row("#queue-table")
            removed = self.orchestrator.remove_at(row) if row is not None else None
        elif tab == "tab-bookmarks":
            row = self._cursor_row("#bookmarks-table")
            removed = self.orchestrator.remove_bookmark(row) if row is not None else None
        else:
            return
        if removed is not None:
            self.notify(f"Removed '{removed.title}'")
            self.refresh_tables()

    def action_clear_queue(self) -> None:
        if self._active_tab() != "tab-queue" or not self.state.queue:
            return
        self.orchestrator.clear_queue()
        self.notify("Queue cleared")
        self.refresh_tables()

    # --- Inputs ---
    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "search-btn":
            self.action_search()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id == "url-input":
            self.add_local_url()
        elif event.input.id == "search-query-input":
            self.action_search()

    def add_local_url(self) -> None:
        input_widget = self.query_one("#url-input", Input)
        url = normalize_submitted_url(input_widget.value)
        if url is None:
            self.notify("Invalid video URL", severity="error")
            return
        input_widget.value = ""
        self.notify("Fetching title...")
        self.add_url_worker(url)

    @work(thread=True)
    def add_url_worker(self, url: str) -> None:
        title = get_video_title(url) or url
        self.call_from_thread(self._finish_add_url, url, title)

    def _finish_add_url(self, url: str, title: str) -> None:
        self.orchestrator.enqueue(QueueItem(title=title, url=url))
        self.notify(f"Added '{title}'!")
        self.refresh_tables()

    def action_search(self) -> None:
        search_input = self.query_one("#search-query-input", Input)
        query = search_input.value.strip()
        if not query:
            self.notify("Please enter a search query.", severity="warning")
            return
        self.notify(f"Searching for '{query}'...")
        self.query_one("#search-results-table", DataTable).clear()
        self.search_worker(query)

    @work(thread=True, exclusive=True, group="search")
    def search_worker(self, query: str) -> None:
        results = search_videos(query, self.state.settings, self.search_cache)
        self.call_from_thread(self._display_search_results, results)

    def _display_search_results(self, results: List[SearchResult]) -> None:
        self.search_results = results
        s_table = self.query_one("#search-results-table", DataTable)
        s_table.clear()
        if not results:
            self.notify("No results found.")
            return
        for idx, result in enumerate(results):
            s_table.add_row(result.label, result.channel_name, result.duration, key=f"search_result_{idx}")
        s_table.focus()
        self.notify(f"Found {len(results)} results.")
