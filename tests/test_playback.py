import threading
import time
import webbrowser

from data_models import QueueItem, SearchResult, StreamResolutionResult
from player_session import FAILED, LAUNCHED, UPDATED
from playback import PlaybackOrchestrator, describe_failure
from storage import JsonStore

PAGE = "https://www.youtube.com/watch?v=dQw4w9WgXcQ"
STREAM = "https://rr1.googlevideo.com/videoplayback?id=1"


class StubResolver:
    debug_log_path = "/tmp/vidqueue/stream_debug.log"

    def __init__(self, results=None):
        self.results = dict(results or {})
        self.calls = []

    def resolve(self, page_url):
        self.calls.append(page_url)
        return self.results.get(
            page_url,
            StreamResolutionResult(None, "cookies-firefox", ["ERROR: Sign in to confirm you're not a bot"]),
        )


class StubSession:
    def __init__(self, outcome=LAUNCHED):
        self.outcome = outcome
        self.calls = []

    def ensure_launched_or_updated(self, primary_url, fallback_url, enqueue=False, title=None):
        self.calls.append((primary_url, fallback_url, enqueue, title))
        return self.outcome


def make_orchestrator(state, tmp_path, resolver=None, session=None, opened=None):
    opened = opened if opened is not None else []
    return PlaybackOrchestrator(
        state,
        JsonStore(str(tmp_path)),
        resolver or StubResolver({PAGE: StreamResolutionResult(STREAM, "default")}),
        session or StubSession(),
        opener=lambda url: opened.append(url) or True,
    )


def video(title="Song", url=PAGE):
    return SearchResult(title=title, url=url, channel_name="Channel")


def test_success_hands_resolved_and_page_url_to_player(state, tmp_path):
    session = StubSession()
    orchestrator = make_orchestrator(state, tmp_path, session=session)

    report = orchestrator.play_selected(video())

    assert report.ok
    assert report.attempt_name == "default"
    assert report.fallback_url is None
    assert session.calls == [(STREAM, PAGE, False, "Song")]
    assert state.recent == ["Song"]


def test_enqueue_in_player_sets_enqueue(state, tmp_path):
    session = StubSession(UPDATED)
    orchestrator = make_orchestrator(state, tmp_path, session=session)

    report = orchestrator.enqueue_in_player(video())

    assert report.outcome == UPDATED
    assert session.calls[0][2] is True


def test_total_failure_reports_diagnostics_without_player(state, tmp_path):
    session = StubSession()
    orchestrator = make_orchestrator(state, tmp_path, resolver=StubResolver(), session=session)

    report = orchestrator.play_selected(video())

    assert not report.ok
    assert report.attempt_name == "cookies-firefox"
    assert report.fallback_url == PAGE
    assert report.debug_log_path == StubResolver.debug_log_path
    assert session.calls == []
    assert state.recent == []

    lines = describe_failure(report)
    assert "cookies-firefox" in lines[1]
    assert any("not a bot" in line for line in lines)
    assert lines[-1].endswith("stream_debug.log")


def test_player_failure_is_reported(state, tmp_path):
    orchestrator = make_orchestrator(state, tmp_path, session=StubSession(FAILED))

    report = orchestrator.play_selected(video())

    assert not report.ok
    assert report.outcome == FAILED
    assert state.recent == []


def test_missing_tool_gives_install_hint(state, tmp_path):
    state.tools.player = None
    resolver = StubResolver()
    orchestrator = make_orchestrator(state, tmp_path, resolver=resolver)

    report = orchestrator.play_selected(video())

    assert not report.ok
    assert "vlc was not found" in report.hint
    assert describe_failure(report) == [report.hint]
    assert resolver.calls == []


def test_recent_list_is_capped_and_deduplicated(state, tmp_path):
    urls = {label: f"https://example.com/{label}" for label in "ABCDEF"}
    resolver = StubResolver({url: StreamResolutionResult(STREAM, "default") for url in urls.values()})
    orchestrator = make_orchestrator(state, tmp_path, resolver=resolver)

    for label in ["A", "B", "A", "C", "D", "E", "F"]:
        orchestrator.play_selected(video(label, urls[label]))

    assert state.recent == ["F", "E", "D", "C", "B"]


def test_play_queue_replaces_then_enqueues(state, tmp_path):
    resolver = StubResolver({item.url: StreamResolutionResult(STREAM + item.title, "default") for item in state.queue})
    session = StubSession()
    orchestrator = make_orchestrator(state, tmp_path, resolver=resolver, session=session)

    reports = orchestrator.play_queue()

    assert [r.ok for r in reports] == [True, True]
    assert [c[2] for c in session.calls] == [False, True]
    assert len(state.queue) == 2


def test_play_queue_skips_unresolvable_items(state, tmp_path):
    resolver = StubResolver({"https://example.com/bar": StreamResolutionResult(STREAM, "mp4-fallback")})
    session = StubSession()
    orchestrator = make_orchestrator(state, tmp_path, resolver=resolver, session=session)

    reports = orchestrator.play_queue()

    assert [r.ok for r in reports] == [False, True]
    assert session.calls == [(STREAM, "https://example.com/bar", False, "Bar")]


def test_open_in_browser(state, tmp_path):
    opened = []
    orchestrator = make_orchestrator(state, tmp_path, opened=opened)

    assert orchestrator.open_in_browser(PAGE)
    assert opened == [PAGE]


def test_open_in_browser_error(state, tmp_path):
    def opener(url):
        raise webbrowser.Error("no browser")

    orchestrator = PlaybackOrchestrator(state, JsonStore(str(tmp_path)), StubResolver(), StubSession(), opener=opener)

    assert orchestrator.open_in_browser(PAGE) is False


def test_queue_mutations_write_through(state, tmp_path):
    orchestrator = make_orchestrator(state, tmp_path)
    store = JsonStore(str(tmp_path))

    orchestrator.enqueue(QueueItem("Baz", "https://example.com/baz"))
    assert [i.title for i in store.load_queue()] == ["Foo", "Bar", "Baz"]

    assert orchestrator.remove_at(1).title == "Bar"
    assert orchestrator.remove_at(10) is None
    assert [i.title for i in store.load_queue()] == ["Foo", "Baz"]

    orchestrator.clear_queue()
    assert store.load_queue() == []


def test_bookmarks_deduplicate_by_url(state, tmp_path):
    orchestrator = make_orchestrator(state, tmp_path)
    store = JsonStore(str(tmp_path))

    assert orchestrator.add_bookmark(video()) is True
    assert orchestrator.add_bookmark(video("Other title")) is False
    assert [b.title for b in store.load_bookmarks()] == ["Song"]

    assert orchestrator.remove_bookmark(0).title == "Song"
    assert store.load_bookmarks() == []


def test_bookmarks_deduplicate_by_video_id(state, tmp_path):
    orchestrator = make_orchestrator(state, tmp_path)

    assert orchestrator.add_bookmark(video("Song", "https://youtu.be/dQw4w9WgXcQ")) is True
    assert orchestrator.add_bookmark(video("Song again", PAGE + "&t=30")) is False
    assert [b.url for b in state.bookmarks] == ["https://youtu.be/dQw4w9WgXcQ"]


def test_playback_actions_never_overlap(state, tmp_path):
    active = []
    peak = []
    lock = threading.Lock()

    class SlowResolver(StubResolver):
        def resolve(self, page_url):
            with lock:
                active.append(page_url)
                peak.append(len(active))
            time.sleep(0.05)
            with lock:
                active.remove(page_url)
            return StreamResolutionResult(STREAM, "default")

    orchestrator = make_orchestrator(state, tmp_path, resolver=SlowResolver())
    threads = [
        threading.Thread(target=orchestrator.play_selected, args=(video("A", "https://example.com/a"),)),
        threading.Thread(target=orchestrator.enqueue_in_player, args=(video("B", "https://example.com/b"),)),
        threading.Thread(target=orchestrator.play_queue),
    ]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=5)

    assert max(peak) == 1
    assert len(peak) == 4
    assert not orchestrator.busy
    assert set(state.recent) == {"A", "B", "Foo", "Bar"}


def test_busy_while_a_playback_action_runs(state, tmp_path):
    seen = []
    orchestrator = None

    class WatchingResolver(StubResolver):
        def resolve(self, page_url):
            seen.append(orchestrator.busy)
            return StreamResolutionResult(STREAM, "default")

    orchestrator = make_orchestrator(state, tmp_path, resolver=WatchingResolver())

    assert not orchestrator.busy
    orchestrator.play_selected(video())
    assert seen == [True]
    assert not orchestrator.busy
