import pytest

from config import Settings
from data_models import AppState, QueueItem, ToolPaths


class FakeProcess:
    def __init__(self, pid=4242, exit_code=None):
        self.pid = pid
        self.returncode = exit_code

    def poll(self):
        return self.returncode


class FakePopen:
    """Records every spawned command; returns processes with scripted exit codes."""

    def __init__(self, exit_codes=None):
        self.calls = []
        self.kwargs = []
        self.exit_codes = list(exit_codes or [])

    def __call__(self, cmd, **kwargs):
        self.calls.append(list(cmd))
        self.kwargs.append(kwargs)
        code = self.exit_codes.pop(0) if self.exit_codes else None
        return FakeProcess(exit_code=code)


class FakeRunner:
    """Stands in for the extractor, replying with scripted (status, output) pairs in order."""

    def __init__(self, responses):
        self.responses = list(responses)
        self.commands = []

    def __call__(self, cmd):
        self.commands.append(list(cmd))
        if self.responses:
            return self.responses.pop(0)
        return 1, "ERROR: no more scripted responses"


@pytest.fixture
def settings():
    return Settings(launch_grace_seconds=0)


@pytest.fixture
def state(settings):
    return AppState(
        settings=settings,
        tools=ToolPaths(extractor="/usr/bin/yt-dlp", player="/usr/bin/vlc"),
        queue=[QueueItem("Foo", "https://example.com/foo"), QueueItem("Bar", "https://example.com/bar")],
    )


@pytest.fixture
def fake_popen():
    return FakePopen()
