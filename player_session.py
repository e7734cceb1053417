import os
import time
import logging
import subprocess
from typing import Callable, List, Optional

import psutil

from config import Settings, IS_WINDOWS, IS_MAC

logger = logging.getLogger(__name__)

PLAYER_PROCESS_NAME = "vlc"

# Outcomes of ensure_launched_or_updated
UPDATED = "updated"
LAUNCHED = "launched"
FALLBACK = "fallback"
FAILED = "failed"


def _normalize_process_name(name: str) -> str:
    name = (name or "").lower()
    if name.endswith(".exe"):
        name = name[:-4]
    return name


def player_process_name(player_path: Optional[str]) -> str:
    """Process name the player shows up as, derived from its executable path.

    ``/usr/bin/cvlc`` gives ``cvlc``, ``C:\\...\\vlc.exe`` gives ``vlc``, and a flatpak id such as
    ``org.videolan.VLC`` gives ``vlc``.
    """
    if not player_path:
        return PLAYER_PROCESS_NAME
    base = _normalize_process_name(os.path.basename(player_path.replace("\\", "/")))
    tail = base.rsplit(".", 1)[-1]
    if tail.isalpha():
        base = tail
    return base or PLAYER_PROCESS_NAME


def find_process(name: str) -> Optional[psutil.Process]:
    """Return the first running process called ``name``, or None."""
    wanted = _normalize_process_name(name)
    for proc in psutil.process_iter(["name"]):
        try:
            if _normalize_process_name(proc.info.get("name")) == wanted:
                return proc
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
    return None


def _window_titles_windows(pid: int) -> List[str]:
    import ctypes
    from ctypes import wintypes

    user32 = ctypes.windll.user32
    titles: List[str] = []
    EnumWindowsProc = ctypes.WINFUNCTYPE(ctypes.c_bool, wintypes.HWND, wintypes.LPARAM)

    @EnumWindowsProc
    def _enum(hwnd, lparam):
        if not user32.IsWindowVisible(hwnd):
            return True
        pid_out = wintypes.DWORD(0)
        user32.GetWindowThreadProcessId(hwnd, ctypes.byref(pid_out))
        if pid_out.value == pid:
            length = user32.GetWindowTextLengthW(hwnd)
            if length:
                buf = ctypes.create_unicode_buffer(length + 1)
                user32.GetWindowTextW(hwnd, buf, length + 1)
                titles.append(buf.value)
        return True

    user32.EnumWindows(_enum, 0)
    return titles


def _window_titles_xdotool(pid: int) -> List[str]:
    try:
        proc = subprocess.run(
            ["xdotool", "search", "--onlyvisible", "--pid", str(pid), "getwindowname", "%@"],
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
            text=True,
            timeout=2,
        )
    except FileNotFoundError:
        logger.debug("xdotool not installed; window titles unavailable")
        return []
    except subprocess.TimeoutExpired:
        logger.debug("xdotool timed out reading window titles")
        return []
    return [line.strip() for line in proc.stdout.splitlines() if line.strip()]


def window_titles(pid: int) -> List[str]:
    if IS_WINDOWS:
        return _window_titles_windows(pid)
    if IS_MAC:
        # No window title API without extra frameworks
        return []
    return _window_titles_xdotool(pid)


class PlayerSessionManager:
    """Launches the external player or hands URLs to the instance that is already running."""

    def __init__(
        self,
        player_path: Optional[str],
        settings: Settings,
        process_name: Optional[str] = None,
        process_finder: Callable[[str], Optional[psutil.Process]] = find_process,
        title_reader: Callable[[int], List[str]] = window_titles,
        popen: Callable[..., subprocess.Popen] = subprocess.Popen,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.player_path = player_path
        self.settings = settings
        self.process_name = process_name or player_process_name(player_path)
        self.process_finder = process_finder
        self.title_reader = title_reader
        self.popen = popen
        self.sleep = sleep

    # --- Session state (always queried live) ---
    def find_session(self):
        return self.process_finder(self.process_name)

    def is_running(self) -> bool:
        return self.find_session() is not None

    def live_titles(self) -> Optional[List[str]]:
        """Visible window titles of the running session, or None when nothing runs.

        The list is empty when the platform exposes no titles.
        """
        session = self.find_session()
        if session is None:
            return None
        try:
            titles = self.title_reader(session.pid)
        except OSError as e:
            logger.debug(f"Could not read player window titles: {e}")
            return []
        return [t.strip() for t in titles if t.strip()]

    # --- Command lines ---
    @staticmethod
    def _item_args(url: str, title: Optional[str]) -> List[str]:
        args = [url]
        if title:
            args.append(f":meta-title={title}")
        return args

    def control_command(self, url: str, enqueue: bool, title: Optional[str] = None) -> List[str]:
        cmd = [self.player_path, "--one-instance"]
        if enqueue:
            cmd.append("--playlist-enqueue")
        return cmd + self._item_args(url, title)

    def launch_command(self, url: str, title: Optional[str] = None) -> List[str]:
        return [
            self.player_path,
            f"--width={self.settings.player_width}",
            f"--height={self.settings.player_height}",
            f"--network-caching={self.settings.network_caching_ms}",
        ] + self._item_args(url, title)

    def fallback_command(self, url: str) -> List[str]:
        return [self.player_path, url]

    def _spawn(self, cmd: List[str]) -> subprocess.Popen:
        kwargs = {"stdin": subprocess.DEVNULL, "stdout": subprocess.DEVNULL, "stderr": subprocess.DEVNULL}
        if IS_WINDOWS:
            kwargs["creationflags"] = getattr(subprocess, "DETACHED_PROCESS", 0)
        else:
            kwargs["start_new_session"] = True
        logger.info(f"Starting player: {' '.join(cmd)}")
        return self.popen(cmd, **kwargs)

    # --- Operations ---
    def ensure_launched_or_updated(
        self,
        primary_url: str,
        fallback_url: str,
        enqueue: bool = False,
        title: Optional[str] = None,
    ) -> str:
        if not self.player_path:
            logger.error("No player executable configured")
            return FAILED

        if self.is_running():
            try:
                self._spawn(self.control_command(primary_url, enqueue, title))
            except OSError as e:
                logger.error(f"Could not hand URL to running player: {e}")
                return FAILED
            return UPDATED

        try:
            proc = self._spawn(self.launch_command(primary_url, title))
        except OSError as e:
            logger.warning(f"Player launch failed: {e}")
            proc = None

        if proc is not None:
            self.sleep(self.settings.launch_grace_seconds)
            if proc.poll() is None:
                return LAUNCHED
            logger.warning(f"Player exited early with status {proc.returncode}; relaunching with minimal arguments")

        try:
            self._spawn(self.fallback_command(fallback_url))
        except OSError as e:
            logger.error(f"Fallback player launch failed: {e}")
            return FAILED
        return FALLBACK

    def play(self, url: str, enqueue: bool = False, title: Optional[str] = None) -> None:
        outcome = self.ensure_launched_or_updated(url, url, enqueue=enqueue, title=title)
        logger.info(f"play({url!r}, enqueue={enqueue}) -> {outcome}")
