import os
import sys
import shutil
import logging
from typing import Iterable, List, Optional

from config import Settings, IS_WINDOWS, IS_MAC
from data_models import ToolPaths

logger = logging.getLogger(__name__)

EXTRACTOR = "yt-dlp"
PLAYER = "vlc"

INSTALL_HINTS = {
    EXTRACTOR: "Install it with 'pip install yt-dlp' or your package manager, "
    "or set VIDQUEUE_EXTRACTOR to its full path.",
    PLAYER: "Install VLC from https://www.videolan.org/ or your package manager, "
    "or set VIDQUEUE_PLAYER to its full path.",
}


def _interpreter_scripts_dir() -> str:
    if IS_WINDOWS:
        return os.path.join(os.path.dirname(sys.executable), "Scripts")
    return os.path.dirname(sys.executable)


def extractor_candidates() -> List[str]:
    home = os.path.expanduser("~")
    if IS_WINDOWS:
        local = os.environ.get("LOCALAPPDATA", os.path.join(home, "AppData", "Local"))
        return [
            os.path.join(_interpreter_scripts_dir(), "yt-dlp.exe"),
            os.path.join(local, "Microsoft", "WinGet", "Links", "yt-dlp.exe"),
            os.path.join(home, "scoop", "shims", "yt-dlp.exe"),
            r"C:\ProgramData\chocolatey\bin\yt-dlp.exe",
        ]
    return [
        os.path.join(_interpreter_scripts_dir(), "yt-dlp"),
        os.path.join(home, ".local", "bin", "yt-dlp"),
        "/usr/local/bin/yt-dlp",
        "/opt/homebrew/bin/yt-dlp",
        "/usr/bin/yt-dlp",
    ]


def player_candidates() -> List[str]:
    if IS_WINDOWS:
        return [
            os.path.join(os.environ.get("ProgramFiles", r"C:\Program Files"), "VideoLAN", "VLC", "vlc.exe"),
            os.path.join(os.environ.get("ProgramFiles(x86)", r"C:\Program Files (x86)"), "VideoLAN", "VLC", "vlc.exe"),
        ]
    if IS_MAC:
        return ["/Applications/VLC.app/Contents/MacOS/VLC"]
    return ["/usr/bin/vlc", "/usr/local/bin/vlc", "/snap/bin/vlc", "/var/lib/flatpak/exports/bin/org.videolan.VLC"]


def locate(tool_name: str, path_candidates: Iterable[str]) -> Optional[str]:
    """Return the first usable path for ``tool_name``: the search path first, then each candidate."""
    found = shutil.which(tool_name)
    if found:
        return found
    for candidate in path_candidates:
        if candidate and os.path.isfile(candidate):
            return candidate
    return None


def locate_tools(settings: Settings) -> ToolPaths:
    extractor_paths = [settings.extractor_path] if settings.extractor_path else []
    player_paths = [settings.player_path] if settings.player_path else []

    # An explicitly configured path wins over whatever is on the search path.
    extractor = next((p for p in extractor_paths if os.path.isfile(p)), None)
    player = next((p for p in player_paths if os.path.isfile(p)), None)

    tools = ToolPaths(
        extractor=extractor or locate(EXTRACTOR, extractor_candidates()),
        player=player or locate(PLAYER, player_candidates()),
    )
    for name, path in ((EXTRACTOR, tools.extractor), (PLAYER, tools.player)):
        if path:
            logger.info(f"Using {name} at {path}")
        else:
            logger.warning(f"{name} not found")
    return tools


def install_hint(tool_name: str) -> str:
    return f"{tool_name} was not found. {INSTALL_HINTS.get(tool_name, '')}".strip()


def missing_tool_hints(tools: ToolPaths) -> List[str]:
    hints = []
    if not tools.extractor:
        hints.append(install_hint(EXTRACTOR))
    if not tools.player:
        hints.append(install_hint(PLAYER))
    return hints
