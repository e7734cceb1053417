import os
import re
import datetime
import logging
import subprocess
from typing import Callable, List, Optional, Sequence, Tuple

from config import IS_WINDOWS
from data_models import StreamResolutionAttempt, StreamResolutionResult, ERROR_PREVIEW_LIMIT

logger = logging.getLogger(__name__)

# Cheap formats first, identity spoofing and browser cookies last.
ATTEMPT_CATALOG: Tuple[StreamResolutionAttempt, ...] = (
    StreamResolutionAttempt("default", ("-f", "best")),
    StreamResolutionAttempt("dash-fallback", ("-f", "bestvideo+bestaudio/best")),
    StreamResolutionAttempt("mp4-fallback", ("-f", "best[ext=mp4]/mp4")),
    StreamResolutionAttempt(
        "client-fallback",
        ("--extractor-args", "youtube:player_client=android,web", "-f", "best"),
    ),
    StreamResolutionAttempt("cookies-edge", ("--cookies-from-browser", "edge", "-f", "best")),
    StreamResolutionAttempt("cookies-chrome", ("--cookies-from-browser", "chrome", "-f", "best")),
    StreamResolutionAttempt("cookies-firefox", ("--cookies-from-browser", "firefox", "-f", "best")),
)

COMMON_FLAGS = (
    "--no-playlist",
    "--no-warnings",
    "--socket-timeout", "20",
    "--extractor-retries", "3",
    "--fragment-retries", "3",
    "--retries", "3",
)

URL_LINE = re.compile(r"^https?://", re.IGNORECASE)
ERROR_SIGNAL = re.compile(r"error|forbidden|sign in|bot", re.IGNORECASE)

# (command) -> (exit status, combined stdout/stderr)
Runner = Callable[[List[str]], Tuple[int, str]]


def run_extractor(cmd: List[str]) -> Tuple[int, str]:
    kwargs = {}
    if IS_WINDOWS:
        kwargs["creationflags"] = getattr(subprocess, "CREATE_NO_WINDOW", 0)
    try:
        proc = subprocess.run(
            cmd,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            stdin=subprocess.DEVNULL,
            text=True,
            encoding="utf-8",
            errors="replace",
            **kwargs,
        )
    except OSError as e:
        return -1, f"ERROR: could not start {cmd[0]}: {e}"
    return proc.returncode, proc.stdout or ""


def append_debug_log(log_path: str, attempt_name: str, url: str, cmd: Sequence[str], output_lines: List[str]) -> None:
    """Append one attempt block to the debug log. Never raises."""
    try:
        directory = os.path.dirname(log_path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        timestamp = datetime.datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        with open(log_path, "a", encoding="utf-8") as f:
            f.write(f"[{timestamp}] Attempt={attempt_name} Url={url}\n")
            f.write(f"    $ {' '.join(cmd)}\n")
            for line in output_lines:
                f.write(f"    {line}\n")
            f.write("\n")
    except Exception:
        pass


def first_url_line(lines: List[str]) -> Optional[str]:
    for line in lines:
        if URL_LINE.match(line):
            return line
    return None


def error_preview(lines: List[str], limit: int = ERROR_PREVIEW_LIMIT) -> List[str]:
    signals = [line for line in lines if ERROR_SIGNAL.search(line)]
    if signals:
        return signals[:limit]
    return lines[:limit]


class StreamResolver:
    def __init__(
        self,
        extractor_path: Optional[str],
        debug_log_path: str,
        runner: Runner = run_extractor,
        catalog: Sequence[StreamResolutionAttempt] = ATTEMPT_CATALOG,
    ):
        self.extractor_path = extractor_path
        self.debug_log_path = debug_log_path
        self.runner = runner
        self.catalog = tuple(catalog)

    def build_command(self, attempt: StreamResolutionAttempt, page_url: str) -> List[str]:
        return [self.extractor_path or "yt-dlp", *attempt.args, "-g", page_url, *COMMON_FLAGS]

    def resolve(self, page_url: str) -> StreamResolutionResult:
        result = StreamResolutionResult(resolved_url=None, attempt_name="")
        for attempt in self.catalog:
            cmd = self.build_command(attempt, page_url)
            logger.info(f"Resolving {page_url} with attempt '{attempt.name}'")
            status, output = self.runner(cmd)
            raw_lines = output.splitlines()
            append_debug_log(self.debug_log_path, attempt.name, page_url, cmd, raw_lines)
            lines = [line.strip() for line in raw_lines if line.strip()]

            url = first_url_line(lines)
            if status == 0 and url:
                logger.info(f"Attempt '{attempt.name}' resolved {page_url}")
                return StreamResolutionResult(resolved_url=url, attempt_name=attempt.name)

            logger.info(f"Attempt '{attempt.name}' failed with exit status {status}")
            result = StreamResolutionResult(
                resolved_url=None,
                attempt_name=attempt.name,
                error_preview=error_preview(lines),
            )

        logger.warning(f"All {len(self.catalog)} attempts failed for {page_url}")
        return result
