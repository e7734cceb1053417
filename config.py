import os
import platform
from dataclasses import dataclass, asdict, fields
from typing import Dict

APP_NAME = "vidqueue"
APP_VERSION = "0.3.0"

IS_WINDOWS = platform.system() == "Windows"
IS_MAC = platform.system() == "Darwin"


def _base_dir(env_var: str, windows_var: str, fallback: str) -> str:
    override = os.environ.get("VIDQUEUE_HOME")
    if override:
        return os.path.expanduser(override)
    if IS_WINDOWS:
        root = os.environ.get(windows_var) or os.path.expanduser("~")
        return os.path.join(root, APP_NAME)
    root = os.environ.get(env_var) or os.path.join(os.path.expanduser("~"), fallback)
    return os.path.join(root, APP_NAME)


def config_dir() -> str:
    return _base_dir("XDG_CONFIG_HOME", "APPDATA", ".config")


def data_dir() -> str:
    return _base_dir("XDG_DATA_HOME", "APPDATA", os.path.join(".local", "share"))


def cache_dir() -> str:
    return _base_dir("XDG_CACHE_HOME", "LOCALAPPDATA", ".cache")


def debug_log_path() -> str:
    return os.path.join(data_dir(), "stream_debug.log")


def app_log_path() -> str:
    return os.path.join(data_dir(), f"{APP_NAME}.log")


@dataclass
class Settings:
    player_width: int = 1280
    player_height: int = 720
    network_caching_ms: int = 3000
    launch_grace_seconds: float = 2.0
    search_source: str = "ytsearch"
    search_results: int = 15
    search_cache_ttl: int = 3600
    refresh_interval: float = 1.0
    extractor_path: str = ""
    player_path: str = ""
    server_host: str = "0.0.0.0"
    server_port: int = 5000
    advertise_mdns: bool = False

    def to_dict(self) -> Dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "Settings":
        """Build settings from a loaded mapping, ignoring unknown keys and bad types."""
        settings = cls()
        for f in fields(cls):
            if f.name not in data:
                continue
            default = getattr(settings, f.name)
            try:
                if isinstance(default, bool):
                    value = data[f.name]
                    if isinstance(value, str):
                        value = value.strip().lower() in ("1", "true", "yes", "on")
                    setattr(settings, f.name, bool(value))
                else:
                    setattr(settings, f.name, type(default)(data[f.name]))
            except (TypeError, ValueError):
                continue
        return settings

    def apply_env(self) -> "Settings":
        self.player_path = os.environ.get("VIDQUEUE_PLAYER", self.player_path)
        self.extractor_path = os.environ.get("VIDQUEUE_EXTRACTOR", self.extractor_path)
        return self
