import os
import sys
import logging
import argparse
import threading

import config
from data_models import AppState
from flask_app import RemoteInbox, create_app, run_flask
from player_session import PlayerSessionManager
from playback import PlaybackOrchestrator
from queue_sync import QueueSynchronizer
from storage import JsonStore, SearchCache
from stream_resolver import StreamResolver
from tool_locator import locate_tools
from tui_app import VidQueueApp

logger = logging.getLogger(__name__)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        prog=config.APP_NAME,
        description="Search videos from the terminal and hand them to an external player",
    )
    parser.add_argument("-S", "--search", help="start with a search for this term")
    parser.add_argument("--serve", action="store_true", help="accept queue submissions over HTTP")
    parser.add_argument("--clear-cache", action="store_true", help="delete cached search results and exit")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("-v", "--version", action="store_true")
    return parser.parse_args(argv)


def setup_logging(level: str) -> None:
    os.makedirs(config.data_dir(), exist_ok=True)
    logging.basicConfig(
        filename=config.app_log_path(),
        level=getattr(logging, level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_app(args) -> VidQueueApp:
    store = JsonStore(config.data_dir(), config.config_dir())
    settings = store.load_settings().apply_env()

    state = AppState(settings=settings)
    state.tools = locate_tools(settings)
    state.queue = store.load_queue()
    state.bookmarks = store.load_bookmarks()

    resolver = StreamResolver(state.tools.extractor, config.debug_log_path())
    session = PlayerSessionManager(state.tools.player, settings)
    orchestrator = PlaybackOrchestrator(state, store, resolver, session)
    synchronizer = QueueSynchronizer(state, session, store.save_queue)
    inbox = RemoteInbox()

    if args.serve:
        web_app = create_app(state, inbox)
        threading.Thread(target=run_flask, args=(web_app, settings), daemon=True).start()
        logger.info(f"Remote queue listening on {settings.server_host}:{settings.server_port}")

    return VidQueueApp(
        state,
        orchestrator,
        synchronizer,
        inbox,
        search_cache=SearchCache(config.cache_dir(), settings.search_cache_ttl),
        initial_query=args.search,
    )


def main(argv=None) -> int:
    args = parse_args(argv)
    if args.version:
        print(f"{config.APP_NAME} v{config.APP_VERSION}")
        return 0

    if args.clear_cache:
        removed = SearchCache(config.cache_dir()).clear()
        print(f"Removed {removed} cached search(es)")
        return 0

    setup_logging(args.log_level)
    build_app(args).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
