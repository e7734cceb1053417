import logging
from typing import Callable, List, Optional

from data_models import AppState, QueueItem
from player_session import PlayerSessionManager

logger = logging.getLogger(__name__)


def title_matches(head_title: str, live_title: str) -> bool:
    """Whether the player's window title shows ``head_title``.

    The window title usually decorates the media title (e.g. "Foo - VLC media player"),
    so this is a case-insensitive containment test. Characters such as ``*`` or ``[``
    are compared literally.
    """
    head = head_title.strip().casefold()
    if not head:
        return False
    return head in live_title.casefold()


class QueueSynchronizer:
    """Pops the queue head once the running player is seen playing it.

    Called on the UI's own refresh cadence; nothing here subscribes to player events.
    """

    def __init__(
        self,
        state: AppState,
        session: PlayerSessionManager,
        persist: Callable[[List[QueueItem]], None],
    ):
        self.state = state
        self.session = session
        self.persist = persist

    def sync_on_tick(self) -> Optional[QueueItem]:
        if not self.state.queue:
            return None

        live_titles = self.session.live_titles()
        if not live_titles:
            return None

        head = self.state.queue[0]
        # The player may own several windows; any of them can carry the media title
        live_title = next((t for t in live_titles if title_matches(head.title, t)), None)
        if live_title is None:
            return None

        with self.state.lock:
            if not self.state.queue or self.state.queue[0] is not head:
                return None
            popped = self.state.queue.pop(0)
        self.persist(self.state.queue)
        logger.info(f"Player is showing '{live_title}'; removed '{popped.title}' from queue")
        return popped
