"""One-shot timers that expire unanswered challenges."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Tuple

import config

logger = logging.getLogger(__name__)


@dataclass
class ExpiryToken:
    """Travels with a scheduled timer; cancelling it turns the firing into a no-op."""
    session_id: str
    cancelled: bool = False

    def cancel(self):
        self.cancelled = True


class ExpiryScheduler:
    """
    Schedules one expiry timer per session on the running event loop.

    Cancellation is best-effort. Whoever receives the callback must still
    check the session's phase before acting on it.
    """

    def __init__(self, timeout: float = config.CHALLENGE_TIMEOUT):
        self.timeout = timeout
        self._timers: Dict[str, Tuple[ExpiryToken, asyncio.Task]] = {}

    def schedule(self, session_id: str, on_expire: Callable[[str], None]) -> ExpiryToken:
        """Call ``on_expire(session_id)`` once the timeout passes, unless cancelled."""
        self.cancel(session_id)

        token = ExpiryToken(session_id)
        loop = asyncio.get_running_loop()
        task = loop.create_task(self._fire_after(token, on_expire))
        self._timers[session_id] = (token, task)
        return token

    async def _fire_after(self, token: ExpiryToken, on_expire: Callable[[str], None]):
        try:
            await asyncio.sleep(self.timeout)
        finally:
            entry = self._timers.get(token.session_id)
            if entry and entry[0] is token:
                del self._timers[token.session_id]

        if token.cancelled:
            return

        try:
            on_expire(token.session_id)
        except Exception:
            logger.exception("Expiry handler failed for session %s", token.session_id)

    def cancel(self, session_id: str):
        entry = self._timers.pop(session_id, None)
        if entry:
            token, task = entry
            token.cancel()
            task.cancel()

    def is_scheduled(self, session_id: str) -> bool:
        return session_id in self._timers

    def shutdown(self):
        """Cancel every pending timer."""
        for session_id in list(self._timers):
            self.cancel(session_id)

    def __len__(self) -> int:
        return len(self._timers)
