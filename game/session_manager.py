"""Manages active game sessions."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union

from game.errors import (
    DuplicateSessionError,
    GameError,
    NotParticipantError,
    SessionNotFoundError,
)
from game.events import ChallengeCreated, GameEvent, Player
from game.expiry import ExpiryScheduler
from game.rules import Item
from game.session import GameSession, Phase, SessionSnapshot
import config

logger = logging.getLogger(__name__)


class RematchPolicy(str, Enum):
    """How a "Play Again" request starts the next game."""
    REQUIRE_ACCEPT = 'require_accept'  # back to Proposed, opponent must accept
    START_PLAYING = 'start_playing'  # straight into round 1


DEFAULT_REMATCH_POLICIES: Dict[str, RematchPolicy] = {
    variant: RematchPolicy(policy) for variant, policy in config.REMATCH_POLICIES.items()
}


@dataclass(frozen=True)
class OperationResult:
    """What a successful operation hands back to the caller."""
    snapshot: SessionSnapshot
    events: Tuple[GameEvent, ...]


EventListener = Callable[[GameEvent], None]


class SessionRegistry:
    """
    Owns every live session in the process.

    Guarantees at most one active session per pair of players, expires
    challenges nobody answers, and drops a session the moment it reaches a
    terminal phase. All methods are synchronous so that check-then-insert and
    remove-if-terminal never interleave on the event loop.
    """

    def __init__(
        self,
        scheduler: Optional[ExpiryScheduler] = None,
        rematch_policies: Optional[Dict[str, RematchPolicy]] = None
    ):
        self._sessions: Dict[str, GameSession] = {}
        self._listeners: List[EventListener] = []
        self.scheduler = scheduler if scheduler is not None else ExpiryScheduler()
        self.rematch_policies = dict(DEFAULT_REMATCH_POLICIES)
        if rematch_policies:
            self.rematch_policies.update(rematch_policies)

    # Listeners
    def add_listener(self, listener: EventListener):
        self._listeners.append(listener)

    def remove_listener(self, listener: EventListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, events: List[GameEvent]):
        for event in events:
            for listener in list(self._listeners):
                try:
                    listener(event)
                except Exception:
                    logger.exception("Listener failed on %s", type(event).__name__)

    # Lookups
    def get(self, session_id: str) -> GameSession:
        """Get a session by its ID."""
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError()
        return session

    def find_active(self, user_a: str, user_b: str) -> Optional[GameSession]:
        """Find the active session between two players, in either order."""
        pair = frozenset({str(user_a), str(user_b)})
        for session in self._sessions.values():
            if session.is_active and session.pair == pair:
                return session
        return None

    def active_sessions(self) -> List[GameSession]:
        return [s for s in self._sessions.values() if s.is_active]

    def __contains__(self, session_id: str) -> bool:
        return session_id in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    # Lifecycle
    def create_challenge(
        self,
        challenger: Player,
        challenged: Player,
        channel_id: str,
        variant: str = config.DEFAULT_VARIANT
    ) -> OperationResult:
        """Create a Proposed session and start its expiry timer."""
        session = GameSession.propose(challenger, challenged, channel_id, variant)
        self._ensure_no_active(session)

        self.scheduler.schedule(session.session_id, self._expire)
        self._sessions[session.session_id] = session
        logger.info(
            "Challenge %s created: %s vs %s (%s)",
            session.session_id, challenger.id, challenged.id, session.variant
        )
        return self._finish(session, [
            ChallengeCreated(session.session_id, challenger, challenged, session.variant)
        ])

    def rematch(
        self,
        previous: Union[GameSession, SessionSnapshot],
        requester_id: str,
        policy: Optional[RematchPolicy] = None
    ) -> OperationResult:
        """
        Start a new game between the players of a finished one.

        The requester becomes the challenger. Whether the opponent has to
        accept again depends on the variant's rematch policy.
        """
        requester = self._previous_participant(previous, requester_id)
        opponent = previous.challenged if requester == previous.challenger else previous.challenger
        policy = policy or self.rematch_policies.get(previous.variant, RematchPolicy.REQUIRE_ACCEPT)

        session = GameSession.propose(requester, opponent, previous.channel_id, previous.variant)
        self._ensure_no_active(session)

        if policy is RematchPolicy.START_PLAYING:
            session.start()
        else:
            self.scheduler.schedule(session.session_id, self._expire)

        self._sessions[session.session_id] = session
        logger.info(
            "Rematch %s created by %s (%s, %s)",
            session.session_id, requester.id, session.variant, policy.value
        )
        return self._finish(session, [
            ChallengeCreated(session.session_id, requester, opponent, session.variant)
        ])

    def remove(self, session_id: str) -> Optional[GameSession]:
        """Remove a session. Removing an unknown id does nothing."""
        self.scheduler.cancel(session_id)
        session = self._sessions.pop(session_id, None)
        if session is not None:
            logger.info("Session %s removed (%s)", session_id, session.phase.value)
        return session

    def shutdown(self):
        """Cancel all timers and forget every session."""
        self.scheduler.shutdown()
        count = len(self._sessions)
        self._sessions.clear()
        self._listeners.clear()
        logger.info("Session registry shut down, dropped %d session(s)", count)

    # Player operations
    def respond(self, session_id: str, responder_id: str, accept: bool) -> OperationResult:
        return self._apply(session_id, lambda s: s.respond(str(responder_id), accept))

    def submit_choice(self, session_id: str, participant_id: str, item: Union[Item, str]) -> OperationResult:
        return self._apply(session_id, lambda s: s.submit_choice(str(participant_id), item))

    def submit_upgrade(self, session_id: str, participant_id: str, item: Union[Item, str]) -> OperationResult:
        return self._apply(session_id, lambda s: s.submit_upgrade(str(participant_id), item))

    # Internals
    def _apply(self, session_id: str, operation: Callable[[GameSession], List[GameEvent]]) -> OperationResult:
        session = self.get(session_id)
        try:
            events = operation(session)
        except GameError as e:
            logger.debug("Rejected on %s: %s", session_id, e.message)
            raise

        if session.phase is not Phase.PROPOSED:
            self.scheduler.cancel(session_id)
        return self._finish(session, events)

    def _finish(self, session: GameSession, events: List[GameEvent]) -> OperationResult:
        if session.is_terminal:
            self.remove(session.session_id)
        result = OperationResult(session.snapshot(), tuple(events))
        self._emit(events)
        return result

    def _expire(self, session_id: str):
        session = self._sessions.get(session_id)
        if session is None or session.phase is not Phase.PROPOSED:
            logger.debug("Expiry for %s ignored", session_id)
            return
        logger.info("Challenge %s expired", session_id)
        self._finish(session, session.expire())

    def _ensure_no_active(self, session: GameSession):
        existing = self.find_active(session.challenger.id, session.challenged.id)
        if existing is not None:
            raise DuplicateSessionError()

    @staticmethod
    def _previous_participant(previous: Union[GameSession, SessionSnapshot], user_id: str) -> Player:
        user_id = str(user_id)
        for player in (previous.challenger, previous.challenged):
            if player.id == user_id:
                return player
        raise NotParticipantError("Only the original players can start a new game!")
