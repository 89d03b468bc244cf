"""Game session data structures and the per-match state machine."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, FrozenSet, List, Optional, Tuple, Union
import time

from game.errors import (
    AlreadyChoseError,
    BotOpponentError,
    InvalidChoiceError,
    InvalidUpgradeItemError,
    NotParticipantError,
    NotYourTurnError,
    SelfChallengeError,
    UnauthorizedResponderError,
    WrongPhaseError,
)
from game.events import (
    ChallengeAccepted,
    ChallengeDeclined,
    ChallengeExpired,
    ChoiceRecorded,
    GameCompleted,
    GameEvent,
    Player,
    RoundResolved,
    Tally,
    UpgradeApplied,
)
from game.rules import (
    UPGRADE_MAP,
    Item,
    Outcome,
    Ruleset,
    UpgradeSet,
    get_rules,
    parse_item,
)
import config


class Phase(str, Enum):
    """Where a session is in its lifecycle."""
    PROPOSED = 'proposed'
    PLAYING = 'playing'
    UPGRADING = 'upgrading'
    COMPLETED = 'completed'
    DECLINED = 'declined'
    EXPIRED = 'expired'


class Operation(str, Enum):
    ACCEPT = 'accept'
    DECLINE = 'decline'
    START = 'start'  # rematch without the accept handshake
    SUBMIT_CHOICE = 'submit_choice'
    SUBMIT_UPGRADE = 'submit_upgrade'
    EXPIRE = 'expire'


TERMINAL_PHASES = frozenset({Phase.COMPLETED, Phase.DECLINED, Phase.EXPIRED})
ACTIVE_PHASES = frozenset({Phase.PROPOSED, Phase.PLAYING, Phase.UPGRADING})

# (current phase, operation) -> phases the operation may land in.
# A pair missing from the table is rejected with WrongPhaseError.
TRANSITIONS: Dict[Tuple[Phase, Operation], FrozenSet[Phase]] = {
    (Phase.PROPOSED, Operation.ACCEPT): frozenset({Phase.PLAYING}),
    (Phase.PROPOSED, Operation.DECLINE): frozenset({Phase.DECLINED}),
    (Phase.PROPOSED, Operation.START): frozenset({Phase.PLAYING}),
    (Phase.PROPOSED, Operation.EXPIRE): frozenset({Phase.EXPIRED}),
    (Phase.PLAYING, Operation.SUBMIT_CHOICE): frozenset({Phase.PLAYING, Phase.UPGRADING, Phase.COMPLETED}),
    (Phase.PLAYING, Operation.EXPIRE): frozenset({Phase.EXPIRED}),
    (Phase.UPGRADING, Operation.SUBMIT_UPGRADE): frozenset({Phase.PLAYING, Phase.COMPLETED}),
    (Phase.UPGRADING, Operation.EXPIRE): frozenset({Phase.EXPIRED}),
}

PHASE_ERRORS = {
    Operation.ACCEPT: "This challenge has already been answered!",
    Operation.DECLINE: "This challenge has already been answered!",
    Operation.START: "This game has already started!",
    Operation.SUBMIT_CHOICE: "Game is not in playing phase!",
    Operation.SUBMIT_UPGRADE: "Game is not in upgrade phase!",
    Operation.EXPIRE: "This game can no longer expire.",
}


def make_session_id(challenger: Player, challenged: Player) -> str:
    """Build a session id from both participants and the creation time."""
    return f"{challenger.id}-{challenged.id}-{int(time.time() * 1000)}"


@dataclass(frozen=True)
class SessionSnapshot:
    """Read-only view of a session for renderers."""
    session_id: str
    channel_id: str
    variant: str
    challenger: Player
    challenged: Player
    phase: Phase
    round: int
    ready: FrozenSet[str]
    upgrades: Dict[str, UpgradeSet]
    tally: Tally
    pending_upgrader: Optional[Player] = None
    winner: Optional[Player] = None

    @property
    def players(self) -> Tuple[Player, Player]:
        return (self.challenger, self.challenged)

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES


@dataclass
class GameSession:
    """One match between a challenger and the player they challenged."""
    session_id: str
    channel_id: str
    challenger: Player
    challenged: Player
    rules: Ruleset

    phase: Phase = Phase.PROPOSED
    round: int = 1

    # Current round picks, keyed by participant id
    choices: Dict[str, Item] = field(default_factory=dict)

    # Crane variant state
    upgrades: Dict[str, UpgradeSet] = field(default_factory=dict)
    pending_upgrader: Optional[str] = None

    # Score tally
    wins: Dict[str, int] = field(default_factory=dict)
    ties: int = 0
    winner: Optional[Player] = None

    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    ended_at: Optional[datetime] = None

    def __post_init__(self):
        for player in self.players:
            self.upgrades.setdefault(player.id, UpgradeSet())
            self.wins.setdefault(player.id, 0)

    @classmethod
    def propose(
        cls,
        challenger: Player,
        challenged: Player,
        channel_id: str,
        variant: str = config.DEFAULT_VARIANT
    ) -> 'GameSession':
        """Create a session in the Proposed phase."""
        if challenger.id == challenged.id:
            raise SelfChallengeError()
        if challenged.bot:
            raise BotOpponentError()

        return cls(
            session_id=make_session_id(challenger, challenged),
            channel_id=str(channel_id),
            challenger=challenger,
            challenged=challenged,
            rules=get_rules(variant),
        )

    # Queries
    @property
    def variant(self) -> str:
        return self.rules.name

    @property
    def players(self) -> Tuple[Player, Player]:
        return (self.challenger, self.challenged)

    @property
    def pair(self) -> FrozenSet[str]:
        return frozenset({self.challenger.id, self.challenged.id})

    @property
    def is_terminal(self) -> bool:
        return self.phase in TERMINAL_PHASES

    @property
    def is_active(self) -> bool:
        return self.phase in ACTIVE_PHASES

    @property
    def tally(self) -> Tally:
        return Tally(
            challenger_wins=self.wins[self.challenger.id],
            challenged_wins=self.wins[self.challenged.id],
            ties=self.ties,
        )

    def participant(self, user_id: str) -> Player:
        """Get the participant with this id, or raise NotParticipantError."""
        user_id = str(user_id)
        for player in self.players:
            if player.id == user_id:
                return player
        raise NotParticipantError()

    def is_participant(self, user_id: str) -> bool:
        return str(user_id) in self.pair

    def opponent_of(self, user_id: str) -> Player:
        player = self.participant(user_id)
        return self.challenged if player is self.challenger else self.challenger

    def has_chosen(self, user_id: str) -> bool:
        return str(user_id) in self.choices

    def upgrades_for(self, user_id: str) -> UpgradeSet:
        return self.upgrades[self.participant(user_id).id]

    def snapshot(self) -> SessionSnapshot:
        pending = self.participant(self.pending_upgrader) if self.pending_upgrader else None
        return SessionSnapshot(
            session_id=self.session_id,
            channel_id=self.channel_id,
            variant=self.variant,
            challenger=self.challenger,
            challenged=self.challenged,
            phase=self.phase,
            round=self.round,
            ready=frozenset(self.choices),
            upgrades=dict(self.upgrades),
            tally=self.tally,
            pending_upgrader=pending,
            winner=self.winner,
        )

    # Transition helpers
    def _check(self, operation: Operation):
        if (self.phase, operation) not in TRANSITIONS:
            raise WrongPhaseError(PHASE_ERRORS[operation])

    def _advance(self, operation: Operation, next_phase: Phase):
        allowed = TRANSITIONS[(self.phase, operation)]
        if next_phase not in allowed:
            raise RuntimeError(
                f"Illegal transition {self.phase.value} -> {next_phase.value} on {operation.value}"
            )
        self.phase = next_phase
        if next_phase in TERMINAL_PHASES:
            self.ended_at = datetime.now(timezone.utc)

    # Operations
    def respond(self, responder_id: str, accept: bool) -> List[GameEvent]:
        """Accept or decline the challenge. Only the challenged player may respond."""
        if str(responder_id) != self.challenged.id:
            raise UnauthorizedResponderError()
        operation = Operation.ACCEPT if accept else Operation.DECLINE
        self._check(operation)

        if accept:
            self._advance(operation, Phase.PLAYING)
            self.round = 1
            return [ChallengeAccepted(self.session_id, self.challenged)]

        self._advance(operation, Phase.DECLINED)
        return [ChallengeDeclined(self.session_id, self.challenged)]

    def accept(self, responder_id: str) -> List[GameEvent]:
        return self.respond(responder_id, True)

    def decline(self, responder_id: str) -> List[GameEvent]:
        return self.respond(responder_id, False)

    def start(self) -> List[GameEvent]:
        """Move straight into play, skipping the accept handshake."""
        self._check(Operation.START)
        self._advance(Operation.START, Phase.PLAYING)
        return []

    def expire(self) -> List[GameEvent]:
        self._check(Operation.EXPIRE)
        self._advance(Operation.EXPIRE, Phase.EXPIRED)
        return [ChallengeExpired(self.session_id)]

    def submit_choice(self, participant_id: str, item: Union[Item, str]) -> List[GameEvent]:
        """
        Lock in a participant's pick for the current round.

        Nothing is revealed until both picks are in. The second pick resolves
        the round immediately.
        """
        player = self.participant(participant_id)
        self._check(Operation.SUBMIT_CHOICE)
        if player.id in self.choices:
            raise AlreadyChoseError()

        choice = parse_item(item)
        if choice is None or not self.rules.is_playable(choice):
            name = choice.value if choice is not None else item
            raise InvalidChoiceError(f"**{name}** can't be played in {self.rules.title}!")

        self.choices[player.id] = choice
        events: List[GameEvent] = [ChoiceRecorded(self.session_id, player, self.round)]

        if len(self.choices) == 2:
            events.extend(self._resolve_round())

        return events

    def _resolve_round(self) -> List[GameEvent]:
        a, b = self.challenger, self.challenged
        item_a = self.rules.effective_choice(self.choices[a.id], self.upgrades[a.id])
        item_b = self.rules.effective_choice(self.choices[b.id], self.upgrades[b.id])
        outcome = self.rules.resolve(item_a, item_b)

        winner = None
        if outcome is Outcome.TIE:
            self.ties += 1
        else:
            winner = a if outcome is Outcome.A_WINS else b
            self.wins[winner.id] += 1

        resolved_round = self.round
        self.choices = {}
        self.round += 1

        events: List[GameEvent] = [RoundResolved(
            self.session_id,
            round=resolved_round,
            choices={a.id: item_a, b.id: item_b},
            outcome=outcome,
            winner=winner,
            tally=self.tally,
        )]

        if winner is None:
            self._advance(Operation.SUBMIT_CHOICE, Phase.PLAYING)
        elif self.rules.upgrades_enabled:
            self.pending_upgrader = winner.id
            self._advance(Operation.SUBMIT_CHOICE, Phase.UPGRADING)
        else:
            events.append(self._complete(Operation.SUBMIT_CHOICE, winner))

        return events

    def submit_upgrade(self, participant_id: str, item: Union[Item, str]) -> List[GameEvent]:
        """Let the round winner upgrade one of their base items."""
        self._check(Operation.SUBMIT_UPGRADE)
        if str(participant_id) != self.pending_upgrader:
            raise NotYourTurnError()
        player = self.participant(participant_id)

        base = parse_item(item)
        current = self.upgrades[player.id]
        if base is None or base not in UPGRADE_MAP or current.has(base):
            raise InvalidUpgradeItemError()

        self.upgrades[player.id] = current.with_upgrade(base)
        events: List[GameEvent] = [UpgradeApplied(self.session_id, player, base, UPGRADE_MAP[base])]

        if self.upgrades[player.id].is_complete:
            events.append(self._complete(Operation.SUBMIT_UPGRADE, player))
        else:
            self.pending_upgrader = None
            self._advance(Operation.SUBMIT_UPGRADE, Phase.PLAYING)

        return events

    def _complete(self, operation: Operation, winner: Player) -> GameCompleted:
        self.winner = winner
        self.pending_upgrader = None
        self._advance(operation, Phase.COMPLETED)
        return GameCompleted(self.session_id, winner, self.tally, self.players)
