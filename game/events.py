"""Events emitted by the game engine for the presentation layer to render."""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from game.rules import Item, Outcome


@dataclass(frozen=True)
class Player:
    """A participant as seen by the engine."""
    id: str
    name: str
    bot: bool = False

    @property
    def mention(self) -> str:
        return f"<@{self.id}>"


@dataclass(frozen=True)
class Tally:
    """Round wins for each side plus ties."""
    challenger_wins: int = 0
    challenged_wins: int = 0
    ties: int = 0


@dataclass(frozen=True)
class GameEvent:
    session_id: str


@dataclass(frozen=True)
class ChallengeCreated(GameEvent):
    challenger: Player
    challenged: Player
    variant: str


@dataclass(frozen=True)
class ChallengeAccepted(GameEvent):
    responder: Player


@dataclass(frozen=True)
class ChallengeDeclined(GameEvent):
    responder: Player


@dataclass(frozen=True)
class ChallengeExpired(GameEvent):
    pass


@dataclass(frozen=True)
class ChoiceRecorded(GameEvent):
    """A participant locked in a choice. The choice itself stays hidden."""
    participant: Player
    round: int


@dataclass(frozen=True)
class RoundResolved(GameEvent):
    round: int
    choices: Dict[str, Item]  # participant id -> effective item
    outcome: Outcome
    winner: Optional[Player]
    tally: Tally


@dataclass(frozen=True)
class UpgradeApplied(GameEvent):
    participant: Player
    item: Item
    upgraded_to: Item


@dataclass(frozen=True)
class GameCompleted(GameEvent):
    winner: Player
    final_tally: Tally
    players: Tuple[Player, Player]
