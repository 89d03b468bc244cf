"""Rules for Rock Paper Crane and classic Rock Paper Scissors.

Everything here is pure data plus functions over it. The session state
machine only ever asks a ruleset three questions: which items may be played,
what a player's pick turns into after upgrades, and who won.
"""

from dataclasses import dataclass
from enum import Enum
from itertools import combinations
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

import config


class Item(str, Enum):
    """Every item either variant knows about."""
    ROCK = 'rock'
    PAPER = 'paper'
    SCISSORS = 'scissors'
    BOMB = 'bomb'
    # Upgraded items
    WALL = 'wall'
    CANNON = 'cannon'
    FIRE = 'fire'
    CLAY = 'clay'


class Outcome(str, Enum):
    """Result of comparing two effective items."""
    TIE = 'tie'
    A_WINS = 'a_wins'
    B_WINS = 'b_wins'

    def flipped(self) -> 'Outcome':
        if self is Outcome.A_WINS:
            return Outcome.B_WINS
        if self is Outcome.B_WINS:
            return Outcome.A_WINS
        return self


# Base item -> the item it becomes once upgraded
UPGRADE_MAP: Dict[Item, Item] = {
    Item.ROCK: Item.WALL,
    Item.BOMB: Item.CANNON,
    Item.SCISSORS: Item.FIRE,
    Item.PAPER: Item.CLAY,
}

UPGRADABLE_ITEMS: Tuple[Item, ...] = (Item.ROCK, Item.PAPER, Item.SCISSORS, Item.BOMB)

ITEM_DISPLAY: Dict[Item, Tuple[str, str]] = {
    Item.ROCK: ("🪨", "Rock"),
    Item.PAPER: ("📄", "Paper"),
    Item.SCISSORS: ("✂️", "Scissors"),
    Item.BOMB: ("💣", "Bomb"),
    Item.WALL: ("🧱", "Wall"),
    Item.CANNON: ("🔫", "Cannon"),
    Item.FIRE: ("🔥", "Fire"),
    Item.CLAY: ("🏺", "Clay"),
}


# Each item maps to the items it beats.
CLASSIC_BEATS: Dict[Item, FrozenSet[Item]] = {
    Item.ROCK: frozenset({Item.SCISSORS}),
    Item.PAPER: frozenset({Item.ROCK}),
    Item.SCISSORS: frozenset({Item.PAPER}),
}

# The published crane rules leave nine pairs undecided (rock/wall,
# cannon/fire, ...). Those go to the upgraded item, and fire beats cannon.
CRANE_BEATS: Dict[Item, FrozenSet[Item]] = {
    Item.ROCK: frozenset({Item.SCISSORS}),
    Item.PAPER: frozenset({Item.ROCK}),
    Item.SCISSORS: frozenset({Item.PAPER, Item.BOMB}),
    Item.BOMB: frozenset({Item.ROCK, Item.PAPER}),
    Item.WALL: frozenset({
        Item.SCISSORS, Item.BOMB, Item.FIRE,
        Item.ROCK, Item.PAPER,
    }),
    Item.CANNON: frozenset({
        Item.ROCK, Item.PAPER, Item.WALL, Item.CLAY,
        Item.SCISSORS, Item.BOMB,
    }),
    Item.FIRE: frozenset({
        Item.PAPER, Item.SCISSORS, Item.BOMB,
        Item.ROCK, Item.CANNON,
    }),
    Item.CLAY: frozenset({
        Item.ROCK, Item.WALL, Item.FIRE,
        Item.PAPER, Item.SCISSORS, Item.BOMB,
    }),
}


def check_relation(domain: Iterable[Item], beats: Dict[Item, FrozenSet[Item]]):
    """
    Verify that every pair of distinct items is decided by exactly one side.

    Raises:
        ValueError: listing every pair that is undecided or won by both
    """
    domain = list(domain)
    problems = []
    for item in domain:
        stray = beats.get(item, frozenset()) - set(domain)
        if stray:
            problems.append(f"{item.value} beats items outside the domain: "
                            f"{sorted(i.value for i in stray)}")
    for a, b in combinations(domain, 2):
        a_beats_b = b in beats.get(a, frozenset())
        b_beats_a = a in beats.get(b, frozenset())
        if a_beats_b and b_beats_a:
            problems.append(f"{a.value} and {b.value} beat each other")
        elif not a_beats_b and not b_beats_a:
            problems.append(f"{a.value} vs {b.value} is undecided")
    if problems:
        raise ValueError("Inconsistent beats relation: " + "; ".join(problems))


def resolve(item_a: Item, item_b: Item, beats: Dict[Item, FrozenSet[Item]]) -> Outcome:
    """A wins only if B is on A's loser list; otherwise B wins."""
    if item_a == item_b:
        return Outcome.TIE
    if item_b in beats[item_a]:
        return Outcome.A_WINS
    return Outcome.B_WINS


@dataclass(frozen=True)
class UpgradeSet:
    """Which of the four base items a player has upgraded."""
    rock: bool = False
    paper: bool = False
    scissors: bool = False
    bomb: bool = False

    def has(self, item: Item) -> bool:
        if item not in UPGRADE_MAP:
            return False
        return getattr(self, item.value)

    def with_upgrade(self, item: Item) -> 'UpgradeSet':
        flags = {i.value: self.has(i) for i in UPGRADABLE_ITEMS}
        flags[item.value] = True
        return UpgradeSet(**flags)

    def upgraded(self) -> List[Item]:
        return [item for item in UPGRADABLE_ITEMS if self.has(item)]

    def available(self) -> List[Item]:
        return [item for item in UPGRADABLE_ITEMS if not self.has(item)]

    @property
    def count(self) -> int:
        return len(self.upgraded())

    @property
    def is_complete(self) -> bool:
        return self.count == len(UPGRADABLE_ITEMS)


def effective_choice(base_choice: Item, upgrades: Optional[UpgradeSet] = None) -> Item:
    """Return the upgraded item if the player has unlocked it, else the base item."""
    if upgrades is not None and upgrades.has(base_choice):
        return UPGRADE_MAP[base_choice]
    return base_choice


def parse_item(name: str) -> Optional[Item]:
    """Look up an item by name, case-insensitively."""
    if isinstance(name, Item):
        return name
    try:
        return Item(str(name).strip().lower())
    except ValueError:
        return None


@dataclass(frozen=True)
class Ruleset:
    """One playable configuration of items, beats-relation and upgrades."""
    name: str
    title: str
    base_items: Tuple[Item, ...]
    beats: Dict[Item, FrozenSet[Item]]
    upgrades_enabled: bool

    @property
    def domain(self) -> Tuple[Item, ...]:
        return tuple(self.beats)

    def is_playable(self, item: Item) -> bool:
        return item in self.base_items

    def effective_choice(self, base_choice: Item, upgrades: Optional[UpgradeSet] = None) -> Item:
        if not self.upgrades_enabled:
            return base_choice
        return effective_choice(base_choice, upgrades)

    def resolve(self, item_a: Item, item_b: Item) -> Outcome:
        return resolve(item_a, item_b, self.beats)


CLASSIC_RULES = Ruleset(
    name=config.VARIANT_CLASSIC,
    title="Rock Paper Scissors",
    base_items=(Item.ROCK, Item.PAPER, Item.SCISSORS),
    beats=CLASSIC_BEATS,
    upgrades_enabled=False,
)

CRANE_RULES = Ruleset(
    name=config.VARIANT_CRANE,
    title="Rock Paper Crane",
    base_items=UPGRADABLE_ITEMS,
    beats=CRANE_BEATS,
    upgrades_enabled=True,
)

RULESETS: Dict[str, Ruleset] = {
    CLASSIC_RULES.name: CLASSIC_RULES,
    CRANE_RULES.name: CRANE_RULES,
}

for _rules in RULESETS.values():
    check_relation(_rules.domain, _rules.beats)


def get_rules(variant: str) -> Ruleset:
    """Get the ruleset for a variant name."""
    try:
        return RULESETS[variant]
    except KeyError:
        raise ValueError(f"Unknown game variant: {variant!r}") from None
