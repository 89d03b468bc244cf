"""Text formatting helpers."""

from typing import List

from game.events import Player, Tally
from game.rules import ITEM_DISPLAY, UPGRADE_MAP, UPGRADABLE_ITEMS, Item, UpgradeSet


def format_item(item: Item, bold: bool = True) -> str:
    """Format an item with its emoji, e.g. '🧱 **Wall**'."""
    emoji, name = ITEM_DISPLAY.get(item, ("❓", str(item)))
    return f"{emoji} **{name}**" if bold else f"{emoji} {name}"


def format_upgrade_path(item: Item) -> str:
    """Format a base item and what it upgrades into, e.g. '🪨 Rock → 🧱 Wall'."""
    return f"{format_item(item, bold=False)} → {format_item(UPGRADE_MAP[item], bold=False)}"


def format_upgrade_status(upgrades: UpgradeSet) -> str:
    """Format upgrade progress, e.g. '2/4 upgrades (🧱Wall, 🔥Fire)'."""
    count = upgrades.count
    total = len(UPGRADABLE_ITEMS)
    if count == 0:
        return f"{count}/{total} upgrades"

    names = ["".join(ITEM_DISPLAY[UPGRADE_MAP[item]]) for item in upgrades.upgraded()]
    return f"{count}/{total} upgrades ({format_list(names, last_separator=', ')})"


def format_tally(challenger: Player, challenged: Player, tally: Tally) -> str:
    """Format round wins for both players plus ties."""
    return (
        f"{challenger.mention}: {tally.challenger_wins} | "
        f"{challenged.mention}: {tally.challenged_wins} | "
        f"Ties: {tally.ties}"
    )


def format_list(items: List[str], separator: str = ", ", last_separator: str = " and ") -> str:
    """Format a list of items with proper separators."""
    if not items:
        return ""
    if len(items) == 1:
        return items[0]
    if len(items) == 2:
        return f"{items[0]}{last_separator}{items[1]}"

    return separator.join(items[:-1]) + f"{last_separator}{items[-1]}"
