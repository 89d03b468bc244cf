"""Discord embed builders for bot responses."""

import discord
from typing import Optional

from game.events import GameCompleted, RoundResolved
from game.rules import ITEM_DISPLAY, UPGRADE_MAP, Ruleset, get_rules
from game.session import SessionSnapshot
from utils.formatters import (
    format_item,
    format_list,
    format_tally,
    format_upgrade_path,
    format_upgrade_status,
)
import config


def describe_beats(rules: Ruleset, upgraded: bool = False) -> str:
    """Describe a ruleset's beats relation, one item per segment."""
    parts = []
    for item, losers in rules.beats.items():
        if (item in UPGRADE_MAP.values()) != upgraded:
            continue
        names = [ITEM_DISPLAY[loser][1] for loser in rules.domain if loser in losers]
        emoji, name = ITEM_DISPLAY[item]
        prefix = emoji if upgraded else ""
        parts.append(f"{prefix}{name} beats {format_list(names, last_separator=' & ')}")
    return " | ".join(parts)


def create_challenge_embed(snapshot: SessionSnapshot, timeout: int = config.CHALLENGE_TIMEOUT) -> discord.Embed:
    """Create embed for a new challenge."""
    rules = get_rules(snapshot.variant)
    embed = discord.Embed(
        title=f"🎮 {rules.title} Challenge!",
        description=(
            f"{snapshot.challenger.mention} has challenged {snapshot.challenged.mention} "
            f"to a game of {rules.title}!"
        ),
        color=config.COLOR_CHALLENGE
    )

    if rules.upgrades_enabled:
        paths = ", ".join(format_upgrade_path(item) for item in rules.base_items)
        how_to = (
            "• Click Accept to join the multi-round game\n"
            "• Each round: choose Rock, Paper, Scissors, or Bomb\n"
            f"• **Round winner upgrades an item:** {paths}\n"
            "• **Upgraded items have new powers!**\n"
            f"• **First to upgrade all {config.UPGRADE_TARGET} items wins the game!**"
        )
    else:
        how_to = (
            "• Click Accept to play\n"
            "• Choose Rock, Paper, or Scissors\n"
            "• Ties replay the round, the first decisive round wins"
        )

    embed.add_field(name="How to play:", value=how_to, inline=False)
    embed.add_field(name="Basic Rules:", value=describe_beats(rules), inline=False)
    if rules.upgrades_enabled:
        embed.add_field(name="Upgrade Powers:", value=describe_beats(rules, upgraded=True), inline=False)

    embed.set_footer(text=f"The challenge will expire in {timeout} seconds")
    return embed


def create_board_embed(snapshot: SessionSnapshot, title: Optional[str] = None) -> discord.Embed:
    """Create embed showing the current round and who has picked."""
    rules = get_rules(snapshot.variant)
    embed = discord.Embed(
        title=title or f"⚔️ {rules.title} Game Started!",
        description=(
            f"{snapshot.challenger.mention} vs {snapshot.challenged.mention}\n\n"
            f"**Round {snapshot.round}** - Make your choice!"
        ),
        color=config.COLOR_PLAYING
    )

    status = "\n".join(
        f"{player.mention} - {'✅ Ready!' if player.id in snapshot.ready else '⏳ Waiting...'}"
        for player in snapshot.players
    )
    embed.add_field(name="Players:", value=status, inline=False)

    if rules.upgrades_enabled:
        embed.add_field(
            name="Upgrades Progress:",
            value="\n".join(
                f"{player.mention}: {format_upgrade_status(snapshot.upgrades[player.id])}"
                for player in snapshot.players
            ),
            inline=False
        )

    embed.add_field(
        name="Round Wins:",
        value=format_tally(snapshot.challenger, snapshot.challenged, snapshot.tally),
        inline=False
    )
    return embed


def create_round_result_embed(event: RoundResolved, snapshot: SessionSnapshot) -> discord.Embed:
    """Create embed revealing both picks and the round winner."""
    results = "\n".join(
        f"{player.mention} chose {format_item(event.choices[player.id])}"
        for player in snapshot.players
    )

    if event.winner is None:
        embed = discord.Embed(
            title=f"🤝 Round {event.round} - It's a Tie!",
            description=f"{results}\n\nStarting next round...\n\n**Round {snapshot.round}** - Make your choice!",
            color=config.COLOR_TIE
        )
    else:
        description = f"{results}\n\n**{event.winner.mention}** wins the round! 🏆"
        if snapshot.pending_upgrader is not None:
            description += "\n\nSelect an item to upgrade:"
        embed = discord.Embed(
            title=f"🎉 Round {event.round} Winner!",
            description=description,
            color=config.COLOR_ROUND_WIN
        )

    embed.add_field(
        name="Game Status:",
        value=f"Round Wins - {format_tally(snapshot.challenger, snapshot.challenged, event.tally)}",
        inline=False
    )
    if get_rules(snapshot.variant).upgrades_enabled:
        embed.add_field(
            name="Upgrades:",
            value=" | ".join(
                f"{player.mention}: {snapshot.upgrades[player.id].count}/{config.UPGRADE_TARGET}"
                for player in snapshot.players
            ),
            inline=False
        )
    return embed


def create_game_complete_embed(event: GameCompleted, variant: str) -> discord.Embed:
    """Create embed announcing the overall winner."""
    challenger, challenged = event.players
    if get_rules(variant).upgrades_enabled:
        description = f"**{event.winner.mention}** has upgraded all {config.UPGRADE_TARGET} items and wins the entire game!"
    else:
        description = f"**{event.winner.mention}** wins the game!"

    embed = discord.Embed(
        title="🎊 GAME COMPLETE! 🎊",
        description=description,
        color=config.COLOR_COMPLETE
    )
    embed.add_field(
        name="Final Stats:",
        value=f"Round Wins - {format_tally(challenger, challenged, event.final_tally)}",
        inline=False
    )
    return embed


def create_declined_embed(snapshot: SessionSnapshot) -> discord.Embed:
    """Create embed for a declined challenge."""
    return discord.Embed(
        title="❌ Challenge Declined",
        description=f"{snapshot.challenged.mention} declined the challenge.",
        color=config.COLOR_DECLINED
    )


def create_expired_embed(snapshot: SessionSnapshot) -> discord.Embed:
    """Create embed for a challenge nobody answered."""
    rules = get_rules(snapshot.variant)
    return discord.Embed(
        title=f"⌛ {rules.title} Challenge Expired",
        description=(
            f"{snapshot.challenger.mention} challenged {snapshot.challenged.mention} "
            f"to {rules.title}, but the challenge expired."
        ),
        color=config.COLOR_EXPIRED
    )
