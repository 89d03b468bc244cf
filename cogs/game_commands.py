"""Game commands for the Rock Paper Crane bot."""

import asyncio
import logging
from typing import Dict, List, Optional, Tuple

import discord
from discord import app_commands
from discord.ext import commands

from game.errors import GameError
from game.events import (
    ChallengeAccepted,
    ChallengeDeclined,
    ChallengeExpired,
    GameCompleted,
    GameEvent,
    Player,
    RoundResolved,
    UpgradeApplied,
)
from game.rules import ITEM_DISPLAY, UPGRADE_MAP, Item, get_rules
from game.session import Phase, SessionSnapshot
from game.session_manager import OperationResult, SessionRegistry
from utils.embeds import (
    create_board_embed,
    create_challenge_embed,
    create_declined_embed,
    create_expired_embed,
    create_game_complete_embed,
    create_round_result_embed,
)
from utils.formatters import format_item, format_upgrade_path
import config

logger = logging.getLogger(__name__)


def to_player(user: discord.abc.User) -> Player:
    """Convert a Discord user into an engine participant."""
    return Player(id=str(user.id), name=user.display_name, bot=user.bot)


def first_event(events: Tuple[GameEvent, ...], kind: type) -> Optional[GameEvent]:
    for event in events:
        if isinstance(event, kind):
            return event
    return None


class ItemButton(discord.ui.Button):
    """A button that submits one item to its view."""

    def __init__(self, item: Item, label: str, emoji: str, style: discord.ButtonStyle):
        super().__init__(label=label, emoji=emoji, style=style)
        self.item = item

    async def callback(self, interaction: discord.Interaction):
        await self.view.on_item(interaction, self.item)


class ChallengeView(discord.ui.View):
    """Accept / Decline buttons for a pending challenge."""

    def __init__(self, cog: 'GameCommands', session_id: str):
        super().__init__(timeout=None)
        self.cog = cog
        self.session_id = session_id

    @discord.ui.button(label="Accept Challenge", emoji="✅", style=discord.ButtonStyle.success)
    async def accept(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.cog.handle_response(interaction, self.session_id, True)

    @discord.ui.button(label="Decline Challenge", emoji="❌", style=discord.ButtonStyle.danger)
    async def decline(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.cog.handle_response(interaction, self.session_id, False)


class ChoiceView(discord.ui.View):
    """One button per playable item."""

    def __init__(self, cog: 'GameCommands', session_id: str, variant: str):
        super().__init__(timeout=None)
        self.cog = cog
        self.session_id = session_id
        for item in get_rules(variant).base_items:
            emoji, name = ITEM_DISPLAY[item]
            style = discord.ButtonStyle.danger if item is Item.BOMB else discord.ButtonStyle.secondary
            self.add_item(ItemButton(item, name, emoji, style))

    async def on_item(self, interaction: discord.Interaction, item: Item):
        await self.cog.handle_choice(interaction, self.session_id, item)


class UpgradeView(discord.ui.View):
    """Upgrade buttons for the round winner's remaining base items."""

    def __init__(self, cog: 'GameCommands', session_id: str, available: List[Item]):
        super().__init__(timeout=None)
        self.cog = cog
        self.session_id = session_id
        for item in available:
            upgraded = UPGRADE_MAP[item]
            label = f"{item.value} → {upgraded.value}"
            self.add_item(ItemButton(item, label, ITEM_DISPLAY[upgraded][0], discord.ButtonStyle.primary))

    async def on_item(self, interaction: discord.Interaction, item: Item):
        await self.cog.handle_upgrade(interaction, self.session_id, item)


class RematchView(discord.ui.View):
    """Play Again button shown on a finished game."""

    def __init__(self, cog: 'GameCommands', previous: SessionSnapshot):
        super().__init__(timeout=None)
        self.cog = cog
        self.previous = previous

    @discord.ui.button(label="Play Again", emoji="🔄", style=discord.ButtonStyle.primary)
    async def play_again(self, interaction: discord.Interaction, button: discord.ui.Button):
        await self.cog.handle_rematch(interaction, self.previous)


class GameCommands(commands.Cog):
    """Challenge commands and button handlers."""

    def __init__(self, bot: commands.Bot, registry: SessionRegistry):
        self.bot = bot
        self.registry = registry
        # session_id -> (challenge message, snapshot) so expiry can edit it
        self.challenge_messages: Dict[str, Tuple[discord.Message, SessionSnapshot]] = {}
        self.registry.add_listener(self.on_game_event)

    async def cog_unload(self):
        self.registry.remove_listener(self.on_game_event)

    @app_commands.command(name="rpc", description="Challenge someone to rock paper crane")
    @app_commands.describe(opponent="The user you want to challenge", variant="Which game to play")
    @app_commands.choices(variant=[
        app_commands.Choice(name="Rock Paper Crane", value=config.VARIANT_CRANE),
        app_commands.Choice(name="Classic Rock Paper Scissors", value=config.VARIANT_CLASSIC)
    ])
    async def rpc(
        self,
        interaction: discord.Interaction,
        opponent: discord.User,
        variant: Optional[str] = config.DEFAULT_VARIANT
    ):
        """Challenge someone to a game."""
        if interaction.guild and not interaction.app_permissions.view_channel:
            await interaction.response.send_message(
                "❌ I need to be in this channel to facilitate the game!", ephemeral=True
            )
            return

        try:
            result = self.registry.create_challenge(
                to_player(interaction.user),
                to_player(opponent),
                str(interaction.channel_id),
                variant or config.DEFAULT_VARIANT
            )
        except GameError as e:
            await self.reject(interaction, e)
            return

        snapshot = result.snapshot
        await interaction.response.send_message(
            embed=create_challenge_embed(snapshot, int(self.registry.scheduler.timeout)),
            view=ChallengeView(self, snapshot.session_id)
        )
        message = await interaction.original_response()
        self.track_challenge(snapshot, message)

    # Button handlers
    async def handle_response(self, interaction: discord.Interaction, session_id: str, accept: bool):
        try:
            result = self.registry.respond(session_id, str(interaction.user.id), accept)
        except GameError as e:
            await self.reject(interaction, e)
            return

        if accept:
            await interaction.response.edit_message(
                embed=create_board_embed(result.snapshot),
                view=ChoiceView(self, session_id, result.snapshot.variant)
            )
        else:
            await interaction.response.edit_message(embed=create_declined_embed(result.snapshot), view=None)

    async def handle_choice(self, interaction: discord.Interaction, session_id: str, item: Item):
        try:
            result = self.registry.submit_choice(session_id, str(interaction.user.id), item)
        except GameError as e:
            await self.reject(interaction, e)
            return

        await interaction.response.send_message(
            f"✅ You chose {format_item(item)}! Waiting for the other player...", ephemeral=True
        )

        round_event = first_event(result.events, RoundResolved)
        if round_event is None:
            await self.edit_board(interaction, create_board_embed(result.snapshot),
                                  ChoiceView(self, session_id, result.snapshot.variant))
            return

        await self.show_round_result(interaction, result, round_event)

    async def handle_upgrade(self, interaction: discord.Interaction, session_id: str, item: Item):
        try:
            result = self.registry.submit_upgrade(session_id, str(interaction.user.id), item)
        except GameError as e:
            await self.reject(interaction, e)
            return

        applied = first_event(result.events, UpgradeApplied)
        await interaction.response.send_message(
            f"✅ You upgraded your {format_upgrade_path(applied.item)}!", ephemeral=True
        )

        completed = first_event(result.events, GameCompleted)
        if completed is not None:
            await self.edit_board(interaction, create_game_complete_embed(completed, result.snapshot.variant),
                                  RematchView(self, result.snapshot))
            return

        await self.edit_board(interaction, create_board_embed(result.snapshot, title="⚔️ Next Round!"),
                              ChoiceView(self, session_id, result.snapshot.variant))

    async def handle_rematch(self, interaction: discord.Interaction, previous: SessionSnapshot):
        try:
            result = self.registry.rematch(previous, str(interaction.user.id))
        except GameError as e:
            await self.reject(interaction, e)
            return

        snapshot = result.snapshot
        if snapshot.phase is Phase.PLAYING:
            rules = get_rules(snapshot.variant)
            await interaction.response.edit_message(
                embed=create_board_embed(snapshot, title=f"⚔️ New {rules.title} Game!"),
                view=ChoiceView(self, snapshot.session_id, snapshot.variant)
            )
            return

        await interaction.response.edit_message(
            embed=create_challenge_embed(snapshot, int(self.registry.scheduler.timeout)),
            view=ChallengeView(self, snapshot.session_id)
        )
        self.track_challenge(snapshot, interaction.message)

    # Rendering helpers
    async def show_round_result(
        self,
        interaction: discord.Interaction,
        result: OperationResult,
        round_event: RoundResolved
    ):
        snapshot = result.snapshot
        completed = first_event(result.events, GameCompleted)

        if completed is not None:
            embeds = [create_round_result_embed(round_event, snapshot),
                      create_game_complete_embed(completed, snapshot.variant)]
            view = RematchView(self, snapshot)
        elif snapshot.phase is Phase.UPGRADING:
            embeds = [create_round_result_embed(round_event, snapshot)]
            available = snapshot.upgrades[snapshot.pending_upgrader.id].available()
            view = UpgradeView(self, snapshot.session_id, available)
        else:
            embeds = [create_round_result_embed(round_event, snapshot)]
            view = ChoiceView(self, snapshot.session_id, snapshot.variant)

        try:
            await interaction.message.edit(embeds=embeds, view=view)
        except discord.HTTPException:
            logger.exception("Failed to show round %d of %s", round_event.round, snapshot.session_id)

    async def edit_board(self, interaction: discord.Interaction, embed: discord.Embed, view: discord.ui.View):
        try:
            await interaction.message.edit(embed=embed, view=view)
        except discord.HTTPException:
            logger.exception("Failed to update game message %s", interaction.message.id)

    async def reject(self, interaction: discord.Interaction, error: GameError):
        await interaction.response.send_message(f"❌ {error.message}", ephemeral=True)

    def track_challenge(self, snapshot: SessionSnapshot, message: discord.Message):
        self.challenge_messages[snapshot.session_id] = (message, snapshot)

    # Registry events
    def on_game_event(self, event: GameEvent):
        if isinstance(event, (ChallengeAccepted, ChallengeDeclined)):
            self.challenge_messages.pop(event.session_id, None)
        elif isinstance(event, ChallengeExpired):
            entry = self.challenge_messages.pop(event.session_id, None)
            if entry:
                asyncio.create_task(self.show_expired(*entry))

    async def show_expired(self, message: discord.Message, snapshot: SessionSnapshot):
        try:
            await message.edit(embed=create_expired_embed(snapshot), view=None)
        except discord.HTTPException as e:
            logger.warning("Could not mark challenge %s as expired: %s", snapshot.session_id, e)


async def setup(bot: commands.Bot):
    """Load the cog."""
    await bot.add_cog(GameCommands(bot, bot.session_registry))
