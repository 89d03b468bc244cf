"""Discord bot client setup."""

import discord
from discord.ext import commands

from game.expiry import ExpiryScheduler
from game.session_manager import SessionRegistry
import config


class CraneBot(commands.Bot):
    """Bot that owns the process-wide session registry."""

    def __init__(self, registry: SessionRegistry = None, **kwargs):
        super().__init__(**kwargs)
        if registry is None:
            registry = SessionRegistry(ExpiryScheduler(config.CHALLENGE_TIMEOUT))
        self.session_registry = registry

    async def close(self):
        self.session_registry.shutdown()
        await super().close()


def create_bot() -> CraneBot:
    """Create and configure Discord bot."""
    # Slash commands and buttons only; no message content or voice needed
    intents = discord.Intents.default()
    intents.guilds = True

    # Create bot (command_prefix is required even if we only use slash commands)
    bot = CraneBot(command_prefix='!', intents=intents)

    return bot
