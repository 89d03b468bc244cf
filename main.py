"""Main entry point for Rock Paper Crane Bot."""

import asyncio
import logging
import os

import discord
from dotenv import load_dotenv

from bot.client import create_bot
from bot.events import setup_events
import config

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


async def main():
    """Main function to start the bot."""
    discord.utils.setup_logging(level=config.LOG_LEVEL.upper(), root=True)

    # Get token
    token = os.getenv("DISCORD_TOKEN")
    if not token:
        logger.error("DISCORD_TOKEN not found in environment variables!")
        logger.error("Please create a .env file with your Discord bot token.")
        return

    # Create bot
    bot = create_bot()

    # Setup events
    setup_events(bot)

    async with bot:
        # Load cogs
        await bot.load_extension('cogs.game_commands')

        # Start bot
        logger.info("Starting bot...")
        await bot.start(token)


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot stopped by user.")
    except Exception:
        logger.exception("Error starting bot")


if __name__ == "__main__":
    run()
