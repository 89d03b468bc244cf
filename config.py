"""Configuration constants for the Rock Paper Crane Bot."""

import os
from dotenv import load_dotenv

load_dotenv()

# Challenge settings
CHALLENGE_TIMEOUT = int(os.getenv("CHALLENGE_TIMEOUT", "60"))  # seconds to accept a challenge

# Game variants
VARIANT_CLASSIC = 'classic'
VARIANT_CRANE = 'crane'
DEFAULT_VARIANT = VARIANT_CRANE

# Crane variant: upgrading every base item wins the game
UPGRADE_TARGET = 4

# Rematch handshake per variant: 'require_accept' or 'start_playing'
REMATCH_POLICIES = {
    VARIANT_CLASSIC: 'require_accept',
    VARIANT_CRANE: 'start_playing',
}

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Embed colors
COLOR_CHALLENGE = 0xFF6B6B
COLOR_PLAYING = 0x4CAF50
COLOR_TIE = 0xFFA500
COLOR_ROUND_WIN = 0x00FF00
COLOR_DECLINED = 0xFF4444
COLOR_COMPLETE = 0xFFD700
COLOR_EXPIRED = 0x808080
