"""Errors raised by the game engine.

Every error is local to one session and one invoking user. The message is
safe to show to that user as-is.
"""


class GameError(Exception):
    """Base class for rejected game operations."""

    message = "That action isn't allowed right now."

    def __init__(self, message: str = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class SelfChallengeError(GameError):
    message = "You cannot challenge yourself!"


class BotOpponentError(GameError):
    message = "You cannot challenge a bot!"


class DuplicateSessionError(GameError):
    message = "You already have an active game with this player!"


class SessionNotFoundError(GameError):
    message = "This game is no longer active."


class NotParticipantError(GameError):
    message = "You are not part of this game!"


class UnauthorizedResponderError(GameError):
    message = "Only the challenged player can respond to this challenge."


class WrongPhaseError(GameError):
    message = "The game is not in the right phase for that!"


class AlreadyChoseError(GameError):
    message = "You have already made your choice!"


class NotYourTurnError(GameError):
    message = "It's not your turn to upgrade!"


class InvalidUpgradeItemError(GameError):
    message = "This item is already upgraded or invalid!"


class InvalidChoiceError(GameError):
    message = "That item can't be played in this game!"
