"""
Pytest fixtures for Rock Paper Crane tests.
"""

import pytest
import pytest_asyncio

from game.events import Player
from game.expiry import ExpiryScheduler
from game.rules import get_rules
from game.session import GameSession
from game.session_manager import SessionRegistry
import config

TEST_TIMEOUT = 0.05


@pytest.fixture
def alice() -> Player:
    return Player(id="111", name="Alice")


@pytest.fixture
def bob() -> Player:
    return Player(id="222", name="Bob")


@pytest.fixture
def carol() -> Player:
    return Player(id="333", name="Carol")


@pytest.fixture
def robot() -> Player:
    return Player(id="999", name="Helper Bot", bot=True)


def _build_session(challenger: Player, challenged: Player, variant: str, session_id: str = "s1") -> GameSession:
    """Build a session directly, without a registry."""
    return GameSession(
        session_id=session_id,
        channel_id="chan",
        challenger=challenger,
        challenged=challenged,
        rules=get_rules(variant),
    )


@pytest.fixture
def make_session():
    """Factory for sessions that bypass the registry."""
    return _build_session


@pytest.fixture
def crane_session(alice, bob) -> GameSession:
    """An accepted crane-variant session, ready for round 1."""
    session = _build_session(alice, bob, config.VARIANT_CRANE)
    session.accept(bob.id)
    return session


@pytest.fixture
def classic_session(alice, bob) -> GameSession:
    """An accepted classic session, ready for round 1."""
    session = _build_session(alice, bob, config.VARIANT_CLASSIC)
    session.accept(bob.id)
    return session


@pytest_asyncio.fixture
async def registry():
    """A registry with a short challenge timeout, shut down after the test."""
    registry = SessionRegistry(ExpiryScheduler(timeout=TEST_TIMEOUT))
    yield registry
    registry.shutdown()
