"""
Tests for the session state machine.

Tests:
- Challenge handshake
- Round resolution (classic and crane)
- Upgrade phase
- Rejected operations leave state untouched
"""

import copy

import pytest

from game.errors import (
    AlreadyChoseError,
    BotOpponentError,
    InvalidChoiceError,
    InvalidUpgradeItemError,
    NotParticipantError,
    NotYourTurnError,
    SelfChallengeError,
    UnauthorizedResponderError,
    WrongPhaseError,
)
from game.events import (
    ChallengeAccepted,
    ChallengeDeclined,
    ChallengeExpired,
    ChoiceRecorded,
    GameCompleted,
    RoundResolved,
    Tally,
    UpgradeApplied,
)
from game.rules import Item, Outcome
from game.session import TRANSITIONS, GameSession, Operation, Phase
import config


def play_round(session: GameSession, challenger_item, challenged_item):
    """Submit both picks and return all events."""
    events = session.submit_choice(session.challenger.id, challenger_item)
    events += session.submit_choice(session.challenged.id, challenged_item)
    return events


def round_event(events) -> RoundResolved:
    return next(e for e in events if isinstance(e, RoundResolved))


def state_of(session: GameSession) -> dict:
    return copy.deepcopy({k: v for k, v in vars(session).items() if k != 'rules'})


class TestPropose:
    """Tests for creating a challenge."""

    def test_propose_starts_proposed(self, alice, bob):
        session = GameSession.propose(alice, bob, "chan", config.VARIANT_CRANE)
        assert session.phase is Phase.PROPOSED
        assert session.round == 1
        assert session.session_id.startswith(f"{alice.id}-{bob.id}-")
        assert session.upgrades[alice.id].count == 0
        assert session.tally == Tally()

    def test_cannot_challenge_self(self, alice):
        with pytest.raises(SelfChallengeError):
            GameSession.propose(alice, alice, "chan")

    def test_cannot_challenge_bot(self, alice, robot):
        with pytest.raises(BotOpponentError):
            GameSession.propose(alice, robot, "chan")

    def test_unknown_variant(self, alice, bob):
        with pytest.raises(ValueError):
            GameSession.propose(alice, bob, "chan", "tic_tac_toe")


class TestRespond:
    """Tests for accepting and declining."""

    def test_accept_moves_to_playing(self, alice, bob, make_session):
        session = make_session(alice, bob, config.VARIANT_CRANE)
        events = session.accept(bob.id)
        assert session.phase is Phase.PLAYING
        assert session.round == 1
        assert events == [ChallengeAccepted(session.session_id, bob)]

    def test_decline_is_terminal(self, alice, bob, make_session):
        session = make_session(alice, bob, config.VARIANT_CRANE)
        events = session.decline(bob.id)
        assert session.phase is Phase.DECLINED
        assert session.is_terminal
        assert session.ended_at is not None
        assert events == [ChallengeDeclined(session.session_id, bob)]

    def test_only_challenged_player_responds(self, alice, bob, carol, make_session):
        session = make_session(alice, bob, config.VARIANT_CRANE)
        for user in (alice, carol):
            with pytest.raises(UnauthorizedResponderError):
                session.accept(user.id)
        assert session.phase is Phase.PROPOSED

    def test_cannot_accept_twice(self, crane_session, bob):
        with pytest.raises(WrongPhaseError):
            crane_session.accept(bob.id)

    def test_cannot_choose_before_accept(self, alice, bob, make_session):
        session = make_session(alice, bob, config.VARIANT_CRANE)
        with pytest.raises(WrongPhaseError):
            session.submit_choice(alice.id, Item.ROCK)

    def test_expire_from_proposed(self, alice, bob, make_session):
        session = make_session(alice, bob, config.VARIANT_CLASSIC)
        assert session.expire() == [ChallengeExpired(session.session_id)]
        assert session.phase is Phase.EXPIRED

    def test_start_skips_handshake(self, alice, bob, make_session):
        session = make_session(alice, bob, config.VARIANT_CRANE)
        session.start()
        assert session.phase is Phase.PLAYING


class TestClassicRounds:
    """Tests for the three-item game."""

    def test_rock_beats_scissors_and_completes(self, classic_session, alice):
        events = play_round(classic_session, "rock", "scissors")

        resolved = round_event(events)
        assert resolved.outcome is Outcome.A_WINS
        assert resolved.winner == alice
        assert classic_session.phase is Phase.COMPLETED
        assert classic_session.winner == alice
        assert classic_session.tally == Tally(challenger_wins=1)

        completed = events[-1]
        assert isinstance(completed, GameCompleted)
        assert completed.winner == alice

    def test_paper_tie_keeps_playing(self, classic_session):
        events = play_round(classic_session, "paper", "paper")

        assert round_event(events).outcome is Outcome.TIE
        assert classic_session.phase is Phase.PLAYING
        assert classic_session.ties == 1
        assert classic_session.round == 2
        assert classic_session.choices == {}

    def test_bomb_is_not_playable(self, classic_session, alice):
        with pytest.raises(InvalidChoiceError):
            classic_session.submit_choice(alice.id, "bomb")
        assert classic_session.choices == {}

    def test_no_upgrade_phase(self, classic_session, bob):
        play_round(classic_session, "rock", "paper")
        assert classic_session.pending_upgrader is None
        assert classic_session.winner == bob


class TestCraneRounds:
    """Tests for the upgrade variant."""

    def test_first_choice_reveals_nothing(self, crane_session, alice):
        events = crane_session.submit_choice(alice.id, "rock")
        assert events == [ChoiceRecorded(crane_session.session_id, alice, 1)]
        assert crane_session.phase is Phase.PLAYING
        assert crane_session.has_chosen(alice.id)
        assert crane_session.snapshot().ready == frozenset({alice.id})

    def test_second_choice_same_round_rejected(self, crane_session, alice):
        crane_session.submit_choice(alice.id, "rock")
        with pytest.raises(AlreadyChoseError):
            crane_session.submit_choice(alice.id, "paper")
        assert crane_session.choices == {alice.id: Item.ROCK}

    def test_outsider_cannot_choose(self, crane_session, carol):
        with pytest.raises(NotParticipantError):
            crane_session.submit_choice(carol.id, "rock")

    def test_upgraded_items_cannot_be_picked_directly(self, crane_session, alice):
        with pytest.raises(InvalidChoiceError):
            crane_session.submit_choice(alice.id, "wall")

    def test_winner_must_upgrade(self, crane_session, alice):
        events = play_round(crane_session, "rock", "scissors")

        assert round_event(events).winner == alice
        assert crane_session.phase is Phase.UPGRADING
        assert crane_session.pending_upgrader == alice.id
        assert crane_session.round == 2
        assert crane_session.snapshot().pending_upgrader == alice

    def test_wall_beats_bomb_after_upgrade(self, crane_session, alice):
        play_round(crane_session, "rock", "scissors")
        events = crane_session.submit_upgrade(alice.id, "rock")
        assert events == [UpgradeApplied(crane_session.session_id, alice, Item.ROCK, Item.WALL)]
        assert crane_session.phase is Phase.PLAYING
        assert crane_session.pending_upgrader is None

        resolved = round_event(play_round(crane_session, "rock", "bomb"))
        assert resolved.choices[alice.id] is Item.WALL
        assert resolved.outcome is Outcome.A_WINS
        assert crane_session.wins[alice.id] == 2

    def test_tie_skips_upgrade(self, crane_session):
        play_round(crane_session, "bomb", "bomb")
        assert crane_session.phase is Phase.PLAYING
        assert crane_session.pending_upgrader is None
        assert crane_session.ties == 1

    def test_resolution_is_commutative(self, alice, bob, make_session):
        first = make_session(alice, bob, config.VARIANT_CRANE, "first")
        second = make_session(alice, bob, config.VARIANT_CRANE, "second")
        for session in (first, second):
            session.accept(bob.id)
            play_round(session, "rock", "scissors")
            session.submit_upgrade(alice.id, "rock")

        first.submit_choice(alice.id, "rock")
        a_then_b = round_event(first.submit_choice(bob.id, "paper"))
        second.submit_choice(bob.id, "paper")
        b_then_a = round_event(second.submit_choice(alice.id, "rock"))

        assert a_then_b.outcome is b_then_a.outcome
        assert a_then_b.choices == b_then_a.choices
        assert a_then_b.tally == b_then_a.tally
        assert first.phase is second.phase
        assert first.round == second.round


class TestUpgrades:
    """Tests for the upgrade phase and game completion."""

    def test_only_pending_upgrader(self, crane_session, bob, carol):
        play_round(crane_session, "rock", "scissors")
        for user in (bob, carol):
            with pytest.raises(NotYourTurnError):
                crane_session.submit_upgrade(user.id, "rock")
        assert crane_session.phase is Phase.UPGRADING

    def test_upgrade_outside_upgrade_phase(self, crane_session, alice):
        with pytest.raises(WrongPhaseError):
            crane_session.submit_upgrade(alice.id, "rock")

    def test_cannot_upgrade_twice(self, crane_session, alice):
        play_round(crane_session, "rock", "scissors")
        crane_session.submit_upgrade(alice.id, "rock")
        play_round(crane_session, "rock", "scissors")

        before = state_of(crane_session)
        with pytest.raises(InvalidUpgradeItemError):
            crane_session.submit_upgrade(alice.id, "rock")
        with pytest.raises(InvalidUpgradeItemError):
            crane_session.submit_upgrade(alice.id, "wall")
        assert state_of(crane_session) == before

    def test_first_to_four_upgrades_wins(self, crane_session, alice, bob):
        rounds = [
            ("rock", "scissors", "rock"),      # rock beats scissors
            ("rock", "scissors", "paper"),     # wall beats scissors
            ("paper", "scissors", "scissors"), # clay beats scissors
            ("scissors", "paper", "bomb"),     # fire beats paper
        ]
        events = []
        for mine, theirs, upgrade in rounds:
            assert crane_session.phase is Phase.PLAYING
            play_round(crane_session, mine, theirs)
            assert crane_session.pending_upgrader == alice.id
            events = crane_session.submit_upgrade(alice.id, upgrade)

        assert crane_session.phase is Phase.COMPLETED
        assert crane_session.upgrades[alice.id].is_complete
        assert crane_session.winner == alice
        assert events[-1] == GameCompleted(
            crane_session.session_id, alice, Tally(challenger_wins=4), (alice, bob)
        )

    def test_completed_session_accepts_nothing(self, classic_session, alice, bob):
        play_round(classic_session, "rock", "scissors")
        with pytest.raises(WrongPhaseError):
            classic_session.submit_choice(alice.id, "rock")
        with pytest.raises(WrongPhaseError):
            classic_session.expire()
        with pytest.raises(WrongPhaseError):
            classic_session.accept(bob.id)


class TestTransitionTable:
    """Tests for the phase transition table."""

    def test_terminal_phases_have_no_transitions(self):
        for phase, _ in TRANSITIONS:
            assert phase not in (Phase.COMPLETED, Phase.DECLINED, Phase.EXPIRED)

    def test_every_active_phase_can_expire(self):
        for phase in (Phase.PROPOSED, Phase.PLAYING, Phase.UPGRADING):
            assert TRANSITIONS[(phase, Operation.EXPIRE)] == frozenset({Phase.EXPIRED})
