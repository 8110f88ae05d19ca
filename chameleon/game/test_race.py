"""
Unit tests for the Chameleon King rule engine.

Tests PieceType, Card, Player and GameState with coverage of dealing and
reshuffling, movement and wildcard chains, collisions, action handling and
deep cloning.
"""

import dataclasses
import logging
from collections import deque

import numpy as np
import pytest

from chameleon.game.constants import (
    BOARD_SIZE,
    DECK_SIZE,
    NO_CARD,
    NO_PLAYER,
    NUM_WILDCARD_SQUARES,
    START_POSITION,
    STARTER_HAND,
    build_deck_manifest,
)
from chameleon.game.race import (
    Card,
    ChameleonGameException,
    GameState,
    GameStateException,
    PieceType,
    Player,
    WildcardEffect,
)


# Squares no test below ever lands on
FAR_WILDCARDS = {30, 31, 32, 33, 34, 35, 36, 37}


def make_game(seed=0, wildcards=None):
    """Two-player game with a known wildcard layout."""
    game = GameState(seed=seed)
    game.add_player("Ana")
    game.add_player("Bot", is_ai=True)
    game.wildcard_squares = set(FAR_WILDCARDS if wildcards is None else wildcards)
    return game


class ScriptedGameState(GameState):
    """GameState whose wildcard effects follow a fixed script."""

    def __init__(self, effects, **kwargs):
        super().__init__(**kwargs)
        self.script = list(effects)

    def resolve_wildcard(self, player, effect=None):
        return super().resolve_wildcard(player, self.script.pop(0))


def make_scripted_game(effects, wildcards):
    game = ScriptedGameState(effects, seed=0)
    game.add_player("Ana")
    game.add_player("Bot", is_ai=True)
    game.wildcard_squares = set(wildcards)
    return game


# ============================================================================
# Test PieceType and Card
# ============================================================================


class TestPieceType:
    """Test PieceType move distances."""

    def test_move_distances(self):
        """Test every piece maps to its distance."""
        assert PieceType.KING.move_distance == 0
        assert PieceType.PAWN.move_distance == 1
        assert PieceType.KNIGHT.move_distance == 4
        assert PieceType.ROOK.move_distance == 6
        assert PieceType.BISHOP.move_distance == 8
        assert PieceType.QUEEN.move_distance == 12

    def test_string_representation(self):
        assert str(PieceType.QUEEN) == "Queen"


class TestCard:
    """Test Card class functionality."""

    def test_for_piece(self):
        """Test canonical card construction."""
        card = Card.for_piece(PieceType.ROOK)
        assert card.piece is PieceType.ROOK
        assert card.label == "Rook (move 6)"
        assert card.move_distance == 6
        assert str(card) == "Rook (move 6)"

    def test_clone_is_equal_but_distinct(self):
        card = Card.for_piece(PieceType.BISHOP)
        twin = card.clone()
        assert twin == card
        assert twin is not card

    def test_card_is_immutable(self):
        card = Card.for_piece(PieceType.PAWN)
        with pytest.raises(dataclasses.FrozenInstanceError):
            card.move_distance = 3

    def test_invalid_piece(self):
        """Test that a non-PieceType piece raises ValueError."""
        with pytest.raises(ValueError, match="Invalid piece"):
            Card("Queen", "Queen (move 12)", 12)

    def test_negative_distance(self):
        with pytest.raises(ValueError, match="Invalid move distance"):
            Card(PieceType.PAWN, "Broken pawn", -1)

    def test_distance_may_disagree_with_piece(self):
        """Test stored distance is not forced to match the piece table."""
        card = Card(PieceType.PAWN, "Lucky pawn", 3)
        assert card.move_distance == 3
        assert card.piece.move_distance == 1


# ============================================================================
# Test Player Class
# ============================================================================


class TestPlayer:
    """Test Player class functionality."""

    def test_player_creation(self):
        player = Player("Ana")
        assert player.name == "Ana"
        assert player.hand == []
        assert player.piece is PieceType.KING
        assert player.position == START_POSITION
        assert player.has_won is False
        assert player.blocked_rounds == 0
        assert player.is_ai is False
        assert player.is_blocked is False

    def test_play_card(self):
        """Test playing a card transforms and removes it."""
        player = Player("Ana")
        player.receive_card(Card.for_piece(PieceType.PAWN))
        player.receive_card(Card.for_piece(PieceType.QUEEN))

        played = player.play_card(1)

        assert played.piece is PieceType.QUEEN
        assert player.piece is PieceType.QUEEN
        assert player.movement() == 12
        assert [c.piece for c in player.hand] == [PieceType.PAWN]

    def test_play_card_invalid_index(self):
        player = Player("Ana")
        with pytest.raises(ValueError, match="no card at index 0"):
            player.play_card(0)

    def test_reset_piece(self):
        player = Player("Ana")
        player.transform(PieceType.ROOK)
        player.reset_piece()
        assert player.piece is PieceType.KING
        assert player.movement() == 0

    def test_clone_is_independent(self):
        """Test Player.clone copies every field and every card."""
        player = Player("Bot", is_ai=True)
        player.receive_card(Card.for_piece(PieceType.KNIGHT))
        player.transform(PieceType.BISHOP)
        player.position = 17
        player.blocked_rounds = 1

        twin = player.clone()
        assert twin.to_dict() == player.to_dict()
        assert twin.hand[0] is not player.hand[0]

        twin.hand.clear()
        twin.position = 40
        assert len(player.hand) == 1
        assert player.position == 17

    def test_player_string_representation(self):
        player = Player("Ana")
        assert "Ana" in str(player)
        assert "pos=1" in repr(player)


# ============================================================================
# Test GameState setup and dealing
# ============================================================================


class TestGameStateSetup:
    """Test construction, seating and seeding."""

    def test_initialization(self):
        game = GameState(seed=1)
        assert len(game.draw_pile) == DECK_SIZE == 27
        assert len(game.wildcard_squares) == NUM_WILDCARD_SQUARES
        assert all(START_POSITION <= s <= BOARD_SIZE for s in game.wildcard_squares)
        assert game.finished is False
        assert game.current_player_index == NO_PLAYER
        assert game.deck_generations == 1

    def test_deck_composition(self):
        game = GameState(seed=2)
        pieces = sorted(card.piece.value for card in game.draw_pile)
        assert pieces == sorted(build_deck_manifest())

    def test_bare_state(self):
        """Test initialize=False builds neither deck nor wildcards."""
        game = GameState(initialize=False)
        assert len(game.draw_pile) == 0
        assert game.wildcard_squares == set()
        assert game.deck_generations == 0

    def test_add_player_deals_starter_hand(self):
        game = GameState(seed=0)
        player = game.add_player("Ana")
        assert player is game.players[0]
        assert [c.piece.value for c in player.hand] == STARTER_HAND
        assert player.position == START_POSITION
        assert player.piece is PieceType.KING
        # Starter cards do not come from the draw pile
        assert len(game.draw_pile) == DECK_SIZE

    def test_third_player_ignored(self, caplog):
        game = make_game()
        with caplog.at_level(logging.WARNING, logger="chameleon.game.race"):
            assert game.add_player("Extra") is None
        assert len(game.players) == 2
        assert "already has 2 players" in caplog.text

    def test_same_seed_same_game(self):
        """Test a seeded state is reproducible."""
        assert GameState(seed=5).get_game_state() == GameState(seed=5).get_game_state()

    def test_exception_hierarchy(self):
        assert issubclass(GameStateException, ChameleonGameException)


class TestDealing:
    """Test drawing, reshuffling and deck conservation."""

    def test_deal_takes_front_card(self):
        game = make_game()
        player = game.players[0]
        top = game.draw_pile[0]

        dealt = game.deal_card(player)

        assert dealt is top
        assert player.hand[-1] is top
        assert len(game.draw_pile) == DECK_SIZE - 1

    def test_reshuffle_when_pile_runs_out(self):
        """Test the last card is dealt, then a fresh deck is built for the next."""
        game = make_game()
        player = game.players[0]
        last = Card.for_piece(PieceType.BISHOP)
        game.draw_pile = deque([last])

        assert game.deal_card(player) is last
        assert len(game.draw_pile) == 0
        assert game.deck_generations == 1

        game.deal_card(player)

        assert game.deck_generations == 2
        assert len(game.draw_pile) == DECK_SIZE - 1
        assert len(player.hand) == len(STARTER_HAND) + 2

    def test_deck_conservation_across_generations(self):
        game = make_game(seed=11)
        starters = len(STARTER_HAND) * len(game.players)

        for i in range(80):
            game.deal_card(game.players[i % 2])
            if i % 7 == 0:
                game.resolve_wildcard(game.players[i % 2], WildcardEffect.STEAL)
            assert game.cards_in_circulation() == DECK_SIZE * game.deck_generations + starters

        assert game.deck_generations >= 3


# ============================================================================
# Test movement and wildcards
# ============================================================================


class TestMovement:
    """Test move(), win detection and wildcard chains."""

    def test_king_does_not_move(self):
        game = make_game()
        player = game.players[0]
        assert game.move(player) == []
        assert player.position == START_POSITION

    def test_plain_move(self):
        game = make_game()
        player = game.players[0]
        player.transform(PieceType.KNIGHT)
        game.move(player)
        assert player.position == 5
        assert player.has_won is False

    def test_queen_from_sixty_wins_uncapped(self):
        """Test a finishing Queen ends past the last square and wins."""
        game = make_game()
        player = game.players[0]
        player.position = 60
        player.hand = [Card.for_piece(PieceType.QUEEN)]

        result = game.take_turn(player, 0)

        assert player.position == 72
        assert player.has_won is True
        assert result.won is True
        assert game.finished is True
        assert game.winner is player
        assert player.hand == []

    def test_exact_landing_on_last_square_wins(self):
        game = make_game()
        player = game.players[0]
        player.position = 52
        player.transform(PieceType.QUEEN)
        game.move(player)
        assert player.position == BOARD_SIZE
        assert player.has_won is True

    def test_chain_repeats_until_player_leaves_wildcard(self):
        """Test effects that keep the player in place roll again."""
        game = make_scripted_game(
            [WildcardEffect.STEAL, WildcardEffect.BLOCK, WildcardEffect.SETBACK],
            wildcards={5},
        )
        player, opponent = game.players
        player.transform(PieceType.KNIGHT)

        outcomes = game.move(player)

        assert [o.effect for o in outcomes] == [
            WildcardEffect.STEAL,
            WildcardEffect.BLOCK,
            WildcardEffect.SETBACK,
        ]
        assert player.blocked_rounds == 1
        assert len(player.hand) == len(STARTER_HAND) + 1
        assert len(opponent.hand) == len(STARTER_HAND) - 1
        assert 1 <= player.position <= 4
        assert game.script == []

    def test_chain_stops_on_win(self):
        game = make_scripted_game([WildcardEffect.ADVANCE] * 4, wildcards={60, 61, 62, 63})
        player = game.players[0]
        player.position = 56
        player.transform(PieceType.KNIGHT)

        outcomes = game.move(player)

        assert player.has_won is True
        assert player.position == BOARD_SIZE
        assert 1 <= len(outcomes) <= 4
        assert outcomes[-1].position == BOARD_SIZE

    def test_random_chain_settles(self):
        for seed in range(20):
            game = make_game(seed=seed, wildcards={5, 9, 13, 17, 21, 25, 29, 33})
            player = game.players[0]
            player.transform(PieceType.KNIGHT)

            outcomes = game.move(player)

            assert len(outcomes) >= 1
            assert player.has_won or player.position not in game.wildcard_squares
            assert player.has_won or START_POSITION <= player.position <= BOARD_SIZE


class TestWildcardEffects:
    """Test each wildcard effect in isolation."""

    def test_setback_floors_at_start(self):
        game = make_game()
        player = game.players[0]
        player.position = 3

        outcome = game.resolve_wildcard(player, WildcardEffect.SETBACK)

        assert 1 <= outcome.amount <= 5
        assert player.position == max(START_POSITION, 3 - outcome.amount)
        assert outcome.position == player.position

    def test_advance_caps_at_last_square(self):
        game = make_game()
        player = game.players[0]
        player.position = 62

        outcome = game.resolve_wildcard(player, WildcardEffect.ADVANCE)

        assert 1 <= outcome.amount <= 5
        assert player.position == min(BOARD_SIZE, 62 + outcome.amount)
        assert player.has_won == (player.position >= BOARD_SIZE)

    def test_steal_copies_random_card(self):
        game = make_game()
        player, opponent = game.players
        original_cards = list(opponent.hand)

        outcome = game.resolve_wildcard(player, WildcardEffect.STEAL)

        assert len(opponent.hand) == len(STARTER_HAND) - 1
        assert len(player.hand) == len(STARTER_HAND) + 1
        assert outcome.victim == "Bot"
        assert outcome.card in original_cards
        assert all(outcome.card is not card for card in original_cards)
        assert player.hand[-1] is outcome.card

    def test_steal_from_empty_hand_is_noop(self):
        game = make_game()
        player, opponent = game.players
        opponent.hand = []

        outcome = game.resolve_wildcard(player, WildcardEffect.STEAL)

        assert outcome.card is None
        assert len(player.hand) == len(STARTER_HAND)

    def test_steal_without_opponent_is_noop(self):
        game = GameState(seed=0)
        player = game.add_player("Solo")

        outcome = game.resolve_wildcard(player, WildcardEffect.STEAL)

        assert outcome.card is None
        assert len(player.hand) == len(STARTER_HAND)

    def test_teleport_stays_on_board(self):
        game = make_game()
        player = game.players[0]
        for _ in range(50):
            player.has_won = False
            game.resolve_wildcard(player, WildcardEffect.TELEPORT)
            assert START_POSITION <= player.position <= BOARD_SIZE
            assert player.has_won == (player.position == BOARD_SIZE)

    def test_block(self):
        game = make_game()
        player = game.players[0]
        game.resolve_wildcard(player, WildcardEffect.BLOCK)
        assert player.blocked_rounds == 1
        assert player.is_blocked is True

    def test_random_effect(self):
        game = make_game()
        seen = {game.resolve_wildcard(game.players[0]).effect for _ in range(200)}
        assert seen == set(WildcardEffect)


# ============================================================================
# Test collisions and actions
# ============================================================================


class TestCollisions:
    """Test resolve_collisions()."""

    def test_capture_sends_opponent_home(self):
        game = make_game()
        attacker, victim = game.players
        attacker.position = 20
        victim.position = 20

        captured = game.resolve_collisions(attacker)

        assert captured == [victim]
        assert victim.position == START_POSITION
        assert attacker.position == 20

    def test_no_capture_on_start_square(self):
        game = make_game()
        assert game.resolve_collisions(game.players[0]) == []

    def test_no_capture_after_win(self):
        game = make_game()
        attacker, victim = game.players
        attacker.position = victim.position = 64
        attacker.has_won = True

        assert game.resolve_collisions(attacker) == []
        assert victim.position == 64

    def test_different_squares(self):
        game = make_game()
        attacker, victim = game.players
        attacker.position = 10
        victim.position = 11

        assert game.resolve_collisions(attacker) == []
        assert victim.position == 11

    def test_take_turn_capture(self):
        game = make_game()
        attacker, victim = game.players
        victim.position = 5

        result = game.take_turn(attacker, 2)  # Knight from square 1

        assert attacker.position == 5
        assert result.captured == [victim]
        assert victim.position == START_POSITION


class TestActions:
    """Test possible_actions(), apply_action() and take_turn()."""

    def test_possible_actions(self):
        game = make_game()
        assert game.possible_actions(game.players[0]) == [NO_CARD, 0, 1, 2]

    def test_possible_actions_empty_hand(self):
        game = make_game()
        game.players[0].hand = []
        assert game.possible_actions(game.players[0]) == [NO_CARD]

    def test_apply_valid_action(self):
        game = make_game()
        player = game.players[0]
        card = game.apply_action(player, 1)
        assert card.piece is PieceType.ROOK
        assert player.piece is PieceType.ROOK
        assert len(player.hand) == 2

    def test_no_card_action(self):
        game = make_game()
        player = game.players[0]
        assert game.apply_action(player, NO_CARD) is None
        assert len(player.hand) == 3

    @pytest.mark.parametrize("action", [3, 17, -5])
    def test_out_of_range_action_plays_nothing(self, action):
        game = make_game()
        player = game.players[0]
        assert game.apply_action(player, action) is None
        assert len(player.hand) == 3
        assert player.piece is PieceType.KING

    def test_take_turn_unseated_player(self):
        game = make_game()
        with pytest.raises(GameStateException, match="not seated"):
            game.take_turn(Player("Ghost"), NO_CARD)

    def test_take_turn_reports_card_and_distance(self):
        game = make_game()
        player = game.players[0]

        result = game.take_turn(player, 1)

        assert result.card.piece is PieceType.ROOK
        assert result.distance == 6
        assert player.position == 7
        assert result.won is False
        assert game.finished is False

    def test_reset_pieces(self):
        game = make_game()
        for player in game.players:
            player.transform(PieceType.QUEEN)
        game.reset_pieces()
        assert all(p.piece is PieceType.KING for p in game.players)

    def test_positions_stay_on_board(self):
        """Test random turns keep every unfinished player on the board."""
        for seed in range(10):
            game = GameState(seed=seed)
            game.add_player("Ana")
            game.add_player("Bot")
            rng = np.random.default_rng(seed)
            for _ in range(200):
                if game.finished:
                    break
                player = game.players[int(rng.integers(2))]
                game.deal_card(player)
                action = int(rng.integers(-1, len(player.hand)))
                game.take_turn(player, action)
                game.reset_pieces()
                for p in game.players:
                    assert len(p.hand) >= 0
                    if not p.has_won:
                        assert START_POSITION <= p.position <= BOARD_SIZE


# ============================================================================
# Test cloning
# ============================================================================


class TestClone:
    """Test GameState.clone() produces fully independent copies."""

    def test_clone_is_structurally_equal(self):
        game = make_game(seed=4)
        game.current_player_index = 1
        game.deal_card(game.players[0])
        game.players[1].position = 12

        twin = game.clone()

        assert twin.get_game_state() == game.get_game_state()
        assert twin.wildcard_squares == game.wildcard_squares

    def test_clone_shares_no_mutable_structure(self):
        game = make_game(seed=4)
        twin = game.clone()

        assert twin.players[0] is not game.players[0]
        assert twin.players[0].hand is not game.players[0].hand
        assert twin.players[0].hand[0] is not game.players[0].hand[0]
        assert twin.draw_pile is not game.draw_pile
        assert twin.draw_pile[0] is not game.draw_pile[0]
        assert twin.wildcard_squares is not game.wildcard_squares

    def test_mutating_clone_leaves_original(self):
        game = make_game(seed=4)
        before = game.get_game_state()

        twin = game.clone()
        twin.players[0].position = 40
        twin.players[0].hand.pop()
        twin.players[1].blocked_rounds = 1
        twin.deal_card(twin.players[1])
        twin.wildcard_squares.add(2)
        twin.finished = True
        twin.current_player_index = 0

        assert game.get_game_state() == before

    def test_mutating_original_leaves_clone(self):
        game = make_game(seed=4)
        twin = game.clone()
        before = twin.get_game_state()

        game.take_turn(game.players[0], 0)
        game.deal_card(game.players[1])

        assert twin.get_game_state() == before

    def test_clones_diverge(self):
        """Test sibling clones draw from different random streams."""
        game = make_game(seed=9)
        first = game.clone().rng.integers(1 << 30, size=8)
        second = game.clone().rng.integers(1 << 30, size=8)
        assert not np.array_equal(first, second)

    def test_seeded_clones_replay(self):
        first = GameState(seed=3).clone().rng.integers(1 << 30, size=8)
        second = GameState(seed=3).clone().rng.integers(1 << 30, size=8)
        assert np.array_equal(first, second)
