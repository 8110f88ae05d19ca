"""
Core game logic for the Chameleon King race.

This module implements the complete rule engine: the PieceType and Card value
types, the Player record, and the GameState aggregate that owns drawing,
movement, wildcard resolution, collisions, win detection and deep cloning.

Every source of randomness is the numpy Generator owned by a GameState. A
clone receives its own Generator seeded from a SeedSequence spawned off the
original's, so cloned branches diverge independently while a seeded game
remains replayable from the same seed.
"""

from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Deque, Dict, List, Optional, Set, Union
import logging

import numpy as np

from chameleon.game.constants import (
    BOARD_SIZE,
    MAX_PLAYERS,
    MOVE_DISTANCES,
    NO_CARD,
    NO_PLAYER,
    NUM_WILDCARD_SQUARES,
    START_POSITION,
    STARTER_HAND,
    WILDCARD_SHIFT_RANGE,
    build_deck_manifest,
)

logger = logging.getLogger(__name__)

SeedLike = Optional[Union[int, np.random.SeedSequence]]


# ============================================================================
# Custom Exceptions
# ============================================================================


class ChameleonGameException(Exception):
    """Base exception for Chameleon King game errors."""

    pass


class GameStateException(ChameleonGameException):
    """Raised when the game is in an invalid state for the requested action."""

    pass


# ============================================================================
# Pieces and Cards
# ============================================================================


class PieceType(Enum):
    """Chess piece a player can transform into. King never moves."""

    KING = 'King'
    PAWN = 'Pawn'
    KNIGHT = 'Knight'
    ROOK = 'Rook'
    BISHOP = 'Bishop'
    QUEEN = 'Queen'

    @property
    def move_distance(self) -> int:
        """Squares advanced by a player transformed into this piece."""
        return MOVE_DISTANCES[self.value]

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Card:
    """
    Immutable transformation card.

    Attributes:
        piece: Piece the holder transforms into when playing the card
        label: Human readable description, e.g. 'Queen (move 12)'
        move_distance: Advertised move distance

    Note:
        move_distance is stored alongside the piece and is not forced to agree
        with PieceType.move_distance. Movement always uses the piece table.
    """

    piece: PieceType
    label: str
    move_distance: int

    def __post_init__(self):
        """Validate card creation."""
        if not isinstance(self.piece, PieceType):
            raise ValueError(f"Invalid piece: {self.piece!r}. Must be a PieceType")
        if self.move_distance < 0:
            raise ValueError(
                f"Invalid move distance: {self.move_distance}. Must be non-negative"
            )

    @classmethod
    def for_piece(cls, piece: PieceType) -> "Card":
        """
        Build the canonical card for a piece.

        Args:
            piece: Piece the card transforms into

        Returns:
            Card whose label and distance follow the piece table

        Example:
            >>> Card.for_piece(PieceType.QUEEN).label
            'Queen (move 12)'
        """
        return cls(piece, f"{piece.value} (move {piece.move_distance})", piece.move_distance)

    def clone(self) -> "Card":
        """Return an equal but distinct Card instance."""
        return Card(self.piece, self.label, self.move_distance)

    def __str__(self) -> str:
        return self.label


# ============================================================================
# Wildcard Effects
# ============================================================================


class WildcardEffect(Enum):
    """The five equally likely effects of landing on a wildcard square."""

    SETBACK = 'setback'
    ADVANCE = 'advance'
    STEAL = 'steal'
    TELEPORT = 'teleport'
    BLOCK = 'block'


WILDCARD_EFFECTS: List[WildcardEffect] = list(WildcardEffect)


@dataclass
class WildcardOutcome:
    """
    What a single wildcard resolution did.

    Attributes:
        effect: Effect that was applied
        position: Square the player ended on
        amount: Squares moved for SETBACK/ADVANCE, None otherwise
        card: Copy of the card received through STEAL (None if nothing stolen)
        victim: Name of the player robbed by STEAL
    """

    effect: WildcardEffect
    position: int = START_POSITION
    amount: Optional[int] = None
    card: Optional[Card] = None
    victim: Optional[str] = None


@dataclass
class TurnResult:
    """Summary of one take_turn call, used for narration by the console layer."""

    player: "Player"
    card: Optional[Card] = None
    distance: int = 0
    wildcards: List[WildcardOutcome] = field(default_factory=list)
    captured: List["Player"] = field(default_factory=list)
    won: bool = False


# ============================================================================
# Player Class
# ============================================================================


class Player:
    """
    Player in a Chameleon King race.

    Attributes:
        name: Player identifier
        hand: Cards in hand, addressed by index when played
        piece: Piece the player is currently transformed into
        position: Square on the track (1-64, may exceed 64 once won)
        has_won: True once position reached or passed BOARD_SIZE
        blocked_rounds: Turns the player must still forfeit
        is_ai: Whether the MCTS planner chooses this player's cards
    """

    def __init__(self, name: str, is_ai: bool = False):
        """
        Initialize a player at the start square as a King.

        Args:
            name: Player identifier
            is_ai: Whether this seat is automated
        """
        self.name = name
        self.hand: List[Card] = []
        self.piece: PieceType = PieceType.KING
        self.position: int = START_POSITION
        self.has_won: bool = False
        self.blocked_rounds: int = 0
        self.is_ai = is_ai

    def receive_card(self, card: Card) -> None:
        """Add a card to the end of the hand."""
        self.hand.append(card)

    def transform(self, piece: PieceType) -> None:
        """Change the current piece."""
        self.piece = piece

    def reset_piece(self) -> None:
        """Return to King at the end of a round."""
        self.piece = PieceType.KING

    def play_card(self, index: int) -> Card:
        """
        Transform into the card at index and remove it from the hand.

        Args:
            index: Hand slot to play

        Returns:
            The card that was played

        Raises:
            ValueError: If index does not address a card in hand
        """
        if not 0 <= index < len(self.hand):
            raise ValueError(
                f"{self.name} has no card at index {index} (hand size {len(self.hand)})"
            )

        card = self.hand.pop(index)
        self.transform(card.piece)
        return card

    def movement(self) -> int:
        """Squares the current piece advances."""
        return self.piece.move_distance

    @property
    def is_blocked(self) -> bool:
        return self.blocked_rounds > 0

    def clone(self) -> "Player":
        """
        Deep copy of this player.

        Returns:
            Independent Player; hand cards are copied one by one
        """
        twin = Player(self.name, self.is_ai)
        twin.hand = [card.clone() for card in self.hand]
        twin.piece = self.piece
        twin.position = self.position
        twin.has_won = self.has_won
        twin.blocked_rounds = self.blocked_rounds
        return twin

    def to_dict(self) -> Dict[str, Any]:
        """Plain snapshot of every field."""
        return {
            'name': self.name,
            'hand': [card.label for card in self.hand],
            'piece': self.piece.value,
            'position': self.position,
            'has_won': self.has_won,
            'blocked_rounds': self.blocked_rounds,
            'is_ai': self.is_ai,
        }

    def __str__(self) -> str:
        """String representation."""
        return f"Player({self.name}, pos={self.position}, piece={self.piece}, cards={len(self.hand)})"

    def __repr__(self) -> str:
        """Developer representation."""
        return self.__str__()


# ============================================================================
# GameState Class
# ============================================================================


class GameState:
    """
    Authoritative snapshot of a two-player race.

    Owns the rule logic: drawing, movement, wildcard resolution, collision
    resolution, win detection and deep cloning.

    Attributes:
        players: Seated players (at most MAX_PLAYERS)
        draw_pile: FIFO queue of cards; the left end is the top of the pile
        wildcard_squares: The NUM_WILDCARD_SQUARES distinct special squares
        finished: True once any player has won
        current_player_index: Index of the player whose turn is being decided
            (NO_PLAYER before any turn)
        deck_generations: How many full decks have been built for this match
        rng: numpy Generator used for every random decision of this state
    """

    def __init__(self, initialize: bool = True, seed: SeedLike = None):
        """
        Initialize an empty match.

        Args:
            initialize: Build a shuffled deck and a wildcard layout. Pass False
                for a bare target that clone() fills in.
            seed: Integer seed or SeedSequence for this state's generator.
                None draws fresh entropy.
        """
        self.players: List[Player] = []
        self.draw_pile: Deque[Card] = deque()
        self.wildcard_squares: Set[int] = set()
        self.finished: bool = False
        self.current_player_index: int = NO_PLAYER
        self.deck_generations: int = 0

        if isinstance(seed, np.random.SeedSequence):
            self._seed_sequence = seed
        else:
            self._seed_sequence = np.random.SeedSequence(seed)
        self.rng = np.random.default_rng(self._seed_sequence)

        if initialize:
            self._build_deck()
            self._place_wildcards()

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def _build_deck(self) -> None:
        """Replace the draw pile with a freshly shuffled full deck."""
        cards = [Card.for_piece(PieceType(name)) for name in build_deck_manifest()]

        # Fisher-Yates, driven by this state's generator
        for n in range(len(cards) - 1, 0, -1):
            k = int(self.rng.integers(n + 1))
            cards[n], cards[k] = cards[k], cards[n]

        self.draw_pile = deque(cards)
        self.deck_generations += 1

    def _place_wildcards(self) -> None:
        """Pick NUM_WILDCARD_SQUARES distinct squares in [1, BOARD_SIZE]."""
        squares = self.rng.choice(
            np.arange(START_POSITION, BOARD_SIZE + 1),
            size=NUM_WILDCARD_SQUARES,
            replace=False,
        )
        self.wildcard_squares = {int(square) for square in squares}

    def add_player(self, name: str, is_ai: bool = False) -> Optional[Player]:
        """
        Seat a new player and give them the starter hand.

        Args:
            name: Player identifier
            is_ai: Whether the planner controls this player

        Returns:
            The new Player, or None if the table is already full
        """
        if len(self.players) >= MAX_PLAYERS:
            logger.warning(f"Game already has {MAX_PLAYERS} players; ignoring {name}")
            return None

        player = Player(name, is_ai)
        self.players.append(player)
        for piece_name in STARTER_HAND:
            player.receive_card(Card.for_piece(PieceType(piece_name)))

        logger.info(f"Player {name}{' [AI]' if is_ai else ''} joined with {len(player.hand)} starter cards")
        return player

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    @property
    def current_player(self) -> Optional[Player]:
        """Player whose turn is being decided, or None."""
        if 0 <= self.current_player_index < len(self.players):
            return self.players[self.current_player_index]
        return None

    @property
    def winner(self) -> Optional[Player]:
        """First player with has_won set, or None."""
        for player in self.players:
            if player.has_won:
                return player
        return None

    def opponent_of(self, player: Player) -> Optional[Player]:
        """The other seated player, or None if there is none."""
        for other in self.players:
            if other is not player:
                return other
        return None

    def is_wildcard(self, square: int) -> bool:
        return square in self.wildcard_squares

    def cards_in_circulation(self) -> int:
        """Cards in the draw pile plus every hand."""
        return len(self.draw_pile) + sum(len(p.hand) for p in self.players)

    def possible_actions(self, player: Player) -> List[int]:
        """
        Complete legal action set for a turn.

        Args:
            player: Player about to act

        Returns:
            NO_CARD followed by every valid hand index

        Example:
            >>> game = GameState(seed=0)
            >>> player = game.add_player("Ana")
            >>> game.possible_actions(player)
            [-1, 0, 1, 2]
        """
        return [NO_CARD] + list(range(len(player.hand)))

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def deal_card(self, player: Player) -> Card:
        """
        Hand the top card of the draw pile to a player.

        An empty pile is transparently replaced by a new shuffled deck first.

        Args:
            player: Player receiving the card

        Returns:
            The card dealt
        """
        if not self.draw_pile:
            logger.debug("Draw pile exhausted; shuffling a new deck")
            self._build_deck()

        card = self.draw_pile.popleft()
        player.receive_card(card)
        return card

    def move(self, player: Player) -> List[WildcardOutcome]:
        """
        Advance a player by their piece's distance and settle wildcards.

        Movement is uncapped, so a finishing move may end past BOARD_SIZE.
        While the player stands on a wildcard square another effect is rolled,
        which also covers chains where an effect lands on a second wildcard.
        The chain stops as soon as the player wins.

        Args:
            player: Player to move

        Returns:
            Wildcard outcomes in the order they were applied
        """
        outcomes: List[WildcardOutcome] = []
        distance = player.movement()
        if distance <= 0:
            return outcomes

        player.position += distance

        while player.position in self.wildcard_squares:
            outcomes.append(self.resolve_wildcard(player))
            if player.has_won:
                return outcomes

        if player.position >= BOARD_SIZE:
            player.has_won = True

        return outcomes

    def resolve_wildcard(
        self,
        player: Player,
        effect: Optional[WildcardEffect] = None,
    ) -> WildcardOutcome:
        """
        Apply a wildcard effect to a player.

        Effects (uniformly chosen when effect is None):
        1. SETBACK: back 1-5 squares, never below START_POSITION
        2. ADVANCE: forward 1-5 squares, never above BOARD_SIZE
        3. STEAL: take a copy of a random opponent card (no-op if none)
        4. TELEPORT: jump to a uniform square in [1, BOARD_SIZE]
        5. BLOCK: forfeit the next turn

        Args:
            player: Player who landed on the wildcard square
            effect: Force a specific effect instead of rolling one

        Returns:
            Description of what happened
        """
        if effect is None:
            effect = WILDCARD_EFFECTS[int(self.rng.integers(len(WILDCARD_EFFECTS)))]

        low, high = WILDCARD_SHIFT_RANGE
        outcome = WildcardOutcome(effect=effect)

        if effect is WildcardEffect.SETBACK:
            outcome.amount = int(self.rng.integers(low, high + 1))
            player.position = max(START_POSITION, player.position - outcome.amount)

        elif effect is WildcardEffect.ADVANCE:
            outcome.amount = int(self.rng.integers(low, high + 1))
            player.position = min(BOARD_SIZE, player.position + outcome.amount)

        elif effect is WildcardEffect.STEAL:
            victim = self.opponent_of(player)
            if victim is not None and victim.hand:
                index = int(self.rng.integers(len(victim.hand)))
                stolen = victim.hand.pop(index)
                outcome.card = stolen.clone()
                outcome.victim = victim.name
                player.receive_card(outcome.card)

        elif effect is WildcardEffect.TELEPORT:
            player.position = int(self.rng.integers(START_POSITION, BOARD_SIZE + 1))

        elif effect is WildcardEffect.BLOCK:
            player.blocked_rounds = 1

        if player.position >= BOARD_SIZE:
            player.has_won = True

        outcome.position = player.position
        return outcome

    def resolve_collisions(self, active: Player) -> List[Player]:
        """
        Send every opponent sharing the active player's square back to start.

        Nothing happens on the start square or once the active player has won.

        Args:
            active: Player who just moved

        Returns:
            Players that were sent back
        """
        if active.position <= START_POSITION or active.has_won:
            return []

        captured = [
            other for other in self.players
            if other is not active and other.position == active.position
        ]
        for other in captured:
            other.position = START_POSITION

        return captured

    def apply_action(self, player: Player, action: int) -> Optional[Card]:
        """
        Play the card at the given hand index, if any.

        Out-of-range or stale indices are treated as NO_CARD.

        Args:
            player: Player taking the action
            action: Hand index, or NO_CARD

        Returns:
            The card played, or None
        """
        if action == NO_CARD:
            return None

        if not 0 <= action < len(player.hand):
            logger.debug(
                f"Action {action} is not a valid hand slot for {player.name} "
                f"(hand size {len(player.hand)}); playing no card"
            )
            return None

        return player.play_card(action)

    def take_turn(self, player: Player, action: int) -> TurnResult:
        """
        Resolve one player's turn after they have drawn.

        Plays the chosen card, moves, resolves collisions and marks the game
        finished when the player wins. Pieces are not reset here.

        Args:
            player: Seated player taking the turn
            action: Hand index, or NO_CARD

        Returns:
            TurnResult describing the turn

        Raises:
            GameStateException: If player is not seated in this game
        """
        if not any(p is player for p in self.players):
            raise GameStateException(f"{player.name} is not seated in this game")

        result = TurnResult(player=player)
        result.card = self.apply_action(player, action)
        result.distance = player.movement()
        result.wildcards = self.move(player)
        result.captured = self.resolve_collisions(player)

        if player.has_won:
            self.finished = True
            result.won = True

        return result

    def reset_pieces(self) -> None:
        """Every player back to King."""
        for player in self.players:
            player.reset_piece()

    # ------------------------------------------------------------------
    # Copying
    # ------------------------------------------------------------------

    def clone(self) -> "GameState":
        """
        Create a deep, independent copy for search.

        Players, hands and the draw pile are copied card by card, and the
        wildcard layout is copied by value rather than regenerated. The copy
        owns a new Generator seeded from a SeedSequence spawned off this one.

        Returns:
            Independent GameState

        Example:
            >>> game = GameState(seed=1)
            >>> ana = game.add_player("Ana")
            >>> twin = game.clone()
            >>> twin.players[0].position = 30
            >>> game.players[0].position
            1
        """
        twin = GameState(initialize=False, seed=self._seed_sequence.spawn(1)[0])
        twin.players = [player.clone() for player in self.players]
        twin.draw_pile = deque(card.clone() for card in self.draw_pile)
        twin.wildcard_squares = set(self.wildcard_squares)
        twin.finished = self.finished
        twin.current_player_index = self.current_player_index
        twin.deck_generations = self.deck_generations
        return twin

    def get_game_state(self) -> Dict[str, Any]:
        """
        Plain dictionary snapshot of every rule-relevant field.

        Two states are structurally equal when their snapshots are equal.
        """
        return {
            'players': [player.to_dict() for player in self.players],
            'draw_pile': [card.label for card in self.draw_pile],
            'wildcard_squares': sorted(self.wildcard_squares),
            'finished': self.finished,
            'current_player_index': self.current_player_index,
            'deck_generations': self.deck_generations,
        }

    def __repr__(self) -> str:
        return (
            f"GameState(players={self.players}, pile={len(self.draw_pile)}, "
            f"finished={self.finished}, turn={self.current_player_index})"
        )
