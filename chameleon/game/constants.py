"""
Game constants for the Chameleon King race.

This module defines the board geometry, the deck composition, the fixed
starter hand and the sentinel values shared by the rule engine and the
search code.
"""

import math
from typing import Dict, List, Tuple

# Board
BOARD_SIZE = 64  # Reaching or passing this square wins the race
START_POSITION = 1
NUM_WILDCARD_SQUARES = 8

# Players
MAX_PLAYERS = 2

# Squares advanced per piece (King is the non-moving default and never dealt)
MOVE_DISTANCES: Dict[str, int] = {
    'King': 0,
    'Pawn': 1,
    'Knight': 4,
    'Rook': 6,
    'Bishop': 8,
    'Queen': 12,
}

# Cards per piece in one full deck. Totals 27, not 52.
DECK_COMPOSITION: Dict[str, int] = {
    'Pawn': 16,
    'Knight': 3,
    'Rook': 3,
    'Bishop': 4,
    'Queen': 1,
}
DECK_SIZE = sum(DECK_COMPOSITION.values())

# Every seated player starts with these cards, in this order
STARTER_HAND: List[str] = ['Queen', 'Rook', 'Knight']

# Wildcard setback/advance amount (inclusive bounds)
WILDCARD_SHIFT_RANGE: Tuple[int, int] = (1, 5)

# Action sentinels
NO_CARD = -1  # "play no card this turn"
ROOT_ACTION = -2  # action_taken of a search root
NO_PLAYER = -1  # turn index before anyone has acted

# Dice duel
DICE_SIDES = 6

# Search defaults
MAX_PLAYOUT_ROUNDS = 50
DEFAULT_EXPLORATION = math.sqrt(2)


def build_deck_manifest() -> List[str]:
    """
    List the piece name of every card in one full, unshuffled deck.

    Returns:
        Piece names grouped by piece, in DECK_COMPOSITION order

    Examples:
        >>> manifest = build_deck_manifest()
        >>> len(manifest)
        27
        >>> manifest.count('Pawn')
        16
    """
    manifest: List[str] = []
    for name, count in DECK_COMPOSITION.items():
        manifest.extend([name] * count)
    return manifest
