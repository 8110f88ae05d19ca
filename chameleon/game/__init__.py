"""
Chameleon King Game Engine Package.

This package contains the rule engine for the Chameleon King race,
including pieces, cards, players and the cloneable game state.
"""

from chameleon.game.constants import (
    BOARD_SIZE,
    START_POSITION,
    NUM_WILDCARD_SQUARES,
    MAX_PLAYERS,
    DECK_COMPOSITION,
    DECK_SIZE,
    STARTER_HAND,
    NO_CARD,
    ROOT_ACTION,
    NO_PLAYER,
)
from chameleon.game.race import (
    ChameleonGameException,
    GameStateException,
    PieceType,
    Card,
    WildcardEffect,
    WildcardOutcome,
    TurnResult,
    Player,
    GameState,
)

__all__ = [
    "BOARD_SIZE",
    "START_POSITION",
    "NUM_WILDCARD_SQUARES",
    "MAX_PLAYERS",
    "DECK_COMPOSITION",
    "DECK_SIZE",
    "STARTER_HAND",
    "NO_CARD",
    "ROOT_ACTION",
    "NO_PLAYER",
    "ChameleonGameException",
    "GameStateException",
    "PieceType",
    "Card",
    "WildcardEffect",
    "WildcardOutcome",
    "TurnResult",
    "Player",
    "GameState",
]
