"""
Console session layer for Chameleon King.

Runs full matches between humans and MCTS-driven players on top of the
rule engine in chameleon.game.
"""

from chameleon.session.match import Match, RoundResult, describe_wildcard

__all__ = [
    "Match",
    "RoundResult",
    "describe_wildcard",
]
