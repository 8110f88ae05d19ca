"""
Monte Carlo Tree Search (MCTS) implementation for Chameleon King.

This module provides the planner used by the automated player:
- MCTSNode: Tree node with incremental expansion, UCB1 selection and
  backpropagation
- RandomPlayout: Fast random continuation used to score leaves
- MCTS: Search loop that returns the card to play

Example:
    >>> from chameleon.mcts import MCTS
    >>> from chameleon.game.race import GameState
    >>>
    >>> game = GameState()
    >>> game.add_player("Ana")
    >>> game.add_player("Bot", is_ai=True)
    >>> planner = MCTS(player_index=1)
    >>> action = planner.plan_action(game, iterations=1000)
"""

from chameleon.mcts.node import MCTSNode
from chameleon.mcts.playout import RandomPlayout
from chameleon.mcts.search import MCTS

__all__ = [
    "MCTSNode",
    "RandomPlayout",
    "MCTS",
]
