"""
Monte Carlo Tree Search (MCTS) planner for the Chameleon King race.

This module implements the classic four-phase MCTS loop used by the automated
player to choose which card to play:

    1. Selection: descend fully expanded nodes with UCB1
    2. Expansion: add one untried action as a new child
    3. Simulation: random playout on a clone of the leaf state
    4. Backpropagation: credit the result to every node on the path

The planner's strength is governed only by the iteration count. The search is
single-threaded and synchronous; every iteration mutates only its own clones.

Example:
    >>> from chameleon.game.race import GameState
    >>> from chameleon.mcts import MCTS
    >>>
    >>> game = GameState(seed=7)
    >>> game.add_player("Ana")
    >>> game.add_player("Bot", is_ai=True)
    >>> planner = MCTS(player_index=1, seed=7)
    >>> action = planner.plan_action(game, iterations=1000)
    >>> action in game.possible_actions(game.players[1])
    True
"""

from typing import Optional, Union
import logging
import time

import numpy as np

from chameleon.game.constants import DEFAULT_EXPLORATION, MAX_PLAYOUT_ROUNDS, NO_CARD
from chameleon.game.race import GameState
from chameleon.mcts.node import MCTSNode
from chameleon.mcts.playout import RandomPlayout

logger = logging.getLogger(__name__)


class MCTS:
    """
    Monte Carlo Tree Search planner for one seat.

    The planner always decides for its own player: the root snapshot has its
    turn index forced to player_index before the search starts.

    Attributes:
        player_index: Seat this planner decides for
        exploration_constant: c in the UCB1 formula
        max_playout_rounds: Round cap for each random playout
        rng: Generator for expansion choices and playouts
        playout: RandomPlayout used in the simulation phase
        root: Root of the most recent search (None before the first search)

    Example:
        >>> planner = MCTS(player_index=1)
        >>> root = planner.search(game, iterations=200)
        >>> root.visit_count
        200
    """

    def __init__(
        self,
        player_index: int,
        exploration_constant: float = DEFAULT_EXPLORATION,
        max_playout_rounds: int = MAX_PLAYOUT_ROUNDS,
        seed: Optional[Union[int, np.random.SeedSequence]] = None,
    ):
        """
        Initialize the planner.

        Args:
            player_index: Seat to plan for (0 or 1)
            exploration_constant: UCB1 exploration weight (default: sqrt(2))
                Higher = more exploration, lower = more exploitation
            max_playout_rounds: Round cap per playout (default: 50)
            seed: Integer seed or SeedSequence for the planner's generator
                (None = fresh entropy)
        """
        self.player_index = player_index
        self.exploration_constant = exploration_constant
        self.max_playout_rounds = max_playout_rounds
        self.rng = np.random.default_rng(seed)
        self.playout = RandomPlayout(player_index, max_playout_rounds, self.rng)
        self.root: Optional[MCTSNode] = None

    def search(self, live_state: GameState, iterations: int) -> MCTSNode:
        """
        Build a search tree from the live state.

        The live state is cloned once and never mutated.

        Args:
            live_state: Current match state
            iterations: Number of select/expand/simulate/backpropagate rounds

        Returns:
            Root node of the finished tree

        Raises:
            ValueError: If iterations is negative
        """
        if iterations < 0:
            raise ValueError(f"iterations must be non-negative, got {iterations}")

        start = time.perf_counter()

        root_state = live_state.clone()
        root_state.current_player_index = self.player_index
        root = MCTSNode(root_state)
        self.root = root

        for _ in range(iterations):
            node = root

            # 1. Selection
            while not node.is_terminal and node.is_fully_expanded:
                selected = node.select_child(self.exploration_constant)
                if selected is None:
                    node = root
                    break
                node = selected

            # 2. Expansion
            if not node.is_terminal and not node.is_fully_expanded:
                child = node.expand(self.rng)
                if child is not None:
                    node = child

            # 3. Simulation
            result = self.playout.run(node.game_state.clone())

            # 4. Backpropagation
            node.backpropagate(result)

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        logger.debug(
            f"MCTS seat {self.player_index}: {iterations} iterations in {elapsed_ms:.1f} ms, "
            f"root stats {root.get_action_statistics()}"
        )

        return root

    def plan_action(self, live_state: GameState, iterations: int) -> int:
        """
        Choose the card to play for this planner's seat.

        Args:
            live_state: Current match state (left untouched)
            iterations: Search budget

        Returns:
            Action of the most visited root child (ties broken by total
            value), or NO_CARD when nothing was explored
        """
        root = self.search(live_state, iterations)
        best = root.best_child()

        if best is None:
            name = live_state.players[self.player_index].name
            logger.info(f"[MCTS {name}] no children explored; playing no card")
            return NO_CARD

        return best.action_taken

    def __repr__(self) -> str:
        return (
            f"MCTS(player_index={self.player_index}, "
            f"c={self.exploration_constant:.3f}, "
            f"max_playout_rounds={self.max_playout_rounds})"
        )
