"""
MCTS Node implementation with UCB1 selection.

This module implements the tree node structure for Monte Carlo Tree Search,
including incremental expansion (one untried action at a time), UCB1-based
child selection and backpropagation.

Each node owns a private GameState snapshot. Children are created from clones
of their parent's snapshot, so rule mutations during search never leak into
sibling branches or into the live match.
"""

from typing import Dict, List, Optional, Tuple
import math
import time

import numpy as np

from chameleon.game.constants import DEFAULT_EXPLORATION, NO_CARD, NO_PLAYER, ROOT_ACTION
from chameleon.game.race import GameState


class MCTSNode:
    """
    Node in the MCTS tree.

    Represents a game state and stores statistics for UCB1 selection.
    Values are always credited from the planner's own perspective, so the same
    result is added at every ancestor regardless of who acted there.

    Attributes:
        game_state: Snapshot owned by this node
        parent: Parent node (None for root)
        children: Child nodes in creation order
        visit_count: Number of times this node was visited
        total_value: Sum of backpropagated results
        action_taken: Action that produced this node (NO_CARD for "play no
            card", ROOT_ACTION for the root)
        player_index: Index of the player who took action_taken (NO_PLAYER
            for the root)
        untried_actions: Actions not yet expanded from this node
    """

    def __init__(
        self,
        game_state: GameState,
        parent: Optional["MCTSNode"] = None,
        action_taken: int = ROOT_ACTION,
        player_index: int = NO_PLAYER,
    ):
        """
        Initialize MCTS node.

        The untried action set is computed once here from the hand of the
        state's current-turn player. Finished states, and states where no turn
        index is set, have no actions.

        Args:
            game_state: Snapshot this node owns
            parent: Parent node (None for root)
            action_taken: Action that led to this node
            player_index: Player who took that action

        Example:
            >>> game = GameState(seed=0)
            >>> game.add_player("Ana"); game.add_player("Bot", is_ai=True)
            >>> game.current_player_index = 1
            >>> root = MCTSNode(game)
            >>> root.untried_actions
            [-1, 0, 1, 2]
        """
        self.game_state = game_state
        self.parent = parent
        self.action_taken = action_taken
        self.player_index = player_index

        # MCTS statistics
        self.visit_count = 0
        self.total_value = 0.0

        self.children: List[MCTSNode] = []

        current = game_state.current_player
        if not game_state.finished and current is not None:
            self.untried_actions: List[int] = game_state.possible_actions(current)
        else:
            self.untried_actions = []

    @property
    def is_terminal(self) -> bool:
        """True when the snapshot's game is over."""
        return self.game_state.finished

    @property
    def is_fully_expanded(self) -> bool:
        """True when every action has been tried once."""
        return not self.untried_actions

    @property
    def mean_value(self) -> float:
        """Average backpropagated value (0.0 before any visit)."""
        if self.visit_count == 0:
            return 0.0
        return self.total_value / self.visit_count

    def is_leaf(self) -> bool:
        """
        Check if node has no children yet.

        Returns:
            True if nothing has been expanded from this node
        """
        return not self.children

    def is_root(self) -> bool:
        """
        Check if node is root (no parent).

        Returns:
            True if node has no parent
        """
        return self.parent is None

    def expand(self, rng: Optional[np.random.Generator] = None) -> Optional["MCTSNode"]:
        """
        Expand one untried action into a new child.

        Picks an untried action uniformly at random, applies it to a clone of
        this node's state on behalf of the current-turn player (play the card,
        move, resolve collisions, check for a win) and wraps the clone in a
        child node. The acting player's piece is reset to King unless the game
        finished. The clone's turn index is left untouched.

        Args:
            rng: Generator used to pick the action (defaults to the node
                state's generator)

        Returns:
            The new child, or None when no untried actions remain

        Example:
            >>> child = root.expand()
            >>> child.parent is root
            True
            >>> child.action_taken in [-1, 0, 1, 2]
            True
        """
        if not self.untried_actions:
            return None

        if rng is None:
            rng = self.game_state.rng

        action = self.untried_actions.pop(int(rng.integers(len(self.untried_actions))))

        _start = time.perf_counter() if _NODE_PROFILING_ENABLED else 0.0
        next_state = self.game_state.clone()
        if _NODE_PROFILING_ENABLED:
            _NODE_METRICS['clone_calls'] += 1
            _NODE_METRICS['clone_total_sec'] += (time.perf_counter() - _start)

        acting_player = next_state.current_player
        next_state.take_turn(acting_player, action)
        if not next_state.finished:
            acting_player.reset_piece()

        child = MCTSNode(
            game_state=next_state,
            parent=self,
            action_taken=action,
            player_index=next_state.current_player_index,
        )
        self.children.append(child)

        if _NODE_PROFILING_ENABLED:
            _NODE_METRICS['expand_calls'] += 1

        return child

    def select_child(
        self, exploration_constant: float = DEFAULT_EXPLORATION
    ) -> Optional["MCTSNode"]:
        """
        Select child with highest UCB1 score.

        UCB(child) = W / n + c * sqrt(ln(N) / n)

        Where W is the child's total value, n its visit count and N this
        node's visit count. A child that has never been visited is returned
        straight away (the first one found), so every branch is sampled once
        before any exploitation.

        Args:
            exploration_constant: c in the formula (higher = more exploration)

        Returns:
            Selected child, or None if this node has no children
        """
        if not self.children:
            return None

        best_score = -math.inf
        best_child = None

        for child in self.children:
            if child.visit_count == 0:
                return child

            score = self._ucb1_score(child, exploration_constant)
            if score > best_score:
                best_score = score
                best_child = child

        return best_child

    def _ucb1_score(self, child: "MCTSNode", exploration_constant: float) -> float:
        """
        Compute UCB1 score for a visited child.

        Args:
            child: Child node with visit_count > 0
            exploration_constant: Exploration weight

        Returns:
            Win rate plus exploration bonus
        """
        win_rate = child.total_value / child.visit_count
        if self.visit_count == 0:
            return win_rate

        bonus = exploration_constant * math.sqrt(
            math.log(self.visit_count) / child.visit_count
        )
        return win_rate + bonus

    def backpropagate(self, value: float) -> None:
        """
        Backpropagate a playout result up the tree.

        Every node from this one to the root, inclusive, gets one more visit
        and value added to its total. The value is not negated on the way up.

        Args:
            value: Result from the planner's perspective (1.0 win, 0.0 loss)

        Example:
            >>> child.backpropagate(1.0)
            >>> child.visit_count, root.visit_count
            (1, 1)
        """
        node: Optional[MCTSNode] = self
        while node is not None:
            node.visit_count += 1
            node.total_value += value
            node = node.parent

    def best_child(self) -> Optional["MCTSNode"]:
        """
        Most visited child, ties broken by total value, then by creation order.

        Returns:
            Best child, or None if nothing was expanded
        """
        if not self.children:
            return None
        return max(self.children, key=lambda c: (c.visit_count, c.total_value))

    def get_action_statistics(self) -> Dict[int, Tuple[int, float]]:
        """
        Per-action visit counts and mean values of the children.

        Returns:
            Dictionary mapping action -> (visit_count, mean_value)
        """
        return {
            child.action_taken: (child.visit_count, child.mean_value)
            for child in self.children
        }

    def __repr__(self) -> str:
        """String representation of node for debugging."""
        action = 'none' if self.action_taken == NO_CARD else self.action_taken
        return (
            f"MCTSNode(action={action}, "
            f"visits={self.visit_count}, "
            f"value={self.mean_value:.3f}, "
            f"children={len(self.children)}, "
            f"untried={len(self.untried_actions)})"
        )


# -------------------
# Lightweight metrics
# -------------------
_NODE_PROFILING_ENABLED = False
_NODE_METRICS = {
    'expand_calls': 0,
    'clone_calls': 0,
    'clone_total_sec': 0.0,
}


def enable_metrics(enabled: bool = True) -> None:
    global _NODE_PROFILING_ENABLED
    _NODE_PROFILING_ENABLED = bool(enabled)


def reset_metrics() -> None:
    for k in list(_NODE_METRICS.keys()):
        _NODE_METRICS[k] = 0.0 if k.endswith('_sec') else 0


def get_metrics() -> dict:
    m = dict(_NODE_METRICS)
    calls = m.get('clone_calls', 0) or 0
    m['avg_clone_ms'] = (
        (m.get('clone_total_sec', 0.0) / (calls or 1)) * 1000.0
    )
    return m
