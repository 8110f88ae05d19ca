"""
Random playout policy used in the simulation phase of MCTS.

A playout is a fast, rule-approximate continuation of the game from a search
leaf: dice decide who acts each round and the actor plays a random card half
of the time. Only the final win/loss signal matters.
"""

from typing import Optional

import numpy as np

from chameleon.game.constants import DICE_SIDES, MAX_PLAYOUT_ROUNDS, NO_CARD, NO_PLAYER
from chameleon.game.race import GameState


class RandomPlayout:
    """
    Bounded random playout from the perspective of one player.

    Attributes:
        player_index: Seat whose win counts as 1.0
        max_rounds: Round cap; an unfinished game at the cap counts as a loss
        rng: Generator for dice and card choices
    """

    def __init__(
        self,
        player_index: int,
        max_rounds: int = MAX_PLAYOUT_ROUNDS,
        rng: Optional[np.random.Generator] = None,
    ):
        self.player_index = player_index
        self.max_rounds = max_rounds
        self.rng = rng if rng is not None else np.random.default_rng()

    def roll_dice(self) -> int:
        """
        Dice duel for one round.

        Returns:
            Index of the player with the higher die, or NO_PLAYER on a tie
        """
        first = int(self.rng.integers(1, DICE_SIDES + 1))
        second = int(self.rng.integers(1, DICE_SIDES + 1))
        if first > second:
            return 0
        if second > first:
            return 1
        return NO_PLAYER

    def run(self, state: GameState) -> float:
        """
        Play random rounds on a disposable state until it finishes or the cap.

        Each round the dice winner acts: a blocked actor spends the round
        clearing one blocked turn; otherwise they draw a card, play a random
        card from hand with probability 1/2, and take their turn. Tied dice
        mean nobody acts. Pieces go back to King after every unfinished round.

        Args:
            state: State to mutate freely (pass a clone)

        Returns:
            1.0 if the game finished with player_index having won, else 0.0
        """
        rounds = 0
        while not state.finished and rounds < self.max_rounds:
            actor_index = self.roll_dice()
            state.current_player_index = actor_index

            if actor_index != NO_PLAYER:
                actor = state.players[actor_index]
                if actor.is_blocked:
                    actor.blocked_rounds -= 1
                else:
                    state.deal_card(actor)
                    action = NO_CARD
                    if actor.hand and int(self.rng.integers(2)) == 0:
                        action = int(self.rng.integers(len(actor.hand)))
                    state.take_turn(actor, action)

            if not state.finished:
                state.reset_pieces()

            rounds += 1

        if state.finished and state.players[self.player_index].has_won:
            return 1.0
        return 0.0
