"""
Console match loop for the Chameleon King race.

Match runs a full game between two seats, each controlled by a human at the
console or by an MCTS planner. Every round both players roll a die: the
higher roll acts, and on a tie both players act in seat order. The acting
player draws a card, optionally plays one to transform, and moves.

Input and output are injectable so the loop can be driven headless:
    - console: rich Console used for all rendering
    - choose_card: callable(player) -> hand index or NO_CARD for human seats
    - wait_for_roll: callable() invoked before each dice roll
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple
import logging
import time

import numpy as np
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from chameleon.config import GameConfig
from chameleon.game.constants import DICE_SIDES, MAX_PLAYERS, NO_CARD, START_POSITION
from chameleon.game.race import (
    GameState,
    GameStateException,
    Player,
    TurnResult,
    WildcardEffect,
    WildcardOutcome,
)
from chameleon.mcts.search import MCTS

logger = logging.getLogger(__name__)

# Escaped so rich does not read it as a markup tag
AI_TAG = " \\[AI]"


@dataclass
class RoundResult:
    """
    Summary of one round of play.

    Attributes:
        number: Round number (1-indexed)
        dice: Rolls of seat 0 and seat 1
        tie: Whether both players acted
        turns: Turns actually taken, in order
        blocked: Names of players who lost their turn to a block
        finished: Whether the game ended this round
    """

    number: int
    dice: Tuple[int, int]
    tie: bool = False
    turns: List[TurnResult] = field(default_factory=list)
    blocked: List[str] = field(default_factory=list)
    finished: bool = False


class Match:
    """
    A single console match between two seats.

    Attributes:
        config: Match configuration
        console: rich Console for rendering
        game: Live GameState
        planners: Seat index -> MCTS planner for automated seats
        round_number: Rounds played so far
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        console: Optional[Console] = None,
        choose_card: Optional[Callable[[Player], int]] = None,
        wait_for_roll: Optional[Callable[[], None]] = None,
    ):
        """
        Initialize a match with an empty table.

        Args:
            config: Match configuration (defaults to GameConfig())
            console: Console for output (defaults to a new rich Console)
            choose_card: Card chooser for human seats (defaults to a console prompt)
            wait_for_roll: Called before each roll (defaults to "press Enter")

        Raises:
            ValueError: If the config is invalid
        """
        self.config = config if config is not None else GameConfig()
        self.config.validate()

        self.console = console if console is not None else Console()
        self.choose_card = choose_card if choose_card is not None else self.prompt_card_choice
        self.wait_for_roll = wait_for_roll if wait_for_roll is not None else self._prompt_roll

        # Independent streams for the rules, the dice and each planner
        game_seq, dice_seq, *planner_seqs = np.random.SeedSequence(self.config.seed).spawn(4)
        self.game = GameState(seed=game_seq)
        self.rng = np.random.default_rng(dice_seq)
        self._planner_seeds = planner_seqs

        self.planners: Dict[int, MCTS] = {}
        self.round_number = 0

    # ------------------------------------------------------------------
    # Setup
    # ------------------------------------------------------------------

    def setup(
        self,
        player_one: str,
        player_two: Optional[str] = None,
        player_two_ai: bool = True,
        player_one_ai: bool = False,
    ) -> None:
        """
        Seat both players and create planners for automated seats.

        Args:
            player_one: Name of seat 0
            player_two: Name of seat 1 (defaults to 'Computer MCTS' when automated)
            player_two_ai: Whether seat 1 is automated
            player_one_ai: Whether seat 0 is automated
        """
        if player_two is None:
            player_two = "Computer MCTS" if player_two_ai else "Player 2"

        for seat, (name, is_ai) in enumerate(
            [(player_one, player_one_ai), (player_two, player_two_ai)]
        ):
            player = self.game.add_player(name, is_ai)
            if player is None:
                continue
            self.console.print(
                f"Player {escape(name)}{AI_TAG if is_ai else ''} joined with "
                f"{', '.join(card.piece.value for card in player.hand)}."
            )
            if is_ai:
                self.planners[seat] = MCTS(
                    player_index=seat,
                    exploration_constant=self.config.exploration_constant,
                    max_playout_rounds=self.config.max_playout_rounds,
                    seed=self._planner_seeds[seat],
                )

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def _prompt_roll(self) -> None:
        self.console.input("\nPress Enter to roll the dice...")

    def prompt_card_choice(self, player: Player) -> int:
        """
        Ask a human player whether and which card to play.

        Args:
            player: Human player choosing

        Returns:
            Hand index chosen, or NO_CARD
        """
        self.console.print(f"\n[bold]Your turn, {escape(player.name)}![/bold] Current piece: {player.piece}")
        if not player.hand:
            self.console.print("You have no cards to use.")
            return NO_CARD

        self.console.print("Cards in hand:")
        for number, card in enumerate(player.hand, start=1):
            self.console.print(f"  {number}. {escape(card.label)}")

        answer = self.console.input("Use a card to transform? (y/n): ").strip().lower()
        if answer not in ('y', 'yes'):
            return NO_CARD

        while True:
            raw = self.console.input("Card number to use: ").strip()
            if raw.isdigit() and 1 <= int(raw) <= len(player.hand):
                return int(raw) - 1
            self.console.print("[red]Invalid choice.[/red]")

    # ------------------------------------------------------------------
    # Rounds
    # ------------------------------------------------------------------

    def roll_dice(self) -> Tuple[int, int]:
        """One die per seat."""
        return (
            int(self.rng.integers(1, DICE_SIDES + 1)),
            int(self.rng.integers(1, DICE_SIDES + 1)),
        )

    def _decide(self, seat: int, player: Player, iterations: int) -> int:
        """Card choice for the acting player, clamped to a legal action."""
        planner = self.planners.get(seat)

        if planner is None:
            if not player.hand:
                self.console.print(f"{escape(player.name)} has no cards to use.")
                return NO_CARD
            action = self.choose_card(player)
        else:
            self.console.print(f"{escape(player.name)}{AI_TAG} is thinking...")
            start = time.perf_counter()
            action = planner.plan_action(self.game, iterations)
            elapsed_ms = (time.perf_counter() - start) * 1000.0
            self.console.print(f"[dim]AI thinking time: {elapsed_ms:.0f} ms[/dim]")

        if action != NO_CARD and not 0 <= action < len(player.hand):
            logger.warning(f"Discarding out-of-range action {action} for {player.name}")
            action = NO_CARD

        if player.is_ai:
            if action == NO_CARD:
                self.console.print(f"{escape(player.name)}{AI_TAG} decided not to play a card.")
            else:
                self.console.print(f"{escape(player.name)}{AI_TAG} plays {escape(player.hand[action].label)}.")

        return action

    def _act(self, seat: int, iterations: int, result: RoundResult) -> None:
        """Let one seat take its turn, honouring blocks."""
        player = self.game.players[seat]

        if player.is_blocked:
            self.console.print(f"{escape(player.name)} is blocked and loses the turn!")
            player.blocked_rounds -= 1
            result.blocked.append(player.name)
            return

        self.game.current_player_index = seat
        card = self.game.deal_card(player)
        self.console.print(f"{escape(player.name)} drew {escape(card.label)}.")

        action = self._decide(seat, player, iterations)
        turn = self.game.take_turn(player, action)
        result.turns.append(turn)
        self._narrate(turn)

    def play_round(self) -> RoundResult:
        """
        Play one dice round.

        On tied dice both seats act in seat order, and human seats are
        prompted for a card exactly as on a won duel. A win by the first
        seat ends the round.

        Returns:
            RoundResult describing the round

        Raises:
            GameStateException: If fewer than two players are seated
        """
        if len(self.game.players) != MAX_PLAYERS:
            raise GameStateException(
                f"A match needs {MAX_PLAYERS} players, got {len(self.game.players)}"
            )

        self.round_number += 1
        self.console.rule(f"Round {self.round_number}")
        self.render_status()

        self.wait_for_roll()
        dice = self.roll_dice()
        first, second = self.game.players
        self.console.print(f"{escape(first.name)} rolled {dice[0]}")
        self.console.print(f"{escape(second.name)} rolled {dice[1]}")
        logger.debug(f"Round {self.round_number}: dice {dice[0]}-{dice[1]}")

        result = RoundResult(number=self.round_number, dice=dice)

        if dice[0] == dice[1]:
            result.tie = True
            self.console.print("\nTie! Both players may play a card.")
            for seat in range(len(self.game.players)):
                self._act(seat, self.config.tie_ai_iterations, result)
                if self.game.finished:
                    break
        else:
            seat = 0 if dice[0] > dice[1] else 1
            self.console.print(f"\n{escape(self.game.players[seat].name)} wins the dice duel!")
            self._act(seat, self.config.ai_iterations, result)

        if not self.game.finished:
            self.game.reset_pieces()

        result.finished = self.game.finished
        return result

    def is_stalemate(self) -> bool:
        """
        Past the inactivity limit with every player idle on the start square.

        Returns:
            True when the match should be declared a draw
        """
        return self.round_number >= self.config.inactivity_round_limit and all(
            p.position == START_POSITION and not p.hand for p in self.game.players
        )

    def run(self) -> Optional[Player]:
        """
        Play rounds until someone wins or the match stalls.

        Returns:
            The winner, or None for a draw
        """
        self.console.print(
            Panel(
                "Be the first to reach or pass square 64!",
                title="Chameleon King",
                border_style="cyan",
            )
        )
        start = time.perf_counter()

        while not self.game.finished:
            if self.is_stalemate():
                self.console.print(
                    f"Draw: no activity after {self.config.inactivity_round_limit} rounds."
                )
                break
            self.play_round()

        elapsed = time.perf_counter() - start
        hours, rest = divmod(int(elapsed), 3600)
        minutes, seconds = divmod(rest, 60)

        self.render_status()
        self.console.print(f"\nTotal match time: {hours:02d}:{minutes:02d}:{seconds:02d}")

        winner = self.game.winner
        if winner is not None:
            self.console.print(f"[bold green]{escape(winner.name)} is the WINNER![/bold green]")
        else:
            self.console.print("The match ended without a winner.")
        logger.info(
            f"Match over after {self.round_number} rounds; "
            f"winner={winner.name if winner else None}"
        )
        return winner

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render_status(self) -> None:
        """Print the status board."""
        table = Table(title="Players")
        table.add_column("Player", style="cyan")
        table.add_column("Position", justify="right")
        table.add_column("Piece")
        table.add_column("Cards", justify="right")
        table.add_column("Status")

        for player in self.game.players:
            status = ""
            if player.has_won:
                status = "[green]won[/green]"
            elif player.is_blocked:
                status = f"[yellow]blocked ({player.blocked_rounds})[/yellow]"
            table.add_row(
                f"{escape(player.name)}{AI_TAG if player.is_ai else ''}",
                str(player.position),
                player.piece.value,
                str(len(player.hand)),
                status,
            )

        self.console.print(table)

    def _narrate(self, turn: TurnResult) -> None:
        player = turn.player
        if turn.card is not None:
            self.console.print(f"{escape(player.name)} transformed into {turn.card.piece}.")
        if turn.distance > 0:
            self.console.print(f"{escape(player.name)} moves {turn.distance} squares.")

        for outcome in turn.wildcards:
            self.console.print(
                Panel(
                    describe_wildcard(outcome),
                    title=f"Wildcard! {escape(player.name)}",
                    border_style="magenta",
                )
            )

        for victim in turn.captured:
            self.console.print(
                f"[red]Collision on square {player.position}! "
                f"{escape(player.name)} captured {escape(victim.name)}, who goes back to square 1.[/red]"
            )

        self.console.print(f"{escape(player.name)} is on square {player.position}.")

        if turn.won:
            self.console.print(
                Panel(
                    f"{escape(player.name)} reached square {player.position} and wins the race!",
                    border_style="green",
                )
            )


def describe_wildcard(outcome: WildcardOutcome) -> str:
    """
    Human readable text for a wildcard outcome.

    Args:
        outcome: Outcome returned by GameState.resolve_wildcard

    Returns:
        One-line description, with names and labels escaped for rich markup
    """
    if outcome.effect is WildcardEffect.SETBACK:
        return f"Bad luck! Back {outcome.amount} squares to {outcome.position}."
    if outcome.effect is WildcardEffect.ADVANCE:
        return f"Lucky! Forward {outcome.amount} squares to {outcome.position}."
    if outcome.effect is WildcardEffect.STEAL:
        if outcome.card is None:
            return "Tried to steal a card, but there was nothing to take."
        return f"Stole '{escape(outcome.card.label)}' from {escape(outcome.victim)}!"
    if outcome.effect is WildcardEffect.TELEPORT:
        return f"Teleported to square {outcome.position}!"
    return "Blocked! The next turn won on the dice is lost."
