"""
Main Match Script

Entry point for playing Chameleon King at the console.

Usage:
    # Human vs MCTS
    python -m chameleon.play --player-name Ana

    # Two humans at the same keyboard
    python -m chameleon.play --player-name Ana --human-opponent --opponent-name Bia

    # Watch two planners play each other
    python -m chameleon.play --ai-vs-ai --quick --no-pause --seed 7
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from rich.console import Console

from chameleon.config import GameConfig, get_quick_config
from chameleon.session.match import Match


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command line arguments.

    Args:
        argv: Argument list (defaults to sys.argv[1:])

    Returns:
        Parsed arguments
    """
    parser = argparse.ArgumentParser(
        description="Play the Chameleon King race against an MCTS opponent",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    # Players
    parser.add_argument(
        '--player-name',
        type=str,
        default='Player 1',
        help='Name of the first player',
    )
    parser.add_argument(
        '--opponent-name',
        type=str,
        default=None,
        help='Name of the second player',
    )
    parser.add_argument(
        '--human-opponent',
        action='store_true',
        help='Second seat is a human instead of the MCTS player',
    )
    parser.add_argument(
        '--ai-vs-ai',
        action='store_true',
        help='Both seats are controlled by MCTS planners',
    )

    # Planner
    parser.add_argument(
        '--iterations',
        type=int,
        default=None,
        help='MCTS iterations per decision (overrides config)',
    )
    parser.add_argument(
        '--tie-iterations',
        type=int,
        default=None,
        help='MCTS iterations per decision on tied dice (overrides config)',
    )
    parser.add_argument(
        '--seed',
        type=int,
        default=None,
        help='Random seed for a reproducible match',
    )

    # Configuration
    parser.add_argument(
        '--config',
        type=str,
        default=None,
        help='Path to JSON config file (overrides defaults)',
    )
    parser.add_argument(
        '--quick',
        action='store_true',
        help='Use a small search budget',
    )
    parser.add_argument(
        '--no-pause',
        action='store_true',
        help='Roll the dice without waiting for Enter',
    )

    # Logging
    parser.add_argument(
        '--log-level',
        type=str,
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default=None,
        help='Logging level (overrides config)',
    )
    parser.add_argument(
        '--log-file',
        type=str,
        default=None,
        help='Also write logs to this file',
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> GameConfig:
    """
    Resolve the match config from defaults, file and CLI overrides.

    Args:
        args: Parsed command line arguments

    Returns:
        Validated GameConfig
    """
    if args.config:
        config = GameConfig.from_file(args.config)
    elif args.quick:
        config = get_quick_config()
    else:
        config = GameConfig()

    if args.iterations is not None:
        config.ai_iterations = args.iterations
    if args.tie_iterations is not None:
        config.tie_ai_iterations = args.tie_iterations
    if args.seed is not None:
        config.seed = args.seed
    if args.log_level is not None:
        config.log_level = args.log_level
    if args.log_file is not None:
        config.log_file = args.log_file

    config.validate()
    return config


def setup_logging(config: GameConfig):
    """
    Setup logging (stderr and optional file).

    Args:
        config: Match configuration
    """
    log_format = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    date_format = '%Y-%m-%d %H:%M:%S'

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_path))

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format=log_format,
        datefmt=date_format,
        handlers=handlers,
    )

    logger = logging.getLogger(__name__)
    logger.debug(f"Logging initialized at {config.log_level}")
    logger.debug(f"Python version: {sys.version}")


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run one console match.

    Args:
        argv: Argument list (defaults to sys.argv[1:])

    Returns:
        Process exit code
    """
    args = parse_args(argv)
    try:
        config = build_config(args)
    except ValueError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2
    setup_logging(config)

    console = Console()
    console.print(str(config), style="dim")

    wait_for_roll = (lambda: None) if (args.no_pause or args.ai_vs_ai) else None
    match = Match(config=config, console=console, wait_for_roll=wait_for_roll)

    if args.ai_vs_ai:
        match.setup(
            args.player_name,
            args.opponent_name,
            player_two_ai=True,
            player_one_ai=True,
        )
    else:
        match.setup(
            args.player_name,
            args.opponent_name,
            player_two_ai=not args.human_opponent,
        )

    try:
        match.run()
    except (KeyboardInterrupt, EOFError):
        console.print("\nMatch abandoned.")
        return 130

    return 0


if __name__ == '__main__':
    sys.exit(main())
