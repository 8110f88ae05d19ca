"""
Match Configuration System

Centralized configuration for console matches and the automated player.
"""

import json
import math
from dataclasses import dataclass, asdict
from typing import Dict, Any, Optional


@dataclass
class GameConfig:
    """Configuration for a console match."""

    # Planner settings
    ai_iterations: int = 1000  # MCTS iterations when the AI wins the dice duel
    tie_ai_iterations: int = 2000  # MCTS iterations when both players act on a tie
    exploration_constant: float = math.sqrt(2)
    max_playout_rounds: int = 50

    # Match settings
    inactivity_round_limit: int = 100  # Declare a draw after this many idle rounds
    seed: Optional[int] = None

    # Logging
    log_level: str = 'INFO'
    log_file: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Planner, match and logging settings as a JSON-ready dict."""
        return asdict(self)

    @classmethod
    def from_dict(cls, config_dict: Dict[str, Any]) -> 'GameConfig':
        """
        Build a match config from a plain dict.

        Keys that are not GameConfig fields (e.g. from an older or hand
        edited file) are dropped; missing keys keep their defaults.

        Args:
            config_dict: Match settings keyed by field name

        Returns:
            GameConfig instance (not yet validated)
        """
        fields = {f.name for f in cls.__dataclass_fields__.values()}
        known = {k: v for k, v in config_dict.items() if k in fields}
        return cls(**known)

    @classmethod
    def from_file(cls, filepath: str) -> 'GameConfig':
        """
        Read a match config saved by save() or written by hand.

        Args:
            filepath: Path to a JSON object of match settings

        Returns:
            GameConfig instance (not yet validated)
        """
        with open(filepath, 'r') as f:
            settings = json.load(f)
        return cls.from_dict(settings)

    def save(self, filepath: str):
        """
        Write this match config as indented JSON, e.g. for --config.

        Args:
            filepath: Destination path
        """
        with open(filepath, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)

    def validate(self) -> bool:
        """
        Validate configuration values.

        Returns:
            True if config is valid

        Raises:
            ValueError: If config values are invalid
        """
        if self.ai_iterations < 0:
            raise ValueError(f"ai_iterations must be non-negative, got {self.ai_iterations}")

        if self.tie_ai_iterations < 0:
            raise ValueError(
                f"tie_ai_iterations must be non-negative, got {self.tie_ai_iterations}"
            )

        if self.exploration_constant < 0:
            raise ValueError(
                f"exploration_constant must be non-negative, got {self.exploration_constant}"
            )

        if self.max_playout_rounds <= 0:
            raise ValueError(
                f"max_playout_rounds must be positive, got {self.max_playout_rounds}"
            )

        if self.inactivity_round_limit <= 0:
            raise ValueError(
                f"inactivity_round_limit must be positive, got {self.inactivity_round_limit}"
            )

        if self.seed is not None and self.seed < 0:
            raise ValueError(f"seed must be non-negative, got {self.seed}")

        if self.log_level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR'):
            raise ValueError(
                f"log_level must be one of DEBUG/INFO/WARNING/ERROR, got {self.log_level}"
            )

        return True

    def __str__(self) -> str:
        """String representation of config."""
        lines = ["Match Configuration:"]
        lines.append(f"  MCTS: {self.ai_iterations} iterations ({self.tie_ai_iterations} on ties), c={self.exploration_constant:.3f}")
        lines.append(f"  Playouts: up to {self.max_playout_rounds} rounds")
        lines.append(f"  Draw after {self.inactivity_round_limit} idle rounds")
        lines.append(f"  Seed: {self.seed}")
        return "\n".join(lines)


def get_quick_config() -> GameConfig:
    """
    Get a light config for demos and tests.

    Returns:
        GameConfig with a small search budget
    """
    return GameConfig(
        ai_iterations=50,
        tie_ai_iterations=100,
        max_playout_rounds=30,
    )
