"""Uniform-random computer opponent for MNK-XO."""

from __future__ import annotations

from dataclasses import dataclass, field
import random

from .game import BoardState, Cell


@dataclass
class RandomMoveAI:
    """Computer player that picks any empty cell with equal probability.

    There is no look-ahead. Pass a seeded ``random.Random`` as ``rng`` to get
    a reproducible sequence of choices.
    """

    player: Cell = Cell.O
    rng: random.Random = field(default_factory=random.Random, repr=False)

    def choose(self, board: BoardState) -> int:
        moves = board.empty_cells()
        if not moves:
            raise RuntimeError("No valid moves available")
        return self.rng.choice(moves)
