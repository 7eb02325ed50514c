"""MNK-XO package exposing game rules, the game controller, and the web application."""

from .ai import RandomMoveAI
from .controller import GameController
from .game import BoardState, Cell, Configuration, GameMode, HistoryLog, find_winner
from .ui import app

__all__ = [
    "BoardState",
    "Cell",
    "Configuration",
    "GameController",
    "GameMode",
    "HistoryLog",
    "RandomMoveAI",
    "app",
    "find_winner",
]
