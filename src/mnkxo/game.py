"""Core rules for MNK-XO: boards, win detection, history and configuration."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional, Tuple


class Cell(str, Enum):
    EMPTY = ""
    X = "X"
    O = "O"


class GameMode(str, Enum):
    MULTIPLAYER = "multi"
    SINGLE_PLAYER = "single"


class GameStatus(str, Enum):
    X_TO_MOVE = "x_to_move"
    O_TO_MOVE = "o_to_move"
    WINNER_X = "winner_x"
    WINNER_O = "winner_o"
    TIE = "tie"


MIN_DIMENSION = 3
MAX_DIMENSION = 30
MIN_WIN_LENGTH = 3

DEFAULT_NUM_ROWS = 20
DEFAULT_NUM_COLS = 20
DEFAULT_WIN_LENGTH = 5

# Probe order: horizontal, vertical, diagonal down-right, diagonal down-left
DIRECTIONS: Tuple[Tuple[int, int], ...] = ((0, 1), (1, 0), (1, 1), (1, -1))


class ConfigurationInvalid(ValueError):
    """Raised when board dimensions or win length are out of bounds."""

    def __init__(self, errors: List[str]):
        super().__init__("; ".join(errors))
        self.errors = list(errors)


class IllegalMove(ValueError):
    pass


class HistoryIndexError(IndexError):
    pass


# ---------- Configuration ----------


def validate_configuration(num_rows: int, num_cols: int, win_length: int) -> List[str]:
    """Return every validation message for the given settings (empty if valid)."""
    errors: List[str] = []
    values = (("rows", num_rows), ("columns", num_cols), ("win length", win_length))
    for name, value in values:
        if isinstance(value, bool) or not isinstance(value, int):
            errors.append(f"{name} must be an integer")
    if errors:
        return errors

    if num_rows < MIN_DIMENSION:
        errors.append(f"rows must be at least {MIN_DIMENSION}")
    elif num_rows > MAX_DIMENSION:
        errors.append(f"rows must be at most {MAX_DIMENSION}")
    if num_cols < MIN_DIMENSION:
        errors.append(f"columns must be at least {MIN_DIMENSION}")
    elif num_cols > MAX_DIMENSION:
        errors.append(f"columns must be at most {MAX_DIMENSION}")
    if win_length < MIN_WIN_LENGTH:
        errors.append(f"win length must be at least {MIN_WIN_LENGTH}")
    elif win_length > min(num_rows, num_cols):
        errors.append(
            "win length must not exceed the smaller board dimension "
            f"({min(num_rows, num_cols)})"
        )
    return errors


@dataclass(frozen=True)
class Configuration:
    num_rows: int = DEFAULT_NUM_ROWS
    num_cols: int = DEFAULT_NUM_COLS
    win_length: int = DEFAULT_WIN_LENGTH

    def __post_init__(self) -> None:
        errors = validate_configuration(self.num_rows, self.num_cols, self.win_length)
        if errors:
            raise ConfigurationInvalid(errors)

    @property
    def size(self) -> int:
        return self.num_rows * self.num_cols


# ---------- Board ----------


@dataclass(frozen=True)
class BoardState:
    """Row-major snapshot of one board. Never mutated once created."""

    num_rows: int
    num_cols: int
    cells: Tuple[Cell, ...]

    def __post_init__(self) -> None:
        if len(self.cells) != self.num_rows * self.num_cols:
            raise ValueError("Cell count does not match board dimensions")
        if any(not isinstance(c, Cell) for c in self.cells):
            raise ValueError("Cells must be Cell values")

    @classmethod
    def empty(cls, num_rows: int, num_cols: int) -> "BoardState":
        return cls(num_rows, num_cols, (Cell.EMPTY,) * (num_rows * num_cols))

    @classmethod
    def from_config(cls, config: Configuration) -> "BoardState":
        return cls.empty(config.num_rows, config.num_cols)

    def __len__(self) -> int:
        return len(self.cells)

    def index(self, row: int, col: int) -> int:
        return row * self.num_cols + col

    def at(self, row: int, col: int) -> Cell:
        return self.cells[self.index(row, col)]

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.num_rows and 0 <= col < self.num_cols

    def empty_cells(self) -> List[int]:
        return [i for i, c in enumerate(self.cells) if c is Cell.EMPTY]

    def is_full(self) -> bool:
        return all(c is not Cell.EMPTY for c in self.cells)

    def rows(self) -> List[Tuple[Cell, ...]]:
        n = self.num_cols
        return [self.cells[r * n : (r + 1) * n] for r in range(self.num_rows)]


def apply_move(board: BoardState, index: int, mark: Cell) -> BoardState:
    """Return a new board with ``mark`` placed at ``index``."""
    if mark not in (Cell.X, Cell.O):
        raise IllegalMove(f"Invalid mark {mark!r}")
    if isinstance(index, bool) or not isinstance(index, int):
        raise IllegalMove("Cell index must be an integer")
    if not 0 <= index < len(board.cells):
        raise IllegalMove(f"Cell index {index} is out of range")
    if board.cells[index] is not Cell.EMPTY:
        raise IllegalMove("Cell already occupied")
    cells = list(board.cells)
    cells[index] = Cell(mark)
    return BoardState(board.num_rows, board.num_cols, tuple(cells))


# ---------- Win detection ----------


def _line_from(
    board: BoardState, row: int, col: int, d_row: int, d_col: int, win_length: int
) -> Optional[Tuple[int, ...]]:
    mark = board.at(row, col)
    line: List[int] = []
    for offset in range(win_length):
        r = row + offset * d_row
        c = col + offset * d_col
        if not board.in_bounds(r, c) or board.at(r, c) is not mark:
            return None
        line.append(board.index(r, c))
    return tuple(line)


def find_winning_line(board: BoardState, win_length: int) -> Optional[Tuple[int, ...]]:
    """Cell indices of the first winning line in row-major, direction order."""
    if win_length < 1:
        return None
    for row in range(board.num_rows):
        for col in range(board.num_cols):
            if board.at(row, col) is Cell.EMPTY:
                continue
            for d_row, d_col in DIRECTIONS:
                line = _line_from(board, row, col, d_row, d_col, win_length)
                if line is not None:
                    return line
    return None


def find_winner(board: BoardState, win_length: int) -> Optional[Cell]:
    """Return the mark owning a winning line, or None."""
    line = find_winning_line(board, win_length)
    if line is None:
        return None
    return board.cells[line[0]]


# ---------- History ----------


class HistoryLog:
    """Board snapshots with branch-and-overwrite semantics.

    Index 0 is always the empty starting board; entry ``i`` is the position
    after ``i`` moves. Jumping back only moves ``active_index``; the next
    :meth:`append_after_truncate` discards everything past it.
    """

    def __init__(self, initial: BoardState):
        self._entries: List[BoardState] = [initial]
        self._active = 0

    @classmethod
    def fresh(cls, config: Configuration) -> "HistoryLog":
        return cls(BoardState.from_config(config))

    @property
    def active_index(self) -> int:
        return self._active

    @property
    def entries(self) -> Tuple[BoardState, ...]:
        return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index: int) -> BoardState:
        return self._entries[index]

    def __iter__(self) -> Iterator[BoardState]:
        return iter(list(self._entries))

    def current(self) -> BoardState:
        return self._entries[self._active]

    def append(self, board: BoardState) -> None:
        self._entries.append(board)
        self._active = len(self._entries) - 1

    def append_after_truncate(self, board: BoardState) -> None:
        del self._entries[self._active + 1 :]
        self.append(board)

    def jump_to(self, index: int) -> None:
        if isinstance(index, bool) or not isinstance(index, int):
            raise HistoryIndexError(f"History index must be an integer, got {index!r}")
        if not 0 <= index < len(self._entries):
            raise HistoryIndexError(
                f"History index {index} out of range [0, {len(self._entries) - 1}]"
            )
        self._active = index


def player_for_index(index: int) -> Cell:
    """Side to move after ``index`` completed moves; X always opens."""
    return Cell.X if index % 2 == 0 else Cell.O
