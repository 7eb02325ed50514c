"""Turn-taking state machine for MNK-XO with a cancelable computer reply."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Protocol, Tuple
import logging
import random
import threading

from .ai import RandomMoveAI
from .game import (
    BoardState,
    Cell,
    Configuration,
    ConfigurationInvalid,
    GameMode,
    GameStatus,
    HistoryLog,
    IllegalMove,
    apply_move,
    find_winning_line,
    player_for_index,
)

logger = logging.getLogger(__name__)

COMPUTER_MOVE_DELAY = 0.5  # seconds


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class ThreadingScheduler:
    """Runs callbacks on daemon ``threading.Timer`` threads."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        timer = threading.Timer(delay, callback)
        timer.daemon = True
        timer.start()
        return timer


class Phase(str, Enum):
    AWAITING_HUMAN = "awaiting_human"
    AWAITING_COMPUTER = "awaiting_computer"
    TERMINAL = "terminal"


@dataclass(frozen=True)
class GameSnapshot:
    """Consistent read-only view of a controller at one instant."""

    config: Configuration
    mode: GameMode
    history: Tuple[BoardState, ...]
    active_index: int
    board: BoardState
    next_player: Cell
    phase: Phase
    status: GameStatus
    status_text: str
    winner: Optional[Cell]
    winning_line: Optional[Tuple[int, ...]]
    computer_pending: bool

    @property
    def tie(self) -> bool:
        return self.status is GameStatus.TIE


class GameController:
    """Owns the history log, the game mode and the pending computer move.

    Everything shown to the player (winner, tie, whose turn it is) is derived
    from the active board and the configuration on every read. In
    single-player mode the human is always X and the computer is always O.
    """

    def __init__(
        self,
        config: Optional[Configuration] = None,
        mode: GameMode = GameMode.MULTIPLAYER,
        *,
        rng: Optional[random.Random] = None,
        scheduler: Optional[Scheduler] = None,
        computer_delay: float = COMPUTER_MOVE_DELAY,
    ):
        self._config = config if config is not None else Configuration()
        self._mode = GameMode(mode)
        self._ai = RandomMoveAI(player=Cell.O, rng=rng if rng is not None else random.Random())
        self._scheduler: Scheduler = scheduler if scheduler is not None else ThreadingScheduler()
        self._computer_delay = computer_delay
        self._lock = threading.RLock()
        self._history = HistoryLog.fresh(self._config)
        self._pending: Optional[TimerHandle] = None
        self._pending_token: Optional[object] = None

    # ---- commands ----

    def submit_configuration(
        self, num_rows: int, num_cols: int, win_length: int
    ) -> Configuration:
        """Validate and apply new settings, starting a fresh game.

        Raises :class:`ConfigurationInvalid` and leaves the game untouched when
        any value is out of bounds.
        """
        try:
            config = Configuration(num_rows, num_cols, win_length)
        except ConfigurationInvalid as exc:
            logger.info(
                "Rejected configuration rows=%r cols=%r win=%r: %s",
                num_rows,
                num_cols,
                win_length,
                exc,
            )
            raise
        with self._lock:
            self._config = config
            self._reset_locked()
        logger.info(
            "Applied configuration %dx%d, win length %d",
            config.num_rows,
            config.num_cols,
            config.win_length,
        )
        return config

    def set_mode(self, mode: GameMode) -> None:
        mode = GameMode(mode)
        with self._lock:
            self._mode = mode
            self._reset_locked()
        logger.info("Switched to %s mode", mode.value)

    def reset(self) -> None:
        with self._lock:
            self._reset_locked()

    def submit_human_move(self, index: int) -> bool:
        """Place the side-to-move's mark at ``index``.

        Out-of-turn clicks, clicks on occupied cells and clicks after the game
        ended are ignored and return False.
        """
        with self._lock:
            phase = self._phase()
            if phase is not Phase.AWAITING_HUMAN:
                logger.debug("Ignoring move at %r while %s", index, phase.value)
                return False
            mark = self._next_player()
            try:
                board = apply_move(self._history.current(), index, mark)
            except IllegalMove as exc:
                logger.debug("Ignoring move at %r: %s", index, exc)
                return False
            self._history.append_after_truncate(board)
            logger.debug("%s played cell %d (move %d)", mark.value, index, self._history.active_index)

            if self._phase() is Phase.AWAITING_COMPUTER:
                self._schedule_computer_move()
            return True

    def play_computer_move(self) -> Optional[int]:
        """Let the computer place an O now; returns the chosen cell or None."""
        with self._lock:
            self._cancel_pending()
            return self._play_computer_move_locked()

    def jump_to_move(self, index: int) -> None:
        """Browse to an earlier (or later) position without altering history.

        Raises :class:`~mnkxo.game.HistoryIndexError` for an invalid index.
        The computer never moves as a result of browsing.
        """
        with self._lock:
            previous = self._history.active_index
            self._history.jump_to(index)
            if index == previous:
                return
            self._cancel_pending()
            logger.debug("Jumped to move %d", index)

    # ---- queries ----

    @property
    def config(self) -> Configuration:
        return self._config

    @property
    def mode(self) -> GameMode:
        return self._mode

    @property
    def history(self) -> Tuple[BoardState, ...]:
        with self._lock:
            return self._history.entries

    @property
    def active_index(self) -> int:
        with self._lock:
            return self._history.active_index

    @property
    def current_board(self) -> BoardState:
        with self._lock:
            return self._history.current()

    @property
    def winning_line(self) -> Optional[Tuple[int, ...]]:
        with self._lock:
            return self._winning_line()

    @property
    def winner(self) -> Optional[Cell]:
        with self._lock:
            return self._winner()

    @property
    def is_board_full(self) -> bool:
        return self.current_board.is_full()

    @property
    def next_player(self) -> Cell:
        with self._lock:
            return self._next_player()

    @property
    def phase(self) -> Phase:
        with self._lock:
            return self._phase()

    @property
    def status(self) -> GameStatus:
        with self._lock:
            return self._status()

    @property
    def status_text(self) -> str:
        with self._lock:
            return self._status_text()

    @property
    def computer_pending(self) -> bool:
        with self._lock:
            return self._pending is not None

    def snapshot(self) -> GameSnapshot:
        with self._lock:
            return GameSnapshot(
                config=self._config,
                mode=self._mode,
                history=self._history.entries,
                active_index=self._history.active_index,
                board=self._history.current(),
                next_player=self._next_player(),
                phase=self._phase(),
                status=self._status(),
                status_text=self._status_text(),
                winner=self._winner(),
                winning_line=self._winning_line(),
                computer_pending=self._pending is not None,
            )

    # ---- helpers (caller holds the lock) ----

    def _winning_line(self) -> Optional[Tuple[int, ...]]:
        return find_winning_line(self._history.current(), self._config.win_length)

    def _winner(self) -> Optional[Cell]:
        line = self._winning_line()
        return None if line is None else self._history.current().cells[line[0]]

    def _next_player(self) -> Cell:
        return player_for_index(self._history.active_index)

    def _phase(self) -> Phase:
        if self._winner() is not None or self._history.current().is_full():
            return Phase.TERMINAL
        if self._mode is GameMode.SINGLE_PLAYER and self._next_player() is self._ai.player:
            return Phase.AWAITING_COMPUTER
        return Phase.AWAITING_HUMAN

    def _status(self) -> GameStatus:
        winner = self._winner()
        if winner is Cell.X:
            return GameStatus.WINNER_X
        if winner is Cell.O:
            return GameStatus.WINNER_O
        if self._history.current().is_full():
            return GameStatus.TIE
        return GameStatus.X_TO_MOVE if self._next_player() is Cell.X else GameStatus.O_TO_MOVE

    def _status_text(self) -> str:
        winner = self._winner()
        if winner is not None:
            return f"Winner: {winner.value}"
        if self._history.current().is_full():
            return "It's a tie!"
        player = self._next_player()
        if self._mode is GameMode.SINGLE_PLAYER:
            if player is Cell.X:
                return "Your turn (X)"
            if self._pending is None:
                # rewound onto the computer's turn; browsing never resumes it
                return f"Viewing move {self._history.active_index}: jump to an X move to keep playing"
            return "Computer's turn (O)"
        return f"Next player: {player.value}"

    def _reset_locked(self) -> None:
        self._cancel_pending()
        self._history = HistoryLog.fresh(self._config)

    def _schedule_computer_move(self) -> None:
        token = object()
        self._pending_token = token
        self._pending = self._scheduler.call_later(
            self._computer_delay, lambda: self._on_computer_timer(token)
        )
        logger.debug("Computer move scheduled in %.3fs", self._computer_delay)

    def _cancel_pending(self) -> None:
        if self._pending is None:
            return
        self._pending.cancel()
        self._pending = None
        self._pending_token = None
        logger.debug("Cancelled pending computer move")

    def _on_computer_timer(self, token: object) -> None:
        with self._lock:
            if token is not self._pending_token:
                logger.debug("Ignoring stale computer timer")
                return
            self._pending = None
            self._pending_token = None
            self._play_computer_move_locked()

    def _play_computer_move_locked(self) -> Optional[int]:
        if self._phase() is not Phase.AWAITING_COMPUTER:
            return None
        board = self._history.current()
        index = self._ai.choose(board)
        self._history.append_after_truncate(apply_move(board, index, self._ai.player))
        logger.debug("Computer played cell %d (move %d)", index, self._history.active_index)
        return index
