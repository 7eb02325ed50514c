"""Tests for the MNK-XO turn-taking state machine."""

import random

import pytest

from mnkxo.controller import GameController, Phase
from mnkxo.game import (
    BoardState,
    Cell,
    Configuration,
    ConfigurationInvalid,
    GameMode,
    GameStatus,
    HistoryIndexError,
)


class ManualHandle:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Records scheduled callbacks so tests decide when timers fire."""

    def __init__(self):
        self.handles = []

    def call_later(self, delay, callback):
        handle = ManualHandle(delay, callback)
        self.handles.append(handle)
        return handle

    def pending(self):
        return [h for h in self.handles if not (h.cancelled or h.fired)]

    def fire(self):
        (handle,) = self.pending()
        handle.fired = True
        handle.callback()


def make_controller(mode=GameMode.MULTIPLAYER, rows=3, cols=3, win=3, seed=1):
    scheduler = ManualScheduler()
    controller = GameController(
        Configuration(rows, cols, win),
        mode,
        rng=random.Random(seed),
        scheduler=scheduler,
    )
    return controller, scheduler


def play(controller, moves):
    for index in moves:
        assert controller.submit_human_move(index), index


# ---------- multiplayer ----------


def test_new_game_awaits_x():
    controller, _ = make_controller()
    assert controller.active_index == 0
    assert controller.next_player is Cell.X
    assert controller.phase is Phase.AWAITING_HUMAN
    assert controller.status is GameStatus.X_TO_MOVE
    assert controller.status_text == "Next player: X"


def test_turns_alternate_in_multiplayer():
    controller, scheduler = make_controller()
    play(controller, [4])
    assert controller.current_board.cells[4] is Cell.X
    assert controller.next_player is Cell.O
    assert controller.status is GameStatus.O_TO_MOVE
    play(controller, [0])
    assert controller.current_board.cells[0] is Cell.O
    assert scheduler.handles == []


def test_row_win_for_x():
    controller, _ = make_controller()
    play(controller, [0, 4, 1, 3, 2])
    assert controller.winner is Cell.X
    assert controller.winning_line == (0, 1, 2)
    assert controller.status is GameStatus.WINNER_X
    assert controller.status_text == "Winner: X"
    assert controller.phase is Phase.TERMINAL


def test_full_board_without_line_is_a_tie():
    controller, _ = make_controller()
    play(controller, [0, 1, 2, 4, 3, 5, 7, 6, 8])
    assert controller.winner is None
    assert controller.is_board_full
    assert controller.status is GameStatus.TIE
    assert controller.status_text == "It's a tie!"
    assert controller.phase is Phase.TERMINAL


def test_moves_after_game_over_are_ignored():
    controller, _ = make_controller()
    play(controller, [0, 4, 1, 3, 2])
    history = controller.history
    assert controller.submit_human_move(8) is False
    assert controller.history == history


def test_occupied_cell_is_ignored():
    controller, _ = make_controller()
    play(controller, [4])
    before = controller.snapshot()
    assert controller.submit_human_move(4) is False
    assert controller.snapshot() == before


@pytest.mark.parametrize("index", [-1, 9])
def test_out_of_range_cell_is_ignored(index):
    controller, _ = make_controller()
    assert controller.submit_human_move(index) is False
    assert len(controller.history) == 1


def test_jump_then_move_overwrites_future():
    controller, _ = make_controller()
    play(controller, [0, 4, 1, 3, 8])
    original = controller.history
    controller.jump_to_move(2)
    assert controller.active_index == 2
    assert len(controller.history) == 6
    assert controller.next_player is Cell.X
    assert controller.submit_human_move(7)
    history = controller.history
    assert len(history) == 4
    assert history[:3] == original[:3]
    assert history[3].cells[7] is Cell.X
    assert controller.active_index == 3


def test_jump_recomputes_winner_for_position():
    controller, _ = make_controller()
    play(controller, [0, 4, 1, 3, 2])
    controller.jump_to_move(4)
    assert controller.winner is None
    assert controller.phase is Phase.AWAITING_HUMAN
    assert controller.next_player is Cell.X


def test_jump_to_current_position_changes_nothing():
    controller, _ = make_controller()
    play(controller, [0, 4])
    before = controller.snapshot()
    controller.jump_to_move(controller.active_index)
    assert controller.snapshot() == before


@pytest.mark.parametrize("index", [-1, 3, 50])
def test_jump_out_of_range_raises(index):
    controller, _ = make_controller()
    play(controller, [0, 4])
    with pytest.raises(HistoryIndexError):
        controller.jump_to_move(index)
    assert controller.active_index == 2
    # still usable afterwards
    assert controller.submit_human_move(8)


def test_parity_matches_side_to_move_in_multiplayer():
    controller, _ = make_controller(rows=4, cols=5, win=4)
    rng = random.Random(11)
    for _ in range(200):
        if controller.phase is Phase.TERMINAL or rng.random() < 0.2:
            controller.jump_to_move(rng.randrange(len(controller.history)))
        else:
            controller.submit_human_move(rng.choice(controller.current_board.empty_cells()))
        expected = Cell.X if controller.active_index % 2 == 0 else Cell.O
        assert controller.next_player is expected
        board = controller.current_board
        xs = board.cells.count(Cell.X)
        os_ = board.cells.count(Cell.O)
        assert xs - os_ == controller.active_index % 2


def test_reset_starts_over_with_same_settings():
    controller, _ = make_controller(rows=4, cols=4, win=3)
    play(controller, [0, 5])
    controller.reset()
    assert controller.history == (BoardState.empty(4, 4),)
    assert controller.config == Configuration(4, 4, 3)
    assert controller.mode is GameMode.MULTIPLAYER


# ---------- configuration ----------


def test_invalid_configuration_is_not_applied():
    controller, _ = make_controller()
    play(controller, [0])
    before = controller.snapshot()
    with pytest.raises(ConfigurationInvalid) as excinfo:
        controller.submit_configuration(2, 3, 3)
    assert "rows must be at least 3" in excinfo.value.errors
    assert controller.snapshot() == before
    assert controller.config == Configuration(3, 3, 3)


def test_valid_configuration_resets_board():
    controller, _ = make_controller()
    play(controller, [0, 4])
    config = controller.submit_configuration(4, 6, 4)
    assert config == Configuration(4, 6, 4)
    assert controller.config == config
    assert controller.history == (BoardState.empty(4, 6),)
    assert controller.phase is Phase.AWAITING_HUMAN


def test_win_length_follows_configuration():
    controller, _ = make_controller()
    controller.submit_configuration(5, 5, 4)
    play(controller, [0, 5, 1, 6, 2, 7])
    assert controller.winner is None
    play(controller, [3])
    assert controller.winner is Cell.X


# ---------- single player ----------


def test_single_player_computer_replies_after_timer():
    controller, scheduler = make_controller(GameMode.SINGLE_PLAYER)
    assert controller.status_text == "Your turn (X)"
    play(controller, [0])
    assert controller.phase is Phase.AWAITING_COMPUTER
    assert controller.computer_pending
    assert controller.status_text == "Computer's turn (O)"
    (handle,) = scheduler.pending()
    assert handle.delay == 0.5

    before = controller.current_board
    scheduler.fire()
    after = controller.current_board
    changed = [i for i in range(9) if before.cells[i] is not after.cells[i]]
    assert len(changed) == 1
    assert before.cells[changed[0]] is Cell.EMPTY
    assert after.cells[changed[0]] is Cell.O
    assert controller.next_player is Cell.X
    assert controller.phase is Phase.AWAITING_HUMAN
    assert not controller.computer_pending
    assert controller.active_index == 2


def test_human_cannot_move_for_the_computer():
    controller, _ = make_controller(GameMode.SINGLE_PLAYER)
    play(controller, [0])
    assert controller.submit_human_move(4) is False
    assert len(controller.history) == 2


def test_computer_moves_are_reproducible_with_seed():
    def first_reply(seed):
        controller, scheduler = make_controller(GameMode.SINGLE_PLAYER, rows=5, cols=5, seed=seed)
        play(controller, [12])
        scheduler.fire()
        return controller.current_board

    assert first_reply(9) == first_reply(9)


def test_computer_does_not_move_once_game_is_over():
    controller, scheduler = make_controller(GameMode.SINGLE_PLAYER)
    while controller.phase is not Phase.TERMINAL:
        assert controller.submit_human_move(controller.current_board.empty_cells()[0])
        if controller.phase is Phase.AWAITING_COMPUTER:
            scheduler.fire()
    assert scheduler.pending() == []
    assert controller.play_computer_move() is None


def test_reset_cancels_pending_computer_move():
    controller, scheduler = make_controller(GameMode.SINGLE_PLAYER)
    play(controller, [4])
    (handle,) = scheduler.pending()
    controller.reset()
    assert handle.cancelled
    assert not controller.computer_pending
    # a timer that fires late must not touch the fresh game
    handle.callback()
    assert controller.history == (BoardState.empty(3, 3),)


def test_reconfiguration_cancels_pending_computer_move():
    controller, scheduler = make_controller(GameMode.SINGLE_PLAYER)
    play(controller, [4])
    (handle,) = scheduler.pending()
    controller.submit_configuration(4, 4, 3)
    assert handle.cancelled
    handle.callback()
    assert controller.history == (BoardState.empty(4, 4),)


def test_mode_switch_resets_and_cancels():
    controller, scheduler = make_controller(GameMode.SINGLE_PLAYER)
    play(controller, [4])
    (handle,) = scheduler.pending()
    controller.set_mode(GameMode.MULTIPLAYER)
    assert handle.cancelled
    assert controller.mode is GameMode.MULTIPLAYER
    assert controller.history == (BoardState.empty(3, 3),)
    assert controller.status_text == "Next player: X"


def test_rewind_cancels_and_does_not_auto_move():
    controller, scheduler = make_controller(GameMode.SINGLE_PLAYER)
    play(controller, [4])
    scheduler.fire()
    play(controller, [controller.current_board.empty_cells()[0]])
    (handle,) = scheduler.pending()
    controller.jump_to_move(1)
    assert handle.cancelled
    assert not controller.computer_pending
    assert scheduler.pending() == []
    assert controller.next_player is Cell.O
    # the cancelled timer firing late leaves the browsed position alone
    before = controller.snapshot()
    handle.callback()
    assert controller.snapshot() == before
    assert controller.status_text == "Viewing move 1: jump to an X move to keep playing"
    # browsing is read-only: human input is ignored at the computer's turn
    assert controller.submit_human_move(8) is False
    assert len(controller.history) == 4

    controller.jump_to_move(2)
    assert scheduler.pending() == []
    free = controller.current_board.empty_cells()[-1]
    assert controller.submit_human_move(free)
    assert len(controller.history) == 4
    assert controller.history[3].cells[free] is Cell.X
    assert len(scheduler.pending()) == 1


def test_play_computer_move_directly():
    controller, scheduler = make_controller(GameMode.SINGLE_PLAYER)
    play(controller, [4])
    (handle,) = scheduler.pending()
    index = controller.play_computer_move()
    assert handle.cancelled
    assert controller.current_board.cells[index] is Cell.O
    handle.callback()
    assert len(controller.history) == 3


def test_play_computer_move_ignored_in_multiplayer():
    controller, _ = make_controller()
    play(controller, [4])
    assert controller.play_computer_move() is None
    assert len(controller.history) == 2


@pytest.mark.parametrize("index", [True, False, 1.0])
def test_jump_rejects_non_integer_index(index):
    controller, _ = make_controller()
    play(controller, [4])
    assert controller.active_index == 1
    with pytest.raises(HistoryIndexError):
        controller.jump_to_move(index)
    assert controller.active_index == 1


def test_rewind_to_computer_turn_is_a_paused_position():
    controller, scheduler = make_controller(GameMode.SINGLE_PLAYER)
    play(controller, [4])
    assert controller.status_text == "Computer's turn (O)"
    scheduler.fire()
    controller.jump_to_move(1)
    assert controller.phase is Phase.AWAITING_COMPUTER
    assert not controller.computer_pending
    assert controller.status_text == "Viewing move 1: jump to an X move to keep playing"
    assert controller.status is GameStatus.O_TO_MOVE
    controller.jump_to_move(0)
    assert controller.status_text == "Your turn (X)"
