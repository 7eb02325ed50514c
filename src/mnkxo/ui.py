"""FastAPI-powered web UI for playing MNK-XO in the browser."""

from __future__ import annotations

import logging
import uuid
from typing import Dict, List

from fastapi import FastAPI, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import BaseModel, ConfigDict, Field

from .controller import COMPUTER_MOVE_DELAY, GameController, GameSnapshot
from .game import (
    DEFAULT_NUM_COLS,
    DEFAULT_NUM_ROWS,
    DEFAULT_WIN_LENGTH,
    BoardState,
    Configuration,
    ConfigurationInvalid,
    GameMode,
    HistoryIndexError,
)

logger = logging.getLogger(__name__)

SESSIONS: Dict[str, GameController] = {}
app = FastAPI(title="MNK-XO", description="Configurable tic-tac-toe played in the browser")


class NewGameRequest(BaseModel):
    """Request payload for starting a new game."""

    model_config = ConfigDict(populate_by_name=True)

    mode: GameMode = GameMode.MULTIPLAYER
    num_rows: int = Field(default=DEFAULT_NUM_ROWS, alias="numRows")
    num_cols: int = Field(default=DEFAULT_NUM_COLS, alias="numCols")
    win_length: int = Field(default=DEFAULT_WIN_LENGTH, alias="winLength")


class ConfigRequest(BaseModel):
    """Request payload for changing board size and win length."""

    model_config = ConfigDict(populate_by_name=True)

    num_rows: int = Field(alias="numRows")
    num_cols: int = Field(alias="numCols")
    win_length: int = Field(alias="winLength")


class MoveRequest(BaseModel):
    """Request payload for submitting a human move."""

    model_config = ConfigDict(populate_by_name=True)

    cell_index: int = Field(alias="cellIndex", ge=0)


class JumpRequest(BaseModel):
    index: int


class ModeRequest(BaseModel):
    mode: GameMode


def _create_session(mode: GameMode, config: Configuration) -> str:
    """Create a new game controller and register it for later access."""

    controller = GameController(config, mode, computer_delay=COMPUTER_MOVE_DELAY)
    game_id = uuid.uuid4().hex
    SESSIONS[game_id] = controller
    logger.info(
        "Created game %s (%s, %dx%d, win length %d)",
        game_id,
        mode.value,
        config.num_rows,
        config.num_cols,
        config.win_length,
    )
    return game_id


def _get_session(game_id: str) -> GameController:
    try:
        return SESSIONS[game_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc


def _cells(board: BoardState) -> List[str]:
    return [cell.value for cell in board.cells]


def _serialize_snapshot(game_id: str, snap: GameSnapshot) -> Dict[str, object]:
    state: Dict[str, object] = {
        "id": game_id,
        "mode": snap.mode.value,
        "config": {
            "numRows": snap.config.num_rows,
            "numCols": snap.config.num_cols,
            "winLength": snap.config.win_length,
        },
        "board": _cells(snap.board),
        "history": [_cells(board) for board in snap.history],
        "activeIndex": snap.active_index,
        "nextPlayer": snap.next_player.value,
        "phase": snap.phase.value,
        "status": snap.status.value,
        "statusText": snap.status_text,
        "winner": snap.winner.value if snap.winner is not None else None,
        "winningLine": list(snap.winning_line) if snap.winning_line else None,
        "tie": snap.tie,
        "computerPending": snap.computer_pending,
    }
    return state


def _serialize_session(game_id: str, controller: GameController) -> Dict[str, object]:
    return _serialize_snapshot(game_id, controller.snapshot())


@app.post("/api/game")
def create_game(request: NewGameRequest) -> Dict[str, object]:
    try:
        config = Configuration(request.num_rows, request.num_cols, request.win_length)
    except ConfigurationInvalid as exc:
        raise HTTPException(status_code=400, detail=exc.errors) from exc
    game_id = _create_session(request.mode, config)
    return _serialize_session(game_id, SESSIONS[game_id])


@app.get("/api/game/{game_id}")
def get_game(game_id: str) -> Dict[str, object]:
    controller = _get_session(game_id)
    return _serialize_session(game_id, controller)


@app.post("/api/game/{game_id}/move")
def make_move(game_id: str, request: MoveRequest) -> Dict[str, object]:
    controller = _get_session(game_id)
    accepted = controller.submit_human_move(request.cell_index)
    state = _serialize_session(game_id, controller)
    state["accepted"] = accepted
    return state


@app.post("/api/game/{game_id}/jump")
def jump_to_move(game_id: str, request: JumpRequest) -> Dict[str, object]:
    controller = _get_session(game_id)
    try:
        controller.jump_to_move(request.index)
    except HistoryIndexError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return _serialize_session(game_id, controller)


@app.post("/api/game/{game_id}/config")
def configure_game(game_id: str, request: ConfigRequest) -> Dict[str, object]:
    controller = _get_session(game_id)
    try:
        controller.submit_configuration(request.num_rows, request.num_cols, request.win_length)
    except ConfigurationInvalid as exc:
        raise HTTPException(status_code=400, detail=exc.errors) from exc
    return _serialize_session(game_id, controller)


@app.post("/api/game/{game_id}/mode")
def change_mode(game_id: str, request: ModeRequest) -> Dict[str, object]:
    controller = _get_session(game_id)
    controller.set_mode(request.mode)
    return _serialize_session(game_id, controller)


@app.post("/api/game/{game_id}/reset")
def reset_game(game_id: str) -> Dict[str, object]:
    controller = _get_session(game_id)
    controller.reset()
    return _serialize_session(game_id, controller)


@app.get("/", response_class=HTMLResponse)
def index() -> str:
    return HTML_PAGE


HTML_PAGE = """<!DOCTYPE html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <title>MNK-XO</title>
    <style>
      :root {
        color-scheme: light;
        font-family: system-ui, -apple-system, BlinkMacSystemFont, \"Segoe UI\", sans-serif;
      }
      * {
        box-sizing: border-box;
      }
      body {
        margin: 0;
        background: radial-gradient(circle at top, #f2f5ff, #dbe0ff 40%, #cfd8ff 70%);
        min-height: 100vh;
        display: flex;
        justify-content: center;
        padding: 2rem 1rem 3rem;
        color: #13203a;
      }
      main {
        background: rgba(255, 255, 255, 0.92);
        border-radius: 18px;
        box-shadow: 0 20px 40px rgba(34, 47, 79, 0.16);
        padding: clamp(1.5rem, 4vw, 2.5rem);
        width: min(980px, 100%);
      }
      h1 {
        margin: 0 0 1.25rem;
        text-align: center;
        letter-spacing: 0.06em;
      }
      .controls {
        display: flex;
        flex-wrap: wrap;
        gap: 0.75rem;
        justify-content: center;
        align-items: center;
        margin-bottom: 1rem;
      }
      button,
      input[type='number'] {
        font-size: 1rem;
        padding: 0.45rem 0.85rem;
        border-radius: 999px;
        border: 1px solid rgba(60, 70, 120, 0.25);
        background: white;
        cursor: pointer;
        font-family: inherit;
      }
      input[type='number'] {
        width: 4.5rem;
        cursor: text;
      }
      label {
        font-weight: 600;
      }
      #status {
        text-align: center;
        font-size: 1.1rem;
        font-weight: 600;
        margin: 0 auto 0.5rem;
      }
      #message {
        text-align: center;
        min-height: 1.25rem;
        color: #b00020;
        font-weight: 600;
        margin-bottom: 1rem;
      }
      .layout {
        display: flex;
        flex-wrap: wrap;
        gap: 1.5rem;
        justify-content: center;
        align-items: flex-start;
      }
      .board-grid {
        display: grid;
        gap: 2px;
        background: rgba(80, 100, 160, 0.25);
        padding: 2px;
        border-radius: 8px;
      }
      .cell {
        width: 1.9rem;
        height: 1.9rem;
        padding: 0;
        border: none;
        border-radius: 3px;
        font-weight: 700;
        background: rgba(255, 255, 255, 0.95);
      }
      .cell.x {
        color: #f04a6a;
      }
      .cell.o {
        color: #3a66ff;
      }
      .cell.winning {
        background: #ffe59a;
      }
      .moves ol {
        margin: 0;
        padding-left: 1.5rem;
        max-height: 32rem;
        overflow-y: auto;
      }
      .moves li {
        margin-bottom: 0.25rem;
      }
      .moves button.active {
        font-weight: 700;
        border-color: #3a66ff;
      }
    </style>
  </head>
  <body>
    <main>
      <h1>MNK-XO</h1>
      <div class=\"controls\">
        <label><input type=\"radio\" name=\"mode\" value=\"multi\" checked /> Multiplayer</label>
        <label><input type=\"radio\" name=\"mode\" value=\"single\" /> Single Player</label>
        <button id=\"reset\">Reset Game</button>
      </div>
      <form id=\"config\" class=\"controls\">
        <label for=\"rows\">Rows</label>
        <input id=\"rows\" type=\"number\" min=\"3\" value=\"20\" />
        <label for=\"cols\">Columns</label>
        <input id=\"cols\" type=\"number\" min=\"3\" value=\"20\" />
        <label for=\"win\">Win length</label>
        <input id=\"win\" type=\"number\" min=\"3\" value=\"5\" />
        <button type=\"submit\">Apply</button>
      </form>
      <div id=\"status\">Loading…</div>
      <div id=\"message\" role=\"status\"></div>
      <div class=\"layout\">
        <div id=\"board\" class=\"board-grid\"></div>
        <div class=\"moves\"><ol id=\"moves\"></ol></div>
      </div>
    </main>
    <script>
      const boardEl = document.getElementById('board');
      const movesEl = document.getElementById('moves');
      const statusEl = document.getElementById('status');
      const messageEl = document.getElementById('message');
      const rowsEl = document.getElementById('rows');
      const colsEl = document.getElementById('cols');
      const winEl = document.getElementById('win');
      let gameId = null;
      let gameState = null;
      let pollHandle = null;

      async function api(path, body) {
        const response = await fetch(path, {
          method: body === undefined ? 'GET' : 'POST',
          headers: { 'Content-Type': 'application/json' },
          body: body === undefined ? undefined : JSON.stringify(body),
        });
        const payload = await response.json().catch(() => ({}));
        if (!response.ok) {
          const detail = payload?.detail;
          throw new Error(Array.isArray(detail) ? detail.map((d) => d.msg || d).join('; ') : detail || 'Request failed');
        }
        return payload;
      }

      function currentMode() {
        return document.querySelector('input[name=\"mode\"]:checked').value;
      }

      function setState(data) {
        gameId = data.id;
        gameState = data;
        rowsEl.value = data.config.numRows;
        colsEl.value = data.config.numCols;
        winEl.value = data.config.winLength;
        render();
        if (pollHandle !== null) {
          clearTimeout(pollHandle);
          pollHandle = null;
        }
        if (data.computerPending) {
          pollHandle = window.setTimeout(poll, 250);
        }
      }

      async function poll() {
        pollHandle = null;
        if (!gameId) return;
        try {
          setState(await api(`/api/game/${gameId}`));
        } catch (error) {
          console.error('Polling failed', error);
        }
      }

      async function run(path, body) {
        messageEl.textContent = '';
        try {
          setState(await api(path, body));
        } catch (error) {
          messageEl.textContent = error.message || 'Network error. Please try again.';
        }
      }

      function render() {
        const { numCols } = gameState.config;
        const winning = new Set(gameState.winningLine || []);
        boardEl.style.gridTemplateColumns = `repeat(${numCols}, auto)`;
        boardEl.replaceChildren();
        gameState.board.forEach((value, index) => {
          const cell = document.createElement('button');
          cell.className = 'cell';
          if (value) cell.classList.add(value.toLowerCase());
          if (winning.has(index)) cell.classList.add('winning');
          cell.textContent = value;
          cell.setAttribute('aria-label', `Row ${Math.floor(index / numCols) + 1}, column ${(index % numCols) + 1}`);
          cell.addEventListener('click', () => run(`/api/game/${gameId}/move`, { cellIndex: index }));
          boardEl.appendChild(cell);
        });
        movesEl.replaceChildren();
        gameState.history.forEach((_, move) => {
          const item = document.createElement('li');
          const button = document.createElement('button');
          button.textContent = move ? `Go to move #${move}` : 'Go to game start';
          if (move === gameState.activeIndex) button.classList.add('active');
          button.addEventListener('click', () => run(`/api/game/${gameId}/jump`, { index: move }));
          item.appendChild(button);
          movesEl.appendChild(item);
        });
        statusEl.textContent = gameState.statusText;
      }

      document.querySelectorAll('input[name=\"mode\"]').forEach((input) => {
        input.addEventListener('change', () => run(`/api/game/${gameId}/mode`, { mode: currentMode() }));
      });
      document.getElementById('reset').addEventListener('click', () => run(`/api/game/${gameId}/reset`, {}));
      document.getElementById('config').addEventListener('submit', (event) => {
        event.preventDefault();
        run(`/api/game/${gameId}/config`, {
          numRows: Number.parseInt(rowsEl.value, 10),
          numCols: Number.parseInt(colsEl.value, 10),
          winLength: Number.parseInt(winEl.value, 10),
        });
      });

      run('/api/game', { mode: currentMode() });
    </script>
  </body>
</html>
"""
