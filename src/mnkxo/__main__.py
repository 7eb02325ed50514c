"""Entry point for running MNK-XO via ``python -m mnkxo``."""

from __future__ import annotations

import logging
import math
import os

import uvicorn

from . import ui

logger = logging.getLogger(__name__)


def _computer_delay(default: float) -> float:
    """Read ``MNKXO_COMPUTER_DELAY``, keeping ``default`` for unusable values."""

    raw = os.environ.get("MNKXO_COMPUTER_DELAY")
    if raw is None:
        return default
    try:
        delay = float(raw)
    except ValueError:
        logger.warning("Ignoring MNKXO_COMPUTER_DELAY=%r: not a number", raw)
        return default
    if not math.isfinite(delay) or delay < 0:
        logger.warning("Ignoring MNKXO_COMPUTER_DELAY=%r: must be a non-negative number", raw)
        return default
    return delay


def main() -> None:
    """Start the FastAPI-powered MNK-XO web server."""

    host = os.environ.get("MNKXO_HOST", "0.0.0.0")
    port = int(os.environ.get("MNKXO_PORT", "8000"))
    level = os.environ.get("MNKXO_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    ui.COMPUTER_MOVE_DELAY = _computer_delay(ui.COMPUTER_MOVE_DELAY)
    uvicorn.run("mnkxo.ui:app", host=host, port=port, reload=False, log_level=level.lower())


if __name__ == "__main__":
    main()
