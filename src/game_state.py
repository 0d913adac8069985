# game_state.py
# Pydantic models for the persisted game snapshot and the game settings.

import os
from typing import List, Optional

from pydantic import BaseModel, Field

import core

# --- Persisted Snapshot ---

class CellState(BaseModel):
    """A single occupied cell in the persisted grid."""
    value: int = Field(..., gt=1, description="Tile value, a power of 2.")


class GameState(BaseModel):
    """Represents the complete persisted state of a game instance."""
    grid: List[List[Optional[CellState]]] = Field(
        ...,
        description="Column-first N x N layout; each cell is either null or {value}."
    )
    score: int = Field(..., ge=0, description="Current score of the game.")
    over: bool = Field(default=False, description="True once the board is deadlocked.")
    won: bool = Field(default=False, description="True once the win tile has been produced. Sticky.")
    keep_playing: bool = Field(default=False, description="True if play continues after a win.")
    automation_level: int = Field(default=1, description="Strength of the search capability.")

    @property
    def progress(self) -> core.GameProgressState:
        return core.determine_game_status(self.over, self.won, self.keep_playing)


# --- Settings ---

ENV_PREFIX = "TILEGAME_"


class GameSettings(BaseModel):
    """Settings for a game session."""
    size: int = Field(
        default=4,
        gt=1,  # Board size must be at least 2x2
        description="Size of the N x N game board (e.g., 4 for a 4x4 board)."
    )
    start_tiles: int = Field(default=core.START_TILES, ge=0, description="Tiles spawned on a fresh board.")
    win_tile: int = Field(
        default=core.WIN_TILE,
        gt=0,
        description="The tile value to achieve for winning the game (e.g., 65536)."
    )
    throttle_ms: int = Field(
        default=100,
        ge=0,
        description="Minimum duration of an automated turn while throttling is on."
    )
    throttle: bool = Field(default=True, description="Whether automated moves start throttled.")
    state_path: Optional[str] = Field(
        default=None,
        description="JSON file used for persistence. Without it state lives for the session only."
    )

    @classmethod
    def from_env(cls, environ=None) -> "GameSettings":
        """
        Reads settings from TILEGAME_* environment variables.
        Raises:
            pydantic.ValidationError: If a variable holds an invalid value.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for field in ("size", "win_tile", "throttle_ms", "state_path"):
            raw = environ.get(ENV_PREFIX + field.upper())
            if raw:
                values[field] = raw
        return cls.model_validate(values)
