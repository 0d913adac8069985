# storage.py
# Storage capability implementations: session-only memory and a JSON file.

import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from game_state import GameState

logger = logging.getLogger(__name__)


class MemoryStorage:
    """Keeps the saved game and best score for the lifetime of the process."""

    def __init__(self):
        self._game_state: Optional[GameState] = None
        self._best_score = 0

    def get_game_state(self) -> Optional[GameState]:
        return self._game_state

    def set_game_state(self, state: GameState) -> None:
        self._game_state = state.model_copy(deep=True)

    def clear_game_state(self) -> None:
        self._game_state = None

    def get_best_score(self) -> int:
        return self._best_score

    def set_best_score(self, score: int) -> None:
        self._best_score = score


class JsonFileStorage(MemoryStorage):
    """
    Persists `{"gameState": ..., "bestScore": n}` to a JSON file.

    Any I/O failure switches the storage to memory-only for the rest of the
    session; gameplay carries on with whatever was last known.
    """

    def __init__(self, path):
        super().__init__()
        self.path = Path(path)
        self.degraded = False
        self._load()

    def set_game_state(self, state: GameState) -> None:
        super().set_game_state(state)
        self._save()

    def clear_game_state(self) -> None:
        super().clear_game_state()
        self._save()

    def set_best_score(self, score: int) -> None:
        super().set_best_score(score)
        self._save()

    def _load(self) -> None:
        try:
            if not self.path.exists():
                return
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except OSError as exc:
            self._degrade(exc)
            return
        except ValueError as exc:
            logger.warning("Ignoring unreadable save file %s: %s", self.path, exc)
            return

        best = document.get("bestScore", 0) if isinstance(document, dict) else 0
        self._best_score = best if isinstance(best, int) and best >= 0 else 0

        raw_state = document.get("gameState") if isinstance(document, dict) else None
        if raw_state is None:
            return
        try:
            self._game_state = GameState.model_validate(raw_state)
        except ValidationError as exc:
            logger.warning("Ignoring invalid saved game in %s: %s", self.path, exc)

    def _save(self) -> None:
        if self.degraded:
            return
        document: Dict[str, Any] = {
            "gameState": None if self._game_state is None else self._game_state.model_dump(mode="json"),
            "bestScore": self._best_score,
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(document), encoding="utf-8")
        except OSError as exc:
            self._degrade(exc)

    def _degrade(self, exc: Exception) -> None:
        self.degraded = True
        logger.warning("Storage at %s unavailable, keeping state in memory only: %s", self.path, exc)
