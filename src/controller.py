# controller.py
# The turn controller: sequences player and automated moves, spawning,
# end-of-game detection, persistence and rendering.

import asyncio
import logging
import random
from typing import Optional

import core
from capabilities import RenderCapability, RenderMetadata, SearchCapability, StorageCapability
from core import Direction, GameProgressState
from game_state import GameSettings, GameState
from grid import Grid

logger = logging.getLogger(__name__)


class TurnController:
    """
    Owns the grid and every flag of a running game.

    Moves are serialised: a move holds `_move_lock` from resolution until the
    renderer reports completion, so no two moves (and no move and a render)
    interleave. Automated moves are requested from the search capability
    as separate tasks, at most one in flight at a time.
    """

    def __init__(
        self,
        search: SearchCapability,
        storage: StorageCapability,
        renderer: RenderCapability,
        settings: Optional[GameSettings] = None,
        rng: Optional[random.Random] = None,
    ):
        self.search = search
        self.storage = storage
        self.renderer = renderer
        self.settings = settings or GameSettings()
        self.rng = rng or random.Random()

        self.grid = Grid(self.settings.size)
        self.score = 0
        self.over = False
        self.won = False
        self.keep_playing = False
        self.autoplay = False
        self.throttle = self.settings.throttle
        self.search_failures = 0

        self._move_lock = asyncio.Lock()
        self._autoplay_task: Optional["asyncio.Task[None]"] = None
        self._search_in_flight = False

    # --- Status ---

    @property
    def progress(self) -> GameProgressState:
        return core.determine_game_status(self.over, self.won, self.keep_playing)

    def is_terminated(self) -> bool:
        """True if the game is lost, or won and the player hasn't kept playing."""
        return self.progress is not GameProgressState.IN_PROGRESS

    # --- Lifecycle ---

    async def setup(self) -> None:
        """Loads the persisted game if there is one, otherwise starts a fresh board."""
        previous = self.storage.get_game_state()
        loaded = False
        if previous is not None:
            try:
                self._load_state(previous)
                loaded = True
                logger.info("Loaded saved game with score %d", self.score)
            except ValueError as exc:
                logger.warning("Discarding unusable saved game: %s", exc)
        if not loaded:
            self._clear_state()
            self.grid = core.initialize_grid(self.settings.size, self.rng, self.settings.start_tiles)
            logger.info("Started a new %dx%d game", self.settings.size, self.settings.size)
        async with self._move_lock:
            await self._actuate()

    async def restart(self) -> None:
        # A pending automated move belongs to the old board
        await self._cancel_automated_move()
        if self.autoplay:
            self.autoplay = False
            self.renderer.update_autoplay_button(False)
        self.storage.clear_game_state()
        self.renderer.continue_game()
        await self.setup()

    def continue_playing(self) -> None:
        """Keep playing after winning."""
        self.keep_playing = True
        self.renderer.continue_game()

    # --- Moves ---

    async def move(self, direction: Direction) -> bool:
        """
        Applies one move and settles the turn.
        Args:
            direction (Direction): The direction to move.
        Returns:
            bool: True if the board changed. A move that changes nothing has
                  no side effects at all.
        """
        async with self._move_lock:
            if self.is_terminated():
                return False

            result = core.resolve_move(self.grid, direction, self.settings.win_tile)
            if not result.moved:
                return False

            self.score += result.score_delta
            if result.won and not self.won:
                self.won = True
                logger.info("Reached %d with score %d", self.settings.win_tile, self.score)

            core.add_random_tile(self.grid, self.rng)

            if not core.moves_available(self.grid):
                self.over = True
                self.autoplay = False
                logger.info("Game over with score %d", self.score)

            logger.debug("Moved %s, score %d (+%d)", direction.name, self.score, result.score_delta)
            await self._actuate()
        return True

    # --- Automation ---

    def toggle_autoplay(self) -> None:
        self.autoplay = not self.autoplay
        self.renderer.update_autoplay_button(self.autoplay)
        if self.autoplay:
            self._schedule_automated_move()

    def toggle_throttle(self) -> None:
        self.throttle = not self.throttle
        self.renderer.update_throttle_button(self.throttle)

    def increase_strength(self) -> int:
        strength = self.search.increase_strength()
        self._strength_changed(strength)
        return strength

    def decrease_strength(self) -> int:
        strength = self.search.decrease_strength()
        self._strength_changed(strength)
        return strength

    async def wait_for_autoplay(self) -> None:
        """Waits until no automated move is pending."""
        while self._autoplay_task is not None and not self._autoplay_task.done():
            await self._autoplay_task

    async def close(self) -> None:
        """Stops autoplay and cancels a pending automated move."""
        self.autoplay = False
        await self._cancel_automated_move()

    async def _cancel_automated_move(self) -> None:
        task = self._autoplay_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._autoplay_task = None
        self._search_in_flight = False

    def _schedule_automated_move(self) -> None:
        if self._search_in_flight or not self.autoplay or self.is_terminated():
            return
        self._search_in_flight = True
        self._autoplay_task = asyncio.get_running_loop().create_task(self._automated_move())

    async def _automated_move(self) -> None:
        timer = asyncio.ensure_future(asyncio.sleep(self.settings.throttle_ms / 1000))
        try:
            try:
                direction = await self.search.choose_direction(self.grid.as_rows())
            except Exception as exc:
                self.search_failures += 1
                logger.warning("Search failed, skipping this automated move: %s", exc)
                return
            if self.throttle:
                await timer
        finally:
            timer.cancel()
            self._search_in_flight = False

        if not self.autoplay or self.is_terminated():
            logger.debug("Discarding automated %s, autoplay stopped", direction.name)
            return
        try:
            moved = await self.move(direction)
        except Exception:
            logger.exception("Automated %s failed; autoplay waits for the next move", direction.name)
            return
        if not moved:
            logger.warning("Search proposed %s, which changes nothing; autoplay waits for the next move", direction.name)

    # --- Persistence & Rendering ---

    def serialize(self) -> GameState:
        return GameState(
            grid=self.grid.serialize(),
            score=self.score,
            over=self.over,
            won=self.won,
            keep_playing=self.keep_playing,
            automation_level=self.search.get_strength(),
        )

    def _load_state(self, state: GameState) -> None:
        self.grid = Grid.deserialize(state.model_dump()["grid"])
        self.score = state.score
        self.over = state.over
        self.won = state.won
        self.keep_playing = state.keep_playing
        self.search.set_strength(state.automation_level)

    def _clear_state(self) -> None:
        self.grid = Grid(self.settings.size)
        self.score = 0
        self.over = False
        self.won = False
        self.keep_playing = False
        self.autoplay = False

    def _persist(self) -> None:
        if self.storage.get_best_score() < self.score:
            self.storage.set_best_score(self.score)
        # A lost game is not worth resuming; a won one is
        if self.over:
            self.storage.clear_game_state()
        else:
            self.storage.set_game_state(self.serialize())

    def _strength_changed(self, strength: int) -> None:
        if not self.over:
            self.storage.set_game_state(self.serialize())
        self.renderer.update_strength(strength)

    async def _actuate(self) -> None:
        """Persists, renders and, with autoplay on, asks for the next move. Caller holds the move lock."""
        self._persist()
        await self.renderer.render(
            self.grid.copy(),
            RenderMetadata(
                score=self.score,
                over=self.over,
                won=self.won,
                best_score=self.storage.get_best_score(),
                terminated=self.is_terminated(),
                strength=self.search.get_strength(),
                autoplay_on=lambda: self.autoplay,
                throttle_on=lambda: self.throttle,
            ),
        )
        if self.autoplay:
            self._schedule_automated_move()
