from __future__ import annotations

import math

import numpy as np

from .base import Observation

EMPTY = 0
SOLID = 1
ENEMY = 2
AGENT = 4

TILE_SIZE = 16
GROUND_ROWS = 2
START_X = 40.0
RUN_SPEED = 3.0
JUMP_SPEED = -1.0
GRAVITY = 0.15
MAX_FALL = 1.0
VIEW_BEHIND = 3


class GridRunner:
    """Side-scrolling tile world seen through a ``view_width x height`` window.

    The agent presses right / left / jump. Progress is its x position in
    pixels; walking into an enemy or dropping into a pit ends the episode.
    """

    def __init__(self, width: int = 200, height: int = 14, view_width: int = 16, seed: int = 0):
        if width < view_width or height < GROUND_ROWS + 4:
            raise ValueError(f"Level {width}x{height} is too small for a {view_width}-wide view")
        self.width = width
        self.height = height
        self.view_width = view_width
        self.level = self._build_level(np.random.default_rng(seed))
        self.reset()

    @property
    def observation_size(self) -> int:
        return self.view_width * self.height

    @property
    def action_size(self) -> int:
        return 3

    def _build_level(self, rng: np.random.Generator) -> np.ndarray:
        level = np.zeros((self.width, self.height), dtype=np.int8)
        ground = self.height - GROUND_ROWS
        level[:, ground:] = SOLID

        col = 10
        while col < self.width - 4:
            feature = rng.integers(3)
            if feature == 0:
                gap = int(rng.integers(1, 3))
                level[col:col + gap, ground:] = EMPTY
                col += gap
            elif feature == 1:
                level[col, ground - 1] = ENEMY
                col += 1
            else:
                stack = int(rng.integers(1, 3))
                level[col, ground - stack:ground] = SOLID
                col += 1
            col += int(rng.integers(4, 9))
        return level

    def reset(self) -> None:
        self.x = START_X
        self.y = float(self.height - GROUND_ROWS - 1)
        self.vy = 0.0
        self.alive = True

    def _tile(self, col: int, row: int) -> int:
        if col < 0:
            return SOLID
        if col >= self.width or row < 0 or row >= self.height:
            return EMPTY
        return int(self.level[col, row])

    def _rows(self, y: float) -> set[int]:
        return {int(math.floor(y)), int(math.ceil(y))}

    def _col(self, x: float) -> int:
        return int(x // TILE_SIZE)

    def _on_ground(self) -> bool:
        return self.y == math.floor(self.y) and self._tile(self._col(self.x), int(self.y) + 1) == SOLID

    def apply_action(self, action: np.ndarray) -> None:
        if not self.alive:
            return
        pressed = np.asarray(action, dtype=np.float32).reshape(-1) > 0.5
        right = bool(pressed[0]) if pressed.size > 0 else False
        left = bool(pressed[1]) if pressed.size > 1 else False
        jump = bool(pressed[2]) if pressed.size > 2 else False

        new_x = min(max(self.x + RUN_SPEED * (int(right) - int(left)), 0.0), self.width * TILE_SIZE - 1.0)
        if all(self._tile(self._col(new_x), row) != SOLID for row in self._rows(self.y)):
            self.x = new_x

        if jump and self._on_ground():
            self.vy = JUMP_SPEED
        else:
            self.vy = min(self.vy + GRAVITY, MAX_FALL)

        col = self._col(self.x)
        old_y = self.y
        new_y = old_y + self.vy
        if self.vy > 0:
            self.y = new_y
            # Land on the first solid row the agent's feet crossed.
            for row in range(int(math.ceil(old_y)) + 1, int(math.floor(new_y)) + 2):
                if self._tile(col, row) == SOLID:
                    self.y = float(row - 1)
                    self.vy = 0.0
                    break
        else:
            head = int(math.floor(new_y))
            if self._tile(col, head) == SOLID:
                self.y = float(head + 1)
                self.vy = 0.0
            else:
                self.y = new_y

        if self.y >= self.height - 1:
            self.alive = False
        elif any(self._tile(col, row) == ENEMY for row in self._rows(self.y)):
            self.alive = False

    def observe(self) -> Observation:
        col0 = self._col(self.x) - VIEW_BEHIND
        grid = np.zeros((self.view_width, self.height), dtype=np.int8)
        for dx in range(self.view_width):
            col = col0 + dx
            if 0 <= col < self.width:
                grid[dx, :] = self.level[col, :]

        row = int(math.floor(self.y))
        if self.alive and 0 <= row < self.height:
            grid[VIEW_BEHIND, row] = AGENT
        return Observation(grid=grid, alive=self.alive, progress=float(self.x))
