#!/usr/bin/env python3
"""Agent that reads a composed flow field and integrates its own velocity."""

import random
from typing import Optional

from pygame.math import Vector2

from flowpath.core.stitcher import ComposedField
from flowpath.core.types import Cell, NO_MOVE, direction_offset


class Agent:
    def __init__(self, pos: Vector2, cell_px: float = 8.0, retention: float = 0.8,
                 steer: float = 0.2, jitter: float = 0.5,
                 rng: Optional[random.Random] = None):
        self.pos = Vector2(pos)
        self.speed = Vector2(0, 0)
        self.next_dir = Vector2(0, 0)
        self.cell_px = cell_px
        self.retention = retention
        self.steer = steer
        self.jitter = jitter
        self._rng = rng or random.Random()

    def grid_pos(self) -> Cell:
        return int(self.pos.y // self.cell_px), int(self.pos.x // self.cell_px)

    def follow(self, composed: ComposedField) -> Vector2:
        """Direction of the flow under the agent; zero off the map or in an uncomputed tile."""
        cell = self.grid_pos()
        tiling = composed.tiling
        code = NO_MOVE
        if 0 <= cell[0] < tiling.height and 0 <= cell[1] < tiling.width:
            code = composed.direction_at(cell)
        dr, dc = direction_offset(code)
        self.next_dir = Vector2(dc, dr)
        return Vector2(self.next_dir)

    def advance(self, direction: Optional[Vector2] = None) -> Vector2:
        if direction is not None:
            self.next_dir = Vector2(direction)
        self.speed = self.speed * self.retention + self.next_dir * self.steer
        self.speed.x += self._rng.uniform(-self.jitter, self.jitter)
        self.speed.y += self._rng.uniform(-self.jitter, self.jitter)
        self.pos += self.speed
        return Vector2(self.pos)
