"""Force modes and the walkers that move attractors/repellors around."""

import numpy as np
from enum import Enum
from typing import List, Optional

from config import boids as config
from boids import Force, RandomWalker


class ForceMode(Enum):
    NONE = "none"
    SINGLE_ATTRACTOR = "single_attractor"
    SINGLE_REPELLOR = "single_repellor"
    MIXED = "mixed"

    def next(self) -> "ForceMode":
        """none -> single attractor -> single repellor -> mixed -> none."""
        order = list(ForceMode)
        return order[(order.index(self) + 1) % len(order)]


class ForceField:
    """
    The active force list plus one RandomWalker per force.

    Changing mode rebuilds both lists from scratch. update() moves every
    force to its walker's new position; call it once per frame before
    handing forces to the engine.
    """

    def __init__(self, bounds, presets: Optional[dict] = None,
                 walker_settings: Optional[dict] = None,
                 rng: Optional[np.random.Generator] = None):
        self.bounds = tuple(float(b) for b in bounds)
        self.presets = presets if presets is not None else config.FORCES
        self.walker_settings = walker_settings if walker_settings is not None else config.WALKER
        self._rng = rng if rng is not None else np.random.default_rng()

        self.mode = ForceMode.NONE
        self.forces: List[Force] = []
        self.walkers: List[RandomWalker] = []

    @property
    def show_point_light(self) -> bool:
        return any(force.is_attractor for force in self.forces)

    def cycle(self) -> ForceMode:
        """Advance to the next mode and rebuild the forces."""
        self.set_mode(self.mode.next())
        return self.mode

    def set_mode(self, mode: ForceMode):
        self.mode = mode
        self._rebuild()

    def _rebuild(self):
        self.forces = []
        self.walkers = []
        if self.mode == ForceMode.NONE:
            return

        xb, yb, zb = self.bounds
        for preset in self.presets[self.mode.value]:
            force = Force(
                radius=preset["radius"],
                strength=preset["strength"],
                position=tuple(preset["position"]),
            )
            speed = (self.walker_settings["attractor_speed"] if force.is_attractor
                     else self.walker_settings["repellor_speed"])
            walker = RandomWalker(
                speed=speed,
                start_position=force.position,
                x_bounds=(-xb, xb),
                y_bounds=(-yb, yb),
                z_bounds=(-zb, zb),
                rng=self._rng,
                steer_weight=self.walker_settings["steer_weight"],
                push_back=self.walker_settings["push_back"],
            )
            self.forces.append(force)
            self.walkers.append(walker)

    def update(self) -> List[Force]:
        for force, walker in zip(self.forces, self.walkers):
            force.position = tuple(float(c) for c in walker.update())
        return self.forces
