import logging
import math
import random
from dataclasses import dataclass
from typing import Any, List

logger = logging.getLogger(__name__)

OBSTACLE_PATTERNS = ['sweeper', 'moving_wall', 'pendulum', 'falling_block']
ARENA_SPREAD = 30
SPAWN_EXCLUSION_RADIUS = 5
MAX_PLACEMENT_ATTEMPTS = 10

HAZARD_COLOR = '#e74c3c'
PLATFORM_COLOR = '#9b59b6'

# pattern -> (min speed, width of the random band)
SPEED_BANDS = {
    'sweeper': (2.0, 3.0),
    'moving_wall': (1.0, 2.0),
    'pendulum': (1.0, 1.5),
    'falling_block': (3.0, 4.0),
}


@dataclass
class Placement:
    pattern: str
    x: float
    z: float
    attempts: int
    entity: Any = None


class ObstacleGenerator:
    """Scatter hazards around the arena, keeping clear of the respawn point."""

    def __init__(self, game, rng=None):
        self.game = game
        self.rng = rng or random.Random()

    def spawn_random_obstacles(self, count) -> List[Placement]:
        rp = self.game.world.respawn_point or (0, 2, 0)
        placements = []
        for _ in range(count):
            pattern = self.rng.choice(OBSTACLE_PATTERNS)
            x, z, attempts = self._sample_position(rp)
            placement = Placement(pattern=pattern, x=x, z=z, attempts=attempts)
            placement.entity = self._spawn(pattern, x, z)
            placements.append(placement)
        logger.info(f'[obstacles] round={self.game.id} spawned={count}')
        return placements

    def _sample_position(self, rp):
        # the last sample is kept even if every attempt landed too close
        attempts = 0
        while True:
            x = (self.rng.random() - 0.5) * ARENA_SPREAD
            z = (self.rng.random() - 0.5) * ARENA_SPREAD
            attempts += 1
            too_close = math.hypot(x - rp[0], z - rp[2]) < SPAWN_EXCLUSION_RADIUS
            if not too_close or attempts >= MAX_PLACEMENT_ATTEMPTS:
                return x, z, attempts

    def _speed(self, pattern):
        low, band = SPEED_BANDS[pattern]
        return low + self.rng.random() * band

    def _spawn(self, pattern, x, z):
        speed = self._speed(pattern)
        if pattern == 'sweeper':
            return self.game.spawn_entity('obstacle', [x, 1, z], [8, 1, 1], {
                'color': HAZARD_COLOR, 'rotating': True, 'speed': speed,
            })
        if pattern == 'moving_wall':
            return self.game.spawn_entity('obstacle', [-15, 1, z], [2, 3, 2], {
                'color': HAZARD_COLOR, 'kinematic': True,
                'path': [[-15, 1, z], [15, 1, z]], 'speed': speed,
            })
        if pattern == 'pendulum':
            return self.game.spawn_entity('platform', [x, 5, z], [4, 0.5, 4], {
                'color': PLATFORM_COLOR, 'kinematic': True,
                'path': [[x, 5, z], [x + 10, 5, z - 10]], 'speed': speed,
            })
        return self.game.spawn_entity('obstacle', [x, 20, z], [2, 2, 2], {
            'color': HAZARD_COLOR, 'falling': True, 'speed': speed,
        })
