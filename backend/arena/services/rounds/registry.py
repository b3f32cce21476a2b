import random
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Tuple

from arena.exceptions import UnknownGameType
from .engine import MiniGame
from .strategies import CollectStrategy, ReachGoalStrategy, RoundStrategy

DEFAULT_TIME_LIMIT_RANGE = (45000, 75000)


@dataclass
class GameType:
    tag: str
    name: str
    description: str
    strategy: Callable[[], RoundStrategy]
    min_players: int = 1
    has_timer: bool = True
    default_time_limit: int = 60000
    time_limit_range: Optional[Tuple[int, int]] = None

    def to_dict(self):
        return {
            'tag': self.tag,
            'name': self.name,
            'description': self.description,
            'min_players': self.min_players,
            'has_timer': self.has_timer,
            'default_time_limit': self.default_time_limit,
            'time_limit_range': list(self.time_limit_range or DEFAULT_TIME_LIMIT_RANGE),
        }


GAME_TYPES: Dict[str, GameType] = {}


def register_game_type(game_type: GameType) -> GameType:
    GAME_TYPES[game_type.tag] = game_type
    return game_type


def get_game_type(tag) -> GameType:
    game_type = GAME_TYPES.get(tag)
    if game_type is None:
        raise UnknownGameType(tag)
    return game_type


register_game_type(GameType(
    tag='reach',
    name='Reach the Goal',
    description='First player to touch the target wins',
    strategy=ReachGoalStrategy,
    min_players=1,
    default_time_limit=60000,
    time_limit_range=(40000, 75000),
))

register_game_type(GameType(
    tag='collect',
    name='Collect-a-thon',
    description='First player to reach the target score wins',
    strategy=CollectStrategy,
    min_players=1,
    default_time_limit=45000,
))


def randomize_time_limit(tag, rng=None) -> int:
    """Pick a limit in the type's range; unknown types use 45-75s."""
    rng = rng or random
    game_type = GAME_TYPES.get(tag)
    low, high = (game_type.time_limit_range if game_type and game_type.time_limit_range
                 else DEFAULT_TIME_LIMIT_RANGE)
    return low + int(rng.random() * (high - low))


def create_game(type_tag, world, broadcast, config=None, *, settings=None,
                scheduler=None, history=None, rng=None) -> MiniGame:
    """Build a MiniGame for ``type_tag``; raises UnknownGameType if unregistered."""
    game_type = get_game_type(type_tag)
    config = dict(config or {})
    rng = rng or random.Random()
    time_limit = config.get('time_limit') or randomize_time_limit(type_tag, rng)
    return MiniGame(
        world,
        broadcast,
        game_type.strategy(),
        int(time_limit),
        config,
        game_type=game_type.tag,
        display_name=game_type.name,
        settings=settings,
        scheduler=scheduler,
        history=history,
        rng=rng,
    )
