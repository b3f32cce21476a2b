"""Round engine: game types, tricks, obstacles, timers and the round host."""

from .engine import MiniGame, Participant
from .registry import GAME_TYPES, GameType, create_game, get_game_type, randomize_time_limit, register_game_type
from .settings import RoundSettings
from .strategies import CollectStrategy, ReachGoalStrategy, RoundStrategy

__all__ = [
    'MiniGame', 'Participant',
    'GAME_TYPES', 'GameType', 'create_game', 'get_game_type',
    'randomize_time_limit', 'register_game_type',
    'RoundSettings',
    'RoundStrategy', 'ReachGoalStrategy', 'CollectStrategy',
]
