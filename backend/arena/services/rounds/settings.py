from dataclasses import dataclass, fields
from typing import Iterable, Mapping, Optional

from arena.exceptions import InvalidSettings


@dataclass(frozen=True)
class RoundSettings:
    """Round engine settings, built once from app config and validated.

    All durations are milliseconds.
    """
    countdown_ms: int = 5000
    cleanup_delay_ms: int = 5000
    lobby_announce_delay_ms: int = 3000
    tick_interval_ms: int = 50
    default_game_type: str = 'reach'
    auto_start_delay_ms: int = 0
    obstacle_count: int = 4
    min_players: int = 1
    timer_heartbeat_ms: int = 0

    # Flask config key -> field name
    CONFIG_KEYS = {
        'ROUND_COUNTDOWN_MS': 'countdown_ms',
        'ROUND_CLEANUP_DELAY_MS': 'cleanup_delay_ms',
        'ROUND_LOBBY_ANNOUNCE_DELAY_MS': 'lobby_announce_delay_ms',
        'TICK_INTERVAL_MS': 'tick_interval_ms',
        'DEFAULT_GAME_TYPE': 'default_game_type',
        'AUTO_START_DELAY_MS': 'auto_start_delay_ms',
        'OBSTACLE_COUNT': 'obstacle_count',
        'MIN_PLAYERS': 'min_players',
        'TIMER_HEARTBEAT_MS': 'timer_heartbeat_ms',
    }

    @classmethod
    def from_config(cls, config: Mapping) -> 'RoundSettings':
        kwargs = {}
        types = {f.name: f.type for f in fields(cls)}
        for key, name in cls.CONFIG_KEYS.items():
            if key not in config or config[key] is None:
                continue
            value = config[key]
            if types[name] in (int, 'int'):
                try:
                    value = int(value)
                except (TypeError, ValueError):
                    raise InvalidSettings(f'{key} must be an integer, got {value!r}')
            kwargs[name] = value
        return cls(**kwargs)

    def validate(self, game_types: Optional[Iterable[str]] = None) -> 'RoundSettings':
        for name in ('countdown_ms', 'cleanup_delay_ms', 'lobby_announce_delay_ms',
                     'auto_start_delay_ms', 'obstacle_count', 'timer_heartbeat_ms'):
            if getattr(self, name) < 0:
                raise InvalidSettings(f'{name} must be >= 0, got {getattr(self, name)}')
        if self.tick_interval_ms <= 0:
            raise InvalidSettings(f'tick_interval_ms must be > 0, got {self.tick_interval_ms}')
        if self.min_players < 1:
            raise InvalidSettings(f'min_players must be >= 1, got {self.min_players}')
        if game_types is not None and self.default_game_type not in set(game_types):
            raise InvalidSettings(f'default_game_type {self.default_game_type!r} is not registered')
        return self
