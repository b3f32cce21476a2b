import random

import pytest

from arena.exceptions import ConfigurationError, UnknownGameType
from arena.services.rounds.engine import MiniGame
from arena.services.rounds.registry import (
    GAME_TYPES,
    GameType,
    create_game,
    get_game_type,
    randomize_time_limit,
    register_game_type,
)
from arena.services.rounds.strategies import CollectStrategy, ReachGoalStrategy, RoundStrategy


class FixedRng:
    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value

    def choice(self, seq):
        return seq[0]


@pytest.fixture()
def build(world, broadcasts, scheduler, history, settings):
    def _build(tag, config=None, rng=None):
        return create_game(
            tag, world, broadcasts, config,
            settings=settings, scheduler=scheduler,
            history=history.append, rng=rng or random.Random(1),
        )
    return _build


def test_builtin_types_registered():
    assert {'reach', 'collect'} <= set(GAME_TYPES)
    assert get_game_type('reach').name == 'Reach the Goal'
    assert get_game_type('collect').to_dict()['time_limit_range'] == [45000, 75000]


def test_unknown_type_is_a_configuration_error(build):
    with pytest.raises(UnknownGameType) as excinfo:
        build('tag')
    assert excinfo.value.game_type == 'tag'
    assert isinstance(excinfo.value, ConfigurationError)
    assert 'Unknown game type: tag' in str(excinfo.value)


def test_create_game_binds_strategy_and_name(build):
    game = build('reach', {'time_limit': 30000})
    assert isinstance(game, MiniGame)
    assert isinstance(game.strategy, ReachGoalStrategy)
    assert game.type == 'reach'
    assert game.display_name == 'Reach the Goal'
    assert game.time_limit == 30000

    assert isinstance(build('collect').strategy, CollectStrategy)


def test_create_game_randomizes_missing_time_limit(build):
    for seed in range(10):
        game = build('reach', rng=random.Random(seed))
        assert 40000 <= game.time_limit < 75000


def test_randomize_time_limit_bounds():
    assert randomize_time_limit('reach', FixedRng(0.0)) == 40000
    assert randomize_time_limit('collect', FixedRng(0.0)) == 45000
    assert randomize_time_limit('nope', FixedRng(0.0)) == 45000
    assert randomize_time_limit('nope', FixedRng(0.9999)) < 75000


def test_registered_type_is_buildable(build, broadcasts):
    register_game_type(GameType(
        tag='sprint',
        name='Sprint',
        description='Run',
        strategy=RoundStrategy,
        time_limit_range=(10000, 20000),
    ))
    try:
        game = build('sprint').start()
        assert game.display_name == 'Sprint'
        assert 10000 <= game.time_limit < 20000
        assert 'Sprint starting!' in broadcasts.texts()
    finally:
        GAME_TYPES.pop('sprint', None)


# ---- reach ----

def test_reach_setup_spawns_obstacles_and_tricks(world, build):
    game = build('reach', {'time_limit': 60000, 'obstacle_count': 3}).start()
    assert len(world.entities) == 3
    assert [t.trigger.kind for t in game.tricks] == ['time', 'deaths', 'time']


def test_reach_spawns_more_obstacles_mid_round(world, broadcasts, build):
    game = build('reach', {'time_limit': 60000, 'obstacle_count': 1}).start()
    game.update(0)
    for _ in range(20):
        game.update(1000)

    assert len(world.entities) == 3
    assert 'The goal is still up for grabs!' in broadcasts.texts()
    assert 'The arena shifts!' in broadcasts.texts()


def test_reach_first_live_player_at_goal_wins(world, broadcasts, build):
    game = build('reach', {'time_limit': 60000}).start()
    game.update(0)
    game.eliminate_player('b')

    world.mark_goal_reached('b')
    game.update(1000)
    assert game.is_active
    assert 'First one down!' in broadcasts.texts()

    world.mark_goal_reached('c')
    game.update(1000)
    assert game.is_active is False
    assert game.winners == ['c']


# ---- collect ----

def test_collect_target_reached_wins(broadcasts, build):
    game = build('collect', {'time_limit': 60000, 'target_score': 4}).start()
    game.add_score('a', 4)
    game.update(0)

    assert 'Someone is halfway there!' in broadcasts.texts()
    assert game.winners == ['a']


def test_collect_tie_goes_to_earlier_player(build):
    game = build('collect', {'time_limit': 60000, 'target_score': 4}).start()
    game.add_score('b', 5)
    game.add_score('a', 5)
    game.update(0)
    assert game.winners == ['a']


def test_collect_highest_score_wins(build):
    game = build('collect', {'time_limit': 60000, 'target_score': 4}).start()
    game.add_score('a', 5)
    game.add_score('b', 6)
    game.update(0)
    assert game.winners == ['b']


def test_collect_default_target(build):
    game = build('collect', {'time_limit': 60000}).start()
    game.add_score('a', 9)
    game.update(0)
    assert game.is_active
    game.add_score('a')
    game.update(1000)
    assert game.winners == ['a']


def test_collect_first_death_gives_survivors_bonus(broadcasts, build):
    game = build('collect', {'time_limit': 60000, 'target_score': 4}).start()
    game.eliminate_player('c')
    game.update(0)

    assert game.scores == {'a': 1, 'b': 1}
    assert 'Survivors get +1!' in broadcasts.texts()
    assert game.is_active


def test_collect_speed_surge_every_fifteen_seconds(broadcasts, build):
    game = build('collect', {'time_limit': 60000, 'target_score': 100}).start()
    game.update(0)
    for _ in range(31):
        game.update(1000)

    assert len(broadcasts.named('spell_cast')) == 2
    assert 'GRAVITY SHIFTS!' in broadcasts.texts()
