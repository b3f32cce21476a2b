"""Per-game-type behaviour injected into a MiniGame.

A strategy supplies three hooks, each taking the round as first argument:

- ``setup_default_tricks(game)``: install starting tricks / entities
- ``check_win_condition(game)``: ``None`` or ``{'type': ..., 'winner_id': ...}``
- ``handle_custom_trick(game, trick)``: return True when the action was handled
"""

from .obstacles import ObstacleGenerator
from .tricks import DeathsTrigger, IntervalTrigger, ScoreTrigger, SpeedBurst, TimeTrigger


class RoundStrategy:
    """No default tricks, no extra win condition, no custom actions."""

    def setup_default_tricks(self, game):
        pass

    def check_win_condition(self, game):
        return None

    def handle_custom_trick(self, game, trick):
        return False


class ReachGoalStrategy(RoundStrategy):
    """First live participant to touch the goal wins."""

    def setup_default_tricks(self, game):
        count = game.config.get('obstacle_count', game.settings.obstacle_count)
        if count:
            ObstacleGenerator(game, game.rng).spawn_random_obstacles(count)
        game.add_trick(TimeTrigger(at=15000), 'announce', {'text': 'The goal is still up for grabs!'})
        game.add_trick(DeathsTrigger(count=1), 'announce', {'text': 'First one down!'})
        game.add_trick(TimeTrigger(at=20000), 'spawn_obstacles', {'count': 2})

    def check_win_condition(self, game):
        for player_id in game.world.goal_reached:
            participant = game.players.get(player_id)
            if participant and participant.alive:
                return {'type': 'win', 'winner_id': player_id}
        return None

    def handle_custom_trick(self, game, trick):
        if trick.action.name != 'spawn_obstacles':
            return False
        ObstacleGenerator(game, game.rng).spawn_random_obstacles(int(trick.action.params.get('count', 1)))
        game.announce('The arena shifts!', 'system')
        return True


class CollectStrategy(RoundStrategy):
    """First participant to reach the target score wins."""

    DEFAULT_TARGET = 10

    def target(self, game):
        return int(game.config.get('target_score', self.DEFAULT_TARGET))

    def setup_default_tricks(self, game):
        target = self.target(game)
        game.add_trick(ScoreTrigger(value=max(1, target // 2)), 'announce', {'text': 'Someone is halfway there!'})
        game.add_trick(IntervalTrigger(every=15000), SpeedBurst())
        game.add_trick(TimeTrigger(at=30000), 'flip_gravity', {'duration': 8000})
        game.add_trick(DeathsTrigger(count=1), 'bonus_points', {'points': 1})

    def check_win_condition(self, game):
        target = self.target(game)
        best_id, best_score = None, None
        # ties go to the earlier-registered participant
        for player_id, participant in game.players.items():
            if not participant.alive or participant.score < target:
                continue
            if best_score is None or participant.score > best_score:
                best_id, best_score = player_id, participant.score
        if best_id is None:
            return None
        return {'type': 'win', 'winner_id': best_id}

    def handle_custom_trick(self, game, trick):
        if trick.action.name != 'bonus_points':
            return False
        points = int(trick.action.params.get('points', 1))
        for player_id in game.alive_players():
            game.add_score(player_id, points)
        game.announce(f'Survivors get +{points}!', 'system')
        return True
