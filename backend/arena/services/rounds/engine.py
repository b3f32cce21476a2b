"""MiniGame: one timed round inside the shared world.

State machine::

    created -> countdown -> running -> ended

``start()`` snapshots participants and asks the world for a countdown;
``update(delta)`` does nothing until the world leaves the countdown phase,
then checks, in order: timeout, draw, tricks, time warnings and the game
type's win condition. ``end()`` runs once; a second call is a no-op.
"""

import logging
import random
import time
import uuid
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from arena.world import PHASE_COUNTDOWN, PHASE_ENDED, PHASE_LOBBY
from .settings import RoundSettings
from .strategies import RoundStrategy
from .timers import ManualScheduler, RoundTimers
from .tricks import TrickScheduler

logger = logging.getLogger(__name__)

TIME_WARNINGS = [
    (30000, '30 SECONDS!'),
    (10000, '10 SECONDS!'),
    (5000, 'FINAL 5 SECONDS!'),
]
LOBBY_MESSAGE = 'Returning to lobby... Next game soon!'
CLEANUP_TIMER = 'cleanup'
LOBBY_TIMER = 'lobby-announce'


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Participant:
    score: int = 0
    alive: bool = True
    position: tuple = (0.0, 0.0, 0.0)

    def to_dict(self):
        return {
            'score': self.score,
            'alive': self.alive,
            'position': list(self.position),
        }


class MiniGame:
    def __init__(
        self,
        world,
        broadcast: Callable[[str, dict], None],
        strategy: Optional[RoundStrategy] = None,
        time_limit: int = 60000,
        config: Optional[dict] = None,
        *,
        game_type: str = 'reach',
        display_name: Optional[str] = None,
        settings: Optional[RoundSettings] = None,
        scheduler=None,
        history: Optional[Callable[[dict], None]] = None,
        rng: Optional[random.Random] = None,
    ):
        self.id = f'minigame-{uuid.uuid4().hex[:8]}'
        self.world = world
        self.broadcast = broadcast
        self.strategy = strategy or RoundStrategy()
        self.config = dict(config or {})
        self.settings = settings or RoundSettings()
        self.type = game_type
        self.display_name = display_name or game_type
        self.time_limit = time_limit
        self.rng = rng or random.Random()
        self.history = history

        self.start_time: Optional[int] = None
        self.elapsed = 0
        self.is_active = False
        self._started = False
        self._running = False

        self.players: Dict[str, Participant] = {}
        self.scores: Dict[str, int] = {}
        self.winners: List[str] = []
        self.losers: List[str] = []
        self.game_entities: List[str] = []
        self.on_end: Optional[Callable[['MiniGame'], None]] = None

        self.timers = RoundTimers(scheduler or ManualScheduler(), self.id)
        self.trick_scheduler = TrickScheduler(self)
        self._warned = set()

    # ---- lifecycle ----

    @property
    def state(self) -> str:
        if not self._started:
            return 'created'
        if not self.is_active:
            return 'ended'
        return 'running' if self._running else 'countdown'

    def start(self):
        if self._started:
            logger.warning(f'[round-start] round={self.id} already started')
            return self
        self._started = True
        self.is_active = True
        self.start_time = _now_ms()

        respawn = list(self.world.respawn_point)
        for player_id, player in self.world.players.items():
            if player.state == 'spectating':
                continue
            self.players[player_id] = Participant(position=tuple(player.position))
            player.position = list(respawn)
        self.broadcast('players_teleported', {'position': respawn})

        self.announce('GET READY!', 'system')
        self.announce(f'{self.display_name} starting!', 'system')

        countdown = self.config.get('countdown_time')
        if countdown is None:
            countdown = self.settings.countdown_ms
        self.world.start_game(self.type, time_limit=self.time_limit, countdown_time=countdown)

        self.strategy.setup_default_tricks(self)

        logger.info(f'[round-start] round={self.id} type={self.type} time_limit={self.time_limit}ms players={len(self.players)}')
        return self

    def update(self, delta):
        if not self.is_active:
            return
        if self.world.game_state.phase == PHASE_COUNTDOWN:
            return

        if not self._running:
            # countdown time is never charged against the limit
            self._running = True
            self.start_time = _now_ms()
            self.elapsed = 0
        else:
            self.elapsed += delta
        elapsed = self.elapsed

        if elapsed >= self.time_limit:
            self.end('timeout')
            return

        any_alive = any(p.alive for p in self.players.values())
        if self.players and not any_alive:
            self.end('draw')
            return

        self.trick_scheduler.process_tricks(elapsed)
        if not self.is_active:
            return

        remaining = self.time_limit - elapsed
        for at, message in TIME_WARNINGS:
            if remaining <= at and at not in self._warned:
                self._warned.add(at)
                self.announce(message, 'system')

        result = self.strategy.check_win_condition(self)
        if result:
            self.end(result['type'], result.get('winner_id'))

    # ---- scoring ----

    def add_score(self, player_id, points=1):
        participant = self.players.get(player_id)
        if not self.is_active or not participant:
            return
        participant.score += points
        self.scores[player_id] = self.scores.get(player_id, 0) + points

    def eliminate_player(self, player_id):
        participant = self.players.get(player_id)
        if not self.is_active or not participant or not participant.alive:
            return
        participant.alive = False
        self.losers.append(player_id)
        logger.info(f'[eliminated] round={self.id} player={player_id}')

        alive = [pid for pid, p in self.players.items() if p.alive]
        if len(alive) == 1 and len(self.players) > 1:
            self.end('win', alive[0])

    def alive_players(self) -> List[str]:
        return [pid for pid, p in self.players.items() if p.alive]

    # ---- ending ----

    def end(self, result, winner_id=None):
        if not self.is_active:
            return None
        self.is_active = False
        self.timers.cancel_all()

        if winner_id is not None and winner_id not in self.players:
            logger.warning(f'[round-end] round={self.id} ignoring non-participant winner={winner_id}')
            winner_id = None
        logger.info(f'[round-end] round={self.id} result={result} winner={winner_id}')

        if winner_id is not None:
            self.winners.append(winner_id)

        self.announce(self.get_result_message(result, winner_id), 'challenge')
        self.world.end_game(result, winner_id)

        if winner_id is not None:
            self.world.record_game_result(winner_id, True, self.scores.get(winner_id, 0))
        for player_id in self.players:
            if player_id != winner_id:
                self.world.record_game_result(player_id, False, self.scores.get(player_id, 0))

        self._save_history({
            'id': self.id,
            'type': self.type,
            'start_time': self.start_time,
            'result': result,
            'winner_id': winner_id,
            'player_count': len(self.players),
            'scores': dict(self.scores),
        })

        self.broadcast('minigame_ended', {
            'id': self.id,
            'type': self.type,
            'result': result,
            'winners': list(self.winners),
            'losers': list(self.losers),
            'scores': dict(self.scores),
        })

        self.timers.schedule(CLEANUP_TIMER, self.settings.cleanup_delay_ms, self.cleanup)
        self.timers.schedule(LOBBY_TIMER, self.settings.lobby_announce_delay_ms, self._announce_lobby)

        if self.on_end:
            self.on_end(self)

        return {'result': result, 'winners': list(self.winners), 'scores': dict(self.scores)}

    def get_result_message(self, result, winner_id):
        if result == 'win' and winner_id is not None:
            winner = self.world.players.get(winner_id)
            return f'WINNER: {winner.name if winner else winner_id}!'
        messages = {
            'timeout': 'TIME UP!',
            'draw': 'DRAW!',
            'ended': 'Game Over!',
            'cancelled': 'Game cancelled',
        }
        return messages.get(result, f'Game Over: {result}')

    def _save_history(self, record):
        if self.history is None:
            logger.info(f'[history-skip] round={self.id} no history store')
            return
        self.history(record)

    def _announce_lobby(self):
        # a newer round may already own the world
        if self.world.game_state.phase not in (PHASE_ENDED, PHASE_LOBBY):
            return
        self.world.return_to_lobby()
        self.announce(LOBBY_MESSAGE, 'system')

    def cleanup(self):
        """Destroy round-owned entities; returns how many were destroyed."""
        if not self.game_entities:
            return 0
        destroyed = 0
        for entity_id in self.game_entities:
            try:
                self.world.destroy_entity(entity_id)
            except KeyError:
                logger.info(f'[cleanup-skip] round={self.id} entity={entity_id} already gone')
                continue
            self.broadcast('entity_destroyed', {'id': entity_id})
            destroyed += 1
        self.game_entities = []
        logger.info(f'[cleanup] round={self.id} destroyed={destroyed}')
        return destroyed

    def dispose(self):
        """Drop every pending timer; runs a still-pending cleanup right away."""
        if self.timers.is_pending(CLEANUP_TIMER):
            self.timers.cancel(CLEANUP_TIMER)
            self.cleanup()
        self.timers.cancel_all()

    # ---- world helpers ----

    def announce(self, text, category='challenge'):
        announcement = self.world.announce(text, category)
        self.broadcast('announcement', announcement)
        return announcement

    def spawn_entity(self, entity_type, position, size, properties=None):
        props = dict(properties or {})
        props['round_id'] = self.id
        entity = self.world.spawn_entity(entity_type, position, size, props)
        self.game_entities.append(entity.id)
        self.broadcast('entity_spawned', entity.to_dict())
        return entity

    # ---- tricks ----

    @property
    def tricks(self):
        return self.trick_scheduler.tricks

    def add_trick(self, trigger, action, params=None) -> int:
        return self.trick_scheduler.add_trick(trigger, action, params)

    def process_tricks(self, elapsed):
        return self.trick_scheduler.process_tricks(elapsed)

    # ---- status ----

    @property
    def time_remaining(self) -> int:
        if not self.is_active:
            return 0
        return max(0, self.time_limit - self.elapsed)

    def get_status(self):
        return {
            'id': self.id,
            'type': self.type,
            'name': self.display_name,
            'state': self.state,
            'is_active': self.is_active,
            'time_limit': self.time_limit,
            'time_remaining': self.time_remaining,
            'players': {pid: p.to_dict() for pid, p in self.players.items()},
            'scores': dict(self.scores),
            'winners': list(self.winners),
            'losers': list(self.losers),
            'trick_count': len(self.tricks),
            'tricks_fired': self.trick_scheduler.fired_count,
        }
