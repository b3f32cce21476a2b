"""Round host: the shared world plus whichever round is current.

Registered as a Flask extension (``host.init_app(app, socketio)``). Every
entry point (ticks, HTTP, socket handlers, timer callbacks) runs under
``host.lock`` so the world is only ever mutated by one caller at a time.
"""

import logging
import threading
import time

from arena.exceptions import ArenaError, NotEnoughPlayers, RoundAlreadyActive, RoundNotFound
from arena.world import WorldState
from .registry import GAME_TYPES, create_game, get_game_type
from .settings import RoundSettings
from .timers import BackgroundScheduler, ManualScheduler

logger = logging.getLogger(__name__)

WORLD_ROOM = 'world'
NAMESPACE = '/ws'
MAX_TICK_MS = 200


class RoundHost:
    def __init__(self):
        self.lock = threading.RLock()
        self.app = None
        self.socketio = None
        self.settings = RoundSettings()
        self._loop_enabled = False
        self._loop_started = False
        self.reset()

    def init_app(self, app, socketio):
        self.app = app
        self.socketio = socketio
        self.settings = RoundSettings.from_config(app.config).validate(GAME_TYPES)
        self._loop_enabled = not app.config.get('TESTING') or bool(app.config.get('ENABLE_SCHEDULER_IN_TESTS'))
        self.reset()
        app.extensions['round_host'] = self

    def reset(self):
        with self.lock:
            self.world = WorldState()
            self.current = None
            self.rounds_played = 0
            self._idle_ms = 0
            if self._loop_enabled and self.socketio is not None:
                self.scheduler = BackgroundScheduler(
                    self.socketio, guard=self.lock, heartbeat_ms=self.settings.timer_heartbeat_ms
                )
            else:
                self.scheduler = ManualScheduler()

    # ---- transport / persistence ----

    def broadcast(self, event, payload):
        if self.socketio is None:
            return
        self.socketio.emit(event, payload, to=WORLD_ROOM, namespace=NAMESPACE)

    def _save_history(self, record):
        if self.app is None:
            return
        from arena.services.history import save_round_history
        with self.app.app_context():
            save_round_history(record)

    # ---- rounds ----

    def start_round(self, type_tag=None, config=None):
        with self.lock:
            if self.current and self.current.is_active:
                raise RoundAlreadyActive(self.current.id)
            tag = type_tag or self.settings.default_game_type
            game_type = get_game_type(tag)
            required = max(game_type.min_players, self.settings.min_players)
            present = self.world.active_player_count()
            if present < required:
                raise NotEnoughPlayers(tag, required, present)

            if self.current:
                self.current.dispose()
            game = create_game(
                tag, self.world, self.broadcast, config,
                settings=self.settings,
                scheduler=self.scheduler,
                history=self._save_history,
            )
            game.on_end = self._round_finished
            self.current = game
            self._idle_ms = 0
            return game.start()

    def _round_finished(self, game):
        self.rounds_played += 1
        self._idle_ms = 0
        logger.info(f'[host] round={game.id} finished rounds_played={self.rounds_played}')

    def require_current(self):
        if self.current is None:
            raise RoundNotFound('No round has been started')
        return self.current

    def end_round(self, result='cancelled', winner_id=None):
        with self.lock:
            return self.require_current().end(result, winner_id)

    def eliminate(self, player_id):
        with self.lock:
            game = self.require_current()
            game.eliminate_player(player_id)
            return game.get_status()

    def add_score(self, player_id, points=1):
        with self.lock:
            game = self.require_current()
            game.add_score(player_id, points)
            return game.get_status()

    def reach_goal(self, player_id):
        """Record that a player touched the goal; the next tick checks for a win."""
        with self.lock:
            game = self.require_current()
            if game.is_active and player_id in game.players:
                self.world.mark_goal_reached(player_id)
            return game.get_status()

    def status(self):
        with self.lock:
            if self.current is None:
                return {'is_active': False, 'state': 'idle', 'rounds_played': self.rounds_played}
            payload = self.current.get_status()
            payload['rounds_played'] = self.rounds_played
            return payload

    # ---- ticking ----

    def tick(self, delta):
        with self.lock:
            self.world.update(delta)
            if self.current and self.current.is_active:
                self.current.update(delta)
                return
            self._maybe_auto_start(delta)

    def _maybe_auto_start(self, delta):
        delay = self.settings.auto_start_delay_ms
        if delay <= 0:
            return
        if self.world.active_player_count() == 0:
            self._idle_ms = 0
            return
        self._idle_ms += delta
        if self._idle_ms < delay:
            return
        self._idle_ms = 0
        try:
            self.start_round()
        except NotEnoughPlayers as exc:
            logger.info(f'[auto-start-skip] {exc}')
        except ArenaError:
            logger.exception('[auto-start-fail]')

    def advance_timers(self, ms):
        """Run due timers on a ManualScheduler (TESTING / headless)."""
        with self.lock:
            if isinstance(self.scheduler, ManualScheduler):
                return self.scheduler.advance(ms)
            return 0

    def ensure_loop(self):
        if not self._loop_enabled or self._loop_started or self.socketio is None:
            return
        with self.lock:
            if self._loop_started:
                return
            self._loop_started = True
        logger.info(f'[host] tick loop started interval={self.settings.tick_interval_ms}ms')
        self.socketio.start_background_task(self._loop)

    def _loop(self):
        interval = self.settings.tick_interval_ms / 1000.0
        last = time.monotonic()
        carry = 0.0
        while self._loop_started:
            self.socketio.sleep(interval)
            now = time.monotonic()
            # keep sub-millisecond remainders so round time does not drift
            carry += (now - last) * 1000.0
            last = now
            delta = int(carry)
            carry -= delta
            if delta <= 0:
                continue
            self.tick(min(delta, MAX_TICK_MS))

    def stop_loop(self):
        self._loop_started = False
