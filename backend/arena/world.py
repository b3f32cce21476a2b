"""In-memory world holder.

The authoritative physics simulation lives elsewhere; this module only keeps
the state a round reads and writes: the player roster, the respawn point,
physics constants, spawned entities, announcements, timed spells and the
current game phase.
"""

import itertools
import time
from collections import deque
from dataclasses import dataclass, field
from typing import Optional

DEFAULT_RESPAWN_POINT = (0.0, 2.0, 0.0)
DEFAULT_PHYSICS = {
    'gravity': -9.8,
    'friction': 0.3,
    'bounce': 0.5,
}
MAX_ANNOUNCEMENTS = 50

PHASE_LOBBY = 'lobby'
PHASE_COUNTDOWN = 'countdown'
PHASE_PLAYING = 'playing'
PHASE_ENDED = 'ended'


def _now_ms():
    return int(time.time() * 1000)


@dataclass
class WorldPlayer:
    id: str
    name: str
    state: str = 'playing'
    position: list = field(default_factory=lambda: list(DEFAULT_RESPAWN_POINT))
    wins: int = 0
    losses: int = 0
    total_score: int = 0
    games_played: int = 0

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'state': self.state,
            'position': list(self.position),
            'wins': self.wins,
            'losses': self.losses,
            'total_score': self.total_score,
            'games_played': self.games_played,
        }


@dataclass
class Entity:
    id: str
    type: str
    position: list
    size: list
    properties: dict = field(default_factory=dict)

    def to_dict(self):
        return {
            'id': self.id,
            'type': self.type,
            'position': list(self.position),
            'size': list(self.size),
            'properties': dict(self.properties),
        }


@dataclass
class GamePhase:
    phase: str = PHASE_LOBBY
    game_type: Optional[str] = None
    time_limit: int = 0
    countdown_remaining: int = 0
    result: Optional[str] = None
    winner_id: Optional[str] = None

    def to_dict(self):
        return {
            'phase': self.phase,
            'game_type': self.game_type,
            'time_limit': self.time_limit,
            'countdown_remaining': self.countdown_remaining,
            'result': self.result,
            'winner_id': self.winner_id,
        }


class WorldState:
    def __init__(self, respawn_point=DEFAULT_RESPAWN_POINT, physics=None):
        self.players = {}
        self.respawn_point = tuple(respawn_point)
        self.physics = dict(physics or DEFAULT_PHYSICS)
        self.entities = {}
        self.game_state = GamePhase()
        self.announcements = deque(maxlen=MAX_ANNOUNCEMENTS)
        self.active_spells = []
        self.goal_reached = []
        self._entity_ids = itertools.count(1)
        self._announcement_ids = itertools.count(1)
        self._spell_ids = itertools.count(1)

    # ---- roster ----

    def add_player(self, player_id, name):
        player = self.players.get(player_id)
        if player:
            player.name = name
            return player
        player = WorldPlayer(id=player_id, name=name, position=list(self.respawn_point))
        self.players[player_id] = player
        return player

    def remove_player(self, player_id):
        return self.players.pop(player_id, None)

    def set_spectating(self, player_id, spectating):
        player = self.players.get(player_id)
        if player:
            player.state = 'spectating' if spectating else 'playing'
        return player

    def active_player_count(self):
        return sum(1 for p in self.players.values() if p.state != 'spectating')

    def mark_goal_reached(self, player_id):
        """Called by the physics layer when a player touches a goal trigger."""
        if player_id in self.players and player_id not in self.goal_reached:
            self.goal_reached.append(player_id)

    # ---- round phase ----

    def start_game(self, game_type, time_limit, countdown_time):
        self.game_state = GamePhase(
            phase=PHASE_COUNTDOWN if countdown_time > 0 else PHASE_PLAYING,
            game_type=game_type,
            time_limit=time_limit,
            countdown_remaining=max(0, countdown_time),
        )
        self.goal_reached = []

    def end_game(self, result, winner_id=None):
        self.game_state.phase = PHASE_ENDED
        self.game_state.countdown_remaining = 0
        self.game_state.result = result
        self.game_state.winner_id = winner_id

    def return_to_lobby(self):
        self.game_state = GamePhase()

    def update(self, delta):
        """Advance world-side timers by ``delta`` milliseconds."""
        gs = self.game_state
        if gs.phase == PHASE_COUNTDOWN:
            gs.countdown_remaining -= delta
            if gs.countdown_remaining <= 0:
                gs.countdown_remaining = 0
                gs.phase = PHASE_PLAYING
        if self.active_spells:
            for spell in self.active_spells:
                spell['remaining'] -= delta
            self.active_spells = [s for s in self.active_spells if s['remaining'] > 0]

    # ---- physics ----

    def set_physics(self, **changes):
        self.physics.update(changes)
        return self.physics

    # ---- entities ----

    def spawn_entity(self, entity_type, position, size, properties=None):
        entity = Entity(
            id=f'entity-{next(self._entity_ids)}',
            type=entity_type,
            position=list(position),
            size=list(size),
            properties=dict(properties or {}),
        )
        self.entities[entity.id] = entity
        return entity

    def destroy_entity(self, entity_id):
        # KeyError when the entity is already gone
        return self.entities.pop(entity_id)

    # ---- messaging / effects ----

    def announce(self, text, category='challenge'):
        announcement = {
            'id': next(self._announcement_ids),
            'text': text,
            'type': category,
            'timestamp': _now_ms(),
        }
        self.announcements.append(announcement)
        return announcement

    def cast_spell(self, kind, duration):
        spell = {
            'id': f'spell-{next(self._spell_ids)}',
            'type': kind,
            'duration': duration,
            'remaining': duration,
            'cast_at': _now_ms(),
        }
        self.active_spells.append(spell)
        return dict(spell)

    def record_game_result(self, player_id, won, score):
        player = self.players.get(player_id)
        if not player:
            return
        player.games_played += 1
        player.total_score += score
        if won:
            player.wins += 1
        else:
            player.losses += 1

    def serialize(self):
        return {
            'players': [p.to_dict() for p in self.players.values()],
            'respawn_point': list(self.respawn_point),
            'physics': dict(self.physics),
            'entities': [e.to_dict() for e in self.entities.values()],
            'game_state': self.game_state.to_dict(),
            'active_spells': [dict(s) for s in self.active_spells],
        }
