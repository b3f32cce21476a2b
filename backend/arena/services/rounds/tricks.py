"""Scripted mid-round events ('tricks').

A trick pairs a trigger with an action. Triggers and actions are small
dataclasses; loose forms (``{'type': 'time', 'at': 5000}`` and an action tag
plus params) are converted into them by ``parse_trigger`` / ``parse_action``.

Trigger kinds:
- time:     elapsed >= at
- score:    any participant (player='any') or one player has score >= value
- deaths:   eliminated participants >= count
- interval: elapsed - last_fired >= every, re-arms after firing

Only interval tricks fire more than once.
"""

import itertools
import logging
from dataclasses import dataclass, field, fields
from typing import ClassVar, Optional, Union

from arena.exceptions import ConfigurationError, InvalidTrigger

logger = logging.getLogger(__name__)

DEFAULT_ANNOUNCE_TEXT = 'Something stirs...'
DEFAULT_GRAVITY_MESSAGE = 'GRAVITY SHIFTS!'
SPEED_BURST_MESSAGE = 'SPEED SURGE!'
GRAVITY_RESTORE_TIMER = 'gravity-restore'


# ---- triggers ----

@dataclass(frozen=True)
class TimeTrigger:
    at: int
    kind: ClassVar[str] = 'time'


@dataclass(frozen=True)
class ScoreTrigger:
    value: int
    player: str = 'any'
    kind: ClassVar[str] = 'score'


@dataclass(frozen=True)
class DeathsTrigger:
    count: int
    kind: ClassVar[str] = 'deaths'


@dataclass(frozen=True)
class IntervalTrigger:
    every: int
    kind: ClassVar[str] = 'interval'


Trigger = Union[TimeTrigger, ScoreTrigger, DeathsTrigger, IntervalTrigger]
TRIGGER_TYPES = {cls.kind: cls for cls in (TimeTrigger, ScoreTrigger, DeathsTrigger, IntervalTrigger)}


# ---- actions ----

@dataclass(frozen=True)
class Announce:
    text: Optional[str] = None
    category: str = 'system'
    tag: ClassVar[str] = 'announce'


@dataclass(frozen=True)
class FlipGravity:
    gravity: float = -3
    duration: int = 10000
    message: Optional[str] = None
    tag: ClassVar[str] = 'flip_gravity'


@dataclass(frozen=True)
class SpeedBurst:
    duration: int = 8000
    tag: ClassVar[str] = 'speed_burst'


@dataclass
class CustomAction:
    """Anything the built-in set does not cover; handled by the game strategy."""
    name: str
    params: dict = field(default_factory=dict)

    @property
    def tag(self):
        return self.name


TrickAction = Union[Announce, FlipGravity, SpeedBurst, CustomAction]
ACTION_TYPES = {cls.tag: cls for cls in (Announce, FlipGravity, SpeedBurst)}
# loose param names that differ from the field names
_PARAM_ALIASES = {Announce: {'type': 'category'}}


@dataclass
class Trick:
    id: int
    trigger: Trigger
    action: TrickAction
    fired: bool = False
    last_fired: int = 0

    @property
    def repeats(self):
        return isinstance(self.trigger, IntervalTrigger)

    def to_dict(self):
        return {
            'id': self.id,
            'trigger': self.trigger.kind,
            'action': self.action.tag,
            'fired': self.fired,
            'last_fired': self.last_fired,
        }


def _check_trigger(trigger) -> Trigger:
    # 'player' is the only non-numeric trigger field
    for f in fields(trigger):
        if f.name == 'player':
            continue
        value = getattr(trigger, f.name)
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise InvalidTrigger(f'{trigger.kind} trigger {f.name} must be a number, got {value!r}')
    if isinstance(trigger, IntervalTrigger) and trigger.every <= 0:
        raise InvalidTrigger(f'interval trigger every must be > 0, got {trigger.every}')
    return trigger


def parse_trigger(raw) -> Trigger:
    if isinstance(raw, tuple(TRIGGER_TYPES.values())):
        return _check_trigger(raw)
    if not isinstance(raw, dict):
        raise InvalidTrigger(f'Trigger must be a dict or trigger object, got {raw!r}')
    kind = raw.get('type')
    cls = TRIGGER_TYPES.get(kind)
    if cls is None:
        raise InvalidTrigger(f'Unknown trigger type: {kind}')
    kwargs = {f.name: raw[f.name] for f in fields(cls) if f.name in raw}
    try:
        trigger = cls(**kwargs)
    except TypeError as exc:
        raise InvalidTrigger(f'Bad {kind} trigger {raw!r}: {exc}')
    return _check_trigger(trigger)


def parse_action(action, params=None) -> TrickAction:
    if isinstance(action, (Announce, FlipGravity, SpeedBurst, CustomAction)):
        return action
    params = dict(params or {})
    cls = ACTION_TYPES.get(action)
    if cls is None:
        return CustomAction(name=action, params=params)
    aliases = _PARAM_ALIASES.get(cls, {})
    known = {f.name for f in fields(cls)}
    kwargs = {}
    for key, value in params.items():
        name = aliases.get(key, key)
        if name not in known:
            raise ConfigurationError(f'Unknown parameter {key!r} for trick action {action}')
        kwargs[name] = value
    return cls(**kwargs)


class TrickScheduler:
    """Holds a round's tricks and fires them from ``process_tricks``."""

    def __init__(self, game):
        self.game = game
        self.tricks = []
        self._ids = itertools.count(1)
        self._gravity_baseline = None
        self._handlers = {
            Announce: self._announce,
            FlipGravity: self._flip_gravity,
            SpeedBurst: self._speed_burst,
            CustomAction: self._custom,
        }

    def add_trick(self, trigger, action, params=None) -> int:
        trick = Trick(
            id=next(self._ids),
            trigger=parse_trigger(trigger),
            action=parse_action(action, params),
        )
        self.tricks.append(trick)
        return trick.id

    @property
    def fired_count(self):
        return sum(1 for t in self.tricks if t.fired)

    def process_tricks(self, elapsed):
        """Fire every due trick in insertion order; returns the fired tricks."""
        fired = []
        for trick in self.tricks:
            # a trick may end the round
            if not self.game.is_active:
                break
            if trick.fired and not trick.repeats:
                continue
            if self.should_fire(trick, elapsed):
                self.execute(trick)
                trick.fired = True
                trick.last_fired = elapsed
                fired.append(trick)
        return fired

    def should_fire(self, trick, elapsed):
        trigger = trick.trigger
        if isinstance(trigger, TimeTrigger):
            return elapsed >= trigger.at
        if isinstance(trigger, ScoreTrigger):
            return self._score_reached(trigger)
        if isinstance(trigger, DeathsTrigger):
            return len(self.game.losers) >= trigger.count
        if isinstance(trigger, IntervalTrigger):
            return elapsed - trick.last_fired >= trigger.every
        return False

    def _score_reached(self, trigger):
        scores = self.game.scores
        if trigger.player == 'any':
            return any(score >= trigger.value for score in scores.values())
        return scores.get(trigger.player, 0) >= trigger.value

    def execute(self, trick):
        logger.info(f'[trick-fired] round={self.game.id} trick={trick.id} action={trick.action.tag}')
        self._handlers[type(trick.action)](trick)

    # ---- built-in actions ----

    def _announce(self, trick):
        action = trick.action
        self.game.announce(action.text or DEFAULT_ANNOUNCE_TEXT, action.category)

    def _flip_gravity(self, trick):
        action = trick.action
        world = self.game.world
        # overlapping flips extend the override; the first one owns the baseline
        if self._gravity_baseline is None:
            self._gravity_baseline = world.physics.get('gravity')
        world.set_physics(gravity=action.gravity)
        self.game.announce(action.message or DEFAULT_GRAVITY_MESSAGE, 'system')
        self.game.broadcast('physics_changed', dict(world.physics))
        self.game.timers.schedule(GRAVITY_RESTORE_TIMER, action.duration, self._restore_gravity)

    def _restore_gravity(self):
        baseline, self._gravity_baseline = self._gravity_baseline, None
        if not self.game.is_active:
            logger.info(f'[trick-skip] round={self.game.id} gravity restore after round end')
            return
        world = self.game.world
        world.set_physics(gravity=baseline)
        self.game.broadcast('physics_changed', dict(world.physics))

    def _speed_burst(self, trick):
        spell = self.game.world.cast_spell('speed_boost', trick.action.duration)
        self.game.broadcast('spell_cast', spell)
        self.game.announce(SPEED_BURST_MESSAGE, 'system')

    def _custom(self, trick):
        if self.game.strategy.handle_custom_trick(self.game, trick):
            return
        logger.warning(f'[trick-unhandled] round={self.game.id} trick={trick.id} action={trick.action.tag}')
