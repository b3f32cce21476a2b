import os
import random
import sys
import pytest

# Ensure the backend root (containing the `arena` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from arena import create_app, db, socketio
from arena.world import WorldState
from arena.services.rounds.engine import MiniGame
from arena.services.rounds.settings import RoundSettings
from arena.services.rounds.strategies import RoundStrategy
from arena.services.rounds.timers import ManualScheduler


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    ROUND_COUNTDOWN_MS = 0
    OBSTACLE_COUNT = 0
    AUTO_START_DELAY_MS = 0


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import arena.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass


# ---- round engine fixtures (no Flask app needed) ----

class Recorder:
    """Broadcast function that keeps every (event, payload) pair."""

    def __init__(self):
        self.events = []

    def __call__(self, event, payload):
        self.events.append((event, payload))

    def named(self, event):
        return [payload for name, payload in self.events if name == event]

    def texts(self):
        return [payload['text'] for payload in self.named('announcement')]


class SpyStrategy(RoundStrategy):
    """Counts win checks; handles custom actions listed in ``handlers``."""

    def __init__(self, handlers=None, result=None):
        self.handlers = dict(handlers or {})
        self.result = result
        self.win_checks = 0
        self.custom_calls = []

    def check_win_condition(self, game):
        self.win_checks += 1
        return self.result

    def handle_custom_trick(self, game, trick):
        self.custom_calls.append(trick.action.name)
        handler = self.handlers.get(trick.action.name)
        if handler is None:
            return False
        handler(game, trick)
        return True


@pytest.fixture()
def world():
    w = WorldState()
    w.add_player('a', 'Alice')
    w.add_player('b', 'Bob')
    w.add_player('c', 'Cara')
    return w


@pytest.fixture()
def broadcasts():
    return Recorder()


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def history():
    return []


@pytest.fixture()
def settings():
    return RoundSettings(countdown_ms=0, obstacle_count=0)


@pytest.fixture()
def make_game(world, broadcasts, scheduler, history, settings):
    def _make(strategy=None, time_limit=60000, config=None, **kwargs):
        kwargs.setdefault('settings', settings)
        kwargs.setdefault('rng', random.Random(7))
        return MiniGame(
            world, broadcasts, strategy, time_limit, config,
            scheduler=scheduler, history=history.append, **kwargs
        )
    return _make
