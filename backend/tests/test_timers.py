import threading

from arena.services.rounds.timers import BackgroundScheduler, ManualScheduler, RoundTimers, TimerHandle


class FakeSocketIO:
    """Runs background tasks inline and records sleeps."""

    def __init__(self, on_sleep=None):
        self.sleeps = []
        self.on_sleep = on_sleep

    def start_background_task(self, target, *args, **kwargs):
        target(*args, **kwargs)

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        if self.on_sleep:
            self.on_sleep()


def test_manual_scheduler_fires_in_deadline_order():
    scheduler = ManualScheduler()
    fired = []
    scheduler.call_later('b', 200, lambda: fired.append('b'))
    scheduler.call_later('a', 100, lambda: fired.append('a'))
    scheduler.call_later('c', 200, lambda: fired.append('c'))

    assert scheduler.advance(99) == 0
    assert scheduler.advance(101) == 3
    assert fired == ['a', 'b', 'c']
    assert scheduler.now == 200


def test_manual_scheduler_skips_cancelled():
    scheduler = ManualScheduler()
    fired = []
    handle = scheduler.call_later('x', 10, lambda: fired.append('x'))
    handle.cancel()
    assert scheduler.advance(100) == 0
    assert fired == []
    assert handle.pending is False


def test_timer_created_by_callback_runs_later():
    scheduler = ManualScheduler()
    fired = []
    scheduler.call_later('outer', 10, lambda: scheduler.call_later('inner', 10, lambda: fired.append('inner')))

    scheduler.advance(10)
    assert fired == []
    scheduler.advance(10)
    assert fired == ['inner']


def test_round_timers_replace_same_name():
    scheduler = ManualScheduler()
    timers = RoundTimers(scheduler, 'minigame-1')
    fired = []
    first = timers.schedule('restore', 100, lambda: fired.append(1))
    second = timers.schedule('restore', 300, lambda: fired.append(2))

    assert first.cancelled is True
    assert second.key == ('minigame-1', 'restore')
    scheduler.advance(300)
    assert fired == [2]
    assert timers.pending() == []


def test_round_timers_cancel_all():
    timers = RoundTimers(ManualScheduler(), 'minigame-1')
    timers.schedule('cleanup', 100, lambda: None)
    timers.schedule('lobby-announce', 50, lambda: None)
    assert timers.pending() == ['cleanup', 'lobby-announce']
    assert timers.is_pending('cleanup')

    assert timers.cancel_all() == 2
    assert timers.cancel_all() == 0
    assert timers.cancel('cleanup') is False
    assert timers.pending() == []


def test_background_scheduler_fires_after_sleep():
    socketio = FakeSocketIO()
    fired = []
    handle = BackgroundScheduler(socketio).call_later('k', 1500, lambda: fired.append(True))

    assert socketio.sleeps == [1.5]
    assert fired == [True]
    assert handle.fired is True


def test_background_scheduler_sleeps_in_heartbeat_chunks():
    socketio = FakeSocketIO()
    BackgroundScheduler(socketio, heartbeat_ms=400).call_later('k', 1000, lambda: None)
    assert socketio.sleeps == [0.4, 0.4, 0.2]


def test_background_scheduler_stops_when_cancelled():
    fired = []
    handle = TimerHandle('k', 1000, lambda: fired.append(True))
    socketio = FakeSocketIO(on_sleep=handle.cancel)

    BackgroundScheduler(socketio, heartbeat_ms=100)._worker(handle)

    assert fired == []
    assert socketio.sleeps == [0.1]


def test_background_scheduler_fires_under_guard():
    lock = threading.Lock()
    seen = []

    BackgroundScheduler(FakeSocketIO(), guard=lock).call_later('k', 10, lambda: seen.append(lock.locked()))

    assert seen == [True]
    assert lock.locked() is False
