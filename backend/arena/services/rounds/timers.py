import heapq
import itertools
import logging
from typing import Callable, Dict, Hashable, List

logger = logging.getLogger(__name__)


class TimerHandle:
    """A delayed callback that can be cancelled until it fires."""

    def __init__(self, key: Hashable, delay_ms: int, callback: Callable[[], None]):
        self.key = key
        self.delay_ms = delay_ms
        self.callback = callback
        self.cancelled = False
        self.fired = False

    @property
    def pending(self) -> bool:
        return not (self.cancelled or self.fired)

    def cancel(self) -> None:
        if self.pending:
            self.cancelled = True
            logger.info(f'[timer-cancel] key={self.key}')

    def fire(self) -> bool:
        if not self.pending:
            return False
        self.fired = True
        logger.info(f'[timer-fire] key={self.key}')
        self.callback()
        return True


class BackgroundScheduler:
    """Run callbacks on Socket.IO background tasks after a delay.

    - Sleeps with ``socketio.sleep`` so it cooperates with eventlet/gevent
    - Optional heartbeat logs while waiting
    - Stops waiting as soon as the handle is cancelled
    - Fires under ``guard`` (the host lock) so callbacks never overlap a tick
    """

    def __init__(self, socketio, guard=None, heartbeat_ms: int = 0):
        self.socketio = socketio
        self.guard = guard
        self.heartbeat_ms = heartbeat_ms

    def call_later(self, key: Hashable, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(key, delay_ms, callback)
        logger.info(f'[timer-set] key={key} delay={delay_ms}ms')
        self.socketio.start_background_task(self._worker, handle)
        return handle

    def _worker(self, handle: TimerHandle) -> None:
        remaining = handle.delay_ms
        step = self.heartbeat_ms if self.heartbeat_ms > 0 else remaining
        while remaining > 0 and handle.pending:
            chunk = min(step, remaining)
            self.socketio.sleep(chunk / 1000.0)
            remaining -= chunk
            if self.heartbeat_ms > 0 and handle.pending:
                logger.info(f'[timer-heartbeat] key={handle.key} remaining={remaining}ms')
        if not handle.pending:
            return
        if self.guard is None:
            handle.fire()
            return
        with self.guard:
            handle.fire()


class ManualScheduler:
    """Hold timers until ``advance()`` moves the clock past their deadline.

    Used when background tasks are disabled (TESTING) and for headless runs.
    """

    def __init__(self):
        self.now = 0
        self._queue = []
        self._seq = itertools.count()

    def call_later(self, key: Hashable, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        handle = TimerHandle(key, delay_ms, callback)
        heapq.heappush(self._queue, (self.now + delay_ms, next(self._seq), handle))
        return handle

    def advance(self, ms: int) -> int:
        """Fire every due timer in deadline order; returns how many fired."""
        target = self.now + ms
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            deadline, _, handle = heapq.heappop(self._queue)
            self.now = deadline
            if handle.fire():
                fired += 1
        self.now = target
        return fired

    def pending(self) -> List[TimerHandle]:
        return [h for _, _, h in sorted(self._queue) if h.pending]


class RoundTimers:
    """Timers scheduled on behalf of one round, keyed by ``(round_id, name)``."""

    def __init__(self, scheduler, round_id: str):
        self.scheduler = scheduler
        self.round_id = round_id
        self._handles: Dict[str, TimerHandle] = {}

    def schedule(self, name: str, delay_ms: int, callback: Callable[[], None]) -> TimerHandle:
        previous = self._handles.get(name)
        if previous:
            previous.cancel()
        handle = self.scheduler.call_later((self.round_id, name), delay_ms, callback)
        self._handles[name] = handle
        return handle

    def get(self, name: str):
        return self._handles.get(name)

    def is_pending(self, name: str) -> bool:
        handle = self._handles.get(name)
        return bool(handle and handle.pending)

    def cancel(self, name: str) -> bool:
        handle = self._handles.get(name)
        if not handle or not handle.pending:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> int:
        cancelled = 0
        for name in list(self._handles):
            if self.cancel(name):
                cancelled += 1
        return cancelled

    def pending(self) -> List[str]:
        return sorted(name for name, h in self._handles.items() if h.pending)
