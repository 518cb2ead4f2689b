# -*- coding: utf-8 -*-

"""Reference host of the promises: a minimal single-threaded event loop.

The loop executes "macrotasks" (callbacks queued with `call_soon()` and
`call_later()`) one at a time. After each macrotask, it performs a microtask
checkpoint: all the microtasks of its scheduler are executed, then the
unhandled rejections are reported.

Other threads can queue macrotasks, or settle promises bound to the loop's
scheduler: the loop wakes up as soon as there is something to do.
"""

from collections import deque
from functools import partial
import heapq
import itertools
import logging
from threading import Condition
import time

from .common import config
from .promise import RejectionTracker, get_scheduler, use_scheduler

_logger = logging.getLogger(__name__)


def _ignore(_value):
    pass


class EventLoop(object):
    """Run macrotasks and drain the microtasks between each of them.

    Example:

        >>> with EventLoop() as loop:
        ...     p = Promise.resolve(3).then(lambda x: x * 2)
        ...     loop.run_until_settled(p)
        6
    """

    def __init__(self, scheduler=None, report_unhandled_rejections=None):
        """
        Args:
            scheduler (MicrotaskScheduler, optional): scheduler to drain.
                Default to the scheduler of the current thread, so the
                promises created before the loop are executed by it.
            report_unhandled_rejections (bool, optional): if True, the
                promises rejected without handler are logged after each
                checkpoint. Default to the config entry of the same name.
        """
        self.scheduler = scheduler or get_scheduler()

        if report_unhandled_rejections is None:
            report_unhandled_rejections = config.get(
                'report_unhandled_rejections')
        if report_unhandled_rejections:
            self._tracker = RejectionTracker(self.scheduler)
        else:
            self._tracker = None

        self._condition = Condition()
        self._ready = deque()  # must be acceded only with self._condition
        self._timers = []  # heap of (date, counter, callback)
        self._counter = itertools.count()
        self._stop_order = False
        self._scheduler_context = None

        self.scheduler.task_scheduled.connect(self._wake_up)

    def _wake_up(self):
        with self._condition:
            self._condition.notify_all()

    def call_soon(self, callback, *args, **kwargs):
        """Queue a macrotask. Can be called from any thread.

        Args:
            callback (callable): function to execute.
            *args: argument passed to callback.
            **kwargs: keywords arguments passed to callback.
        """
        with self._condition:
            self._ready.append(partial(callback, *args, **kwargs))
            self._condition.notify_all()

    def call_later(self, delay, callback, *args, **kwargs):
        """Queue a macrotask, to be executed after a delay.

        Args:
            delay (float): minimal delay, in seconds.
            callback (callable): function to execute.
            *args: argument passed to callback.
            **kwargs: keywords arguments passed to callback.
        """
        date = time.monotonic() + delay
        with self._condition:
            heapq.heappush(self._timers,
                           (date, next(self._counter),
                            partial(callback, *args, **kwargs)))
            self._condition.notify_all()

    def _pop_macrotask(self, timeout):
        """Wait for the next macrotask to execute.

        Returns:
            callable: the next macrotask, or None if the timeout has expired,
                or if microtasks are waiting to be drained.
        """
        deadline = None if timeout is None else time.monotonic() + timeout

        with self._condition:
            while True:
                now = time.monotonic()
                if self._ready:
                    return self._ready.popleft()
                if self._timers and self._timers[0][0] <= now:
                    return heapq.heappop(self._timers)[2]
                if len(self.scheduler) or self._stop_order:
                    return None

                delay = None
                if self._timers:
                    delay = self._timers[0][0] - now
                if deadline is not None:
                    remaining = deadline - now
                    if remaining <= 0:
                        return None
                    delay = remaining if delay is None else min(delay,
                                                                remaining)
                self._condition.wait(delay)

    def _checkpoint(self):
        self.scheduler.drain()
        if self._tracker:
            self._tracker.report()

    def run_once(self, timeout=None):
        """Execute one macrotask, then drain the microtasks.

        If there is no macrotask ready, wait for one, at most `timeout`
        seconds. Microtasks scheduled from other threads stop the wait.

        Args:
            timeout (float, optional): maximal waiting time, in seconds.
        Returns:
            bool: True if a macrotask has been executed.
        """
        with use_scheduler(self.scheduler):
            self._checkpoint()
            task = self._pop_macrotask(timeout)
            if task is not None:
                try:
                    task()
                except Exception:
                    _logger.exception('Macrotask %r has raised an exception',
                                      task)
            self._checkpoint()
        return task is not None

    def run_until_settled(self, promise, timeout=None):
        """Run the loop until the promise is settled, and returns its result.

        Args:
            promise (Promise): promise bound to the loop's scheduler.
            timeout (float, optional): maximal time, in seconds.
        Returns:
            *: value of the fulfilled promise.
        Raises:
            TimeoutError: if the promise is not settled within the delay.
            PendingError: if the loop has been stopped before the promise is
                settled.
            *: If the promise is rejected, the rejection cause is raised.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        self._stop_order = False

        # Its settlement must schedule a microtask, to wake up the loop.
        promise.then(_ignore, _ignore)

        while promise.is_pending and not self._stop_order:
            remaining = None
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise TimeoutError('Promise %r not settled after %ss'
                                       % (promise, timeout))
            self.run_once(remaining)
        return promise.result()

    def run_until_idle(self):
        """Run the loop until there is no more task, timer or microtask."""
        self._stop_order = False
        while self._has_pending_work() and not self._stop_order:
            self.run_once()

    def run_forever(self):
        """Run the loop until `stop()` is called."""
        self._stop_order = False
        while not self._stop_order:
            self.run_once()

    def _has_pending_work(self):
        with self._condition:
            if self._ready or self._timers:
                return True
        return len(self.scheduler) > 0

    def stop(self):
        """Stop the loop after the current macrotask. Thread-safe."""
        with self._condition:
            self._stop_order = True
            self._condition.notify_all()

    def close(self):
        """Detach the loop from its scheduler."""
        self.scheduler.task_scheduled.disconnect(self._wake_up)
        if self._tracker:
            self._tracker.close()

    def __enter__(self):
        self._scheduler_context = use_scheduler(self.scheduler)
        self._scheduler_context.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self._scheduler_context.__exit__(exc_type, exc_val, exc_tb)
        self._scheduler_context = None
        self.close()
