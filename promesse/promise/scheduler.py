# -*- coding: utf-8 -*-

"""FIFO queue of microtasks, the serialization point of all the promises.

Every callback registered on a Promise is executed as a microtask: it's
appended to the queue of a scheduler, and executed when the host calls
`drain()`. The queue is drained until it's empty, including the microtasks
appended during the drain itself.

Each thread has its own current scheduler, returned by `get_scheduler()`.
A Promise is bound to the scheduler current at its creation.
"""

from collections import deque
from contextlib import contextmanager
from functools import partial
import logging
import sys
from threading import Lock, local

from ..common.signal import Signal

_logger = logging.getLogger(__name__)


def _log_microtask_error(task, exc_info):
    _logger.error('Microtask %r has raised an exception', task,
                  exc_info=exc_info)


class MicrotaskScheduler(object):
    """Queue of zero-argument callbacks, executed in order of scheduling.

    `schedule()` can be called from any thread. Only one thread at a time can
    drain the queue.

    Attributes:
        task_scheduled (Signal): fired after each call to `schedule()`, from
            the thread who has scheduled the task.
        unhandled_rejection (Signal): fired with a Promise rejected while no
            callback has been registered on it.
        rejection_handled (Signal): fired with a Promise previously signaled
            as `unhandled_rejection`, when a callback is registered on it.
    """

    def __init__(self, error_handler=None):
        """
        Args:
            error_handler (callable, optional): called with the task and the
                `exc_info` tuple when a microtask raises an exception. By
                default, the error is logged.
        """
        self._queue = deque()
        self._lock = Lock()
        self._is_draining = False  # must be acceded only with self._lock
        self._error_handler = error_handler or _log_microtask_error

        self.task_scheduled = Signal()
        self.unhandled_rejection = Signal()
        self.rejection_handled = Signal()

    def schedule(self, callback, *args, **kwargs):
        """Append a microtask at the end of the queue.

        Args:
            callback (callable): function to execute.
            *args: arguments passed to callback.
            **kwargs: keywords arguments passed to callback.
        """
        if args or kwargs:
            callback = partial(callback, *args, **kwargs)
        with self._lock:
            self._queue.append(callback)
        self.task_scheduled.fire()

    def drain(self):
        """Execute the microtasks until the queue is empty.

        Microtasks scheduled during the drain are executed too, before this
        method returns. An exception raised by a microtask is given to the
        error handler, and doesn't prevent the next tasks from running.

        A call made while the queue is already being drained (from a
        microtask, or from another thread) returns immediately.

        Returns:
            int: number of microtasks executed.
        """
        with self._lock:
            if self._is_draining:
                return 0
            self._is_draining = True

        nb_tasks = 0
        try:
            while True:
                with self._lock:
                    if not self._queue:
                        break
                    task = self._queue.popleft()
                nb_tasks += 1
                try:
                    task()
                except Exception:
                    self._report_error(task, sys.exc_info())
        finally:
            with self._lock:
                self._is_draining = False

        if nb_tasks:
            _logger.debug('%d microtasks executed', nb_tasks)
        return nb_tasks

    def _report_error(self, task, exc_info):
        try:
            self._error_handler(task, exc_info)
        except Exception:
            _logger.exception('Error handler %r has failed on microtask %r',
                              self._error_handler, task)

    @property
    def is_draining(self):
        with self._lock:
            return self._is_draining

    def __len__(self):
        with self._lock:
            return len(self._queue)

    def __repr__(self):
        return '<MicrotaskScheduler queued=%d>' % len(self)


_context = local()


def get_scheduler():
    """Returns the scheduler of the current thread.

    A new scheduler is created the first time a thread asks for it.
    """
    scheduler = getattr(_context, 'scheduler', None)
    if scheduler is None:
        scheduler = MicrotaskScheduler()
        _context.scheduler = scheduler
    return scheduler


def set_scheduler(scheduler):
    """Replace the scheduler of the current thread.

    Args:
        scheduler (MicrotaskScheduler): new scheduler. If None, a new one
            will be created at the next call of `get_scheduler()`.
    """
    _context.scheduler = scheduler


@contextmanager
def use_scheduler(scheduler):
    """Context manager making `scheduler` the current one, then restoring.

    Example:

        >>> scheduler = MicrotaskScheduler()
        >>> with use_scheduler(scheduler):
        ...     p = Promise.resolve(3).then(print)
        >>> scheduler.drain()
        3
        1
    """
    previous = getattr(_context, 'scheduler', None)
    _context.scheduler = scheduler
    try:
        yield scheduler
    finally:
        _context.scheduler = previous
