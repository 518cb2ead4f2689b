# -*- coding: utf-8 -*-

from collections import OrderedDict
import logging
from threading import Lock

_logger = logging.getLogger(__name__)


class RejectionTracker(object):
    """Keep track of the promises rejected without any error handler.

    A promise rejected while nothing is chained to it is recorded. If a
    callback is registered later (by `then()`, `catch()`, ...), the promise
    is forgotten. What remains after the microtasks have been drained is a
    real unhandled rejection: the error would be silently lost.

    Example:

        >>> tracker = RejectionTracker(scheduler)
        >>> Promise.reject(ValueError(), scheduler)
        >>> scheduler.drain()
        >>> tracker.report()  # log the ValueError
        1
    """

    def __init__(self, scheduler):
        """
        Args:
            scheduler (MicrotaskScheduler): scheduler of the promises to
                watch.
        """
        self._scheduler = scheduler
        self._lock = Lock()
        self._rejected = OrderedDict()  # id -> Promise

        scheduler.unhandled_rejection.connect(self._on_unhandled_rejection)
        scheduler.rejection_handled.connect(self._on_rejection_handled)

    def _on_unhandled_rejection(self, promise):
        with self._lock:
            self._rejected[id(promise)] = promise

    def _on_rejection_handled(self, promise):
        with self._lock:
            self._rejected.pop(id(promise), None)

    def collect(self):
        """Returns the promises still unhandled, and forget them.

        Returns:
            list of Promise: in the order of rejection.
        """
        with self._lock:
            promises = list(self._rejected.values())
            self._rejected.clear()
        return promises

    def report(self):
        """Log all unhandled rejections, and forget them.

        Returns:
            int: number of unhandled rejections reported.
        """
        promises = self.collect()
        for promise in promises:
            error = promise.exception()
            if isinstance(error, BaseException):
                _logger.error('Unhandled rejection in %r', promise, exc_info=(
                    type(error), error, error.__traceback__))
            else:
                _logger.error('Unhandled rejection in %r: %r', promise, error)
        return len(promises)

    def close(self):
        """Stop watching the scheduler."""
        self._scheduler.unhandled_rejection.disconnect(
            self._on_unhandled_rejection)
        self._scheduler.rejection_handled.disconnect(
            self._on_rejection_handled)

    def __len__(self):
        with self._lock:
            return len(self._rejected)
