# -*- coding: utf-8 -*-

from collections import namedtuple
from functools import partial
import logging
from threading import Lock

from .errors import AggregateError, PendingError, RejectionError
from .scheduler import get_scheduler
from .util import Thenable, is_thenable

_logger = logging.getLogger(__name__)


class Outcome(namedtuple('Outcome', ['status', 'value', 'reason'])):
    """Final state of a Promise, as listed by `Promise.all_settled()`.

    Attributes:
        status (str): `Promise.FULFILLED` or `Promise.REJECTED`.
        value: result of the promise. None if it's rejected.
        reason: rejection reason of the promise. None if it's fulfilled.
    """
    __slots__ = ()

    @classmethod
    def fulfilled(cls, value):
        return cls(Promise.FULFILLED, value, None)

    @classmethod
    def rejected(cls, reason):
        return cls(Promise.REJECTED, None, reason)


# Callbacks registered by then(), and the settle functions of the derived
# Promise.
_Waiter = namedtuple('_Waiter',
                     ['on_fulfilled', 'on_rejected', 'resolve', 'reject'])


def _ignore(_value=None):
    pass


class Promise(Thenable):
    """It represents an operation expected to be completed in the future.

    A Promise is used for asynchronous computation. It contains a value not yet
    known when the Promise is created. It allows to set callbacks who will be
    called as soon as the result is known. It's a "promise" of a future value.

    A Promise is settled only once: it's either fulfilled with a value, or
    rejected with a reason (usually an exception). Callbacks are never
    called synchronously: they are executed as microtasks, by the scheduler
    bound to the Promise (see `promesse.promise.scheduler`), in the order they
    were registered.

    All calls to the methods are thread-safe.
    """

    PENDING = 'pending'
    FULFILLED = 'fulfilled'
    REJECTED = 'rejected'

    def __init__(self, executor, scheduler=None, _name=None, _previous=None):
        """Constructor of the Promise.

        Generate the two callbacks for the executor, then call the `executor`.
        It means the executor will be fully executed before the constructor
        returns.
        If the executor raises an exception, it's caught and the Promise is
        rejected with this exception.

        Args:
            executor (callable): Takes 2 callable arguments:
                The first one, `resolve()` should be called when the Promise
                is fulfilled (ie the tasks is done) and must accept the
                result's value as its only argument. If this value is a
                thenable, the Promise will follow it, and take its state once
                settled.
                The second, `reject()`, should be called when an error
                occurs. Its argument should be an instance of `Exception`.
                Only the first call to one of these callbacks is taken into
                account.
            scheduler (MicrotaskScheduler, optional): scheduler executing the
                callbacks. Default to the scheduler of the current thread.
            _name (str): if set, name used when converted to text.
        """
        self._state = self.PENDING
        self._result = None
        self._error = None
        self._lock = Lock()
        self._scheduler = scheduler or get_scheduler()
        self._name = _name or getattr(executor, '__name__', '???')
        self._previous = _previous

        # Set by the first accepted call to resolve() or reject(). A Promise
        # following a thenable is still pending, but can't be resolved again.
        self._is_resolved = False
        self._is_handled = False
        self._waiters = []

        try:
            executor(self._resolve, self._reject)
        except Exception as error:
            self._reject(error)

    def _resolve(self, value):
        if self._lock_in('fulfill', value):
            self._adopt(value)

    def _reject(self, reason):
        if self._lock_in('reject', reason):
            self._settle(self.REJECTED, reason)

    def _lock_in(self, action, value):
        with self._lock:
            if not self._is_resolved:
                self._is_resolved = True
                return True
        _logger.debug('Try to %s Promise %r already resolved. New value will '
                      'be ignored: %r', action, self, value)
        return False

    def _adopt(self, value):
        """Fulfill the Promise with value, or follow it if it's a thenable."""
        if value is self:
            return self._settle(
                self.REJECTED,
                TypeError('Promise %r resolved with itself' % self))

        # Looking up `then` can run arbitrary code (properties, __getattr__).
        try:
            chainable = is_thenable(value)
        except Exception as error:
            return self._settle(self.REJECTED, error)

        if chainable:
            self._scheduler.schedule(self._follow, value)
        else:
            self._settle(self.FULFILLED, value)

    def _follow(self, thenable):
        lock = Lock()
        is_called = [False]

        def once(settle):
            def wrapper(value=None):
                with lock:
                    if is_called[0]:
                        return
                    is_called[0] = True
                settle(value)
            return wrapper

        on_fulfilled = once(self._adopt)
        on_rejected = once(partial(self._settle, self.REJECTED))
        try:
            thenable.then(on_fulfilled, on_rejected)
        except Exception as error:
            on_rejected(error)

    def _settle(self, state, value):
        with self._lock:
            self._state = state
            if state == self.FULFILLED:
                self._result = value
            else:
                self._error = value
            waiters = self._waiters
            is_handled = self._is_handled

            # Free the references
            self._waiters = None

        for waiter in waiters:
            self._scheduler.schedule(self._run_waiter, waiter, state, value)

        if state == self.REJECTED and not is_handled:
            self._scheduler.unhandled_rejection.fire(self)

    def _add_waiter(self, waiter):
        with self._lock:
            was_handled = self._is_handled
            self._is_handled = True
            if self._state == self.PENDING:
                self._waiters.append(waiter)
                return
            state = self._state
            if state == self.FULFILLED:
                value = self._result
            else:
                value = self._error

        self._scheduler.schedule(self._run_waiter, waiter, state, value)
        if state == self.REJECTED and not was_handled:
            self._scheduler.rejection_handled.fire(self)

    @classmethod
    def _run_waiter(cls, waiter, state, value):
        if state == cls.FULFILLED:
            handler, transfer = waiter.on_fulfilled, waiter.resolve
        else:
            handler, transfer = waiter.on_rejected, waiter.reject

        if handler is None:
            return transfer(value)
        try:
            new_result = handler(value)
        except Exception as error:
            return waiter.reject(error)
        waiter.resolve(new_result)

    @property
    def state(self):
        """str: one of PENDING, FULFILLED or REJECTED."""
        with self._lock:
            return self._state

    @property
    def is_pending(self):
        return self.state == self.PENDING

    @property
    def is_settled(self):
        return self.state != self.PENDING

    @property
    def is_handled(self):
        """bool: True if at least one callback has been registered."""
        with self._lock:
            return self._is_handled

    @property
    def scheduler(self):
        return self._scheduler

    def result(self):
        """Returns the value of the fulfilled Promise.

        This method never waits. See `EventLoop.run_until_settled()` to wait
        for the result.

        Returns:
            *: value encapsulated, defined by the operation.
        Raises:
            PendingError: if the promise is not settled yet.
            RejectionError: if the promise is rejected with a reason who is
                not an exception.
            *: If the promise is rejected, the rejection cause is raised.
        """
        with self._lock:
            state, result, error = self._state, self._result, self._error

        if state == self.PENDING:
            raise PendingError('Promise %r is still pending' % self)
        elif state == self.REJECTED:
            if isinstance(error, BaseException):
                raise error
            raise RejectionError(error)
        return result

    def exception(self):
        """Returns the rejection reason of the Promise.

        Returns:
            *: the reason of the rejection, usually an Exception.
            None: if the promise is fulfilled.
        Raises:
            PendingError: if the promise is not settled yet.
        """
        with self._lock:
            state, error = self._state, self._error

        if state == self.PENDING:
            raise PendingError('Promise %r is still pending' % self)
        return error

    def then(self, on_fulfilled=None, on_rejected=None):
        """Create a new promise from callbacks called when this one is settled.

        If the promise is fulfilled, the `on_fulfilled` callback will be
        called. Otherwise (the promise has been rejected), the `on_rejected`
        callback is called. The callback is always executed as a microtask,
        even if the promise is already settled.
        In any case, the callback will define the state of the returned
        Promise. If the callback raises an exception, the new Promise is
        rejected. The callback can returns:
        - A value: the new promise will be fulfilled with this value.
        - Another Promise, or any object with a `then` method: when fulfilled
            or rejected, will transfer its status (state and result/error) to
            the Promise returned by this method.

        If a callback is not defined, the state of the "self" promise is
        transferred at the new promise (the state and the value/error).

        Args:
            on_fulfilled (callable, optional):  This callback will receive the
                result of the original promise as argument.
            on_rejected (callable, optional): This callback will receive the
                exception raised by the original promise as argument.
        Returns:
            Promise<*>: new promise depending of self.
        """
        if not on_rejected:
            name = '%s' % getattr(on_fulfilled, '__name__', '???')
        elif not on_fulfilled:
            name = '<None, %s>' % getattr(on_rejected, '__name__', '???')
        else:
            name = '<%s, %s>' % (getattr(on_fulfilled, '__name__', '???'),
                                 getattr(on_rejected, '__name__', '???'))
        return self._chain(on_fulfilled, on_rejected, name)

    def _chain(self, on_fulfilled, on_rejected, name):
        def chained_executor(resolve, reject):
            self._add_waiter(_Waiter(on_fulfilled, on_rejected, resolve,
                                     reject))

        return Promise(chained_executor, scheduler=self._scheduler,
                       _name=name, _previous=self)

    def catch(self, on_rejected):
        """Create a new promise with a callback called when an error occurs.

        Alias of `self.then(None, on_rejected)`

        Args:
            on_rejected (callable): Must take an argument instance of Exception
                (or one of its subclass). Will be called if `self` is rejected.
        returns:
            Promise<*>: new Promise chained to `self`. If `self` is fulfilled,
                the promised value will be the same as `self`. Otherwise, the
                value returned by the `on_rejected()` callback.
        """
        return self.then(None, on_rejected)

    def finally_(self, on_settled):
        """Create a new promise with a callback called when self is settled.

        `on_settled()` takes no argument, and its result is ignored: the new
        promise is settled like `self`, with the same value or reason. If
        `on_settled()` returns a thenable, the new promise is settled only
        after this thenable is fulfilled.
        If `on_settled()` raises an exception (or returns a thenable who is
        rejected), the new promise is rejected with this error instead.

        Args:
            on_settled (callable): callback without argument.
        Returns:
            Promise<*>: new Promise chained to `self`.
        """
        scheduler = self._scheduler

        def after(outcome_factory):
            outcome = on_settled()
            if is_thenable(outcome):
                return Promise.resolve(outcome, scheduler).then(
                    lambda _value: outcome_factory())
            return outcome_factory()

        def pass_value(value):
            return after(lambda: value)

        def pass_reason(reason):
            return after(lambda: Promise.reject(reason, scheduler))

        name = 'FINALLY %s' % getattr(on_settled, '__name__', '???')
        return self._chain(pass_value, pass_reason, name)

    def safeguard(self):
        """Catch all errors and log them with the most details possible.

        This method is aimed to protect the program from uncaught rejected
        Promise. If no error handler has been set (via then() or catch()), the
        default behavior is to do nothing, and thus, errors are silently
        ignored.
        Calling `safeguard()` after all chains are set will catch these errors,
        and log them as ERROR with the maximum of details possible.

        Returns:
            Promise: self
        """
        def guard(error):
            if isinstance(error, BaseException):
                _logger.error('[SAFEGUARD] %r', self, exc_info=(
                    type(error), error, error.__traceback__))
            else:
                _logger.error('[SAFEGUARD] %r rejected with %r', self, error)

        self._add_waiter(_Waiter(None, guard, _ignore, _ignore))
        return self

    def __repr__(self):
        return 'Promise(%s)' % self._inner_print()

    def _inner_print(self):
        parts = []
        promise = self
        while promise is not None:
            parts.append('%s %s' % (promise._name, promise._state_letter()))
            promise = promise._previous
        return ' -> '.join(reversed(parts))

    def _state_letter(self):
        with self._lock:
            if self._state == self.REJECTED:
                return 'R'
            elif self._state == self.FULFILLED:
                return 'F'
            return 'P'

    @classmethod
    def resolve(cls, value, scheduler=None):
        """Create a promise who resolves the selected value.

        Args:
            value: result of the promise. If it's a Promise, it's returned as
                is. If it's another kind of thenable, the new Promise will
                follow it.
            scheduler (MicrotaskScheduler, optional)
        Returns:
            Promise: new Promise, fulfilled with the value passed in
                parameter.
        """
        if isinstance(value, Promise):
            return value
        return cls(lambda ok, _error: ok(value), scheduler=scheduler,
                   _name='RESOLVE')

    @classmethod
    def reject(cls, reason, scheduler=None):
        """Create a Promise rejected for the reason specified.

        Args:
            reason: Exception set to the Promise
            scheduler (MicrotaskScheduler, optional)
        Returns:
            Promise: new Promise already rejected.
        """
        return cls(lambda _ok, error: error(reason), scheduler=scheduler,
                   _name='REJECT')

    @classmethod
    def all(cls, promises, scheduler=None):
        """Create a Promise who wait a list of promises to be all fulfilled.

        The resulting Promise resolve when all of the promises in the list are
        resolved, and returns a list of all the resulting values, keeping the
        order of the promise list.
        If a promise is rejected, then the resulting promise is rejected with
        the same reason, and all results from other promises are ignored.

        Args:
            promises (iterable): promises, or direct values.
            scheduler (MicrotaskScheduler, optional)
        Returns:
            Promise<list>: resulting promise, fulfilled when all promises are
                fulfilled, or rejected when one of the promises is rejected.
        """
        promises = [cls.resolve(p, scheduler) for p in promises]
        if not promises:
            return cls.resolve([], scheduler)

        lock = Lock()
        results = [None] * len(promises)
        _remaining_tasks = [len(promises)]

        def executor(resolve, reject):
            def resolve_one_promise(index, value):
                with lock:
                    results[index] = value
                    _remaining_tasks[0] -= 1
                    is_done = _remaining_tasks[0] == 0
                if is_done:
                    resolve(results)

            for index, p in enumerate(promises):
                p.then(partial(resolve_one_promise, index), reject)

        return cls(executor, scheduler=scheduler, _name='ALL')

    @classmethod
    def all_settled(cls, promises, scheduler=None):
        """Create a Promise who wait a list of promises to be all settled.

        The resulting promise is never rejected. It's fulfilled with a list of
        `Outcome`, one for each promise, in the order of the promise list.

        Args:
            promises (iterable): promises, or direct values.
            scheduler (MicrotaskScheduler, optional)
        Returns:
            Promise<list of Outcome>
        """
        promises = [cls.resolve(p, scheduler) for p in promises]
        if not promises:
            return cls.resolve([], scheduler)

        lock = Lock()
        outcomes = [None] * len(promises)
        _remaining_tasks = [len(promises)]

        def executor(resolve, _reject):
            def store_outcome(index, outcome):
                with lock:
                    outcomes[index] = outcome
                    _remaining_tasks[0] -= 1
                    is_done = _remaining_tasks[0] == 0
                if is_done:
                    resolve(outcomes)

            def on_fulfilled(index, value):
                store_outcome(index, Outcome.fulfilled(value))

            def on_rejected(index, reason):
                store_outcome(index, Outcome.rejected(reason))

            for index, p in enumerate(promises):
                p.then(partial(on_fulfilled, index),
                       partial(on_rejected, index))

        return cls(executor, scheduler=scheduler, _name='ALL_SETTLED')

    @classmethod
    def race(cls, promises, scheduler=None):
        """Resolve or reject with the first Promise to be settled.

        The resulting Promise will be settled as soon as the one of the
        promises is settled. Result value or rejection reason of the finished
        promise are transmitted. All other Promise result's will be ignored,
        but the promises are not stopped.
        "First" is the order of execution of the callbacks: when several
        promises are already settled, the lowest index wins.

        Args:
            promises (iterable): promises, or direct values.
            scheduler (MicrotaskScheduler, optional)
        Returns:
            Promise: a promise. If the promise list is empty, it will be
                pending forever.
        """
        promises = [cls.resolve(p, scheduler) for p in promises]

        def executor(resolve, reject):
            for p in promises:
                p.then(resolve, reject)

        return cls(executor, scheduler=scheduler, _name='RACE')

    @classmethod
    def any(cls, promises, scheduler=None):
        """Resolve with the first Promise to be fulfilled.

        If all promises are rejected, the resulting promise is rejected with
        an `AggregateError`, who contains all the rejection reasons, in the
        order of the promise list (and not in order of rejection).

        Args:
            promises (iterable): promises, or direct values.
            scheduler (MicrotaskScheduler, optional)
        Returns:
            Promise: a promise. If the promise list is empty, it's rejected
                with an empty `AggregateError`.
        """
        promises = [cls.resolve(p, scheduler) for p in promises]
        if not promises:
            return cls.reject(AggregateError([]), scheduler)

        lock = Lock()
        errors = [None] * len(promises)
        _remaining_tasks = [len(promises)]

        def executor(resolve, reject):
            def reject_one_promise(index, reason):
                with lock:
                    errors[index] = reason
                    _remaining_tasks[0] -= 1
                    is_done = _remaining_tasks[0] == 0
                if is_done:
                    reject(AggregateError(errors))

            for index, p in enumerate(promises):
                p.then(resolve, partial(reject_one_promise, index))

        return cls(executor, scheduler=scheduler, _name='ANY')
