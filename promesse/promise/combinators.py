# -*- coding: utf-8 -*-

"""Free function versions of the Promise group methods.

These functions are meant to be used through the module, so that they don't
hide the builtins of the same name:

    >>> from promesse.promise import combinators
    >>> p = combinators.all([Promise.resolve(1), 2, Deferred().promise])

Each input is converted using `Promise.resolve()`: the sequences can mix
promises, foreign thenables and direct values.
"""

from .promise import Promise


def all(promises, scheduler=None):
    """Fulfilled with the list of values, once all promises are fulfilled.

    See `Promise.all()`.
    """
    return Promise.all(promises, scheduler)


def all_settled(promises, scheduler=None):
    """Fulfilled with a list of `Outcome`, once all promises are settled.

    See `Promise.all_settled()`.
    """
    return Promise.all_settled(promises, scheduler)


def race(promises, scheduler=None):
    """Settled like the first promise to be settled.

    See `Promise.race()`.
    """
    return Promise.race(promises, scheduler)


def any(promises, scheduler=None):
    """Fulfilled like the first promise fulfilled, or rejected if all are.

    See `Promise.any()`.
    """
    return Promise.any(promises, scheduler)
