# -*- coding: utf-8 -*-

from .promise import Promise


class Deferred(object):
    """Producer side of an asynchronous task.

    A Deferred is the "creator" side of an async task, whereas a Promise
    represents the asynchronous value from the "consumer" side. It's useful
    when the code settling the value is not the code creating the Promise.

    Attributes:
        promise (Promise): the Promise associated to the Deferred.
        resolve (function): fulfills the promise (or makes it follow a
            thenable).
        reject (function): rejects the promise.
    """

    def __init__(self, scheduler=None, _name=None):
        self.promise = Promise(self._executor, scheduler=scheduler,
                               _name=_name or 'DEFERRED')

    def _executor(self, resolve, reject):
        self.resolve = resolve
        self.reject = reject
