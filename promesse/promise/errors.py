# -*- coding: utf-8 -*-


class PendingError(Exception):
    """The result of a Promise is requested while it's still pending."""
    pass


class RejectionError(Exception):
    """A Promise has been rejected with a value who is not an exception.

    Attributes:
        reason: the rejection reason, as given to `reject()`.
    """

    def __init__(self, reason):
        Exception.__init__(self, 'Promise rejected with non-exception value: '
                                 '%r' % (reason,))
        self.reason = reason


class AggregateError(Exception):
    """Several operations have failed together.

    Produced by `Promise.any()` when all the promises are rejected.

    Attributes:
        errors (list): rejection reasons, in the order of the promises.
    """

    def __init__(self, errors, message=None):
        self.errors = list(errors)
        if message is None:
            message = 'All promises were rejected (%d)' % len(self.errors)
        Exception.__init__(self, message)
