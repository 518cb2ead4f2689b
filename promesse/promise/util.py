# -*- coding: utf-8 -*-

import abc


class Thenable(abc.ABC):
    """Capability of any object who can be chained, like a Promise.

    A thenable exposes a method `then(on_fulfilled, on_rejected)` registering
    two callbacks, one of them being called when the eventual result is
    known. Inheriting from it is optional: `isinstance()` recognizes any
    object whose class defines a callable `then`, whatever its type is.
    """

    @abc.abstractmethod
    def then(self, on_fulfilled=None, on_rejected=None):
        pass

    @classmethod
    def __subclasshook__(cls, subclass):
        if cls is Thenable:
            then = getattr(subclass, 'then', None)
            return callable(then)
        return NotImplemented


def is_thenable(value):
    """Check if an object can be chained, like a Promise, or is a "result".

    The promise module uses this function to differentiate "chainable" objects
    and direct return values, when using a callback who can returns both.

    Returns:
        boolean: True if the value has an attribute 'then' who is callable.
            False if not.
    """
    if isinstance(value, type):
        # A class with a `then` method is a plain value, not a thenable.
        return False
    return callable(getattr(value, 'then', None))
