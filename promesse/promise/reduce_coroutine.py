# -*- coding: utf-8 -*-

from functools import wraps

from .deferred import Deferred
from .errors import RejectionError
from .promise import Promise
from .util import is_thenable


def reduce_coroutine(safeguard=False):
    """Decorator who converts a coroutine of promises into a single promise.

    The greatest interest is the ability to write a function in an
    synchronous-like style, using many asynchronous Promises.
    Whatever is the number of Promises or async calls used, the result will
    always be an unique Promise wrapping the whole process.

    The generator yields thenables. The value of each thenable is sent back
    to the generator; if it's rejected, the reason is raised at the `yield`
    instruction. The coroutine ends:
    - when it yields a value who is not a thenable: it's the result, and the
        generator is closed.
    - when it returns a value (`return value`): it's the result.
    - when it ends without value: the result is the last value sent to the
        generator.

    Args:
        safeguard (boolean): if true, use `Promise.safeguard()` on the
            resulting promise.
    """

    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            """
            Args:
                *args
                **kwargs
            Returns:
                Promise<*>
            """
            df = Deferred(_name='COROUTINE %s' % func.__name__)
            if safeguard:
                df.promise.safeguard()

            try:
                # Create generator; Initialization phase
                gen = func(*args, **kwargs)
            except Exception as error:
                df.reject(error)
                return df.promise

            def _call_next_or_set_result(value):
                try:
                    chainable = is_thenable(value)
                    if not chainable:
                        gen.close()
                except Exception as error:
                    return df.reject(error)

                if chainable:
                    Promise.resolve(value, df.promise.scheduler).then(
                        iter_next, iter_error)
                else:
                    df.resolve(value)

            def iter_next(sent_value):
                try:
                    next_value = gen.send(sent_value)
                except StopIteration as stop:
                    if stop.value is not None:
                        return df.resolve(stop.value)
                    return df.resolve(sent_value)
                except Exception as error:
                    return df.reject(error)
                _call_next_or_set_result(next_value)

            def iter_error(reason):
                if not isinstance(reason, BaseException):
                    reason = RejectionError(reason)
                try:
                    next_value = gen.throw(reason)
                except StopIteration as stop:
                    return df.resolve(stop.value)
                except Exception as error:
                    return df.reject(error)
                _call_next_or_set_result(next_value)

            # Start and resolve loop.
            iter_next(None)
            return df.promise

        return wrapper
    return decorator
