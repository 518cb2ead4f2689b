# -*- coding: utf-8 -*-

from . import combinators
from .decorators import wrap_promise
from .deferred import Deferred
from .errors import AggregateError, PendingError, RejectionError
from .promise import Outcome, Promise
from .reduce_coroutine import reduce_coroutine
from .rejection_tracker import RejectionTracker
from .scheduler import (MicrotaskScheduler, get_scheduler, set_scheduler,
                        use_scheduler)
from .thread_pool import ThreadPoolExecutor
from .util import Thenable, is_thenable

__all__ = ['combinators', 'is_thenable', 'get_scheduler', 'set_scheduler',
           'use_scheduler', 'AggregateError', 'Deferred',
           'MicrotaskScheduler', 'Outcome', 'PendingError', 'Promise',
           'RejectionError', 'RejectionTracker', 'Thenable',
           'ThreadPoolExecutor', 'reduce_coroutine', 'wrap_promise']
