# -*- coding: utf-8 -*-

import pytest

from promesse.promise import MicrotaskScheduler, use_scheduler


@pytest.fixture
def scheduler():
    """Fresh scheduler, current for the thread during the test.

    The test drives it by hand: callbacks run only when `drain()` is called.

    Returns:
        MicrotaskScheduler
    """
    microtask_scheduler = MicrotaskScheduler()
    with use_scheduler(microtask_scheduler):
        yield microtask_scheduler
