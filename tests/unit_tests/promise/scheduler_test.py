# -*- coding: utf-8 -*-

import logging
from threading import Thread

from promesse.promise import (MicrotaskScheduler, Promise, get_scheduler,
                              set_scheduler, use_scheduler)


class TestMicrotaskScheduler(object):

    def test_drain_in_order(self):
        scheduler = MicrotaskScheduler()
        calls = []
        for i in range(5):
            scheduler.schedule(calls.append, i)

        assert len(scheduler) == 5
        assert calls == []
        assert scheduler.drain() == 5
        assert calls == [0, 1, 2, 3, 4]
        assert len(scheduler) == 0

    def test_drain_empty_queue(self):
        assert MicrotaskScheduler().drain() == 0

    def test_tasks_scheduled_during_drain(self):
        """Tasks added by a running task are executed in the same drain."""
        scheduler = MicrotaskScheduler()
        calls = []

        def task(depth):
            calls.append(depth)
            if depth < 3:
                scheduler.schedule(task, depth + 1)

        scheduler.schedule(task, 0)
        scheduler.schedule(calls.append, 'other')

        assert scheduler.drain() == 5
        assert calls == [0, 'other', 1, 2, 3]

    def test_nested_drain(self):
        scheduler = MicrotaskScheduler()
        results = []

        def task():
            assert scheduler.is_draining
            results.append(scheduler.drain())

        scheduler.schedule(task)
        scheduler.schedule(results.append, 'next')
        scheduler.drain()

        assert results == [0, 'next']
        assert not scheduler.is_draining

    def test_failing_task_is_isolated(self, caplog):
        scheduler = MicrotaskScheduler()
        calls = []

        def failing_task():
            raise ValueError('task failure')

        scheduler.schedule(failing_task)
        scheduler.schedule(calls.append, 'OK')

        with caplog.at_level(logging.ERROR):
            assert scheduler.drain() == 2
        assert calls == ['OK']
        assert 'task failure' in caplog.text

    def test_custom_error_handler(self):
        errors = []
        scheduler = MicrotaskScheduler(
            error_handler=lambda task, exc_info: errors.append(exc_info[1]))

        def failing_task():
            raise ValueError()

        scheduler.schedule(failing_task)
        scheduler.schedule(failing_task)
        scheduler.drain()

        assert len(errors) == 2
        assert all(isinstance(e, ValueError) for e in errors)

    def test_failing_error_handler(self, caplog):
        def failing_handler(task, exc_info):
            raise RuntimeError('handler failure')

        scheduler = MicrotaskScheduler(error_handler=failing_handler)
        calls = []

        def failing_task():
            raise ValueError()

        scheduler.schedule(failing_task)
        scheduler.schedule(calls.append, 'OK')

        with caplog.at_level(logging.ERROR):
            assert scheduler.drain() == 2
        assert calls == ['OK']
        assert len(scheduler) == 0
        assert 'handler failure' in caplog.text

    def test_task_scheduled_signal(self):
        scheduler = MicrotaskScheduler()
        notifications = []
        scheduler.task_scheduled.connect(lambda: notifications.append(True))

        scheduler.schedule(lambda: None)
        scheduler.schedule(lambda: None)
        assert len(notifications) == 2

    def test_schedule_from_another_thread(self):
        scheduler = MicrotaskScheduler()
        calls = []

        threads = [Thread(target=scheduler.schedule, args=(calls.append, i))
                   for i in range(10)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        scheduler.drain()
        assert sorted(calls) == list(range(10))

    def test_unhandled_rejection_signals(self):
        scheduler = MicrotaskScheduler()
        unhandled, handled = [], []
        scheduler.unhandled_rejection.connect(unhandled.append)
        scheduler.rejection_handled.connect(handled.append)

        p = Promise.reject(ValueError(), scheduler)
        assert unhandled == [p]
        assert handled == []

        p.catch(lambda err: None)
        assert handled == [p]

        # Only the first handler matters.
        p.catch(lambda err: None)
        assert handled == [p]

    def test_rejection_with_handler_is_not_signaled(self):
        scheduler = MicrotaskScheduler()
        unhandled = []
        scheduler.unhandled_rejection.connect(unhandled.append)

        p = Promise(lambda ok, error: None, scheduler)
        p.catch(lambda err: None)
        p2 = Promise.resolve(p, scheduler)
        assert p2 is p

        p3 = Promise(lambda ok, error: error(ValueError()), scheduler)
        assert unhandled == [p3]


class TestCurrentScheduler(object):

    def test_get_scheduler_is_stable(self):
        assert get_scheduler() is get_scheduler()

    def test_scheduler_per_thread(self):
        other = []
        t = Thread(target=lambda: other.append(get_scheduler()))
        t.start()
        t.join()

        assert other[0] is not get_scheduler()

    def test_use_scheduler(self):
        previous = get_scheduler()
        scheduler = MicrotaskScheduler()

        with use_scheduler(scheduler):
            assert get_scheduler() is scheduler
            p = Promise.resolve(3).then(lambda x: x + 1)

        assert get_scheduler() is previous
        assert p.scheduler is scheduler

        scheduler.drain()
        assert p.result() == 4

    def test_set_scheduler(self):
        previous = get_scheduler()
        scheduler = MicrotaskScheduler()
        try:
            set_scheduler(scheduler)
            assert get_scheduler() is scheduler
            set_scheduler(None)
            assert get_scheduler() not in (scheduler, None)
        finally:
            set_scheduler(previous)
