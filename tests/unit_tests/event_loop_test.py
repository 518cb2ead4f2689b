# -*- coding: utf-8 -*-

import logging
from threading import Timer
import time

import pytest

from promesse.event_loop import EventLoop
from promesse.promise import Deferred, PendingError, Promise, get_scheduler


class Err(Exception):
    pass


class TestEventLoop(object):

    def test_loop_uses_current_scheduler(self, scheduler):
        loop = EventLoop()
        assert loop.scheduler is scheduler
        loop.close()

    def test_run_until_settled(self, scheduler):
        p = Promise.resolve(3).then(lambda x: x * 2)

        with EventLoop() as loop:
            assert loop.run_until_settled(p) == 6

    def test_run_until_settled_rejected(self, scheduler):
        p = Promise.resolve(3).then(lambda x: Promise.reject(Err()))

        with EventLoop() as loop:
            with pytest.raises(Err):
                loop.run_until_settled(p)

    def test_run_until_settled_timeout(self, scheduler):
        df = Deferred()

        with EventLoop() as loop:
            with pytest.raises(TimeoutError):
                loop.run_until_settled(df.promise, timeout=0.05)

    def test_settled_from_another_thread(self, scheduler):
        df = Deferred()
        Timer(0.01, df.resolve, args=['OK']).start()

        with EventLoop() as loop:
            assert loop.run_until_settled(df.promise, timeout=5) == 'OK'

    def test_microtasks_between_macrotasks(self, scheduler):
        calls = []

        def first_task():
            calls.append('task 1')
            Promise.resolve(None).then(lambda _: calls.append('microtask'))

        with EventLoop() as loop:
            loop.call_soon(first_task)
            loop.call_soon(calls.append, 'task 2')
            loop.run_until_idle()

        assert calls == ['task 1', 'microtask', 'task 2']

    def test_call_later(self, scheduler):
        calls = []

        with EventLoop() as loop:
            start = time.monotonic()
            loop.call_later(0.03, calls.append, 'late')
            loop.call_later(0.01, calls.append, 'early')
            loop.call_soon(calls.append, 'now')
            loop.run_until_idle()

        assert calls == ['now', 'early', 'late']
        assert time.monotonic() - start >= 0.03

    def test_call_soon_from_another_thread(self, scheduler):
        df = Deferred()

        with EventLoop() as loop:
            timer = Timer(0.01, loop.call_soon, args=[df.resolve, 'thread'])
            timer.start()
            assert loop.run_until_settled(df.promise, timeout=5) == 'thread'

    def test_failing_macrotask(self, scheduler, caplog):
        calls = []

        def failing_task():
            raise Err('macrotask failure')

        with EventLoop() as loop:
            loop.call_soon(failing_task)
            loop.call_soon(calls.append, 'next')
            with caplog.at_level(logging.ERROR):
                loop.run_until_idle()

        assert calls == ['next']
        assert 'macrotask failure' in caplog.text

    def test_stop(self, scheduler):
        calls = []

        with EventLoop() as loop:
            loop.call_soon(calls.append, 1)
            loop.call_soon(loop.stop)
            loop.call_soon(calls.append, 2)
            loop.run_forever()
            assert calls == [1]

            loop.run_until_idle()
            assert calls == [1, 2]

    def test_stopped_before_settlement(self, scheduler):
        df = Deferred()

        with EventLoop() as loop:
            loop.call_soon(loop.stop)
            with pytest.raises(PendingError):
                loop.run_until_settled(df.promise)

    def test_report_unhandled_rejection(self, scheduler, caplog):
        with EventLoop(report_unhandled_rejections=True) as loop:
            loop.call_soon(lambda: Promise.reject(Err('lost error')))
            with caplog.at_level(logging.ERROR):
                loop.run_until_idle()

        assert 'Unhandled rejection' in caplog.text
        assert 'lost error' in caplog.text

    def test_handled_rejection_not_reported(self, scheduler, caplog):
        def task():
            Promise.reject(Err()).catch(lambda err: None)

        with EventLoop(report_unhandled_rejections=True) as loop:
            loop.call_soon(task)
            with caplog.at_level(logging.ERROR):
                loop.run_until_idle()

        assert 'Unhandled rejection' not in caplog.text

    def test_reporting_disabled(self, scheduler, caplog):
        with EventLoop(report_unhandled_rejections=False) as loop:
            loop.call_soon(lambda: Promise.reject(Err()))
            with caplog.at_level(logging.ERROR):
                loop.run_until_idle()

        assert 'Unhandled rejection' not in caplog.text

    def test_context_restores_scheduler(self, scheduler):
        from promesse.promise import MicrotaskScheduler
        other = MicrotaskScheduler()

        with EventLoop(other) as loop:
            assert get_scheduler() is other
            p = Promise.resolve(1).then(lambda x: x + 1)
            assert loop.run_until_settled(p) == 2

        assert get_scheduler() is scheduler
        assert len(other.task_scheduled) == 0
