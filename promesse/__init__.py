# -*- coding: utf-8 -*-

from .__version__ import __version__  # noqa

import logging
import time

from .common import config
from .common import log
from .event_loop import EventLoop
from .promise import Promise, ThreadPoolExecutor, combinators


def _slow_task(name, delay, fail=False):
    time.sleep(delay)
    if fail:
        raise RuntimeError('%s has failed' % name)
    return name


def main():
    """Entry point of the promesse demonstration.

    Run a few jobs in a thread pool, and combine the resulting promises on an
    event loop.
    """

    # Start log and load config
    with log.Context():
        logger = logging.getLogger(__name__)

        config.load()
        log.set_debug_mode(config.get('debug_mode'))
        log.set_logs_level(config.get('log_levels'))

        with EventLoop() as loop, ThreadPoolExecutor() as pool:
            jobs = [pool.submit(_slow_task, 'job-%d' % i, 0.05 * (3 - i))
                    for i in range(3)]
            failing = pool.submit(_slow_task, 'failing-job', 0.01, fail=True)
            settled = combinators.all_settled(jobs + [failing])

            values = loop.run_until_settled(combinators.all(jobs))
            logger.info('all() -> %s', values)

            first = loop.run_until_settled(combinators.race(jobs))
            logger.info('race() -> %s', first)

            outcomes = loop.run_until_settled(settled)
            for outcome in outcomes:
                logger.info('all_settled() -> %s', outcome)

            recovered = failing.catch(lambda error: 'recovered from %s'
                                      % error)
            logger.info('catch() -> %s', loop.run_until_settled(recovered))

            value = loop.run_until_settled(
                combinators.any([failing, Promise.resolve('fallback')]))
            logger.info('any() -> %s', value)
