# -*- coding: utf-8 -*-

"""Configuration of the logs, for programs using promesse.

The library modules only create their loggers; they never install handlers.
This module is for the application side: it configures the python
``logging`` module so that entries are written both in a log file and in the
console output.

On console output, if the system supports it, log entries are colorized.
Non-caught exceptions are logged before the program quits.
"""

import logging
import os.path
import sys

from . import path as promesse_path

_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'
_STRING_FORMAT = '%(asctime)s %(levelname)-7s %(name)s - %(message)s'


def _support_color_output():
    """Try to guess if the standard output supports color term code.

    Returns:
        boolean: True if we are sure the output supports color; False otherwise
    """
    if hasattr(sys.stdout, 'isatty') and sys.stdout.isatty():
        if not sys.platform.startswith('win'):
            return True
    return False


def _get_file_handler(filename):
    """Open a log file in the per-user log folder.

    Args:
        filename (str): name of the log file. Ex: 'promesse.log'
    Returns:
        FileHandler: a handler writing in the log file, or None if the file
            can't be opened.
    """
    try:
        log_path = os.path.join(promesse_path.get_log_dir(), filename)
        return logging.FileHandler(log_path, mode='a', encoding='utf-8')
    except (OSError, IOError):
        logging.getLogger(__name__).warning('Unable to create the log file',
                                            exc_info=True)
        return None


class ColoredFormatter(logging.Formatter):
    """Formatter who display colored messages using ANSI escape codes."""

    _colors = {
        'RESET': '\033[0m',
        'DEBUG': '\033[34m',
        'INFO': '\033[32m',
        'WARNING': '\033[33m',
        'ERROR': '\033[31m',
        'CRITICAL': '\033[31m',
        'NAME': '\033[36m',
        'DATE': '\033[30;1m',
        'EXCEPTION_NAME': '\033[31;1m',
        'EXCEPTION_STR': '\033[37;1m'
    }

    def _colorize(self, msg, color):
        return self._colors.get(color, '') + msg + self._colors.get('RESET')

    def formatTime(self, record, datefmt=None):
        result = logging.Formatter.formatTime(self, record, datefmt)
        return self._colorize(result, 'DATE')

    def formatException(self, ei):
        msg = logging.Formatter.formatException(self, ei)
        msg_lines = msg.split('\n')
        last_line = msg_lines[-1]
        exc_name, _sep, exc_str = last_line.partition(':')
        result = '\n'.join(msg_lines[:-1]) + '\n'
        result += self._colorize(exc_name, 'EXCEPTION_NAME')
        if _sep:
            result += ':' + self._colorize(exc_str, 'EXCEPTION_STR')
        return result

    def format(self, record):
        # The record is shared with the other handlers: work on a copy.
        record = logging.makeLogRecord(record.__dict__)
        record.name = self._colorize(record.name, 'NAME')
        record.levelname = self._colorize(record.levelname, record.levelname)
        return logging.Formatter.format(self, record)


def _excepthook(exctype, value, traceback):
    logging.getLogger(__name__).critical(
        'Uncaught exception', exc_info=(exctype, value, traceback))


class Context(object):
    """Context class used to open and close log handlers."""

    def __init__(self, filename='promesse.log'):
        """Prepare a new log context.

        Args:
            filename (str, optional): name of the log file, in the per-user
                log folder. If None, no file is written.
        """
        self._filename = filename
        self._handlers = []
        self._excepthook = None

    def __enter__(self):
        """Install the console and file handlers on the root logger."""
        logging.captureWarnings(True)
        root_logger = logging.getLogger()

        formatter = logging.Formatter(fmt=_STRING_FORMAT,
                                      datefmt=_DATE_FORMAT)

        stdout_handler = logging.StreamHandler()
        if _support_color_output():
            stdout_handler.setFormatter(
                ColoredFormatter(fmt=_STRING_FORMAT, datefmt=_DATE_FORMAT))
        else:
            stdout_handler.setFormatter(formatter)
        self._handlers.append(stdout_handler)

        if self._filename:
            file_handler = _get_file_handler(self._filename)
            if file_handler:
                file_handler.setFormatter(formatter)
                self._handlers.append(file_handler)

        for handler in self._handlers:
            root_logger.addHandler(handler)

        set_debug_mode(False)

        self._excepthook = sys.excepthook
        sys.excepthook = _excepthook
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Release the handlers (log files, ...)"""
        logging.getLogger(__name__).debug('Stop logger ...')
        root_logger = logging.getLogger()
        for handler in self._handlers:
            root_logger.removeHandler(handler)
            handler.close()
        self._handlers = []
        sys.excepthook = self._excepthook
        logging.captureWarnings(False)


def set_logs_level(levels):
    """Configure a fine-grained log levels for the different modules.

    Args:
        levels (dict): associates a module name and a log level. A log level
            can be a number or a str representing one of the logging levels
            (DEBUG, WARNING, ...). The level name will be converted to
            uppercase. Invalids values will be ignored.

    Example:

        >>> # Accept DEBUG logs only for the scheduler.
        >>> set_logs_level({'promesse': 'info',
        ...                 'promesse.promise.scheduler': 'debug'})
    """
    for (module, level) in levels.items():
        try:
            if isinstance(level, str):
                level = int(level) if level.isdigit() else level.upper()
            logging.getLogger(module).setLevel(level)
        except (ValueError, TypeError):
            logging.getLogger(__name__).warning(
                'Invalid log level "%s" for logger "%s". Will be ignored.',
                level, module)


def set_debug_mode(debug):
    """Set, or unset the debug log level.

    Modules others than promesse.* keep the INFO level, even in debug mode.

    Args:
        debug (boolean): if True, the promesse log level will be set to
            DEBUG. If False, it will be set to INFO.
    """
    if debug:
        logging.getLogger().setLevel(logging.INFO)
        logging.getLogger('promesse').setLevel(logging.DEBUG)
    else:
        logging.getLogger().setLevel(logging.WARNING)
        logging.getLogger('promesse').setLevel(logging.INFO)


def reset():
    """Reset the root logger (remove handlers and filters)."""
    logger = logging.getLogger()

    for h in logger.handlers[:]:
        logger.removeHandler(h)
    for f in logger.filters[:]:
        logger.removeFilter(f)
