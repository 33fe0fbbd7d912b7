"""Logging utilities for vault-renewer.

The best way to use this module is through `pre_arg_parse_setup` and
`post_arg_parse_setup`. `pre_arg_parse_setup` configures a terminal
logger and buffers every record in memory, because the log file path is
only known once the configuration has been resolved.
`post_arg_parse_setup` relies on the resolved configuration and adds the
log file handler, sending the buffered records to it, and sets the
terminal verbosity requested by the user.

Every line, on the terminal and in the log file, looks like::

    2024-01-31 12:00:00 [WARNING] Token TTL (40s) is below ...

"""
import functools
import logging
import logging.handlers
import os
import sys
import traceback
from types import TracebackType
from typing import IO
from typing import Optional
from typing import Tuple
from typing import Type

from vault_renewer import configuration
from vault_renewer import errors
from vault_renewer._internal import constants

# Logging format
LOG_FMT = "%(asctime)s [%(levelname)s] %(message)s"
DATE_FMT = "%Y-%m-%d %H:%M:%S"

# Colors text red
ANSI_SGR_RED = "\033[31m"
# Colors text yellow
ANSI_SGR_YELLOW = "\033[33m"
# Resets output format
ANSI_SGR_RESET = "\033[0m"

PERM_ERR_FMT = os.linesep.join((
    "The following error was encountered:", "{0}",
    "Set --log-file or {0} to a writeable path.".format(
        constants.ENV_VARS['log_file'])))


logger = logging.getLogger(__name__)


def pre_arg_parse_setup() -> None:
    """Setup logging before command line arguments are parsed.

    Terminal logging is setup at
    `vault_renewer._internal.constants.DEFAULT_LOGGING_LEVEL`. All
    records are also buffered in memory until `post_arg_parse_setup`
    hands them to the log file handler.

    This function also sets `sys.excepthook` to properly log fatal
    exceptions.

    """
    memory_handler = MemoryHandler()

    stream_handler = ColoredStreamHandler()
    stream_handler.setFormatter(_formatter())
    stream_handler.setLevel(constants.DEFAULT_LOGGING_LEVEL)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # send all records to handlers
    root_logger.addHandler(memory_handler)
    root_logger.addHandler(stream_handler)

    sys.excepthook = functools.partial(
        except_hook, debug='--debug' in sys.argv, log_path=None)


def post_arg_parse_setup(config: configuration.NamespaceConfig) -> str:
    """Setup logging after command line arguments are parsed.

    This function assumes `pre_arg_parse_setup` was called earlier and
    the root logging configuration has not been modified. A rotating
    file logging handler is created and the buffered log messages are
    sent to that handler. Terminal logging output is set to the level
    requested by the user.

    :param vault_renewer.configuration.NamespaceConfig config: Configuration object

    :returns: absolute path to the log file
    :rtype: str

    :raises .errors.ConfigurationError: if the log file can't be written

    """
    file_handler, file_path = setup_log_file_handler(config)

    root_logger = logging.getLogger()
    memory_handler = stderr_handler = None
    for handler in root_logger.handlers:
        if isinstance(handler, ColoredStreamHandler):
            stderr_handler = handler
        elif isinstance(handler, MemoryHandler):
            memory_handler = handler
    msg = 'Previously configured logging handlers have been removed!'
    assert memory_handler is not None and stderr_handler is not None, msg

    root_logger.addHandler(file_handler)
    root_logger.removeHandler(memory_handler)
    memory_handler.setTarget(file_handler)
    memory_handler.flush(force=True)
    memory_handler.close()

    if config.quiet:
        level = constants.QUIET_LOGGING_LEVEL
    else:
        level = max(constants.DEFAULT_LOGGING_LEVEL - config.verbose_count * 10,
                    logging.DEBUG)

    stderr_handler.setLevel(level)
    logger.debug('Root logging level set at %d', level)

    sys.excepthook = functools.partial(
        except_hook, debug=config.debug, log_path=file_path)
    return file_path


def setup_log_file_handler(config: configuration.NamespaceConfig
                           ) -> Tuple[logging.Handler, str]:
    """Setup file logging.

    Records are appended to ``config.log_file``, the parent directory is
    created when missing.

    :param vault_renewer.configuration.NamespaceConfig config: Configuration object

    :returns: file handler and absolute path to the log file
    :rtype: tuple

    :raises .errors.ConfigurationError: if the log file can't be written

    """
    log_file_path = os.path.abspath(os.path.expanduser(config.log_file))
    try:
        os.makedirs(os.path.dirname(log_file_path), mode=0o750, exist_ok=True)
        # rollover only happens when both maxBytes and backupCount are nonzero
        handler = logging.handlers.RotatingFileHandler(
            log_file_path, mode='a',
            maxBytes=constants.LOG_FILE_MAX_BYTES if config.max_log_backups else 0,
            backupCount=config.max_log_backups)
    except OSError as error:
        raise errors.ConfigurationError(PERM_ERR_FMT.format(error))
    handler.setLevel(logging.DEBUG)
    handler.setFormatter(_formatter())
    return handler, log_file_path


def _formatter() -> logging.Formatter:
    return logging.Formatter(fmt=LOG_FMT, datefmt=DATE_FMT)


class ColoredStreamHandler(logging.StreamHandler):
    """Sends colored logging output to a stream.

    If the specified stream is not a tty, the class works like the
    standard `logging.StreamHandler`. Records at `logging.WARNING` are
    yellow, records at `red_level` (default `logging.ERROR`) and above
    are red.

    :ivar bool colored: True if output should be colored
    :ivar int yellow_level: The level at which to output yellow text
    :ivar int red_level: The level at which to output red text

    """
    def __init__(self, stream: Optional[IO] = None) -> None:
        super().__init__(stream)
        self.colored = (sys.stderr.isatty() if stream is None else
                        stream.isatty())
        self.yellow_level = logging.WARNING
        self.red_level = logging.ERROR

    def format(self, record: logging.LogRecord) -> str:
        """Formats the string representation of record.

        :param logging.LogRecord record: Record to be formatted

        :returns: Formatted, string representation of record
        :rtype: str

        """
        out = super().format(record)
        if not self.colored:
            return out
        if record.levelno >= self.red_level:
            return ''.join((ANSI_SGR_RED, out, ANSI_SGR_RESET))
        if record.levelno >= self.yellow_level:
            return ''.join((ANSI_SGR_YELLOW, out, ANSI_SGR_RESET))
        return out


class MemoryHandler(logging.handlers.MemoryHandler):
    """Buffers logging messages in memory until the buffer is flushed.

    This differs from `logging.handlers.MemoryHandler` in that flushing
    only happens when flush(force=True) is called.

    """
    def __init__(self, target: Optional[logging.Handler] = None,
                 capacity: int = 10000) -> None:
        # capacity doesn't matter because should_flush() is overridden
        super().__init__(capacity, target=target)

    def close(self) -> None:
        """Close the memory handler, but don't set the target to None."""
        # This allows the logging module which may only have a weak
        # reference to the target handler to properly flush and close it.
        target = getattr(self, 'target')
        super().close()
        self.target = target

    def flush(self, force: bool = False) -> None:  # pylint: disable=arguments-differ
        """Flush the buffer if force=True.

        If force=False, this call is a noop. Without a target, the
        buffer is simply kept.

        :param bool force: True if the buffer should be flushed.

        """
        # This method allows flush() calls in logging.shutdown to be a
        # noop so we can control when this handler is flushed.
        if force:
            super().flush()

    def shouldFlush(self, record: logging.LogRecord) -> bool:
        """Should the buffer be automatically flushed?

        :param logging.LogRecord record: log record to be considered

        :returns: False because the buffer should never be auto-flushed
        :rtype: bool

        """
        return False


def except_hook(exc_type: Type[BaseException], exc_value: BaseException,
                trace: TracebackType, debug: bool, log_path: Optional[str]) -> None:
    """Logs fatal exceptions and exits.

    If debug is True, the full exception and traceback is shown to the
    user, otherwise, it is only written to the log file. sys.exit is
    always called with a nonzero status.

    :param type exc_type: type of the raised exception
    :param BaseException exc_value: raised exception
    :param traceback trace: traceback of where the exception was raised
    :param bool debug: True if the traceback should be shown to the user
    :param str log_path: path to the log file, if already known

    """
    exc_info = (exc_type, exc_value, trace)
    if exc_type is KeyboardInterrupt:
        logger.critical('Exiting due to user request.')
        sys.exit(constants.EXIT_SIGNAL)
    if debug or not issubclass(exc_type, Exception):
        logger.critical('Exiting abnormally:', exc_info=exc_info)
    else:
        logger.debug('Exiting abnormally:', exc_info=exc_info)
        if issubclass(exc_type, errors.Error):
            logger.critical(str(exc_value))
        else:
            logger.critical('An unexpected error occurred:')
            output = traceback.format_exception_only(exc_type, exc_value)
            # format_exception_only returns a list of strings each
            # terminated by a newline. We combine them into one string
            # and remove the final newline before passing it to
            # logger.critical.
            logger.critical(''.join(output).rstrip())
        if log_path is not None:
            logger.critical('See the logfile %s for more details.', log_path)
    sys.exit(constants.EXIT_FAILURE)


def reset() -> None:
    """Removes and closes every handler installed on the root logger."""
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)
        handler.close()