"""Cleanup of a renewal run on exit, exception or termination signal."""
import logging
import os
import signal
from types import TracebackType
from typing import Any
from typing import Callable
from typing import Dict
from typing import List
from typing import Optional
from typing import Type
from typing import Union

from vault_renewer import errors

logger = logging.getLogger(__name__)


# Signals whose default action terminates the process. A cron or systemd
# stop arrives as one of them.
if os.name != "nt":
    _SIGNALS = [signal.SIGTERM, signal.SIGINT]
    for signal_code in [signal.SIGHUP, signal.SIGQUIT]:
        # Leave signals the parent process asked us to ignore alone.
        if signal.getsignal(signal_code) != signal.SIG_IGN:
            _SIGNALS.append(signal_code)
else:
    # Ctrl+C still raises KeyboardInterrupt, which main handles.
    _SIGNALS = []


class ExitHandler:
    """Context manager running cleanup functions when a run ends.

    Usage::

        handler = ExitHandler()
        with handler:
            vault = VaultClient.from_config(config)
            handler.register(vault.close)
            ...

    However the body ends (normally, with an exception or through a
    signal), the registered functions are called once each, last
    registered first. A function raising an exception is logged and the
    next one is still called.

    A signal from `_SIGNALS` received in the body raises
    `.errors.SignalExit`. A signal received while cleaning up is
    remembered and raised as `.errors.SignalExit` once cleanup is done,
    unless a `.errors.SignalExit` is already on its way out. The previous
    signal handlers are restored before leaving the context manager.

    """
    def __init__(self) -> None:
        self.funcs: List[Callable[[], Any]] = []
        self.prev_handlers: Dict[int, Union[int, None, Callable]] = {}
        self.received_signals: List[int] = []
        self._cleaning_up = False

    def __enter__(self) -> 'ExitHandler':
        self._cleaning_up = False
        self._set_signal_handlers()
        return self

    def __exit__(self, exc_type: Optional[Type[BaseException]],
                 exc_value: Optional[BaseException],
                 trace: Optional[TracebackType]) -> bool:
        if exc_type is errors.SignalExit:
            logger.debug("Cleaning up after signals %s", self.received_signals)
        elif exc_type is not None:
            logger.debug("Cleaning up after %s", exc_type.__name__)

        seen = len(self.received_signals)
        self._cleaning_up = True
        try:
            self._call_registered()
        finally:
            self._reset_signal_handlers()

        late_signals = self.received_signals[seen:]
        if late_signals and exc_type is not errors.SignalExit:
            raise errors.SignalExit(late_signals[0]) from exc_value
        return False

    def register(self, func: Callable[[], Any]) -> None:
        """Sets func to be called when the context manager is left.

        :param function func: function taking no arguments

        """
        self.funcs.append(func)

    def _call_registered(self) -> None:
        while self.funcs:
            func = self.funcs.pop()
            try:
                func()
            except Exception as exc:  # pylint: disable=broad-except
                logger.error("Encountered exception during cleanup: %s", exc)

    def _set_signal_handlers(self) -> None:
        for signum in _SIGNALS:
            prev_handler = signal.getsignal(signum)
            # If prev_handler is None, the handler was set outside of Python
            if prev_handler is not None:
                self.prev_handlers[signum] = prev_handler
                signal.signal(signum, self._signal_handler)

    def _reset_signal_handlers(self) -> None:
        for signum, handler in self.prev_handlers.items():
            signal.signal(signum, handler)
        self.prev_handlers.clear()

    def _signal_handler(self, signum: int, unused_frame: Any) -> None:
        self.received_signals.append(signum)
        if not self._cleaning_up:
            raise errors.SignalExit(signum)
