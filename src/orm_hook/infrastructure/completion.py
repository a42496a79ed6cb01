"""
One-shot completion signal for hook initialization.

The connection registers listeners that may fire outside the main
initialize() flow, so the caller's callback may be reached more than once.
Completion forwards only the first outcome:

- first call, with or without an error: forwarded to the callback.
- later call without an error: logged as a warning and dropped.
- later call with an error: the hook and its models may be half initialized
  at that point, so the process is brought down. A direct call from the
  main thread raises the error; from a worker thread or an event loop
  callback, where a raise would only be logged, the process exits.
"""
from __future__ import annotations

import asyncio
import logging
import os
import threading
from typing import Callable, Optional

log = logging.getLogger(__name__)

Callback = Callable[[Optional[BaseException]], None]

CALLED_AGAIN = (
    '"initialize" of the MongoEngine ORM hook was called again, '
    'but that should never happen more than once!'
)

FATAL_EXIT_CODE = 1


def _abort(err: BaseException) -> None:
    log.critical('Exiting: %r', err, exc_info=(type(err), err, err.__traceback__))
    logging.shutdown()
    os._exit(FATAL_EXIT_CODE)


def _raise_propagates() -> bool:
    if threading.current_thread() is not threading.main_thread():
        return False
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return True
    return False


class Completion:
    def __init__(self, callback: Callback | None = None,
                 loop: asyncio.AbstractEventLoop | None = None):
        self._callback = callback
        self._lock = threading.Lock()
        self._fired = False
        self._loop = loop
        # Only created for awaiting callers; see Hook.load().
        self.future: asyncio.Future | None = loop.create_future() if loop else None

    @property
    def fired(self) -> bool:
        return self._fired

    def __call__(self, err: BaseException | None = None) -> None:
        with self._lock:
            already_fired = self._fired
            self._fired = True

        if already_fired:
            if err is not None:
                log.error(CALLED_AGAIN)
                log.error('Proceeding to crash the process to avoid leaving models '
                          'in a half initialized state.')
                if _raise_propagates():
                    raise err
                _abort(err)
                return
            log.warning(CALLED_AGAIN)
            return

        self._settle(err)
        if self._callback is not None:
            self._callback(err)

    def _settle(self, err: BaseException | None) -> None:
        if self.future is None:
            return

        def settle():
            if self.future.done():
                return
            if err is None:
                self.future.set_result(None)
                return
            self.future.set_exception(err)
            if self._callback is not None:
                # Already reported through the callback.
                self.future.exception()

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            settle()
        else:
            # Fired from a driver thread.
            self._loop.call_soon_threadsafe(settle)
