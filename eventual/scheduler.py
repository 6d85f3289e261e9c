# -*- coding: utf-8 -*-
"""Deferred invocation of the settlement routines.

A Promise never settles inline: the `resolve` and `reject` functions given to
the executor, as well as the callbacks registered on an already settled
Promise, only *schedule* their work. The work is executed later, once the
current synchronous code has returned to the "event queue".

Three kinds of event queue are supported:

- ``LocalScheduler``: the event queue of the current thread. Scheduled calls
  are executed by this same thread, when it waits for a Promise
  (`Promise.result()`, `Promise.exception()`, `await`) or when it calls
  `run_pending()`. It's the default when no asyncio loop runs.
- ``AsyncioScheduler``: the asyncio event loop itself. Scheduled calls are
  executed by the loop, after the running coroutine yields.
- ``ThreadScheduler``: a single worker thread, running the scheduled calls
  one after another, in FIFO order. It's only used when asked for (the
  'thread' config mode, `set_scheduler()` or an explicit scheduler): the
  continuations then run concurrently with the code that created the
  Promise.

``get_scheduler()`` picks the right one, according to the 'scheduler' config
entry.
"""

import asyncio
from collections import deque
from concurrent.futures import ThreadPoolExecutor
import logging
import threading
import time

from .common import config

_logger = logging.getLogger(__name__)

# Event queue owned by the current thread: a LocalScheduler, or the
# ThreadScheduler whose worker is the current thread.
_local = threading.local()


class LocalScheduler(object):
    """Event queue of a thread, run by the thread itself.

    Calls can be scheduled from any thread, but they are only executed by
    the owner thread, in FIFO order. Nothing runs while the owner executes
    its own synchronous code: the code following the creation of a Promise
    always runs before the Promise is settled.

    While the owner thread runs an asyncio loop and awaits a Promise, the
    queue is attached to this loop, which executes the calls.
    """

    def __init__(self):
        self._thread = threading.current_thread()
        self._calls = deque()
        self._condition = threading.Condition()
        self._loops = []

    def call_soon(self, fn, *args):
        """Schedule `fn(*args)` to be executed by the owner thread."""
        with self._condition:
            self._calls.append((fn, args))
            self._condition.notify_all()
            loop = self._loops[-1] if self._loops else None
        if loop is not None:
            loop.call_soon_threadsafe(self.run_pending)

    def is_current(self):
        """Returns True if the current thread is the one running the queue."""
        return threading.current_thread() is self._thread

    def run_pending(self):
        """Execute the scheduled calls, until the queue is empty.

        Calls scheduled during the execution are executed too.

        Returns:
            int: number of calls executed.
        """
        count = 0
        while True:
            with self._condition:
                if not self._calls:
                    return count
                fn, args = self._calls.popleft()
            try:
                fn(*args)
            except Exception:
                _logger.exception('Scheduled call has raised an exception!')
            count += 1

    def wait_until(self, predicate, timeout=None):
        """Run the queue until a condition is met.

        Must be called by the owner thread. When the queue is empty, the
        thread sleeps until another thread schedules a call.

        Args:
            predicate (callable): returns True when the wait is over. It's
                re-evaluated after each batch of calls.
            timeout (float, optional): maximum time to wait, in seconds.
        Returns:
            bool: the last value of the predicate.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            self.run_pending()
            if predicate():
                return True
            with self._condition:
                if self._calls:
                    continue
                if deadline is None:
                    self._condition.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._condition.wait(remaining)

    def attach_loop(self, loop):
        """Let a running asyncio loop execute the calls."""
        with self._condition:
            self._loops.append(loop)
            pending = bool(self._calls)
        if pending:
            loop.call_soon_threadsafe(self.run_pending)

    def detach_loop(self, loop):
        with self._condition:
            self._loops.remove(loop)

    def __repr__(self):
        return 'LocalScheduler(%s)' % self._thread.name


class ThreadScheduler(object):
    """Execute callables later, one at a time, in a dedicated thread.

    All calls are executed by the same worker, in the order they have been
    scheduled. Calls scheduled after `shutdown()` are handed to the shared
    thread scheduler.
    """

    def __init__(self, name='eventual'):
        """
        Args:
            name (str): prefix of the worker thread's name.
        """
        self._name = name
        self._lock = threading.Lock()
        self._is_shutdown = False
        self._executor = ThreadPoolExecutor(max_workers=1,
                                            thread_name_prefix=name,
                                            initializer=self._init_worker)

    def _init_worker(self):
        _local.scheduler = self

    @property
    def is_shutdown(self):
        return self._is_shutdown

    def call_soon(self, fn, *args):
        """Schedule `fn(*args)` to be executed in the worker thread."""
        with self._lock:
            if not self._is_shutdown:
                future = self._executor.submit(fn, *args)
                future.add_done_callback(self._log_failure)
                return
        _logger.debug('Scheduler "%s" is stopped; call transmitted to the '
                      'shared scheduler.', self._name)
        _get_thread_scheduler().call_soon(fn, *args)

    def is_current(self):
        """Returns True if the current thread is the worker thread."""
        return getattr(_local, 'scheduler', None) is self

    def shutdown(self, wait=True):
        """Stop the worker thread.

        Args:
            wait (bool, optional): if True, returns only when all the calls
                already scheduled have been executed.
        """
        _logger.debug('Stop scheduler "%s"', self._name)
        with self._lock:
            self._is_shutdown = True
        self._executor.shutdown(wait=wait)

    @staticmethod
    def _log_failure(future):
        error = future.exception()
        if error is not None:
            _logger.error('Scheduled call has raised an exception!',
                          exc_info=(type(error), error, error.__traceback__))

    def __repr__(self):
        return 'ThreadScheduler(%s)' % self._name


class AsyncioScheduler(object):
    """Execute callables later, in an asyncio event loop.

    It can be used from any thread: calls are transmitted to the loop with
    `call_soon_threadsafe()`.
    """

    def __init__(self, loop):
        self.loop = loop

    def call_soon(self, fn, *args):
        """Schedule `fn(*args)` to be executed by the loop."""
        self.loop.call_soon_threadsafe(fn, *args)

    def is_current(self):
        """Returns True if the loop is running in the current thread."""
        return _get_running_loop() is self.loop

    def __eq__(self, other):
        return (isinstance(other, AsyncioScheduler) and
                other.loop is self.loop)

    def __ne__(self, other):
        return not self.__eq__(other)

    def __hash__(self):
        return hash(self.loop)

    def __repr__(self):
        return 'AsyncioScheduler(%r)' % self.loop


_lock = threading.Lock()
_thread_scheduler = None
_forced_scheduler = None


def _get_thread_scheduler():
    global _thread_scheduler

    with _lock:
        if _thread_scheduler is None or _thread_scheduler.is_shutdown:
            _logger.debug('Start shared thread scheduler')
            _thread_scheduler = ThreadScheduler()
        return _thread_scheduler


def _get_local_scheduler():
    scheduler = getattr(_local, 'scheduler', None)
    if scheduler is None:
        scheduler = LocalScheduler()
        _local.scheduler = scheduler
    return scheduler


def _get_running_loop():
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


def get_scheduler():
    """Returns the scheduler to use for a new Promise.

    If a scheduler has been set by `set_scheduler()`, it's always returned.
    Else, the choice depends of the 'scheduler' config entry:

    - 'auto': the running asyncio loop of the current thread, if there is
      one; the event queue of the current thread otherwise.
    - 'local': always the event queue of the current thread.
    - 'thread': always the shared thread scheduler.
    - 'asyncio': the running asyncio loop of the current thread.

    In the worker thread of a `ThreadScheduler`, the event queue of the
    current thread is this `ThreadScheduler`.

    Returns:
        LocalScheduler|ThreadScheduler|AsyncioScheduler
    Raises:
        RuntimeError: if the mode is 'asyncio' and no loop is running.
        ValueError: if the config entry has an unknown value.
    """
    if _forced_scheduler is not None:
        return _forced_scheduler

    mode = config.get('scheduler')
    if mode == 'thread':
        return _get_thread_scheduler()
    elif mode == 'local':
        return _get_local_scheduler()
    elif mode in ('auto', 'asyncio'):
        loop = _get_running_loop()
        if loop is not None:
            return AsyncioScheduler(loop)
        if mode == 'asyncio':
            raise RuntimeError('Scheduler mode is "asyncio", but there is no '
                               'running event loop.')
        return _get_local_scheduler()
    else:
        raise ValueError('Unknown scheduler mode: "%s"' % mode)


def set_scheduler(scheduler):
    """Force the scheduler used by all new Promises.

    Args:
        scheduler: any object with a `call_soon(fn, *args)` method. If None,
            the automatic choice of `get_scheduler()` is restored.
    """
    global _forced_scheduler
    _forced_scheduler = scheduler


def run_pending():
    """Execute the calls scheduled in the event queue of the current thread.

    Promises created outside of an asyncio loop are settled by the thread
    which created them. Waiting for one of them runs the queue; a thread
    which never waits must call this function to let its Promises progress.

    Returns:
        int: number of calls executed.
    """
    scheduler = getattr(_local, 'scheduler', None)
    if isinstance(scheduler, LocalScheduler):
        return scheduler.run_pending()
    return 0


def shutdown_scheduler(wait=True):
    """Stop the shared thread scheduler.

    A new one will be started if a Promise needs it later. Promises bound to
    the stopped scheduler send their calls to the new one.

    Args:
        wait (bool, optional): if True, wait the end of the calls already
            scheduled.
    """
    global _thread_scheduler

    with _lock:
        scheduler = _thread_scheduler
        _thread_scheduler = None
    if scheduler is not None:
        scheduler.shutdown(wait=wait)
