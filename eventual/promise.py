# -*- coding: utf-8 -*-

import asyncio
import logging
from threading import Condition, Lock

from .errors import DeadlockError, RejectionError, TimeoutError
from .scheduler import LocalScheduler, get_scheduler
from .util import accepts_two_callbacks, is_thenable

_logger = logging.getLogger(__name__)


def _once(fn, lock, is_called):
    """Wrap `fn` so that only the first call of a group is transmitted.

    All functions wrapped with the same `lock` and `is_called` list share the
    same "already called" flag.
    """
    def wrapper(value):
        with lock:
            if is_called[0]:
                return
            is_called[0] = True
        fn(value)

    return wrapper


def _set_future_result(future, result):
    if not future.done():
        future.set_result(result)


def _set_future_exception(future, error):
    if future.done():
        return
    if not isinstance(error, BaseException):
        error = RejectionError(error)
    future.set_exception(error)


class Promise(object):
    """It represents an operation expected to be completed in the future.

    A Promise is used for asynchronous computation. It contains a value not yet
    known when the Promise is created. It allows to set callbacks who will be
    called as soon as the result is known. It's a "promise" of a future value.

    A Promise is settled only once: either fulfilled with a value, or rejected
    with a reason. The settlement is never applied immediately. It's scheduled
    (see `eventual.scheduler`), so the code following the creation of a
    Promise, or the registration of a callback, always runs before any
    callback fires.

    Outside of an asyncio loop, a Promise is settled by the thread which
    created it, when this thread waits for a Promise or calls
    `eventual.scheduler.run_pending()`.

    All calls to the methods are thread-safe.
    """

    PENDING = 'pending'
    FULFILLED = 'fulfilled'
    REJECTED = 'rejected'

    def __init__(self, executor, _name=None, _previous=None, _scheduler=None):
        """Constructor of the Promise.

        Generate the two callbacks for the executor, then call the `executor`.
        It means the executor will be fully executed before the the constructor
        returns. The callbacks themselves don't settle the Promise right away:
        the settlement is scheduled to be done later.
        If the executor raises an exception, it's caught and the Promise is
        rejected with this exception.

        Args:
            executor (callable): Takes 2 callable arguments:
                The first one, `on_fulfilled()` should be called when the
                Promise is fulfilled (ie the tasks is done) and must accept the
                result's value as its only argument. If the value is itself a
                thenable, the Promise will follow it.
                The second, `on_rejected()`, should be called when an error
                occurs. Its argument should be an instance of `Exception`.
                Only the first call to one of these callbacks has an effect.
            _name (str): if set, name used when converted to text.
            _previous (Promise): if set, the Promise this one is chained to.
                Only used when converted to text.
            _scheduler: if set, scheduler used for the deferred settlement.
                By default, the one returned by `get_scheduler()`.
        """

        self._state = self.PENDING
        self._result = None
        self._error = None
        self._adopting = False
        self._condition = Condition()
        self._name = _name or getattr(executor, '__name__', '???')
        self._previous = _previous
        self._scheduler = _scheduler or get_scheduler()

        self._callbacks = []
        self._errbacks = []
        self._finalizers = []

        def on_fulfilled(result):
            self._scheduler.call_soon(self._settle_fulfilled, result)

        def on_rejected(error):
            self._scheduler.call_soon(self._settle_rejected, error)

        try:
            executor(on_fulfilled, on_rejected)
        except Exception as error:
            on_rejected(error)

    @property
    def state(self):
        """str: one of PENDING, FULFILLED or REJECTED."""
        with self._condition:
            return self._state

    def result(self, timeout=None):
        """Wait for the result and returns it as soon as it's available.

        If the Promise is settled by the event queue of the current thread,
        the queue is run while waiting. This is also true inside a callback:
        waiting for another Promise of the same thread is allowed.
        A Promise settled by a `ThreadScheduler` can't be waited from its
        worker thread, nor a Promise of an asyncio loop from the loop's
        thread (use `await` instead): DeadlockError is raised.

        Args:
            timeout (int, optional): if set, maximum time to wait the promise
                to be fulfilled. By default, it can wait indefinitely.
        Returns:
            *: value encapsulated, defined by the operation.
        Raises:
            TimeoutError: if the promise is not settled within the delay.
            DeadlockError: if the wait would prevent the settlement.
            RejectionError: if the promise is rejected with a value who is
                not an exception.
            *: If the promise is rejected, the rejection cause is raised.
        """
        self._wait(timeout)
        with self._condition:
            if self._state == self.REJECTED:
                if isinstance(self._error, BaseException):
                    raise self._error
                raise RejectionError(self._error)
            return self._result

    def exception(self, timeout=None):
        """Wait for the promise rejection and returns it's error.

        Args:
            timeout (int, optional): if set, maximum time to wait the promise
                to be rejected. By default, it can wait indefinitely.
        Returns:
            Exception: the error causing the rejection of the Promise.
            None: if the promise is fulfilled.
        Raises:
            TimeoutError: if the promise is not settled within the delay.
            DeadlockError: if the wait would prevent the settlement (see
                `result()`).
        """
        self._wait(timeout)
        with self._condition:
            return self._error

    def _wait(self, timeout):
        def is_settled():
            return self._state != self.PENDING

        scheduler = self._scheduler
        is_current = getattr(scheduler, 'is_current', None)
        if not is_settled() and is_current is not None and is_current():
            if not isinstance(scheduler, LocalScheduler):
                raise DeadlockError('Promise %s is settled by the current '
                                    'thread, which can\'t wait for it.'
                                    % self)
            settled = scheduler.wait_until(is_settled, timeout)
        else:
            with self._condition:
                settled = self._condition.wait_for(is_settled, timeout)
        if not settled:
            raise TimeoutError()

    def then(self, on_fulfilled):
        """Create a new promise from a callback called when this one is
        fulfilled.

        The callback receives the result of this promise, and defines the
        state of the returned Promise. If the callback raises an exception,
        the new Promise is rejected. The callback can returns:
        - A value: the new promise will be fulfilled with this value.
        - Another Promise, or any object with a `then` method: when fulfilled
            or rejected, will transfer its status (state and result/error) to
            the Promise returned by this method.

        If this promise is rejected, the callback is not called and the new
        Promise is rejected with the same reason.

        Args:
            on_fulfilled (callable): This callback will receive the result of
                the original promise as argument. If None, the result is
                transferred as is.
        Returns:
            Promise<*>: new promise depending of self.
        """

        def chained_executor(fulfilled, rejected):

            def callback(result):
                if on_fulfilled is None:
                    return fulfilled(result)
                try:
                    new_result = on_fulfilled(result)
                except Exception as error:
                    return rejected(error)
                fulfilled(new_result)

            self._add_callback(callback)
            self._add_errback(rejected)

        name = getattr(on_fulfilled, '__name__', '???')
        return Promise(chained_executor, _name=name, _previous=self,
                       _scheduler=self._scheduler)

    def catch(self, on_rejected):
        """Create a new promise with a callback called when an error occurs.

        Args:
            on_rejected (callable): Must take an argument instance of Exception
                (or one of its subclass). Will be called if `self` is rejected.
        returns:
            Promise<*>: new Promise chained to `self`. If `self` is fulfilled,
                the promised value will be the same as `self`. Otherwise, the
                value returned by the `on_rejected()` callback. If the
                callback raises an exception, the new Promise is rejected.
        """

        def chained_executor(fulfilled, rejected):

            def errback(error):
                try:
                    result = on_rejected(error)
                except Exception as new_error:
                    return rejected(new_error)
                fulfilled(result)

            self._add_callback(fulfilled)
            self._add_errback(errback)

        name = 'catch %s' % getattr(on_rejected, '__name__', '???')
        return Promise(chained_executor, _name=name, _previous=self,
                       _scheduler=self._scheduler)

    def finally_(self, on_settle):
        """Create a new promise with a callback called once `self` is settled.

        The callback is called without argument, whatever is the outcome of
        `self`. Its returned value is ignored.

        Args:
            on_settle (callable): called when `self` is fulfilled or rejected.
        Returns:
            Promise<*>: new Promise chained to `self`, settled the same way as
                `self` (same result, or same error). If `on_settle()` raises
                an exception, the new Promise is rejected with it instead.
        """

        def chained_executor(fulfilled, rejected):

            def finalizer():
                try:
                    on_settle()
                except Exception as error:
                    return rejected(error)

                # self is settled: its state can't change anymore.
                if self._state == self.FULFILLED:
                    fulfilled(self._result)
                else:
                    rejected(self._error)

            self._add_finalizer(finalizer)

        name = 'finally %s' % getattr(on_settle, '__name__', '???')
        return Promise(chained_executor, _name=name, _previous=self,
                       _scheduler=self._scheduler)

    def safeguard(self):
        """Catch all errors and log them with the most details possible.

        This method is aimed to protect the program from uncaught rejected
        Promise. If no error handler has been set (via catch()), the default
        behavior is to do nothing, and thus, errors are silently ignored.
        Calling `safeguard()` after all chains are set will catch these errors,
        and log them as ERROR with the maximum of details possible.
        """
        def guard(error):
            if isinstance(error, BaseException):
                _logger.error('[SAFEGUARD] %s', self,
                              exc_info=(type(error), error,
                                        error.__traceback__))
            else:
                _logger.error('[SAFEGUARD] %s rejected with: %r', self, error)

        self._add_errback(guard)

    def __await__(self):
        """Wait the Promise from an asyncio coroutine.

        `await promise` returns the result, or raises the rejection reason.
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()

        scheduler = self._scheduler
        if isinstance(scheduler, LocalScheduler) and scheduler.is_current():
            # The loop occupies the thread: it runs the queue in its place.
            scheduler.attach_loop(loop)
            future.add_done_callback(lambda _: scheduler.detach_loop(loop))

        def callback(result):
            loop.call_soon_threadsafe(_set_future_result, future, result)

        def errback(error):
            loop.call_soon_threadsafe(_set_future_exception, future, error)

        self._add_callback(callback)
        self._add_errback(errback)
        return future.__await__()

    def __repr__(self):
        return 'Promise(%s)' % self._inner_print()

    def _inner_print(self):
        with self._condition:
            if self._state == self.REJECTED:
                state = 'R'
            elif self._state == self.FULFILLED:
                state = 'F'
            else:
                state = 'P'

        if self._previous:
            return '%s -> %s %s' % (self._previous._inner_print(), self._name,
                                    state)
        return '%s %s' % (self._name, state)

    @classmethod
    def resolve(cls, value):
        """Create a promise who resolves the selected value.

        Args:
            value: result of the promise. If it's a Promise, it's returned as
                is. If it's another thenable, the new Promise will follow it.
        Returns:
            Promise: new Promise, soon fulfilled with the value passed in
                parameter.
        """
        if isinstance(value, cls):
            return value
        return cls(lambda ok, error: ok(value), _name='RESOLVE')

    @classmethod
    def reject(cls, reason):
        """Create a Promise rejected for the reason specified.

        Args:
            reason: Exception set to the Promise
        Returns:
            Promise: new Promise, soon rejected.
        """
        return cls(lambda ok, error: error(reason), _name='REJECT')

    def _settle_fulfilled(self, result, _adopted=False):
        """Fulfill the Promise, then call the callbacks.

        If the result is a thenable, the Promise stays pending and follows it
        until a non-thenable value is reached.

        Args:
            result: the value of the Promise.
            _adopted (bool): True if the value comes from the thenable
                followed by the Promise.
        """
        with self._condition:
            if self._state != self.PENDING or (self._adopting and
                                               not _adopted):
                _logger.warning('Try to fulfill Promise %s already settled. '
                                'New result will be ignored: %r', self, result)
                return

            adopt = is_thenable(result)
            if adopt:
                self._adopting = True
            else:
                self._result = result
                self._state = self.FULFILLED
                self._condition.notify_all()
                callbacks, finalizers = self._callbacks, self._finalizers

                # Free the references
                self._callbacks = None
                self._errbacks = None
                self._finalizers = None

        if adopt:
            return self._adopt(result)

        for callback in callbacks:
            self._exec_callback(callback, result)
        for finalizer in finalizers:
            self._exec_callback(finalizer)

    def _settle_rejected(self, error, _adopted=False):
        """Reject the Promise, then call the errbacks.

        Args:
            error: the rejection reason.
            _adopted (bool): True if the error comes from the thenable
                followed by the Promise.
        """
        with self._condition:
            if self._state != self.PENDING or (self._adopting and
                                               not _adopted):
                _logger.warning('Try to reject Promise %s already settled. '
                                'New error will be ignored: %r', self, error)
                return
            if not isinstance(error, BaseException):
                # The non-exception value can be chained like any value. In
                # case of call to result(), a RejectionError is raised.
                _logger.warning('Promise %s rejected with non-exception '
                                'value: %r', self, error)
            self._error = error
            self._state = self.REJECTED
            self._condition.notify_all()
            errbacks, finalizers = self._errbacks, self._finalizers

            # Free the references
            self._callbacks = None
            self._errbacks = None
            self._finalizers = None

        for errback in errbacks:
            self._exec_callback(errback, error)
        for finalizer in finalizers:
            self._exec_callback(finalizer)

    def _adopt(self, thenable):
        """Follow the state of a thenable used to resolve this Promise."""
        if thenable is self:
            return self._settle_rejected(
                TypeError('A Promise cannot be resolved with itself.'),
                _adopted=True)

        lock = Lock()
        is_called = [False]

        def fulfilled(result):
            self._scheduler.call_soon(self._settle_fulfilled, result, True)

        def rejected(error):
            self._scheduler.call_soon(self._settle_rejected, error, True)

        fulfilled = _once(fulfilled, lock, is_called)
        rejected = _once(rejected, lock, is_called)

        if isinstance(thenable, Promise):
            thenable._add_callback(fulfilled)
            thenable._add_errback(rejected)
        else:
            try:
                if accepts_two_callbacks(thenable.then):
                    thenable.then(fulfilled, rejected)
                else:
                    # One-callback `then()`: rejections go through the
                    # `catch()` of the chained object, if any.
                    chained = thenable.then(fulfilled)
                    catch = getattr(chained, 'catch', None)
                    if callable(catch):
                        catch(rejected)
            except Exception as error:
                rejected(error)

    @staticmethod
    def _exec_callback(callback, *args):
        try:
            callback(*args)
        except Exception:
            _logger.exception("Promise callback raise an exception!")

    def _add_callback(self, callback):
        """Register a callback called with the result once fulfilled.

        If the Promise is already fulfilled, the call is scheduled right now.
        """
        with self._condition:
            if self._state == self.PENDING:
                self._callbacks.append(callback)
                return
            if self._state != self.FULFILLED:
                return
            result = self._result

        self._scheduler.call_soon(self._exec_callback, callback, result)

    def _add_errback(self, errback):
        """Register an errback called with the error once rejected.

        If the Promise is already rejected, the call is scheduled right now.
        """
        with self._condition:
            if self._state == self.PENDING:
                self._errbacks.append(errback)
                return
            if self._state != self.REJECTED:
                return
            error = self._error

        self._scheduler.call_soon(self._exec_callback, errback, error)

    def _add_finalizer(self, finalizer):
        """Register a function called without argument once settled.

        If the Promise is already settled, the call is scheduled right now.
        """
        with self._condition:
            if self._state == self.PENDING:
                self._finalizers.append(finalizer)
                return

        self._scheduler.call_soon(self._exec_callback, finalizer)
