# -*- coding: utf-8 -*-

from .__version__ import __version__
from .decorators import wrap_promise
from .deferred import Deferred
from .errors import DeadlockError, RejectionError, TimeoutError
from .promise import Promise
from .reduce_coroutine import reduce_coroutine
from .scheduler import (AsyncioScheduler, LocalScheduler, ThreadScheduler,
                        get_scheduler, run_pending, set_scheduler,
                        shutdown_scheduler)
from .util import is_thenable

__all__ = ['__version__', 'is_thenable', 'AsyncioScheduler', 'DeadlockError',
           'Deferred', 'LocalScheduler', 'Promise', 'RejectionError',
           'ThreadScheduler', 'TimeoutError', 'get_scheduler',
           'reduce_coroutine', 'run_pending', 'set_scheduler',
           'shutdown_scheduler', 'wrap_promise']
