# -*- coding: utf-8 -*-


class TimeoutError(Exception):
    """An operation could not be executed within the time allowed."""
    pass


class DeadlockError(RuntimeError):
    """Waiting a Promise would block the thread in charge of settling it."""
    pass


class RejectionError(Exception):
    """A Promise has been rejected with a value which is not an exception.

    It's raised in place of the rejection reason, when the reason can't be
    raised itself.

    Attributes:
        reason: the original rejection value.
    """

    def __init__(self, reason):
        Exception.__init__(self, reason)
        self.reason = reason

    def __str__(self):
        return 'Promise rejected with non-exception value: %r' % (
            self.reason,)
