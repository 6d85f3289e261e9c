# -*- coding: utf-8 -*-

import inspect


def is_thenable(value):
    """Check if an object can be followed like a Promise.

    A Promise resolved with a thenable doesn't take it as result: it waits for
    the thenable to be settled, and takes its outcome instead. The same rule
    applies to the values returned by the `then()` and `catch()` callbacks.

    Returns:
        boolean: True if the value has an attribute 'then' who is callable.
            False if not.
    """
    return callable(getattr(value, 'then', None))


def accepts_two_callbacks(then_method):
    """Check if a `then` method takes a rejection callback after the first.

    Thenables come in two shapes: `then(on_fulfilled, on_rejected)`, and
    `then(on_fulfilled)` (like `Promise.then()`), where the rejections are
    handled by a `catch()` method of the returned object.

    When the signature can't be inspected, the two-arguments form is assumed.

    Returns:
        boolean: True if a second positional argument is accepted.
    """
    try:
        signature = inspect.signature(then_method)
    except (TypeError, ValueError):
        return True

    positional = 0
    for param in signature.parameters.values():
        if param.kind == param.VAR_POSITIONAL:
            return True
        if param.kind in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD):
            positional += 1
    return positional >= 2
