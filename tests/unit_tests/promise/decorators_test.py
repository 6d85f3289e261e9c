# -*- coding: utf-8 -*-

import pytest

from eventual import Promise, wrap_promise


class TestDecorator(object):

    def test_wrap_sync_function(self):
        @wrap_promise
        def f(x):
            return x * 3

        p = f(30)
        assert isinstance(p, Promise)
        assert p.result(1) == 90

    def test_wrap_function_returning_promise(self):
        @wrap_promise
        def f(x):
            return Promise.resolve(x + 10)

        p = f(30)
        assert isinstance(p, Promise)
        assert p.result(1) == 40

    def test_wrap_function_returning_thenable(self):
        class Thenable(object):
            def then(self, on_fulfilled, on_rejected):
                on_fulfilled('from thenable')

        @wrap_promise
        def f():
            return Thenable()

        p = f()
        assert isinstance(p, Promise)
        assert p.result(1) == 'from thenable'

    def test_wrap_function_with_exception(self):
        class MyException(Exception):
            pass

        @wrap_promise
        def f(x):
            raise MyException()

        p = f(30)
        assert isinstance(p, Promise)
        with pytest.raises(MyException):
            p.result(1)

    def test_wrap_keeps_function_name(self):
        @wrap_promise
        def my_function():
            pass

        assert my_function.__name__ == 'my_function'
