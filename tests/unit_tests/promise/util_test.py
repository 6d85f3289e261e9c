# -*- coding: utf-8 -*-

from eventual import Promise, is_thenable
from eventual.util import accepts_two_callbacks


class TestIsThenable(object):

    def test_promise_is_thenable(self):
        assert is_thenable(Promise.resolve(1))

    def test_object_with_then_method(self):
        class Thenable(object):
            def then(self, on_fulfilled, on_rejected):
                pass

        assert is_thenable(Thenable())

    def test_not_callable_then_attribute(self):
        class NotThenable(object):
            then = 'then'

        assert not is_thenable(NotThenable())

    def test_plain_values(self):
        for value in (None, 3, 'then', [], {'then': lambda: None}):
            assert not is_thenable(value)


class TestAcceptsTwoCallbacks(object):

    def test_two_arguments(self):
        class Thenable(object):
            def then(self, on_fulfilled, on_rejected):
                pass

        assert accepts_two_callbacks(Thenable().then)

    def test_optional_second_argument(self):
        class Thenable(object):
            def then(self, on_fulfilled, on_rejected=None):
                pass

        assert accepts_two_callbacks(Thenable().then)

    def test_var_positional(self):
        class Thenable(object):
            def then(self, *callbacks):
                pass

        assert accepts_two_callbacks(Thenable().then)

    def test_single_argument(self):
        class Thenable(object):
            def then(self, on_fulfilled):
                pass

        assert not accepts_two_callbacks(Thenable().then)
        assert not accepts_two_callbacks(Promise.resolve(1).then)

    def test_signature_not_available(self):
        assert accepts_two_callbacks(print)
