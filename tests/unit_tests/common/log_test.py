#!/usr/bin/env python
# -*- coding: utf-8 -*-

import io
import logging

from eventual.common import config
from eventual.common.log import (ColoredFormatter, Context, set_debug_mode,
                                 set_logs_level)

"""### TEST CASES ###
    ColoredFormatter._colorize
    ColoredFormatter.format

    Context adds then removes its handler
    Context applies the config

    set_debug_mode true
    set_debug_mode false

    set_logs_level with valid and invalid levels
"""

colorFormater = ColoredFormatter()


class TestLogFormating(object):

    def test_colorize_DEBUG(self):
        assert colorFormater._colorize("plop", "DEBUG") == \
            ColoredFormatter._colors['DEBUG'] + "plop" + \
            ColoredFormatter._colors['RESET']

    def test_colorize_ERROR(self):
        assert colorFormater._colorize("plop", "ERROR") == \
            ColoredFormatter._colors['ERROR'] + "plop" + \
            ColoredFormatter._colors['RESET']

    def test_colorize_unknown_color(self):
        assert colorFormater._colorize("plop", "PLOP") == \
            "plop" + ColoredFormatter._colors['RESET']

    def test_format_does_not_alter_record(self):
        record = logging.makeLogRecord({'name': 'eventual.promise',
                                        'levelname': 'INFO',
                                        'msg': 'message'})
        result = ColoredFormatter(fmt='%(name)s %(message)s').format(record)

        assert ColoredFormatter._colors['NAME'] + 'eventual.promise' in result
        assert record.name == 'eventual.promise'


class TestLogContext(object):

    def teardown_method(self, meth):
        logging.getLogger('eventual').setLevel(logging.NOTSET)
        logging.getLogger('eventual.promise').setLevel(logging.NOTSET)
        config._config_parser.remove_section('config')
        config._config_parser.add_section('config')

    def test_context_adds_and_removes_handler(self):
        stream = io.StringIO()
        root_logger = logging.getLogger()
        nb_handlers = len(root_logger.handlers)

        with Context(stream):
            assert len(root_logger.handlers) == nb_handlers + 1
            logging.getLogger('eventual.test').warning('written message')

        assert len(root_logger.handlers) == nb_handlers
        assert 'written message' in stream.getvalue()
        assert 'eventual.test' in stream.getvalue()

    def test_context_applies_config(self):
        config._config_parser.set('config', 'debug_mode', 'true')
        config._config_parser.set('config', 'log_levels',
                                  'eventual.promise=error')

        with Context(io.StringIO()):
            assert logging.getLogger('eventual').level == logging.DEBUG
            assert logging.getLogger('eventual.promise').level == \
                logging.ERROR


class TestLogLevels(object):

    def teardown_method(self, meth):
        for name in ('eventual', 'eventual.scheduler', 'eventual.promise'):
            logging.getLogger(name).setLevel(logging.NOTSET)

    def test_set_debug_mode_true(self):
        set_debug_mode(True)
        assert logging.getLogger('eventual').level == logging.DEBUG

    def test_set_debug_mode_false(self):
        set_debug_mode(False)
        assert logging.getLogger('eventual').level == logging.INFO

    def test_set_logs_level(self):
        set_logs_level({'eventual.scheduler': 'debug',
                        'eventual.promise': 40})
        assert logging.getLogger('eventual.scheduler').level == logging.DEBUG
        assert logging.getLogger('eventual.promise').level == logging.ERROR

    def test_set_logs_level_numeric_string(self):
        set_logs_level({'eventual.promise': '30'})
        assert logging.getLogger('eventual.promise').level == logging.WARNING

    def test_set_invalid_logs_level(self, caplog):
        with caplog.at_level(logging.WARNING, logger='eventual.common.log'):
            set_logs_level({'eventual.promise': 'plop'})
        assert 'Invalid log level' in caplog.text
        assert logging.getLogger('eventual.promise').level == logging.NOTSET
