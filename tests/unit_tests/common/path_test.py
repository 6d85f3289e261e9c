#!/usr/bin/env python
# -*- coding: utf-8 -*-

import logging
import os
from os.path import exists, isdir, join

from eventual.common import path
from eventual.common.path import _ensure_dir_exists, get_config_dir

"""### TEST CASES ###
    _ensure_dir_exists, dir exists
    _ensure_dir_exists, dir does not exist, allow to create
    _ensure_dir_exists, a file exists at the path

    get_config_dir creates the folder
    get_config_dir without creation
"""


class TestEnsureDirExists(object):

    def test_dir_already_exists(self, tmpdir, caplog):
        with caplog.at_level(logging.DEBUG, logger='eventual.common.path'):
            _ensure_dir_exists(str(tmpdir))
        assert caplog.text == ''

    def test_dir_does_not_exist_and_allowed_to_create(self, tmpdir, caplog):
        new_path = join(str(tmpdir), 'a', 'b')
        assert not exists(new_path)

        with caplog.at_level(logging.DEBUG, logger='eventual.common.path'):
            _ensure_dir_exists(new_path)
        assert isdir(new_path)
        assert 'Created missing folder' in caplog.text

    def test_file_already_exists_at_path(self, tmpdir, caplog):
        file_path = join(str(tmpdir), 'file')
        with open(file_path, 'w') as f:
            f.write('content')

        with caplog.at_level(logging.WARNING, logger='eventual.common.path'):
            _ensure_dir_exists(file_path)
        assert 'Unable to create the missing folder' in caplog.text
        assert not isdir(file_path)


class FakeAppDirs(object):
    def __init__(self, user_config_dir):
        self.user_config_dir = user_config_dir


class TestConfigDir(object):

    def test_get_config_dir(self, tmpdir, monkeypatch):
        config_dir = join(str(tmpdir), 'config')
        monkeypatch.setattr(path, '_appdirs', FakeAppDirs(config_dir))

        assert get_config_dir() == config_dir
        assert isdir(config_dir)
        os.rmdir(config_dir)

    def test_get_config_dir_without_creation(self, tmpdir, monkeypatch):
        config_dir = join(str(tmpdir), 'config')
        monkeypatch.setattr(path, '_appdirs', FakeAppDirs(config_dir))

        assert get_config_dir(create=False) == config_dir
        assert not exists(config_dir)
