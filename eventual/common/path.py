# -*- coding: utf-8 -*-
"""Helpers function to find the eventual path folders."""

import errno
import logging
import os

import appdirs

_logger = logging.getLogger(__name__)


_appdirs = appdirs.AppDirs(appname='eventual', appauthor=False)


def _ensure_dir_exists(dir_path):
    """Try to create the folder if it not exists.

    If an error occurs, a warning log is sent and the error is ignored.
    """
    try:
        os.makedirs(dir_path)
        _logger.debug('Created missing folder "%s"', dir_path)
    except OSError as e:
        if e.errno == errno.EEXIST and os.path.isdir(dir_path):
            pass
        else:
            _logger.warning('Unable to create the missing folder "%s"',
                            dir_path, exc_info=True)


def get_config_dir(create=True):
    """Returns the directory path containing the config files.

    Args:
        create (bool, optional): if True, the folder is created when missing.
    """
    config_dir = _appdirs.user_config_dir
    if create:
        _ensure_dir_exists(config_dir)
    return config_dir
