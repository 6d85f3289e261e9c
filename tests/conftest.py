# -*- coding: utf-8 -*-

import pytest

from eventual.common import config


@pytest.fixture(autouse=True)
def isolated_config(tmpdir, monkeypatch):
    """Point the config to a file of the test's temporary directory.

    The user's own config file is never read, and the settings changed by a
    test are forgotten after it.
    """
    monkeypatch.setenv('EVENTUAL_CONFIG', str(tmpdir.join('eventual.ini')))
    yield
    config._config_parser.remove_section('config')
    config._config_parser.add_section('config')
    config._loaded = False
