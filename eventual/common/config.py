# -*- coding: utf-8 -*-

"""Settings of the library, stored in an INI file.

The file is 'eventual.ini', in the user config directory, or the file named
by the environment variable ``EVENTUAL_CONFIG``. All the entries are in a
'[config]' section. A missing entry (or a missing file) means the default
value is used.

The file is read once, the first time an entry is requested. ``load()``
reads it again, and ``set()`` writes the new value back into it.
"""

import configparser
import logging
import os
import os.path
import threading

from . import path as eventual_path

_logger = logging.getLogger(__name__)

_SECTION = 'config'


# Known entries, with their type and default value.
_default_config = {
    # 'auto', 'local', 'thread' or 'asyncio'.
    # See eventual.scheduler.get_scheduler()
    'scheduler': {'type': str, 'default': 'auto'},
    'debug_mode': {'type': bool, 'default': False},
    'log_levels': {'type': dict, 'default': {}}
}

_config_parser = configparser.ConfigParser()
_config_parser.add_section(_SECTION)

_load_lock = threading.Lock()
_loaded = False


def _get_config_file_path(create_dir=True):
    env_path = os.environ.get('EVENTUAL_CONFIG')
    if env_path:
        return env_path
    config_dir = eventual_path.get_config_dir(create=create_dir)
    return os.path.join(config_dir, 'eventual.ini')


def _read_file(create_dir):
    global _loaded

    file_path = _get_config_file_path(create_dir)
    found = _config_parser.read(file_path)
    _loaded = True
    return file_path, bool(found)


def _ensure_loaded():
    with _load_lock:
        if not _loaded:
            file_path, found = _read_file(create_dir=False)
            if found:
                _logger.debug('Config file loaded: %s', file_path)


def load():
    """(Re)load the config file."""
    with _load_lock:
        file_path, found = _read_file(create_dir=True)
    if not found:
        _logger.warning('Unable to load config file: %s', file_path)


def _parse_dict(raw_value):
    """Convert a 'key=value;key2=value2' string into a dict."""
    result = {}
    for pair in raw_value.split(';'):
        if not pair.strip():
            continue
        key, sep, value = pair.partition('=')
        if not sep or '=' in value:
            _logger.warning('Unable to parse pair key=value: "%s"', pair)
            continue
        result[key.strip()] = value.strip()
    return result


def _format_dict(value):
    return ';'.join('%s=%s' % item for item in value.items())


def get(key):
    """Returns the value of a config entry.

    Args:
        key (string): name of the entry.
    Returns:
        The value from the config file, converted to the entry's type, or the
        default value if the file doesn't define it.
    Raises:
        KeyError: if the config entry doesn't exists.
        ValueError: if the value can't be converted to the entry's type.
    """
    if key not in _default_config:
        raise KeyError(key)
    _ensure_loaded()

    entry = _default_config[key]
    if not _config_parser.has_option(_SECTION, key):
        return entry['default']
    if entry['type'] is bool:
        return _config_parser.getboolean(_SECTION, key)
    raw_value = _config_parser.get(_SECTION, key)
    if entry['type'] is dict:
        return _parse_dict(raw_value)
    return raw_value


def set(key, value):
    """Change a config entry, and save it in the config file.

    Args:
        key (string): name of the entry.
        value: the new value. Dicts are stored in the form
            'key=value;key2=value2'; other values are converted to string.
    Raises:
        KeyError: if the config entry doesn't exists.
    """
    if key not in _default_config:
        raise KeyError(key)
    _ensure_loaded()

    if isinstance(value, dict):
        value = _format_dict(value)
    _config_parser.set(_SECTION, key, str(value))

    file_path = _get_config_file_path()
    try:
        with open(file_path, 'w') as config_file:
            _config_parser.write(config_file)
        _logger.debug('Config file modified.')
    except IOError:
        _logger.warning('Unable to write in the config file', exc_info=True)
