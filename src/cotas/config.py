""" Runtime configuration for the broker and the clients. Settings are read
    from ``cotas.json`` in the configuration directory, falling back to the
    built-in defaults for anything the file does not mention.
"""

import collections.abc
import os

from . import json


defaults = {
    'host': '0.0.0.0',
    'port': 5683,
    'store': 'memory',
    'store_url': 'http://localhost:3030/dataset',
    'store_timeout': 5.0,
    'initial_graph': [],
    'id_min': 20000,
    'id_max': 20000000,
    'id_attempts': 1000,
    'workers': 4,
    'catalog': None,
}

default_filename = 'cotas.json'


class Settings(collections.abc.Mapping):
    """ A read-only view of the effective configuration. Lookups of keys
        that are not configuration keys raise :class:`KeyError`, the same as
        for any other mapping.
    """

    def __init__(self, values):
        self._values = dict(values)


    def __getitem__(self, key):
        return self._values[key]


    def __iter__(self):
        return iter(self._values)


    def __len__(self):
        return len(self._values)


    def __repr__(self):
        return 'Settings(%r)' % (self._values)


    def replace(self, **changes):
        """ Return a new :class:`Settings` with *changes* applied. Values of
            None are ignored, so that unset command line options can be
            passed straight through.
        """

        values = dict(self._values)

        for key, value in changes.items():
            if value is None:
                continue
            if key not in values:
                raise KeyError('unknown configuration key: ' + repr(key))
            values[key] = value

        return Settings(values)


# end of class Settings



def directory(default=None):
    """ Return the directory location where configuration files are found.
        This defaults to ``$HOME/.cotas``, but can be overridden by calling
        this method with a valid path, or by setting the ``COTAS_HOME``
        environment variable. Note that changes to the environment variable
        will be ignored unless it is set prior to the first invocation of
        this method.
    """

    if default is not None:
        default = str(default)
        default = os.path.expandvars(default)

        if os.path.isabs(default):
            pass
        else:
            raise ValueError('the default directory must be an absolute path')

        os.environ['COTAS_HOME'] = default
        directory.found = default


    found = directory.found

    if found is not None:
        return found

    try:
        found = os.environ['COTAS_HOME']
    except KeyError:
        pass
    else:
        directory.found = found
        return found

    try:
        home = os.environ['HOME']
    except KeyError:
        raise RuntimeError('COTAS_HOME and HOME environment variables not set, cannot determine the configuration directory')

    found = os.path.join(home, '.cotas')

    directory.found = found
    return found

directory.found = None



def load(filename=None):
    """ Return the effective :class:`Settings`. If *filename* is not
        provided the default file in :func:`directory` is used, if it
        exists; an explicitly named file must exist. Any key in the file
        that is not a known configuration key is a :class:`KeyError`.
    """

    if filename is None:
        filename = os.path.join(directory(), default_filename)
        if os.path.exists(filename) == False:
            return Settings(defaults)

    with open(filename, 'rb') as file:
        raw = file.read()

    try:
        loaded = json.loads(raw)
    except json.DecodeError as e:
        raise ValueError('%s is not valid JSON: %s' % (filename, str(e)))

    if not isinstance(loaded, dict):
        raise ValueError('%s must contain a JSON object' % (filename))

    values = dict(defaults)

    for key, value in loaded.items():
        if key not in defaults:
            raise KeyError('unknown configuration key in %s: %s' % (filename, repr(key)))
        values[key] = value

    return Settings(values)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
