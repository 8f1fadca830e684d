""" The message catalog: the canned documents providers and consumers send.
    A catalog is a JSON file with three sections, each indexed by a small
    integer category:

        firstMessages    the subscribe document for each object category.
        updateMessages   the pool of update documents for each category.
        requestMessages  the search request for each application category.

    The same catalog is normally shared by every client in a process, so it
    is immutable; every lookup returns a fresh copy the caller is free to
    modify.
"""

import importlib.resources
import os

from . import json


default_filename = 'messages.json'


class Catalog:
    """ Hold the catalog described by *raw*, the JSON text of the catalog
        as bytes. The text is parsed once up front to catch a malformed
        catalog early; lookups decode it again so that no caller can alter
        what another caller sees.
    """

    sections = ('firstMessages', 'updateMessages', 'requestMessages')

    def __init__(self, raw):

        if isinstance(raw, str):
            raw = raw.encode('utf-8')

        self._raw = bytes(raw)

        try:
            parsed = json.loads(self._raw)
        except json.DecodeError as e:
            raise ValueError('catalog is not valid JSON: ' + str(e))

        if not isinstance(parsed, dict):
            raise ValueError('catalog must be a JSON object')

        for section in self.sections:
            try:
                entries = parsed[section]
            except KeyError:
                raise ValueError('catalog is missing the %s section' % (section))

            if not isinstance(entries, list):
                raise ValueError('catalog section %s must be a list' % (section))

        self._sizes = tuple(len(parsed[section]) for section in self.sections)


    def __repr__(self):
        return 'Catalog(%d object types, %d application types)' % (self._sizes[0], self._sizes[2])


    @property
    def object_types(self):
        return self._sizes[0]


    @property
    def application_types(self):
        return self._sizes[2]


    def subscribe(self, category):
        """ Return the subscribe document for object *category*.
        """

        return self._entry('firstMessages', category)


    def updates(self, category):
        """ Return the list of update documents for object *category*.
        """

        return self._entry('updateMessages', category)


    def request(self, category):
        """ Return the search request for application *category*.
        """

        return self._entry('requestMessages', category)


    def _entry(self, section, category):

        entries = json.loads(self._raw)[section]

        if category < 0:
            raise KeyError('no %s entry for category %d' % (section, category))

        try:
            return entries[category]
        except IndexError:
            raise KeyError('no %s entry for category %d' % (section, category))


# end of class Catalog



def load(filename=None):
    """ Load a :class:`Catalog` from *filename*, or the default catalog
        shipped with the package if no filename is provided.
    """

    if filename is None:
        resource = importlib.resources.files('cotas.data').joinpath(default_filename)
        raw = resource.read_bytes()
    else:
        filename = os.path.expanduser(filename)
        with open(filename, 'rb') as file:
            raw = file.read()

    return Catalog(raw)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
