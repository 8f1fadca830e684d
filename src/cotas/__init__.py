""" Python implementation of CoTaS, a context broker for smart objects. This
    includes the broker itself, which registers objects and keeps their
    state in a triple store, and the client roles that talk to it: context
    providers, which report the state of an object, and context consumers,
    which search for objects and then query them directly.
"""

# Utility components.

from . import json

# Submodules used by multiple other components.

from . import protocol
from . import transport
from . import graph
from . import config
home = config.directory

# Primary public-facing interfaces.

from . import catalog
from . import broker
from . import client

from .broker import Broker, Registry
from .client import Consumer, Provider

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
