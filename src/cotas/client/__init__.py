""" The client roles: providers that register and report their state, and
    consumers that search for them.
"""

from . import session
from . import provider
from . import consumer

from .consumer import Consumer
from .provider import Provider
from .session import PendingRequest, Session


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
