""" The broker: object registration, request routing, and the daemon that
    ties them to a datagram channel.
"""

from . import registry
from . import router
from . import server

from .registry import IdSpaceExhausted, Registration, Registry, UnknownId
from .router import BadRequest, Router
from .server import Broker


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
