"""Transport layer: datagram channels and the reactor that polls them."""

from .base import (
    Channel,
    TransportError,
    TransportClosed,
    TransportPortError,
)

from .reactor import Reactor
from .udp import UdpChannel
