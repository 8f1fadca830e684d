"""UDP datagram channel."""

from __future__ import annotations

import logging
import socket
from typing import Optional, Tuple

from .base import Address, Channel, TransportClosed, TransportPortError


logger = logging.getLogger(__name__)

receive_size = 4096


class UdpChannel(Channel):
    """Non-blocking IPv4 UDP socket bound to *host* and *port*. A *port* of
    zero binds an ephemeral port, which is how clients normally run."""

    def __init__(self, host: str = '0.0.0.0', port: int = 0):
        self.host = host
        self.port = int(port)
        self.socket: Optional[socket.socket] = None

    def open(self) -> None:
        if self.socket is not None:
            return

        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)

        try:
            sock.bind((self.host, self.port))
        except OSError as exc:
            sock.close()
            raise TransportPortError(
                f"cannot bind {self.host}:{self.port}: {exc}"
            ) from exc

        sock.setblocking(False)
        self.socket = sock
        self.port = sock.getsockname()[1]
        logger.debug("UDP channel bound to %s:%d", self.host, self.port)

    def close(self) -> None:
        sock = self.socket
        self.socket = None

        if sock is not None:
            sock.close()

    def send(self, buffer: bytes, address: Address) -> None:
        if self.socket is None:
            raise TransportClosed('send() on a closed channel')

        self.socket.sendto(buffer, address)

    def recv(self) -> Optional[Tuple[bytes, Address]]:
        if self.socket is None:
            return None

        try:
            data, address = self.socket.recvfrom(receive_size)
        except (BlockingIOError, InterruptedError):
            return None
        except ConnectionResetError:
            # An ICMP port unreachable from an earlier send; the datagram
            # model has nothing to report back to the caller.
            return None

        return data, (address[0], address[1])

    def fileno(self) -> int:
        if self.socket is None:
            raise TransportClosed('fileno() on a closed channel')
        return self.socket.fileno()

    @property
    def address(self) -> Optional[Address]:
        if self.socket is None:
            return None
        return (self.host, self.port)

    @property
    def is_open(self) -> bool:
        return self.socket is not None
