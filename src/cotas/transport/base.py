"""Transport interface.

This is the (small) contract that datagram channels should follow. It lives
outside :mod:`cotas.protocol` so the protocol remains transport-agnostic:
a channel moves opaque byte buffers to and from addresses, nothing more.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Tuple


Address = Tuple[str, int]


# Transport agnostic exceptions

class TransportError(Exception):
    """Base class for all transport-layer errors."""


class TransportPortError(TransportError):
    """No suitable port could be bound."""


class TransportClosed(TransportError):
    """The channel was used after it was closed."""


class Channel(ABC):
    """Minimal contract for a bidirectional datagram channel."""

    @abstractmethod
    def open(self) -> None:
        """Bind the underlying endpoint."""

    @abstractmethod
    def close(self) -> None:
        """Release the underlying endpoint."""

    @abstractmethod
    def send(self, buffer: bytes, address: Address) -> None:
        """Send one datagram to *address*."""

    @abstractmethod
    def recv(self) -> Optional[Tuple[bytes, Address]]:
        """Return the next pending (buffer, address) pair, or None if
        nothing is waiting. Never blocks."""

    @abstractmethod
    def fileno(self) -> int:
        """File descriptor the reactor polls for readability."""

    @property
    def address(self) -> Optional[Address]:
        """The locally bound address, once open."""
        return None

    @property
    def is_open(self) -> bool:
        """Whether the channel currently holds an endpoint."""
        return False
