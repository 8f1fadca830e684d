""" The broker daemon: a datagram channel on a :class:`Reactor`, with every
    request handed to a pool of worker threads so that a slow store never
    holds up the reception of other requests.
"""

import concurrent.futures
import functools
import logging
import threading

from ..protocol import message
from ..protocol import pdu
from ..protocol.fields import Code
from ..transport import Reactor, TransportError, UdpChannel
from .router import Router


logger = logging.getLogger(__name__)


class Broker:
    """ Serve requests arriving on *channel*, or on a new UDP channel bound
        to *host* and *port* if no channel is provided. Requests are decoded
        on the reactor thread, handled on one of *workers* threads, and the
        encoded responses are sent from the reactor thread again.
    """

    def __init__(self, registry, reactor=None, host='0.0.0.0', port=5683, workers=4, channel=None):

        if reactor is None:
            reactor = Reactor()

        if channel is None:
            channel = UdpChannel(host, port)

        self.registry = registry
        self.router = Router(registry)
        self.reactor = reactor
        self.channel = channel

        self.workers = concurrent.futures.ThreadPoolExecutor(max_workers=workers)
        self.pending = set()
        self.pending_lock = threading.Lock()


    def start(self):
        """ Bind the channel and begin watching it for requests. A failure
            to bind is raised as a :class:`TransportError`; there is nothing
            useful the broker can do without its channel.
        """

        self.channel.open()
        self.reactor.register(self.channel, self._readable)

        host, port = self.channel.address
        logger.info("broker listening on %s:%d", host, port)


    def run(self, timeout=None):
        """ Start the broker if necessary and run its reactor until
            :func:`stop` is called, or until *timeout* seconds elapse.
        """

        if self.channel.is_open == False:
            self.start()

        self.reactor.run(timeout)


    def stop(self):
        """ Cancel any queued requests, release the channel, and stop the
            reactor.
        """

        with self.pending_lock:
            pending = list(self.pending)

        for future in pending:
            future.cancel()

        self.workers.shutdown(wait=False)

        self.reactor.unregister(self.channel)
        self.channel.close()
        self.reactor.stop()

        logger.info("broker stopped")


    def receive(self, buffer, address):
        """ Decode one datagram and queue it for a worker. Anything that is
            not a well-formed request is dropped here.
        """

        try:
            request = pdu.decode(buffer)
        except pdu.MalformedPdu as e:
            logger.warning("dropping malformed datagram from %s:%d: %s", address[0], address[1], str(e))
            return

        if request.is_request == False:
            logger.debug("dropping non-request %r from %s:%d", request, address[0], address[1])
            return

        logger.debug("%r from %s:%d", request, address[0], address[1])

        try:
            future = self.workers.submit(self.handle, request, address)
        except RuntimeError:
            # The pool has been shut down; the broker is stopping.
            return

        with self.pending_lock:
            self.pending.add(future)

        future.add_done_callback(functools.partial(self._completed, address))


    def handle(self, request, address):
        """ Route *request* and return the encoded response as bytes. This
            is invoked on a worker thread, and may block on the store.
        """

        code, document = self.router.dispatch(request.path, address, request.payload)
        response = message.response(request, code, document)

        try:
            return response.encode()
        except pdu.PduTooLarge as e:
            error = e

        # A search that matched more objects than fit in one datagram is
        # answered with as many matches as fit, first matches first.

        try:
            matches = document['response']
        except (KeyError, TypeError):
            matches = None

        if isinstance(matches, list):
            low = 0
            high = len(matches) - 1
            buffer = None

            while low < high:
                keep = (low + high + 1) // 2
                trimmed = dict(document)
                trimmed['response'] = matches[:keep]
                response = message.response(request, code, trimmed)

                try:
                    candidate = response.encode()
                except pdu.PduTooLarge:
                    high = keep - 1
                else:
                    low = keep
                    buffer = candidate

            if buffer is not None:
                logger.warning("response to %r truncated to %d of %d matches", request, low, len(matches))
                return buffer

        logger.error("response to %r is too large: %s", request, str(error))

        response = message.response(request, Code.INTERNAL_ERROR, message.status(Code.INTERNAL_ERROR))
        return response.encode()


    def respond(self, buffer, address):
        """ Handle a single datagram synchronously, on the calling thread,
            and return the encoded response; returns None if the datagram
            would have been dropped.
        """

        try:
            request = pdu.decode(buffer)
        except pdu.MalformedPdu as e:
            logger.warning("dropping malformed datagram from %s:%d: %s", address[0], address[1], str(e))
            return None

        if request.is_request == False:
            return None

        return self.handle(request, address)


    def _completed(self, address, future):

        with self.pending_lock:
            self.pending.discard(future)

        if future.cancelled():
            return

        try:
            buffer = future.result()
        except Exception:
            logger.exception("request from %s:%d failed", address[0], address[1])
            return

        self.reactor.call_soon_threadsafe(self._send, buffer, address)


    def _readable(self, channel):

        while True:
            received = channel.recv()
            if received is None:
                break

            buffer, address = received
            self.receive(buffer, address)


    def _send(self, buffer, address):

        if self.channel.is_open == False:
            return

        try:
            self.channel.send(buffer, address)
        except (OSError, TransportError) as e:
            logger.warning("cannot reply to %s:%d: %s", address[0], address[1], str(e))


# end of class Broker


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
