""" Machinery shared by providers and consumers: a datagram channel on a
    :class:`Reactor`, a periodic tick, and the bookkeeping that matches
    responses to the requests that caused them.
"""

import logging

from ..protocol import fields
from ..protocol import message
from ..protocol import pdu
from ..transport import Reactor, TransportError, UdpChannel


logger = logging.getLogger(__name__)


class PendingRequest:
    """ A request that has been sent and not yet answered. Responses are
        matched on the token, which the responder echoes.
    """

    def __init__(self, request, address, sent):
        self.request = request
        self.address = address
        self.sent = sent


    @property
    def token(self):
        return self.request.token


    @property
    def uri_path(self):
        return self.request.uri_path


# end of class PendingRequest



class Session:
    """ Base class for the client roles. A subclass implements :func:`tick`,
        which is invoked every *interval* seconds once the session is
        started, and :func:`response_received`, invoked for every response
        that matches a pending request. Subclasses that answer requests of
        their own override :func:`request_received`.

        Ticking stops after *count* ticks; a *count* of zero ticks forever.
        Requests unanswered after *expiry* ticks are forgotten.
    """

    expiry = 10

    def __init__(self, broker, reactor=None, channel=None, interval=1.0, count=0):

        if reactor is None:
            reactor = Reactor()

        if channel is None:
            channel = UdpChannel()

        self.broker = tuple(broker)
        self.reactor = reactor
        self.channel = channel
        self.interval = interval
        self.count = count

        self.sent = 0
        self.received = 0
        self.pending = dict()
        self.event = None


    @property
    def done(self):
        """ True once the session has ticked *count* times.
        """

        return self.count != 0 and self.sent >= self.count


    @property
    def port(self):
        address = self.channel.address
        if address is None:
            return None
        return address[1]


    def start(self, delay=0):
        """ Open the channel and schedule the first tick *delay* seconds
            from now.
        """

        if self.channel.is_open == False:
            self.channel.open()

        self.reactor.register(self.channel, self._readable)
        self.event = self.reactor.schedule(delay, self._tick)


    def stop(self):
        """ Cancel the next tick and release the channel.
        """

        self.reactor.cancel(self.event)
        self.event = None

        self.reactor.unregister(self.channel)
        self.channel.close()


    def tick(self):
        raise NotImplementedError('tick() must be implemented by subclasses')


    def response_received(self, pending, response, document):
        raise NotImplementedError('response_received() must be implemented by subclasses')


    def request_received(self, request, address):
        logger.debug("ignoring request %r from %s:%d", request, address[0], address[1])


    def send(self, address, uri_path, code, document=None):
        """ Send a request for *uri_path* to *address* and remember it until
            a response arrives. Returns the :class:`PendingRequest`, or None
            if the request could not be sent.
        """

        request = message.request(uri_path, code, document)

        try:
            buffer = request.encode()
        except pdu.PduTooLarge as e:
            logger.error("not sending %s to %s:%d: %s", uri_path, address[0], address[1], str(e))
            return None

        pending = PendingRequest(request, address, self.reactor.clock())

        try:
            self.channel.send(buffer, address)
        except (OSError, TransportError) as e:
            logger.warning("cannot send %s to %s:%d: %s", uri_path, address[0], address[1], str(e))
            return None

        self.pending[request.token] = pending
        logger.debug("sent %r to %s:%d", request, address[0], address[1])
        return pending


    def reply(self, request, address, code, document=None):
        """ Answer a *request* received from *address*.
        """

        response = message.response(request, code, document)

        try:
            buffer = response.encode()
        except pdu.PduTooLarge as e:
            logger.error("response to %r is too large: %s", request, str(e))
            response = message.response(request, fields.Code.INTERNAL_ERROR, message.status(fields.Code.INTERNAL_ERROR))
            buffer = response.encode()

        self.channel.send(buffer, address)


    def datagram(self, buffer, address):
        """ Process one received datagram.
        """

        try:
            received = pdu.decode(buffer)
        except pdu.MalformedPdu as e:
            logger.warning("dropping malformed datagram from %s:%d: %s", address[0], address[1], str(e))
            return

        if received.is_request:
            self.request_received(received, address)
            return

        if received.is_response == False:
            logger.debug("dropping %r from %s:%d", received, address[0], address[1])
            return

        try:
            pending = self.pending.pop(received.token)
        except KeyError:
            logger.debug("unsolicited response %r from %s:%d", received, address[0], address[1])
            return

        rtt = self.reactor.clock() - pending.sent
        self.received += 1
        logger.info("%s %s from %s:%d after %.3f ms", pending.uri_path, fields.dotted(received.code), address[0], address[1], rtt * 1000)

        try:
            document = message.document(received)
        except ValueError as e:
            logger.warning("response from %s:%d: %s", address[0], address[1], str(e))
            return

        if not isinstance(document, dict):
            logger.warning("response from %s:%d is not a JSON object", address[0], address[1])
            return

        self.response_received(pending, received, document)


    def _expire(self):

        oldest = self.reactor.clock() - self.interval * self.expiry

        for token, pending in list(self.pending.items()):
            if pending.sent < oldest:
                del self.pending[token]


    def _readable(self, channel):

        while True:
            received = channel.recv()
            if received is None:
                break

            buffer, address = received
            self.datagram(buffer, address)


    def _tick(self):

        self.event = None
        self._expire()
        self.tick()
        self.sent += 1

        if self.done == False:
            self.event = self.reactor.schedule(self.interval, self._tick)


# end of class Session


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
