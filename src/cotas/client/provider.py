""" A context provider: a smart object that registers with the broker and
    then keeps it informed of its state.

    An unregistered provider sends its subscribe document on every tick
    until the broker answers with an id. From then on each tick sends one
    update document, drawn at random from the provider's pool. Consumers
    that found the provider through a search talk to it directly on the
    same channel; a request for /state is answered with a random state
    document, and any other path with NotFound.
"""

import logging
import random

from ..protocol import fields
from ..protocol.fields import Code
from .session import Session


logger = logging.getLogger(__name__)


UNREGISTERED = 'Unregistered'
REGISTERED = 'Registered'


class Provider(Session):
    """ Provide the state of an object of *category*, as described by the
        *catalog*, to the broker at the (host, port) address *broker*. The
        port advertised to the broker for direct requests defaults to the
        port of the provider's own channel.

        When the broker reports an internal error the tick interval doubles,
        up to *ceiling* seconds, and returns to normal on the next success.
    """

    def __init__(self, broker, catalog, category, advertised_port=None, ceiling=60.0, seed=None, **kwargs):

        Session.__init__(self, broker, **kwargs)

        self.category = category
        self.subscription = catalog.subscribe(category)
        self.pool = catalog.updates(category)
        self.advertised_port = advertised_port
        self.base_interval = self.interval
        self.ceiling = max(ceiling, self.interval)
        self.random = random.Random(seed)

        self.object_id = 0
        self.state = UNREGISTERED

        if len(self.pool) == 0:
            raise ValueError('no update documents for category %d' % (category))


    def tick(self):

        if self.state == UNREGISTERED:
            document = dict(self.subscription)

            if self.advertised_port is None:
                document['port'] = self.port
            else:
                document['port'] = self.advertised_port

            self.send(self.broker, fields.SUBSCRIBE_OBJECT, Code.POST, document)

        else:
            document = dict(self.random.choice(self.pool))
            document['id'] = self.object_id
            self.send(self.broker, fields.UPDATE_OBJECT, Code.PUT, document)


    def response_received(self, pending, response, document):

        code = response.code

        if code == Code.CREATED:
            try:
                object_id = document['id']
            except KeyError:
                logger.warning("subscribe response carries no id")
                return

            self.object_id = object_id
            self._transition(REGISTERED)
            self._recovered()

        elif code == Code.CHANGED:
            self._recovered()

        elif code == Code.UNAUTHORIZED:
            logger.warning("broker does not recognize id %d, subscribing again", self.object_id)
            self.object_id = 0
            self._transition(UNREGISTERED)

        elif code == Code.INTERNAL_ERROR:
            self.interval = min(self.interval * 2, self.ceiling)
            logger.warning("broker error, next attempt in %.1f seconds", self.interval)

        else:
            logger.warning("%s answered with %s", pending.uri_path, fields.dotted(code))


    def request_received(self, request, address):

        if request.path != fields.STATE:
            logger.debug("no such path %s requested by %s:%d", request.path, address[0], address[1])
            self.reply(request, address, Code.NOT_FOUND, {'info': 'no such path: ' + str(request.path)})
            return

        state = self.random.choice(self.pool)
        logger.debug("answering %s from %s:%d", request.path, address[0], address[1])
        self.reply(request, address, Code.CONTENT, {'response': state})


    def _recovered(self):
        self.interval = self.base_interval


    def _transition(self, state):

        if state != self.state:
            logger.info("provider %d: %s -> %s", self.object_id, self.state, state)
            self.state = state


# end of class Provider


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
