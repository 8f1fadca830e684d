""" A context consumer: an application that asks the broker for an object
    matching its search, then talks to that object directly.
"""

import logging

from ..protocol import fields
from ..protocol.fields import Code
from .session import Session


logger = logging.getLogger(__name__)


SEARCHING = 'Searching'
FOUND = 'Found'


class Consumer(Session):
    """ Search the broker at *broker* using the request the *catalog* holds
        for application *category*. Once a search returns at least one
        match the first match becomes the peer, and every later tick sends
        a state request straight to it.

        If *research_after* is set, the consumer forgets its peer and goes
        back to searching after that many consecutive state requests go
        unanswered. By default it never does.
    """

    def __init__(self, broker, catalog, category, research_after=None, **kwargs):

        Session.__init__(self, broker, **kwargs)

        self.category = category
        self.search_request = catalog.request(category)
        self.research_after = research_after

        self.state = SEARCHING
        self.peer = None
        self.unanswered = 0
        self.last_response = None


    def tick(self):

        if self.state == FOUND and self.research_after is not None:
            if self.unanswered >= self.research_after:
                logger.warning("%s:%d stopped answering", self.peer[0], self.peer[1])
                self.peer = None
                self._transition(SEARCHING)

        if self.state == SEARCHING:
            self.send(self.broker, fields.SEARCH, Code.GET, self.search_request)
        else:
            self.send(self.peer, fields.STATE, Code.GET)
            self.unanswered += 1


    def response_received(self, pending, response, document):

        code = response.code

        if pending.uri_path == fields.SEARCH:
            if code != Code.CONTENT:
                logger.warning("search answered with %s", fields.dotted(code))
                return

            if self.state != SEARCHING:
                return

            try:
                matches = document['response']
            except (KeyError, TypeError):
                matches = None

            if not isinstance(matches, list):
                logger.warning("search response is not a list of matches: %r", matches)
                return

            if len(matches) == 0:
                logger.debug("search matched nothing")
                return

            first = matches[0]

            try:
                self.peer = (first['ip'], int(first['port']))
            except (KeyError, TypeError, ValueError):
                logger.warning("unusable search result: %r", first)
                return

            self.unanswered = 0
            self._transition(FOUND)

        elif pending.uri_path == fields.STATE:
            self.unanswered = 0

            if code == Code.CONTENT:
                try:
                    self.last_response = document['response']
                except KeyError:
                    self.last_response = None
            else:
                logger.warning("state request answered with %s", fields.dotted(code))


    def _transition(self, state):

        if state != self.state:
            if self.peer is None:
                logger.info("consumer: %s -> %s", self.state, state)
            else:
                logger.info("consumer: %s -> %s (%s:%d)", self.state, state, self.peer[0], self.peer[1])
            self.state = state


# end of class Consumer


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
