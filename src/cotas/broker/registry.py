""" Identity management for registered objects. The :class:`Registry` hands
    out object ids, remembers which address owns which id, and applies state
    updates to the store on behalf of the owner.
"""

import logging
import random
import threading
import time

from ..graph import compiler
from ..graph import sparql


logger = logging.getLogger(__name__)


class UnknownId(Exception):
    """ The object id is not registered with this broker.
    """


class IdSpaceExhausted(Exception):
    """ No free object id was found within the allowed number of attempts.
    """



class Registration:
    """ The record of one subscribed object. Nothing here changes after the
        object is registered; the object's state lives in the store.
    """

    def __init__(self, id, address, category=None, created=None):

        if created is None:
            created = time.time()

        self.id = id
        self.address = address
        self.category = category
        self.created = created


    def __repr__(self):
        return 'Registration(%d, %s:%d, %r)' % (self.id, self.address[0], self.address[1], self.category)


# end of class Registration



class Registry:
    """ Issue and validate object ids. Ids are drawn uniformly at random from
        the half-open range [*id_min*, *id_max*); a candidate is rejected if
        it is already registered here or already present in the *store*,
        and at most *attempts* candidates are tried before giving up.

        Re-subscribing from the same address returns the id already issued
        to that address; the registry never issues two ids to one address.
    """

    def __init__(self, store, id_min=20000, id_max=20000000, attempts=1000, seed=None):

        if id_max <= id_min:
            raise ValueError('empty id range: [%d, %d)' % (id_min, id_max))

        self.store = store
        self.id_min = id_min
        self.id_max = id_max
        self.attempts = attempts
        self.random = random.Random(seed)

        self.by_address = dict()
        self.by_id = dict()

        self.lock = threading.Lock()


    def __contains__(self, object_id):
        return self.validate(object_id)


    def __len__(self):
        return len(self.by_id)


    def get(self, object_id):
        """ Return the :class:`Registration` for *object_id*, raising
            :class:`UnknownId` if there is none.
        """

        try:
            return self.by_id[object_id]
        except KeyError:
            raise UnknownId('object id %s is not registered' % (repr(object_id)))


    def subscribe(self, address, document):
        """ Register the object at *address* and return its id. The
            *document* is the object's initial state; it is written to the
            store along with the object's address, and its 'category' field
            becomes the object's type.
        """

        address = tuple(address)

        # The lock spans the whole check-then-insert sequence; without it
        # two workers could both decide a candidate is free.

        with self.lock:
            try:
                registration = self.by_address[address]
            except KeyError:
                pass
            else:
                logger.debug("%s:%d re-subscribed as %d", address[0], address[1], registration.id)
                return registration.id

            object_id = self._sample()

            initial = dict(document)
            initial[compiler.address_property] = address[0]

            try:
                advertised = initial[compiler.port_property]
            except KeyError:
                advertised = None

            if advertised is None:
                initial[compiler.port_property] = address[1]

            compiled = compiler.materialize(object_id, initial)
            self.store.run_update(sparql.insert_data(compiled))

            try:
                category = document['category']
            except KeyError:
                category = None

            registration = Registration(object_id, address, category)
            self.by_id[object_id] = registration
            self.by_address[address] = registration

        logger.info("registered %s:%d as %d (%s)", address[0], address[1], object_id, category)
        return object_id


    def validate(self, object_id):
        """ Return True if *object_id* is registered. The answer comes from
            the local index alone; the store is never consulted.
        """

        return object_id in self.by_id


    def record_state(self, object_id, document):
        """ Apply *document* as a state update for *object_id*. Raises
            :class:`UnknownId` if the id is not registered, before anything
            is compiled or sent to the store.
        """

        if self.validate(object_id) == False:
            raise UnknownId('object id %s is not registered' % (repr(object_id)))

        compiled = compiler.compile_update(object_id, document)

        if compiled.empty:
            logger.debug("update for %d changes nothing", object_id)
            return compiled

        self.store.run_update(sparql.update(compiled))
        return compiled


    def _sample(self):

        for attempt in range(self.attempts):
            candidate = self.random.randrange(self.id_min, self.id_max)

            if candidate in self.by_id:
                continue

            if self._stored(candidate):
                logger.debug("candidate id %d already present in the store", candidate)
                continue

            return candidate

        raise IdSpaceExhausted('no free id in [%d, %d) after %d attempts' % (self.id_min, self.id_max, self.attempts))


    def _stored(self, candidate):

        device = compiler.variable(compiler.anchor)
        pattern = compiler.Pattern(device, compiler.iri(compiler.identifier), compiler.literal(candidate))
        text = sparql.select((compiler.anchor,), (pattern,), distinct=False, limit=1)

        rows = self.store.run_query(text)
        return len(rows) > 0


# end of class Registry


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
