""" Dispatch of decoded requests to their handlers. The routing table is
    static: every recognized path maps to the name of a handler method on
    :class:`Router`, and every handler returns a response code and a
    response document. Protocol errors are turned into error responses
    here; nothing raised by a handler escapes :func:`Router.dispatch`.
"""

import logging

from .. import json
from ..graph import compiler
from ..graph import sparql
from ..graph.store import StoreError
from ..protocol import fields
from ..protocol.fields import Code
from .registry import IdSpaceExhausted, UnknownId


logger = logging.getLogger(__name__)


class BadRequest(Exception):
    """ The request is well formed as a PDU but cannot be acted upon.
    """



class Router:
    """ Route requests for the broker. The *registry* issues and checks
        object ids; searches are run directly against the registry's store.
    """

    routes = {
        fields.SUBSCRIBE_OBJECT: 'req_subscribe',
        fields.SUBSCRIBE_APPLICATION: 'req_subscribe',
        fields.UPDATE_OBJECT: 'req_update',
        fields.SEARCH: 'req_search',
    }

    def __init__(self, registry):
        self.registry = registry
        self.store = registry.store


    def dispatch(self, path, address, payload):
        """ Handle one request for *path* from *address*, whose body is the
            raw JSON *payload*. Returns a (code, document) tuple; the
            document always carries a 'status' field equal to the code.
        """

        try:
            name = self.routes[path]
        except KeyError:
            logger.debug("no route for %s", path)
            return self._reply(Code.NOT_FOUND, {'info': 'no such path: ' + str(path)})

        handler = getattr(self, name)

        try:
            document = self._parse(payload)
            code, document = handler(address, document)

        except (BadRequest, compiler.MalformedPath) as e:
            logger.warning("bad request from %s:%d for %s: %s", address[0], address[1], path, str(e))
            return self._reply(Code.BAD_REQUEST, {'info': str(e)})

        except UnknownId as e:
            logger.warning("unauthorized request from %s:%d: %s", address[0], address[1], str(e))
            return self._reply(Code.UNAUTHORIZED, {'info': str(e)})

        except (StoreError, IdSpaceExhausted) as e:
            logger.error("%s from %s:%d failed: %s", path, address[0], address[1], str(e))
            return self._reply(Code.INTERNAL_ERROR, {'info': str(e)})

        except Exception:
            logger.exception("%s handler failed", path)
            return self._reply(Code.INTERNAL_ERROR, {'info': 'internal error'})

        return self._reply(code, document)


    def req_subscribe(self, address, document):

        object_id = self.registry.subscribe(address, document)
        return Code.CREATED, {'id': object_id}


    def req_update(self, address, document):

        try:
            object_id = document['id']
        except KeyError:
            raise BadRequest("update is missing the 'id' field")

        if isinstance(object_id, bool) or not isinstance(object_id, int):
            raise BadRequest("the 'id' field must be an integer, not " + repr(object_id))

        # The registry refuses unknown ids before compiling anything, which
        # means before the store is ever involved.

        self.registry.record_state(object_id, document)
        return Code.CHANGED, {'id': object_id}


    def req_search(self, address, document):

        try:
            query = document['query']
        except KeyError:
            raise BadRequest("search is missing the 'query' field")

        if not isinstance(query, dict) or len(query) == 0:
            raise BadRequest("the 'query' field must be a non-empty object")

        compiled = compiler.compile_match(query)

        device = compiler.variable(compiler.anchor)
        patterns = compiled.required
        patterns.append(compiler.Pattern(device, compiler.iri(compiler.address_property), '?ip'))
        patterns.append(compiler.Pattern(device, compiler.iri(compiler.port_property), '?port'))

        text = sparql.select(('ip', 'port'), patterns)
        rows = self.store.run_query(text)

        matches = list()
        for row in rows:
            try:
                matches.append({'ip': row['ip'], 'port': row['port']})
            except KeyError:
                continue

        logger.debug("search from %s:%d matched %d objects", address[0], address[1], len(matches))
        return Code.CONTENT, {'response': matches}


    def _parse(self, payload):

        if payload == b'' or payload is None:
            return dict()

        try:
            document = json.loads(payload)
        except json.DecodeError as e:
            raise BadRequest('payload is not valid JSON: ' + str(e))

        if not isinstance(document, dict):
            raise BadRequest('payload must be a JSON object')

        return document


    def _reply(self, code, document):
        document['status'] = int(code)
        return code, document


# end of class Router


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
