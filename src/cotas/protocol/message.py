""" Construction of request and response PDUs with JSON payloads, along
    with the allocation of the message id and token that correlate a
    response with its request.
"""

import itertools
import random
import struct
import threading

from .. import json
from . import pdu
from .fields import Code, Type


def request(uri_path, code, document=None):
    """ Return a confirmable request :class:`pdu.PDU` for *uri_path* with a
        freshly allocated message id and token. The *document*, if any, is
        encoded as the JSON payload.
    """

    if document is None:
        payload = b''
    else:
        payload = json.dumps(document)

    message_id, token = _id_next()
    return pdu.PDU(code, uri_path, payload, Type.CON, message_id, token)



def response(request, code, document=None):
    """ Return the response to *request*. The response is piggybacked on the
        acknowledgement, echoing the message id and token of the request. If
        a *document* is provided its 'status' field is set to the numeric
        response code before it is encoded as the payload.
    """

    if document is None:
        payload = b''
    else:
        document = dict(document)
        document['status'] = int(code)
        payload = json.dumps(document)

    return pdu.PDU(code, None, payload, Type.ACK, request.message_id, request.token)



def document(message):
    """ Decode the JSON payload of *message*. An empty payload decodes as
        an empty dictionary; a payload that is not valid JSON raises
        :class:`ValueError`.
    """

    if message.payload == b'':
        return dict()

    try:
        return json.loads(message.payload)
    except json.DecodeError as e:
        raise ValueError('payload is not valid JSON: ' + str(e))



def status(code):
    """ Return a minimal response document for *code*.
    """

    return {'status': int(code)}


_id_lock = threading.Lock()
_id_ticker = itertools.count(random.randrange(0x10000))
_token = struct.Struct('!I')


def _id_next():
    """ Return the next (message id, token) pair. Message ids wrap at 16 bits
        as the header dictates; the token is a 32-bit counter that starts at
        the same random offset so tokens from different processes rarely
        coincide.
    """

    with _id_lock:
        counter = next(_id_ticker)

    message_id = counter & 0xFFFF
    token = _token.pack(counter & 0xFFFFFFFF)
    return message_id, token


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
