""" Protocol constants. Keep these in one place to avoid stringly-typed
    message handling; the numeric values are the on-the-wire values.
"""

import enum


version = 1


class Type(enum.IntEnum):
    """ The two-bit message type in the PDU header.
    """

    CON = 0
    NON = 1
    ACK = 2
    RST = 3


# end of class Type


class Code(enum.IntEnum):
    """ Request methods and response statuses share the one-byte code field:
        the top three bits are the class, the low five bits the detail, so
        that 2.05 is encoded as (2 << 5) | 5.
    """

    EMPTY = 0x00

    GET = 0x01
    POST = 0x02
    PUT = 0x03
    DELETE = 0x04

    CREATED = 0x41
    DELETED = 0x42
    VALID = 0x43
    CHANGED = 0x44
    CONTENT = 0x45

    BAD_REQUEST = 0x80
    UNAUTHORIZED = 0x81
    NOT_FOUND = 0x84
    METHOD_NOT_ALLOWED = 0x85

    INTERNAL_ERROR = 0xA0


# end of class Code



def dotted(code):
    """ Return the human-readable 'c.dd' form of a numeric *code*.
    """

    return '%d.%02d' % (code >> 5, code & 0x1F)


def is_request(code):
    return code >> 5 == 0 and code != Code.EMPTY


def is_response(code):
    return 2 <= code >> 5 <= 5


def as_code(code):
    """ Return the :class:`Code` member for *code* when there is one, and the
        plain integer otherwise; codes this module does not name are still
        legal on the wire.
    """

    try:
        return Code(code)
    except ValueError:
        return code


# Option numbers. Only Uri-Path is emitted; others are skipped on decode.

URI_PATH = 11

PAYLOAD_MARKER = 0xFF


# Broker routes.

SUBSCRIBE_OBJECT = '/subscribe/object'
SUBSCRIBE_APPLICATION = '/subscribe/application'
UPDATE_OBJECT = '/update/object'
SEARCH = '/search'

# Served by a provider to consumers that address it directly.

STATE = '/state'


# Fields in a request document that steer the protocol rather than describe
# the object; they are never compiled into the graph.

control_fields = frozenset(('id', 'req', 'object', 'category'))


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
