""" Encoding and decoding of the compact binary PDU exchanged between the
    broker, providers, and consumers. The framing is the CoAP framing: a
    four byte header, an optional token, delta-encoded options, and a
    payload following a 0xFF marker.

    Only the Uri-Path option is produced; the entire route, slashes and all,
    is carried in a single option value. Other options are tolerated and
    ignored when decoding.
"""

import struct

from . import fields
from .fields import Code, Type


maximum_size = 1500
maximum_token = 8

_header = struct.Struct('!BBH')


class PduError(ValueError):
    """ Base class for codec failures.
    """


class MalformedPdu(PduError):
    """ The buffer could not be parsed as a PDU. The datagram carrying it
        should be dropped; this is never a reason to stop processing.
    """


class PduTooLarge(PduError):
    """ The encoded PDU would exceed :data:`maximum_size`.
    """



class PDU:
    """ A single protocol data unit. The *code* is a request method for
        requests and a response status for responses; *uri_path* is None
        when no Uri-Path option is present, which is normal for responses.
        The *payload* is always bytes, possibly empty.

        The *message_id* and *token* are what tie a response back to the
        request that caused it: responses echo both.
    """

    def __init__(self, code, uri_path=None, payload=b'', type=Type.CON, message_id=0, token=b''):

        if len(token) > maximum_token:
            raise ValueError('token is limited to %d bytes' % (maximum_token))

        if payload is None:
            payload = b''

        self.code = fields.as_code(code)
        self.message_id = message_id
        self.payload = payload
        self.token = token
        self.type = Type(type)
        self.uri_path = uri_path


    def __repr__(self):
        code = fields.dotted(self.code)
        return 'PDU(%s %s %s mid=%d token=%s, %d bytes)' % (self.type.name, code, self.uri_path, self.message_id, self.token.hex(), len(self.payload))


    @property
    def is_request(self):
        return fields.is_request(self.code)


    @property
    def is_response(self):
        return fields.is_response(self.code)


    @property
    def path(self):
        """ The request path, defaulting to the root path when the PDU
            did not carry one.
        """

        if self.uri_path:
            return self.uri_path
        return '/'


    def encode(self):
        return encode(self.uri_path, self.code, self.payload, self.type, self.message_id, self.token)


# end of class PDU



def encode(uri_path, code, payload=b'', type=Type.CON, message_id=0, token=b''):
    """ Return the wire representation of a PDU as bytes. *uri_path* may be
        None, in which case no Uri-Path option is emitted. Raises
        :class:`PduTooLarge` if the result would not fit in a single
        datagram of :data:`maximum_size` bytes.
    """

    if len(token) > maximum_token:
        raise ValueError('token is limited to %d bytes' % (maximum_token))

    first = (fields.version << 6) | (int(type) << 4) | len(token)
    parts = [_header.pack(first, int(code), message_id & 0xFFFF), token]

    if uri_path:
        try:
            value = uri_path.encode('ascii')
        except UnicodeEncodeError:
            raise ValueError('the uri path must be ASCII: ' + repr(uri_path))

        parts.append(_option(fields.URI_PATH, value))

    if payload:
        parts.append(bytes((fields.PAYLOAD_MARKER,)))
        parts.append(payload)

    encoded = b''.join(parts)

    if len(encoded) > maximum_size:
        raise PduTooLarge("PDU is %d bytes, the limit is %d" % (len(encoded), maximum_size))

    return encoded



def decode(buffer):
    """ Parse *buffer* and return a :class:`PDU`. Raises
        :class:`MalformedPdu` for anything that cannot be parsed.
    """

    buffer = bytes(buffer)
    length = len(buffer)

    if length < _header.size:
        raise MalformedPdu('PDU is %d bytes, shorter than the header' % (length))

    first, code, message_id = _header.unpack_from(buffer)

    their_version = first >> 6
    if their_version != fields.version:
        raise MalformedPdu('PDU version is %d, expected %d' % (their_version, fields.version))

    type = (first >> 4) & 0x03
    token_length = first & 0x0F

    if token_length > maximum_token:
        raise MalformedPdu('token length %d exceeds %d' % (token_length, maximum_token))

    code_class = code >> 5
    if code_class in (1, 6, 7):
        raise MalformedPdu('reserved code class: ' + fields.dotted(code))

    offset = _header.size
    token = buffer[offset:offset + token_length]
    offset += token_length

    if len(token) != token_length:
        raise MalformedPdu('PDU truncated inside the token')

    option = 0
    segments = list()
    payload = b''

    while offset < length:
        byte = buffer[offset]
        offset += 1

        if byte == fields.PAYLOAD_MARKER:
            payload = buffer[offset:]
            if payload == b'':
                raise MalformedPdu('payload marker with an empty payload')
            break

        delta, offset = _extended(byte >> 4, buffer, offset)
        size, offset = _extended(byte & 0x0F, buffer, offset)

        option += delta
        value = buffer[offset:offset + size]
        offset += size

        if len(value) != size:
            raise MalformedPdu('PDU truncated inside option %d' % (option))

        if option == fields.URI_PATH:
            try:
                segments.append(value.decode('ascii'))
            except UnicodeDecodeError:
                raise MalformedPdu('uri path is not ASCII')

    if len(segments) == 0:
        uri_path = None
    elif len(segments) == 1 and segments[0].startswith('/'):
        uri_path = segments[0]
    else:
        uri_path = '/' + '/'.join(segment.strip('/') for segment in segments)

    return PDU(code, uri_path, payload, type, message_id, token)



def _option(number, value, previous=0):
    """ Encode a single option whose *number* follows the option numbered
        *previous*.
    """

    delta, delta_extra = _nibble(number - previous)
    size, size_extra = _nibble(len(value))

    return bytes(((delta << 4) | size,)) + delta_extra + size_extra + value



def _nibble(value):

    if value < 13:
        return value, b''
    if value < 269:
        return 13, bytes((value - 13,))
    if value < 65805:
        return 14, struct.pack('!H', value - 269)

    raise ValueError('option field too large: %d' % (value))



def _extended(nibble, buffer, offset):
    """ Interpret an option delta or length *nibble*, consuming any
        extended bytes from *buffer*. Returns the value and the new offset.
    """

    if nibble < 13:
        return nibble, offset

    if nibble == 13:
        if offset + 1 > len(buffer):
            raise MalformedPdu('PDU truncated inside an option header')
        return buffer[offset] + 13, offset + 1

    if nibble == 14:
        if offset + 2 > len(buffer):
            raise MalformedPdu('PDU truncated inside an option header')
        value, = struct.unpack_from('!H', buffer, offset)
        return value + 269, offset + 2

    raise MalformedPdu('reserved option nibble 15')


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
