''' Wrapper module around :mod:`msgspec` providing the equivalent of
    :func:`json.loads` and :func:`json.dumps`.
'''

import msgspec


# The msgspec 'encode' operation returns bytes. Every PDU payload is bytes,
# so nothing here ever returns a str.

encoder = msgspec.json.Encoder()
decoder = msgspec.json.Decoder()

dumps = encoder.encode
loads = decoder.decode
DecodeError = msgspec.DecodeError

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
