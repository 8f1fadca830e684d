""" The request protocol spoken between the broker and its clients: the PDU
    codec, the protocol constants, and the request/response constructors.
"""

from . import fields
from . import pdu
from . import message

from .fields import Code, Type
from .pdu import PDU, MalformedPdu, PduTooLarge


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
