import collections
import cotas
import pytest
import socket


class FakeChannel(cotas.transport.Channel):
    """ An in-memory datagram channel. Sent datagrams accumulate in the
        *sent* list as (buffer, address) pairs; datagrams queued with
        :func:`deliver` are handed out by recv(). The reactor polls one end
        of an idle socket pair, so the channel never reports readable.
    """

    def __init__(self, host='127.0.0.1', port=40000):
        self.host = host
        self.port = port
        self.opened = False
        self.sent = list()
        self.inbox = collections.deque()
        self.idle = socket.socketpair()

    def open(self):
        self.opened = True

    def close(self):
        self.opened = False

    def send(self, buffer, address):
        if self.opened == False:
            raise cotas.transport.TransportClosed('send() on a closed channel')
        self.sent.append((buffer, address))

    def recv(self):
        try:
            return self.inbox.popleft()
        except IndexError:
            return None

    def fileno(self):
        return self.idle[0].fileno()

    def release(self):
        for end in self.idle:
            end.close()

    def deliver(self, buffer, address):
        self.inbox.append((buffer, address))

    def last(self):
        buffer, address = self.sent[-1]
        return cotas.protocol.pdu.decode(buffer), address

    @property
    def address(self):
        if self.opened == False:
            return None
        return (self.host, self.port)

    @property
    def is_open(self):
        return self.opened


# end of class FakeChannel



class CountingStore(cotas.graph.GraphStore):
    """ A real in-memory store that counts the requests made of it.
    """

    def __init__(self):
        cotas.graph.GraphStore.__init__(self)
        self.queries = 0
        self.updates = 0

    def run_query(self, text):
        self.queries += 1
        return cotas.graph.GraphStore.run_query(self, text)

    def run_update(self, text):
        self.updates += 1
        return cotas.graph.GraphStore.run_update(self, text)

    @property
    def calls(self):
        return self.queries + self.updates


# end of class CountingStore



class FailingStore(cotas.graph.TripleStore):

    def run_query(self, text):
        raise cotas.graph.StoreUnavailable('store is down')

    def run_update(self, text):
        raise cotas.graph.StoreUnavailable('store is down')

    def load_initial_graph(self, documents):
        raise cotas.graph.StoreUnavailable('store is down')


# end of class FailingStore



@pytest.fixture
def store():
    return CountingStore()


@pytest.fixture
def registry(store):
    return cotas.broker.Registry(store, seed=5683)


@pytest.fixture
def catalog():
    return cotas.catalog.load()


@pytest.fixture
def reactor():
    reactor = cotas.transport.Reactor()
    yield reactor
    reactor.close()


@pytest.fixture
def channel():
    channel = FakeChannel()
    channel.open()
    yield channel
    channel.release()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
