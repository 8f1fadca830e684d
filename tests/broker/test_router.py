import cotas
import pytest

from conftest import FailingStore
from cotas.protocol.fields import Code


address = ('127.0.0.1', 40001)


def encode(document):
    return cotas.json.dumps(document)


@pytest.fixture
def router(registry):
    return cotas.broker.Router(registry)


def subscribe(router, address, document):
    code, response = router.dispatch('/subscribe/object', address, encode(document))
    assert code == Code.CREATED
    return response['id']


def test_unknown_path(router, store):

    code, document = router.dispatch('/nowhere', address, b'')

    assert code == Code.NOT_FOUND
    assert document['status'] == 132
    assert store.calls == 0


def test_subscribe(router):

    code, document = router.dispatch('/subscribe/object', address, encode({'category': 'Computer'}))

    assert code == Code.CREATED
    assert document['status'] == 65
    assert 20000 <= document['id'] < 20000000

    code, again = router.dispatch('/subscribe/object', address, encode({'category': 'Computer'}))
    assert again['id'] == document['id']


def test_subscribe_application(router):

    code, document = router.dispatch('/subscribe/application', ('127.0.0.1', 40002), b'')

    assert code == Code.CREATED
    assert 'id' in document


def test_payload_not_an_object(router, store):

    for payload in (b'{broken', b'[1, 2, 3]', b'"text"'):
        code, document = router.dispatch('/subscribe/object', address, payload)
        assert code == Code.BAD_REQUEST
        assert document['status'] == 128

    assert store.calls == 0


def test_update(router, store):

    object_id = subscribe(router, address, {'category': 'Computer', 'powerState': 'off'})

    code, document = router.dispatch('/update/object', address, encode({'id': object_id, 'powerState': 'on'}))

    assert code == Code.CHANGED
    assert document == {'id': object_id, 'status': 68}


def test_update_underscored_names(router, store):

    object_id = subscribe(router, address, {'category': 'Sensor', 'battery_level': 80, 'sensor-head.temp_c': 20})

    code, document = router.dispatch('/update/object', address, encode({'id': object_id, 'battery_level': 75, 'sensor-head.temp_c': 21}))

    assert code == Code.CHANGED
    assert document == {'id': object_id, 'status': 68}

    code, document = router.dispatch('/search', address, encode({'query': {'battery_level': 75, 'sensor-head.temp_c': 21}}))

    assert code == Code.CONTENT
    assert document['response'] == [{'ip': '127.0.0.1', 'port': 40001}]

    code, document = router.dispatch('/search', address, encode({'query': {'battery_level': 80}}))

    assert document['response'] == []


def test_update_unknown_id_never_reaches_store(router, store):

    code, document = router.dispatch('/update/object', address, encode({'id': 12345, 'powerState': 'on'}))

    assert code == Code.UNAUTHORIZED
    assert document['status'] == 129
    assert store.calls == 0


def test_update_bad_id(router, store):

    for document in ({'powerState': 'on'}, {'id': '20001'}, {'id': True}, {'id': 1.5}):
        code, response = router.dispatch('/update/object', address, encode(document))
        assert code == Code.BAD_REQUEST
        assert response['status'] == 128

    assert store.calls == 0


def test_update_malformed_path(router, store):

    object_id = subscribe(router, address, {'category': 'Computer'})
    updates = store.updates

    code, document = router.dispatch('/update/object', address, encode({'id': object_id, 'a..b': 1}))

    assert code == Code.BAD_REQUEST
    assert store.updates == updates


def test_search_requires_query(router, store):

    for document in ({}, {'query': {}}, {'query': 'Computer'}, {'query': []}):
        code, response = router.dispatch('/search', address, encode(document))
        assert code == Code.BAD_REQUEST

    assert store.calls == 0


def test_search_empty(router):

    subscribe(router, address, {'category': 'Computer'})

    code, document = router.dispatch('/search', ('127.0.0.1', 40100), encode({'query': {'category': 'Television'}}))

    assert code == Code.CONTENT
    assert document == {'response': [], 'status': 69}


def test_search(router):

    subscribe(router, ('127.0.0.1', 40001), {'category': 'Television', 'powerState': 'on'})
    subscribe(router, ('127.0.0.1', 40002), {'category': 'Television', 'powerState': 'off', 'port': 19})
    subscribe(router, ('127.0.0.1', 40003), {'category': 'Computer', 'powerState': 'on'})

    code, document = router.dispatch('/search', ('127.0.0.1', 40100), encode({'query': {'category': 'Television'}}))

    assert code == Code.CONTENT
    found = sorted((match['ip'], match['port']) for match in document['response'])
    assert found == [('127.0.0.1', 19), ('127.0.0.1', 40001)]

    code, document = router.dispatch('/search', ('127.0.0.1', 40100), encode({'query': {'category': 'Television', 'powerState': 'on'}}))
    assert document['response'] == [{'ip': '127.0.0.1', 'port': 40001}]


def test_search_after_update(router):

    object_id = subscribe(router, address, {'category': 'Television', 'powerState': 'off'})
    query = encode({'query': {'category': 'Television', 'powerState': 'on'}})

    code, document = router.dispatch('/search', address, query)
    assert document['response'] == []

    router.dispatch('/update/object', address, encode({'id': object_id, 'powerState': 'on'}))

    code, document = router.dispatch('/search', address, query)
    assert document['response'] == [{'ip': '127.0.0.1', 'port': 40001}]


def test_store_failure():

    router = cotas.broker.Router(cotas.broker.Registry(FailingStore()))

    code, document = router.dispatch('/subscribe/object', address, encode({'category': 'Computer'}))
    assert code == Code.INTERNAL_ERROR
    assert document['status'] == 160

    code, document = router.dispatch('/search', address, encode({'query': {'category': 'Computer'}}))
    assert code == Code.INTERNAL_ERROR


def test_id_exhaustion(store):

    router = cotas.broker.Router(cotas.broker.Registry(store, id_min=20000, id_max=20001, attempts=3))

    subscribe(router, ('127.0.0.1', 40001), {})
    code, document = router.dispatch('/subscribe/object', ('127.0.0.1', 40002), b'{}')

    assert code == Code.INTERNAL_ERROR


def test_routing_table():

    routes = cotas.broker.Router.routes

    assert routes['/subscribe/object'] == 'req_subscribe'
    assert routes['/subscribe/application'] == 'req_subscribe'
    assert routes['/update/object'] == 'req_update'
    assert routes['/search'] == 'req_search'

    for name in routes.values():
        assert callable(getattr(cotas.broker.Router, name))


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
