import cotas
import pytest
import requests

from cotas.graph import compiler
from cotas.graph import sparql
from cotas.graph import store


def select_property(graph, object_id, property):

    device = compiler.variable(compiler.anchor)
    patterns = (
        compiler.Pattern(device, compiler.iri(compiler.identifier), compiler.literal(object_id)),
        compiler.Pattern(device, compiler.iri(property), '?value'),
    )

    rows = graph.run_query(sparql.select(('value',), patterns))
    return sorted(row['value'] for row in rows)


def test_graph_store_round_trip():

    graph = store.GraphStore()

    initial = compiler.materialize(20001, {'category': 'Wardrobe', 'color': 'white', 'physicalStorage/CoatHanger.material': 'wood', 'load': 1.5, 'doorOpen': False})
    graph.run_update(sparql.insert_data(initial))

    assert select_property(graph, 20001, 'color') == ['white']
    assert select_property(graph, 20001, 'load') == [1.5]
    assert select_property(graph, 20001, 'doorOpen') == [False]
    assert select_property(graph, 20001, 'objectId') == [20001]

    update = compiler.compile_update(20001, {'color': 'black', 'physicalStorage/CoatHanger.material': 'steel'})
    graph.run_update(sparql.update(update))

    assert select_property(graph, 20001, 'color') == ['black']

    rows = graph.run_query(sparql.select(('material',), (
        compiler.Pattern('cot:object20001_physicalStorage__CoatHanger', 'cot:material', '?material'),
    )))
    assert rows == [{'material': 'steel'}]


def test_graph_store_sets_new_property():

    graph = store.GraphStore()
    graph.run_update(sparql.insert_data(compiler.materialize(20001, {'color': 'white'})))

    update = compiler.compile_update(20001, {'volume': 11})
    graph.run_update(sparql.update(update))

    assert select_property(graph, 20001, 'volume') == [11]


def test_graph_store_missing_structure_is_a_no_op():

    graph = store.GraphStore()
    graph.run_update(sparql.insert_data(compiler.materialize(20001, {'color': 'white'})))
    before = len(graph)

    update = compiler.compile_update(20001, {'display/Screen.brightness': 80})
    graph.run_update(sparql.update(update))

    assert len(graph) == before


def test_graph_store_null_deletes():

    graph = store.GraphStore()
    graph.run_update(sparql.insert_data(compiler.materialize(20001, {'color': 'white', 'name': 'x'})))

    update = compiler.compile_update(20001, {'color': None})
    graph.run_update(sparql.update(update))

    assert select_property(graph, 20001, 'color') == []
    assert select_property(graph, 20001, 'name') == ['x']


def test_graph_store_update_leaves_other_objects_alone():

    graph = store.GraphStore()
    graph.run_update(sparql.insert_data(compiler.materialize(20001, {'color': 'white'})))
    graph.run_update(sparql.insert_data(compiler.materialize(20002, {'color': 'white'})))

    graph.run_update(sparql.update(compiler.compile_update(20001, {'color': 'red'})))

    assert select_property(graph, 20001, 'color') == ['red']
    assert select_property(graph, 20002, 'color') == ['white']


def test_graph_store_initial_graph():

    graph = store.GraphStore()
    turtle = '@prefix cot: <http://nesped1.caf.ufv.br/od4cot#> .\ncot:Wardrobe a cot:Furniture .\n'
    graph.load_initial_graph([turtle])

    assert len(graph) == 1

    with pytest.raises(store.StoreError):
        graph.load_initial_graph(['this is not turtle'])


def test_graph_store_errors():

    graph = store.GraphStore()

    with pytest.raises(store.StoreError):
        graph.run_query('SELECT nonsense')

    with pytest.raises(store.StoreError):
        graph.run_update('INSERT nonsense')


def test_create():

    assert isinstance(store.create('memory'), store.GraphStore)

    fuseki = store.create('fuseki', 'http://example.com:3030/things/', 2.0)
    assert isinstance(fuseki, store.FusekiStore)
    assert fuseki.url == 'http://example.com:3030/things'
    assert fuseki.timeout == 2.0

    with pytest.raises(ValueError):
        store.create('mongo')



class StubResponse:

    def __init__(self, status_code=200, body=None, text=''):
        self.status_code = status_code
        self.body = body
        self.text = text

    def json(self):
        if self.body is None:
            raise ValueError('no JSON here')
        return self.body


class StubSession:

    def __init__(self, *responses):
        self.responses = list(responses)
        self.posts = list()
        self.closed = False

    def post(self, url, timeout=None, **kwargs):
        self.posts.append((url, timeout, kwargs))
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self):
        self.closed = True



def test_fuseki_query():

    xsd = 'http://www.w3.org/2001/XMLSchema#'
    body = {
        'head': {'vars': ['ip', 'port', 'flag', 'load', 'node']},
        'results': {'bindings': [
            {
                'ip': {'type': 'literal', 'value': '127.0.0.1'},
                'port': {'type': 'literal', 'value': '40001', 'datatype': xsd + 'integer'},
                'flag': {'type': 'literal', 'value': 'true', 'datatype': xsd + 'boolean'},
                'load': {'type': 'literal', 'value': '0.5', 'datatype': xsd + 'double'},
                'node': {'type': 'uri', 'value': 'http://nesped1.caf.ufv.br/od4cot#object20001'},
            },
            {
                'ip': {'type': 'literal', 'value': '10.0.0.2'},
            },
        ]},
    }

    session = StubSession(StubResponse(body=body))
    fuseki = store.FusekiStore('http://localhost:3030/dataset', 3.0, session)

    rows = fuseki.run_query('SELECT ?ip WHERE { }')

    assert rows == [
        {'ip': '127.0.0.1', 'port': 40001, 'flag': True, 'load': 0.5, 'node': 'http://nesped1.caf.ufv.br/od4cot#object20001'},
        {'ip': '10.0.0.2'},
    ]

    url, timeout, kwargs = session.posts[0]
    assert url == 'http://localhost:3030/dataset/query'
    assert timeout == 3.0
    assert kwargs['data'] == {'query': 'SELECT ?ip WHERE { }'}
    assert kwargs['headers']['Accept'] == 'application/sparql-results+json'


def test_fuseki_update_and_data():

    session = StubSession(StubResponse(204), StubResponse(200))
    fuseki = store.FusekiStore('http://localhost:3030/dataset/', session=session)

    fuseki.run_update('INSERT DATA { }')
    fuseki.load_initial_graph(['@prefix cot: <http://nesped1.caf.ufv.br/od4cot#> .'])

    url, timeout, kwargs = session.posts[0]
    assert url == 'http://localhost:3030/dataset/update'
    assert kwargs['data'] == {'update': 'INSERT DATA { }'}

    url, timeout, kwargs = session.posts[1]
    assert url == 'http://localhost:3030/dataset/data'
    assert kwargs['headers']['Content-Type'].startswith('text/turtle')
    assert isinstance(kwargs['data'], bytes)

    fuseki.close()
    assert session.closed == True


def test_fuseki_errors():

    session = StubSession(StubResponse(400, text='Parse error'))
    fuseki = store.FusekiStore(session=session)

    with pytest.raises(store.StoreError) as error:
        fuseki.run_update('broken')
    assert 'Parse error' in str(error.value)

    session = StubSession(requests.ConnectionError('refused'))
    fuseki = store.FusekiStore(session=session)

    with pytest.raises(store.StoreUnavailable):
        fuseki.run_query('SELECT * WHERE { }')

    session = StubSession(StubResponse(200, body=None, text='<html>'))
    fuseki = store.FusekiStore(session=session)

    with pytest.raises(store.StoreError):
        fuseki.run_query('SELECT * WHERE { }')


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
