import cotas
import pytest


def test_default_catalog(catalog):

    assert catalog.object_types == 8
    assert catalog.application_types == 6

    assert catalog.subscribe(0)['category'] == 'Computer'
    assert catalog.subscribe(5)['physicalStorage/CoatHanger.material'] == 'wood'
    assert len(catalog.updates(0)) == 4
    assert catalog.request(0) == {'query': {'category': 'Computer'}}


def test_default_catalog_compiles(catalog):

    # Every shipped document must be acceptable to the broker.

    for category in range(catalog.object_types):
        cotas.graph.compiler.materialize(20001, catalog.subscribe(category))
        for update in catalog.updates(category):
            cotas.graph.compiler.compile_update(20001, update)

    for category in range(catalog.application_types):
        cotas.graph.compiler.compile_match(catalog.request(category)['query'])


def test_lookups_are_copies(catalog):

    document = catalog.subscribe(0)
    document['category'] = 'Changed'
    document['port'] = 19

    assert catalog.subscribe(0)['category'] == 'Computer'
    assert 'port' not in catalog.subscribe(0)

    updates = catalog.updates(0)
    updates.clear()
    assert len(catalog.updates(0)) == 4


def test_missing_category(catalog):

    for lookup in (catalog.subscribe, catalog.updates, catalog.request):
        with pytest.raises(KeyError):
            lookup(100)
        with pytest.raises(KeyError):
            lookup(-1)


def test_invalid_catalog():

    for raw in (b'not json', b'[]', b'{"firstMessages": []}', b'{"firstMessages": {}, "updateMessages": [], "requestMessages": []}'):
        with pytest.raises(ValueError):
            cotas.catalog.Catalog(raw)


def test_load_file(tmp_path):

    filename = tmp_path / 'messages.json'
    filename.write_text('{"firstMessages": [{"category": "Lamp"}], "updateMessages": [[{"on": true}]], "requestMessages": []}')

    catalog = cotas.catalog.load(str(filename))

    assert catalog.subscribe(0) == {'category': 'Lamp'}
    assert catalog.updates(0) == [{'on': True}]
    assert catalog.application_types == 0


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
