import cotas
import os
import pytest


@pytest.fixture
def home(tmp_path, monkeypatch):

    monkeypatch.setenv('COTAS_HOME', str(tmp_path))
    cotas.config.directory.found = None
    yield tmp_path
    cotas.config.directory.found = None


def test_directory(home):

    assert cotas.config.directory() == str(home)
    assert cotas.home() == str(home)


def test_directory_default(monkeypatch, tmp_path):

    monkeypatch.delenv('COTAS_HOME', raising=False)
    monkeypatch.setenv('HOME', str(tmp_path))
    cotas.config.directory.found = None

    assert cotas.config.directory() == os.path.join(str(tmp_path), '.cotas')

    cotas.config.directory.found = None


def test_directory_relative():

    with pytest.raises(ValueError):
        cotas.config.directory('relative/path')


def test_defaults(home):

    settings = cotas.config.load()

    assert settings['host'] == '0.0.0.0'
    assert settings['port'] == 5683
    assert settings['store'] == 'memory'
    assert settings['store_url'] == 'http://localhost:3030/dataset'
    assert settings['store_timeout'] == 5.0
    assert settings['initial_graph'] == []
    assert settings['id_min'] == 20000
    assert settings['id_max'] == 20000000
    assert settings['id_attempts'] == 1000
    assert settings['workers'] == 4
    assert settings['catalog'] is None

    with pytest.raises(KeyError):
        settings['nonexistent']


def test_load_file(home):

    (home / 'cotas.json').write_text('{"port": 15683, "store": "fuseki", "workers": 8}')

    settings = cotas.config.load()

    assert settings['port'] == 15683
    assert settings['store'] == 'fuseki'
    assert settings['workers'] == 8
    assert settings['host'] == '0.0.0.0'


def test_load_named_file(tmp_path):

    filename = tmp_path / 'other.json'
    filename.write_text('{"id_min": 100, "id_max": 200}')

    settings = cotas.config.load(str(filename))

    assert settings['id_min'] == 100
    assert settings['id_max'] == 200

    with pytest.raises(FileNotFoundError):
        cotas.config.load(str(tmp_path / 'missing.json'))


def test_unknown_key(home):

    (home / 'cotas.json').write_text('{"prot": 15683}')

    with pytest.raises(KeyError):
        cotas.config.load()


def test_invalid_file(home):

    (home / 'cotas.json').write_text('[1, 2]')

    with pytest.raises(ValueError):
        cotas.config.load()


def test_replace(home):

    settings = cotas.config.load()
    changed = settings.replace(port=9999, host=None)

    assert changed['port'] == 9999
    assert changed['host'] == '0.0.0.0'
    assert settings['port'] == 5683

    with pytest.raises(KeyError):
        settings.replace(colour='red')


def test_settings_are_read_only(home):

    settings = cotas.config.load()

    with pytest.raises(TypeError):
        settings['port'] = 1


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
