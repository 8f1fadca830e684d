""" Adapters for the triple store holding the state of every registered
    object. Two implementations share one interface: :class:`FusekiStore`
    speaks the SPARQL 1.1 Protocol to an external service over HTTP, and
    :class:`GraphStore` runs the same SPARQL text against an in-process
    :class:`rdflib.Graph`.

    Query results are returned as a list of dictionaries, one per solution,
    mapping variable names to plain Python values. Unbound variables are
    absent from the dictionary.
"""

import abc
import logging
import threading

import rdflib
import requests


logger = logging.getLogger(__name__)

_xsd = 'http://www.w3.org/2001/XMLSchema#'
_integers = frozenset(_xsd + name for name in ('integer', 'int', 'long', 'short', 'byte', 'nonNegativeInteger', 'positiveInteger', 'unsignedInt', 'unsignedShort', 'unsignedLong'))
_floats = frozenset(_xsd + name for name in ('double', 'float', 'decimal'))


class StoreError(Exception):
    """ The store rejected a request, or answered with something that
        could not be interpreted.
    """


class StoreUnavailable(StoreError):
    """ The store could not be reached at all.
    """



class TripleStore(abc.ABC):

    @abc.abstractmethod
    def run_query(self, text):
        """ Run the SPARQL SELECT *text* and return the list of solutions.
        """

        raise NotImplementedError('run_query() must be implemented by subclasses')


    @abc.abstractmethod
    def run_update(self, text):
        """ Run the SPARQL update *text*. A single call is applied
            atomically by the store.
        """

        raise NotImplementedError('run_update() must be implemented by subclasses')


    @abc.abstractmethod
    def load_initial_graph(self, documents):
        """ Load each Turtle document in *documents* into the default
            graph. Used once at startup to seed the ontology and any
            static facts.
        """

        raise NotImplementedError('load_initial_graph() must be implemented by subclasses')


    def close(self):
        pass


# end of class TripleStore



class FusekiStore(TripleStore):
    """ Talk to an Apache Jena Fuseki dataset, or anything else exposing
        the SPARQL 1.1 Protocol, at *url*. The query, update, and graph
        store endpoints are expected at /query, /update, and /data below
        the dataset URL. The *session* is a :class:`requests.Session`, or
        anything with a compatible post() method.
    """

    def __init__(self, url='http://localhost:3030/dataset', timeout=5.0, session=None):

        if session is None:
            session = requests.Session()

        self.url = url.rstrip('/')
        self.timeout = timeout
        self.session = session


    def close(self):
        self.session.close()


    def load_initial_graph(self, documents):

        headers = {'Content-Type': 'text/turtle; charset=utf-8'}

        for document in documents:
            if isinstance(document, str):
                document = document.encode('utf-8')

            self._post('/data', data=document, headers=headers)


    def run_query(self, text):

        headers = {'Accept': 'application/sparql-results+json'}
        response = self._post('/query', data={'query': text}, headers=headers)

        try:
            results = response.json()
            bindings = results['results']['bindings']
        except (ValueError, KeyError, TypeError):
            raise StoreError('unexpected response to a query: ' + repr(response.text[:300]))

        rows = list()
        for binding in bindings:
            row = dict()
            for name, term in binding.items():
                row[name] = _from_json(term)
            rows.append(row)

        return rows


    def run_update(self, text):
        self._post('/update', data={'update': text})


    def _post(self, endpoint, **kwargs):

        url = self.url + endpoint
        logger.debug("POST %s", url)

        try:
            response = self.session.post(url, timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise StoreUnavailable('%s is unreachable: %s' % (url, str(e)))

        if response.status_code >= 400:
            raise StoreError('%s returned %d: %s' % (url, response.status_code, response.text[:300]))

        return response


# end of class FusekiStore



class GraphStore(TripleStore):
    """ Keep the graph in memory with :mod:`rdflib`. The graph is not
        thread-safe, so every request holds a lock for its duration; that
        also makes each update atomic with respect to every other request.
    """

    def __init__(self, graph=None):

        if graph is None:
            graph = rdflib.Graph()

        self.graph = graph
        self.lock = threading.Lock()


    def __len__(self):
        return len(self.graph)


    def load_initial_graph(self, documents):

        with self.lock:
            for document in documents:
                try:
                    self.graph.parse(data=document, format='turtle')
                except Exception as e:
                    raise StoreError('cannot parse initial graph: ' + str(e))


    def run_query(self, text):

        with self.lock:
            try:
                results = self.graph.query(text)
                solutions = list(results)
            except Exception as e:
                raise StoreError('query failed: ' + str(e))

        rows = list()
        for solution in solutions:
            row = dict()
            for name, term in solution.asdict().items():
                row[name] = _from_term(term)
            rows.append(row)

        return rows


    def run_update(self, text):

        with self.lock:
            try:
                self.graph.update(text)
            except Exception as e:
                raise StoreError('update failed: ' + str(e))


# end of class GraphStore



def create(kind='memory', url=None, timeout=5.0):
    """ Return the store described by *kind*: 'memory' for a
        :class:`GraphStore`, 'fuseki' for a :class:`FusekiStore` at *url*.
    """

    if kind == 'memory':
        return GraphStore()

    if kind == 'fuseki':
        if url is None:
            return FusekiStore(timeout=timeout)
        return FusekiStore(url, timeout)

    raise ValueError('unknown store type: ' + repr(kind))



def _from_json(term):
    """ Convert one term of a SPARQL JSON result binding to a Python value.
    """

    value = term['value']

    if term['type'] != 'literal' and term['type'] != 'typed-literal':
        return value

    try:
        datatype = term['datatype']
    except KeyError:
        return value

    if datatype in _integers:
        return int(value)
    if datatype in _floats:
        return float(value)
    if datatype == _xsd + 'boolean':
        return value == 'true' or value == '1'

    return value



def _from_term(term):

    if isinstance(term, rdflib.Literal):
        value = term.toPython()

        # Literals of unknown datatypes come back as the Literal itself.
        if isinstance(value, str):
            return str(value)
        return value

    return str(term)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
