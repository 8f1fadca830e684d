""" The object state graph: compilation of path-keyed documents into graph
    patterns, their rendering as SPARQL, and the stores that run it.
"""

from . import compiler
from . import sparql
from . import store

from .compiler import CompiledUpdate, MalformedPath, Pattern
from .store import FusekiStore, GraphStore, StoreError, StoreUnavailable, TripleStore


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
