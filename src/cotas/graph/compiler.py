""" Translation of flat, path-keyed documents into graph patterns.

    A path key is a chain of property names joined by two delimiters. A dot
    descends: the current node has the named property, and its value is the
    node the walk continues on. A slash types: the current node is an
    instance of the named class, and the walk stays where it is. The last
    token of a key is always a property, and the document value is the new
    value of that property:

        "physicalStorage/CoatHanger.material": "wood"

    says the device has a physicalStorage node, that node is a CoatHanger,
    and its material is now "wood".

    Every node reached by a walk is named by a synthetic variable derived
    from the path that reached it. Two keys sharing a prefix always derive
    the same variable for that prefix, which is what lets the clause sets
    suppress duplicate patterns without losing the fact that both keys talk
    about the same node.
"""

import collections
import math
import re

from ..protocol import fields


anchor = 'device'
identifier = 'objectId'
address_property = 'ipAddress'
port_property = 'port'

DESCEND = '.'
TYPED = '/'

_token_pattern = re.compile(r'[A-Za-z_][A-Za-z0-9_-]*\Z')

Pattern = collections.namedtuple('Pattern', ('subject', 'predicate', 'object', 'optional'), defaults=(False,))


class MalformedPath(ValueError):
    """ A path key or value that cannot be compiled.
    """



class CompiledUpdate:
    """ The three clause sets of a single graph update, plus the table of
        synthetic variables assigned along the way. Each clause set is a
        dictionary used as an insertion-ordered set of :class:`Pattern`
        instances; adding a pattern twice is a no-op.

        :ivar delete: patterns removed from the graph.
        :ivar insert: patterns added to the graph.
        :ivar where: patterns that bind the variables used by the other two.
        :ivar variables: path prefix to synthetic variable name.
    """

    def __init__(self):
        self.delete = dict()
        self.insert = dict()
        self.where = dict()
        self.variables = dict()


    def __repr__(self):
        return 'CompiledUpdate(delete=%d, insert=%d, where=%d)' % (len(self.delete), len(self.insert), len(self.where))


    @property
    def empty(self):
        return len(self.delete) == 0 and len(self.insert) == 0


    @property
    def required(self):
        return [pattern for pattern in self.where if pattern.optional == False]


    @property
    def optional(self):
        return [pattern for pattern in self.where if pattern.optional == True]


# end of class CompiledUpdate



def tokenize(key):
    """ Split *key* on both delimiters, keeping the delimiters as tokens in
        between the names. The result always has an odd length, with names
        at the even positions. Raises :class:`MalformedPath` if any name is
        not an identifier or if the key ends in a type.
    """

    tokens = list()
    current = list()

    for character in key:
        if character == DESCEND or character == TYPED:
            tokens.append(''.join(current))
            tokens.append(character)
            current = list()
        else:
            current.append(character)

    tokens.append(''.join(current))

    for position in range(0, len(tokens), 2):
        name = tokens[position]

        # A leading slash types the device itself; that is the only place
        # an empty name is allowed.

        if position == 0 and name == '' and len(tokens) > 1 and tokens[1] == TYPED:
            continue

        if _token_pattern.match(name) is None:
            raise MalformedPath('invalid name %s in path key %s' % (repr(name), repr(key)))

    if len(tokens) > 1 and tokens[-2] == TYPED:
        raise MalformedPath('path key ends in a type: ' + repr(key))

    return tokens



def flatten(document, prefix=''):
    """ Return a flat copy of *document*, joining the keys of any nested
        dictionary onto the key that holds it with a dot.
    """

    flat = dict()

    for key, value in document.items():
        key = prefix + key

        if isinstance(value, dict):
            flat.update(flatten(value, key + DESCEND))
        else:
            flat[key] = value

    return flat



def compile_update(anchor_id, document):
    """ Compile *document* into a single :class:`CompiledUpdate` that sets
        every named property on the object identified by *anchor_id*. The
        control fields (id, req, object, category) are ignored.
    """

    compiled = CompiledUpdate()
    device = variable(anchor)

    _add(compiled.where, Pattern(device, iri(identifier), literal(anchor_id)))

    for key, value in _fields(document):
        node, leaf, structure = _walk(key, compiled.variables)

        for pattern in structure:
            _add(compiled.where, pattern)

        old = variable('old_%s_%s' % (node, _safe(leaf)))
        node = variable(node)
        predicate = iri(leaf)

        _add(compiled.delete, Pattern(node, predicate, old))
        _add(compiled.where, Pattern(node, predicate, old, True))

        for term in _literals(key, value):
            _add(compiled.insert, Pattern(node, predicate, term))

    return compiled



def compile_match(query):
    """ Compile a search *query* into required where patterns. The query
        uses the same path keys as an update, with the values as constants
        the matching object must carry; a null value only requires that
        the property be present. The 'category' field, a string or a list
        of strings, requires the device to be an instance of each class.
    """

    compiled = CompiledUpdate()
    device = variable(anchor)

    for category in _categories(query):
        _add(compiled.where, Pattern(device, 'a', iri(category)))

    for key, value in _fields(query):
        node, leaf, structure = _walk(key, compiled.variables)

        for pattern in structure:
            _add(compiled.where, pattern)

        predicate = iri(leaf)

        if value is None:
            term = variable('value_%s_%s' % (node, _safe(leaf)))
            _add(compiled.where, Pattern(variable(node), predicate, term))
            continue

        for term in _literals(key, value):
            _add(compiled.where, Pattern(variable(node), predicate, term))

    return compiled



def materialize(anchor_id, document):
    """ Compile the initial state of a newly subscribed object into ground
        triples, all in the insert set. Every node gets an IRI derived from
        the synthetic variable a later update would use to reach it, so the
        structure written here is exactly what those updates will match.
    """

    compiled = CompiledUpdate()
    device = node_iri(anchor_id, anchor)

    _add(compiled.insert, Pattern(device, iri(identifier), literal(anchor_id)))

    for category in _categories(document):
        _add(compiled.insert, Pattern(device, 'a', iri(category)))

    for key, value in _fields(document):
        node, leaf, structure = _walk(key, compiled.variables)

        for pattern in structure:
            subject = _ground(anchor_id, pattern.subject)
            object = _ground(anchor_id, pattern.object)
            _add(compiled.insert, Pattern(subject, pattern.predicate, object))

        subject = node_iri(anchor_id, node)
        predicate = iri(leaf)

        for term in _literals(key, value):
            _add(compiled.insert, Pattern(subject, predicate, term))

    return compiled



def _walk(key, variables):
    """ Walk the path *key* from the device node. Returns the name of the
        node that owns the leaf property, the leaf property itself, and the
        list of patterns binding every node along the way. Each node reached
        is recorded in *variables*, keyed by the path prefix that reached it.
    """

    tokens = tokenize(key)
    last = len(tokens) - 1
    structure = list()

    node = anchor
    position = 0

    # Leading type assertions apply to the device itself.

    if tokens[0] == '':
        position = 1
        while position < last and tokens[position] == TYPED:
            structure.append(Pattern(variable(node), 'a', iri(tokens[position + 1])))
            position += 2
        position += 1

    while position < last:
        name = tokens[position]
        position += 1

        # Collect the type tokens immediately following this property; they
        # become the safe suffix of the next node's variable, so that the
        # same property typed differently reaches a different node.

        suffix = list()
        while position < last and tokens[position] == TYPED:
            suffix.append(tokens[position + 1])
            position += 2

        following = _name(node, name, suffix)
        prefix = ''.join(tokens[:position])
        variables[prefix] = following

        structure.append(Pattern(variable(node), iri(name), variable(following)))
        for type in suffix:
            structure.append(Pattern(variable(following), 'a', iri(type)))

        node = following

        # Skip the descend delimiter.
        position += 1

    return node, tokens[last], structure



def _name(node, property, suffix):
    """ Derive the synthetic variable name for the node reached from *node*
        through *property*, typed by each class in *suffix*. A single
        underscore marks a property step and a double underscore marks a
        type. Underscores and hyphens inside a name are escaped by
        :func:`_safe` as an underscore followed by a digit, and no name
        starts with a digit, so the mapping from paths to variable names
        is one-to-one.
    """

    stack = list(suffix)
    types = list()

    while stack:
        types.append('__' + _safe(stack.pop(0)))

    return node + '_' + _safe(property) + ''.join(types)



_variable_escapes = {
    '_': '_0',
    '-': '_1',
}


def _safe(name):
    """ Return *name* with every character a SPARQL variable name cannot
        carry, or that the naming scheme reserves, escaped.
    """

    return ''.join(_variable_escapes.get(character, character) for character in name)



def _fields(document):

    for key, value in flatten(document).items():
        if key in fields.control_fields:
            continue
        yield key, value



def _categories(document):

    try:
        categories = document['category']
    except KeyError:
        return ()

    if isinstance(categories, str):
        categories = (categories,)

    for category in categories:
        if not isinstance(category, str) or _token_pattern.match(category) is None:
            raise MalformedPath('invalid category: ' + repr(category))

    return tuple(categories)



def _literals(key, value):

    if value is None:
        return ()

    if isinstance(value, (list, tuple)):
        values = value
    else:
        values = (value,)

    terms = list()
    for value in values:
        try:
            terms.append(literal(value))
        except TypeError:
            raise MalformedPath('unsupported value for %s: %s' % (repr(key), repr(value)))

    return terms



def _add(clauses, pattern):
    clauses[pattern] = True



def _ground(anchor_id, term):
    """ Replace a node variable with the IRI :func:`materialize` gives it.
        Anything that is not a variable is returned unchanged.
    """

    if term.startswith('?'):
        return node_iri(anchor_id, term[1:])
    return term



def variable(name):
    return '?' + name



def iri(name):
    return 'cot:' + name



def node_iri(anchor_id, node):
    """ Return the IRI of the node named *node* belonging to the object
        *anchor_id*; the device node itself is cot:object<id>.
    """

    if node == anchor:
        return 'cot:object%d' % (anchor_id)

    return 'cot:object%d%s' % (anchor_id, node[len(anchor):])



def literal(value):
    """ Render a JSON scalar as a SPARQL literal.
    """

    if value is True:
        return 'true'
    if value is False:
        return 'false'

    if isinstance(value, int):
        return str(value)

    if isinstance(value, float):
        if math.isnan(value):
            lexical = 'NaN'
        elif math.isinf(value):
            lexical = 'INF' if value > 0 else '-INF'
        else:
            lexical = repr(value)
        return '"%s"^^xsd:double' % (lexical)

    if isinstance(value, str):
        return '"' + _escape(value) + '"'

    raise TypeError('cannot render %s as a literal' % (type(value).__name__))


_escapes = {
    '\\': '\\\\',
    '"': '\\"',
    '\n': '\\n',
    '\r': '\\r',
    '\t': '\\t',
    '\b': '\\b',
    '\f': '\\f',
}


def _escape(text):
    return ''.join(_escapes.get(character, character) for character in text)


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
