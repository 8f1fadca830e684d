""" Rendering of compiled clause sets as SPARQL 1.1 text. Everything here
    is string formatting; the patterns handed in are already made of
    rendered terms.
"""

namespace = 'http://nesped1.caf.ufv.br/od4cot#'

prefixes = (
    ('cot', namespace),
    ('rdf', 'http://www.w3.org/1999/02/22-rdf-syntax-ns#'),
    ('xsd', 'http://www.w3.org/2001/XMLSchema#'),
)

indent = '    '


def prologue():
    lines = list()
    for prefix, iri in prefixes:
        lines.append('PREFIX %s: <%s>' % (prefix, iri))

    return '\n'.join(lines) + '\n'



def triple(pattern):
    return '%s %s %s .' % (pattern.subject, pattern.predicate, pattern.object)



def group(patterns, depth=1):
    """ Return the body of a group graph pattern: every required pattern
        first, then each optional pattern in its own OPTIONAL block. An
        optional pattern only binds if everything before it already does,
        so the order matters.
    """

    lines = list()
    optional = list()
    space = indent * depth

    for pattern in patterns:
        if pattern.optional:
            optional.append(pattern)
        else:
            lines.append(space + triple(pattern))

    for pattern in optional:
        lines.append(space + 'OPTIONAL { ' + triple(pattern) + ' }')

    return '\n'.join(lines)



def update(compiled):
    """ Render a :class:`compiler.CompiledUpdate` as a single
        DELETE/INSERT/WHERE request. Either template may be absent, but not
        both; rendering an empty update is a :class:`ValueError`.
    """

    if compiled.empty:
        raise ValueError('nothing to delete or insert')

    parts = [prologue()]

    if compiled.delete:
        parts.append('DELETE {\n' + group(compiled.delete) + '\n}\n')

    if compiled.insert:
        parts.append('INSERT {\n' + group(compiled.insert) + '\n}\n')

    parts.append('WHERE {\n' + group(compiled.where) + '\n}\n')

    return ''.join(parts)



def insert_data(compiled):
    """ Render the insert set of *compiled*, which must be ground, as an
        INSERT DATA request.
    """

    return prologue() + 'INSERT DATA {\n' + group(compiled.insert) + '\n}\n'



def select(variables, patterns, distinct=True, limit=None):
    """ Render a SELECT query projecting *variables* (names without the
        leading question mark) over *patterns*.
    """

    projection = ' '.join('?' + variable for variable in variables)

    if distinct:
        head = 'SELECT DISTINCT ' + projection
    else:
        head = 'SELECT ' + projection

    text = prologue() + head + ' WHERE {\n' + group(patterns) + '\n}'

    if limit is not None:
        text += ' LIMIT %d' % (limit)

    return text + '\n'


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
