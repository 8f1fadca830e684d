""" Command line entry points for the broker and the two client roles.
"""

import argparse
import logging
import os

from . import catalog
from . import config
from .broker import Broker, Registry
from .client import Consumer, Provider
from .graph import store
from .transport import Reactor


logger = logging.getLogger(__name__)

default_port = 5683


def address(text):
    """ Parse a HOST:PORT argument. The port is optional and defaults to the
        standard broker port.
    """

    if ':' in text:
        host, port = text.rsplit(':', 1)
        try:
            port = int(port)
        except ValueError:
            raise argparse.ArgumentTypeError('invalid port in ' + repr(text))
    else:
        host = text
        port = default_port

    if host == '':
        raise argparse.ArgumentTypeError('missing host in ' + repr(text))

    return (host, port)



def parser(description):

    arguments = argparse.ArgumentParser(description=description)
    arguments.add_argument('-c', '--config', default=None, help='configuration file (default: $COTAS_HOME/cotas.json)')

    verbosity = arguments.add_mutually_exclusive_group()
    verbosity.add_argument('-v', '--verbose', action='store_true', help='log at DEBUG level')
    verbosity.add_argument('-q', '--quiet', action='store_true', help='log at WARNING level')

    return arguments



def client_parser(description, type_help):

    arguments = parser(description)
    arguments.add_argument('--broker', type=address, default=('127.0.0.1', default_port), help='broker address as HOST:PORT (default: 127.0.0.1:%d)' % (default_port))
    arguments.add_argument('--type', type=int, default=0, help=type_help)
    arguments.add_argument('--interval', type=float, default=1.0, help='seconds between requests (default: 1.0)')
    arguments.add_argument('--count', type=int, default=0, help='number of requests to send, 0 for no limit (default: 0)')
    arguments.add_argument('--catalog', default=None, help='message catalog (default: the packaged catalog)')

    return arguments



def setup_logging(parsed):

    if parsed.verbose:
        level = logging.DEBUG
    elif parsed.quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    logging.basicConfig(level=level, format='%(asctime)s %(levelname)s %(name)s: %(message)s')



def load_catalog(parsed, settings):

    filename = parsed.catalog
    if filename is None:
        filename = settings['catalog']

    return catalog.load(filename)



def broker_main(argv=None):

    arguments = parser('Run the CoTaS context broker.')
    arguments.add_argument('--host', default=None, help='address to bind (default: 0.0.0.0)')
    arguments.add_argument('--port', type=int, default=None, help='port to bind (default: %d)' % (default_port))
    arguments.add_argument('--store', choices=('memory', 'fuseki'), default=None, help='triple store to use (default: memory)')
    arguments.add_argument('--store-url', default=None, help='SPARQL dataset URL for the fuseki store')
    arguments.add_argument('--workers', type=int, default=None, help='number of worker threads (default: 4)')

    parsed = arguments.parse_args(argv)
    setup_logging(parsed)

    settings = config.load(parsed.config)
    settings = settings.replace(host=parsed.host, port=parsed.port, store=parsed.store, store_url=parsed.store_url, workers=parsed.workers)

    triples = store.create(settings['store'], settings['store_url'], settings['store_timeout'])

    documents = list()
    for filename in settings['initial_graph']:
        with open(os.path.expanduser(filename), 'r', encoding='utf-8') as file:
            documents.append(file.read())

    if documents:
        triples.load_initial_graph(documents)
        logger.info("loaded %d initial graph documents", len(documents))

    registry = Registry(triples, settings['id_min'], settings['id_max'], settings['id_attempts'])
    broker = Broker(registry, host=settings['host'], port=settings['port'], workers=settings['workers'])

    broker.start()

    try:
        broker.run()
    except KeyboardInterrupt:
        pass
    finally:
        broker.stop()
        triples.close()

    return 0



def provider_main(argv=None):

    arguments = client_parser('Run a CoTaS context provider.', 'object category index into the catalog (default: 0)')
    arguments.add_argument('--advertise-port', type=int, default=None, help='port advertised to consumers (default: the local port)')

    parsed = arguments.parse_args(argv)
    setup_logging(parsed)

    settings = config.load(parsed.config)
    messages = load_catalog(parsed, settings)

    reactor = Reactor()
    provider = Provider(parsed.broker, messages, parsed.type, advertised_port=parsed.advertise_port, reactor=reactor, interval=parsed.interval, count=parsed.count)

    return _run_client(provider, reactor)



def consumer_main(argv=None):

    arguments = client_parser('Run a CoTaS context consumer.', 'application category index into the catalog (default: 0)')
    arguments.add_argument('--research-after', type=int, default=None, help='search again after this many unanswered requests (default: never)')

    parsed = arguments.parse_args(argv)
    setup_logging(parsed)

    settings = config.load(parsed.config)
    messages = load_catalog(parsed, settings)

    reactor = Reactor()
    consumer = Consumer(parsed.broker, messages, parsed.type, research_after=parsed.research_after, reactor=reactor, interval=parsed.interval, count=parsed.count)

    return _run_client(consumer, reactor)



def _run_client(session, reactor):

    session.start()

    try:
        reactor.run(until=lambda: session.done)

        # Give the last request one interval to be answered.
        reactor.run(timeout=session.interval)

    except KeyboardInterrupt:
        pass
    finally:
        session.stop()
        reactor.close()

    logger.info("sent %d requests, received %d responses", session.sent, session.received)
    return 0


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
