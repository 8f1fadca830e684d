""" The event loop shared by the broker and the clients. A :class:`Reactor`
    is single-threaded and cooperative: readable channels, expired timers,
    and callbacks handed over from other threads are all dispatched from
    the one thread calling :func:`Reactor.run`. Nothing dispatched here is
    expected to block; work that might block is handed to a worker thread,
    which posts its result back with :func:`Reactor.call_soon_threadsafe`.
"""

import collections
import heapq
import itertools
import logging
import math
import threading
import time
import zmq


logger = logging.getLogger(__name__)

zmq_context = zmq.Context()


class Event:
    """ A scheduled invocation of *method*. The only thing a caller does
        with an :class:`Event` is keep it around long enough to
        :func:`cancel` it.
    """

    def __init__(self, when, method, args):
        self.when = when
        self.method = method
        self.args = args
        self.cancelled = False


    def cancel(self):
        self.cancelled = True


    @property
    def pending(self):
        return self.cancelled == False and self.method is not None


    def _fire(self):
        method = self.method
        args = self.args

        # Drop the references so a fired event does not keep its target
        # alive, and so pending reports False afterwards.

        self.method = None
        self.args = None

        method(*args)


# end of class Event



class Reactor:
    """ Poll registered channels and fire scheduled events. The *clock* is
        any monotonic time source returning seconds; it is replaceable for
        the sake of testing.

        Channels are polled with a :class:`zmq.Poller`, which accepts any
        object with a fileno() method alongside ZeroMQ sockets. A ZeroMQ
        PAIR socket over the inproc transport is used to wake the poller
        when another thread queues a callback.
    """

    def __init__(self, clock=time.monotonic):

        self.clock = clock
        self.shutdown = False

        self._channels = dict()
        self._timers = list()
        self._sequence = itertools.count()

        self._callbacks = collections.deque()
        self._callbacks_lock = threading.Lock()

        internal = 'inproc://cotas.Reactor:signal:%d' % (id(self))
        self._signal_rx = zmq_context.socket(zmq.PAIR)
        self._signal_rx.setsockopt(zmq.LINGER, 0)
        self._signal_rx.bind(internal)
        self._signal_tx = zmq_context.socket(zmq.PAIR)
        self._signal_tx.setsockopt(zmq.LINGER, 0)
        self._signal_tx.connect(internal)

        # The lock around the ZeroMQ socket is necessary when more than one
        # worker thread signals at once; ZeroMQ makes no attempt to be
        # thread-safe.

        self._signal_lock = threading.Lock()

        self._poller = zmq.Poller()
        self._poller.register(self._signal_rx, zmq.POLLIN)


    def call_soon_threadsafe(self, method, *args):
        """ Queue *method* to be invoked on the reactor thread. This is the
            only :class:`Reactor` method that is safe to call from another
            thread.
        """

        with self._callbacks_lock:
            self._callbacks.append((method, args))

        with self._signal_lock:
            if self._signal_tx is not None:
                self._signal_tx.send(b'')


    def close(self):
        """ Release the signalling sockets. Registered channels are not
            closed here; they belong to whoever registered them.
        """

        self.shutdown = True

        for channel in list(self._channels.keys()):
            self.unregister(channel)

        with self._signal_lock:
            self._poller.unregister(self._signal_rx)
            self._signal_tx.close()
            self._signal_rx.close()
            self._signal_tx = None


    def register(self, channel, callback):
        """ Invoke *callback* with *channel* as its only argument whenever
            the channel is readable. The callback is expected to drain
            whatever is waiting.
        """

        self._channels[channel] = callback
        self._poller.register(channel, zmq.POLLIN)


    def unregister(self, channel):

        try:
            del self._channels[channel]
        except KeyError:
            return

        self._poller.unregister(channel)


    def schedule(self, delay, method, *args):
        """ Invoke *method* with *args* after *delay* seconds, and return the
            :class:`Event` that can be used to cancel it.
        """

        when = self.clock() + max(0, delay)
        event = Event(when, method, args)
        heapq.heappush(self._timers, (when, next(self._sequence), event))
        return event


    def cancel(self, event):
        if event is not None:
            event.cancel()


    def stop(self):
        """ Ask :func:`run` to return at its next opportunity. Safe to call
            from any thread.
        """

        self.shutdown = True

        with self._signal_lock:
            if self._signal_tx is not None:
                self._signal_tx.send(b'')


    def run(self, timeout=None, until=None):
        """ Dispatch events until :func:`stop` is called. If *timeout* is
            provided, return after that many seconds regardless; if *until*
            is provided, it is called after every dispatch cycle and the
            loop ends as soon as it returns True. Returns the final result
            of *until*, or None if no *until* was given.
        """

        self.shutdown = False

        if timeout is None:
            deadline = None
        else:
            deadline = self.clock() + timeout

        done = None

        while self.shutdown == False:
            if deadline is None:
                wait = None
            else:
                wait = deadline - self.clock()
                if wait <= 0:
                    break

            self.run_once(wait)

            if until is not None:
                done = until()
                if done:
                    break

        return done


    def run_once(self, timeout=None):
        """ Wait at most *timeout* seconds for something to happen, dispatch
            everything that is ready, and return. A *timeout* of None waits
            until the next timer or channel event.
        """

        wait = timeout
        upcoming = self._next_timer()

        if upcoming is not None:
            until_timer = max(0, upcoming - self.clock())
            if wait is None or until_timer < wait:
                wait = until_timer

        if wait is None:
            milliseconds = None
        else:
            milliseconds = int(math.ceil(wait * 1000))

        for active, flag in self._poller.poll(milliseconds):
            if active is self._signal_rx:
                self._drain_signal()
                continue

            try:
                callback = self._channels[active]
            except KeyError:
                # Unregistered by an earlier callback in this same cycle.
                continue

            self._dispatch(callback, (active,))

        self._fire_timers()
        self._fire_callbacks()


    def _dispatch(self, method, args):

        # One misbehaving callback should not take down every other
        # participant sharing the reactor.

        try:
            method(*args)
        except Exception:
            logger.exception("reactor callback %r failed", method)


    def _drain_signal(self):

        while True:
            try:
                self._signal_rx.recv(flags=zmq.NOBLOCK)
            except zmq.Again:
                break


    def _fire_callbacks(self):

        while True:
            with self._callbacks_lock:
                try:
                    method, args = self._callbacks.popleft()
                except IndexError:
                    break

            self._dispatch(method, args)


    def _fire_timers(self):

        now = self.clock()
        timers = self._timers

        while timers and timers[0][0] <= now:
            when, sequence, event = heapq.heappop(timers)
            if event.pending:
                self._dispatch(event._fire, ())


    def _next_timer(self):

        timers = self._timers

        # Discard cancelled events at the head so they do not cause
        # spurious wakeups.

        while timers and timers[0][2].pending == False:
            heapq.heappop(timers)

        if timers:
            return timers[0][0]
        return None


# end of class Reactor


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
