# -*- coding: utf-8 -
#
# This file is part of watchserve released under the MIT license.
# See the NOTICE for more information.

"""\
Single-slot primitives used to coordinate reloads between the file
watcher, the reload coordinator and the accept loop.
"""

import threading
import time


class ChannelClosed(Exception):
    """ Raised on any blocking operation of a closed channel """


class Channel(object):
    """\
    A closable channel holding at most one item.

    ``put`` blocks while the slot is full, ``offer`` never blocks and
    drops the item instead. ``get`` blocks until an item is available.
    """

    def __init__(self):
        self._cond = threading.Condition()
        self._item = None
        self._full = False
        self._closed = False

    @property
    def closed(self):
        return self._closed

    def __len__(self):
        return 1 if self._full else 0

    def put(self, item, timeout=None):
        with self._cond:
            if not self._wait_for(lambda: not self._full, timeout):
                return False
            self._store(item)
            return True

    def offer(self, item):
        """\
        Store ``item`` if the slot is free. Returns False when an item is
        already pending, in which case ``item`` is dropped.
        """
        with self._cond:
            if self._closed:
                raise ChannelClosed()
            if self._full:
                return False
            self._store(item)
            return True

    def get(self, timeout=None):
        """\
        Take the pending item. Returns None if ``timeout`` expires first.
        """
        with self._cond:
            if not self._wait_for(lambda: self._full, timeout):
                return None
            item, self._item, self._full = self._item, None, False
            self._cond.notify_all()
            return item

    def close(self):
        with self._cond:
            self._closed = True
            self._item, self._full = None, False
            self._cond.notify_all()

    def _store(self, item):
        self._item, self._full = item, True
        self._cond.notify_all()

    def _wait_for(self, predicate, timeout):
        # must be called with the condition held
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            if self._closed:
                raise ChannelClosed()
            if predicate():
                return True
            if deadline is None:
                self._cond.wait()
                continue
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return False
            self._cond.wait(remaining)


class Rendezvous(object):
    """\
    Zero-payload handshake between the reload coordinator and the accept
    loop.

    ``signal()`` returns once the other side took the signal with
    ``wait()`` and confirmed with ``ack()``. At most one signal is ever
    in flight.
    """

    def __init__(self):
        self._cond = threading.Condition()
        self._pending = False
        self._sent = 0
        self._acked = 0
        self._closed = False

    @property
    def closed(self):
        return self._closed

    def signal(self):
        with self._cond:
            while self._pending and not self._closed:
                self._cond.wait()
            if self._closed:
                raise ChannelClosed()
            self._pending = True
            self._sent += 1
            ticket = self._sent
            self._cond.notify_all()

            while self._acked < ticket:
                if self._closed:
                    raise ChannelClosed()
                self._cond.wait()

    def wait(self, timeout=None):
        """\
        Block until a signal is pending. Returns False if ``timeout``
        expires first.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while True:
                if self._closed:
                    raise ChannelClosed()
                if self._pending:
                    return True
                if deadline is None:
                    self._cond.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._cond.wait(remaining)

    def ack(self):
        with self._cond:
            if not self._pending:
                return
            self._pending = False
            self._acked = self._sent
            self._cond.notify_all()

    def close(self):
        with self._cond:
            self._closed = True
            self._cond.notify_all()
