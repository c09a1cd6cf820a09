# -*- coding: utf-8 -
#
# This file is part of watchserve released under the MIT license.
# See the NOTICE for more information.

import os
import threading

from watchserve import sock, util
from watchserve.channel import Channel, ChannelClosed, Rendezvous
from watchserve.config import Config
from watchserve.coordinator import ReloadCoordinator
from watchserve.errors import BindError
from watchserve.handler import HandlerRef
from watchserve.watcher import ChangeEvent, FileWatcher


class WatchServer(object):
    """\
    A server whose handler is rebuilt each time a watched file is written
    to, without ever rebinding its listening socket.

    The watched path is pushed to ``reload_file`` once at construction, so
    the first call of the rebuild callback doesn't block.
    """

    def __init__(self, path, cfg=None, log=None):
        self.cfg = cfg or Config()
        self.log = log or self.cfg.logger_class(self.cfg)
        self.path = os.path.abspath(path)

        self.reload_file = Channel()
        self.rendezvous = Rendezvous()
        self.handler_ref = HandlerRef()

        self.listener = None
        self.cycle = None
        self.cycle_count = 0
        self.coordinator = None
        self._stopped = threading.Event()

        self.watcher = FileWatcher(self.path, self.file_changed,
                                   engine=self.cfg.reload_engine,
                                   interval=self.cfg.reload_interval,
                                   log=self.log)
        # primed before the watcher runs, an early write is then coalesced
        self.reload_file.put(ChangeEvent(self.path))
        self.watcher.start()

    def __str__(self):
        return "<WatchServer %s>" % self.path

    @property
    def address(self):
        if self.listener is None:
            return None
        return self.listener.getsockname()

    @property
    def handler(self):
        return self.handler_ref.peek()

    @property
    def stopped(self):
        return self._stopped.is_set()

    def set_handler(self, handler):
        """\
        Install ``handler``, the WSGI application served by the next serve
        cycle. Meant to be called from the rebuild callback.
        """
        self.handler_ref.set(handler)
        self.log.debug("Handler installed (version %d): %r",
                       self.handler_ref.version, handler)

    def next_change(self, timeout=None):
        """\
        Block until the watched file changes and return the
        ``ChangeEvent``. Returns None if ``timeout`` expires first.
        """
        return self.reload_file.get(timeout=timeout)

    def file_changed(self, event):
        try:
            if not self.reload_file.offer(event):
                self.log.debug("Reload already pending, dropping change of %s",
                               event.path)
        except ChannelClosed:
            pass

    def listen_and_serve(self, address, rebuild):
        """\
        Build the first handler, bind ``address`` and serve until
        ``shutdown()`` is called.

        ``rebuild(server)`` is called once before anything is served, then
        again for every reload. Raises ``BindError`` if ``address`` can't
        be bound, in which case nothing is served.
        """
        if self.coordinator is not None:
            raise RuntimeError("%s is already serving" % self)

        self.coordinator = ReloadCoordinator(self, rebuild, self.log)
        try:
            self.cfg.on_starting(self)
            self.coordinator.rebuild()
            self.bind(address)

            self.spawn_cycle()
            self.coordinator.start()
            self.cfg.when_ready(self)
            self.accept_loop()
        finally:
            self.halt()

        if self.coordinator.error is not None:
            raise self.coordinator.error

    def bind(self, address):
        if self.listener is not None:
            raise BindError(address, "%s is already bound" % self)

        if address is None:
            addr = self.cfg.address
        else:
            addr = util.parse_address(address)
        self.listener = sock.create_socket(self.cfg, self.log, addr)
        self.log.info("Listening at: %s", self.listener)
        self.log.info("Using serve cycle: %s", self.cfg.cycle_class_str)
        return self.listener

    def accept_loop(self):
        while True:
            try:
                self.rendezvous.wait()
            except ChannelClosed:
                return
            self.spawn_cycle()
            self.rendezvous.ack()

    def spawn_cycle(self):
        """\
        Stop the running serve cycle and start a new one on the same
        listener with the current handler.
        """
        if self.cycle is not None:
            self.cycle.stop()
            self.cycle = None

        version, handler = self.handler_ref.snapshot()
        self.cycle_count += 1
        cycle = self.cfg.cycle_class(self.cycle_count, self.listener, handler,
                                     version, self.cfg, self.log)
        cycle.start()
        self.cycle = cycle
        self.log.debug("Spawned %s", cycle)
        return cycle

    def shutdown(self):
        """\
        Ask the server to stop. Safe to call from any thread or from a
        signal handler; ``listen_and_serve`` returns once everything is
        closed.
        """
        if self._stopped.is_set():
            return
        self._stopped.set()
        self.reload_file.close()
        self.rendezvous.close()

    def halt(self):
        self.shutdown()

        if self.cycle is not None:
            self.cycle.stop()
            self.cycle = None

        if self.listener is not None:
            sock.close_socket(self.listener)
            self.listener = None

        self.watcher.stop()
        self.log.info("Shutting down: %s", self)
        self.cfg.on_exit(self)


def new(path, cfg=None, log=None):
    """\
    Create a ``WatchServer`` watching ``path``. Raises
    ``WatchRegistrationError`` if the file can't be watched.
    """
    return WatchServer(path, cfg=cfg, log=log)
