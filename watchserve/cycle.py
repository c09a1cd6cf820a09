# -*- coding: utf-8 -
#
# This file is part of watchserve released under the MIT license.
# See the NOTICE for more information.

"""\
Serve cycles: one run of the accept-and-dispatch loop bound to a fixed
handler and the shared listening socket.

The HTTP work itself is left to :mod:`wsgiref`. A cycle never binds or
closes the listener, that is owned by the server.
"""

import socketserver
import threading
from wsgiref.simple_server import WSGIRequestHandler, WSGIServer

from watchserve import SERVER_SOFTWARE


class CycleRequestHandler(WSGIRequestHandler):

    server_version = SERVER_SOFTWARE

    def log_request(self, code='-', size='-'):
        self.server.log.access(self.address_string(),
                               self.requestline, code, size,
                               self.server.version)

    def log_message(self, format, *args):
        self.server.log.debug("%s - %s", self.address_string(), format % args)

    def address_string(self):
        if isinstance(self.client_address, tuple):
            return self.client_address[0]
        return "unix"


class CycleServer(socketserver.ThreadingMixIn, WSGIServer):
    """\
    WSGI server running on an already bound and listening socket.
    """

    daemon_threads = True

    def __init__(self, listener, app, version, log):
        self.listener = listener
        self.log = log
        self.version = version
        socketserver.BaseServer.__init__(self, listener.getsockname(),
                                         CycleRequestHandler)
        self.socket = listener.sock
        self.setup_server_name()
        self.setup_environ()
        self.set_app(app)

    def setup_server_name(self):
        # WSGIServer expects these to be set by server_bind()
        addr = self.server_address
        if isinstance(addr, tuple):
            self.server_name, self.server_port = addr[0], addr[1]
        else:
            self.server_name, self.server_port = "localhost", 0

    def fileno(self):
        return self.socket.fileno()

    def get_request(self):
        conn, addr = self.socket.accept()
        conn.setblocking(True)
        return conn, addr

    def server_close(self):
        # the listener outlives the cycle
        pass

    def handle_error(self, request, client_address):
        self.log.exception("Error handling request from %s", client_address)


class ServeCycle(object):
    """\
    Accept connections on ``listener`` and dispatch them to ``app`` until
    stopped.

    Connections already accepted when the cycle is stopped are finished
    with ``app``, the handler the cycle was spawned with.
    """

    server_class = CycleServer

    def __init__(self, nr, listener, app, version, cfg, log):
        self.nr = nr
        self.listener = listener
        self.app = app
        self.version = version
        self.cfg = cfg
        self.log = log

        self.server = None
        self._thread = None

    def __str__(self):
        return "<ServeCycle %d (handler v%d)>" % (self.nr, self.version)

    @property
    def alive(self):
        return self._thread is not None and self._thread.is_alive()

    def start(self):
        self.server = self.server_class(self.listener, self.app, self.version,
                                        self.log)
        self._thread = threading.Thread(
            target=self.run, name="serve-cycle-%d" % self.nr)
        self._thread.daemon = True
        self._thread.start()

    def run(self):
        self.log.info("Listening and serving %s ...", self.listener)
        try:
            self.server.serve_forever(poll_interval=self.cfg.cycle_poll_interval)
        except (OSError, ValueError) as e:
            # the listener was closed under us
            if self.listener.sock is not None:
                self.log.error("Serve cycle %d stopped: %s", self.nr, e)
        self.log.debug("Serve cycle %d exited", self.nr)

    def stop(self, timeout=None):
        """\
        Stop accepting connections. Returns once the accept loop is done,
        in-flight requests carry on in their own threads.
        """
        if self.server is None:
            return
        if self.alive:
            self.server.shutdown()
            self._thread.join(timeout)
        self.server = None
