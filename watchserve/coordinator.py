# -*- coding: utf-8 -
#
# This file is part of watchserve released under the MIT license.
# See the NOTICE for more information.

import threading

from watchserve.channel import ChannelClosed


class ReloadCoordinator(object):
    """\
    Drive the rebuild callback and hand each new handler over to the
    accept loop.

    One pass of the loop clears the installed handler, calls
    ``callback(server)`` (which blocks on the next change and installs a
    new handler) and then signals the accept loop through the rendezvous.
    The signal only returns once a serve cycle has been spawned with the
    new handler, so the next pass can't clear it from under the accept
    loop.

    Rebuild outcomes are not inspected. An exception escaping the callback
    stops the server and is re-raised by ``listen_and_serve``.
    """

    IDLE = "idle"
    REBUILDING = "rebuilding"
    AWAITING_RESUME = "awaiting_resume"

    def __init__(self, server, callback, log):
        self.server = server
        self.callback = callback
        self.log = log
        self.cfg = server.cfg

        self.state = self.IDLE
        self.reloads = 0
        self.error = None
        self._thread = None

    def __str__(self):
        return "<ReloadCoordinator %s (%d reloads)>" % (self.state,
                                                        self.reloads)

    @property
    def alive(self):
        return self._thread is not None and self._thread.is_alive()

    def rebuild(self):
        """\
        One rebuild: clear the handler, then let the callback install a
        new one.
        """
        self.state = self.REBUILDING
        self.server.handler_ref.clear()
        try:
            self.callback(self.server)
        finally:
            self.state = self.IDLE

        if not self.server.handler_ref.installed:
            self.log.warning("Rebuild returned without installing a handler")

    def start(self):
        self._thread = threading.Thread(target=self.run,
                                        name="reload-coordinator")
        self._thread.daemon = True
        self._thread.start()

    def run(self):
        try:
            while True:
                self.rebuild()
                self.reloads += 1
                self.log.debug("Handler rebuilt (version %d)",
                               self.server.handler_ref.version)
                self.cfg.on_reload(self.server)

                self.state = self.AWAITING_RESUME
                self.server.rendezvous.signal()
                self.state = self.IDLE
        except ChannelClosed:
            self.log.debug("Reload coordinator stopped")
        except Exception as e:
            self.error = e
            self.log.exception("Rebuild failed, stopping the server")
            self.server.shutdown()
        finally:
            self.state = self.IDLE

    def join(self, timeout=None):
        if self._thread is not None:
            self._thread.join(timeout)
