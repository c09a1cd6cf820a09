# -*- coding: utf-8 -
#
# This file is part of watchserve released under the MIT license.
# See the NOTICE for more information.

import os
import signal
import sys

from watchserve import util
from watchserve.app.base import Application
from watchserve.errors import AppImportError, WatchServeError
from watchserve.server import WatchServer


class FileApplication(Application):
    """\
    Serve the WSGI application built by ``APP_FACTORY`` from ``WATCH_FILE``
    and rebuild it each time the file is written to.

    The factory is called with the path of the watched file and must
    return a WSGI callable.
    """

    def init(self, parser, opts, args):
        if len(args) != 2:
            parser.error("A watched file and an application factory "
                         "must be specified.")

        self.watch_file = os.path.abspath(args[0])
        self.factory_uri = args[1]
        self.current = None

    def load(self):
        try:
            return util.import_app(self.factory_uri)
        except (ImportError, AttributeError) as e:
            raise AppImportError(str(e))

    def factory(self):
        if self.callable is None:
            self.callable = self.load()
        return self.callable

    def rebuild(self, server):
        """\
        Wait for the next change of the watched file and install the
        handler built from it. The previous handler is kept if the
        factory fails.
        """
        version = server.handler_ref.version
        event = server.next_change()

        try:
            app = self.factory()(event.path)
        except Exception:
            server.log.exception("Error while building the handler from %s",
                                 event.path)
            if self.current is None:
                return
            server.log.warning("Keeping the handler installed at version %d",
                               version)
            app = self.current

        self.current = app
        server.set_handler(app)

    def init_signals(self, server):
        def handle_exit(sig, frame):
            server.log.info("Handling signal: %s", signal.Signals(sig).name)
            server.shutdown()

        def handle_usr1(sig, frame):
            server.log.reopen_files()

        signal.signal(signal.SIGINT, handle_exit)
        signal.signal(signal.SIGTERM, handle_exit)
        signal.signal(signal.SIGUSR1, handle_usr1)

    def run(self):
        super().run()

        try:
            self.factory()
        except AppImportError as e:
            print("\nError: %s\n" % e, file=sys.stderr)
            sys.stderr.flush()
            sys.exit(1)

        try:
            server = WatchServer(self.watch_file, cfg=self.cfg)
            self.init_signals(server)
            server.listen_and_serve(self.cfg.bind, self.rebuild)
        except WatchServeError as e:
            print("\nError: %s\n" % e, file=sys.stderr)
            sys.stderr.flush()
            sys.exit(1)


def run(prog=None):
    """\
    The ``watchserve`` command line runner for serving an application
    rebuilt from a watched file.
    """
    FileApplication("%(prog)s [OPTIONS] WATCH_FILE APP_FACTORY",
                    prog=prog).run()


if __name__ == '__main__':
    run()
