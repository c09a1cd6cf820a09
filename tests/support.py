#
# This file is part of watchserve released under the MIT license.
# See the NOTICE for more information.

import http.client
import threading
import time
from unittest import mock

from watchserve.config import Config

HOST = "127.0.0.1"


def create_app(tag):
    body = tag.encode("utf8")

    def app(environ, start_response):
        start_response('200 OK', [
            ('Content-Type', 'text/plain'),
            ('Content-Length', str(len(body))),
        ])
        return [body]

    app.tag = tag
    return app


def file_rebuild(server):
    """ Rebuild callback serving the content of the changed file """
    event = server.next_change()
    with open(event.path) as f:
        server.set_handler(create_app(f.read()))


def make_config(**settings):
    cfg = Config()
    cfg.set('reload_engine', 'poll')
    cfg.set('reload_interval', 0.05)
    cfg.set('cycle_poll_interval', 0.05)
    for k, v in settings.items():
        cfg.set(k, v)
    return cfg


def make_log():
    return mock.Mock()


def wait_for(predicate, timeout=5.0, interval=0.02):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


def http_get(address, path="/", timeout=5.0):
    conn = http.client.HTTPConnection(address[0], address[1], timeout=timeout)
    try:
        conn.request("GET", path)
        resp = conn.getresponse()
        return resp.status, resp.read()
    finally:
        conn.close()


class ServerThread(threading.Thread):
    """ Run ``listen_and_serve`` in the background and keep its outcome """

    def __init__(self, server, rebuild, address="%s:0" % HOST):
        super().__init__(name="test-server")
        self.daemon = True
        self.server = server
        self.rebuild = rebuild
        self.address = address
        self.error = None

    def run(self):
        try:
            self.server.listen_and_serve(self.address, self.rebuild)
        except Exception as e:
            self.error = e

    def wait_serving(self, timeout=5.0):
        return wait_for(lambda: self.server.cycle is not None
                        or not self.is_alive(), timeout)

    def stop(self, timeout=5.0):
        self.server.shutdown()
        self.join(timeout)
