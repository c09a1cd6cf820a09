#!/usr/bin/env python
#
# An example of embedding a WatchServer. Each write to routes.txt rebuilds
# the routing table, the server keeps its socket:
#
#   $ python standalone_app.py routes.txt
#
# routes.txt holds one "PATH TEXT" pair per line.
#
# This file is part of watchserve released under the MIT license.
# See the NOTICE for more information.

import sys

from watchserve import server


def load_routes(path):
    routes = {}
    with open(path) as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            route, _, text = line.partition(" ")
            routes[route] = (text + "\n").encode("utf-8")
    return routes


def routing_app(routes):
    def app(environ, start_response):
        body = routes.get(environ.get('PATH_INFO', '/'))
        if body is None:
            start_response('404 Not Found', [('Content-Type', 'text/plain')])
            return [b'not found\n']
        start_response('200 OK', [
            ('Content-Type', 'text/plain'),
            ('Content-Length', str(len(body))),
        ])
        return [body]
    return app


def rebuild(srv):
    event = srv.next_change()
    try:
        routes = load_routes(event.path)
    except (OSError, ValueError):
        srv.log.exception("Can't load %s, serving no routes", event.path)
        routes = {}
    srv.set_handler(routing_app(routes))


if __name__ == '__main__':
    srv = server.new(sys.argv[1])
    srv.listen_and_serve('127.0.0.1:8080', rebuild)
