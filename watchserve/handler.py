# -*- coding: utf-8 -
#
# This file is part of watchserve released under the MIT license.
# See the NOTICE for more information.

from watchserve import SERVER_SOFTWARE


def default_app(environ, start_response):
    """\
    Served whenever no handler is installed, e.g. after a rebuild that
    didn't call ``set_handler``.
    """
    body = b"404 Not Found\n"
    start_response("404 Not Found", [
        ("Content-Type", "text/plain"),
        ("Content-Length", str(len(body))),
        ("Server", SERVER_SOFTWARE),
    ])
    return [body]


class HandlerRef(object):
    """\
    Reference cell holding the active WSGI application.

    The cell has a single writer, the rebuild callback. Values are
    replaced, never mutated: serve cycles read the cell once when they
    are spawned and keep that value for their lifetime.
    """

    def __init__(self, handler=None):
        # (version, handler) is swapped as one tuple so readers never see
        # a version paired with the wrong handler
        self._state = (0, handler)

    def __repr__(self):
        version, handler = self._state
        return "<HandlerRef version=%d handler=%r>" % (version, handler)

    @property
    def version(self):
        return self._state[0]

    @property
    def installed(self):
        return self._state[1] is not None

    def set(self, handler):
        if handler is not None and not callable(handler):
            raise TypeError("handler must be a WSGI callable: %r" % handler)
        version, _ = self._state
        self._state = (version + 1, handler)

    def clear(self):
        version, _ = self._state
        self._state = (version, None)

    def peek(self):
        return self._state[1]

    def get(self):
        """ Return the installed handler or ``default_app`` """
        handler = self._state[1]
        if handler is None:
            return default_app
        return handler

    def snapshot(self):
        """ Return ``(version, handler)`` as one consistent pair """
        version, handler = self._state
        if handler is None:
            handler = default_app
        return version, handler
