# -*- coding: utf-8 -
#
# This file is part of watchserve released under the MIT license.
# See the NOTICE for more information.

import fcntl
import importlib
import inspect
import os
import socket
import sys

from watchserve.errors import AppImportError


def load_class(uri, default="watchserve.cycle.ServeCycle"):
    if inspect.isclass(uri):
        return uri

    uri = uri or default
    components = uri.split('.')
    if len(components) == 1:
        raise RuntimeError("class uri %r invalid or not found" % uri)

    klass = components.pop(-1)
    try:
        mod = importlib.import_module('.'.join(components))
    except ImportError as e:
        raise RuntimeError("class uri %r invalid or not found: %s" % (uri, e))

    try:
        return getattr(mod, klass)
    except AttributeError:
        raise RuntimeError("class uri %r invalid or not found" % uri)


def is_ipv6(addr):
    try:
        socket.inet_pton(socket.AF_INET6, addr)
    except socket.error:  # not a valid address
        return False
    except ValueError:  # ipv6 not supported on this platform
        return False
    return True


def parse_address(netloc, default_port=8000):
    """\
    Parse a bind address. ``unix:PATH`` gives a unix socket path, anything
    else a ``(host, port)`` tuple. An empty address binds every interface
    on the default port.
    """
    if isinstance(netloc, tuple):
        return netloc

    if netloc.startswith("unix://"):
        return netloc.split("unix://")[1]

    if netloc.startswith("unix:"):
        return netloc.split("unix:")[1]

    if netloc.startswith("tcp://"):
        netloc = netloc.split("tcp://")[1]

    # get host
    if '[' in netloc and ']' in netloc:
        host = netloc.split(']')[0][1:].lower()
    elif ':' in netloc:
        host = netloc.split(':')[0].lower()
    elif netloc == "":
        host = "0.0.0.0"
    else:
        host = netloc.lower()

    # get port
    netloc = netloc.split(']')[-1]
    if ":" in netloc:
        port = netloc.split(':', 1)[1]
        if not port.isdigit():
            raise RuntimeError("%r is not a valid port number." % port)
        port = int(port)
    else:
        port = default_port

    if not host:
        host = "0.0.0.0"
    return (host, port)


def close_on_exec(fd):
    flags = fcntl.fcntl(fd, fcntl.F_GETFD)
    flags |= fcntl.FD_CLOEXEC
    fcntl.fcntl(fd, fcntl.F_SETFD, flags)


def import_app(module):
    """\
    Import ``module:callable`` and return the callable. The object name
    defaults to ``application``.
    """
    parts = module.split(":", 1)
    if len(parts) == 1:
        module, obj = module, "application"
    else:
        module, obj = parts[0], parts[1]

    try:
        mod = importlib.import_module(module)
    except ImportError:
        if module.endswith(".py") and os.path.exists(module):
            msg = "Failed to find application, did you mean '%s:%s'?"
            raise ImportError(msg % (module.rsplit(".", 1)[0], obj))
        raise

    if not obj.isidentifier():
        raise AppImportError("Failed to parse %r as an attribute name." % obj)

    try:
        app = getattr(mod, obj)
    except AttributeError:
        raise AppImportError("Failed to find attribute %r in %r." % (obj, module))

    if app is None:
        raise AppImportError("Failed to find application object: %r" % obj)

    if not callable(app):
        raise AppImportError("Application object must be callable.")
    return app


def check_is_writeable(path):
    try:
        with open(path, 'a') as f:
            f.close()
    except IOError as e:
        raise RuntimeError("Error: '%s' isn't writable [%r]" % (path, e))


def warn(msg):
    print("!!!", file=sys.stderr)

    lines = msg.splitlines()
    for i, line in enumerate(lines):
        if i == 0:
            line = "WARNING: %s" % line
        print("!!! %s" % line, file=sys.stderr)

    print("!!!\n", file=sys.stderr)
    sys.stderr.flush()

def get_arity(f):
    sig = inspect.signature(f)
    arity = 0

    for param in sig.parameters.values():
        if param.kind in (inspect.Parameter.POSITIONAL_ONLY,
                          inspect.Parameter.POSITIONAL_OR_KEYWORD):
            arity += 1

    return arity
