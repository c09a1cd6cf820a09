# -*- coding: utf-8 -
#
# This file is part of watchserve released under the MIT license.
# See the NOTICE for more information.

import errno
import os
import socket
import stat

from watchserve import util
from watchserve.errors import BindError


class BaseSocket(object):

    def __init__(self, address, conf, log):
        self.log = log
        self.conf = conf

        self.cfg_addr = address
        sock = socket.socket(self.FAMILY, socket.SOCK_STREAM)
        try:
            self.sock = self.set_options(sock)
        except Exception:
            sock.close()
            raise

    def __str__(self):
        return "<socket %d>" % self.sock.fileno()

    def __getattr__(self, name):
        return getattr(self.sock, name)

    def set_options(self, sock):
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        if (self.conf.reuse_port
                and hasattr(socket, 'SO_REUSEPORT')):  # pragma: no cover
            try:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
            except socket.error as err:
                if err.errno not in (errno.ENOPROTOOPT, errno.EINVAL):
                    raise
        self.bind(sock)
        sock.setblocking(0)
        util.close_on_exec(sock.fileno())
        sock.listen(self.conf.backlog)
        return sock

    def bind(self, sock):
        sock.bind(self.cfg_addr)

    @property
    def address(self):
        return self.sock.getsockname()

    def close(self):
        if self.sock is None:
            return

        try:
            self.sock.close()
        except socket.error as e:
            self.log.info("Error while closing socket %s", str(e))

        self.sock = None


class TCPSocket(BaseSocket):

    FAMILY = socket.AF_INET

    def __str__(self):
        addr = self.sock.getsockname()
        return "http://%s:%d" % (addr[0], addr[1])

    def set_options(self, sock):
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        return super().set_options(sock)


class TCP6Socket(TCPSocket):

    FAMILY = socket.AF_INET6

    def __str__(self):
        (host, port, _, _) = self.sock.getsockname()
        return "http://[%s]:%d" % (host, port)


class UnixSocket(BaseSocket):

    FAMILY = socket.AF_UNIX

    def __init__(self, addr, conf, log):
        try:
            st = os.stat(addr)
        except OSError as e:
            if e.args[0] != errno.ENOENT:
                raise
        else:
            if stat.S_ISSOCK(st.st_mode):
                os.remove(addr)
            else:
                raise ValueError("%r is not a socket" % addr)
        super().__init__(addr, conf, log)

    def __str__(self):
        return "unix:%s" % self.cfg_addr


def _sock_type(addr):
    if isinstance(addr, tuple):
        if util.is_ipv6(addr[0]):
            sock_type = TCP6Socket
        else:
            sock_type = TCPSocket
    elif isinstance(addr, (str, bytes)):
        sock_type = UnixSocket
    else:
        raise TypeError("Unable to create socket from: %r" % addr)
    return sock_type


def create_socket(conf, log, addr=None):
    """\
    Create and bind the listener for ``addr`` (``conf.address`` by
    default).

    A tuple gives a TCP socket, a string a Unix socket. Any failure to
    bind is raised as ``BindError``, there is no retry.
    """
    if addr is None:
        addr = conf.address

    sock_type = _sock_type(addr)
    try:
        return sock_type(addr, conf, log)
    except (socket.error, ValueError) as e:
        if getattr(e, "errno", None) == errno.EADDRINUSE:
            log.error("Connection in use: %s", addr)
        elif getattr(e, "errno", None) == errno.EADDRNOTAVAIL:
            log.error("Invalid address: %s", addr)
        else:
            log.error("Can't connect to %s", addr)
        raise BindError(addr, e)


def close_socket(listener, unlink=True):
    sock_name = listener.getsockname()
    listener.close()
    if unlink and _sock_type(sock_name) is UnixSocket:
        os.unlink(sock_name)
