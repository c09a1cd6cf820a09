# -*- coding: utf-8 -
#
# This file is part of watchserve released under the MIT license.
# See the NOTICE for more information.


class WatchServeError(Exception):
    """ base class for watchserve errors """


class ConfigError(WatchServeError):
    """ Exception raised on config error """


class AppImportError(WatchServeError):
    """ Exception raised when loading an application factory """


class WatchRegistrationError(WatchServeError):
    """\
    Raised when the watched file can't be subscribed to. A server must
    not start without a working watch.
    """

    def __init__(self, path, reason):
        self.path = path
        self.reason = reason
        super().__init__("Can't watch %r: %s" % (path, reason))


class BindError(WatchServeError):
    """ Raised when the listening address can't be bound """

    def __init__(self, address, reason):
        self.address = address
        self.reason = reason
        super().__init__("Can't bind %r: %s" % (address, reason))


class WatcherRuntimeError(WatchServeError):
    """\
    An error reported by the file watcher while it is running. These are
    logged and never stop the subscription.
    """
