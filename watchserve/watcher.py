# -*- coding: utf-8 -
#
# This file is part of watchserve released under the MIT license.
# See the NOTICE for more information.

from collections import namedtuple
import logging
import os

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer
from watchdog.observers.polling import PollingObserver

from watchserve.errors import WatchRegistrationError, WatcherRuntimeError

ChangeEvent = namedtuple("ChangeEvent", ["path"])


def _inotify_observer(interval):
    try:
        from watchdog.observers.inotify import InotifyObserver
    except ImportError as e:
        raise RuntimeError("inotify engine is not available: %s" % e)
    return InotifyObserver()


def _reports_close_write(observer):
    try:
        from watchdog.observers.inotify import InotifyObserver
    except ImportError:
        return False
    return isinstance(observer, InotifyObserver)


# Note: inotify is only available on Linux, 'auto' picks the best native
# observer for the platform
watcher_engines = {
    'auto': lambda interval: Observer(),
    'poll': lambda interval: PollingObserver(timeout=interval),
    'inotify': _inotify_observer,
}


class FileWatcher(object):
    """\
    Watch a single file and call ``callback`` with a ``ChangeEvent`` each
    time it is written to.

    Only writes are reported. Created, moved and deleted events are
    ignored, removing the watched file is logged. Metadata changes such as
    chmod are not writes: with inotify a write is the close of the file
    after writing, other observers must see its size or mtime change.
    """

    def __init__(self, path, callback, engine='auto', interval=1, log=None):
        self.path = os.path.abspath(path)
        self.callback = callback
        self.engine = engine
        self.interval = interval
        self.log = log or logging.getLogger("watchserve.error")

        self.close_write = False
        self._observer = None
        self._handler = WatchedFileEventHandler(self)
        self._signature = None

    def __str__(self):
        return "<FileWatcher %s (%s)>" % (self.path, self.engine)

    @property
    def alive(self):
        return self._observer is not None and self._observer.is_alive()

    def start(self):
        if not os.path.isfile(self.path):
            raise WatchRegistrationError(self.path, "no such file")

        try:
            observer = watcher_engines[self.engine](self.interval)
        except KeyError:
            raise WatchRegistrationError(
                self.path, "unknown watcher engine %r" % self.engine)
        except RuntimeError as e:
            raise WatchRegistrationError(self.path, str(e))

        self._signature = self.stat_signature()
        self.close_write = _reports_close_write(observer)
        observer.daemon = True
        try:
            # watchdog watches directories, events get filtered on our path
            observer.schedule(self._handler, os.path.dirname(self.path))
            observer.start()
        except OSError as e:
            raise WatchRegistrationError(self.path, str(e))

        self._observer = observer
        self.log.debug("Watching %s with %s", self.path,
                       type(observer).__name__)

    def stop(self):
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join()
        self._observer = None

    def matches(self, path):
        if not path:
            return False
        return os.path.abspath(os.fsdecode(path)) == self.path

    def stat_signature(self):
        try:
            st = os.stat(self.path)
        except OSError:
            return None
        return (st.st_size, st.st_mtime_ns)

    def changed(self):
        """ Whether the content may have changed since the last change """
        return self.stat_signature() != self._signature

    def notify(self):
        self._signature = self.stat_signature()
        self.log.info("Reloading the file...")
        self.callback(ChangeEvent(self.path))

    def handle_error(self, exc):
        """\
        Log an error raised while watching. The subscription is kept.
        """
        if not isinstance(exc, WatcherRuntimeError):
            exc = WatcherRuntimeError(exc)
        self.log.error("Watcher Error: %s", exc)


class WatchedFileEventHandler(FileSystemEventHandler):

    def __init__(self, watcher):
        super().__init__()
        self.watcher = watcher

    def dispatch(self, event):
        try:
            super().dispatch(event)
        except Exception as e:
            self.watcher.handle_error(e)

    def on_modified(self, event):
        if event.is_directory or not self.watcher.matches(event.src_path):
            return
        if self.watcher.close_write:
            # reported again by on_closed once the writer is done
            return
        if not self.watcher.changed():
            self.watcher.log.debug("Ignoring metadata change of %s",
                                   self.watcher.path)
            return
        self.watcher.notify()

    def on_closed(self, event):
        if event.is_directory or not self.watcher.matches(event.src_path):
            return
        self.watcher.notify()

    def on_deleted(self, event):
        if event.is_directory or not self.watcher.matches(event.src_path):
            return
        self.watcher.log.warning("Watched file %s was deleted",
                                 self.watcher.path)

    def on_moved(self, event):
        if event.is_directory or not self.watcher.matches(event.src_path):
            return
        self.watcher.log.warning("Watched file %s was moved to %s",
                                 self.watcher.path,
                                 os.fsdecode(event.dest_path))
