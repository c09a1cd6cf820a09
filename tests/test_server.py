#
# This file is part of watchserve released under the MIT license.
# See the NOTICE for more information.

import socket
import threading
from unittest import mock

import pytest

from watchserve import server as server_mod
from watchserve import sock
from watchserve.errors import (
    BindError, WatchRegistrationError, WatcherRuntimeError,
)
from watchserve.server import WatchServer
from watchserve.watcher import ChangeEvent, FileWatcher

from support import (
    ServerThread, create_app, file_rebuild, http_get, make_config, make_log,
    wait_for,
)


class RecordingCycle(object):
    """ Serve cycle stand-in recording when it was spawned """

    events = None

    def __init__(self, nr, listener, app, version, cfg, log):
        self.nr = nr
        self.app = app
        self.version = version
        self.stopped = False

    def start(self):
        self.events.append(("spawn", self.version, self.app.tag))

    def stop(self, timeout=None):
        self.stopped = True


def recording_cycle_class(events):
    return type("RecordingCycle", (RecordingCycle,), {"events": events})


def write(path, content):
    with open(path, "w") as f:
        f.write(content)


def make_server(path, **settings):
    return WatchServer(path, cfg=make_config(**settings), log=make_log())


def test_new_requires_watchable_file(tmp_path):
    with pytest.raises(WatchRegistrationError):
        server_mod.new(str(tmp_path / "missing.conf"), cfg=make_config(),
                       log=make_log())


def test_watched_path_is_primed(watched_file):
    srv = make_server(watched_file)
    try:
        assert srv.next_change(timeout=0.1) == ChangeEvent(watched_file)
        assert srv.next_change(timeout=0.05) is None
    finally:
        srv.watcher.stop()


def test_change_while_starting_does_not_block(watched_file):
    start = FileWatcher.start

    def start_and_change(watcher):
        start(watcher)
        watcher.callback(ChangeEvent(watcher.path))

    servers = []
    with mock.patch.object(FileWatcher, "start", start_and_change):
        t = threading.Thread(
            target=lambda: servers.append(make_server(watched_file)))
        t.daemon = True
        t.start()
        t.join(2)

    assert servers, "WatchServer construction blocked"
    srv = servers[0]
    try:
        assert srv.next_change(timeout=0.1) == ChangeEvent(watched_file)
        assert len(srv.reload_file) == 0
    finally:
        srv.watcher.stop()


def test_reload_scenario(watched_file):
    srv = make_server(watched_file)
    runner = ServerThread(srv, file_rebuild)
    runner.start()
    try:
        assert runner.wait_serving()
        address = srv.address
        assert http_get(address) == (200, b"A")

        write(watched_file, "B version")
        assert wait_for(lambda: http_get(address) == (200, b"B version"))
        assert srv.address == address
    finally:
        runner.stop()

    assert not runner.is_alive()
    assert runner.error is None


def test_initial_rebuild_before_first_cycle(watched_file):
    events = []
    srv = make_server(watched_file,
                      cycle_class=recording_cycle_class(events))

    def rebuild(server):
        event = server.next_change()
        events.append(("install", server.handler_ref.version + 1))
        server.set_handler(create_app(event.path))

    runner = ServerThread(srv, rebuild)
    runner.start()
    try:
        assert runner.wait_serving()
        assert events[:2] == [("install", 1), ("spawn", 1, watched_file)]
    finally:
        runner.stop()


def test_install_happens_before_spawn(watched_file):
    events = []
    srv = make_server(watched_file,
                      cycle_class=recording_cycle_class(events))
    counter = iter(range(100))

    def rebuild(server):
        server.next_change()
        tag = "v%d" % next(counter)
        events.append(("install", server.handler_ref.version + 1))
        server.set_handler(create_app(tag))

    runner = ServerThread(srv, rebuild)
    runner.start()
    try:
        assert runner.wait_serving()
        for i in range(2, 6):
            srv.file_changed(ChangeEvent(watched_file))
            assert wait_for(lambda: srv.cycle_count == i)
    finally:
        runner.stop()

    spawns = [e for e in events if e[0] == "spawn"]
    assert [e[1] for e in spawns] == [1, 2, 3, 4, 5]
    for version in range(1, 6):
        install = events.index(("install", version))
        spawn = [i for i, e in enumerate(events)
                 if e[0] == "spawn" and e[1] == version][0]
        assert install < spawn


def test_listener_is_bound_once(watched_file):
    srv = make_server(watched_file)
    runner = ServerThread(srv, file_rebuild)
    with mock.patch.object(sock, "create_socket",
                           wraps=sock.create_socket) as create_socket:
        runner.start()
        try:
            assert runner.wait_serving()
            port = srv.address[1]
            for content in ("one", "three", "seventeen"):
                write(watched_file, content)
                assert wait_for(
                    lambda: http_get(srv.address) == (200, content.encode()))
            assert srv.address[1] == port
            assert srv.cycle_count >= 4
        finally:
            runner.stop()

    assert create_socket.call_count == 1


def test_bind_twice_is_refused(watched_file):
    srv = make_server(watched_file)
    try:
        srv.bind("127.0.0.1:0")
        with pytest.raises(BindError):
            srv.bind("127.0.0.1:0")
    finally:
        srv.halt()


def test_coalesced_changes_do_not_deadlock(watched_file):
    srv = make_server(watched_file)
    # the slot already holds the primed path, both changes are dropped
    srv.file_changed(ChangeEvent(watched_file))
    srv.file_changed(ChangeEvent(watched_file))
    assert len(srv.reload_file) == 1

    runner = ServerThread(srv, file_rebuild)
    runner.start()
    try:
        assert runner.wait_serving()
        for content in ("1", "22", "333", "4444"):
            write(watched_file, content)
        assert wait_for(lambda: http_get(srv.address) == (200, b"4444"))
        assert runner.is_alive()
    finally:
        runner.stop()
    assert runner.error is None


def test_watcher_error_is_not_fatal(watched_file):
    srv = make_server(watched_file)
    failures = []
    deliver = srv.watcher.callback

    def failing_once(event):
        if not failures:
            failures.append(event)
            raise OSError("watch descriptor lost")
        deliver(event)

    srv.watcher.callback = failing_once
    runner = ServerThread(srv, file_rebuild)
    runner.start()
    try:
        assert runner.wait_serving()
        write(watched_file, "first write")
        assert wait_for(lambda: srv.log.error.called)
        msg, error = srv.log.error.call_args[0]
        assert msg == "Watcher Error: %s"
        assert isinstance(error, WatcherRuntimeError)
        assert http_get(srv.address) == (200, b"A")

        write(watched_file, "the second write")
        assert wait_for(
            lambda: http_get(srv.address) == (200, b"the second write"))
        assert runner.is_alive()
    finally:
        runner.stop()
    assert runner.error is None


def test_bind_error_is_fatal(watched_file):
    other = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    other.bind(("127.0.0.1", 0))
    other.listen(1)
    try:
        srv = make_server(watched_file)
        rebuild = mock.Mock(side_effect=file_rebuild)
        address = "127.0.0.1:%d" % other.getsockname()[1]

        with pytest.raises(BindError):
            srv.listen_and_serve(address, rebuild)

        assert rebuild.call_count == 1
        assert srv.cycle_count == 0
        assert srv.cycle is None
        assert not srv.coordinator.alive
        assert not srv.watcher.alive
    finally:
        other.close()


def test_missing_handler_serves_default(watched_file):
    calls = []

    def rebuild(server):
        server.next_change()
        calls.append(1)
        if len(calls) == 1:
            server.set_handler(create_app("A"))

    srv = make_server(watched_file)
    runner = ServerThread(srv, rebuild)
    runner.start()
    try:
        assert runner.wait_serving()
        assert http_get(srv.address) == (200, b"A")

        srv.file_changed(ChangeEvent(watched_file))
        assert wait_for(lambda: http_get(srv.address)[0] == 404)
    finally:
        runner.stop()


def test_rebuild_error_stops_the_server(watched_file):
    calls = []

    def rebuild(server):
        server.next_change()
        calls.append(1)
        if len(calls) > 1:
            raise ValueError("can't parse")
        server.set_handler(create_app("A"))

    srv = make_server(watched_file)
    runner = ServerThread(srv, rebuild)
    runner.start()
    assert runner.wait_serving()

    srv.file_changed(ChangeEvent(watched_file))
    runner.join(5)
    assert not runner.is_alive()
    assert isinstance(runner.error, ValueError)
    assert srv.listener is None


def test_shutdown_closes_everything(watched_file):
    calls = []

    def when_ready(server):
        calls.append(("when_ready", server))

    def on_exit(server):
        calls.append(("on_exit", server))

    srv = WatchServer(watched_file, log=make_log(),
                      cfg=make_config(when_ready=when_ready, on_exit=on_exit))
    runner = ServerThread(srv, file_rebuild)
    runner.start()
    assert runner.wait_serving()
    assert wait_for(lambda: ("when_ready", srv) in calls)
    address = srv.address

    runner.stop()
    assert not runner.is_alive()
    assert runner.error is None
    assert srv.stopped
    assert srv.listener is None
    assert srv.cycle is None
    assert not srv.watcher.alive
    assert calls == [("when_ready", srv), ("on_exit", srv)]
    with pytest.raises(OSError):
        http_get(address, timeout=1)


def test_serve_twice_is_refused(watched_file):
    srv = make_server(watched_file)
    runner = ServerThread(srv, file_rebuild)
    runner.start()
    try:
        assert runner.wait_serving()
        with pytest.raises(RuntimeError):
            srv.listen_and_serve("127.0.0.1:0", file_rebuild)
    finally:
        runner.stop()


def test_shutdown_from_another_thread_while_rebuilding(watched_file):
    started = threading.Event()

    def rebuild(server):
        event = server.next_change()
        started.set()
        server.set_handler(create_app(event.path))

    srv = make_server(watched_file)
    runner = ServerThread(srv, rebuild)
    runner.start()
    assert started.wait(5)
    assert runner.wait_serving()
    # the coordinator is now blocked waiting for the next change
    assert wait_for(lambda: srv.coordinator.alive)
    runner.stop()
    assert not runner.is_alive()
    assert wait_for(lambda: not srv.coordinator.alive)
