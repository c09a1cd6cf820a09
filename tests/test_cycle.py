#
# This file is part of watchserve released under the MIT license.
# See the NOTICE for more information.

from unittest import mock

import pytest

from watchserve import sock
from watchserve.cycle import ServeCycle

from support import create_app, http_get, make_config, wait_for


@pytest.fixture
def listener():
    cfg = make_config()
    listener = sock.create_socket(cfg, mock.Mock(), ("127.0.0.1", 0))
    yield listener
    listener.close()


def test_cycle_serves_its_handler(listener):
    log = mock.Mock()
    cycle = ServeCycle(1, listener, create_app("A"), 3, make_config(), log)
    cycle.start()
    try:
        assert cycle.alive
        assert http_get(listener.getsockname()) == (200, b"A")
    finally:
        cycle.stop()

    assert not cycle.alive
    assert str(cycle) == "<ServeCycle 1 (handler v3)>"
    assert wait_for(lambda: log.access.called)
    args = log.access.call_args[0]
    assert args[1] == "GET / HTTP/1.1"
    assert args[2] == "200"
    assert args[4] == 3


def test_stop_keeps_listener_open(listener):
    cfg = make_config()
    first = ServeCycle(1, listener, create_app("A"), 1, cfg, mock.Mock())
    first.start()
    assert http_get(listener.getsockname()) == (200, b"A")
    first.stop()

    assert listener.sock is not None
    second = ServeCycle(2, listener, create_app("B"), 2, cfg, mock.Mock())
    second.start()
    try:
        assert http_get(listener.getsockname()) == (200, b"B")
    finally:
        second.stop()


def test_handler_error_returns_500(listener):
    def broken(environ, start_response):
        raise ValueError("broken handler")

    cycle = ServeCycle(1, listener, broken, 1, make_config(), mock.Mock())
    cycle.start()
    try:
        status, _ = http_get(listener.getsockname())
        assert status == 500
    finally:
        cycle.stop()


def test_stop_before_start_is_noop(listener):
    cycle = ServeCycle(1, listener, create_app("A"), 1, make_config(),
                       mock.Mock())
    cycle.stop()
    assert not cycle.alive
