"""
Tests for the collector connection from graphite_pusher/connection.py
"""
import socket
from unittest import mock

from graphite_pusher.connection import CollectorConnection
from graphite_pusher.encoder import build_message
from graphite_pusher.sample import Sample

from conftest import wait_for


def test_connect_and_send(carbon):
    connection = CollectorConnection('127.0.0.1', carbon.port)

    sock = connection.ensure_connected()
    assert sock is not None
    assert connection.connected
    # A live connection is reused
    assert connection.ensure_connected() is sock

    assert connection.send(build_message([Sample('a', 2.5, 1000)]))
    assert wait_for(lambda: carbon.received() == [('a', (1000, 2.5))])
    assert carbon.connections == 1

    connection.close()
    assert not connection.connected


def test_unreachable_collector_returns_none(unused_port):
    connection = CollectorConnection('127.0.0.1', unused_port, connect_timeout=1)

    assert connection.ensure_connected() is None
    assert not connection.connected


def test_resolution_failure_returns_none():
    connection = CollectorConnection('collector.invalid', 2004, resolve_retries=1)

    with mock.patch('socket.getaddrinfo', side_effect=socket.gaierror(socket.EAI_NONAME, 'not known')):
        assert connection.ensure_connected() is None


def test_transient_resolution_failure_is_retried(carbon):
    connection = CollectorConnection('localhost', carbon.port, resolve_retries=3, resolve_retry_delay=0)
    real_getaddrinfo = socket.getaddrinfo
    calls = []

    def flaky_getaddrinfo(*args, **kwargs):
        calls.append(args)
        if len(calls) < 3:
            raise socket.gaierror(socket.EAI_AGAIN, 'try again')
        return real_getaddrinfo('127.0.0.1', *args[1:], **kwargs)

    with mock.patch('socket.getaddrinfo', side_effect=flaky_getaddrinfo):
        assert connection.ensure_connected() is not None

    assert len(calls) == 3
    connection.close()


def test_permanent_resolution_failure_is_not_retried():
    connection = CollectorConnection('collector.invalid', 2004, resolve_retries=5, resolve_retry_delay=0)

    with mock.patch('socket.getaddrinfo', side_effect=socket.gaierror(socket.EAI_NONAME, 'not known')) as getaddrinfo:
        assert connection.ensure_connected() is None

    assert getaddrinfo.call_count == 1


def test_tries_each_address_in_order(carbon, unused_port):
    connection = CollectorConnection('collector', carbon.port, connect_timeout=1)
    addresses = [
        (socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP, '', ('127.0.0.1', unused_port)),
        (socket.AF_INET, socket.SOCK_STREAM, socket.IPPROTO_TCP, '', ('127.0.0.1', carbon.port)),
    ]

    with mock.patch('socket.getaddrinfo', return_value=addresses):
        sock = connection.ensure_connected()

    assert sock is not None
    assert sock.getpeername() == ('127.0.0.1', carbon.port)
    connection.close()


def test_send_failure_closes_socket():
    connection = CollectorConnection('127.0.0.1', 2004)
    broken = mock.Mock()
    broken.sendall.side_effect = BrokenPipeError('broken pipe')
    connection.sock = broken

    assert not connection.send(b'data')
    assert not connection.connected
    broken.close.assert_called_once()


def test_send_without_connection_fails():
    connection = CollectorConnection('127.0.0.1', 2004)

    assert not connection.send(b'data')
