"""Tests for the connectivity gate and monitor."""

from __future__ import annotations

import logging
import socket
import threading

import pytest

from authflow.connectivity import ConnectivityGate, ConnectivityMonitor, tcp_probe
from authflow.models import ConnectivityConfig


class TestConnectivityGate:
    def test_starts_reachable(self) -> None:
        assert ConnectivityGate().is_reachable() is True

    def test_initial_state(self) -> None:
        assert ConnectivityGate(reachable=False).is_reachable() is False

    def test_set_reports_change(self) -> None:
        gate = ConnectivityGate()
        assert gate.set_reachable(False) is True
        assert gate.set_reachable(False) is False
        assert gate.is_reachable() is False


class TestConnectivityMonitor:
    def test_check_once_publishes(self) -> None:
        gate = ConnectivityGate()
        monitor = ConnectivityMonitor(gate, probe=lambda: False)
        assert monitor.check_once() is False
        assert gate.is_reachable() is False

    def test_probe_error_counts_as_unreachable(self) -> None:
        def probe() -> bool:
            raise RuntimeError("probe exploded")

        gate = ConnectivityGate()
        assert ConnectivityMonitor(gate, probe=probe).check_once() is False
        assert gate.is_reachable() is False

    def test_logs_transitions_only(self, caplog: pytest.LogCaptureFixture) -> None:
        states = iter([False, False, True])
        monitor = ConnectivityMonitor(ConnectivityGate(), probe=lambda: next(states))
        with caplog.at_level(logging.INFO, logger="authflow.connectivity"):
            for _ in range(3):
                monitor.check_once()
        messages = [r.getMessage() for r in caplog.records]
        assert messages == ["No connection.", "We're connected!"]

    def test_background_thread(self) -> None:
        gate = ConnectivityGate()
        probed = threading.Event()

        def probe() -> bool:
            probed.set()
            return False

        with ConnectivityMonitor(gate, probe=probe, interval=0.01) as monitor:
            assert probed.wait(2.0)
            assert monitor.running
        assert not monitor.running
        assert gate.is_reachable() is False

    def test_start_is_idempotent(self) -> None:
        monitor = ConnectivityMonitor(ConnectivityGate(), probe=lambda: True, interval=0.01)
        monitor.start()
        thread = monitor._thread
        monitor.start()
        assert monitor._thread is thread
        monitor.stop()

    def test_from_config(self) -> None:
        config = ConnectivityConfig(probe_host="127.0.0.1", probe_port=1, interval=9.0)
        monitor = ConnectivityMonitor.from_config(ConnectivityGate(), config)
        assert monitor._interval == 9.0


class TestTcpProbe:
    def test_listening_socket(self) -> None:
        server = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        server.bind(("127.0.0.1", 0))
        server.listen(1)
        try:
            port = server.getsockname()[1]
            assert tcp_probe("127.0.0.1", port, timeout=1.0)() is True
        finally:
            server.close()

    def test_closed_port(self) -> None:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.bind(("127.0.0.1", 0))
        port = sock.getsockname()[1]
        sock.close()
        assert tcp_probe("127.0.0.1", port, timeout=1.0)() is False
