"""Network reachability gate and the background monitor that feeds it.

:class:`ConnectivityGate` holds a single reachability flag.  The request
pipeline reads it before every dispatch and short-circuits with
:class:`~authflow.exceptions.NoNetworkError` when it is down; nothing else
in the pipeline consults it.

:class:`ConnectivityMonitor` is the observer that keeps the flag current:
a daemon thread that runs a probe every ``interval`` seconds and publishes
changes into the gate.  The default probe opens a TCP connection to the
configured host and port.

Example::

    gate = ConnectivityGate()
    with ConnectivityMonitor(gate, interval=5.0):
        async with AuthClient(config, gate=gate, ...) as client:
            ...
"""

from __future__ import annotations

import logging
import socket
import threading
from typing import Callable, Optional

from authflow.models import ConnectivityConfig

logger = logging.getLogger(__name__)

Probe = Callable[[], bool]


class ConnectivityGate:
    """Thread-safe reachability flag.

    Starts reachable, so a client without a monitor never blocks requests.
    """

    def __init__(self, reachable: bool = True) -> None:
        self._lock = threading.Lock()
        self._reachable = reachable

    def is_reachable(self) -> bool:
        with self._lock:
            return self._reachable

    def set_reachable(self, reachable: bool) -> bool:
        """Publish a new state and return whether it changed."""
        with self._lock:
            changed = self._reachable != reachable
            self._reachable = reachable
        return changed


def tcp_probe(host: str, port: int, timeout: float = 2.0) -> Probe:
    """Return a probe that reports whether *host*:*port* accepts a TCP connection."""

    def _probe() -> bool:
        try:
            with socket.create_connection((host, port), timeout=timeout):
                return True
        except OSError:
            return False

    return _probe


class ConnectivityMonitor:
    """Background thread that probes the network and updates a gate.

    Args:
        gate: The gate to publish into.
        probe: Callable returning ``True`` when the network is usable.
        interval: Seconds to wait between probes.
    """

    def __init__(
        self,
        gate: ConnectivityGate,
        probe: Optional[Probe] = None,
        interval: float = 5.0,
    ) -> None:
        self._gate = gate
        self._probe = probe or tcp_probe("1.1.1.1", 443)
        self._interval = interval
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @classmethod
    def from_config(
        cls, gate: ConnectivityGate, config: ConnectivityConfig
    ) -> ConnectivityMonitor:
        probe = tcp_probe(config.probe_host, config.probe_port, config.timeout)
        return cls(gate, probe=probe, interval=config.interval)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def check_once(self) -> bool:
        """Run the probe once, publish the result and return it.

        A probe that raises counts as unreachable.
        """
        try:
            reachable = bool(self._probe())
        except Exception:
            logger.debug("Connectivity probe raised", exc_info=True)
            reachable = False
        if self._gate.set_reachable(reachable):
            if reachable:
                logger.info("We're connected!")
            else:
                logger.info("No connection.")
        return reachable

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="authflow-connectivity", daemon=True
        )
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    def _run(self) -> None:
        while not self._stop.is_set():
            self.check_once()
            self._stop.wait(self._interval)

    def __enter__(self) -> ConnectivityMonitor:
        self.start()
        return self

    def __exit__(self, *args: object) -> None:
        self.stop()
