import random
import socket
import threading
import time
from collections import Counter
from unittest.mock import patch

import pytest

from netsec_scanner.core.errors import ResolutionError, ValidationError
from netsec_scanner.reconnaissance.port_probe import PortOutcome, PortState
from netsec_scanner.reconnaissance.scan_coordinator import ScanCoordinator, ScanSession, ScanTarget


class RecordingProbe:
    """Stand-in for port_probe.probe that records calls and tracks concurrency."""

    def __init__(self, open_ports=(), error_ports=(), delay=0.0, jitter=False):
        self.open_ports = set(open_ports)
        self.error_ports = set(error_ports)
        self.delay = delay
        self.jitter = jitter
        self.calls = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    def __call__(self, host, port, timeout, family=socket.AF_INET):
        with self._lock:
            self.calls.append(port)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.delay:
                time.sleep(random.uniform(0, self.delay) if self.jitter else self.delay)
            if port in self.open_ports:
                return PortOutcome(port=port, state=PortState.OPEN, service=f"svc-{port}", vulnerability="note")
            if port in self.error_ports:
                return PortOutcome(port=port, state=PortState.ERROR, reason="Too many open files")
            return PortOutcome.closed(port)
        finally:
            with self._lock:
                self.active -= 1


def make_session(start=1, end=100, concurrency=10, timeout=0.5, verbose=False):
    return ScanSession(
        target=ScanTarget(host="127.0.0.1", start_port=start, end_port=end),
        concurrency=concurrency,
        timeout=timeout,
        verbose=verbose,
    )


class TestScanTarget:

    def test_port_interval(self):
        target = ScanTarget(host="127.0.0.1", start_port=20, end_port=25)
        assert list(target.ports()) == [20, 21, 22, 23, 24, 25]
        assert target.port_count == 6

    @pytest.mark.parametrize("start,end", [(0, 10), (10, 5), (70000, 70010), (1, 65536)])
    def test_invalid_interval(self, start, end):
        with pytest.raises(ValidationError):
            ScanTarget(host="127.0.0.1", start_port=start, end_port=end)


class TestScanSession:

    def test_rejects_zero_concurrency(self):
        with pytest.raises(ValidationError):
            make_session(concurrency=0)

    @pytest.mark.parametrize("timeout", [0, -0.5, float("inf"), float("nan"), 1e300])
    def test_rejects_unusable_timeout(self, timeout):
        with pytest.raises(ValidationError):
            make_session(timeout=timeout)


class TestScanCoordinator:

    def test_every_port_probed_exactly_once(self):
        fake_probe = RecordingProbe(delay=0.001, jitter=True)
        session = make_session(start=100, end=350, concurrency=16)

        report = ScanCoordinator(probe_func=fake_probe).run(session)

        counts = Counter(fake_probe.calls)
        assert set(counts) == set(range(100, 351))
        assert all(count == 1 for count in counts.values())
        assert report.total_scanned == 251

    def test_concurrency_bound_respected(self):
        fake_probe = RecordingProbe(delay=0.01)
        session = make_session(start=1, end=120, concurrency=5)

        ScanCoordinator(probe_func=fake_probe).run(session)

        assert 1 <= fake_probe.max_active <= 5

    def test_only_open_ports_are_retained(self):
        fake_probe = RecordingProbe(open_ports={22, 80}, error_ports={81})
        session = make_session(start=20, end=90, concurrency=8)

        report = ScanCoordinator(probe_func=fake_probe).run(session)

        assert list(report.details) == [22, 80]
        assert report.details[22].service == "svc-22"
        assert report.open_port_count == len(report.details) == 2
        assert session.error_count == 1
        assert 81 not in report.details

    def test_details_sorted_regardless_of_completion_order(self):
        fake_probe = RecordingProbe(open_ports={5, 3, 9, 1, 7}, delay=0.02, jitter=True)
        session = make_session(start=1, end=10, concurrency=10)

        report = ScanCoordinator(probe_func=fake_probe).run(session)

        assert list(report.details) == [1, 3, 5, 7, 9]

    def test_timing_fields(self):
        session = make_session(start=1, end=10)

        report = ScanCoordinator(probe_func=RecordingProbe()).run(session)

        assert report.end_time >= report.start_time
        assert report.duration_seconds >= 0
        assert session.start_time is not None and session.end_time is not None

    def test_probe_receives_resolved_address_and_timeout(self):
        seen = []

        def capturing_probe(host, port, timeout, family):
            seen.append((host, port, timeout, family))
            return PortOutcome.closed(port)

        ScanCoordinator(probe_func=capturing_probe).run(make_session(start=443, end=443, timeout=0.75))

        assert seen == [("127.0.0.1", 443, 0.75, socket.AF_INET)]

    def test_on_open_callback(self):
        announced = []
        coordinator = ScanCoordinator(
            probe_func=RecordingProbe(open_ports={8080}),
            on_open=lambda port, finding: announced.append((port, finding.service)),
        )

        coordinator.run(make_session(start=8000, end=8100, verbose=True))

        assert announced == [(8080, "svc-8080")]

    def test_resolution_failure_before_any_probe(self):
        fake_probe = RecordingProbe()
        session = ScanSession(target=ScanTarget(host="no-such-host.invalid", start_port=1, end_port=10))

        with patch("netsec_scanner.reconnaissance.targets.socket.getaddrinfo",
                   side_effect=socket.gaierror(socket.EAI_NONAME, "Name or service not known")):
            with pytest.raises(ResolutionError):
                ScanCoordinator(probe_func=fake_probe).run(session)

        assert fake_probe.calls == []
        assert session.start_time is None

    def test_cancellation_stops_dispatch(self):
        coordinator = None
        fake_probe = RecordingProbe(open_ports={3}, delay=0.005)

        def cancelling_probe(host, port, timeout, family):
            if port == 20:
                coordinator.cancel()
            return fake_probe(host, port, timeout, family)

        coordinator = ScanCoordinator(probe_func=cancelling_probe)
        session = make_session(start=1, end=5000, concurrency=4)

        report = coordinator.run(session)

        assert report.cancelled
        assert coordinator.cancelled
        assert len(fake_probe.calls) < 5000
        assert len(fake_probe.calls) == len(set(fake_probe.calls))
        assert report.total_scanned == len(fake_probe.calls)
        assert report.details[3].service == "svc-3"

    def test_session_cannot_be_reused(self):
        session = make_session(start=1, end=3)
        coordinator = ScanCoordinator(probe_func=RecordingProbe())
        coordinator.run(session)

        with pytest.raises(RuntimeError):
            coordinator.run(session)

    def test_unexpected_probe_exception_is_contained(self):
        fake_probe = RecordingProbe(open_ports={12})

        def flaky_probe(host, port, timeout, family):
            if port == 7:
                fake_probe.calls.append(port)
                raise RuntimeError("socket table corrupted")
            return fake_probe(host, port, timeout, family)

        session = make_session(start=1, end=20, concurrency=4)

        report = ScanCoordinator(probe_func=flaky_probe).run(session)

        assert sorted(fake_probe.calls) == list(range(1, 21))
        assert session.error_count == 1
        assert report.total_scanned == 20
        assert list(report.details) == [12]
        assert session.end_time is not None

    def test_failing_open_callback_does_not_abort_scan(self):
        def broken_callback(port, finding):
            raise ValueError("display closed")

        coordinator = ScanCoordinator(probe_func=RecordingProbe(open_ports={2, 4}), on_open=broken_callback)

        report = coordinator.run(make_session(start=1, end=5, concurrency=2))

        assert list(report.details) == [2, 4]
        assert report.total_scanned == 5
