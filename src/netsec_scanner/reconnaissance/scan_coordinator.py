"""
Bounded concurrent dispatch of port probes.

MITRE ATT&CK Mapping:
- T1046: Network Service Discovery (TCP connect scan)
"""

import logging
import threading
from concurrent.futures import FIRST_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, Iterator, Optional

from netsec_scanner.core.errors import ProbeError, ValidationError
from netsec_scanner.reconnaissance.port_probe import PortOutcome, PortState, probe
from netsec_scanner.reconnaissance.scan_report import PortFinding, ScanReport
from netsec_scanner.reconnaissance.targets import MAX_PORT, MIN_PORT, resolve_target, validate_timeout

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 100
DEFAULT_TIMEOUT = 1.0

ProbeFunc = Callable[..., PortOutcome]
OpenPortCallback = Callable[[int, PortFinding], None]


@dataclass(frozen=True)
class ScanTarget:
    host: str
    start_port: int
    end_port: int

    def __post_init__(self):
        if not (MIN_PORT <= self.start_port <= self.end_port <= MAX_PORT):
            raise ValidationError(
                f"Invalid port range {self.start_port}-{self.end_port}. "
                f"Ports must satisfy {MIN_PORT} <= start <= end <= {MAX_PORT}."
            )

    @property
    def port_count(self) -> int:
        return self.end_port - self.start_port + 1

    def ports(self) -> Iterator[int]:
        return iter(range(self.start_port, self.end_port + 1))


@dataclass
class ScanSession:
    """
    State of one scan invocation.

    `results` is the only state shared between workers; every write to it (and to the
    counters next to it) happens under `lock`.
    """
    target: ScanTarget
    concurrency: int = DEFAULT_CONCURRENCY
    timeout: float = DEFAULT_TIMEOUT
    verbose: bool = False
    results: Dict[int, PortFinding] = field(default_factory=dict)
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    ports_scanned: int = 0
    error_count: int = 0
    cancelled: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def __post_init__(self):
        if self.concurrency < 1:
            raise ValidationError(f"Concurrency must be at least 1, got {self.concurrency}.")
        validate_timeout(self.timeout)

    def record(self, outcome: PortOutcome) -> Optional[PortFinding]:
        with self.lock:
            self.ports_scanned += 1
            if outcome.state is PortState.OPEN:
                finding = PortFinding(service=outcome.service, vulnerability=outcome.vulnerability)
                self.results[outcome.port] = finding
                return finding
            if outcome.state is PortState.ERROR:
                self.error_count += 1
        return None


class ScanCoordinator:
    """
    Runs a ScanSession: resolves the target once, then probes every port of the
    interval with at most `session.concurrency` probes in flight.
    """

    def __init__(self, probe_func: Optional[ProbeFunc] = None, on_open: Optional[OpenPortCallback] = None):
        self.probe_func = probe_func or probe
        self.on_open = on_open
        self._cancel_event = threading.Event()

    def cancel(self):
        """Stops dispatching new probes. In-flight probes finish on their own timeout."""
        if not self._cancel_event.is_set():
            logger.warning("Scan cancellation requested. Waiting for in-flight probes to finish.")
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

    def _probe_port(self, session: ScanSession, address: str, family: int, port: int) -> PortOutcome:
        try:
            outcome = self.probe_func(address, port, session.timeout, family)
        except Exception as e:
            logger.debug(f"Unexpected failure probing port {port}", exc_info=True)
            outcome = PortOutcome.error(ProbeError(port, f"{type(e).__name__}: {e}"))
        finding = session.record(outcome)

        if finding is not None:
            logger.info(f"Port {port} on {session.target.host} is Open - {finding.service}")
            if self.on_open is not None:
                try:
                    self.on_open(port, finding)
                except Exception:
                    logger.exception(f"Open port callback failed for port {port}")
        elif outcome.state is PortState.ERROR:
            log = logger.warning if session.verbose else logger.debug
            log(f"Port {port} on {session.target.host}: Error - {outcome.reason}")
        return outcome

    def run(self, session: ScanSession) -> ScanReport:
        """
        Scans the session's port interval and returns the report.

        Raises:
            ResolutionError: The target does not resolve. No port is probed.
        """
        if session.start_time is not None:
            raise RuntimeError("A ScanSession can only be run once.")

        resolved = resolve_target(session.target.host)
        target = session.target
        logger.info(
            f"Starting scan on {target.host} ({resolved.address}) for ports {target.start_port}-{target.end_port} "
            f"with {session.concurrency} threads, timeout {session.timeout}s."
        )

        ports = target.ports()
        session.start_time = datetime.now()

        with ThreadPoolExecutor(max_workers=session.concurrency, thread_name_prefix="probe") as pool:
            pending = set()

            def submit_next() -> bool:
                if self._cancel_event.is_set():
                    return False
                port = next(ports, None)
                if port is None:
                    return False
                pending.add(pool.submit(self._probe_port, session, resolved.address, resolved.family, port))
                return True

            while len(pending) < session.concurrency and submit_next():
                pass

            while pending:
                done, pending = wait(pending, return_when=FIRST_COMPLETED)
                for fut in done:
                    if fut.cancelled():
                        continue
                    fut.result()
                while len(pending) < session.concurrency and submit_next():
                    pass

        session.end_time = datetime.now()
        session.cancelled = self._cancel_event.is_set()

        if session.cancelled:
            logger.warning(f"Scan on {target.host} interrupted after {session.ports_scanned} of {target.port_count} ports.")
        logger.info(
            f"Scan completed on {target.host}: {len(session.results)} open, "
            f"{session.error_count} errors, {session.ports_scanned} ports scanned."
        )
        return ScanReport.from_session(session)
