import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Dict, Mapping

from netsec_scanner.core.errors import ReportIOError
from netsec_scanner.reconnaissance.service_catalog import has_known_vulnerability

if TYPE_CHECKING:
    from netsec_scanner.reconnaissance.scan_coordinator import ScanSession

logger = logging.getLogger(__name__)

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class PortFinding:
    service: str
    vulnerability: str

    def to_dict(self) -> Dict[str, str]:
        return {"service": self.service, "vulnerability": self.vulnerability}


@dataclass(frozen=True)
class ScanReport:
    """
    Immutable snapshot of a completed ScanSession.

    `details` holds open ports only, keyed by port number in ascending order, and is
    exposed as a read-only mapping.
    """
    target: str
    start_time: datetime
    end_time: datetime
    duration_seconds: float
    total_scanned: int
    details: Mapping[int, PortFinding] = field(default_factory=dict)
    cancelled: bool = False

    def __post_init__(self):
        ordered = {port: self.details[port] for port in sorted(self.details)}
        object.__setattr__(self, "details", MappingProxyType(ordered))

    @property
    def open_port_count(self) -> int:
        return len(self.details)

    @property
    def vulnerable_port_count(self) -> int:
        return sum(1 for finding in self.details.values() if has_known_vulnerability(finding.vulnerability))

    @classmethod
    def from_session(cls, session: "ScanSession") -> "ScanReport":
        if session.start_time is None or session.end_time is None:
            raise ValueError("Cannot build a report from a session that has not completed.")

        with session.lock:
            details = {port: session.results[port] for port in sorted(session.results)}
            total_scanned = session.ports_scanned

        duration = max(0.0, (session.end_time - session.start_time).total_seconds())
        return cls(
            target=session.target.host,
            start_time=session.start_time,
            end_time=max(session.end_time, session.start_time),
            duration_seconds=duration,
            total_scanned=total_scanned,
            details=details,
            cancelled=session.cancelled,
        )

    def _details_dict(self) -> Dict[str, Dict[str, str]]:
        return {str(port): self.details[port].to_dict() for port in sorted(self.details)}

    def to_dict(self) -> Dict[str, Any]:
        """The on-disk report structure."""
        return {
            "target": self.target,
            "scan_time": {
                "start": self.start_time.strftime(TIME_FORMAT),
                "end": self.end_time.strftime(TIME_FORMAT),
                "duration": self.duration_seconds,
            },
            "ports": {
                "total_scanned": self.total_scanned,
                "open": self.open_port_count,
                "details": self._details_dict(),
            },
        }

    def to_dashboard_dict(self) -> Dict[str, Any]:
        """The flat result object rendered by the dashboard's results and history views."""
        return {
            "target": self.target,
            "start_time": self.start_time.strftime(TIME_FORMAT),
            "end_time": self.end_time.strftime(TIME_FORMAT),
            "duration": self.duration_seconds,
            "open_ports": self.open_port_count,
            "details": self._details_dict(),
        }

    def to_json(self) -> bytes:
        return json.dumps(self.to_dict(), indent=4).encode("utf-8")

    def persist(self, path: str):
        """
        Writes the JSON report to `path`. A report without open ports is written as well.

        Raises:
            ReportIOError: The file could not be written.
        """
        try:
            with open(path, "wb") as f:
                f.write(self.to_json())
        except OSError as e:
            logger.error(f"Failed to write report to {path}: {e}")
            raise ReportIOError(path, str(e)) from e
        logger.info(f"Report saved to {path}")
