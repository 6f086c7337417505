import errno
import logging
import socket
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from netsec_scanner.core.errors import ProbeError
from netsec_scanner.reconnaissance.service_catalog import lookup_service, lookup_vulnerability

logger = logging.getLogger(__name__)

BANNER_PROBE = b"\r\n\r\n"
BANNER_MAX_BYTES = 1024

# Socket errors that mean "nothing is listening / reachable", not a probe failure.
CLOSED_ERRNOS = {
    errno.ECONNREFUSED,
    errno.ECONNRESET,
    errno.ECONNABORTED,
    errno.ETIMEDOUT,
    errno.EHOSTUNREACH,
    errno.ENETUNREACH,
    getattr(errno, "EHOSTDOWN", errno.EHOSTUNREACH),
}


class PortState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"
    ERROR = "error"


@dataclass(frozen=True)
class PortOutcome:
    """Result of one probe. service/vulnerability are set only for OPEN, reason only for ERROR."""
    port: int
    state: PortState
    service: Optional[str] = None
    vulnerability: Optional[str] = None
    reason: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.state is PortState.OPEN

    @classmethod
    def closed(cls, port: int) -> "PortOutcome":
        return cls(port=port, state=PortState.CLOSED)

    @classmethod
    def error(cls, error: ProbeError) -> "PortOutcome":
        return cls(port=error.port, state=PortState.ERROR, reason=error.reason)


def grab_banner(sock: socket.socket) -> str:
    """
    Sends a bare CRLF probe and reads at most BANNER_MAX_BYTES.

    Best effort: any socket error means "no banner" and yields an empty string.
    """
    try:
        sock.sendall(BANNER_PROBE)
        banner = sock.recv(BANNER_MAX_BYTES)
    except OSError:
        return ""
    return banner.decode("utf-8", errors="replace").strip()


def identify_service(port: int, banner: str = "") -> str:
    service_name = lookup_service(port)
    if banner:
        return f"{service_name} ({banner})"
    return service_name


def probe(host: str, port: int, timeout: float, family: int = socket.AF_INET) -> PortOutcome:
    """
    Performs one TCP connect against (host, port), followed by a banner read if it connects.

    Refusals, timeouts and unreachable-host conditions are CLOSED. Other socket
    failures (descriptor or buffer exhaustion, for instance) are ERROR. There are no retries.
    """
    try:
        with socket.socket(family, socket.SOCK_STREAM) as sock:
            sock.settimeout(timeout)
            sock.connect((host, port))
            banner = grab_banner(sock)
    except (socket.timeout, ConnectionRefusedError):
        return PortOutcome.closed(port)
    except OSError as e:
        if e.errno in CLOSED_ERRNOS:
            return PortOutcome.closed(port)
        return PortOutcome.error(ProbeError(port, str(e)))

    return PortOutcome(
        port=port,
        state=PortState.OPEN,
        service=identify_service(port, banner),
        vulnerability=lookup_vulnerability(port),
    )
