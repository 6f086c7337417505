import ipaddress
import logging
import math
import re
import socket
from dataclasses import dataclass
from typing import Tuple

from netsec_scanner.core.errors import ResolutionError, ValidationError

logger = logging.getLogger(__name__)

MIN_PORT = 1
MAX_PORT = 65535
MAX_TIMEOUT = 3600.0

PORT_RANGE_PATTERN = re.compile(r"^\d+-\d+$")
HOSTNAME_PATTERN = re.compile(r"^(?=.{1,253}$)[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?(?:\.[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?)*\.?$")


@dataclass(frozen=True)
class ResolvedTarget:
    host: str
    address: str
    family: int


def parse_port_range(ports_str: str) -> Tuple[int, int]:
    """
    Parses a 'start-end' port interval such as '1-1000'.

    Raises:
        ValidationError: The string is not of the form 'start-end', or the bounds
            fall outside 1..65535, or start is greater than end.
    """
    if ports_str is None or not PORT_RANGE_PATTERN.match(ports_str.strip()):
        raise ValidationError(f"Invalid port range '{ports_str}'. Use the form start-end, e.g. 1-1000.")

    start_port, end_port = (int(p) for p in ports_str.strip().split("-"))
    if not (MIN_PORT <= start_port <= end_port <= MAX_PORT):
        raise ValidationError(
            f"Invalid port range '{ports_str}'. Ports must satisfy {MIN_PORT} <= start <= end <= {MAX_PORT}."
        )
    return start_port, end_port


def validate_timeout(timeout: float) -> float:
    """Per-probe timeouts must lie in (0, MAX_TIMEOUT] seconds."""
    if not (timeout > 0 and math.isfinite(timeout) and timeout <= MAX_TIMEOUT):
        raise ValidationError(f"Invalid timeout: {timeout}. Must be greater than 0 and at most {MAX_TIMEOUT:g} seconds.")
    return timeout


def validate_target(target: str) -> str:
    """Checks that the target is a single IPv4/IPv6 literal or a DNS name and returns it stripped."""
    if not target or not target.strip():
        raise ValidationError("Target is required.")
    target = target.strip()

    # IPv6 literals are sometimes written in brackets
    candidate = target[1:-1] if target.startswith("[") and target.endswith("]") else target
    try:
        return str(ipaddress.ip_address(candidate))
    except ValueError:
        pass

    if "/" in target:
        raise ValidationError(f"Invalid target '{target}'. Network ranges are not supported, scan one host at a time.")
    if re.match(r"^[0-9.]+$", target):
        raise ValidationError(f"Invalid target '{target}'. Not a valid IPv4 address.")
    if not HOSTNAME_PATTERN.match(target):
        raise ValidationError(f"Invalid target '{target}'. Provide an IP address or hostname.")
    return target


def resolve_target(target: str) -> ResolvedTarget:
    """
    Resolves the target once, before any probing starts.

    IPv4 results are preferred when a name has both A and AAAA records.

    Raises:
        ResolutionError: The name has no usable address.
    """
    try:
        infos = socket.getaddrinfo(target, None, type=socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError) as e:
        raise ResolutionError(target, str(e)) from e

    usable = [info for info in infos if info[0] in (socket.AF_INET, socket.AF_INET6)]
    if not usable:
        raise ResolutionError(target, "no IPv4 or IPv6 address")

    usable.sort(key=lambda info: 0 if info[0] == socket.AF_INET else 1)
    family, _, _, _, sockaddr = usable[0]
    logger.debug(f"Resolved {target} -> {sockaddr[0]}")
    return ResolvedTarget(host=target, address=sockaddr[0], family=family)
