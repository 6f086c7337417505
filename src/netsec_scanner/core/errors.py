"""Exception hierarchy for the scanner."""


class ScannerError(Exception):
    """Base class for every error raised by netsec_scanner."""


class ValidationError(ScannerError, ValueError):
    """Bad user input (port range, target, thread count, timeout, profile). Raised before any socket is opened."""


class ResolutionError(ScannerError):
    """The scan target could not be resolved to an address."""

    def __init__(self, target: str, reason: str = ""):
        self.target = target
        self.reason = reason
        message = f"Hostname '{target}' could not be resolved"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ProbeError(ScannerError):
    """Unexpected socket failure on a single port. Recovered locally by the coordinator."""

    def __init__(self, port: int, reason: str):
        self.port = port
        self.reason = reason
        super().__init__(f"Port {port}: {reason}")


class ReportIOError(ScannerError):
    """The scan report could not be written to the requested path."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Could not write report to {path}: {reason}")
