from typing import Optional

from netsec_scanner.core.config import ScannerSettings, get_profile, load_profiles
from netsec_scanner.reconnaissance.scan_coordinator import ScanSession, ScanTarget
from netsec_scanner.reconnaissance.targets import parse_port_range, validate_target


def create_session(settings: ScannerSettings,
                   target: str,
                   ports: Optional[str] = None,
                   threads: Optional[int] = None,
                   timeout: Optional[float] = None,
                   profile: Optional[str] = None,
                   profiles_file: Optional[str] = None,
                   verbose: bool = False) -> ScanSession:
    """
    Validates scan parameters and builds a ScanSession.

    Each parameter is taken from the explicit argument, else the named profile,
    else the settings.

    Raises:
        ValidationError: Any parameter is invalid. Nothing has touched the network yet.
    """
    host = validate_target(target)

    chosen_ports, chosen_threads, chosen_timeout = settings.ports, settings.threads, settings.timeout
    if profile:
        selected = get_profile(profile, load_profiles(profiles_file or settings.profiles_file))
        chosen_ports, chosen_threads, chosen_timeout = selected.port_range, selected.threads, selected.timeout

    if ports is not None:
        chosen_ports = ports
    if threads is not None:
        chosen_threads = threads
    if timeout is not None:
        chosen_timeout = timeout

    start_port, end_port = parse_port_range(chosen_ports)
    return ScanSession(
        target=ScanTarget(host=host, start_port=start_port, end_port=end_port),
        concurrency=settings.validate_threads(chosen_threads),
        timeout=settings.validate_timeout(chosen_timeout),
        verbose=verbose,
    )
