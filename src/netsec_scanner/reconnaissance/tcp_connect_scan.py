import argparse
import logging
import signal
import sys
import threading
from typing import List, Optional

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from netsec_scanner.core.config import ScannerSettings
from netsec_scanner.core.errors import ReportIOError, ResolutionError, ValidationError
from netsec_scanner.core.logging_config import setup_logging
from netsec_scanner.reconnaissance.scan_coordinator import ScanCoordinator, ScanSession
from netsec_scanner.reconnaissance.scan_report import PortFinding, ScanReport
from netsec_scanner.reconnaissance.session_factory import create_session

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_USAGE = 2
EXIT_INTERRUPTED = 130

SAFETY_WARNING = "Only scan hosts you own or have explicit written permission to test."


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Network Security Scanner: a multi-threaded TCP connect scanner with service identification."
    )
    parser.add_argument("target", help="Target IP address or hostname")
    parser.add_argument("-p", "--ports", default=None, help="Port range to scan, e.g. 1-1000 (default: 1-1000)")
    parser.add_argument("-t", "--threads", type=int, default=None, help="Number of concurrent probes (default: 100)")
    parser.add_argument("-o", "--output", help="Save the JSON report to this file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print each open port as it is found")
    parser.add_argument("--timeout", type=float, default=None, help="Per-probe timeout in seconds (default: 1.0)")
    parser.add_argument("--profile", help="Named scan profile supplying ports, threads and timeout")
    parser.add_argument("--profiles-file", help="YAML file with additional scan profiles")
    parser.add_argument("--log-file", default=None, help="Scan log file (default: tcp_scan.log, '' disables)")
    return parser


def build_session(args: argparse.Namespace, settings: ScannerSettings) -> ScanSession:
    return create_session(
        settings,
        args.target,
        ports=args.ports,
        threads=args.threads,
        timeout=args.timeout,
        profile=args.profile,
        profiles_file=args.profiles_file,
        verbose=args.verbose,
    )


def print_report(console: Console, report: ScanReport):
    console.print("-" * 60)
    if report.cancelled:
        console.print("[bold yellow]Scan interrupted by user. Showing partial results.[/bold yellow]")
    console.print(f"[bold green]Scan completed in {report.duration_seconds:.2f} seconds[/bold green]")
    console.print(
        f"[bold]Ports scanned: {report.total_scanned} | Open ports: {report.open_port_count} | "
        f"Potentially vulnerable: {report.vulnerable_port_count}[/bold]"
    )

    if not report.details:
        console.print("[yellow]No open ports found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta", title="Detailed Results")
    table.add_column("Port", style="dim", justify="right")
    table.add_column("Service")
    table.add_column("Potential Vulnerability")
    for port, finding in report.details.items():
        table.add_row(str(port), escape(finding.service), escape(finding.vulnerability))
    console.print(table)


def run_scan(session: ScanSession, console: Console) -> ScanReport:
    """Runs the scan with SIGINT turned into a cooperative cancellation."""
    print_lock = threading.Lock()

    def announce(port: int, finding: PortFinding):
        with print_lock:
            console.print(f"[green][+][/green] Port {port} is open - {escape(finding.service)}")

    coordinator = ScanCoordinator(on_open=announce if session.verbose else None)

    # signal handlers can only be installed from the main thread
    install_handler = threading.current_thread() is threading.main_thread()
    if install_handler:
        previous_handler = signal.signal(signal.SIGINT, lambda signum, frame: coordinator.cancel())
    try:
        return coordinator.run(session)
    finally:
        if install_handler:
            signal.signal(signal.SIGINT, previous_handler or signal.SIG_DFL)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    console = Console()

    try:
        settings = ScannerSettings.from_env()
    except ValidationError as e:
        console.print(f"[bold red]Error: {escape(str(e))}[/bold red]")
        return EXIT_USAGE

    log_file = settings.log_file if args.log_file is None else args.log_file
    setup_logging(log_file=log_file)

    try:
        session = build_session(args, settings)
    except ValidationError as e:
        logger.critical(f"Invalid arguments: {e}")
        console.print(f"[bold red]Error: {escape(str(e))}[/bold red]")
        return EXIT_USAGE

    target = session.target
    console.print("=" * 60)
    console.print("[bold cyan]NETWORK SECURITY SCANNER[/bold cyan]")
    console.print("=" * 60)
    console.print(f"[dim]{SAFETY_WARNING}[/dim]")
    console.print(f"Starting scan on target: {target.host}")
    console.print(f"Port range: {target.start_port}-{target.end_port}")
    console.print(f"Threads: {session.concurrency}")

    try:
        report = run_scan(session, console)
    except ResolutionError as e:
        logger.critical(str(e))
        console.print(f"[bold red]Error: {escape(str(e))}[/bold red]")
        return EXIT_FAILURE

    print_report(console, report)

    if args.output:
        try:
            report.persist(args.output)
        except ReportIOError as e:
            console.print(f"[bold red]Error: {escape(str(e))}[/bold red]")
            return EXIT_FAILURE
        console.print(f"Report saved to {args.output}")

    return EXIT_INTERRUPTED if report.cancelled else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
