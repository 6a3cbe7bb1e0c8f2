"""Command-line interface for udp-sweep."""

import argparse
import logging
import sys
from ipaddress import IPv4Address
from typing import List, Optional, Tuple

from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table
from rich.text import Text
from rich import box

from . import __version__
from .analysis.latency_analyzer import LatencyAnalyzer
from .config import AppConfig
from .export.report import ReportGenerator, format_cell, summary_line
from .models.matrix import MAX_PROBES, ProbeOutcome
from .responder.echo import EchoResponder
from .sweep.controller import SweepController, SweepResult
from .targets.sources import (
    TargetError,
    expand_cidr,
    load_address_file,
    parse_address_list,
    validate_targets,
)


console = Console()

OUTCOME_STYLES = {
    ProbeOutcome.REPLIED: "green",
    ProbeOutcome.TIMEOUT: "yellow",
    ProbeOutcome.NO_REPLY: "red",
}

INPUT_METHODS = {
    "1": "manual",
    "2": "file",
    "3": "subnet",
}


def setup_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
    )


class SweepApp:
    """Main application coordinator."""

    def __init__(self, targets: List[IPv4Address], config: Optional[AppConfig] = None):
        self.targets = targets
        self.config = config or AppConfig()
        self.controller: Optional[SweepController] = None
        self.result: Optional[SweepResult] = None

    def initialize(self) -> List[str]:
        """Initialize all components. Returns list of issues."""
        issues = self.config.validate()
        if issues:
            return issues

        self.controller = SweepController(
            targets=self.targets,
            probe_config=self.config.probe,
            sweep_config=self.config.sweep,
        )
        issues = self.controller.check_ready()
        if issues:
            self.controller.close()
        return issues

    def run(self) -> SweepResult:
        self.result = self.controller.run()
        return self.result

    def get_results_table(self) -> Table:
        """Create Rich table with per-target statistics."""
        table = Table(
            title="Ping Sweep Results",
            box=box.ROUNDED,
            show_header=True,
            header_style="bold cyan",
        )

        table.add_column("Target", style="bold")
        table.add_column("Sent", justify="right")
        table.add_column("Replied", justify="right")
        table.add_column("Lost", justify="right")
        table.add_column("Timed out", justify="right")
        table.add_column("Min", justify="right")
        table.add_column("Avg", justify="right")
        table.add_column("Max", justify="right")
        table.add_column("Quality", justify="right")

        analyzer = LatencyAnalyzer(self.result.max_time_us)
        for stats in analyzer.analyze(self.result):
            if stats.replied == 0:
                quality_style = "red"
            elif stats.loss_percent == 0:
                quality_style = "green"
            else:
                quality_style = "yellow"

            has_samples = stats.replied > 0
            table.add_row(
                stats.address,
                f"{stats.sent}",
                f"{stats.replied}",
                Text(f"{stats.lost}", style="red" if stats.lost else ""),
                Text(f"{stats.timed_out}", style="yellow" if stats.timed_out else ""),
                f"{stats.min_us:.0f}us" if has_samples else "-",
                f"{stats.avg_us:.0f}us" if has_samples else "-",
                f"{stats.max_us:.0f}us" if has_samples else "-",
                Text(stats.quality, style=quality_style),
            )

        return table

    def print_results(self, detailed: bool = True) -> None:
        """Show the sweep on the console."""
        result = self.result

        if detailed:
            console.print(f"Package size={result.packet_size} bytes. TTL={result.ttl}.")
            for index, address in enumerate(result.targets):
                console.print(f"[bold]-----{result.num_probes} pings to {address}-----[/bold]")
                for cell in result.row(index):
                    style = OUTCOME_STYLES[cell.outcome]
                    console.print(Text(format_cell(cell), style=style))
            console.print()

        console.print(self.get_results_table())
        console.print(Panel(
            summary_line(result),
            title="Summary",
            border_style="green" if result.matrix.all_replied else "yellow",
        ))


def prompt_input_method() -> str:
    console.print("Select IP address entry method:")
    console.print("  1. Manual")
    console.print("  2. Text file")
    console.print("  3. Subnet")
    choice = Prompt.ask("Selection", choices=list(INPUT_METHODS), console=console)
    return INPUT_METHODS[choice]


def prompt_count() -> int:
    while True:
        count = IntPrompt.ask("Enter number of pings per address", console=console)
        if 1 <= count <= MAX_PROBES:
            return count
        console.print(f"[red]Count must be between 1 and {MAX_PROBES}.[/red]")


def prompt_targets(method: str) -> List[IPv4Address]:
    """Ask for addresses until the input is valid."""
    questions = {
        "manual": "Enter IPs (space-separated)",
        "file": "Enter path to text file",
        "subnet": "Enter the subnet CIDR notation (/24-32 accepted)",
    }
    while True:
        answer = Prompt.ask(questions[method], console=console)
        try:
            return validate_targets(read_targets(method, answer))
        except TargetError as e:
            console.print(f"[red]{e}[/red]")


def read_targets(method: str, value: str) -> List[IPv4Address]:
    if method == "manual":
        return parse_address_list(value)
    if method == "file":
        return load_address_file(value)
    return expand_cidr(value)


def resolve_targets(args) -> Tuple[str, List[IPv4Address]]:
    """Targets from flags, or interactive prompts when none are given."""
    for method, value in (
        ("manual", args.targets),
        ("file", args.file),
        ("subnet", args.subnet),
    ):
        if value:
            return method, validate_targets(read_targets(method, value))

    method = prompt_input_method()
    if args.count is None:
        args.count = prompt_count()
    return method, prompt_targets(method)


def build_config(args) -> AppConfig:
    config = AppConfig.load(args.config)

    if args.count is not None:
        config.probe.count = args.count
    if args.port is not None:
        config.probe.port = args.port
    if args.timeout is not None:
        config.probe.max_time_us = int(args.timeout * 1_000_000)
    if args.output:
        config.report.output_dir = args.output
    if args.format:
        config.report.formats = [f.strip() for f in args.format.split(",") if f.strip()]
    if args.force:
        config.report.overwrite = True

    return config


def run_sweep(args) -> int:
    """Run a ping sweep command."""
    try:
        method, targets = resolve_targets(args)
    except TargetError as e:
        console.print(f"[red]{e}[/red]")
        return 1

    config = build_config(args)
    app = SweepApp(targets=targets, config=config)

    issues = app.initialize()
    if issues:
        console.print("[red]Cannot start sweep:[/red]")
        for issue in issues:
            console.print(f"  - {issue}")
        return 1

    noun = "address" if len(targets) == 1 else "addresses"
    console.print(f"[green]Pinging {len(targets)} IP {noun}...[/green]")

    with console.status("Waiting for replies..."):
        app.run()

    # Manual entry is shown on screen, file and subnet sweeps go to disk
    if args.print or (method == "manual" and not args.output):
        app.print_results(detailed=True)
        return 0

    report = ReportGenerator(output_dir=config.report.output_dir)
    formats = config.report.formats
    if args.name and not config.report.overwrite:
        existing = report.existing_reports(formats, args.name)
        if existing and not Confirm.ask(
            f"Overwrite existing report(s) {', '.join(existing)}?", console=console
        ):
            console.print("[yellow]Report not written.[/yellow]")
            app.print_results(detailed=False)
            return 0

    paths = report.generate(app.result, formats=formats, base_filename=args.name)
    app.print_results(detailed=False)
    console.print("[bold green]REPORTS GENERATED[/bold green]")
    for fmt, path in paths.items():
        console.print(f"  {fmt}: [link=file://{path}]{path}[/link]")
    return 0


def run_respond(args) -> int:
    """Run the echo responder until interrupted."""
    config = AppConfig.load(args.config)
    port = args.port if args.port is not None else config.probe.port

    responder = EchoResponder(port=port, bind_address=args.bind)
    try:
        responder.open()
    except OSError as e:
        console.print(f"[red]Cannot listen on {args.bind}:{port + 1}: {e}[/red]")
        return 1

    console.print(
        f"[green]Echo responder on {args.bind}:{port + 1}, replying to port {port}. "
        f"Press Ctrl+C to stop.[/green]"
    )
    try:
        responder.serve_forever()
    except KeyboardInterrupt:
        console.print("\n[yellow]Stopping responder...[/yellow]")
    finally:
        responder.stop()

    stats = responder.get_stats()
    console.print(
        f"[cyan]Received: {stats.probes_received:,} | Replied: {stats.replies_sent:,} | "
        f"Malformed: {stats.malformed:,} | Errors: {stats.send_errors:,}[/cyan]"
    )
    return 0


def run_expand(args) -> int:
    """Print the host addresses of a CIDR block."""
    try:
        addresses = expand_cidr(args.cidr)
    except TargetError as e:
        console.print(f"[red]{e}[/red]")
        return 1

    for address in addresses:
        console.print(str(address))
    console.print(f"[dim]{len(addresses)} address(es)[/dim]")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="udp-sweep",
        description="UDP ping sweep: measure loss and round-trip time to hosts running the echo responder.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Sweep command
    sweep_parser = subparsers.add_parser("sweep", help="Probe a set of hosts")
    source = sweep_parser.add_mutually_exclusive_group()
    source.add_argument(
        "-t", "--targets",
        help="Space or comma separated addresses (e.g., '10.0.0.1 10.0.0.2')",
    )
    source.add_argument(
        "-F", "--file",
        help="File with one address per line",
    )
    source.add_argument(
        "-s", "--subnet",
        help="CIDR block to sweep, /24 to /32 (e.g., 192.168.1.0/28)",
    )
    sweep_parser.add_argument(
        "-n", "--count",
        type=int,
        help="Pings per address (default: 4, or from config)",
    )
    sweep_parser.add_argument(
        "-p", "--port",
        type=int,
        help="Reply port P; probes are sent to P+1 (default: 65432)",
    )
    sweep_parser.add_argument(
        "--timeout",
        type=float,
        help="Seconds to wait after the last probe (default: 4)",
    )
    sweep_parser.add_argument(
        "-o", "--output",
        help="Output directory for reports (default: ./reports)",
    )
    sweep_parser.add_argument(
        "--format",
        help="Comma-separated report formats: text,json",
    )
    sweep_parser.add_argument(
        "--name",
        help="Report base filename (default: timestamped)",
    )
    sweep_parser.add_argument(
        "--force",
        action="store_true",
        help="Overwrite existing reports without asking",
    )
    sweep_parser.add_argument(
        "--print",
        action="store_true",
        help="Show results on the console instead of writing reports",
    )
    sweep_parser.add_argument(
        "-c", "--config",
        help="Path to configuration file",
    )

    # Respond command
    respond_parser = subparsers.add_parser("respond", help="Run the echo responder")
    respond_parser.add_argument(
        "-p", "--port",
        type=int,
        help="Reply port P; listens on P+1 (default: 65432)",
    )
    respond_parser.add_argument(
        "-b", "--bind",
        default="0.0.0.0",
        help="Address to listen on (default: 0.0.0.0)",
    )
    respond_parser.add_argument(
        "-c", "--config",
        help="Path to configuration file",
    )

    # Expand command
    expand_parser = subparsers.add_parser("expand", help="List the hosts of a CIDR block")
    expand_parser.add_argument("cidr", help="Block in the form x.x.x.x/m, 24 <= m <= 32")

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    try:
        if args.command == "sweep":
            return run_sweep(args)
        elif args.command == "respond":
            return run_respond(args)
        elif args.command == "expand":
            return run_expand(args)
        else:
            parser.print_help()
            return 0
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        return 130


if __name__ == "__main__":
    sys.exit(main())
