"""
WaybackRecon command line interface.

Usage:
    waybackrecon example.com
    echo "example.com" | waybackrecon
    cat domains.txt | waybackrecon -o all.json
    waybackrecon -s desc -l 5000 target.com
"""

import asyncio
import sys
from typing import Any, Dict, Iterator, List, Optional, TextIO

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .core.config import MAX_LIMIT, DomainQuery, build_config, ReconConfig
from .core.exceptions import ConfigurationError
from .core.log_config import configure_logging
from .core.recon import DomainResult, ReconRunner


console = Console(soft_wrap=True, emoji=False)
err_console = Console(stderr=True, soft_wrap=True, emoji=False)

EPILOG = """
\b
Examples:
  waybackrecon example.com
  echo "google.com" | waybackrecon
  cat domains.txt | waybackrecon -o all.json
  waybackrecon -s desc target.com

\b
Output (endpoints.json):
  [
    {"url": "https://example.com/login", "method": "POST", "parameters": ["username", "password"]},
    ...
  ]

Source: https://archive.org/developers/wayback-cdx-server.html
"""


def read_domains(stream: TextIO) -> Iterator[str]:
    """Yield domains from a stream, one per line, skipping blank lines"""
    for line in stream:
        domain = line.split("\r", 1)[0].split("\n", 1)[0]
        if domain:
            yield domain


class ConsoleReporter:
    """Prints runner events: progress lines to stdout, failures to stderr"""

    def __init__(self, config: ReconConfig, show_banner: bool = False):
        self.config = config
        self.show_banner = show_banner

    def __call__(self, event: str, data: Dict[str, Any]):
        if event == "domain_started" and self.show_banner:
            console.print(f"\n=== Processing: {data['domain']} ===", markup=False, highlight=False)

        elif event == "query" and self.config.verbose:
            console.print(f"Querying: {data['url']}", markup=False, highlight=False)

        elif event == "endpoint_discovered":
            console.print(data["endpoint"].describe(), markup=False, highlight=False)

        elif event == "domain_completed":
            result: DomainResult = data["result"]
            if not self.config.verbose:
                console.print(
                    f"\nRecon complete for {result.domain}. "
                    f"JSON output saved to {result.output_path}",
                    markup=False,
                    highlight=False,
                )
            else:
                console.print(
                    f"[dim]{result.endpoint_count} endpoints, "
                    f"{result.pages_fetched} pages, "
                    f"{result.duplicate_count} duplicates, "
                    f"stopped: {result.stop_reason}[/dim]"
                )

        elif event == "domain_failed":
            err_console.print(f"[red]{escape(data['error'])}[/red]", highlight=False)
            if not data.get("invalid_domain"):
                err_console.print(f"Failed to process {data['domain']}", markup=False, highlight=False)


def print_summary(results: List[DomainResult]):
    """Print a per-domain summary table"""
    table = Table(title="Recon Summary")
    table.add_column("Domain", style="cyan", no_wrap=True)
    table.add_column("Endpoints", justify="right")
    table.add_column("Pages", justify="right")
    table.add_column("Output / Error", style="yellow")

    for result in results:
        if result.success:
            table.add_row(result.domain, str(result.endpoint_count), str(result.pages_fetched), str(result.output_path))
        else:
            table.add_row(result.domain, "-", "-", f"[red]{escape(result.error)}[/red]")

    console.print(table)


async def run_recon(config: ReconConfig, domains, show_banner: bool) -> List[DomainResult]:
    """Run the pipeline over domains with console reporting attached"""
    runner = ReconRunner(config)
    runner.subscribe(ConsoleReporter(config, show_banner=show_banner))
    return await runner.run(domains)


@click.command(
    context_settings={"help_option_names": ["-h", "--help"]},
    epilog=EPILOG,
)
@click.version_option(version=__version__, prog_name="WaybackRecon")
@click.argument("domain", required=False)
@click.option("-o", "--output", type=click.Path(dir_okay=False), default=None,
              help="Output JSON file (default: endpoints.json)")
@click.option("-l", "--limit", type=click.IntRange(1, MAX_LIMIT), default=None,
              help=f"Max results per query (1-{MAX_LIMIT}, default: 100000)")
@click.option("-t", "--timeout", type=click.IntRange(min=1), default=None,
              help="Request timeout in seconds (default: 60)")
@click.option("-v", "--verbose", is_flag=True, default=False, help="Show query URLs")
@click.option("-s", "--sort", "sort_order", type=click.Choice(["asc", "desc"]), default=None,
              help="Sort order: asc (default), desc")
@click.option("-c", "--config", "config_file", type=click.Path(exists=True, dir_okay=False), default=None,
              help="YAML file with default option values")
@click.option("--per-domain", is_flag=True, default=False,
              help="Write one file per domain (endpoints_<domain>.json)")
@click.pass_context
def cli(
    ctx: click.Context,
    domain: Optional[str],
    output: Optional[str],
    limit: Optional[int],
    timeout: Optional[int],
    verbose: bool,
    sort_order: Optional[str],
    config_file: Optional[str],
    per_domain: bool,
):
    """
    Recon tool that queries the Internet Archive CDX Server and outputs
    endpoints in JSON format.

    DOMAIN is the target domain (e.g. example.com). Omit it or pass "-"
    to read domains from stdin, one per line.
    """
    try:
        config = build_config(
            config_file,
            output=output,
            limit=limit,
            timeout=timeout,
            verbose=verbose or None,
            sort_order=sort_order,
            per_domain=per_domain or None,
        )
    except ConfigurationError as e:
        err_console.print(f"[red]Error:[/red] {escape(str(e))}", highlight=False)
        ctx.exit(1)

    configure_logging(config.verbose)

    stdin_mode = domain is None or domain == "-"
    if not stdin_mode:
        try:
            DomainQuery.from_domain(domain, config)
        except ConfigurationError as e:
            err_console.print(f"[red]{escape(str(e))}[/red]", highlight=False)
            ctx.exit(1)

    domains = read_domains(click.get_text_stream("stdin")) if stdin_mode else [domain]

    try:
        results = asyncio.run(run_recon(config, domains, show_banner=stdin_mode))
    except KeyboardInterrupt:
        err_console.print("\n[yellow]Recon interrupted by user[/yellow]")
        ctx.exit(1)
    except MemoryError:
        err_console.print("[bold red]Out of memory, aborting[/bold red]")
        ctx.exit(1)

    if stdin_mode and config.verbose and results:
        print_summary(results)

    # A failed domain only fails the run when it was the only one requested
    if not stdin_mode and not results[0].success:
        ctx.exit(1)


def main():
    """Entry point: usage errors exit with status 1"""
    try:
        exit_code = cli.main(prog_name="waybackrecon", standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(1)
    except click.Abort:
        err_console.print("Aborted!")
        sys.exit(1)

    sys.exit(exit_code or 0)


if __name__ == "__main__":
    main()
