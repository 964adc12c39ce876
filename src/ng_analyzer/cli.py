"""CLI for ng-analyzer - all commands in one module.

Provides commands: audit, init, list.

ng_analyzer/src/ng_analyzer/cli.py
"""

from __future__ import annotations

import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from . import __version__
from .analysis import run_analysis
from .config import CONFIG_FILENAME, DEFAULT_PROFILE, Config, load_config, load_project_config, write_default_config
from .errors import ConfigError
from .findings import Severity
from .results import AnalysisResult
from .rules import BUILTIN_PROFILES, RULES, AnalyzerCategory, RuleEngine

console = Console()
logger = logging.getLogger(__name__)

EXIT_CONFIG_ERROR = 2

_SEVERITY_STYLES = {Severity.ERROR: "red", Severity.WARNING: "yellow", Severity.INFO: "blue"}


@dataclass
class AnalyzerContext:
    """Shared context for CLI commands."""

    project_root: Path | None = None
    verbose: bool = False


@click.group()
@click.version_option(__version__, prog_name="ng-analyzer")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """ng-analyzer: static analysis for Angular projects."""
    ctx.obj = AnalyzerContext(project_root=Path.cwd(), verbose=verbose)

    # Configure logging
    if verbose:
        logging.basicConfig(level=logging.DEBUG)
    else:
        logging.basicConfig(level=logging.INFO)


def _read_records(path: Path) -> tuple[list, str]:
    """Parsed records file: a JSON array, or an object with 'records' and optional 'root_path'."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Cannot read records file {path}: {e}") from e
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise ConfigError(f"Records file {path} is not valid UTF-8 JSON: {e}") from e

    root_path = str(path.parent)
    if isinstance(data, dict):
        root_path = str(data.get("root_path", root_path))
        data = data.get("records")
    if not isinstance(data, list):
        raise ConfigError(f"Records file {path} must contain a JSON array of parsed records")
    return data, root_path


def _print_summary(result: AnalysisResult) -> None:
    if result.issues:
        table = Table(title="Issues")
        table.add_column("Severity")
        table.add_column("Rule", style="cyan")
        table.add_column("Location", style="magenta")
        table.add_column("Message", style="white")
        for issue in result.issues:
            location = issue.file_path if issue.line is None else f"{issue.file_path}:{issue.line}"
            style = _SEVERITY_STYLES[issue.severity]
            table.add_row(
                f"[{style}]{issue.severity.label}[/{style}]",
                issue.rule_id,
                escape(location),
                escape(issue.message),
            )
        console.print(table)
    else:
        console.print("[green]No issues found[/green]")

    if result.recommendations:
        table = Table(title="Recommendations")
        table.add_column("Priority", style="magenta")
        table.add_column("Category", style="cyan")
        table.add_column("Title", style="bold")
        table.add_column("Description", style="white")
        for rec in result.recommendations:
            table.add_row(rec.priority.value, rec.category, escape(rec.title), escape(rec.description))
        console.print(table)

    summary = result.summary
    metrics = result.metrics
    table = Table(title="ng-analyzer Summary")
    table.add_column("Category", style="cyan")
    table.add_column("Count", style="magenta")
    table.add_row("Components", str(metrics.total_components))
    table.add_row("Services", str(metrics.total_services))
    table.add_row("Modules", str(metrics.total_modules))
    table.add_row("Average complexity", f"{metrics.average_complexity:.2f}")
    table.add_row("Issues found", str(summary.total_found))
    table.add_row("Issues shown", str(summary.shown))
    table.add_row("Errors", str(summary.errors), style="red" if summary.errors else "")
    table.add_row("Warnings", str(summary.warning_issues), style="yellow" if summary.warning_issues else "")
    table.add_row("Info", str(summary.infos))
    table.add_row("Parse warnings / faults", str(summary.warnings), style="yellow" if summary.warnings else "")
    console.print(table)


@cli.command("audit")
@click.argument("records_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--full", is_flag=True, help="Run every analyzer category")
@click.option("--analyzers", "-a", help="Comma-separated categories: component,dependency,state,performance")
@click.option("--profile", "-p", help="Profile name (default: from config, else recommended)")
@click.option("--config", "config_path", type=click.Path(path_type=Path), help="Configuration file")
@click.option("--max-complexity", type=click.IntRange(min=0), help="Override the complexity threshold")
@click.option("--depth", type=click.IntRange(min=0), help="Override the dependency chain depth threshold")
@click.option(
    "--severity",
    type=click.Choice(["error", "warning", "info"]),
    default="info",
    help="Hide issues below this severity",
)
@click.option("--workers", type=click.IntRange(min=1), help="Worker threads")
@click.option(
    "--format", "-f", "output_format", type=click.Choice(["summary", "json"]), default="summary", help="Output format"
)
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write the JSON result to a file")
@click.pass_context
def audit(
    ctx: click.Context,
    records_file: Path,
    full: bool,
    analyzers: str | None,
    profile: str | None,
    config_path: Path | None,
    max_complexity: int | None,
    depth: int | None,
    severity: str,
    workers: int | None,
    output_format: str,
    output: Path | None,
) -> None:
    """Analyze a JSON file of parsed Angular source records."""
    analyzer_ctx: AnalyzerContext = ctx.obj
    selection = "full" if full or not analyzers else analyzers

    try:
        if config_path is not None:
            config: Config = load_config(config_path)
        else:
            config = load_project_config(analyzer_ctx.project_root or Path.cwd())
        engine = RuleEngine.from_options(config.profile(profile), max_complexity, depth)
        records, root_path = _read_records(records_file)
        result = run_analysis(
            records,
            engine=engine,
            analyzers=selection,
            severity_floor=severity,
            ignore_globs=config.ignore_globs,
            root_path=root_path,
            max_workers=workers,
        )
    except ConfigError as e:
        console.print(f"[red]Configuration error: {escape(str(e))}[/red]")
        ctx.exit(EXIT_CONFIG_ERROR)

    if output is not None:
        output.write_text(result.to_json() + "\n", encoding="utf-8")
        if output_format != "json":
            console.print(f"[green]Result written to {escape(str(output))}[/green]")

    if output_format == "json":
        click.echo(result.to_json())
    else:
        _print_summary(result)

    ctx.exit(result.exit_code)


@cli.command("init")
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=CONFIG_FILENAME,
    help="Configuration file to create",
)
@click.option(
    "--profile",
    "-p",
    type=click.Choice(sorted(BUILTIN_PROFILES)),
    default=DEFAULT_PROFILE,
    help="Built-in profile to start from",
)
@click.pass_context
def init(ctx: click.Context, output: Path, profile: str) -> None:
    """Create a starter configuration file."""
    if output.exists():
        console.print(f"[yellow]{escape(str(output))} already exists; not overwriting[/yellow]")
        ctx.exit(1)

    try:
        write_default_config(output, profile)
    except ConfigError as e:
        console.print(f"[red]{escape(str(e))}[/red]")
        ctx.exit(EXIT_CONFIG_ERROR)
    console.print(f"[green]Created {escape(str(output))} with the '{profile}' profile[/green]")


@cli.command("list")
@click.option(
    "--category",
    "-c",
    type=click.Choice([c.value for c in AnalyzerCategory]),
    help="Only show rules of one category",
)
@click.option("--details", "-d", is_flag=True, help="Show default options")
@click.pass_context
def list_rules(ctx: click.Context, category: str | None, details: bool) -> None:
    """List all available rules."""
    table = Table(title="Available ng-analyzer Rules")
    table.add_column("Rule", style="cyan")
    table.add_column("Category", style="magenta")
    table.add_column("Severity")
    table.add_column("Description", style="white")
    if details:
        table.add_column("Options", style="dim")

    shown = [r for r in RULES if category is None or r.category.value == category]
    for rule in shown:
        row = [rule.rule_id, rule.category.value, rule.default_severity.label, rule.description]
        if details:
            row.append(", ".join(f"{k}={v}" for k, v in rule.default_options.items()) or "-")
        table.add_row(*row)

    console.print(table)
    console.print(f"\nTotal: {len(shown)} rule(s)")


def main() -> None:
    """Entry point for ng-analyzer CLI."""
    try:
        cli(obj=AnalyzerContext(), prog_name="ng-analyzer")
    except SystemExit as e:
        sys.exit(e.code)
    except Exception as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        logger.error("CLI error", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
