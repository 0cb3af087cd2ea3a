"""
Command-line interface.

Exit codes: 0 when every Hard concept passes, 1 when a Hard concept has
violations (any concept with ``--strict``), 2 on configuration or corpus
errors.
"""

import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional, Sequence

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .. import __version__
from ..analyzers.whitelist import load_whitelist_file
from ..config import CONFIG_FILENAMES, SOURCES, EngineConfig, load_config
from ..core.errors import ShadowTypesError
from ..core.issues import ALL_CONCEPTS
from ..pipeline import ShadowTypeDetector
from ..utils.logging_setup import setup_logging
from .output_manager import OutputFormat, OutputManager

EXIT_OK = 0
EXIT_VIOLATIONS = 1
EXIT_ERROR = 2


def _configure_logging(verbose: int, log_dir: Optional[str] = None) -> None:
    level = "WARNING"
    if verbose == 1:
        level = "INFO"
    elif verbose > 1:
        level = "DEBUG"
    setup_logging(level=level, log_dir=Path(log_dir) if log_dir else None)


def _build_config(
    path: Path,
    config_path: Optional[str],
    whitelist_files: Sequence[str],
    source: Optional[str],
    max_workers: Optional[int],
) -> EngineConfig:
    config = load_config(path, config_path)
    changes = {}
    if whitelist_files:
        entries = list(config.whitelist)
        for whitelist_file in whitelist_files:
            entries.extend(load_whitelist_file(whitelist_file))
        changes["whitelist"] = entries
    if source:
        changes["source"] = source
    if max_workers:
        changes["max_workers"] = max_workers
    return replace(config, **changes) if changes else config


def common_options(func):
    """Options shared by ``scan`` and ``check``."""
    options = [
        click.option("--config", "-c", "config_path", type=click.Path(dir_okay=False),
                     help="Configuration file (YAML or JSON)"),
        click.option("--whitelist", "-w", "whitelist_files", multiple=True, type=click.Path(dir_okay=False),
                     help="Additional versioned whitelist file; may be repeated"),
        click.option("--source", type=click.Choice(SOURCES), default=None,
                     help="Declaration source (default from config: ast)"),
        click.option("--max-workers", type=int, default=None, help="Worker threads"),
        click.option("--format", "-f", "output_format", type=click.Choice([f.value for f in OutputFormat]),
                     default=OutputFormat.TEXT.value, show_default=True, help="Report format"),
        click.option("--output", "-o", "output_file", type=click.Path(dir_okay=False),
                     help="Write the report to a file"),
        click.option("--strict", is_flag=True, help="Fail on Advisory violations too"),
        click.option("--verbose", "-v", count=True, help="Increase log verbosity (-vv for debug)"),
        click.option("--log-dir", type=click.Path(file_okay=False), default=None,
                     help="Also write a JSON-lines debug log to this directory"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def _run(path, concepts, config_path, whitelist_files, source, max_workers,
         output_format, output_file, strict, verbose, log_dir) -> int:
    _configure_logging(verbose, log_dir)
    output = OutputManager(
        output_format=OutputFormat(output_format),
        output_file=Path(output_file) if output_file else None,
        verbose=verbose,
    )
    root = Path(path)

    try:
        config = _build_config(root, config_path, whitelist_files, source, max_workers)
        report = ShadowTypeDetector(config).run(root, concepts=concepts)
    except ShadowTypesError as e:
        output.error(e.message)
        return EXIT_ERROR
    except FileNotFoundError as e:
        output.error(str(e))
        return EXIT_ERROR

    output.output_report(report)
    passed = report.passed_strict() if strict else report.passed
    return EXIT_OK if passed else EXIT_VIOLATIONS


@click.group()
@click.version_option(version=__version__, prog_name="shadowtypes")
def main():
    """Detect duplicate ("shadow") type declarations in a Python code base."""


@main.command()
@click.argument("path", type=click.Path(), default=".")
@common_options
def scan(path, **options):
    """Run every concept check over PATH."""
    sys.exit(_run(path, None, **options))


@main.command()
@click.argument("concept", type=click.Choice(ALL_CONCEPTS))
@click.argument("path", type=click.Path(), default=".")
@common_options
def check(concept, path, **options):
    """Run a single CONCEPT check over PATH; the exit status reflects only that concept."""
    sys.exit(_run(path, [concept], **options))


@main.command()
@click.argument("path", type=click.Path(), default=".")
@click.option("--config", "-c", "config_path", type=click.Path(dir_okay=False), help="Configuration file")
def concepts(path, config_path):
    """List the concepts and their configured severity."""
    try:
        config = load_config(Path(path), config_path)
    except (ShadowTypesError, FileNotFoundError) as e:
        Console(stderr=True).print(f"[bold red]error:[/bold red] {escape(str(e))}")
        sys.exit(EXIT_ERROR)

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Concept", style="cyan")
    table.add_column("Severity")
    for concept in ALL_CONCEPTS:
        table.add_row(concept, config.severity_for(concept).value)
    Console().print(table)


@main.command("init-config")
@click.argument("path", type=click.Path(file_okay=False), default=".")
@click.option("--force", is_flag=True, help="Overwrite an existing configuration file")
def init_config(path, force):
    """Write the default configuration to PATH/.shadowtypes.yml."""
    target = Path(path) / CONFIG_FILENAMES[0]
    if target.exists() and not force:
        Console(stderr=True).print(f"[yellow]{target} already exists; use --force to overwrite[/yellow]")
        sys.exit(EXIT_ERROR)
    EngineConfig().save_to_file(target)
    Console().print(f"[green]✓[/green] Created {target}")


if __name__ == "__main__":
    main()
