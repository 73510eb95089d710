"""
Command-line interface for nbuild.

This module provides the `nbuild` CLI tool:

    nbuild build [UNIT...]           # Compile stale units (all when none named)
    nbuild link [TARGET...]          # Link declared targets (all when none named)
    nbuild all                       # Compile, then link every declared target
    nbuild clean                     # Remove object files
    nbuild ext build|install|clean   # Extension subproject lifecycle

Global options:
    -C DIR        Project directory (default: current directory)
    -c CONFIG     Config file (default: DIR/nbuild.json)
    -j N          Number of parallel jobs (overrides the config file)
    -v            Verbose output
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

from rich.console import Console
from rich.markup import escape

from nbuild import __version__
from nbuild.build.models import BuildResult
from nbuild.build.orchestrator import Builder
from nbuild.config_loader import DEFAULT_CONFIG_NAME, load_config
from nbuild.errors import ConfigurationError
from nbuild.ext.extension import ExtensionBuilder
from nbuild.output import log_header, set_verbose

console = Console(highlight=False)


@dataclass
class CommandArgs:
    """Arguments shared by all commands."""

    project_dir: Path
    config_path: Optional[Path]
    jobs: Optional[int]
    verbose: bool
    command: str
    names: list[str]
    ext_action: Optional[str] = None

    @property
    def config_file(self) -> Path:
        return self.config_path or self.project_dir / DEFAULT_CONFIG_NAME


def build_command(builder: Builder, units: list[str]) -> BuildResult:
    return builder.build(units or None)


def link_command(builder: Builder, names: list[str]) -> BuildResult:
    """Link the named targets (all declared targets when none are named)."""
    if names:
        targets = []
        for name in names:
            target = builder.config.find_target(name)
            if target is None:
                raise ConfigurationError(f"Unknown target: {name}")
            targets.append(target)
    else:
        targets = list(builder.config.targets)

    result = BuildResult(success=True)
    for target in targets:
        result = result.merge(builder.link(target))
        if not result.success:
            break
    return result


def clean_command(builder: Builder) -> BuildResult:
    removed = builder.clean()
    return BuildResult(success=True, message=f"Removed {len(removed)} object files")


def ext_command(args: CommandArgs, builder: Builder) -> BuildResult:
    settings = builder.config.extensions
    if settings is None:
        raise ConfigurationError("No extensions configured")

    ext_builder = ExtensionBuilder(settings)
    if args.ext_action == "build":
        return ext_builder.build_all()
    if args.ext_action == "install":
        return ext_builder.install_all()
    return ext_builder.clean_all()


def report(result: BuildResult) -> int:
    """Print the final status of a command and return the exit code."""
    if result.success:
        console.print(f"[bold green]✓[/bold green] {escape(result.message or 'Done')} ({result.build_time:.2f}s)")
        return 0

    console.print(f"[bold red]✗ {escape(result.message or 'Build failed')}[/bold red]")
    failure = result.failure
    if failure is not None:
        console.print(f"  Command: {failure.command}", markup=False)
        console.print(f"  Reason:  {failure.reason}", markup=False)
        if failure.stderr:
            console.print(failure.stderr.rstrip(), markup=False)
    return 1


def run(args: CommandArgs) -> int:
    """Execute a parsed command and return its exit code."""
    config = load_config(args.config_file, jobs=args.jobs)
    builder = Builder(config)

    if args.command == "build":
        result = build_command(builder, args.names)
    elif args.command == "link":
        result = link_command(builder, args.names)
    elif args.command == "all":
        result = builder.make()
    elif args.command == "clean":
        result = clean_command(builder)
    else:
        result = ext_command(args, builder)
    return report(result)


def parse_args(argv: Optional[Sequence[str]] = None) -> CommandArgs:
    parser = argparse.ArgumentParser(prog="nbuild", description="Incremental native build orchestrator")
    parser.add_argument("--version", action="version", version=f"nbuild {__version__}")
    parser.add_argument("-C", "--directory", type=Path, default=Path.cwd(), help="Project directory")
    parser.add_argument("-c", "--config", type=Path, default=None, help=f"Config file (default: <directory>/{DEFAULT_CONFIG_NAME})")
    parser.add_argument("-j", "--jobs", type=int, default=None, help="Number of parallel jobs")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    subparsers = parser.add_subparsers(dest="command", required=True)
    build = subparsers.add_parser("build", help="Compile stale units")
    build.add_argument("names", nargs="*", metavar="UNIT")
    link = subparsers.add_parser("link", help="Link declared targets")
    link.add_argument("names", nargs="*", metavar="TARGET")
    subparsers.add_parser("all", help="Compile and link everything")
    subparsers.add_parser("clean", help="Remove object files")
    ext = subparsers.add_parser("ext", help="Extension subproject lifecycle")
    ext.add_argument("ext_action", choices=["build", "install", "clean"])

    ns = parser.parse_args(argv)
    return CommandArgs(
        project_dir=ns.directory.resolve(),
        config_path=ns.config,
        jobs=ns.jobs,
        verbose=ns.verbose,
        command=ns.command,
        names=list(getattr(ns, "names", [])),
        ext_action=getattr(ns, "ext_action", None),
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    set_verbose(args.verbose)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    log_header("nbuild", __version__)

    try:
        return run(args)
    except ConfigurationError as e:
        console.print(f"[bold red]✗ Configuration error:[/bold red] {escape(str(e))}")
        return 1
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted[/yellow]")
        return 130


if __name__ == "__main__":
    sys.exit(main())
