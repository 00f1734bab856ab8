"""Command line interface."""

import logging
from dataclasses import replace
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from .builder import ACTION_BUILD, BuildPlan, ImageBuilder, plan_builds
from .client_config import (
    build_client_config,
    default_client_config_path,
    merge_into_file,
    render_client_config,
)
from .config import BuilderSettings, load_settings
from .docker_client import DockerClient
from .exceptions import (
    BuilderError,
    CommandError,
    DockerNotFoundError,
    RepositoryNotConfirmedError,
)
from .repository import ensure_repository
from .telemetry import Telemetry

app = typer.Typer(
    help="Build Docker images for the reference MCP servers and print the client config.",
    invoke_without_command=True,
)

# Status text goes to stderr. Client JSON, dry-run commands and the plan
# table go to stdout unstyled so they can be piped or redirected.
_console = Console(stderr=True)
_out = Console(highlight=False, soft_wrap=True)

logger = logging.getLogger(__name__)

EXIT_DOCKER_MISSING = 127


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def _load(config: Optional[Path], only: list[str], skip: list[str], keep_going: bool) -> BuilderSettings:
    try:
        settings = load_settings(config)
    except BuilderError as e:
        _console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(code=1)
    return replace(
        settings,
        only=list(only) or settings.only,
        skip=settings.skip + [s for s in skip if s not in settings.skip],
        keep_going=keep_going or settings.keep_going,
    )


def _resolve_root(repo: Path, yes: bool) -> Path:
    confirm = (lambda _question: True) if yes else (lambda question: typer.confirm(question, default=False))
    try:
        return ensure_repository(repo, confirm)
    except RepositoryNotConfirmedError as e:
        _console.print(f"[yellow]{e.message}[/yellow]")
        raise typer.Exit(code=1)


def _plan(root: Path, settings: BuilderSettings) -> list[BuildPlan]:
    try:
        return plan_builds(root, settings)
    except BuilderError as e:
        _console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(code=1)


def _plan_table(plans: list[BuildPlan]) -> Table:
    table = Table(title="MCP server images")
    table.add_column("Server", style="bright_green", no_wrap=True)
    table.add_column("Action", style="white")
    table.add_column("Image", style="cyan")
    table.add_column("Details", style="dim")
    for plan in plans:
        table.add_row(plan.server, plan.action, plan.tag or "-", plan.reason)
    return table


RepoOption = typer.Option(Path("."), "--repo", "-r", help="Checkout of modelcontextprotocol/servers.")
ConfigOption = typer.Option(None, "--config", "-c", help="YAML config file (default: config/config.yaml).")
OnlyOption = typer.Option([], "--only", help="Build only this server (repeatable).")
SkipOption = typer.Option([], "--skip", help="Also skip this server (repeatable).")
YesOption = typer.Option(False, "--yes", "-y", help="Do not ask when the folder does not look like the repository.")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Debug logging.")


@app.callback()
def main(ctx: typer.Context) -> None:
    """Build all server images when no command is given."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(
            build,
            repo=Path("."),
            config=None,
            only=[],
            skip=[],
            keep_going=False,
            dry_run=False,
            yes=False,
            verbose=False,
        )


@app.command()
def build(
    repo: Path = RepoOption,
    config: Optional[Path] = ConfigOption,
    only: list[str] = OnlyOption,
    skip: list[str] = SkipOption,
    keep_going: bool = typer.Option(False, "--keep-going", "-k", help="Continue after a failed build."),
    dry_run: bool = typer.Option(False, "--dry-run", "-n", help="Show the docker commands without running them."),
    yes: bool = YesOption,
    verbose: bool = VerboseOption,
) -> None:
    """Build every server folder that has a Dockerfile, then print the client config."""
    _setup_logging(verbose)
    settings = _load(config, only, skip, keep_going)
    root = _resolve_root(repo, yes)
    plans = _plan(root, settings)

    if dry_run:
        _console.print(_plan_table(plans))
        for plan in plans:
            if plan.command:
                _out.print(" ".join(plan.command), markup=False)
        return

    docker = DockerClient(command_timeout=settings.command_timeout)
    try:
        docker.check_available()
    except DockerNotFoundError as e:
        _console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(code=EXIT_DOCKER_MISSING)
    except CommandError as e:
        _console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(code=e.return_code if e.return_code > 0 else 1)

    telemetry = Telemetry(settings.telemetry_log)
    builder = ImageBuilder(
        docker,
        telemetry=telemetry,
        keep_going=settings.keep_going,
        on_start=lambda plan: _console.print(f"[bold]Building {plan.tag}[/bold] from {plan.dockerfile.context}"),
    )

    try:
        report = builder.build_all(plans)
    except CommandError as e:
        _console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(code=e.return_code if e.return_code > 0 else 1)

    for name, reason in report.skipped.items():
        _console.print(f"[dim]Skipped {name}: {reason}[/dim]")
    for name, error in report.failed.items():
        _console.print(f"[red]Failed {name}: {error}[/red]")

    stats = telemetry.get_stats()
    _console.print(
        f"[green]Build complete:[/green] {len(report.built)} images built, "
        f"{len(report.skipped)} skipped, {len(report.failed)} failed "
        f"in {stats.get('total_duration_s', 0.0):.1f}s."
    )
    if report.built:
        _console.print("Add the following to your MCP client configuration:")
        client = build_client_config(report.built, settings.image_prefix, settings.servers)
        _out.print(render_client_config(client), markup=False)

    if not report.ok:
        raise typer.Exit(code=1)


@app.command("plan")
def show_plan(
    repo: Path = RepoOption,
    config: Optional[Path] = ConfigOption,
    only: list[str] = OnlyOption,
    skip: list[str] = SkipOption,
    yes: bool = YesOption,
    verbose: bool = VerboseOption,
) -> None:
    """Show which servers would be built and why others are skipped."""
    _setup_logging(verbose)
    settings = _load(config, only, skip, False)
    root = _resolve_root(repo, yes)
    _out.print(_plan_table(_plan(root, settings)))


@app.command("client-config")
def client_config(
    repo: Path = RepoOption,
    config: Optional[Path] = ConfigOption,
    only: list[str] = OnlyOption,
    skip: list[str] = SkipOption,
    write: bool = typer.Option(False, "--write", "-w", help="Merge into the client config file."),
    target: Optional[Path] = typer.Option(None, "--target", help="Client config file (default: Claude Desktop's)."),
    yes: bool = YesOption,
    verbose: bool = VerboseOption,
) -> None:
    """Print the mcpServers JSON for every buildable server."""
    _setup_logging(verbose)
    settings = _load(config, only, skip, False)
    root = _resolve_root(repo, yes)
    names = [p.server for p in _plan(root, settings) if p.action == ACTION_BUILD]
    client = build_client_config(names, settings.image_prefix, settings.servers)

    if not write:
        _out.print(render_client_config(client), markup=False)
        return

    path = target or default_client_config_path()
    try:
        merge_into_file(path, client)
    except BuilderError as e:
        _console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(code=1)
    _console.print(f"[green]Updated[/green] {path} with {len(names)} servers. Restart your MCP client.")


@app.command()
def serve(
    repo: Path = RepoOption,
    config: Optional[Path] = ConfigOption,
    verbose: bool = VerboseOption,
) -> None:
    """Run the builder as an MCP server over stdio."""
    from .server import main as serve_main

    _setup_logging(verbose)
    settings = _load(config, [], [], False)
    serve_main(repo.resolve(), settings)


def run() -> None:
    app()
