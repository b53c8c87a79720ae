"""ipmrepo command line interface."""

import asyncio
from collections.abc import Callable
from pathlib import Path
from typing import Annotated, TypeVar

import typer
from rich.console import Console
from rich.table import Table

from .aggregator import CatalogAggregator, local_file_name
from .control import format_dependency_list
from .convert import convert as convert_package
from .errors import IpmRepoError
from .models import AptSource, Maintainer
from .models.source import default_source_paths, load_sources
from .server import IndexBuilder, default_author, find_repository_root, init_repository

cli = typer.Typer(help="Search, fetch, convert and publish packages.", no_args_is_help=True)
repo_cli = typer.Typer(help="Inspect configured repository sources.", no_args_is_help=True)
server_cli = typer.Typer(help="Manage a hosted native repository.", no_args_is_help=True)
cli.add_typer(repo_cli, name="repo")
cli.add_typer(server_cli, name="server")

console = Console()

T = TypeVar("T")

ConfigPaths = Annotated[
    list[Path] | None,
    typer.Option("--config", "-c", help="Source configuration file(s) to read"),
]


def _guard(action: Callable[[], T]) -> T:
    """Run an action, turning library errors into a message and exit status 1."""
    try:
        return action()
    except IpmRepoError as e:
        console.print(f"[bold red]error:[/] {e}")
        raise typer.Exit(code=1) from e


def _config_paths(config: list[Path] | None) -> list[Path]:
    return config if config else default_source_paths()


@repo_cli.command("list")
def repo_list(config: ConfigPaths = None):
    """List the configured repository sources."""
    sources = load_sources(_config_paths(config))
    if not sources:
        console.print("No repository sources configured.")
        return

    table = Table(title="Repository sources")
    table.add_column("Type")
    table.add_column("URL")
    table.add_column("Suites")
    table.add_column("Components")
    table.add_column("Architectures")
    for source in sources:
        if isinstance(source, AptSource):
            table.add_row(
                source.kind,
                source.base_uri,
                ", ".join(source.suites),
                ", ".join(source.components),
                ", ".join(source.architectures) or "source",
            )
        else:
            table.add_row(source.kind, source.base_url, "", "", "")
    console.print(table)


@cli.command()
def search(
    names: list[str] = typer.Argument(..., help="Exact package names to look for"),
    config: ConfigPaths = None,
    show_depends: bool = typer.Option(False, "--depends", help="Show each match's dependencies"),
):
    """Search every configured source for packages by name."""
    aggregator = CatalogAggregator.from_config(_config_paths(config))
    matches = _guard(lambda: asyncio.run(aggregator.search(names)))
    if not matches:
        console.print(f"No packages found matching: {', '.join(names)}")
        return

    table = Table(title=f"{len(matches)} match(es)")
    table.add_column("Name")
    table.add_column("Version")
    table.add_column("Architectures")
    table.add_column("URL")
    if show_depends:
        table.add_column("Depends")
    for entry in matches:
        row = [
            entry.name,
            str(entry.record.version or ""),
            ", ".join(entry.record.architectures),
            entry.download_url,
        ]
        if show_depends:
            row.append(format_dependency_list(entry.record.relations.depends))
        table.add_row(*row)
    console.print(table)


@cli.command()
def fetch(
    names: list[str] = typer.Argument(..., help="Exact package names to download"),
    dest: Path = typer.Option(Path("."), "--dest", "-d", help="Directory to download into"),
    config: ConfigPaths = None,
):
    """Download every package matching the given names."""
    aggregator = CatalogAggregator.from_config(_config_paths(config))
    report = _guard(lambda: asyncio.run(aggregator.fetch(names, dest)))
    for path in report.downloaded:
        console.print(f"[green]downloaded[/] {path}")
    for entry, error in report.failures:
        console.print(f"[yellow]failed[/] {local_file_name(entry)}: {error}")
    if not report.downloaded and not report.failures:
        console.print(f"No packages found matching: {', '.join(names)}")
    _guard(report.raise_for_failures)


@cli.command()
def convert(
    directory: Path = typer.Argument(Path("."), help="Directory holding an unpacked .deb"),
):
    """Convert an unpacked Debian binary package into a native project."""
    record = _guard(lambda: convert_package(directory))
    console.print(f"Converted [bold]{record.name}[/] {record.version} in {directory}")


@server_cli.command("init")
def server_init(
    root: Path = typer.Option(Path("."), "--root", help="Repository root directory"),
    name: str | None = typer.Option(None, "--name", help="Repository author name"),
    email: str | None = typer.Option(None, "--email", help="Repository author email"),
):
    """Create a repository descriptor and projects directory."""
    if name and email:
        author = Maintainer(name=name, email=email)
    else:
        defaults = default_author()
        author = Maintainer(name=name or defaults.name, email=email or defaults.email)
    descriptor = init_repository(root, author)
    console.print(f"[bold]Author Name[/]: {author.name}")
    console.print(f"[bold]Author Email[/]: {author.email}")
    console.print(f"Wrote {descriptor}")


@server_cli.command("build")
def server_build(
    root: Path = typer.Option(Path("."), "--root", help="Directory inside the repository"),
):
    """Build every project and write the repository manifest."""

    def build():
        return IndexBuilder.for_repository(find_repository_root(root)).run()

    catalog = _guard(build)
    console.print(f"Published {len(catalog.entries)} package(s)")


def main() -> None:
    """Main entry point for the ipmrepo CLI."""
    cli()


if __name__ == "__main__":
    main()
