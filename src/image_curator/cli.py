"""Command-line interface for image-curator."""

import functools
import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from image_curator import __version__
from image_curator.core.coordinator import CuratorSettings, RunCoordinator, RunReport
from image_curator.core.downloader import ImageDownloader
from image_curator.core.errors import CuratorError
from image_curator.core.scanner import ImageScanner
from image_curator.core.signatures import (
    generate_signature_store,
    load_signature_store,
    save_signature_store,
)
from image_curator.platforms.alchemy import AlchemyEnumerator
from image_curator.platforms.hashing import SignatureComputer
from image_curator.platforms.metadata import MetadataResolver
from image_curator.storage.cache import ImageCache
from image_curator.storage.gist import GistListStore
from image_curator.utils.config import Config
from image_curator.utils.logger import setup_logger

console = Console()
logger = logging.getLogger(__name__)


@click.group()
@click.version_option(version=__version__, prog_name="image-curator")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    "config_file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Config file (default: ~/.image-curator/config.json)",
)
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config_file: Optional[Path]) -> None:
    """
    Image Curator - keep a published list of tokens whose images resemble
    a set of reference images.
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["config"] = Config(config_file)
    setup_logger(level=logging.DEBUG if verbose else logging.INFO)


@cli.command()
@click.option(
    "--threshold",
    "-t",
    type=click.IntRange(min=0),
    help="Similarity threshold (Hamming distance, default: from config)",
)
@click.option(
    "--workers",
    "-w",
    type=click.IntRange(min=1),
    help="Tokens evaluated in parallel (default: from config)",
)
@click.option(
    "--signatures",
    "-s",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Reference signature file (default: from config)",
)
@click.option("--dry-run", is_flag=True, help="Decide but do not publish")
@click.option(
    "--cache/--no-cache",
    default=True,
    help="Archive evaluated images in the local cache directory",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Also write a DEBUG log to this file",
)
@click.option(
    "--show-progress/--no-progress",
    default=True,
    help="Show progress bars",
)
@click.pass_context
def run(
    ctx: click.Context,
    threshold: Optional[int],
    workers: Optional[int],
    signatures: Optional[Path],
    dry_run: bool,
    cache: bool,
    log_file: Optional[Path],
    show_progress: bool,
) -> None:
    """
    Rebuild the list from every token and publish it if it changed.

    \b
    Reference signatures must come from generate-signatures. Hashes made
    by other pHash implementations are not comparable and will not match.

    Example:
        image-curator run --threshold 5 --workers 4
    """
    config: Config = ctx.obj["config"]
    if log_file:
        setup_logger(
            level=logging.DEBUG if ctx.obj["verbose"] else logging.INFO,
            log_file=log_file,
        )

    console.print(f"\n[bold cyan]Image Curator v{__version__}[/bold cyan] - Curator Run\n")

    try:
        settings = config.to_settings(
            threshold=threshold,
            workers=workers,
            dry_run=dry_run,
            show_progress=show_progress,
        )
        coordinator = build_coordinator(config, settings, signatures, use_cache=cache)
        report = coordinator.run()
    except CuratorError as e:
        console.print("\n[bold red]--- A FATAL ERROR OCCURRED ---[/bold red]")
        console.print(f"[red]{type(e).__name__}:[/red] {e}")
        sys.exit(1)

    _display_report(report)
    if report.published:
        _write_github_output("list_changed", "true")
    console.print("\n[green]Curator run finished successfully.[/green]")


@cli.command(name="generate-signatures")
@click.option(
    "--path",
    "-p",
    "directory",
    type=click.Path(exists=True, file_okay=False, dir_okay=True, path_type=Path),
    required=True,
    help="Directory holding the reference images",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Signature file to write (default: from config)",
)
@click.pass_context
def generate_signatures(
    ctx: click.Context, directory: Path, output: Optional[Path]
) -> None:
    """
    Hash every reference image in a directory into a signature file.

    Example:
        image-curator generate-signatures --path master-images
    """
    config: Config = ctx.obj["config"]
    output = output or Path(config.get("signatures_file"))

    images = ImageScanner().scan_directory(directory)
    computer = SignatureComputer(timeout=config.get("request_timeout", 30))
    store = generate_signature_store(images, computer.compute_from_bytes)

    if not len(store):
        console.print(
            "[yellow]No hashes were generated. Please check for errors above.[/yellow]"
        )
        return

    save_signature_store(store, output)
    console.print(f"[green]✓ Wrote {len(store)} signatures to:[/green] {output}")


@cli.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    help="Cache directory (default: from config)",
)
@click.pass_context
def download(ctx: click.Context, output: Optional[Path]) -> None:
    """
    Archive the images of tokens that are not cached yet.
    """
    config: Config = ctx.obj["config"]
    timeout = config.get("request_timeout", 30)
    cache = ImageCache(output or Path(config.get("image_cache_dir")))
    resolver = MetadataResolver(timeout=timeout, ipfs_gateway=config.get("ipfs_gateway"))

    try:
        downloader = ImageDownloader(
            enumerator=_build_enumerator(config),
            resolver=resolver,
            computer=SignatureComputer(timeout=timeout),
            cache=cache,
        )
        report = downloader.run()
    except CuratorError as e:
        console.print(f"[red]✗ Download failed:[/red] {e}")
        sys.exit(1)

    console.print("\n[bold]--- Download Complete ---[/bold]")
    console.print(f"  [green]Downloaded:[/green] {len(report.downloaded)}")
    console.print(f"  [cyan]Already cached:[/cyan] {report.already_cached}")
    if report.failed:
        console.print(f"  [red]Failed:[/red] {', '.join(report.failed)}")


@cli.command(name="show-list")
@click.pass_context
def show_list(ctx: click.Context) -> None:
    """
    Print the currently published list.
    """
    members = _build_list_store(ctx.obj["config"]).fetch()
    console.print(json.dumps(members.to_document(), indent=2))
    console.print(f"[dim]{len(members)} tokens listed[/dim]")


@cli.command(name="config-set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """
    Persist a setting. VALUE is parsed as JSON when possible.

    Example:
        image-curator config-set similarity_threshold 6
    """
    config: Config = ctx.obj["config"]
    try:
        parsed = json.loads(value)
    except ValueError:
        parsed = value
    config.set(key, parsed)
    console.print(f"[green]✓ {key} =[/green] {parsed!r}")


def build_coordinator(
    config: Config,
    settings: CuratorSettings,
    signatures: Optional[Path] = None,
    use_cache: bool = True,
) -> RunCoordinator:
    """Wire the coordinator to its collaborators from configuration."""
    timeout = config.get("request_timeout", 30)
    signature_file = signatures or Path(config.get("signatures_file"))

    cache = None
    if use_cache:
        cache = ImageCache(Path(config.get("image_cache_dir")))
        cache.ensure()

    return RunCoordinator(
        settings=settings,
        signature_loader=functools.partial(load_signature_store, signature_file),
        enumerator=_build_enumerator(config),
        resolver=MetadataResolver(
            timeout=timeout, ipfs_gateway=config.get("ipfs_gateway")
        ),
        computer=SignatureComputer(timeout=timeout),
        remote_store=_build_list_store(config),
        cache=cache,
    )


def _build_enumerator(config: Config) -> AlchemyEnumerator:
    return AlchemyEnumerator(
        api_key=config.secret("ALCHEMY_API_KEY"),
        contract_address=config.get("contract_address"),
        network=config.get("alchemy.network", "base-mainnet"),
        page_size=config.get("alchemy.page_size", 100),
        timeout=config.get("request_timeout", 30),
    )


def _build_list_store(config: Config) -> GistListStore:
    return GistListStore(
        gist_id=config.secret("GIST_ID"),
        token=config.secret("GITHUB_TOKEN"),
        filename=config.get("gist.filename", "censored-list.json"),
        timeout=config.get("request_timeout", 30),
    )


def _display_report(report: RunReport) -> None:
    """Display the run summary in a table."""
    table = Table(show_header=False, box=None)
    table.add_column("Key", style="cyan")
    table.add_column("Value")

    table.add_row("Previously listed", str(len(report.previous)))
    table.add_row("Evaluated", str(report.evaluated))
    table.add_row("Skipped (errors)", str(len(report.skipped)))
    table.add_row("Matched", str(report.matched))
    table.add_row("Added", ", ".join(report.decision.added) or "-")
    table.add_row("Removed", ", ".join(report.decision.removed) or "-")
    table.add_row("Changed", "yes" if report.decision.changed else "no")
    table.add_row("Published", "yes" if report.published else "no")

    console.print(table)
    if report.dropped_on_failure:
        console.print(
            "[yellow]⚠ Dropped because re-evaluation failed:[/yellow] "
            + ", ".join(report.dropped_on_failure)
        )


def _write_github_output(name: str, value: str) -> None:
    """Expose a step output when running inside GitHub Actions."""
    output_file = os.environ.get("GITHUB_OUTPUT")
    if not output_file:
        return
    with open(output_file, "a", encoding="utf-8") as f:
        f.write(f"{name}={value}\n")


def main() -> None:
    """Main entry point for the CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
