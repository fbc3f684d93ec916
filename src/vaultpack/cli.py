"""Typer-based CLI for vaultpack."""

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import ExportSettings, VaultpackConfig
from .exceptions import NoteNotFoundError, VaultpackError
from .export.headers import build_header_map, compute_export_paths
from .export.links import extract_links, find_backlinks
from .export.traversal import TraversalResult, traverse
from .export.tree import build_tree
from .export.writer import plan_export, validate_destinations, write_export
from .ledger import LedgerWriter, read_ledger_tail
from .vault.models import VaultFile
from .vault.store import FilesystemVault, sort_files

app = typer.Typer(
    name="vaultpack",
    help="Export a note and everything it links to out of a vault",
    add_completion=False,
)

console = Console()

VAULT_HELP = "Path to vault directory (default: config, VAULTPACK_VAULT env, or auto-discovery)"


@app.callback()
def _main(
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging"),
):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load(vault_path: Optional[str]) -> tuple[VaultpackConfig, FilesystemVault]:
    try:
        config = VaultpackConfig.from_env(vault_path)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)
    return config, FilesystemVault(config.vault_path)


def _find_note(vault: FilesystemVault, note: str) -> VaultFile:
    found = vault.get_file(note) or vault.resolve_link(note, "")
    if found is None:
        raise NoteNotFoundError(f"Note not found in vault {vault.root}: {note}")
    return found


def _settings(config: VaultpackConfig, **overrides) -> ExportSettings:
    data = config.export.model_dump()
    # Unset flags (None, or an empty repeatable option) keep the configured value.
    data.update({k: v for k, v in overrides.items() if v not in (None, [], ())})
    return ExportSettings(**data)


def _run_traversal(vault: FilesystemVault, root: VaultFile, settings: ExportSettings) -> TraversalResult:
    return traverse(
        vault,
        root,
        settings.link_depth,
        ignore_folders=settings.ignore_folders,
        ignore_tags=settings.ignore_tags,
    )


@app.command()
def init(
    vault_path: str = typer.Option(None, "--vault", "-v", help=VAULT_HELP),
    force: bool = typer.Option(False, "--force", "-f", help="Overwrite an existing config file"),
):
    """Write a default .vaultpack/config.toml into the vault.

    Idempotent unless --force is given.
    """
    config, _ = _load(vault_path)

    if config.config_file.exists() and not force:
        console.print(f"[dim]Config already exists: {config.config_file}[/dim]")
        return

    config.config_file.parent.mkdir(parents=True, exist_ok=True)
    config.config_file.write_text(config.to_toml_str(), encoding="utf-8")
    console.print(f"[green]+[/green] Created config: {config.config_file}")


@app.command()
def tree(
    note: str = typer.Argument(..., help="Note to start from (vault path or link name)"),
    depth: int = typer.Option(None, "--depth", "-d", min=0, help="Link depth to follow"),
    ignore_folder: Optional[List[str]] = typer.Option(None, "--ignore-folder", "-F", help="Folder to leave out"),
    ignore_tag: Optional[List[str]] = typer.Option(None, "--ignore-tag", "-T", help="Tag pattern to leave out (#tag or #tag/*)"),
    vault_path: str = typer.Option(None, "--vault", "-v", help=VAULT_HELP),
):
    """Show the files an export of NOTE would contain."""
    config, vault = _load(vault_path)
    try:
        root = _find_note(vault, note)
        settings = _settings(config, link_depth=depth, ignore_folders=ignore_folder, ignore_tags=ignore_tag)
    except (VaultpackError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)

    result = _run_traversal(vault, root, settings)
    console.print(build_tree(result))
    console.print()
    console.print(
        f"[bold]Included:[/bold] {len(result.included)}  "
        f"[bold]Filtered:[/bold] {len(result.filtered)}  "
        f"[dim](depth {settings.link_depth})[/dim]"
    )


@app.command()
def links(
    note: str = typer.Argument(..., help="Note to inspect"),
    vault_path: str = typer.Option(None, "--vault", "-v", help=VAULT_HELP),
):
    """List every link occurrence in NOTE and what it resolves to."""
    _, vault = _load(vault_path)
    try:
        source = _find_note(vault, note)
    except VaultpackError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)

    occurrences = extract_links(vault.read_text(source))
    if not occurrences:
        console.print("[dim]No links found[/dim]")
        return

    table = Table(title=f"Links in {source.path}")
    table.add_column("Offset", style="cyan", justify="right")
    table.add_column("Target", style="magenta")
    table.add_column("Resolves to")
    for occ in occurrences:
        resolved = vault.resolve_link(occ.target, source.path)
        table.add_row(str(occ.position), occ.target, resolved.path if resolved else "[dim]-[/dim]")
    console.print(table)


@app.command()
def backlinks(
    note: str = typer.Argument(..., help="Note to inspect"),
    vault_path: str = typer.Option(None, "--vault", "-v", help=VAULT_HELP),
):
    """List the notes that link to NOTE."""
    _, vault = _load(vault_path)
    try:
        target = _find_note(vault, note)
    except VaultpackError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)

    sources = find_backlinks(vault, target)
    if not sources:
        console.print(f"[dim]No backlinks to {target.path}[/dim]")
        return
    for src in sources:
        console.print(src.path)


@app.command()
def headers(
    note: str = typer.Argument(..., help="Note to start from"),
    depth: int = typer.Option(None, "--depth", "-d", min=0, help="Link depth to follow"),
    source_prefix: bool = typer.Option(None, "--source-prefix/--no-source-prefix", help="Put everything under a folder named after NOTE"),
    ignore_folder: Optional[List[str]] = typer.Option(None, "--ignore-folder", "-F", help="Folder to leave out"),
    ignore_tag: Optional[List[str]] = typer.Option(None, "--ignore-tag", "-T", help="Tag pattern to leave out"),
    vault_path: str = typer.Option(None, "--vault", "-v", help=VAULT_HELP),
):
    """Show where each file lands when grouped by NOTE's headings."""
    config, vault = _load(vault_path)
    try:
        root = _find_note(vault, note)
        settings = _settings(
            config,
            link_depth=depth,
            include_source_name=source_prefix,
            ignore_folders=ignore_folder,
            ignore_tags=ignore_tag,
            keep_folder_structure=False,
        )
    except (VaultpackError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)

    result = _run_traversal(vault, root, settings)
    header_map = build_header_map(vault, root, result.included_files(), result.parent_map, result.depth_map)

    table = Table(title=f"Header placement for {root.path}")
    table.add_column("File", style="cyan")
    table.add_column("Depth", justify="right")
    table.add_column("Destination(s)", style="green")
    for file in sort_files(result.included_files()):
        dests = compute_export_paths(file, header_map, settings.include_source_name, root.basename)
        table.add_row(file.path, str(result.depth_map.get(file.path, 0)), "\n".join(dests))
    console.print(table)


@app.command()
def export(
    note: str = typer.Argument(..., help="Note to export"),
    out: Path = typer.Option(..., "--out", "-o", help="Destination folder"),
    depth: int = typer.Option(None, "--depth", "-d", min=0, help="Link depth to follow"),
    zip_output: bool = typer.Option(None, "--zip/--no-zip", help="Write export.zip instead of loose files"),
    keep_folders: bool = typer.Option(None, "--keep-folders/--flat", help="Keep the vault folder structure"),
    header_hierarchy: bool = typer.Option(None, "--header-hierarchy/--no-header-hierarchy", help="Group files by NOTE's headings"),
    source_prefix: bool = typer.Option(None, "--source-prefix/--no-source-prefix", help="With --header-hierarchy, nest under a folder named after NOTE"),
    ignore_folder: Optional[List[str]] = typer.Option(None, "--ignore-folder", "-F", help="Folder to leave out"),
    ignore_tag: Optional[List[str]] = typer.Option(None, "--ignore-tag", "-T", help="Tag pattern to leave out (#tag or #tag/*)"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Show the plan without writing anything"),
    vault_path: str = typer.Option(None, "--vault", "-v", help=VAULT_HELP),
):
    """Export NOTE and the files it links to.

    Filtered files are reported with their reason and recorded in the ledger.
    """
    config, vault = _load(vault_path)
    try:
        root = _find_note(vault, note)
        settings = _settings(
            config,
            link_depth=depth,
            zip_output=zip_output,
            keep_folder_structure=keep_folders,
            use_header_hierarchy=header_hierarchy,
            include_source_name=source_prefix,
            ignore_folders=ignore_folder,
            ignore_tags=ignore_tag,
        )
    except (VaultpackError, ValueError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)

    result = _run_traversal(vault, root, settings)
    header_map = None
    if settings.use_header_hierarchy:
        header_map = build_header_map(vault, root, result.included_files(), result.parent_map, result.depth_map)

    planned = plan_export(
        result,
        keep_folder_structure=settings.keep_folder_structure,
        use_header_hierarchy=settings.use_header_hierarchy,
        header_map=header_map,
        include_source_name=settings.include_source_name,
    )

    table = Table(title=f"Export of {root.path}")
    table.add_column("File", style="cyan")
    table.add_column("Destination", style="green")
    for item in planned:
        table.add_row(item.file.path, item.dest)
    for filtered in result.filtered.values():
        table.add_row(f"[dim]{filtered.file.path}[/dim]", f"[yellow]filtered: {filtered.reason}[/yellow]")
    console.print(table)

    if dry_run:
        console.print("[yellow]DRY RUN - nothing written[/yellow]")
        return

    try:
        validate_destinations(planned)
    except VaultpackError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)

    ledger = LedgerWriter(config.ledger_file)
    ledger.append_event(
        "EXPORT_PLANNED",
        {
            "link_depth": settings.link_depth,
            "included": len(result.included),
            "filtered": len(result.filtered),
            "destinations": len(planned),
        },
        root_path=root.path,
    )
    for filtered in result.filtered.values():
        ledger.append_event(
            "FILE_FILTERED",
            {"path": filtered.file.path, "reason": filtered.reason},
            root_path=root.path,
        )

    try:
        summary = write_export(planned, vault, out, create_zip=settings.zip_output)
    except VaultpackError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)

    ledger.append_event(
        "EXPORT_WRITTEN",
        {
            "target": str(summary.archive or summary.target),
            "files_written": summary.files_written,
            "bytes_written": summary.bytes_written,
        },
        root_path=root.path,
    )

    where = summary.archive or summary.target
    console.print(f"[green]+[/green] Exported {summary.files_written} file(s) to {where}")


ledger_app = typer.Typer(help="Ledger commands")
app.add_typer(ledger_app, name="ledger")


@ledger_app.command("tail")
def ledger_tail(
    n: int = typer.Option(20, "--n", help="Number of recent events to display"),
    run_id: Optional[str] = typer.Option(None, "--run", help="Only events of this export run"),
    root: Optional[str] = typer.Option(None, "--root", help="Only exports of this note"),
    last_run: bool = typer.Option(False, "--last-run", help="Only events of the most recent export run"),
    vault_path: str = typer.Option(None, "--vault", "-v", help=VAULT_HELP),
):
    """Display the last N export ledger events."""
    config, vault = _load(vault_path)
    root_path = None
    if root:
        # Notes deleted since their export are matched by the path as given.
        found = vault.get_file(root) or vault.resolve_link(root, "")
        root_path = found.path if found else root
    events = read_ledger_tail(config.ledger_file, n=n, run_id=run_id, root_path=root_path, last_run=last_run)

    if not events:
        console.print("[dim]No events in ledger[/dim]")
        return

    table = Table(title=f"Last {len(events)} Ledger Event(s)")
    table.add_column("Timestamp (UTC)", style="cyan", no_wrap=True)
    table.add_column("Run", style="blue", no_wrap=True)
    table.add_column("Event Type", style="magenta")
    table.add_column("Root", style="yellow")
    table.add_column("Payload", style="dim")

    for event in events:
        payload_str = str(event.payload)
        if len(payload_str) > 60:
            payload_str = payload_str[:57] + "..."
        table.add_row(event.ts.strftime("%Y-%m-%d %H:%M:%S"), event.run_id[:8], event.event_type, event.root_path or "-", payload_str)

    console.print(table)


@app.command()
def version():
    """Show vaultpack version."""
    from . import __version__
    console.print(f"vaultpack v{__version__}")


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
