"""Restriction checks, traversal and duplicate cleanup commands.

Provides commands to test a path against a restriction set, list the
files a traversal would visit, and remove duplicate files.
"""

import json
from typing import Annotated

import typer
from rich.table import Table

from fswarden.cli.types import (
    OutputFormat,
    build_restrictions,
    get_config,
    make_normalizer,
)
from fswarden.filesystem.duplicates import DuplicateFinder, DuplicateResolver
from fswarden.filesystem.errors import FilesystemError, RestrictionError
from fswarden.filesystem.handle import LocalFile
from fswarden.filesystem.models import DuplicateGroup, DuplicateOutcome, TraversalSpec
from fswarden.filesystem.restrictions import RestrictionSet
from fswarden.filesystem.traversal import TraversalEngine
from fswarden.utils.formatting import (
    console,
    format_size,
    print_error,
    print_info,
    print_success,
)

app = typer.Typer(
    help="Check, walk and deduplicate restricted paths.",
    invoke_without_command=True,
    no_args_is_help=True,
)

AllowOption = Annotated[
    list[str] | None,
    typer.Option("--allow", "-a", help="Allow reading beneath this path (repeatable)."),
]
AllowWriteOption = Annotated[
    list[str] | None,
    typer.Option(
        "--allow-write", "-w", help="Allow reading and writing beneath this path (repeatable)."
    ),
]
RootOption = Annotated[
    list[str] | None,
    typer.Option("--root", "-r", help="Allow a configured directory root by name (repeatable)."),
]


@app.command()
def check(
    ctx: typer.Context,
    path: Annotated[str, typer.Argument(help="Path to check.")],
    allow: AllowOption = None,
    allow_write: AllowWriteOption = None,
    root: RootOption = None,
    write_roots: Annotated[
        bool,
        typer.Option("--write-roots", help="Named roots allow writing."),
    ] = False,
    write: Annotated[
        bool,
        typer.Option("--write", help="Check write access instead of read access."),
    ] = False,
    resolve_symlinks: Annotated[
        bool,
        typer.Option("--resolve-symlinks", help="Also check the symlink-resolved path."),
    ] = False,
) -> None:
    """Check whether a path is permitted by a restriction set."""
    config = get_config(ctx)
    normalizer = make_normalizer(config)
    restrictions = build_restrictions(
        config,
        normalizer,
        allow=allow,
        allow_write=allow_write,
        roots=root,
        write_roots=write_roots,
    )
    if resolve_symlinks:
        resolved = RestrictionSet(
            label=restrictions.label,
            resolve_symlinks=True,
            normalizer=normalizer,
        )
        for entry in restrictions.entries:
            resolved.add_path(entry.path, entry.write)
        restrictions = resolved

    mode = "Write" if write else "Read"
    try:
        restrictions.check(path, write=write)
    except FilesystemError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    allowed = normalizer.normalize(path)
    print_success(f'{mode} access to "{allowed}" allowed by "{restrictions.label}"')


@app.command()
def walk(
    ctx: typer.Context,
    roots: Annotated[list[str], typer.Argument(help="Files or directories to walk.")],
    allow: AllowOption = None,
    root: RootOption = None,
    recurse: Annotated[
        bool,
        typer.Option("--recurse", "-R", help="Descend into subdirectories."),
    ] = False,
    extensions: Annotated[
        list[str] | None,
        typer.Option("--ext", "-e", help="Only include files with this extension (repeatable)."),
    ] = None,
    deny_extensions: Annotated[
        list[str] | None,
        typer.Option("--deny-ext", help="Exclude files with this extension (repeatable)."),
    ] = None,
    skip: Annotated[
        list[str] | None,
        typer.Option("--skip", "-s", help="Skip this path and everything beneath it (repeatable)."),
    ] = None,
    hidden: Annotated[
        bool,
        typer.Option("--hidden", help="Include hidden files and directories."),
    ] = False,
    symlinks: Annotated[
        bool,
        typer.Option("--symlinks", help="Follow symbolic links."),
    ] = False,
    unrestricted: Annotated[
        bool,
        typer.Option("--unrestricted", help="Disable restriction checks entirely."),
    ] = False,
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format.",
            case_sensitive=False,
        ),
    ] = OutputFormat.TABLE,
) -> None:
    """List the files a traversal visits.

    Without --allow or --root, the walked roots themselves are allowed
    for reading.
    """
    config = get_config(ctx)
    normalizer = make_normalizer(config)
    if not allow and not root:
        allow = list(roots)
    restrictions = build_restrictions(
        config,
        normalizer,
        allow=allow,
        roots=root,
        unrestricted=unrestricted,
    )

    try:
        spec = TraversalSpec(
            roots=tuple(roots),
            recurse=recurse,
            follow_symlinks=symlinks,
            follow_hidden=hidden,
            extension_allow=frozenset(extensions) if extensions else None,
            extension_deny=frozenset(deny_extensions) if deny_extensions else None,
            skip_prefixes=frozenset(skip or ()),
        )
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    files: list[tuple[str, int]] = []

    def collect(path: str) -> None:
        files.append((path, LocalFile(path, restrictions).get_size()))

    engine = TraversalEngine(restrictions, normalizer=normalizer)
    try:
        engine.run(spec, collect)
    except FilesystemError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if output_format == OutputFormat.JSON:
        _print_json(files)
        return

    if not files:
        print_info("No matching files found.")
    else:
        _print_files_table(files)

    stats = engine.stats
    total = sum(size for _, size in files)
    console.print(
        f"\n[muted]{stats.processed} file(s), {format_size(total)} total, "
        f"{stats.skipped} skipped[/]"
    )


@app.command()
def dedupe(
    ctx: typer.Context,
    roots: Annotated[list[str], typer.Argument(help="Directories to search for duplicates.")],
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show what would be deleted."),
    ] = False,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Skip confirmation prompt."),
    ] = False,
    max_size: Annotated[
        int | None,
        typer.Option("--max-size", help="Ignore files larger than this many bytes."),
    ] = None,
    recurse: Annotated[
        bool,
        typer.Option("--recurse/--no-recurse", help="Descend into subdirectories."),
    ] = True,
    hidden: Annotated[
        bool,
        typer.Option("--hidden", help="Include hidden files."),
    ] = False,
) -> None:
    """Delete duplicate files, keeping the first copy of each."""
    config = get_config(ctx)
    normalizer = make_normalizer(config)
    restrictions = build_restrictions(config, normalizer, allow_write=list(roots))
    limit = max_size if max_size is not None else config.duplicate_max_size

    finder = DuplicateFinder(restrictions)
    try:
        groups = list(finder.find(roots, recurse=recurse, max_size=limit, follow_hidden=hidden))
    except FilesystemError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if not groups:
        print_success("No duplicate files found.")
        return

    _print_duplicate_plan(groups, dry_run)

    # Confirm unless --yes or --dry-run
    if not dry_run and not yes:
        redundant = sum(len(group.redundant) for group in groups)
        confirmed = typer.confirm(
            f"\nProceed with deleting {redundant} duplicate file(s)?",
            default=False,
        )
        if not confirmed:
            print_info("Aborted.")
            raise typer.Exit(code=0)

    resolver = DuplicateResolver(dry_run=dry_run)
    try:
        outcome = resolver.delete_keeping_first(groups)
    except RestrictionError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    except FilesystemError as e:
        print_error(f"Deletion stopped: {e}")
        raise typer.Exit(code=1) from e

    _print_outcome(outcome)


# === Private helper functions ===


def _print_files_table(files: list[tuple[str, int]]) -> None:
    """Display traversed files as a Rich table."""
    table = Table(title="Matching Files", show_lines=False)
    table.add_column("Path", style="bold")
    table.add_column("Size", justify="right", width=10)

    for path, size in files:
        table.add_row(path, format_size(size))

    console.print(table)


def _print_json(files: list[tuple[str, int]]) -> None:
    """Display traversed files as JSON."""
    data = [{"path": path, "size_bytes": size} for path, size in files]
    console.print_json(json.dumps(data))


def _print_duplicate_plan(groups: list[DuplicateGroup], dry_run: bool) -> None:
    """Display duplicate groups with the keeper of each."""
    label = "Duplicate Files (dry-run)" if dry_run else "Duplicate Files"
    table = Table(title=label, show_lines=True)
    table.add_column("Keep", style="success")
    table.add_column("Delete", style="warning")

    for group in groups:
        table.add_row(group.keeper.path, "\n".join(member.path for member in group.redundant))

    console.print(table)


def _print_outcome(outcome: DuplicateOutcome) -> None:
    """Summarize deleted duplicates."""
    size_str = format_size(outcome.deleted_bytes)
    if outcome.dry_run:
        print_info(f"Dry-run: {outcome.deleted_count} file(s) would be deleted ({size_str}).")
    else:
        print_success(f"Deleted {outcome.deleted_count} duplicate file(s), freed {size_str}.")
