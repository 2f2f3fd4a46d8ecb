"""Click CLI for inspecting and extracting BSA archives."""
from __future__ import annotations

import fnmatch
import logging
from pathlib import Path
from typing import Optional

import click

from bsa_parser.bsa.reader import BSAArchive, open_archive
from bsa_parser.config import derive_output_dir, find_archives
from bsa_parser.exceptions import ArchiveError
from bsa_parser.settings import (
    Settings,
    get_config_path,
    load_settings,
    save_settings,
    validate_encoding,
)


class Context:
    """Holds settings resolved from the config file and command line."""

    def __init__(self, encoding: str | None = None, strict: bool | None = None):
        self._encoding = encoding
        self._strict = strict
        self._settings: Settings | None = None

    @property
    def settings(self) -> Settings:
        if self._settings is None:
            settings = load_settings()
            if self._encoding is not None:
                settings.encoding = validate_encoding(self._encoding)
            if self._strict is not None:
                settings.strict_terminators = self._strict
            self._settings = settings
        return self._settings

    def open(self, path: Path) -> BSAArchive:
        try:
            return open_archive(path, self.settings)
        except ArchiveError as e:
            raise click.ClickException(str(e))


pass_ctx = click.make_pass_decorator(Context)

_archive_arg = click.argument(
    "archive", type=click.Path(exists=True, dir_okay=False, path_type=Path))


@click.group()
@click.option("--encoding", default=None, help="Name encoding (default from config: cp1252)")
@click.option("--strict/--lenient", default=None,
              help="Reject length-prefixed strings without a zero terminator")
@click.option("--verbose", "-v", count=True, help="-v for warnings, -vv for debug output")
@click.version_option(package_name="bsa-parser")
@click.pass_context
def cli(ctx, encoding: Optional[str], strict: Optional[bool], verbose: int):
    """bsadump - Bethesda archive (BSA v104) inspector.

    Decode Fallout 3 / New Vegas archives, list their folders and files,
    look entries up by path and extract their contents.
    """
    level = {0: logging.ERROR, 1: logging.WARNING}.get(verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    ctx.obj = Context(encoding=encoding, strict=strict)


@cli.command()
@_archive_arg
@pass_ctx
def info(ctx: Context, archive: Path):
    """Show the archive header."""
    with ctx.open(archive) as bsa:
        h = bsa.header
        click.echo(f"Archive {archive.name}")
        click.echo(f"  Version:      {h.version}")
        click.echo(f"  Flags:        0x{h.archive_flags:08X}")
        click.echo(f"  File flags:   0x{h.file_flags:08X}")
        click.echo(f"  Folders:      {h.folder_count:,}")
        click.echo(f"  Files:        {h.file_count:,}")
        click.echo(f"  Compressed:   {'yes' if h.is_compressed else 'no'}")
        click.echo(f"  Folder names: {'yes' if h.has_folder_names else 'no'}")
        click.echo(f"  File names:   {'yes' if h.has_file_names else 'no'}")
        click.echo(f"  Folder names length: {h.total_folder_name_length:,}")
        click.echo(f"  File names length:   {h.total_file_name_length:,}")


@cli.command("ls")
@_archive_arg
@click.option("--folders", "folders_only", is_flag=True, help="List folders only")
@click.option("--match", "pattern", default=None, help="Glob pattern on paths (e.g. *.nif)")
@pass_ctx
def list_entries(ctx: Context, archive: Path, folders_only: bool, pattern: Optional[str]):
    """List folders or files in the archive."""
    with ctx.open(archive) as bsa:
        if folders_only:
            click.echo(f"{'Hash':<18}  {'Files':>6}  {'Offset':>10}  Name")
            click.echo("-" * 60)
            for name_hash, folder in bsa.folders.items():
                name = bsa.folder_names.get(name_hash, "")
                click.echo(f"0x{name_hash:016x}  {folder.count:>6}  {folder.offset:>10}  {name}")
            return

        shown = 0
        for entry in bsa.entries:
            if pattern and not fnmatch.fnmatch(entry.path.lower(), pattern.lower()):
                continue
            click.echo(f"  {entry.path} ({entry.file.data_size:,} bytes)")
            shown += 1
        click.echo(f"\n{shown} file(s)")


@cli.command()
@_archive_arg
@click.argument("path")
@pass_ctx
def lookup(ctx: Context, archive: Path, path: str):
    """Look up a folder or file by path (e.g. meshes\\x.nif)."""
    with ctx.open(archive) as bsa:
        try:
            folder = bsa.find_folder(path)
            entry = bsa.find_entry(path) if folder is None else None
        except ArchiveError as e:
            raise click.ClickException(str(e))
        if folder is not None:
            click.echo(f"Folder {path}")
            click.echo(f"  Files:  {folder.count}")
            click.echo(f"  Offset: {folder.offset}")
            return

        if entry is None:
            click.echo(f"{path} not found in {archive.name}.")
            return
        click.echo(f"File {entry.path}")
        click.echo(f"  Hash:   0x{entry.file_hash:016x}")
        click.echo(f"  Size:   {entry.file.data_size:,} bytes")
        click.echo(f"  Offset: {entry.file.offset}")


@cli.command()
@_archive_arg
@click.option("--output", "-o", type=click.Path(file_okay=False, path_type=Path),
              help="Output directory (default: next to the archive)")
@click.option("--match", "pattern", default=None, help="Glob pattern on paths (e.g. sound\\*)")
@pass_ctx
def extract(ctx: Context, archive: Path, output: Optional[Path], pattern: Optional[str]):
    """Extract files from the archive."""
    output = output or derive_output_dir(archive)
    with ctx.open(archive) as bsa:
        entries = bsa.entries
        if pattern:
            entries = [e for e in entries if fnmatch.fnmatch(e.path.lower(), pattern.lower())]
        if not entries:
            click.echo("No matching files.")
            return
        try:
            written = bsa.extract_to(output, entries)
        except ArchiveError as e:
            raise click.ClickException(str(e))
    click.echo(f"Extracted {len(written)} file(s) to {output}")


@cli.command()
@_archive_arg
@click.option("--format", "fmt", type=click.Choice(["csv", "json"]), required=True)
@click.option("--output", "-o", type=click.Path(), help="Output file path")
@pass_ctx
def export(ctx: Context, archive: Path, fmt: str, output: Optional[str]):
    """Export the archive index as CSV or JSON."""
    with ctx.open(archive) as bsa:
        if fmt == "csv":
            from bsa_parser.export.csv_export import export_csv
            data = export_csv(bsa)
        else:
            from bsa_parser.export.json_export import export_json
            data = export_json(bsa)

    if output:
        Path(output).write_text(data, encoding="utf-8")
        click.echo(f"Exported to {output}")
    else:
        click.echo(data)


@cli.command()
@click.argument("data_dir", type=click.Path(exists=True, file_okay=False, path_type=Path))
@pass_ctx
def scan(ctx: Context, data_dir: Path):
    """Summarize every archive in a Data directory."""
    paths = find_archives(data_dir)
    if not paths:
        click.echo(f"No archives found in {data_dir}.")
        return

    click.echo(f"{'Archive':<40}  {'Folders':>8}  {'Files':>8}")
    click.echo("-" * 60)
    errors = 0
    for path in paths:
        try:
            with open_archive(path, ctx.settings) as bsa:
                click.echo(f"{path.name:<40}  {len(bsa.folders):>8,}  {len(bsa.entries):>8,}")
        except ArchiveError as e:
            click.echo(f"{path.name:<40}  error: {e.message}")
            errors += 1
    if errors:
        click.echo(f"\n{errors} archive(s) could not be read.")


@cli.command("config")
@click.option("--encoding", default=None, help="Default name encoding")
@click.option("--strict/--lenient", default=None, help="Default terminator handling")
@click.option("--verify/--no-verify", default=None, help="Check file names against hashes")
def config_cmd(encoding: Optional[str], strict: Optional[bool], verify: Optional[bool]):
    """Show or update saved settings."""
    settings = load_settings()
    if encoding is None and strict is None and verify is None:
        click.echo(f"Config file: {get_config_path()}")
        click.echo(f"  encoding:           {settings.encoding}")
        click.echo(f"  strict_terminators: {settings.strict_terminators}")
        click.echo(f"  verify_file_hashes: {settings.verify_file_hashes}")
        return

    if encoding is not None:
        settings.encoding = validate_encoding(encoding)
    if strict is not None:
        settings.strict_terminators = strict
    if verify is not None:
        settings.verify_file_hashes = verify
    saved_path = save_settings(settings)
    click.echo(f"Config saved to {saved_path}")


def main():
    cli()


if __name__ == "__main__":
    main()
