"""
iotrace CLI.

Drives the module codecs over raw module region dumps:
- parse: print every record of a region
- describe: print a module's counter descriptions
- diff: compare the records of two regions
- aggregate: fold per-rank records into one record per file
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .. import __version__
from ..config import IotraceConfig, load_config, generate_default_config
from ..core.errors import CodecError
from ..formats.byteorder import HOST_BYTE_ORDER
from ..formats.module_ids import ModuleId
from ..formats.module_log import MemoryModuleLog
from ..modules import LustreModule, ModuleCodec, lookup, registered_modules


app = typer.Typer(
    name="iotrace",
    help="Decode, print and compare I/O trace module records",
    add_completion=False,
)
console = Console()


class ModuleName(str, Enum):
    lustre = "LUSTRE"
    stdio = "STDIO"


class ByteOrder(str, Enum):
    host = "host"
    little = "little"
    big = "big"


@app.callback()
def main(
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Debug logging"),
):
    """Decode, print and compare I/O trace module records."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )


def _emit(lines: List[str]):
    for line in lines:
        typer.echo(line)


def _codec_for(module_id: int, cfg: IotraceConfig) -> ModuleCodec:
    if module_id == ModuleId.LUSTRE and cfg.log.max_record_bytes:
        return LustreModule(max_record_bytes=cfg.log.max_record_bytes)
    return lookup(module_id)


def _open_region(
    path: Path,
    module_id: int,
    version: Optional[int],
    byte_order: Optional[ByteOrder],
    cfg: IotraceConfig,
) -> MemoryModuleLog:
    order = byte_order.value if byte_order else cfg.log.byte_order
    if order == 'host':
        order = HOST_BYTE_ORDER
    if version is None:
        version = cfg.log.version_for(module_id)
    return MemoryModuleLog.from_region_file(path, module_id, version, byte_order=order)


def _read_records(
    path: Path,
    module_id: int,
    version: Optional[int],
    byte_order: Optional[ByteOrder],
    cfg: IotraceConfig,
) -> Iterator:
    log = _open_region(path, module_id, version, byte_order, cfg)
    yield from _codec_for(module_id, cfg).iter_records(log)


def _fail(error: Exception):
    console.print(f"[red]Error:[/] {escape(str(error))}")
    raise typer.Exit(1)


# === PARSE COMMAND ===

@app.command()
def parse(
    region: Path = typer.Argument(..., help="Module region dump", exists=True),
    module: ModuleName = typer.Option(..., "-m", "--module", case_sensitive=False, help="Module the region belongs to"),
    version: Optional[int] = typer.Option(None, "--module-version", help="Declared module version"),
    byte_order: Optional[ByteOrder] = typer.Option(None, "--byte-order", help="Byte order of the log"),
    config_path: Optional[Path] = typer.Option(None, "-c", "--config"),
    no_description: bool = typer.Option(False, "--no-description", help="Skip counter descriptions"),
):
    """Print every record in a module region."""
    cfg = load_config(config_path)
    module_id = ModuleId.from_name(module.value)
    codec = _codec_for(module_id, cfg)
    out = cfg.output

    if out.show_description and not no_description:
        _emit(codec.print_description(version))

    count = 0
    try:
        for record in _read_records(region, module_id, version, byte_order, cfg):
            _emit(codec.print_record(record, out.file_name, out.mount_point, out.fs_type))
            count += 1
    except (CodecError, FileNotFoundError) as e:
        _fail(e)

    logging.getLogger(__name__).debug("printed %d %s records", count, codec.name)


# === DESCRIBE COMMAND ===

@app.command()
def describe(
    module: ModuleName = typer.Option(..., "-m", "--module", case_sensitive=False),
):
    """Print the description of a module's counters."""
    _emit(lookup(ModuleId.from_name(module.value)).print_description())


# === DIFF COMMAND ===

@app.command()
def diff(
    region1: Path = typer.Argument(..., exists=True),
    region2: Path = typer.Argument(..., exists=True),
    module: ModuleName = typer.Option(..., "-m", "--module", case_sensitive=False),
    version: Optional[int] = typer.Option(None, "--module-version"),
    byte_order: Optional[ByteOrder] = typer.Option(None, "--byte-order"),
    config_path: Optional[Path] = typer.Option(None, "-c", "--config"),
):
    """Compare the records of two regions, matched by record id and rank."""
    cfg = load_config(config_path)
    module_id = ModuleId.from_name(module.value)
    codec = _codec_for(module_id, cfg)

    try:
        first: Dict[Tuple[int, int], object] = {
            (r.base.id, r.base.rank): r
            for r in _read_records(region1, module_id, version, byte_order, cfg)
        }
        second: Dict[Tuple[int, int], object] = {
            (r.base.id, r.base.rank): r
            for r in _read_records(region2, module_id, version, byte_order, cfg)
        }
    except (CodecError, FileNotFoundError) as e:
        _fail(e)

    for key in sorted(set(first) | set(second)):
        _emit(codec.print_diff(first.get(key), str(region1),
                               second.get(key), str(region2)))


# === AGGREGATE COMMAND ===

@app.command()
def aggregate(
    region: Path = typer.Argument(..., exists=True),
    module: ModuleName = typer.Option(..., "-m", "--module", case_sensitive=False),
    version: Optional[int] = typer.Option(None, "--module-version"),
    byte_order: Optional[ByteOrder] = typer.Option(None, "--byte-order"),
    config_path: Optional[Path] = typer.Option(None, "-c", "--config"),
):
    """Fold per-rank records into one record per record id and print them."""
    cfg = load_config(config_path)
    module_id = ModuleId.from_name(module.value)
    codec = _codec_for(module_id, cfg)
    out = cfg.output

    aggregates: Dict[int, object] = {}
    try:
        for record in _read_records(region, module_id, version, byte_order, cfg):
            aggregates[record.base.id] = codec.aggregate(
                record, aggregates.get(record.base.id))
    except (CodecError, FileNotFoundError) as e:
        _fail(e)

    for rec_id in sorted(aggregates):
        _emit(codec.print_record(aggregates[rec_id], out.file_name,
                                 out.mount_point, out.fs_type))


# === CONFIG COMMAND ===

@app.command("config")
def config_cmd(
    action: str = typer.Argument(..., help="init, validate or dump"),
    path: Optional[Path] = typer.Argument(None),
):
    """Generate, validate or dump configuration."""
    if action == "init":
        console.print(generate_default_config(), markup=False, highlight=False)

    elif action == "validate":
        if not path:
            console.print("[red]Path required for validate[/]")
            raise typer.Exit(1)
        try:
            cfg = IotraceConfig.load(path)
            errors = cfg.validate()
            if errors:
                console.print("[red]Invalid configuration:[/]")
                for e in errors:
                    console.print(f"  - {e}", markup=False)
                raise typer.Exit(1)
            console.print(f"[green]Valid:[/] {path}")
        except (FileNotFoundError, TypeError, ValueError, yaml.YAMLError) as e:
            _fail(e)

    elif action == "dump":
        cfg = load_config(path)
        console.print(cfg.to_yaml(), markup=False, highlight=False)

    else:
        console.print(f"[red]Unknown action:[/] {action}")
        console.print("Valid actions: init, validate, dump")
        raise typer.Exit(1)


# === VERSION COMMAND ===

@app.command()
def version(
    verbose: bool = typer.Option(False, "-v", "--verbose", help="List module codecs"),
):
    """Show version information."""
    console.print(f"[bold blue]iotrace v{__version__}[/]")

    if verbose:
        console.print()
        table = Table(show_header=True)
        table.add_column("Module")
        table.add_column("Id", justify="right")
        table.add_column("Current version", justify="right")
        for module_id in registered_modules():
            codec = lookup(module_id)
            table.add_row(codec.name, str(module_id), str(codec.current_version))
        console.print(table)


if __name__ == "__main__":
    app()
