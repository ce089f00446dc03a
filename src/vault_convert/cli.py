"""Command-line interface for vault-convert."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import NoReturn

import click

from . import __version__
from .converter import BackendConverter
from .error_handler import ErrorHandler
from .io.file_tree import FileTreeBackend
from .models import Record
from .shamir import combine, decode_share, encode_key
from .types import ConversionConfig, LeafFormat, ProcessingError

logger = logging.getLogger("vault_convert")

LEAF_FORMATS = [leaf_format.value for leaf_format in LeafFormat]


def _configure_logging(verbose: int) -> None:
    if verbose >= 2:
        level = logging.DEBUG
    elif verbose == 1:
        level = logging.INFO
    else:
        level = logging.CRITICAL
    logging.basicConfig(
        stream=sys.stderr,
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )


def _fail(ctx: click.Context, error: ProcessingError) -> NoReturn:
    """Report a fatal error and exit non-zero."""
    if ctx.find_root().obj.get("verbose"):
        response = ErrorHandler(logger).handle_processing_error(error)
        click.echo(f"Hint: {response.suggested_action}", err=True)
    raise click.ClickException(str(error))


def _conversion_options(command):
    command = click.option('--allow-empty-values', is_flag=True,
                           help='Pass zero-length values through instead of failing')(command)
    command = click.option('--leaf-format', type=click.Choice(LEAF_FORMATS), default=LeafFormat.RAW.value,
                           show_default=True,
                           help='Leaf file encoding: raw value bytes, or a JSON Key/Value entry')(command)
    command = click.option('--key-prefix', '-p', default='vault', show_default=True,
                           help='Key prefix of the data in the array format')(command)
    return command


def _build_config(key_prefix: str, leaf_format: str, allow_empty_values: bool) -> ConversionConfig:
    return ConversionConfig(
        key_prefix=key_prefix,
        leaf_format=LeafFormat(leaf_format),
        allow_empty_values=allow_empty_values
    )


def _run_conversion(ctx: click.Context, direction: str, input_path: Path,
                    output_path: Path, config: ConversionConfig) -> None:
    converter = BackendConverter(config=config, logger=logger)
    try:
        if direction == "tree-to-array":
            result = asyncio.run(converter.tree_to_array(str(input_path), str(output_path)))
        else:
            result = asyncio.run(converter.array_to_tree(str(input_path), str(output_path)))
    finally:
        converter.shutdown()

    if not result.success:
        _fail(ctx, result.error)


@click.group()
@click.version_option(version=__version__)
@click.option('--verbose', '-v', count=True, help='Log progress to stderr (-vv for debug output)')
@click.pass_context
def main(ctx: click.Context, verbose: int):
    """Convert Vault storage between a Consul KV export and a filesystem tree."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _configure_logging(verbose)


@main.command('tree-to-array')
@click.argument('input_dir', type=click.Path(file_okay=False, path_type=Path))
@click.argument('output_file', type=click.Path(dir_okay=False, path_type=Path))
@_conversion_options
@click.pass_context
def tree_to_array(ctx: click.Context, input_dir: Path, output_file: Path,
                  key_prefix: str, leaf_format: str, allow_empty_values: bool):
    """Export a filesystem backend tree to a JSON array.

    INPUT_DIR must be a quiesced filesystem backend. OUTPUT_FILE is
    overwritten and may be loaded with 'consul kv import'.
    """
    config = _build_config(key_prefix, leaf_format, allow_empty_values)
    _run_conversion(ctx, "tree-to-array", input_dir, output_file, config)


@main.command('array-to-tree')
@click.argument('input_file', type=click.Path(dir_okay=False, path_type=Path))
@click.argument('output_dir', type=click.Path(file_okay=False, path_type=Path))
@_conversion_options
@click.pass_context
def array_to_tree(ctx: click.Context, input_file: Path, output_dir: Path,
                  key_prefix: str, leaf_format: str, allow_empty_values: bool):
    """Import a JSON array into a filesystem backend tree.

    INPUT_FILE is a KV export such as 'consul kv export vault >vault.json'.
    OUTPUT_DIR is created if it does not exist.
    """
    config = _build_config(key_prefix, leaf_format, allow_empty_values)
    _run_conversion(ctx, "array-to-tree", input_file, output_dir, config)


@main.command('construct-master-key')
@click.option('--num-shares', '-n', default=3, show_default=True, type=click.IntRange(min=2),
              help='Number of key shares required by the seal configuration')
@click.pass_context
def construct_master_key(ctx: click.Context, num_shares: int):
    """Combine Shamir key shares and print the master key as base64."""
    try:
        shares = [
            decode_share(click.prompt(f"Enter key share {i} of {num_shares}", hide_input=True))
            for i in range(1, num_shares + 1)
        ]
        master_key = combine(shares)
    except ProcessingError as e:
        _fail(ctx, e)
    click.echo(encode_key(master_key))


@main.group()
@click.option('--backend', '-b', 'backend_path', required=True,
              type=click.Path(file_okay=False, path_type=Path),
              help='Root directory of the filesystem backend')
@click.option('--leaf-format', type=click.Choice(LEAF_FORMATS), default=LeafFormat.RAW.value,
              show_default=True, help='Leaf file encoding')
@click.pass_context
def tree(ctx: click.Context, backend_path: Path, leaf_format: str):
    """Read and write individual keys of a filesystem backend tree."""
    ctx.obj["backend"] = FileTreeBackend(str(backend_path), leaf_format=LeafFormat(leaf_format),
                                         logger=logger)


@tree.command('list')
@click.argument('prefix', default='/')
@click.pass_context
def tree_list(ctx: click.Context, prefix: str):
    """List the keys directly below PREFIX."""
    try:
        names = ctx.obj["backend"].list(prefix)
    except ProcessingError as e:
        _fail(ctx, e)
    for name in names:
        click.echo(name)


@tree.command('read')
@click.argument('key')
@click.option('--verbatim', is_flag=True, help='Write the value byte-for-byte instead of a hexdump')
@click.pass_context
def tree_read(ctx: click.Context, key: str, verbatim: bool):
    """Read the value stored at KEY."""
    try:
        record = ctx.obj["backend"].get(key)
    except ProcessingError as e:
        _fail(ctx, e)

    if verbatim:
        with click.open_file('-', 'wb') as stdout:
            stdout.write(record.value)
            stdout.flush()
    else:
        click.echo(format_hexdump(record.value), nl=False)


@tree.command('write')
@click.argument('key')
@click.option('--data', help="Value to write; '@FILE' reads FILE. Defaults to standard input.")
@click.pass_context
def tree_write(ctx: click.Context, key: str, data: str):
    """Write a value to KEY."""
    try:
        if data is None:
            with click.open_file('-', 'rb') as stdin:
                value = stdin.read()
        elif data.startswith('@'):
            value = Path(data[1:]).read_bytes()
        else:
            value = data.encode('utf-8')
    except OSError as e:
        raise click.ClickException(f"cannot read value: {e}")

    backend = ctx.obj["backend"]
    try:
        backend.ensure_root()
        backend.put(Record(key=key, value=value))
    except ProcessingError as e:
        _fail(ctx, e)
    except ValueError as e:
        raise click.ClickException(str(e))


def format_hexdump(data: bytes) -> str:
    """Canonical hex+ASCII dump, 16 bytes per line."""
    lines = []
    for offset in range(0, len(data), 16):
        chunk = data[offset:offset + 16]
        left = " ".join(f"{b:02x}" for b in chunk[:8])
        right = " ".join(f"{b:02x}" for b in chunk[8:])
        text = "".join(chr(b) if 32 <= b < 127 else "." for b in chunk)
        lines.append(f"{offset:08x}  {left:<23}  {right:<23}  |{text}|")
    return "".join(line + "\n" for line in lines)


if __name__ == '__main__':
    main()
