import logging
import pathlib

import click

from ..common.errors import PspToolsError
from ..common.utils import parse_loglevel, read_file
from .builder import parse_pbp, write_pbp
from .formats import PbpSegment
from .manifest import build_eboot, load_manifest


ABSENT_SENTINEL = 'NULL'


def segment_path(value: str) -> str | None:
    """
    Map the literal NULL to None, the marker of an absent segment.
    """
    return None if value == ABSENT_SENTINEL else value


def _segment_arguments(func):
    for role in reversed(PbpSegment):
        func = click.argument(role.name.lower(), type=click.Path(dir_okay=False), metavar=role.filename)(func)
    return func


@click.group()
@click.option('-l', '--log-level', default='WARNING', help='Set log level.')
def app(log_level: str):
    logging.basicConfig(level=parse_loglevel(log_level))


@click.command(name='pack', help=(
    'Create a PSP package. Arguments after OUTPUT follow the PBP segment order; pass NULL for any '
    'optional resource that does not exist.'
))
@click.argument('output', type=click.Path(dir_okay=False))
@_segment_arguments
def do_pack(output: str, **segments: str):
    paths = [segment_path(segments[role.name.lower()]) for role in PbpSegment]
    try:
        write_pbp(output, paths)
    except PspToolsError as err:
        raise click.ClickException(str(err)) from err
    click.echo(f'Saved to {output}')


@app.command(name='info', help='List the segments of a PBP file.')
@click.argument('pbp-file', type=click.Path(exists=True, dir_okay=False))
def do_info(pbp_file: str):
    try:
        header, segments = parse_pbp(read_file(pbp_file))
    except PspToolsError as err:
        raise click.ClickException(str(err)) from err
    click.echo(f'version: {header.version >> 16}.{header.version & 0xffff}')
    for role, offset, data in zip(PbpSegment, header.offsets, segments):
        click.echo(f'{role.filename:<10} offset={offset:#010x} size={len(data)}')


@app.command(name='build', help='Build PARAM.SFO and the PBP package from a Psp.toml manifest.')
@click.argument('manifest-file', type=click.Path(exists=True, dir_okay=False, path_type=pathlib.Path))
@click.option('-e', '--executable', type=click.Path(dir_okay=False), required=True,
              help='Executable (PRX) to store as DATA.PSP.')
@click.option('-o', '--output', type=click.Path(dir_okay=False), required=True, help='Output PBP file.')
@click.option('--sfo-output', type=click.Path(dir_okay=False),
              help='Where to write PARAM.SFO (default is next to the output).')
def do_build(manifest_file: pathlib.Path, executable: str, output: str, sfo_output: str | None):
    try:
        with manifest_file.open('rb') as f:
            manifest = load_manifest(f)
        build_eboot(manifest, manifest_file.parent, executable, output, sfo_output)
    except PspToolsError as err:
        raise click.ClickException(str(err)) from err
    click.echo(f'Saved to {output}')


app.add_command(do_pack)


def main():
    app()


def pack_main():
    do_pack()
