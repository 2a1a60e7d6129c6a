import logging

import click

from ..common.errors import PspToolsError
from ..common.utils import parse_loglevel, read_file, write_file
from .builder import build_sfo, parse_sfo


def _split_key_value(value: str, param: click.Parameter, ctx: click.Context | None) -> tuple[str, str]:
    key, sep, val = value.partition('=')
    if not sep:
        raise click.BadParameter(f'invalid KEY=value: no `=` found in `{value}`', ctx=ctx, param=param)
    return key, val


def parse_string_options(ctx: click.Context, param: click.Parameter, values: tuple[str, ...]) -> dict[str, str]:
    return dict(_split_key_value(value, param, ctx) for value in values)


def parse_dword_options(ctx: click.Context, param: click.Parameter, values: tuple[str, ...]) -> dict[str, int]:
    result = {}
    for value in values:
        key, val = _split_key_value(value, param, ctx)
        try:
            result[key] = int(val, 0)
        except ValueError:
            raise click.BadParameter(f'{key}: {val!r} is not an integer', ctx=ctx, param=param) from None
    return result


@click.command(name='mksfo', help=(
    'Create a PARAM.SFO file used for building PSP EBOOT packages. Values given with -s or -d take '
    'precedence over the built-in defaults.'
))
@click.option('--bare', is_flag=True, help='Do not set any default values. Ignores the TITLE value.')
@click.option('-s', '--string', 'strings', multiple=True, metavar='KEY=VALUE', callback=parse_string_options,
              help='Add a new STRING value.')
@click.option('-d', '--dword', 'dwords', multiple=True, metavar='KEY=VALUE', callback=parse_dword_options,
              help='Add a new DWORD value.')
@click.option('-l', '--log-level', default='WARNING', help='Set log level.')
@click.argument('title')
@click.argument('output', type=click.Path(dir_okay=False))
def do_mksfo(bare: bool, strings: dict[str, str], dwords: dict[str, int], log_level: str, title: str, output: str):
    logging.basicConfig(level=parse_loglevel(log_level))
    try:
        sfo = build_sfo(strings, dwords, title=title, bare=bare)
        write_file(output, sfo)
    except PspToolsError as err:
        raise click.ClickException(str(err)) from err


@click.command(name='sfoinfo', help='Dump the contents of a PARAM.SFO file.')
@click.argument('sfo-file', type=click.Path(exists=True, dir_okay=False))
def do_sfoinfo(sfo_file: str):
    try:
        params = parse_sfo(read_file(sfo_file))
    except PspToolsError as err:
        raise click.ClickException(str(err)) from err
    for key, value in params.items():
        if isinstance(value, int):
            click.echo(f'{key} = {value:#x}')
        else:
            click.echo(f'{key} = {value!r}')


def main():
    do_mksfo()


def info_main():
    do_sfoinfo()
