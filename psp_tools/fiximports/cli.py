import argparse
import logging
import sys

from ..common.errors import PspToolsError
from ..common.utils import parse_loglevel
from . import fix_imports


logger = logging.getLogger('fiximports.cli')


def parse_args(argv: list[str] | None = None) -> tuple[argparse.ArgumentParser, argparse.Namespace]:
    p = argparse.ArgumentParser(description='Fix the import stub counts of a linked PSP ELF image in place.')
    p.add_argument('elf', help='ELF image to fix.')
    p.add_argument('-l', '--log-level', type=parse_loglevel, default='WARNING', help='Set log level.')
    return p, p.parse_args(argv)


def main(argv: list[str] | None = None):
    _, args = parse_args(argv)

    logging.basicConfig(level=args.log_level)

    try:
        fix_imports(args.elf)
    except PspToolsError as err:
        logger.error('%s', err)
        sys.exit(1)
