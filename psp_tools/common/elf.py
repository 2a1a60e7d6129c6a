from typing import NamedTuple

import io
import logging

from elftools.common.exceptions import ELFError
from elftools.elf.elffile import ELFFile

from .errors import DecodeError


logger = logging.getLogger('common.elf')


class SectionDescriptor(NamedTuple):
    name: str
    offset: int
    address: int
    size: int

    @property
    def end_address(self) -> int:
        return self.address + self.size


def map_sections(image: bytes | bytearray) -> dict[str, SectionDescriptor]:
    """
    Build a name to section descriptor mapping from the section table of an ELF image.

    Later sections win when several share a name.
    """
    try:
        elf = ELFFile(io.BytesIO(image))
        sections = {}
        for sec in elf.iter_sections():
            sections[sec.name] = SectionDescriptor(
                sec.name,
                sec['sh_offset'],
                sec['sh_addr'],
                sec['sh_size'],
            )
    except ELFError as err:
        raise DecodeError(f'Cannot parse ELF section table: {err}') from err
    logger.debug('Found %d sections.', len(sections))
    return sections
