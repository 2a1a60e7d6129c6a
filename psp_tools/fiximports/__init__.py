"""
Fix the stub count of every imported library in a linked PSP image.

When linking, imported functions may be stripped entirely (LTO does this, for example), leaving the
stub_count fields of .lib.stub out of sync with .rodata.sceNid. Each library's NID block starts
where the previous one (in address order) ends, so the real count can be recovered post-link by
sorting the entries on nid_table and taking successive deltas.
"""

from typing import Sequence

import logging
import os

from construct import ConstructError

from ..common.elf import SectionDescriptor, map_sections
from ..common.errors import DecodeError, MalformedRegionError, MissingSectionError
from ..common.utils import read_file, write_file
from .formats import (
    LIB_STUB_BTM_SECTION,
    LIB_STUB_SECTION,
    NID_SECTION,
    NID_SIZE,
    STUB_LIBRARY_ENTRY_SIZE,
    CsStubLibraryEntry,
    StubLibraryEntry,
)


logger = logging.getLogger('fiximports')


def decode_stub_entries(region: bytes | bytearray) -> list[StubLibraryEntry]:
    if len(region) % STUB_LIBRARY_ENTRY_SIZE != 0:
        raise MalformedRegionError(
            f'{LIB_STUB_SECTION} region of {len(region):#x} bytes is not a multiple of the '
            f'stub entry size ({STUB_LIBRARY_ENTRY_SIZE} bytes).'
        )
    entries = []
    for pos in range(0, len(region), STUB_LIBRARY_ENTRY_SIZE):
        try:
            entries.append(CsStubLibraryEntry.parse(region[pos:pos + STUB_LIBRARY_ENTRY_SIZE]))
        except ConstructError as err:
            raise DecodeError(f'Cannot decode stub entry at region offset {pos:#x}: {err}') from err
    return entries


def compute_stub_counts(entries: Sequence[StubLibraryEntry], nid_section: SectionDescriptor) -> list[int]:
    """
    Return the real stub count of each entry, in positional order.

    The NID block of an entry ends at the nid_table of its successor in address order, or at the end
    of the NID section for the last one.
    """
    nid_sorted = sorted(range(len(entries)), key=lambda i: entries[i].nid_table)
    rank = {idx: pos for pos, idx in enumerate(nid_sorted)}

    for prev, cur in zip(nid_sorted, nid_sorted[1:]):
        if entries[prev].nid_table == entries[cur].nid_table:
            logger.warning('Stub entries #%d and #%d share NID table %#010x. Their stub counts are unreliable.',
                           prev, cur, entries[cur].nid_table)

    counts = []
    for idx, entry in enumerate(entries):
        pos = rank[idx]
        if pos + 1 < len(nid_sorted):
            nid_end = entries[nid_sorted[pos + 1]].nid_table
        else:
            nid_end = nid_section.end_address

        if nid_end < entry.nid_table:
            raise MalformedRegionError(
                f'NID table of stub entry #{idx} ({entry.nid_table:#010x}) lies past the end of '
                f'{nid_section.name} ({nid_end:#010x}).'
            )
        nid_bytes = nid_end - entry.nid_table
        if nid_bytes % NID_SIZE != 0:
            logger.warning('NID block of stub entry #%d is %d bytes long, not a multiple of %d.',
                           idx, nid_bytes, NID_SIZE)
        count = nid_bytes // NID_SIZE
        if count > 0xffff:
            raise MalformedRegionError(f'Stub entry #{idx} would need a stub count of {count}.')
        counts.append(count)
    return counts


def fix_stub_counts(image: bytearray) -> bool:
    """
    Rewrite the stub_count field of every .lib.stub entry in image.

    Returns False without touching image when it has no .lib.stub section.
    """
    sections = map_sections(image)

    lib_stub = sections.get(LIB_STUB_SECTION)
    if lib_stub is None:
        # Images importing nothing have no stub table.
        logger.info('No %s section found. Nothing to fix.', LIB_STUB_SECTION)
        return False

    lib_stub_btm = sections.get(LIB_STUB_BTM_SECTION)
    if lib_stub_btm is None:
        raise MissingSectionError(LIB_STUB_BTM_SECTION)

    nid_section = sections.get(NID_SECTION)
    if nid_section is None:
        raise MissingSectionError(NID_SECTION)

    start = lib_stub.offset
    end = lib_stub_btm.offset
    if end < start:
        raise MalformedRegionError(
            f'{LIB_STUB_BTM_SECTION} ({end:#x}) starts before {LIB_STUB_SECTION} ({start:#x}).'
        )

    entries = decode_stub_entries(image[start:end])
    counts = compute_stub_counts(entries, nid_section)

    patched = bytearray()
    changed = 0
    for idx, (entry, count) in enumerate(zip(entries, counts)):
        if entry.stub_count != count:
            logger.debug('Stub entry #%d: stub_count %d -> %d', idx, entry.stub_count, count)
            changed += 1
        entry.stub_count = count
        try:
            patched += CsStubLibraryEntry.build(entry)
        except ConstructError as err:
            raise DecodeError(f'Cannot encode stub entry #{idx}: {err}') from err

    image[start:end] = patched
    logger.info('Fixed %d of %d stub entries.', changed, len(entries))
    return True


def fix_imports(path: str | os.PathLike) -> bool:
    image = bytearray(read_file(path))
    if not fix_stub_counts(image):
        return False
    write_file(path, image)
    return True
