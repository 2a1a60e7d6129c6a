from typing import Final, Mapping

import logging

from construct import ConstructError

from ..common.errors import DecodeError, SfoParameterError
from ..common.utils import BinaryBuilder, align
from .formats import (
    CsSfoEntry,
    CsSfoHeader,
    SFO_KEY_RULES,
    SFO_MAX_ENTRIES,
    SFO_MAX_TABLE_SIZE,
    SfoEntry,
    SfoEntryType,
    SfoHeader,
)


logger = logging.getLogger('sfotool.builder')

DEFAULT_STRINGS: Final[dict[str, str]] = {
    'CATEGORY': 'MG',
    'DISC_ID': 'UCJS10041',
    'DISC_VERSION': '1.00',
    'PSP_SYSTEM_VER': '1.00',
}

DEFAULT_DWORDS: Final[dict[str, int]] = {
    'BOOTABLE': 1,
    'PARENTAL_LEVEL': 1,
    'REGION': 0x8000,
}

SfoValue = str | int | bytes


def _validate(key: str, type_: SfoEntryType, category: str):
    rule = SFO_KEY_RULES.get(key)
    if rule is None:
        raise SfoParameterError(f'Invalid option {key}.')
    if rule.type_ != type_:
        raise SfoParameterError(f'Key {key} does not take a {type_.name.lower()} value.')
    if not rule.allowed_in(category):
        raise SfoParameterError(f'Key {key} is not valid for category {category}.')


def build_sfo(strings: Mapping[str, str], dwords: Mapping[str, int], *,
              title: str | None = None, bare: bool = False) -> bytes:
    """
    Build a PARAM.SFO file.

    Unless bare is set, the title and the usual defaults for a bootable game are filled in first;
    anything in strings or dwords overrides them. The mksfo shipped with cargo-psp applied its defaults
    last instead, so values such as DISC_ID given there were ignored.
    """
    if bare:
        all_strings = dict(strings)
        all_dwords = dict(dwords)
    else:
        if title is None:
            raise SfoParameterError('A title is required unless building a bare SFO.')
        all_strings = {'TITLE': title, **DEFAULT_STRINGS, **strings}
        all_dwords = {**DEFAULT_DWORDS, **dwords}

    both = all_strings.keys() & all_dwords.keys()
    if both:
        raise SfoParameterError(f'Keys given as both string and dword: {", ".join(sorted(both))}.')

    category = all_strings.get('CATEGORY')
    if category is None:
        raise SfoParameterError('CATEGORY must be set.')

    for key in all_strings:
        _validate(key, SfoEntryType.STRING, category)
    for key, value in all_dwords.items():
        _validate(key, SfoEntryType.DWORD, category)
        if not 0 <= value <= 0xffffffff:
            raise SfoParameterError(f'Value of {key} does not fit in a dword: {value}.')

    num_entries = len(all_strings) + len(all_dwords)
    if num_entries > SFO_MAX_ENTRIES:
        raise SfoParameterError(f'Maximum number of options is {SFO_MAX_ENTRIES}, you have {num_entries}.')

    sorted_keys = sorted([*all_strings, *all_dwords])

    builder = BinaryBuilder()

    # Forward declaration
    header_alloc = builder.append(CsSfoHeader.sizeof())
    entry_allocs = [builder.append(CsSfoEntry.sizeof()) for _ in sorted_keys]

    key_table_base = builder.sizeof()
    key_offsets: dict[str, int] = {}
    for key in sorted_keys:
        encoded = key.encode('ascii')
        key_entry = builder.append(len(encoded) + 1)
        key_entry.set_data(encoded + b'\x00')
        key_offsets[key] = key_entry.offset - key_table_base
    key_table_size = builder.sizeof() - key_table_base

    padding = builder.append(align(builder.sizeof(), 4) - builder.sizeof())
    padding.set_data(bytes(padding.size))

    data_table_base = builder.sizeof()
    entries: list[SfoEntry] = []
    for key in sorted_keys:
        if key in all_dwords:
            type_ = SfoEntryType.DWORD
            encoded = all_dwords[key].to_bytes(4, 'little')
            total_size = 4
        else:
            type_ = SfoEntryType.STRING
            encoded = all_strings[key].encode('utf-8') + b'\x00'
            total_size = align(len(encoded), 4)
        value_entry = builder.append(total_size)
        value_entry.set_data(encoded + bytes(total_size - len(encoded)))
        entries.append(SfoEntry(
            key_offset=key_offsets[key],
            type_=type_,
            val_size=len(encoded),
            total_size=total_size,
            data_offset=value_entry.offset - data_table_base,
        ))
        logger.debug('%s = %r', key, all_dwords.get(key, all_strings.get(key)))
    data_table_size = builder.sizeof() - data_table_base

    if key_table_size > SFO_MAX_TABLE_SIZE or data_table_size > SFO_MAX_TABLE_SIZE:
        raise SfoParameterError(
            f'SFO tables too large (keys {key_table_size} bytes, data {data_table_size} bytes, '
            f'limit {SFO_MAX_TABLE_SIZE} bytes each).'
        )

    for alloc, entry in zip(entry_allocs, entries):
        alloc.set_data(CsSfoEntry.build(entry))

    header_alloc.set_data(CsSfoHeader.build(SfoHeader(
        key_offset=key_table_base,
        val_offset=data_table_base,
        count=len(entries),
    )))

    return builder.concat()


def parse_sfo(data: bytes) -> dict[str, SfoValue]:
    try:
        header = CsSfoHeader.parse(data)
        result: dict[str, SfoValue] = {}
        pos = CsSfoHeader.sizeof()
        for _ in range(header.count):
            entry = CsSfoEntry.parse(data[pos:pos + CsSfoEntry.sizeof()])
            pos += CsSfoEntry.sizeof()

            key_start = header.key_offset + entry.key_offset
            key_end = data.index(b'\x00', key_start)
            key = data[key_start:key_end].decode('ascii')

            value_start = header.val_offset + entry.data_offset
            raw = data[value_start:value_start + entry.val_size]
            if len(raw) != entry.val_size:
                raise DecodeError(f'Value of {key} runs past the end of the file.')

            if entry.type_ == SfoEntryType.DWORD:
                result[key] = int.from_bytes(raw, 'little')
            elif entry.type_ == SfoEntryType.STRING:
                result[key] = raw.rstrip(b'\x00').decode('utf-8')
            else:
                result[key] = raw
    except (ConstructError, ValueError) as err:
        raise DecodeError(f'Not a valid SFO file: {err}') from err
    return result
