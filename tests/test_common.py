import pathlib

import pytest

from elfimage import ElfSection, build_elf

from psp_tools.common.elf import map_sections
from psp_tools.common.errors import IoError, MissingSectionError
from psp_tools.common.utils import BinaryBuilder, align, parse_loglevel, read_file, write_file


def test_binary_builder():
    builder = BinaryBuilder()
    head = builder.append(4)
    body = builder.append(3)
    body.set_data(b'abc')
    head.set_data(body.offset.to_bytes(4, 'little'))

    assert builder.sizeof() == 7
    assert builder.concat() == b'\x04\x00\x00\x00abc'


def test_binary_builder_size_mismatch():
    with pytest.raises(ValueError):
        BinaryBuilder().append(2).set_data(b'abc')


def test_binary_builder_unpopulated_fragment():
    builder = BinaryBuilder()
    builder.append(2)

    with pytest.raises(ValueError):
        builder.concat()


@pytest.mark.parametrize('pos, expected', [(0, 0), (1, 4), (4, 4), (70, 72)])
def test_align(pos: int, expected: int):
    assert align(pos, 4) == expected


def test_parse_loglevel():
    assert parse_loglevel('10') == 10
    assert parse_loglevel('debug') == 'DEBUG'


def test_read_write_file(tmp_path: pathlib.Path):
    path = tmp_path / 'blob'
    write_file(path, b'\x00\x01')

    assert read_file(path) == b'\x00\x01'


def test_read_missing_file(tmp_path: pathlib.Path):
    path = tmp_path / 'missing'

    with pytest.raises(IoError) as excinfo:
        read_file(path)
    assert excinfo.value.path == str(path)
    assert str(path) in str(excinfo.value)


def test_missing_section_message():
    assert str(MissingSectionError('.lib.stub.btm')) == 'Could not find .lib.stub.btm section.'


def test_map_sections():
    image = build_elf([
        ElfSection('.text', 0x0880_0000, b'\x00' * 12),
        ElfSection('.rodata.sceNid', 0x0890_0000, b'\xaa' * 8),
    ])

    sections = map_sections(image)

    nid = sections['.rodata.sceNid']
    assert nid.address == 0x0890_0000
    assert nid.size == 8
    assert nid.end_address == 0x0890_0008
    assert image[nid.offset:nid.offset + nid.size] == b'\xaa' * 8
    assert '.shstrtab' in sections
