import pathlib

import pytest
from click.testing import CliRunner

from psp_tools.common.errors import DecodeError, IoError, MalformedRegionError
from psp_tools.pbptool import app, do_pack
from psp_tools.pbptool.builder import pack_pbp, parse_pbp, write_pbp
from psp_tools.pbptool.formats import PBP_HEADER_SIZE, CsPbpHeader, PbpSegment


def header_offsets(data: bytes) -> list[int]:
    return list(CsPbpHeader.parse(data).offsets)


def test_header_layout():
    data = pack_pbp([None] * 8)

    assert PBP_HEADER_SIZE == 40
    assert len(data) == 40
    assert data[:4] == b'\x00PBP'
    assert data[4:8] == b'\x00\x00\x01\x00'
    assert header_offsets(data) == [40] * 8


def test_segment_filenames():
    assert [role.filename for role in PbpSegment] == [
        'PARAM.SFO', 'ICON0.PNG', 'ICON1.PMF', 'PIC0.PNG', 'PIC1.PNG', 'SND0.AT3', 'DATA.PSP', 'DATA.PSAR',
    ]


def test_offsets_accumulate():
    sizes = [3, 0, 17, 1, 256, 5, 1024, 9]
    segments = [bytes([i]) * size for i, size in enumerate(sizes)]

    data = pack_pbp(segments)

    offsets = header_offsets(data)
    assert offsets[0] == 40
    for k in range(7):
        assert offsets[k + 1] == offsets[k] + sizes[k]
    assert len(data) == 40 + sum(sizes)
    assert data[40:] == b''.join(segments)


def test_absent_slots_share_offset():
    data = pack_pbp([None, b'icon', None, None, b'pic1', None, b'exe', None])

    assert header_offsets(data) == [40, 40, 44, 44, 44, 48, 48, 51]
    assert data[40:] == b'iconpic1exe'


def test_present_but_empty_equals_absent_layout():
    assert pack_pbp([b''] * 8) == pack_pbp([None] * 8)


def test_wrong_segment_count():
    with pytest.raises(ValueError):
        pack_pbp([None] * 7)


def test_concrete_scenario(tmp_path: pathlib.Path):
    sfo = tmp_path / 'PARAM.SFO'
    sfo.write_bytes(b's' * 10)
    exe = tmp_path / 'game.prx'
    exe.write_bytes(b'e' * 100)
    output = tmp_path / 'game.pbp'

    write_pbp(output, [sfo, None, None, None, None, None, exe, None])

    data = output.read_bytes()
    assert header_offsets(data) == [40, 50, 50, 50, 50, 50, 50, 150]
    assert len(data) == 150


def test_unreadable_input(tmp_path: pathlib.Path):
    missing = tmp_path / 'missing.png'
    output = tmp_path / 'EBOOT.PBP'

    with pytest.raises(IoError) as excinfo:
        write_pbp(output, [None, missing, None, None, None, None, None, None])
    assert excinfo.value.path == str(missing)
    assert not output.exists()


def test_unwritable_output(tmp_path: pathlib.Path):
    output = tmp_path / 'no' / 'such' / 'dir' / 'EBOOT.PBP'

    with pytest.raises(IoError) as excinfo:
        write_pbp(output, [None] * 8)
    assert excinfo.value.path == str(output)


def test_parse_pbp():
    segments = [b'sfo', None, None, None, b'pic1', None, b'exe', b'psar']
    header, parsed = parse_pbp(pack_pbp(segments))

    assert header.version == 0x10000
    assert parsed == [s if s is not None else b'' for s in segments]


def test_parse_pbp_bad_signature():
    data = bytearray(pack_pbp([None] * 8))
    data[1:4] = b'ELF'

    with pytest.raises(DecodeError):
        parse_pbp(bytes(data))


def test_parse_pbp_offset_past_end():
    data = bytearray(pack_pbp([b'x'] * 8))
    # Last offset beyond the end of the file.
    data[36:40] = (0x1000).to_bytes(4, 'little')

    with pytest.raises(MalformedRegionError):
        parse_pbp(bytes(data))


def test_cli_pack(tmp_path: pathlib.Path):
    (tmp_path / 'PARAM.SFO').write_bytes(b's' * 10)
    (tmp_path / 'game.prx').write_bytes(b'e' * 100)
    runner = CliRunner()

    with runner.isolated_filesystem(temp_dir=tmp_path) as cwd:
        cwd = pathlib.Path(cwd)
        result = runner.invoke(do_pack, [
            'game.pbp',
            str(tmp_path / 'PARAM.SFO'),
            'NULL', 'NULL', 'NULL', 'NULL', 'NULL',
            str(tmp_path / 'game.prx'),
            'NULL',
        ])

        assert result.exit_code == 0, result.output
        assert 'Saved to game.pbp' in result.output
        data = (cwd / 'game.pbp').read_bytes()
        assert header_offsets(data) == [40, 50, 50, 50, 50, 50, 50, 150]


def test_cli_pack_missing_input(tmp_path: pathlib.Path):
    output = tmp_path / 'EBOOT.PBP'
    missing = tmp_path / 'icon0.png'

    result = CliRunner().invoke(app, [
        'pack', str(output), 'NULL', str(missing), 'NULL', 'NULL', 'NULL', 'NULL', 'NULL', 'NULL',
    ])

    assert result.exit_code != 0
    assert str(missing) in result.output
    assert not output.exists()


def test_cli_pack_wrong_argument_count(tmp_path: pathlib.Path):
    result = CliRunner().invoke(do_pack, [str(tmp_path / 'EBOOT.PBP'), 'NULL', 'NULL'])

    assert result.exit_code != 0


def test_cli_info(tmp_path: pathlib.Path):
    pbp = tmp_path / 'EBOOT.PBP'
    pbp.write_bytes(pack_pbp([b'sfo', None, None, None, None, None, b'exe!', None]))

    result = CliRunner().invoke(app, ['info', str(pbp)])

    assert result.exit_code == 0, result.output
    assert 'version: 1.0' in result.output
    assert 'DATA.PSP   offset=0x0000002b size=4' in result.output


class OversizedSegment(bytes):
    def __len__(self):
        return 1 << 32


def test_payload_beyond_offset_range():
    segments = [OversizedSegment(b'x'), None, None, None, None, None, b'exe', None]

    with pytest.raises(DecodeError, match='Cannot encode PBP header'):
        pack_pbp(segments)
