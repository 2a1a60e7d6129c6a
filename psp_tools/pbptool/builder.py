from typing import Sequence

import logging
import os

from construct import ConstructError

from ..common.errors import DecodeError, MalformedRegionError
from ..common.utils import BinaryBuilder, read_file, write_file
from .formats import PBP_HEADER_SIZE, PBP_NUM_SEGMENTS, CsPbpHeader, PbpHeader, PbpSegment


logger = logging.getLogger('pbptool.builder')

SegmentPath = str | os.PathLike | None


def pack_pbp(segments: Sequence[bytes | None]) -> bytes:
    """
    Pack 8 segments into a PBP container. None marks an absent segment.

    An absent segment takes no space and shares its offset with the next one.
    """
    if len(segments) != PBP_NUM_SEGMENTS:
        raise ValueError(f'Expecting exactly {PBP_NUM_SEGMENTS} segments, got {len(segments)}.')

    builder = BinaryBuilder()

    # Forward declaration
    header_alloc = builder.append(PBP_HEADER_SIZE)

    offsets = []
    for role, data in zip(PbpSegment, segments):
        if data is None:
            data = b''
        else:
            logger.debug('%s: %d bytes at %#x', role.filename, len(data), builder.sizeof())
        fragment = builder.append(len(data))
        fragment.set_data(data)
        offsets.append(fragment.offset)

    try:
        header_alloc.set_data(CsPbpHeader.build(PbpHeader(offsets=offsets)))
    except ConstructError as err:
        raise DecodeError(f'Cannot encode PBP header with offsets {offsets}: {err}') from err
    return builder.concat()


def parse_pbp(data: bytes) -> tuple[PbpHeader, list[bytes]]:
    try:
        header = CsPbpHeader.parse(data)
    except ConstructError as err:
        raise DecodeError(f'Not a PBP file: {err}') from err

    bounds = [*header.offsets, len(data)]
    segments = []
    for role, start, end in zip(PbpSegment, bounds, bounds[1:]):
        if not PBP_HEADER_SIZE <= start <= end <= len(data):
            raise MalformedRegionError(
                f'{role.filename} spans {start:#x}-{end:#x}, outside of the {len(data):#x} byte container.'
            )
        segments.append(data[start:end])
    return header, segments


def read_segments(paths: Sequence[SegmentPath]) -> list[bytes | None]:
    return [read_file(path) if path is not None else None for path in paths]


def write_pbp(output_path: str | os.PathLike, paths: Sequence[SegmentPath]):
    # Read everything before touching the output.
    segments = read_segments(paths)
    write_file(output_path, pack_pbp(segments))
    logger.info('Wrote %s', os.fspath(output_path))
