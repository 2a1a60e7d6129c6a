from dataclasses import dataclass
import io
import os

from .errors import IoError


@dataclass
class Fragment:
    offset: int
    size: int
    data: bytes | bytearray | memoryview | None = None

    def set_data(self, data: bytes | bytearray | memoryview):
        if self.size != len(data):
            raise ValueError('Size mismatch.')
        self.data = data


class BinaryBuilder:
    _fragments: list[Fragment]
    _last_offset: int

    def __init__(self, base: int = 0):
        self._fragments = []
        self._last_offset = base

    def append(self, size: int) -> Fragment:
        result = Fragment(self._last_offset, size, None)
        self._fragments.append(result)
        self._last_offset += size
        return result

    def concat(self) -> bytes:
        result = io.BytesIO()
        for fragment in self._fragments:
            if fragment.data is None:
                raise ValueError(f'Fragment at {fragment.offset:#x} was never populated.')
            result.write(fragment.data)
        return result.getvalue()

    def sizeof(self):
        return self._last_offset


def align(pos: int, blksize: int) -> int:
    return (pos + blksize - 1) // blksize * blksize


def read_file(path: str | os.PathLike) -> bytes:
    try:
        with open(path, 'rb') as f:
            return f.read()
    except OSError as err:
        raise IoError(os.fspath(path), f'failed to read: {err.strerror or err}') from err


def write_file(path: str | os.PathLike, data: bytes | bytearray):
    try:
        with open(path, 'wb') as f:
            f.write(data)
    except OSError as err:
        raise IoError(os.fspath(path), f'failed to write: {err.strerror or err}') from err


def parse_loglevel(level: str) -> int | str:
    try:
        return int(level)
    except ValueError:
        return level.upper()
