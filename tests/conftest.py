from typing import Callable

import pathlib

import pytest


@pytest.fixture
def write_image(tmp_path: pathlib.Path) -> Callable[..., pathlib.Path]:
    def _write(data: bytes, name: str = 'image.elf') -> pathlib.Path:
        path = tmp_path / name
        path.write_bytes(data)
        return path
    return _write
