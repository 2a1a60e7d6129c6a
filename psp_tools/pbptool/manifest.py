"""
Psp.toml style package manifest.

All keys are optional. Resource paths are resolved relative to the manifest's directory.

xmb_background_overlay_png is stored as PIC0.PNG (drawn on top) and xmb_background_png as PIC1.PNG.
Older cargo-psp builds stored xmb_background_png as PIC0.PNG instead.

.. code-block:: toml

    title = "Hello World"
    xmb_icon_png = "assets/icon0.png"
    xmb_background_png = "assets/pic1.png"
    disc_id = "UCJS-10001"
    parental_level = 1
"""

from typing import BinaryIO, Final, TypedDict, NotRequired, cast

import logging
import os
import pathlib
import tomllib

from ..common.errors import ConfigError
from ..common.utils import write_file
from ..sfotool.builder import build_sfo
from .builder import SegmentPath, write_pbp


logger = logging.getLogger('pbptool.manifest')


class PspManifest(TypedDict):
    title: NotRequired[str]
    xmb_icon_png: NotRequired[str]
    xmb_icon_pmf: NotRequired[str]
    xmb_background_png: NotRequired[str]
    xmb_background_overlay_png: NotRequired[str]
    xmb_music_at3: NotRequired[str]
    psar: NotRequired[str]
    disc_id: NotRequired[str]
    disc_version: NotRequired[str]
    language: NotRequired[str]
    parental_level: NotRequired[int]
    psp_system_ver: NotRequired[str]
    region: NotRequired[int]
    title_jp: NotRequired[str]
    title_fr: NotRequired[str]
    title_es: NotRequired[str]
    title_de: NotRequired[str]
    title_it: NotRequired[str]
    title_nl: NotRequired[str]
    title_pt: NotRequired[str]
    title_ru: NotRequired[str]
    updater_version: NotRequired[str]


MANIFEST_INT_KEYS: Final[frozenset[str]] = frozenset({'parental_level', 'region'})

# manifest key -> PARAM.SFO key
SFO_STRING_KEYS: Final[dict[str, str]] = {
    'disc_id': 'DISC_ID',
    'disc_version': 'DISC_VERSION',
    'language': 'LANGUAGE',
    'psp_system_ver': 'PSP_SYSTEM_VER',
    'title_jp': 'TITLE_0',
    'title_fr': 'TITLE_2',
    'title_es': 'TITLE_3',
    'title_de': 'TITLE_4',
    'title_it': 'TITLE_5',
    'title_nl': 'TITLE_6',
    'title_pt': 'TITLE_7',
    'title_ru': 'TITLE_8',
    'updater_version': 'UPDATER_VER',
}

SFO_DWORD_KEYS: Final[dict[str, str]] = {
    'parental_level': 'PARENTAL_LEVEL',
    'region': 'REGION',
}


def validate_manifest(manifest_in: dict) -> PspManifest:
    for key, value in manifest_in.items():
        if key not in PspManifest.__annotations__:
            raise ConfigError(f'Unknown manifest key {key!r}.')
        expected = int if key in MANIFEST_INT_KEYS else str
        # bool is an int subclass but never a valid value here.
        if not isinstance(value, expected) or isinstance(value, bool):
            raise ConfigError(f'Manifest key {key!r} must be of type {expected.__name__}.')
    return cast(PspManifest, manifest_in)


def load_manifest(file: BinaryIO) -> PspManifest:
    try:
        manifest_in = tomllib.load(file)
    except tomllib.TOMLDecodeError as err:
        raise ConfigError(f'Cannot parse manifest: {err}') from err
    return validate_manifest(manifest_in)


def sfo_parameters(manifest: PspManifest) -> tuple[dict[str, str], dict[str, int]]:
    strings = {sfo_key: manifest[key] for key, sfo_key in SFO_STRING_KEYS.items() if key in manifest}
    dwords = {sfo_key: manifest[key] for key, sfo_key in SFO_DWORD_KEYS.items() if key in manifest}
    return strings, dwords


def segment_paths(manifest: PspManifest, base_dir: pathlib.Path,
                  sfo_path: SegmentPath, executable_path: SegmentPath) -> list[SegmentPath]:
    def resolve(key: str) -> pathlib.Path | None:
        value = manifest.get(key)
        return base_dir / value if value is not None else None

    return [
        sfo_path,
        resolve('xmb_icon_png'),
        resolve('xmb_icon_pmf'),
        # PIC0 is drawn on top of PIC1.
        resolve('xmb_background_overlay_png'),
        resolve('xmb_background_png'),
        resolve('xmb_music_at3'),
        executable_path,
        resolve('psar'),
    ]


def build_eboot(manifest: PspManifest, base_dir: pathlib.Path, executable: str | os.PathLike,
                output: str | os.PathLike, sfo_output: str | os.PathLike | None = None) -> pathlib.Path:
    """
    Write PARAM.SFO and then the PBP package described by manifest.

    The SFO goes next to output unless sfo_output is given. The title falls back to the executable's
    file name. Returns the path of the SFO file.
    """
    executable = pathlib.Path(executable)
    output = pathlib.Path(output)
    sfo_path = pathlib.Path(sfo_output) if sfo_output is not None else output.parent / 'PARAM.SFO'

    title = manifest.get('title', executable.stem)
    strings, dwords = sfo_parameters(manifest)
    logger.info('Building %s for %r', sfo_path, title)
    write_file(sfo_path, build_sfo(strings, dwords, title=title))

    write_pbp(output, segment_paths(manifest, base_dir, sfo_path, executable))
    return sfo_path
