import dataclasses

from construct import Const, Default, Int8ul, Int16ul, Int32ul
from construct_typed import DataclassMixin, DataclassStruct, EnumBase, TEnum, csfield


SFO_MAGIC = b'\x00PSF'
SFO_VERSION = 0x0000_0101

SFO_MAX_ENTRIES = 256
SFO_MAX_TABLE_SIZE = 8192


class SfoEntryType(EnumBase):
    BINARY = 0
    STRING = 2
    DWORD = 4


@dataclasses.dataclass
class SfoHeader(DataclassMixin):
    magic: bytes = csfield(Const(SFO_MAGIC))
    version: int = csfield(Default(Int32ul, SFO_VERSION))
    key_offset: int = csfield(Int32ul)
    val_offset: int = csfield(Int32ul)
    count: int = csfield(Int32ul)


CsSfoHeader = DataclassStruct(SfoHeader)


@dataclasses.dataclass
class SfoEntry(DataclassMixin):
    key_offset: int = csfield(Int16ul)
    alignment: int = csfield(Default(Int8ul, 4))
    type_: SfoEntryType = csfield(TEnum(Int8ul, SfoEntryType))
    val_size: int = csfield(Int32ul)
    total_size: int = csfield(Int32ul)
    data_offset: int = csfield(Int32ul)


CsSfoEntry = DataclassStruct(SfoEntry)


@dataclasses.dataclass(frozen=True)
class SfoKeyRule:
    type_: SfoEntryType
    wg: bool
    ms: bool
    mg: bool
    ug: bool

    def allowed_in(self, category: str) -> bool:
        # Categories outside of these four are not restricted.
        return {'WG': self.wg, 'MS': self.ms, 'MG': self.mg, 'UG': self.ug}.get(category, True)


_S = SfoEntryType.STRING
_D = SfoEntryType.DWORD
_B = SfoEntryType.BINARY

# key: (type, valid for WG, MS, MG, UG)
SFO_KEY_RULES: dict[str, SfoKeyRule] = {
    'BOOTABLE': SfoKeyRule(_D, False, False, True, True),
    'CATEGORY': SfoKeyRule(_S, False, True, True, True),
    'DISC_ID': SfoKeyRule(_S, False, False, True, True),
    'DISC_NUMBER': SfoKeyRule(_D, False, False, False, True),
    'DISC_VERSION': SfoKeyRule(_S, False, False, True, True),
    'DRIVER_PATH': SfoKeyRule(_S, False, False, True, False),
    'LANGUAGE': SfoKeyRule(_S, False, False, True, False),
    'PARENTAL_LEVEL': SfoKeyRule(_D, False, True, True, True),
    'PSP_SYSTEM_VER': SfoKeyRule(_S, False, False, True, True),
    'REGION': SfoKeyRule(_D, False, False, True, True),
    'SAVEDATA_DETAIL': SfoKeyRule(_S, False, True, False, False),
    'SAVEDATA_DIRECTORY': SfoKeyRule(_S, False, True, False, False),
    'SAVEDATA_FILE_LIST': SfoKeyRule(_B, False, True, False, False),
    'SAVEDATA_PARAMS': SfoKeyRule(_B, False, True, False, False),
    'SAVEDATA_TITLE': SfoKeyRule(_S, False, True, False, False),
    'TITLE': SfoKeyRule(_S, False, True, True, True),
    'TITLE_0': SfoKeyRule(_S, False, True, True, True),
    'TITLE_2': SfoKeyRule(_S, False, True, True, True),
    'TITLE_3': SfoKeyRule(_S, False, True, True, True),
    'TITLE_4': SfoKeyRule(_S, False, True, True, True),
    'TITLE_5': SfoKeyRule(_S, False, True, True, True),
    'TITLE_6': SfoKeyRule(_S, False, True, True, True),
    'TITLE_7': SfoKeyRule(_S, False, True, True, True),
    'TITLE_8': SfoKeyRule(_S, False, True, True, True),
    'UPDATER_VER': SfoKeyRule(_S, False, False, True, False),
}
