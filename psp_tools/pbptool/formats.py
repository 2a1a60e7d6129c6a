import dataclasses
import enum

from construct import Const, Default, Int32ul
from construct_typed import DataclassMixin, DataclassStruct, csfield


PBP_SIGNATURE = b'\x00PBP'
PBP_VERSION = 0x1_0000  # 1.0


class PbpSegment(enum.IntEnum):
    PARAM_SFO = 0
    ICON0_PNG = 1
    ICON1_PMF = 2
    PIC0_PNG = 3
    PIC1_PNG = 4
    SND0_AT3 = 5
    DATA_PSP = 6
    DATA_PSAR = 7

    @property
    def filename(self) -> str:
        stem, ext = self.name.rsplit('_', 1)
        return f'{stem}.{ext}'


PBP_NUM_SEGMENTS = len(PbpSegment)


@dataclasses.dataclass
class PbpHeader(DataclassMixin):
    signature: bytes = csfield(Const(PBP_SIGNATURE))
    version: int = csfield(Default(Int32ul, PBP_VERSION))
    offsets: list[int] = csfield(Int32ul[PBP_NUM_SEGMENTS])


CsPbpHeader = DataclassStruct(PbpHeader)

PBP_HEADER_SIZE = CsPbpHeader.sizeof()
