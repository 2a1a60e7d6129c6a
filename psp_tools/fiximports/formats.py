import dataclasses

from construct import Bytes, Int8ul, Int16ul, Int32ul
from construct_typed import DataclassMixin, DataclassStruct, csfield


LIB_STUB_SECTION = '.lib.stub'
LIB_STUB_BTM_SECTION = '.lib.stub.btm'
NID_SECTION = '.rodata.sceNid'

# A NID is a 32-bit value.
NID_SIZE = 4


@dataclasses.dataclass
class StubLibraryEntry(DataclassMixin):
    """
    SceStubLibraryEntry as laid out in the image.

    Pointers are stored as 32-bit target addresses so the layout does not depend on the host.
    """
    name: int = csfield(Int32ul)
    version: bytes = csfield(Bytes(2))
    flags: int = csfield(Int16ul)
    len_: int = csfield(Int8ul)
    v_stub_count: int = csfield(Int8ul)
    stub_count: int = csfield(Int16ul)
    nid_table: int = csfield(Int32ul)
    stub_table: int = csfield(Int32ul)


CsStubLibraryEntry = DataclassStruct(StubLibraryEntry)

STUB_LIBRARY_ENTRY_SIZE = CsStubLibraryEntry.sizeof()
