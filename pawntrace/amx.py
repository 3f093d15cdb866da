"""In-memory view of a loaded Pawn program and its machine registers."""

from __future__ import annotations

import struct
from dataclasses import astuple, dataclass, field

CELL_SIZE = 4
AMX_MAGIC = 0xF1E0
AMX_FLAG_DEBUG = 0x02
AMX_EXEC_MAIN = -1

_HEADER = struct.Struct("<IHbbHH11i")
_STUB = struct.Struct("<II")
_CELL = struct.Struct("<i")


def _wrap_cell(value: int) -> int:
    return ((value + (1 << 31)) % (1 << 32)) - (1 << 31)


@dataclass(frozen=True)
class AmxHeader:
    """The fixed-size header at the start of a compiled program."""

    size: int = 0
    magic: int = AMX_MAGIC
    file_version: int = 0
    amx_version: int = 0
    flags: int = 0
    defsize: int = _STUB.size
    cod: int = 0
    dat: int = 0
    hea: int = 0
    stp: int = 0
    cip: int = 0
    publics: int = 0
    natives: int = 0
    libraries: int = 0
    pubvars: int = 0
    tags: int = 0
    nametable: int = 0

    SIZE = _HEADER.size

    def pack(self) -> bytes:
        """Encode the header in its on-disk little-endian form."""
        return _HEADER.pack(*astuple(self))


def parse_header(data: bytes) -> AmxHeader:
    """Decode a program header from the start of ``data``."""
    if len(data) < _HEADER.size:
        raise ValueError(
            f"program header needs {_HEADER.size} bytes, got {len(data)}"
        )
    return AmxHeader(*_HEADER.unpack_from(data, 0))


@dataclass(frozen=True)
class FunctionStub:
    """An entry of the public or native function table."""

    address: int
    name_offset: int


@dataclass(eq=False)
class Amx:
    """A program image together with the abstract machine's registers.

    ``base`` holds the whole image starting with the header. When ``data`` is
    ``None`` the data section lives inside ``base`` at the header's ``dat``
    offset; otherwise ``data`` is the separate data block.
    """

    base: bytearray
    data: bytearray | None = None
    cip: int = 0
    frm: int = 0
    hea: int = 0
    hlw: int = 0
    stk: int = 0
    stp: int = 0
    pri: int = 0
    alt: int = 0
    flags: int = 0
    error: int = 0
    sysreq_d: bool = False
    header: AmxHeader = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if not isinstance(self.base, bytearray):
            self.base = bytearray(self.base)
        if self.data is not None and not isinstance(self.data, bytearray):
            self.data = bytearray(self.data)
        self.header = parse_header(self.base)

    # Function tables

    def _stubs(self, start: int, end: int) -> list[FunctionStub]:
        stride = self.header.defsize
        if stride <= 0:
            return []
        count = (end - start) // stride
        return [
            FunctionStub(*_STUB.unpack_from(self.base, start + n * stride))
            for n in range(max(count, 0))
        ]

    @property
    def publics(self) -> list[FunctionStub]:
        """The public function table."""
        return self._stubs(self.header.publics, self.header.natives)

    @property
    def natives(self) -> list[FunctionStub]:
        """The native function table."""
        return self._stubs(self.header.natives, self.header.libraries)

    @property
    def num_publics(self) -> int:
        return len(self.publics)

    @property
    def num_natives(self) -> int:
        return len(self.natives)

    def _find_by_address(self, stubs: list[FunctionStub], address: int) -> str | None:
        target = address & 0xFFFFFFFF
        for stub in stubs:
            if stub.address == target:
                return self.string_at(stub.name_offset)
        return None

    def find_public(self, address: int) -> str | None:
        """Name of the public function at ``address``, if any."""
        return self._find_by_address(self.publics, address)

    def find_native(self, address: int) -> str | None:
        """Name of the native function bound at ``address``, if any."""
        return self._find_by_address(self.natives, address)

    def _index_of(self, stubs: list[FunctionStub], name: str) -> int | None:
        for index, stub in enumerate(stubs):
            if self.string_at(stub.name_offset) == name:
                return index
        return None

    def native_index(self, name: str) -> int | None:
        """Index of the native called ``name``, or ``None``."""
        return self._index_of(self.natives, name)

    def public_index(self, name: str) -> int | None:
        """Index of the public function called ``name``, or ``None``."""
        return self._index_of(self.publics, name)

    def native_address(self, index: int) -> int:
        """Address of the native at ``index``, or 0 when out of range."""
        natives = self.natives
        if 0 <= index < len(natives):
            return _wrap_cell(natives[index].address)
        return 0

    def public_address(self, index: int) -> int:
        """Address of the public at ``index``; the entry point for main."""
        publics = self.publics
        if 0 <= index < len(publics):
            return _wrap_cell(publics[index].address)
        if index == AMX_EXEC_MAIN:
            return self.header.cip
        return 0

    def native_name(self, index: int) -> str | None:
        """Name of the native at ``index``, or ``None`` when out of range."""
        natives = self.natives
        if 0 <= index < len(natives):
            return self.string_at(natives[index].name_offset)
        return None

    def public_name(self, index: int) -> str | None:
        """Name of the public at ``index``; ``"main"`` for the entry point."""
        publics = self.publics
        if 0 <= index < len(publics):
            return self.string_at(publics[index].name_offset)
        if index == AMX_EXEC_MAIN:
            return "main"
        return None

    def string_at(self, offset: int) -> str:
        """The zero-terminated string stored in the image at ``offset``."""
        if not 0 <= offset <= len(self.base):
            raise IndexError(f"string offset {offset} outside program image")
        end = self.base.find(b"\0", offset)
        if end < 0:
            end = len(self.base)
        return self.base[offset:end].decode("latin-1")

    # Memory access

    def _data_location(self, address: int) -> tuple[bytearray, int]:
        if self.data is not None:
            buffer, offset = self.data, address
        else:
            buffer, offset = self.base, self.header.dat + address
        if address < 0 or offset + CELL_SIZE > len(buffer):
            raise IndexError(f"data address {address:#x} out of range")
        return buffer, offset

    def read_cell(self, address: int) -> int:
        """Read the cell at a data-section address."""
        buffer, offset = self._data_location(address)
        return _CELL.unpack_from(buffer, offset)[0]

    def write_cell(self, address: int, value: int) -> None:
        """Store ``value``, truncated to a cell, at a data-section address."""
        buffer, offset = self._data_location(address)
        _CELL.pack_into(buffer, offset, _wrap_cell(value))

    def read_code_cell(self, address: int) -> int:
        """Read the cell at a code-section address."""
        offset = self.header.cod + address
        if address < 0 or offset + CELL_SIZE > len(self.base):
            raise IndexError(f"code address {address:#x} out of range")
        return _CELL.unpack_from(self.base, offset)[0]

    # Stack

    def stack_space_left(self) -> int:
        """Bytes free between the heap top and the stack pointer."""
        return self.stk - self.hea

    def check_stack(self) -> bool:
        """Whether the stack pointer lies between heap top and stack top."""
        return self.hea <= self.stk <= self.stp

    def push_stack(self, value: int) -> None:
        """Push one cell onto the stack."""
        self.stk -= CELL_SIZE
        self.write_cell(self.stk, value)

    def pop_stack(self) -> int:
        """Pop one cell from the stack and return it."""
        value = self.read_cell(self.stk)
        self.stk += CELL_SIZE
        return value

    def drop_stack(self, count: int) -> None:
        """Discard ``count`` cells from the stack."""
        self.stk += CELL_SIZE * count