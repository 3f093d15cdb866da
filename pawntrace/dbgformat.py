"""Reader for the symbolic debug information appended to Pawn programs."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from os import PathLike

from pawntrace.amx import AMX_FLAG_DEBUG, AMX_MAGIC, AmxHeader, parse_header

DEBUG_MAGIC = 0xF1EF
_UINT16_MAX = 0xFFFF

_HEADER = struct.Struct("<IHbbH6H")
_FILE = struct.Struct("<I")
_LINE = struct.Struct("<Ii")
_SYMBOL = struct.Struct("<iHIIbbH")
_SYMDIM = struct.Struct("<HI")
_TAG = struct.Struct("<H")
_MACHINE = struct.Struct("<HI")
_STATE = struct.Struct("<HH")

# Record sizes as the format declares them, each counting one name byte.
_SYMBOL_RECORD = _SYMBOL.size + 1
_TAG_RECORD = _TAG.size + 1
_MACHINE_RECORD = _MACHINE.size + 1
_STATE_RECORD = _STATE.size + 1


class DebugFormatError(ValueError):
    """The debug information is missing, malformed or truncated."""


class SymbolKind(IntEnum):
    """What a symbol stands for."""

    VARIABLE = 1
    REFERENCE = 2
    ARRAY = 3
    ARRAY_REF = 4
    FUNCTION = 9
    FUNCTION_REF = 10


class SymbolClass(IntEnum):
    """Storage class of a symbol."""

    GLOBAL = 0
    LOCAL = 1
    STATIC_LOCAL = 2


@dataclass(frozen=True)
class DebugHeader:
    """Header of the debug information chunk."""

    size: int
    magic: int
    file_version: int
    amx_version: int
    flags: int
    files: int
    lines: int
    symbols: int
    tags: int
    automatons: int
    states: int

    SIZE = _HEADER.size


@dataclass(frozen=True)
class DebugFile:
    """A source file and the code address where its code begins."""

    address: int
    name: str


@dataclass(frozen=True)
class DebugLine:
    """A source line and the code address where its code begins."""

    address: int
    line: int


@dataclass(frozen=True)
class SymbolDim:
    """One dimension of an array symbol."""

    tag: int
    size: int


@dataclass(frozen=True)
class DebugSymbol:
    """A variable or function known to the debug information."""

    address: int
    tag: int
    codestart: int
    codeend: int
    ident: int
    vclass: int
    name: str
    dims: tuple[SymbolDim, ...] = ()

    @property
    def num_dims(self) -> int:
        return len(self.dims)

    @property
    def is_global(self) -> bool:
        return self.vclass == SymbolClass.GLOBAL

    @property
    def is_local(self) -> bool:
        return self.vclass == SymbolClass.LOCAL

    @property
    def is_static_local(self) -> bool:
        return self.vclass == SymbolClass.STATIC_LOCAL

    @property
    def is_variable(self) -> bool:
        return self.ident == SymbolKind.VARIABLE

    @property
    def is_reference(self) -> bool:
        return self.ident == SymbolKind.REFERENCE

    @property
    def is_array(self) -> bool:
        return self.ident == SymbolKind.ARRAY

    @property
    def is_array_ref(self) -> bool:
        return self.ident == SymbolKind.ARRAY_REF

    @property
    def is_function(self) -> bool:
        return self.ident == SymbolKind.FUNCTION

    @property
    def is_function_ref(self) -> bool:
        return self.ident == SymbolKind.FUNCTION_REF


@dataclass(frozen=True)
class DebugTag:
    """A tag id and its name."""

    tag: int
    name: str


@dataclass(frozen=True)
class DebugAutomaton:
    """An automaton and the address of its state variable."""

    automaton: int
    address: int
    name: str


@dataclass(frozen=True)
class DebugState:
    """A state of an automaton."""

    state: int
    automaton: int
    name: str


@dataclass(frozen=True)
class DebugData:
    """All tables of a program's debug information."""

    header: DebugHeader
    files: tuple[DebugFile, ...]
    lines: tuple[DebugLine, ...]
    symbols: tuple[DebugSymbol, ...]
    tags: tuple[DebugTag, ...]
    automata: tuple[DebugAutomaton, ...]
    states: tuple[DebugState, ...]


class _Reader:
    def __init__(self, data: bytes) -> None:
        self.data = data
        self.pos = 0

    def unpack(self, layout: struct.Struct) -> tuple:
        try:
            values = layout.unpack_from(self.data, self.pos)
        except struct.error as exc:
            raise DebugFormatError(
                f"debug information truncated at offset {self.pos}"
            ) from exc
        self.pos += layout.size
        return values

    def name(self, skip_first: bool) -> str:
        start = self.pos
        end = self.data.find(b"\0", start)
        if end < 0:
            raise DebugFormatError(f"unterminated name at offset {start}")
        # File and symbol records are stepped over starting one byte into
        # the name, so an empty name swallows the following string.
        stop = self.data.find(b"\0", start + 1) if skip_first else end
        if stop < 0:
            raise DebugFormatError(f"unterminated name at offset {start}")
        self.pos = stop + 1
        return self.data[start:end].decode("latin-1")


def _read_lines(reader: _Reader, count: int) -> list[DebugLine]:
    return [DebugLine(*reader.unpack(_LINE)) for _ in range(count)]


def parse_debug_info(data: bytes, code_size: int) -> DebugData:
    """Parse a debug information chunk that starts with its own header.

    ``code_size`` is the size of the program's code section; it is used to
    detect line tables whose entry count overflowed its 16-bit field.
    """
    if len(data) < _HEADER.size:
        raise DebugFormatError("debug header is truncated")
    header = DebugHeader(*_HEADER.unpack_from(data, 0))
    if header.magic != DEBUG_MAGIC:
        raise DebugFormatError(f"bad debug magic {header.magic:#06x}")
    if len(data) < header.size:
        raise DebugFormatError(
            f"debug chunk declares {header.size} bytes, only {len(data)} present"
        )
    reader = _Reader(bytes(data[: header.size]))
    reader.pos = _HEADER.size

    files = []
    for _ in range(header.files):
        (address,) = reader.unpack(_FILE)
        files.append(DebugFile(address, reader.name(skip_first=True)))

    lines = _read_lines(reader, header.lines)

    line_table_limit = (
        header.size
        - _SYMBOL_RECORD * header.symbols
        - _TAG_RECORD * header.tags
        - _MACHINE_RECORD * header.automatons
        - _STATE_RECORD * header.states
    )
    while (
        lines
        and reader.pos < line_table_limit
        and reader.pos + _UINT16_MAX + 1 < line_table_limit
        and reader.pos + _LINE.size <= len(reader.data)
    ):
        address = _LINE.unpack_from(reader.data, reader.pos)[0]
        if not (lines[-1].address < address < code_size):
            break
        lines.extend(_read_lines(reader, _UINT16_MAX + 1))

    symbols = []
    for _ in range(header.symbols):
        address, tag, codestart, codeend, ident, vclass, dim = reader.unpack(
            _SYMBOL
        )
        name = reader.name(skip_first=True)
        dims = tuple(SymbolDim(*reader.unpack(_SYMDIM)) for _ in range(dim))
        symbols.append(
            DebugSymbol(address, tag, codestart, codeend, ident, vclass, name, dims)
        )

    tags = []
    for _ in range(header.tags):
        (tag,) = reader.unpack(_TAG)
        tags.append(DebugTag(tag, reader.name(skip_first=False)))

    automata = []
    for _ in range(header.automatons):
        automaton, address = reader.unpack(_MACHINE)
        automata.append(
            DebugAutomaton(automaton, address, reader.name(skip_first=False))
        )

    states = []
    for _ in range(header.states):
        state, automaton = reader.unpack(_STATE)
        states.append(DebugState(state, automaton, reader.name(skip_first=False)))

    return DebugData(
        header=header,
        files=tuple(files),
        lines=tuple(lines),
        symbols=tuple(symbols),
        tags=tuple(tags),
        automata=tuple(automata),
        states=tuple(states),
    )


def load_debug_info(path: str | PathLike[str]) -> DebugData:
    """Read the debug information stored after a compiled program."""
    with open(path, "rb") as stream:
        raw = stream.read()
    try:
        amx_header: AmxHeader = parse_header(raw)
    except ValueError as exc:
        raise DebugFormatError(str(exc)) from exc
    if amx_header.magic != AMX_MAGIC:
        raise DebugFormatError(f"bad program magic {amx_header.magic:#06x}")
    if not amx_header.flags & AMX_FLAG_DEBUG:
        raise DebugFormatError("program was compiled without debug information")
    return parse_debug_info(raw[amx_header.size :], amx_header.dat - amx_header.cod)