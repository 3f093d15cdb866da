"""Loading compiled programs from disk and inspecting their sections."""

from __future__ import annotations

from enum import IntEnum
from os import PathLike

from pawntrace.amx import AMX_MAGIC, CELL_SIZE, Amx, AmxHeader, parse_header

AMX_ERR_NONE = 0
AMX_ERR_MEMORY = 16
AMX_ERR_FORMAT = 17
AMX_ERR_NOTFOUND = 19
AMX_ERR_PARAMS = 25

_MESSAGES = (
    "(none)",
    "Forced exit",
    "Assertion failed",
    "Stack/heap collision (insufficient stack size)",
    "Array index out of bounds",
    "Invalid memory access",
    "Invalid instruction",
    "Stack underflow",
    "Heap underflow",
    "No (valid) native function callback",
    "Native function failed",
    "Divide by zero",
    "(sleep mode)",
    "(reserved)",
    "(reserved)",
    "(reserved)",
    "Out of memory",
    "Invalid/unsupported P-code file format",
    "File is for a newer version of the AMX",
    "File or function is not found",
    "Invalid index parameter (bad entry point)",
    "Debugger cannot run",
    "AMX not initialized (or doubly initialized)",
    "Unable to set user data field (table full)",
    "Cannot initialize the JIT",
    "Parameter error",
    "Domain error, expression result does not fit in range",
    "General error (unknown or unspecific error)",
    "Wrote to banned address naught",
)


def error_message(code: int) -> str:
    """A readable message for an abstract machine error code."""
    if 0 <= code < len(_MESSAGES):
        return _MESSAGES[code]
    return "(unknown)"


class AmxError(Exception):
    """An abstract machine operation failed with an error code."""

    def __init__(self, code: int, detail: str | None = None) -> None:
        self.code = code
        message = error_message(code)
        super().__init__(f"{message}: {detail}" if detail else message)


class Section(IntEnum):
    """Regions of a loaded program's memory."""

    CODE = 0
    DATA = 1
    HEAP = 2
    STACK = 3


def _read_header(stream) -> AmxHeader | None:
    raw = stream.read(AmxHeader.SIZE)
    try:
        return parse_header(raw)
    except ValueError:
        return None


def program_size(filename: str | PathLike[str]) -> int:
    """Memory a program needs once loaded, or 0 if it cannot be read."""
    try:
        with open(filename, "rb") as stream:
            header = _read_header(stream)
    except OSError:
        return 0
    if header is None or header.magic != AMX_MAGIC:
        return 0
    return header.stp


def load_program(filename: str | PathLike[str]) -> Amx:
    """Read a compiled program into memory and set up its registers."""
    try:
        with open(filename, "rb") as stream:
            header = _read_header(stream)
            if header is None or header.magic != AMX_MAGIC:
                raise AmxError(AMX_ERR_FORMAT, str(filename))
            stream.seek(0)
            image = stream.read(header.size)
    except OSError as exc:
        raise AmxError(AMX_ERR_NOTFOUND, str(filename)) from exc

    memory = bytearray(max(header.stp, len(image)))
    memory[: len(image)] = image
    heap_start = header.hea - header.dat
    stack_top = header.stp - header.dat - CELL_SIZE
    return Amx(
        base=memory,
        cip=header.cip,
        hea=heap_start,
        hlw=heap_start,
        stk=stack_top,
        stp=stack_top,
        flags=header.flags,
    )


def _data_block(amx: Amx) -> tuple[bytearray, int]:
    if amx.data is not None:
        return amx.data, 0
    return amx.base, amx.header.dat


def get_section(amx: Amx, section: Section | int) -> memoryview:
    """A writable view of one section of the program's memory."""
    try:
        section = Section(section)
    except ValueError as exc:
        raise ValueError(f"unknown section {section!r}") from exc
    header = amx.header
    if section is Section.CODE:
        return memoryview(amx.base)[header.cod : header.dat]
    buffer, origin = _data_block(amx)
    view = memoryview(buffer)
    if section is Section.DATA:
        return view[origin : origin + header.hea - header.dat]
    if section is Section.HEAP:
        start = origin + header.hea - header.dat
        return view[start : origin + amx.hea]
    return view[origin + amx.stk : origin + amx.stp]