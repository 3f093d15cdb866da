"""Queries over parsed debug information: files, lines, functions, names."""

from __future__ import annotations

from collections.abc import Iterable
from typing import TypeVar

from pawntrace.dbgformat import DebugData, DebugSymbol, SymbolDim, SymbolKind

_UCELL_MAX = 0xFFFFFFFF

_Entry = TypeVar("_Entry")


def _ucell(value: int) -> int:
    return value & _UCELL_MAX


def _last_at_or_below(entries: Iterable[_Entry], address: int) -> _Entry | None:
    """The last entry of the leading run whose address is not above ``address``."""
    target = _ucell(address)
    found = None
    for entry in entries:
        if _ucell(entry.address) > target:
            break
        found = entry
    return found


def lookup_file(data: DebugData, address: int) -> str:
    """Name of the source file whose code contains ``address``."""
    entry = _last_at_or_below(data.files, address)
    if entry is None:
        raise LookupError(f"no source file for address {_ucell(address):#x}")
    return entry.name


def lookup_line(data: DebugData, address: int) -> int:
    """Line number (zero-based) of the code at ``address``."""
    entry = _last_at_or_below(data.lines, address)
    if entry is None:
        raise LookupError(f"no line for address {_ucell(address):#x}")
    return entry.line


def lookup_function(data: DebugData, address: int) -> str:
    """Name of the function whose code range contains ``address``."""
    target = _ucell(address)
    for symbol in data.symbols:
        if symbol.is_function and symbol.codestart <= target < symbol.codeend:
            return symbol.name
    raise LookupError(f"no function at address {target:#x}")


def tag_name(data: DebugData, tag: int) -> str:
    """Name of the tag with id ``tag``."""
    for entry in data.tags:
        if entry.tag == tag:
            return entry.name
    raise LookupError(f"unknown tag {tag}")


def automaton_name(data: DebugData, automaton: int) -> str:
    """Name of the automaton with id ``automaton``."""
    for entry in data.automata:
        if entry.automaton == automaton:
            return entry.name
    raise LookupError(f"unknown automaton {automaton}")


def state_name(data: DebugData, state: int) -> str:
    """Name of the first state with id ``state``, whatever its automaton."""
    for entry in data.states:
        if entry.state == state:
            return entry.name
    raise LookupError(f"unknown state {state}")


def line_address(data: DebugData, line: int, filename: str) -> int:
    """A breakpoint address at or after ``line`` in ``filename``.

    If no code starts on the line itself, the next line that has code is used.
    A file may appear several times in the file table; each occurrence is
    searched in turn. The file name comparison is exact.
    """
    lines = data.lines
    count = len(lines)
    index = 0
    following = [*data.files[1:], None]
    for entry, next_entry in zip(data.files, following):
        if entry.name != filename:
            continue
        bottom = _ucell(entry.address)
        top = _UCELL_MAX if next_entry is None else _ucell(next_entry.address)
        while index < count and _ucell(lines[index].address) < bottom:
            index += 1
        while (
            index < count
            and lines[index].line < line
            and _ucell(lines[index].address) < top
        ):
            index += 1
        if index >= count:
            break
        if lines[index].line >= line:
            return _ucell(lines[index].address)
    raise LookupError(f"no code for line {line} in {filename!r}")


def function_address(data: DebugData, funcname: str, filename: str) -> int:
    """A breakpoint address at the first line of function ``funcname``.

    The first function of that name whose source file can be resolved is
    taken; ``filename`` does not narrow the choice any further.
    """
    for symbol in data.symbols:
        if not symbol.is_function or symbol.name != funcname:
            continue
        try:
            lookup_file(data, symbol.address)
        except LookupError:
            continue
        break
    else:
        raise LookupError(f"no function {funcname!r} in {filename!r}")

    start = _ucell(symbol.address)
    for entry in data.lines:
        if _ucell(entry.address) >= start:
            return _ucell(entry.address)
    raise LookupError(f"no line for function {funcname!r}")


def find_variable(data: DebugData, symname: str, scope_address: int) -> DebugSymbol:
    """The symbol named ``symname`` with the narrowest scope at ``scope_address``."""
    scope = _ucell(scope_address)
    found: DebugSymbol | None = None
    codestart = codeend = 0
    for symbol in data.symbols:
        name_matches = symbol.name == symname
        is_candidate = symbol.ident != SymbolKind.FUNCTION and name_matches
        in_scope = symbol.codestart <= scope <= symbol.codeend
        if not is_candidate and not in_scope:
            continue
        if name_matches and (
            (codestart == 0 and codeend == 0)
            or (symbol.codestart >= codestart and symbol.codeend <= codeend)
        ):
            found = symbol
            codestart, codeend = symbol.codestart, symbol.codeend
    if found is None:
        raise LookupError(f"no variable {symname!r} at {scope:#x}")
    return found


def array_dims(data: DebugData, symbol: DebugSymbol) -> tuple[SymbolDim, ...]:
    """The dimensions of an array symbol."""
    if symbol.ident not in (SymbolKind.ARRAY, SymbolKind.ARRAY_REF):
        raise ValueError(f"symbol {symbol.name!r} is not an array")
    return symbol.dims