"""High-level queries over a program's debug information."""

from __future__ import annotations

from os import PathLike

from pawntrace import dbglookup
from pawntrace.amx import AMX_FLAG_DEBUG, Amx
from pawntrace.dbgformat import (
    DebugAutomaton,
    DebugData,
    DebugFile,
    DebugFormatError,
    DebugLine,
    DebugState,
    DebugSymbol,
    DebugTag,
    load_debug_info,
)


def _cell(value: int) -> int:
    """Reinterpret a 32-bit value as a signed cell."""
    return ((value + (1 << 31)) % (1 << 32)) - (1 << 31)


def _is_bugged_forward(symbol: DebugSymbol) -> bool:
    # Some compiler versions put forwarded but unimplemented publics into the
    # symbol table; only those whose name starts with '@' are affected.
    return symbol.name.startswith("@")


def has_debug_info(amx: Amx) -> bool:
    """Whether the program was compiled with debug information."""
    return (amx.header.flags & AMX_FLAG_DEBUG) != 0


class DebugInfo:
    """Debug information of one program, possibly not loaded."""

    def __init__(
        self,
        filename: str | PathLike[str] | None = None,
        *,
        data: DebugData | None = None,
    ) -> None:
        self._data = data
        if filename is not None:
            self.load(filename)

    @property
    def data(self) -> DebugData | None:
        return self._data

    @property
    def is_loaded(self) -> bool:
        return self._data is not None

    def load(self, filename: str | PathLike[str]) -> bool:
        """Read debug information from a program file.

        Returns whether it succeeded; on failure the current state is kept.
        """
        try:
            data = load_debug_info(filename)
        except (OSError, DebugFormatError):
            return False
        self._data = data
        return True

    def free(self) -> None:
        """Drop the loaded debug information."""
        self._data = None

    # Tables

    @property
    def files(self) -> tuple[DebugFile, ...]:
        return self._data.files if self._data else ()

    @property
    def lines(self) -> tuple[DebugLine, ...]:
        return self._data.lines if self._data else ()

    @property
    def symbols(self) -> tuple[DebugSymbol, ...]:
        return self._data.symbols if self._data else ()

    @property
    def tags(self) -> tuple[DebugTag, ...]:
        return self._data.tags if self._data else ()

    @property
    def automata(self) -> tuple[DebugAutomaton, ...]:
        return self._data.automata if self._data else ()

    @property
    def states(self) -> tuple[DebugState, ...]:
        return self._data.states if self._data else ()

    # Lookups returning table entries

    def line_at(self, address: int) -> DebugLine | None:
        """The last line entry whose code starts at or before ``address``."""
        return next(
            (line for line in reversed(self.lines) if _cell(line.address) <= address),
            None,
        )

    def file_at(self, address: int) -> DebugFile | None:
        """The last file entry whose code starts at or before ``address``."""
        return next(
            (entry for entry in reversed(self.files) if _cell(entry.address) <= address),
            None,
        )

    def function_at(
        self, address: int, ignore_broken_symbols: bool = True
    ) -> DebugSymbol | None:
        """The function whose code range contains ``address``."""
        for symbol in self.symbols:
            if not symbol.is_function:
                continue
            if _cell(symbol.codestart) > address or _cell(symbol.codeend) <= address:
                continue
            if ignore_broken_symbols and _is_bugged_forward(symbol):
                continue
            return symbol
        return None

    def exact_function(
        self, address: int, ignore_broken_symbols: bool = True
    ) -> DebugSymbol | None:
        """The function whose code starts exactly at ``address``."""
        for symbol in self.symbols:
            if not symbol.is_function:
                continue
            if ignore_broken_symbols and _is_bugged_forward(symbol):
                continue
            if _cell(symbol.codestart) == address:
                return symbol
        return None

    def tag(self, tag_id: int) -> DebugTag | None:
        """The tag with id ``tag_id``."""
        return next((tag for tag in self.tags if tag.tag == tag_id), None)

    def automaton(self, address: int) -> DebugAutomaton | None:
        """The automaton whose state variable lives at ``address``."""
        return next(
            (entry for entry in self.automata if _cell(entry.address) == address),
            None,
        )

    def state(self, automaton_id: int, state_id: int) -> DebugState | None:
        """The state ``state_id`` of automaton ``automaton_id``."""
        return next(
            (
                entry
                for entry in self.states
                if entry.automaton == automaton_id and entry.state == state_id
            ),
            None,
        )

    # Lookups returning plain values

    def line_number(self, address: int) -> int:
        """Zero-based line number at ``address``, or -1 if unknown."""
        line = self.line_at(address)
        # A line entry at address 0 counts as absent.
        if line is not None and line.address != 0:
            return line.line
        return -1

    def file_name(self, address: int) -> str:
        """Source file name at ``address``, or an empty string."""
        entry = self.file_at(address)
        return entry.name if entry is not None else ""

    def function_name(self, address: int) -> str:
        """Name of the function containing ``address``, or an empty string."""
        symbol = self.function_at(address)
        return symbol.name if symbol is not None else ""

    def tag_name(self, tag_id: int) -> str:
        """Name of tag ``tag_id``, or an empty string."""
        entry = self.tag(tag_id)
        return entry.name if entry is not None else ""

    def function_address(self, func: str, file: str) -> int:
        """Breakpoint address at the start of ``func``, or 0."""
        if self._data is None:
            return 0
        try:
            return _cell(dbglookup.function_address(self._data, func, file))
        except LookupError:
            return 0

    def line_address(self, line: int, file: str) -> int:
        """Breakpoint address at or after ``line`` of ``file``, or 0."""
        if self._data is None:
            return 0
        try:
            return _cell(dbglookup.line_address(self._data, line, file))
        except LookupError:
            return 0