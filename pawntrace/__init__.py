"""Load Pawn AMX programs, read their debug information and resolve code addresses."""

__version__ = "0.1.0"

__all__ = [
    "amx",
    "callstack",
    "dbgformat",
    "dbglookup",
    "debuginfo",
    "program",
]