import struct

import pytest

from pawntrace.amx import AMX_FLAG_DEBUG, AmxHeader
from pawntrace.dbgformat import (
    DEBUG_MAGIC,
    DebugFormatError,
    DebugHeader,
    SymbolClass,
    SymbolDim,
    SymbolKind,
    load_debug_info,
    parse_debug_info,
)


def _cstr(text):
    return text.encode("latin-1") + b"\0"


def build_block(
    files=(),
    lines=(),
    symbols=(),
    tags=(),
    automata=(),
    states=(),
    header_lines=None,
    magic=DEBUG_MAGIC,
):
    body = b""
    for address, name in files:
        body += struct.pack("<I", address) + _cstr(name)
    for address, line in lines:
        body += struct.pack("<Ii", address, line)
    for address, tag, start, end, ident, vclass, name, dims in symbols:
        body += struct.pack("<iHIIbbH", address, tag, start, end, ident, vclass, len(dims))
        body += _cstr(name)
        for dim_tag, dim_size in dims:
            body += struct.pack("<HI", dim_tag, dim_size)
    for tag, name in tags:
        body += struct.pack("<H", tag) + _cstr(name)
    for automaton, address, name in automata:
        body += struct.pack("<HI", automaton, address) + _cstr(name)
    for state, automaton, name in states:
        body += struct.pack("<HH", state, automaton) + _cstr(name)
    count = len(lines) if header_lines is None else header_lines
    header = struct.pack(
        "<IHbbH6H",
        DebugHeader.SIZE + len(body),
        magic,
        8,
        8,
        0,
        len(files),
        count,
        len(symbols),
        len(tags),
        len(automata),
        len(states),
    )
    return header + body


SAMPLE = dict(
    files=[(0, "main.pwn"), (64, "inc.inc")],
    lines=[(0, 1), (8, 2), (64, 10)],
    symbols=[
        (0, 0, 0, 40, SymbolKind.FUNCTION, SymbolClass.GLOBAL, "OnInit", []),
        (12, 3, 0, 40, SymbolKind.ARRAY, SymbolClass.LOCAL, "buf", [(0, 32), (3, 4)]),
        (-4, 1, 8, 40, SymbolKind.REFERENCE, SymbolClass.STATIC_LOCAL, "r", []),
    ],
    tags=[(0, "_"), (1, "bool"), (3, "Float")],
    automata=[(0, 100, "")],
    states=[(1, 0, "idle"), (2, 0, "busy")],
)


def test_parses_all_tables():
    data = parse_debug_info(build_block(**SAMPLE), 128)
    assert [(f.address, f.name) for f in data.files] == SAMPLE["files"]
    assert [(l.address, l.line) for l in data.lines] == SAMPLE["lines"]
    assert [(t.tag, t.name) for t in data.tags] == SAMPLE["tags"]
    assert [(a.automaton, a.address, a.name) for a in data.automata] == SAMPLE["automata"]
    assert [(s.state, s.automaton, s.name) for s in data.states] == SAMPLE["states"]


def test_header_fields():
    block = build_block(**SAMPLE)
    data = parse_debug_info(block, 128)
    assert data.header.magic == DEBUG_MAGIC
    assert data.header.size == len(block)
    assert data.header.files == 2
    assert data.header.symbols == 3


def test_symbols_and_dimensions():
    data = parse_debug_info(build_block(**SAMPLE), 128)
    func, array, ref = data.symbols
    assert func.name == "OnInit" and func.is_function and func.is_global
    assert (func.codestart, func.codeend) == (0, 40)
    assert array.is_array and array.is_local
    assert array.dims == (SymbolDim(0, 32), SymbolDim(3, 4))
    assert array.num_dims == 2
    assert ref.address == -4
    assert ref.is_reference and ref.is_static_local
    assert ref.dims == ()


def test_empty_block():
    data = parse_debug_info(build_block(), 0)
    assert data.files == () and data.lines == () and data.symbols == ()
    assert data.tags == () and data.automata == () and data.states == ()


def test_bad_magic_rejected():
    with pytest.raises(DebugFormatError):
        parse_debug_info(build_block(magic=0x1234), 0)


def test_truncated_header_rejected():
    with pytest.raises(DebugFormatError):
        parse_debug_info(b"\x00\x01", 0)


def test_truncated_body_rejected():
    block = build_block(**SAMPLE)
    with pytest.raises(DebugFormatError):
        parse_debug_info(block[:-5], 128)


def test_overflowed_line_count_recovered():
    total = 0x10000 + 1
    lines = [(n * 4, n) for n in range(total)]
    block = build_block(lines=lines, header_lines=total & 0xFFFF)
    data = parse_debug_info(block, total * 4 + 4)
    assert len(data.lines) == total
    assert data.lines[-1].address == lines[-1][0]


def test_overflow_not_assumed_beyond_code():
    total = 0x10000 + 1
    lines = [(n * 4, n) for n in range(total)]
    block = build_block(lines=lines, header_lines=total & 0xFFFF)
    data = parse_debug_info(block, 4)
    assert len(data.lines) == total & 0xFFFF


def _program(flags, debug_block, magic=None):
    code = b"\0" * 16
    header_size = AmxHeader.SIZE
    kwargs = dict(
        size=header_size + len(code),
        flags=flags,
        cod=header_size,
        dat=header_size + len(code),
        hea=header_size + len(code),
        stp=header_size + len(code) + 64,
    )
    if magic is not None:
        kwargs["magic"] = magic
    return AmxHeader(**kwargs).pack() + code + debug_block


def test_load_from_file(tmp_path):
    path = tmp_path / "prog.amx"
    path.write_bytes(_program(AMX_FLAG_DEBUG, build_block(**SAMPLE)))
    data = load_debug_info(path)
    assert [s.name for s in data.symbols] == ["OnInit", "buf", "r"]
    assert data.files[1].name == "inc.inc"


def test_load_without_debug_flag(tmp_path):
    path = tmp_path / "prog.amx"
    path.write_bytes(_program(0, build_block(**SAMPLE)))
    with pytest.raises(DebugFormatError):
        load_debug_info(path)


def test_load_bad_program_magic(tmp_path):
    path = tmp_path / "prog.amx"
    path.write_bytes(_program(AMX_FLAG_DEBUG, build_block(**SAMPLE), magic=0x1111))
    with pytest.raises(DebugFormatError):
        load_debug_info(path)


def test_load_short_file(tmp_path):
    path = tmp_path / "prog.amx"
    path.write_bytes(b"\x01\x02\x03")
    with pytest.raises(DebugFormatError):
        load_debug_info(path)