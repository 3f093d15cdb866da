import struct

import pytest

from pawntrace.amx import (
    AMX_EXEC_MAIN,
    Amx,
    AmxHeader,
    CELL_SIZE,
    parse_header,
)

PUBLICS = [(0x10, "OnInit"), (0x40, "OnExit")]
NATIVES = [(0, "print")]
CODE_AT = 104
DATA_AT = 136
IMAGE_SIZE = 336
ENTRY = 0x08
CODE_CELL_VALUE = 12345


def build_image():
    image = bytearray(IMAGE_SIZE)
    publics_at = AmxHeader.SIZE
    natives_at = publics_at + 8 * len(PUBLICS)
    libraries_at = natives_at + 8 * len(NATIVES)
    name_at = libraries_at + 2
    offsets = []
    for _, name in PUBLICS + NATIVES:
        encoded = name.encode() + b"\0"
        image[name_at:name_at + len(encoded)] = encoded
        offsets.append(name_at)
        name_at += len(encoded)
    for n, ((address, _), offset) in enumerate(zip(PUBLICS + NATIVES, offsets)):
        struct.pack_into("<II", image, publics_at + 8 * n, address, offset)
    header = AmxHeader(
        size=IMAGE_SIZE,
        flags=0,
        cod=CODE_AT,
        dat=DATA_AT,
        hea=DATA_AT + 40,
        stp=IMAGE_SIZE,
        cip=ENTRY,
        publics=publics_at,
        natives=natives_at,
        libraries=libraries_at,
        pubvars=libraries_at,
        tags=libraries_at,
        nametable=libraries_at,
    )
    image[: AmxHeader.SIZE] = header.pack()
    struct.pack_into("<i", image, CODE_AT + 4, CODE_CELL_VALUE)
    return image


@pytest.fixture
def amx():
    stack_top = IMAGE_SIZE - DATA_AT - CELL_SIZE
    return Amx(build_image(), hea=40, hlw=40, stp=stack_top, stk=stack_top)


def test_header_round_trip():
    header = AmxHeader(size=100, cod=56, dat=80, hea=90, stp=200, cip=4)
    assert parse_header(header.pack()) == header
    assert len(header.pack()) == AmxHeader.SIZE


def test_parse_header_too_short():
    with pytest.raises(ValueError):
        parse_header(b"\0" * 10)


def test_table_sizes(amx):
    assert amx.num_publics == len(PUBLICS)
    assert amx.num_natives == len(NATIVES)


def test_find_public_and_native(amx):
    assert amx.find_public(0x40) == "OnExit"
    assert amx.find_public(0x10) == "OnInit"
    assert amx.find_public(0x44) is None
    assert amx.find_native(0) == "print"
    assert amx.find_native(0x10) is None


def test_indices_by_name(amx):
    assert amx.public_index("OnExit") == 1
    assert amx.native_index("print") == 0
    assert amx.public_index("missing") is None
    assert amx.native_index("OnInit") is None


def test_addresses_by_index(amx):
    assert amx.public_address(0) == 0x10
    assert amx.public_address(AMX_EXEC_MAIN) == ENTRY
    assert amx.public_address(5) == 0
    assert amx.native_address(0) == 0
    assert amx.native_address(-3) == 0


def test_names_by_index(amx):
    assert amx.public_name(1) == "OnExit"
    assert amx.public_name(AMX_EXEC_MAIN) == "main"
    assert amx.public_name(2) is None
    assert amx.native_name(0) == "print"
    assert amx.native_name(1) is None


def test_index_name_round_trip(amx):
    for index in range(amx.num_publics):
        assert amx.public_index(amx.public_name(index)) == index


def test_read_code_cell(amx):
    assert amx.read_code_cell(4) == CODE_CELL_VALUE
    with pytest.raises(IndexError):
        amx.read_code_cell(-4)


def test_cell_round_trip(amx):
    amx.write_cell(8, -77)
    assert amx.read_cell(8) == -77
    assert amx.base[DATA_AT + 8:DATA_AT + 12] == struct.pack("<i", -77)


def test_write_cell_wraps_to_32_bits(amx):
    amx.write_cell(0, 0xFFFFFFFF)
    assert amx.read_cell(0) == -1


def test_separate_data_block():
    data = bytearray(64)
    machine = Amx(build_image(), data=data)
    machine.write_cell(60, 9)
    assert machine.read_cell(60) == 9
    assert machine.data[60:64] == struct.pack("<i", 9)
    with pytest.raises(IndexError):
        machine.read_cell(61)


def test_read_cell_out_of_range(amx):
    with pytest.raises(IndexError):
        amx.read_cell(IMAGE_SIZE)
    with pytest.raises(IndexError):
        amx.read_cell(-4)


def test_push_pop_round_trip(amx):
    start = amx.stk
    amx.push_stack(11)
    amx.push_stack(22)
    assert amx.stk == start - 2 * CELL_SIZE
    assert amx.pop_stack() == 22
    assert amx.pop_stack() == 11
    assert amx.stk == start


def test_drop_stack(amx):
    start = amx.stk
    amx.push_stack(1)
    amx.push_stack(2)
    amx.push_stack(3)
    amx.drop_stack(3)
    assert amx.stk == start


def test_stack_space_and_check(amx):
    assert amx.stack_space_left() == amx.stk - amx.hea
    assert amx.check_stack() is True
    amx.stk = amx.hea - CELL_SIZE
    assert amx.check_stack() is False
    amx.stk = amx.stp + CELL_SIZE
    assert amx.check_stack() is False


def test_string_at(amx):
    offset = amx.publics[0].name_offset
    assert amx.string_at(offset) == "OnInit"
    assert amx.string_at(offset + 2) == "Init"