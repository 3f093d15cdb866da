# pawntrace

Tools for inspecting compiled Pawn programs (`.amx` files). It loads the
program image into memory, gives access to its public and native function
tables, its sections and the abstract machine's registers and stack, and reads
the symbolic debug information the compiler appends to the file, so that code
addresses can be turned into source files, line numbers and function names.

## Installation

```
pip install pawntrace
```

To run the test suite:

```
pip install "pawntrace[test]"
pytest
```

## Modules

- `pawntrace.program` loads an `.amx` file (`load_program`, which returns an
  `Amx`), reports the memory a program needs (`program_size`), gives a
  writable view of one region of memory (`get_section` with `Section.CODE`,
  `DATA`, `HEAP` or `STACK`), and turns error codes into messages
  (`error_message`). Failures to load raise `AmxError`, which carries the
  error `code`.
- `pawntrace.amx` holds the program image and registers (`Amx`), its decoded
  header (`AmxHeader`, `parse_header`) and the entries of its function tables
  (`FunctionStub`). An `Amx` finds publics and natives by address
  (`find_public`, `find_native`), by name (`public_index`, `native_index`) and
  by index (`public_address`, `native_address`, `public_name`,
  `native_name`; index `-1` stands for the entry point `main`). It reads and
  writes cells (`read_cell`, `write_cell`, `read_code_cell`, `string_at`) and
  works the stack (`push_stack`, `pop_stack`, `drop_stack`, `check_stack`,
  `stack_space_left`).
- `pawntrace.dbgformat` parses the debug information block (`load_debug_info`
  for a program file, `parse_debug_info` for raw bytes) into a `DebugData` of
  files, lines, symbols (with their array dimensions), tags, automata and
  states. Malformed or missing data raises `DebugFormatError`.
- `pawntrace.dbglookup` answers questions about a `DebugData`: the file, line
  or function at an address (`lookup_file`, `lookup_line`,
  `lookup_function`), the names of tags, automata and states (`tag_name`,
  `automaton_name`, `state_name`), breakpoint addresses for a line or a
  function (`line_address`, `function_address`), the variable a name refers
  to in a scope (`find_variable`) and the dimensions of an array symbol
  (`array_dims`). A failed lookup raises `LookupError`.
- `pawntrace.debuginfo` puts these lookups behind one object, `DebugInfo`,
  which can be empty or loaded. Its methods return `None`, an empty string,
  `-1` or `0` where nothing is found instead of raising. `has_debug_info`
  tells whether a loaded program was compiled with debug information.
- `pawntrace.callstack` records public and native calls in progress
  (`AmxCallStack` with `push`, `pop` and `top`; `AmxCall`, `CallType`,
  `public_call`, `native_call`).

## Example

```python
from pawntrace.program import load_program
from pawntrace.debuginfo import DebugInfo, has_debug_info

amx = load_program("gamemode.amx")
print(amx.public_name(0), hex(amx.public_address(0)))

if has_debug_info(amx):
    debug_info = DebugInfo("gamemode.amx")
    address = amx.public_address(0)
    print(
        debug_info.function_name(address),
        debug_info.file_name(address),
        debug_info.line_number(address) + 1,  # line numbers are zero-based
    )
```

## What it does not do

pawntrace does not execute programs: it has no interpreter for the abstract
machine's instructions and no opcode table. It does not walk stack frames or
print formatted stack traces with arguments and states, it does not keep
per-machine handler objects, and it does not search directories to find which
`.amx` file a running program was loaded from. It provides no command-line
tool; it is used as a library.