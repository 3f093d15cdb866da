"""Record of public and native calls made into or out of a program."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from pawntrace.amx import Amx


class CallType(Enum):
    """Whether a call entered the program or left it for the host."""

    NATIVE = "native"
    PUBLIC = "public"


@dataclass(frozen=True)
class AmxCall:
    """One call, with the frame and instruction pointers at call time."""

    type: CallType
    amx: Amx
    index: int
    frm: int
    cip: int

    @property
    def is_public(self) -> bool:
        return self.type is CallType.PUBLIC

    @property
    def is_native(self) -> bool:
        return self.type is CallType.NATIVE


def public_call(amx: Amx, index: int) -> AmxCall:
    """A public call captured at the machine's current registers."""
    return AmxCall(CallType.PUBLIC, amx, index, amx.frm, amx.cip)


def native_call(amx: Amx, index: int) -> AmxCall:
    """A native call captured at the machine's current registers."""
    return AmxCall(CallType.NATIVE, amx, index, amx.frm, amx.cip)


@dataclass
class AmxCallStack:
    """A last-in, first-out stack of calls."""

    _calls: list[AmxCall] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self._calls)

    def __bool__(self) -> bool:
        return bool(self._calls)

    def __iter__(self):
        return reversed(self._calls)

    def push(self, call: AmxCall) -> None:
        self._calls.append(call)

    def pop(self) -> AmxCall:
        """Remove and return the most recent call."""
        if not self._calls:
            raise IndexError("pop from an empty call stack")
        return self._calls.pop()

    def top(self) -> AmxCall:
        """The most recent call, left in place."""
        if not self._calls:
            raise IndexError("top of an empty call stack")
        return self._calls[-1]