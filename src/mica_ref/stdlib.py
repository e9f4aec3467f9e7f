"""Builtin String methods, registered into every VM's dispatch table."""

from __future__ import annotations

from typing import TYPE_CHECKING, List

from .runtime import expect_arity, register_string, string_arg
from .types import MicaString, MicaUnit, MicaValue

if TYPE_CHECKING:
    from .evaluator import VM

@register_string("concat")
def _string_concat(_vm: VM, recv: MicaValue, args: List[MicaValue]) -> MicaString:
    parts = [string_arg("concat", recv)]

    for position, arg in enumerate(args, start=1):
        parts.append(string_arg("concat", arg, position))

    return MicaString("".join(parts))

@register_string("println")
def _string_println(vm: VM, recv: MicaValue, args: List[MicaValue]) -> MicaUnit:
    expect_arity("println", args, 0)
    print(string_arg("println", recv), file=vm.stdout)

    return MicaUnit()
