from __future__ import annotations

import importlib
from dataclasses import dataclass
from typing import TYPE_CHECKING, Callable, Dict, List, Optional

from typing_extensions import TypeAlias

from .ast import Expression
from .types import (
    STRING_TYPE, MicaType, MicaValue, MicaString,
    ArityMismatchError, TypeMismatchError,
)

if TYPE_CHECKING:
    from .evaluator import VM

BuiltinFn = Callable[['VM', MicaValue, List[MicaValue]], MicaValue]

@dataclass(frozen=True)
class Builtin:
    fn: BuiltinFn
    name: str = "<builtin>"

@dataclass(frozen=True)
class Custom:
    body: Expression
    owner: str = "<custom>"
    arity: Optional[int] = None

Method: TypeAlias = Builtin | Custom
MethodTable = Dict[str, Method]
DispatchTable = Dict[MicaType, MethodTable]

class Builtins:
    """Builtin method sources, keyed by receiver type.

    Each VM copies these into its own dispatch table; nothing evaluates
    against this registry directly.
    """
    string_methods: Dict[str, BuiltinFn] = {}

    @classmethod
    def by_type(cls) -> Dict[MicaType, Dict[str, BuiltinFn]]:
        return {
            STRING_TYPE: cls.string_methods,
        }

_STDLIB_INITIALIZED = False

def init_stdlib() -> None:
    """Load stdlib modules (idempotent) so register_* hooks run."""
    global _STDLIB_INITIALIZED

    if _STDLIB_INITIALIZED:
        return

    importlib.import_module("mica_ref.stdlib")
    _STDLIB_INITIALIZED = True

def register_method(registry: Dict[str, BuiltinFn], name: str):
    def dec(fn: BuiltinFn):
        registry[name] = fn
        return fn

    return dec

def register_string(name: str):
    return register_method(Builtins.string_methods, name)

def default_methods() -> DispatchTable:
    """Fresh dispatch table holding every registered builtin."""
    init_stdlib()
    table: DispatchTable = {}

    for typ, registry in Builtins.by_type().items():
        if registry:
            table[typ] = {name: Builtin(fn, name) for name, fn in registry.items()}

    return table

def expect_arity(method: str, args: List[MicaValue], expected: int) -> None:
    if len(args) != expected:
        raise ArityMismatchError(f"{method} expects {expected} argument(s); got {len(args)}")

def string_arg(method: str, arg: MicaValue, position: Optional[int] = None) -> str:
    if isinstance(arg, MicaString):
        return arg.value

    where = "" if position is None else f" at position {position}"
    raise TypeMismatchError(f"{method} expects a String argument{where}, got {arg.typ()}")
