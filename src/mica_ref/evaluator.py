from __future__ import annotations

import logging
import sys
from typing import Dict, List, Optional, TextIO

from .ast import Do, Expression, IfThenElse, LetIn, Literal, LocalVariable, MethodCall
from .program import Program
from .runtime import Builtin, Custom, DispatchTable, Method, default_methods
from .types import (
    ArityMismatchError,
    ClassID,
    IndexOutOfRangeError,
    MicaBool,
    MicaError,
    MicaObject,
    MicaType,
    MicaUnit,
    MicaValue,
    MissingEntryPointError,
    NoSuchMethodError,
    TypeMismatchError,
)

logger = logging.getLogger(__name__)

ENTRY_METHOD = "main"


class VM:
    """Tree-walking evaluator for resolved expressions.

    Owns the dispatch table (runtime type -> method name -> method) and one
    local-variable stack shared by every frame; De Bruijn indices count back
    from its end.
    """

    def __init__(self, stdout: Optional[TextIO] = None):
        self.methods: DispatchTable = default_methods()
        self.local_variables: List[MicaValue] = []
        self.class_names: Dict[ClassID, str] = {}
        self.class_id_counter = 0
        self._stdout = stdout

    @property
    def stdout(self) -> TextIO:
        return self._stdout if self._stdout is not None else sys.stdout

    # ---------------- Loading ----------------

    def new_class_id(self) -> ClassID:
        self.class_id_counter += 1
        return ClassID(self.class_id_counter)

    def load_program(self, program: Program) -> Dict[str, ClassID]:
        from .loader import load_program

        return load_program(self, program)

    def lookup_method(self, typ: MicaType, name: str) -> Method:
        table = self.methods.get(typ)

        if table is None or name not in table:
            raise NoSuchMethodError(typ, name)

        return table[name]

    # ---------------- Entry point ----------------

    def run(self, class_id: ClassID) -> MicaValue:
        """Call `main` on a fresh, property-less instance of the given class."""
        table = self.methods.get(MicaType.object(class_id), {})
        main = table.get(ENTRY_METHOD)

        if main is None:
            raise MissingEntryPointError("program has no entry point")

        logger.debug("running %s.%s", self.class_names.get(class_id, class_id), ENTRY_METHOD)
        this = MicaObject(class_id)
        return self.invoke_method(main, this, [])

    # ---------------- Core evaluator ----------------

    def invoke_method(self, method: Method, this: MicaValue, arguments: List[MicaValue]) -> MicaValue:
        match method:
            case Builtin(fn=fn):
                return fn(self, this, arguments)
            case Custom(body=body, owner=owner, arity=arity):
                if arity is not None and len(arguments) != arity:
                    raise ArityMismatchError(f"{owner} expects {arity} argument(s); got {len(arguments)}")

                depth = len(self.local_variables)
                self.local_variables.append(this)
                self.local_variables.extend(arguments)
                try:
                    return self.evaluate(body)
                except MicaError as exc:
                    exc.mica_trace.append(owner)
                    raise
                finally:
                    del self.local_variables[depth:]
            case _:
                raise TypeError(f"not a method: {method!r}")

    def evaluate(self, expr: Expression) -> MicaValue:
        match expr:
            case Literal(value=value):
                return value
            case MethodCall(name=name, this=this_expr, arguments=arg_exprs):
                this = self.evaluate(this_expr)
                method = self.lookup_method(this.typ(), name)
                arguments = [self.evaluate(arg) for arg in arg_exprs]
                return self.invoke_method(method, this, arguments)
            case LocalVariable(reference=index):
                return self.get_local(index)
            case LetIn(bound=bound, body=body):
                value = self.evaluate(bound)
                self.local_variables.append(value)
                try:
                    return self.evaluate(body)
                finally:
                    self.local_variables.pop()
            case IfThenElse(condition=cond, if_true=if_true, if_false=if_false):
                flag = self.evaluate(cond)

                if not isinstance(flag, MicaBool):
                    raise TypeMismatchError(f"if condition must be Bool, got {flag.typ()}")

                return self.evaluate(if_true if flag.value else if_false)
            case Do(steps=steps):
                result: MicaValue = MicaUnit()

                for step in steps:
                    result = self.evaluate(step)

                return result
            case _:
                raise TypeError(f"cannot evaluate {expr!r}")

    def get_local(self, index: int) -> MicaValue:
        depth = len(self.local_variables)

        if index < 0 or index >= depth:
            raise IndexOutOfRangeError(index, depth)

        return self.local_variables[depth - 1 - index]
