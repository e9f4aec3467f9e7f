from __future__ import annotations

from typing import Iterable, List, Sequence

from .ast import (
    Do,
    Expression,
    IfThenElse,
    LetIn,
    Literal,
    LocalVariable,
    MethodCall,
    NamedExpression,
)
from .types import UnboundVariableError

RECEIVER_NAME = "this"


def method_scope(parameters: Iterable[str]) -> List[str]:
    """Initial scope of a method body: the receiver, then parameters in order."""
    return [RECEIVER_NAME, *parameters]


class Resolver:
    """Rewrites named variable references into De Bruijn indices.

    ``local_variables`` is the stack of names currently in scope, innermost
    last. A reference resolves to its distance from the end of the stack.
    """

    def __init__(self, initial_scope: Sequence[str] = ()):
        self.local_variables: List[str] = list(initial_scope)

    def lookup(self, name: str) -> int:
        for index, variable in enumerate(reversed(self.local_variables)):
            if variable == name:
                return index

        raise UnboundVariableError(name)

    def resolve_expression(self, expr: NamedExpression) -> Expression:
        match expr:
            case Literal():
                return expr
            case MethodCall(name=name, this=this, arguments=arguments):
                return MethodCall(
                    name,
                    self.resolve_expression(this),
                    tuple(self.resolve_expression(arg) for arg in arguments),
                )
            case LocalVariable(reference=name):
                return LocalVariable(self.lookup(name))
            case LetIn(name=name, bound=bound, body=body):
                # `bound` cannot see the name it is bound to.
                resolved_bound = self.resolve_expression(bound)
                self.local_variables.append(name)
                try:
                    resolved_body = self.resolve_expression(body)
                finally:
                    self.local_variables.pop()
                return LetIn(None, resolved_bound, resolved_body)
            case IfThenElse(condition=cond, if_true=if_true, if_false=if_false):
                return IfThenElse(
                    self.resolve_expression(cond),
                    self.resolve_expression(if_true),
                    self.resolve_expression(if_false),
                )
            case Do(steps=steps):
                return Do(tuple(self.resolve_expression(step) for step in steps))
            case _:
                raise TypeError(f"cannot resolve {expr!r}")


def resolve(expr: NamedExpression, initial_scope: Sequence[str] = ()) -> Expression:
    return Resolver(initial_scope).resolve_expression(expr)
