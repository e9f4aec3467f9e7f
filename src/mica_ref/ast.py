"""Expression trees in their two forms.

The parser produces the *named* form, where binders and variable references
are plain strings. The resolver turns it into the *resolved* form, where
binders carry nothing and references are De Bruijn indices (0 = innermost
binding). Both forms share the node classes below, parameterized over the
binder type ``NewVar`` and the reference type ``GetVar``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, List, Tuple, TypeVar, Union
from typing_extensions import TypeAlias

from .types import MicaValue

NewVar = TypeVar("NewVar")
GetVar = TypeVar("GetVar")


@dataclass(frozen=True)
class Literal:
    value: MicaValue


@dataclass(frozen=True)
class MethodCall(Generic[NewVar, GetVar]):
    name: str
    this: ExpressionOf[NewVar, GetVar]
    arguments: Tuple[ExpressionOf[NewVar, GetVar], ...] = ()


@dataclass(frozen=True)
class LocalVariable(Generic[GetVar]):
    reference: GetVar


@dataclass(frozen=True)
class LetIn(Generic[NewVar, GetVar]):
    name: NewVar
    bound: ExpressionOf[NewVar, GetVar]
    body: ExpressionOf[NewVar, GetVar]


@dataclass(frozen=True)
class IfThenElse(Generic[NewVar, GetVar]):
    condition: ExpressionOf[NewVar, GetVar]
    if_true: ExpressionOf[NewVar, GetVar]
    if_false: ExpressionOf[NewVar, GetVar]


@dataclass(frozen=True)
class Do(Generic[NewVar, GetVar]):
    steps: Tuple[ExpressionOf[NewVar, GetVar], ...] = ()


ExpressionOf: TypeAlias = Union[
    Literal,
    MethodCall[NewVar, GetVar],
    LocalVariable[GetVar],
    LetIn[NewVar, GetVar],
    IfThenElse[NewVar, GetVar],
    Do[NewVar, GetVar],
]

NamedExpression: TypeAlias = ExpressionOf[str, str]
Expression: TypeAlias = ExpressionOf[None, int]


def pretty(expr: ExpressionOf, indent: str = "  ") -> str:
    """Return an indented outline of either expression form."""
    lines: List[str] = []

    def visit(node: ExpressionOf, level: int) -> None:
        pad = indent * level

        match node:
            case Literal(value=value):
                lines.append(f"{pad}literal {value!r}")
            case MethodCall(name=name, this=this, arguments=arguments):
                lines.append(f"{pad}call {name}")
                visit(this, level + 1)
                for arg in arguments:
                    visit(arg, level + 1)
            case LocalVariable(reference=ref):
                lines.append(f"{pad}var {ref}")
            case LetIn(name=name, bound=bound, body=body):
                lines.append(f"{pad}let" if name is None else f"{pad}let {name}")
                visit(bound, level + 1)
                visit(body, level + 1)
            case IfThenElse(condition=cond, if_true=if_true, if_false=if_false):
                lines.append(f"{pad}if")
                visit(cond, level + 1)
                visit(if_true, level + 1)
                visit(if_false, level + 1)
            case Do(steps=steps):
                lines.append(f"{pad}do")
                for step in steps:
                    visit(step, level + 1)
            case _:
                raise TypeError(f"not an expression: {node!r}")

    visit(expr, 0)
    return "\n".join(lines)
