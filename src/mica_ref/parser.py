"""Source text -> named-form Program/expressions, via a lark LALR grammar."""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from lark import Lark, Token, Transformer, UnexpectedInput, v_args
from lark.exceptions import UnexpectedCharacters, UnexpectedEOF, UnexpectedToken, VisitError

from .ast import Do, IfThenElse, LetIn, Literal, LocalVariable, MethodCall, NamedExpression
from .program import Class, ClassMethod, Program
from .types import MicaBool, MicaError, MicaI32, MicaString, MicaUnit, ParseError

GRAMMAR_PATH = Path(__file__).with_name("grammar.lark")

_SIMPLE_ESCAPES = {
    '"': '"',
    "'": "'",
    "\\": "\\",
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\x08",
    "f": "\x0c",
    "v": "\x0b",
}

_ESCAPE_RE = re.compile(
    r"\\(?:u\{(?P<braced>[0-9A-Fa-f]{1,6})\}"
    r"|u(?P<u4>[0-9A-Fa-f]{4})"
    r"|x(?P<x2>[0-9A-Fa-f]{2})"
    r"|(?P<nul>0)(?![0-9])"
    r"|(?P<char>.))",
    re.DOTALL,
)


def decode_string(body: str, token: Optional[Token] = None) -> str:
    """Expand the escape sequences of a string literal's body (quotes stripped)."""
    out: List[str] = []
    pos = 0

    for m in _ESCAPE_RE.finditer(body):
        out.append(body[pos:m.start()])
        pos = m.end()

        if m.group("nul") is not None:
            out.append("\0")
            continue

        char = m.group("char")
        if char is not None:
            if char not in _SIMPLE_ESCAPES:
                raise _token_error(f"invalid escape sequence '\\{char}'", token)
            out.append(_SIMPLE_ESCAPES[char])
            continue

        digits = m.group("braced") or m.group("u4") or m.group("x2")
        code = int(digits, 16)
        if code > 0x10FFFF or 0xD800 <= code <= 0xDFFF:
            raise _token_error(f"invalid code point U+{code:X}", token)
        out.append(chr(code))

    out.append(body[pos:])
    return "".join(out)


def _token_error(message: str, token: Optional[Token]) -> ParseError:
    if token is None:
        return ParseError(message)
    return ParseError(message, token.line, token.column)


KEYWORDS = frozenset({"class", "def", "true", "false", "if", "else", "let", "in"})


def _ident(token: Token) -> str:
    # The contextual lexer only reserves keywords where the grammar expects them.
    if token in KEYWORDS:
        raise _token_error(f"expected identifier, found keyword '{token}'", token)
    return str(token)


@v_args(inline=True)
class ToNamedForm(Transformer):
    """Builds Program/ClassMethod/NamedExpression values from the parse tree."""

    def program(self, *classes: Class) -> Program:
        return Program(list(classes))

    def class_def(self, name: Token, *methods: ClassMethod) -> Class:
        return Class(_ident(name), list(methods))

    def method_def(self, name: Token, params: List[str], body: NamedExpression) -> ClassMethod:
        return ClassMethod(_ident(name), params, body)

    def params(self, *names: Token) -> List[str]:
        return [_ident(name) for name in names]

    def repl_expr(self, expr: NamedExpression) -> NamedExpression:
        return expr

    def call(self, name: Token, this: NamedExpression, *arguments: NamedExpression) -> NamedExpression:
        return MethodCall(_ident(name), this, tuple(arguments))

    def unit(self) -> NamedExpression:
        return Literal(MicaUnit())

    def true(self) -> NamedExpression:
        return Literal(MicaBool(True))

    def false(self) -> NamedExpression:
        return Literal(MicaBool(False))

    def block(self, *steps: NamedExpression) -> NamedExpression:
        return Do(tuple(steps))

    def string(self, token: Token) -> NamedExpression:
        return Literal(MicaString(decode_string(token[1:-1], token)))

    def int(self, token: Token) -> NamedExpression:
        try:
            return Literal(MicaI32(int(token.replace("_", ""))))
        except OverflowError:
            raise _token_error(f"integer literal {token} does not fit in I32", token) from None

    def let_in(self, name: Token, bound: NamedExpression, body: NamedExpression) -> NamedExpression:
        return LetIn(_ident(name), bound, body)

    def if_else(self, cond: NamedExpression, if_true: NamedExpression, if_false: NamedExpression) -> NamedExpression:
        return IfThenElse(cond, if_true, if_false)

    def var(self, name: Token) -> NamedExpression:
        return LocalVariable(_ident(name))


@lru_cache(maxsize=None)
def build_parser() -> Lark:
    grammar = GRAMMAR_PATH.read_text(encoding="utf-8")
    return Lark(grammar, parser="lalr", start=["program", "repl_expr"], propagate_positions=False)


def _syntax_error(exc: UnexpectedInput) -> ParseError:
    line = exc.line if getattr(exc, "line", -1) not in (None, -1) else None
    column = exc.column if getattr(exc, "column", -1) not in (None, -1) else None

    match exc:
        case UnexpectedEOF():
            message = "unexpected end of input"
        case UnexpectedCharacters(char=char):
            message = f"unexpected character {char!r}"
        case UnexpectedToken(token=token):
            if token.type == "$END":
                message = "unexpected end of input"
            else:
                message = f"unexpected token {str(token)!r}"
        case _:
            message = "syntax error"

    return ParseError(message, line, column)


def _parse(source: str, start: str):
    try:
        tree = build_parser().parse(source, start=start)
    except UnexpectedInput as exc:
        raise _syntax_error(exc) from None

    try:
        return ToNamedForm().transform(tree)
    except VisitError as exc:
        if isinstance(exc.orig_exc, MicaError):
            raise exc.orig_exc from None
        raise


def parse_program(source: str) -> Program:
    return _parse(source, "program")


def parse_expression(source: str) -> NamedExpression:
    return _parse(source, "repl_expr")
