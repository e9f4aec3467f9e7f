from __future__ import annotations

from textwrap import dedent
from typing import Optional

import pytest

from mica_ref.ast import Do, IfThenElse, LetIn, Literal, LocalVariable, MethodCall, pretty
from mica_ref.parser import decode_string, parse_expression, parse_program
from mica_ref.program import Class, ClassMethod
from mica_ref.types import MicaBool, MicaI32, MicaString, MicaUnit
from tests.support.harness import ParseError


def var(name: str) -> LocalVariable:
    return LocalVariable(name)


def s(text: str) -> Literal:
    return Literal(MicaString(text))


EXPRESSION_CASES = [
    pytest.param("x", var("x"), id="variable"),
    pytest.param("()", Literal(MicaUnit()), id="unit"),
    pytest.param("true", Literal(MicaBool(True)), id="true"),
    pytest.param("false", Literal(MicaBool(False)), id="false"),
    pytest.param("42", Literal(MicaI32(42)), id="int"),
    pytest.param("+7", Literal(MicaI32(7)), id="int-plus"),
    pytest.param("1_000", Literal(MicaI32(1000)), id="int-underscore"),
    pytest.param('"hi"', s("hi"), id="string"),
    pytest.param("(x)", var("x"), id="parenthesized"),
    pytest.param("f x", MethodCall("f", var("x")), id="call-no-args"),
    pytest.param("f x y z", MethodCall("f", var("x"), (var("y"), var("z"))), id="call-args-are-flat"),
    pytest.param(
        "f (g x) y",
        MethodCall("f", MethodCall("g", var("x")), (var("y"),)),
        id="call-nested-parens",
    ),
    pytest.param("{}", Do(()), id="empty-block"),
    pytest.param("{ a; b }", Do((var("a"), var("b"))), id="block"),
    pytest.param(
        "let x = 1 in f x",
        LetIn("x", Literal(MicaI32(1)), MethodCall("f", var("x"))),
        id="let-body-is-expression",
    ),
    pytest.param(
        "f let x = 1 in g x y",
        MethodCall("f", LetIn("x", Literal(MicaI32(1)), MethodCall("g", var("x"), (var("y"),)))),
        id="let-body-is-greedy",
    ),
    pytest.param(
        'if (c) { "a" } else { "b" }',
        IfThenElse(var("c"), Do((s("a"),)), Do((s("b"),))),
        id="if-else",
    ),
    pytest.param(
        "concat x // trailing comment\n  y",
        MethodCall("concat", var("x"), (var("y"),)),
        id="line-comment",
    ),
    pytest.param("inner", var("inner"), id="keyword-prefix-identifier"),
    pytest.param("_tmp1", var("_tmp1"), id="underscore-identifier"),
]


@pytest.mark.parametrize("source, expected", EXPRESSION_CASES)
def test_parse_expression(source: str, expected) -> None:
    assert parse_expression(source) == expected


ERROR_CASES = [
    pytest.param("let = 1 in x", id="let-missing-name"),
    pytest.param("let in = 1 in in", id="let-keyword-name"),
    pytest.param("if (x) { 1 }", id="if-missing-else"),
    pytest.param("if x { 1 } else { 2 }", id="if-condition-needs-parens"),
    pytest.param("{ a; }", id="block-trailing-semicolon"),
    pytest.param("f x )", id="stray-paren"),
    pytest.param('"unterminated', id="unterminated-string"),
    pytest.param("2147483648", id="i32-overflow"),
    pytest.param("-2147483649", id="i32-underflow"),
    pytest.param("#", id="bad-character"),
    pytest.param("", id="empty-input"),
]


@pytest.mark.parametrize("source", ERROR_CASES)
def test_parse_expression_errors(source: str) -> None:
    with pytest.raises(ParseError):
        parse_expression(source)


def test_parse_program_structure() -> None:
    program = parse_program(
        dedent(
            """\
            // leading comment
            class Main {
              def main = greet this "Ada";
              def greet name = concat "Hi " name;
            }

            class Empty { }
            """
        )
    )

    assert program.classes == [
        Class(
            "Main",
            [
                ClassMethod("main", [], MethodCall("greet", var("this"), (s("Ada"),))),
                ClassMethod("greet", ["name"], MethodCall("concat", s("Hi "), (var("name"),))),
            ],
        ),
        Class("Empty", []),
    ]


def test_parse_empty_program() -> None:
    assert parse_program("  // nothing here\n").classes == []


@pytest.mark.parametrize(
    "source",
    [
        pytest.param("class Main { def main = 1 }", id="missing-semicolon"),
        pytest.param("class { }", id="missing-class-name"),
        pytest.param("class Main { main = 1; }", id="missing-def"),
        pytest.param("class Main { def if = 1; }", id="keyword-method-name"),
        pytest.param("class Main { def main let = 1; }", id="keyword-parameter"),
    ],
)
def test_parse_program_errors(source: str) -> None:
    with pytest.raises(ParseError):
        parse_program(source)


def test_parse_error_carries_position() -> None:
    with pytest.raises(ParseError) as exc_info:
        parse_program("class Main {\n  def main = 1\n}")

    err = exc_info.value
    assert err.line == 3
    assert err.column == 1
    assert "line 3" in str(err)


@pytest.mark.parametrize(
    "body, expected",
    [
        pytest.param(r"plain", "plain", id="plain"),
        pytest.param(r"a\nb", "a\nb", id="newline"),
        pytest.param(r"\'\"\\", "'\"\\", id="quotes-and-backslash"),
        pytest.param(r"\b\f\v\r\t", "\x08\x0c\x0b\r\t", id="control"),
        pytest.param(r"\u00e9", "\u00e9", id="unicode-4"),
        pytest.param(r"\u{e9}", "\u00e9", id="unicode-braced"),
        pytest.param(r"\0", "\0", id="nul"),
    ],
)
def test_decode_string(body: str, expected: str) -> None:
    assert decode_string(body) == expected


@pytest.mark.parametrize(
    "body, message",
    [
        pytest.param(r"\01", "invalid escape", id="nul-before-digit"),
        pytest.param(r"\u{110000}", "invalid code point", id="beyond-unicode"),
        pytest.param(r"\ud800", "invalid code point", id="surrogate"),
        pytest.param(r"\x4", "invalid escape", id="short-hex"),
    ],
)
def test_decode_string_errors(body: str, message: str) -> None:
    with pytest.raises(ParseError, match=message):
        decode_string(body)


def test_pretty_outline_of_named_form() -> None:
    outline = pretty(parse_expression('let x = "a" in concat x x'))

    assert outline.splitlines() == [
        "let x",
        '  literal "a"',
        "  call concat",
        "    var x",
        "    var x",
    ]


def test_pretty_rejects_non_expression() -> None:
    with pytest.raises(TypeError):
        pretty(object())


def _first_method_body(source: str) -> Optional[object]:
    return parse_program(source).classes[0].methods[0].body


def test_let_inside_block_ends_at_semicolon() -> None:
    body = _first_method_body("class Main { def main = { let x = 1 in x; y }; }")

    assert body == Do((LetIn("x", Literal(MicaI32(1)), var("x")), var("y")))
