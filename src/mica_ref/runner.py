from __future__ import annotations

import logging
import re
import sys
import textwrap
from pathlib import Path
from typing import Dict, Optional, TextIO, Tuple

from .ast import pretty
from .evaluator import VM
from .parser import parse_expression, parse_program
from .resolver import method_scope, resolve
from .types import ClassID, MicaError, MicaValue, MissingEntryPointError
from .utils import report_error

logger = logging.getLogger(__name__)

DEFAULT_ENTRY = "Main"
_CLASS_DEF_RE = re.compile(r"\s*class\b")

def run(src: str, entry: str = DEFAULT_ENTRY, stdout: Optional[TextIO] = None, vm: Optional[VM] = None) -> MicaValue:
    """Parse and load `src`, then call `main` on a fresh instance of `entry`."""
    program = parse_program(src)

    if vm is None:
        vm = VM(stdout=stdout)

    class_ids = vm.load_program(program)
    class_id = class_ids.get(entry)

    if class_id is None:
        raise MissingEntryPointError(f"program has no `{entry}` class")

    logger.debug("entry class %s has id %s", entry, class_id)
    return vm.run(class_id)

def repl_eval(src: str, vm: VM) -> Tuple[Optional[MicaValue], Dict[str, ClassID]]:
    """Evaluate one REPL submission against a long-lived VM.

    Class definitions are loaded incrementally and return their new ids; any
    other input is a single expression evaluated with no variables in scope.
    """
    if _CLASS_DEF_RE.match(src):
        return None, vm.load_program(parse_program(src))

    body = resolve(parse_expression(src))
    return vm.evaluate(body), {}

def dump_ast(src: str, stream: TextIO) -> None:
    """Print every method body in resolved form."""
    program = parse_program(src)

    for cls in program.classes:
        print(f"class {cls.name}", file=stream)

        for method in cls.methods:
            params = " ".join(method.parameters)
            print(f"  def {method.name} {params}".rstrip(), file=stream)
            body = resolve(method.body, method_scope(method.parameters))
            print(textwrap.indent(pretty(body), "    "), file=stream)

def _load_source(arg: Optional[str]) -> str:
    """
    Resolve CLI input into source text.
    - None or "-" => read stdin.
    - Otherwise the argument names a source file.
    """

    if arg is None or arg == "-":
        data = sys.stdin.read()
        if not data:
            raise SystemExit("No input provided on stdin")
        return data

    candidate = Path(arg)
    try:
        return candidate.read_text(encoding="utf-8")
    except OSError as exc:
        raise SystemExit(f"Error: failed to read source file: {exc}") from None

def main(argv: Optional[list[str]] = None) -> None:
    entry = DEFAULT_ENTRY
    dump = False
    arg = None
    it = iter(sys.argv[1:] if argv is None else argv)

    for token in it:
        if token == "--dump-ast":
            dump = True
            continue

        if token == "--verbose":
            logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
            continue

        if token.startswith("--entry="):
            entry = token.split("=", 1)[1]
            continue

        if token == "--entry":
            try:
                entry = next(it)
            except StopIteration:
                raise SystemExit("--entry flag requires a class name") from None
            continue

        if arg is None:
            arg = token
        else:
            raise SystemExit("Error: too many command line arguments")

    source = _load_source(arg)

    try:
        if dump:
            dump_ast(source, sys.stdout)
        else:
            run(source, entry=entry)
    except MicaError as exc:
        sys.stdout.flush()
        report_error(exc, sys.stderr)
        raise SystemExit(1) from None

if __name__ == "__main__":
    main()
