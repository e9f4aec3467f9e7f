"""Interactive REPL for Mica, powered by prompt_toolkit."""

from __future__ import annotations

import os
import re
import sys
from typing import Dict, List, TextIO

from prompt_toolkit import PromptSession
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.history import InMemoryHistory
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.shortcuts import clear

from .evaluator import VM
from .runner import DEFAULT_ENTRY, repl_eval
from .types import ClassID, MicaError, MicaType, MicaUnit
from .utils import DEBUG_PY_TRACE_ENV, debug_py_trace_enabled, render_value, report_error

# Zero-width and invisible characters to strip from input.
_INVISIBLE_RE = re.compile("[\u200b\u200c\u200d\ufeff\u00a0\r]")

# Slash commands: name => (description, argument_hint).
_SLASH_CMDS = {
    "/classes": ("List loaded classes", ""),
    "/clear": ("Clear the terminal screen", ""),
    "/py-traceback": ("Toggle Python traceback on errors", "[on|off]"),
    "/reset": ("Reset the REPL environment", ""),
    "/run": ("Call main on a loaded class", f"[{DEFAULT_ENTRY}]"),
}


class ReplState:
    """Session VM plus the classes loaded into it, by name."""

    def __init__(self, out: TextIO = sys.stdout):
        self.out = out
        self.reset()

    def reset(self) -> None:
        self.vm = VM(stdout=self.out)
        self.classes: Dict[str, ClassID] = {}


def bracket_depth(text: str) -> int:
    """Net count of open `{`/`(` outside strings and comments."""
    depth = 0
    i = 0

    while i < len(text):
        ch = text[i]

        if ch == '"':
            i += 1
            while i < len(text) and text[i] not in '"\n':
                i += 2 if text[i] == "\\" else 1
        elif text.startswith("//", i):
            while i < len(text) and text[i] != "\n":
                i += 1
        elif ch in "{(":
            depth += 1
        elif ch in "})":
            depth -= 1

        i += 1

    return depth


class _SlashCompleter(Completer):
    """Autocomplete slash commands on the primary prompt."""

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor
        if not text.startswith("/"):
            return

        for cmd, (desc, _hint) in _SLASH_CMDS.items():
            if cmd.startswith(text):
                yield Completion(
                    cmd,
                    start_position=-len(text),
                    display_meta=desc,
                )


def handle_slash(line: str, state: ReplState) -> bool:
    """Handle slash commands. Returns True if the line was a command."""
    stripped = line.strip()
    if not stripped.startswith("/"):
        return False

    parts = stripped.split(None, 1)
    cmd = parts[0]
    arg = parts[1].strip() if len(parts) > 1 else ""

    if cmd == "/clear":
        clear()
        return True

    if cmd == "/classes":
        if not state.classes:
            print("No classes loaded.", file=state.out)
        for name, class_id in sorted(state.classes.items(), key=lambda item: item[1]):
            methods: List[str] = sorted(state.vm.methods.get(MicaType.object(class_id), {}))
            print(f"{name} ({class_id}): {', '.join(methods) or '-'}", file=state.out)
        return True

    if cmd == "/py-traceback":
        if arg.lower() in ("on", "1", "true", "yes"):
            os.environ[DEBUG_PY_TRACE_ENV] = "1"
        elif arg.lower() in ("off", "0", "false", "no"):
            os.environ.pop(DEBUG_PY_TRACE_ENV, None)
        elif arg == "":
            # Toggle.
            if debug_py_trace_enabled():
                os.environ.pop(DEBUG_PY_TRACE_ENV, None)
            else:
                os.environ[DEBUG_PY_TRACE_ENV] = "1"
        else:
            print("Usage: /py-traceback [on|off]", file=sys.stderr)
            return True

        state_label = "on" if debug_py_trace_enabled() else "off"
        print(f"Python traceback: {state_label}", file=state.out)
        return True

    if cmd == "/reset":
        state.reset()
        print("Environment reset.", file=state.out)
        return True

    if cmd == "/run":
        name = arg or DEFAULT_ENTRY
        class_id = state.classes.get(name)
        if class_id is None:
            print(f"Error: no class named `{name}`", file=sys.stderr)
            return True
        try:
            result = state.vm.run(class_id)
        except MicaError as exc:
            report_error(exc, sys.stderr)
            return True
        if not isinstance(result, MicaUnit):
            print(render_value(result, state.vm.class_names), file=state.out)
        return True

    print(f"Unknown command: {cmd}", file=sys.stderr)
    return True


def submit(text: str, state: ReplState) -> None:
    """Evaluate one submission and print its result or error."""
    try:
        result, loaded = repl_eval(text, state.vm)
    except MicaError as exc:
        report_error(exc, sys.stderr)
        return

    if loaded:
        state.classes.update(loaded)
        print(f"Loaded {', '.join(loaded)}.", file=state.out)
        return

    if result is not None and not isinstance(result, MicaUnit):
        print(render_value(result, state.vm.class_names), file=state.out)


def _normalize(text: str) -> str:
    """Strip invisible characters from input."""
    return _INVISIBLE_RE.sub("", text)


def repl() -> None:
    """Interactive read-eval-print loop with prompt_toolkit."""
    state = ReplState()
    history = InMemoryHistory()
    bindings = KeyBindings()

    @bindings.add("enter")
    def _enter(event):
        buf = event.app.current_buffer

        # Open braces or parens => keep reading; otherwise accept.
        if bracket_depth(buf.text) > 0:
            buf.insert_text("\n" + "    " * bracket_depth(buf.text))
            return

        buf.validate_and_handle()

    session: PromptSession[str] = PromptSession(
        history=history,
        completer=_SlashCompleter(),
        complete_while_typing=True,
        key_bindings=bindings,
        multiline=True,
        prompt_continuation="... ",
    )

    print("mica repl (Ctrl-D to exit, / for commands)")

    while True:
        try:
            text = session.prompt(">>> ")
        except EOFError:
            print()
            break
        except KeyboardInterrupt:
            print("KeyboardInterrupt")
            continue

        text = _normalize(text)
        if not text.strip():
            continue

        if handle_slash(text, state):
            continue

        submit(text, state)


if __name__ == "__main__":
    repl()
