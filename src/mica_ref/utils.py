from __future__ import annotations

import os
import traceback
from typing import Dict, Optional, TextIO

from .types import ClassID, MicaError, MicaObject, MicaValue

DEBUG_PY_TRACE_ENV = "MICA_DEBUG_PY_TRACE"


def debug_py_trace_enabled() -> bool:
    """True when failures should also print the Python traceback."""
    return os.environ.get(DEBUG_PY_TRACE_ENV, "").strip().lower() in {"1", "true", "yes", "on"}


def render_value(value: MicaValue, class_names: Optional[Dict[ClassID, str]] = None) -> str:
    if isinstance(value, MicaObject) and class_names and value.class_id in class_names:
        return f"<{class_names[value.class_id]} object>"

    return repr(value)


def report_error(exc: MicaError, stream: TextIO) -> None:
    print(f"Error: {exc}", file=stream)

    for frame in exc.mica_trace:
        print(f"  in {frame}", file=stream)

    if debug_py_trace_enabled() and exc.__traceback__ is not None:
        print("\nPython traceback:", file=stream)
        print("".join(traceback.format_tb(exc.__traceback__)), file=stream, end="")
