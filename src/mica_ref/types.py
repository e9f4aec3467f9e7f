from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional
from typing_extensions import TypeAlias

# ---------- Class handles & dispatch types ----------

@dataclass(frozen=True, order=True)
class ClassID:
    value: int

    def __str__(self) -> str:
        return str(self.value)

@dataclass(frozen=True)
class MicaType:
    """Dispatch key: a value's runtime category, plus its class for objects."""
    tag: str
    class_id: Optional[ClassID] = None

    @classmethod
    def object(cls, class_id: ClassID) -> MicaType:
        return cls("Object", class_id)

    def __str__(self) -> str:
        if self.class_id is not None:
            return f"{self.tag}({self.class_id})"
        return self.tag

UNIT_TYPE = MicaType("Unit")
BOOL_TYPE = MicaType("Bool")
I32_TYPE = MicaType("I32")
STRING_TYPE = MicaType("String")

I32_MIN = -(2 ** 31)
I32_MAX = 2 ** 31 - 1

# ---------- Value Model ----------

@dataclass(frozen=True)
class MicaUnit:
    def typ(self) -> MicaType:
        return UNIT_TYPE
    def __repr__(self) -> str:
        return "()"

@dataclass(frozen=True)
class MicaBool:
    value: bool
    def typ(self) -> MicaType:
        return BOOL_TYPE
    def __repr__(self) -> str:
        return "true" if self.value else "false"

@dataclass(frozen=True)
class MicaI32:
    value: int

    def __post_init__(self) -> None:
        if not I32_MIN <= self.value <= I32_MAX:
            raise OverflowError(f"{self.value} does not fit in I32")

    def typ(self) -> MicaType:
        return I32_TYPE
    def __repr__(self) -> str:
        return str(self.value)

@dataclass(frozen=True)
class MicaString:
    value: str
    def typ(self) -> MicaType:
        return STRING_TYPE
    def __repr__(self) -> str:
        return f'"{self.value}"'

@dataclass(eq=False)
class MicaObject:
    # Instances are shared by reference; the class never changes after construction.
    class_id: ClassID
    properties: Dict[str, 'MicaValue'] = field(default_factory=dict)

    def typ(self) -> MicaType:
        return MicaType.object(self.class_id)

    def __repr__(self) -> str:
        return f"<object of class {self.class_id}>"

MicaValue: TypeAlias = MicaUnit | MicaBool | MicaI32 | MicaString | MicaObject

# ---------- Exceptions ----------

class MicaError(Exception):
    """Base of every failure the interpreter reports to its caller."""
    mica_trace: List[str]

    def __init__(self, message: str):
        super().__init__(message)
        self.mica_trace = []

class ParseError(MicaError):
    def __init__(self, message: str, line: Optional[int] = None, column: Optional[int] = None):
        super().__init__(message)
        self.line = line
        self.column = column

    def __str__(self) -> str:
        msg = super().__str__()

        if self.line is None:
            return msg

        if self.column is None:
            return f"{msg} (line {self.line})"

        return f"{msg} (line {self.line}, col {self.column})"

class UnboundVariableError(MicaError):
    def __init__(self, name: str):
        super().__init__(f"variable `{name}` is not defined")
        self.name = name

class LoadError(MicaError):
    pass

class DuplicateClassError(LoadError):
    def __init__(self, name: str):
        super().__init__(f"class `{name}` is already defined")
        self.name = name

class MissingEntryPointError(MicaError):
    pass

class MicaRuntimeError(MicaError):
    pass

class NoSuchMethodError(MicaRuntimeError):
    def __init__(self, typ: MicaType, name: str):
        super().__init__(f"type `{typ}` has no method named `{name}`")
        self.typ = typ
        self.name = name

class TypeMismatchError(MicaRuntimeError):
    pass

class ArityMismatchError(MicaRuntimeError):
    pass

class MicaInternalError(MicaError):
    """Raised when the resolver and evaluator disagree; never a user error."""

class IndexOutOfRangeError(MicaInternalError):
    def __init__(self, index: int, depth: int):
        super().__init__(f"De Bruijn index {index} is out of range (stack depth {depth})")
        self.index = index
        self.depth = depth
