"""Load-time description of a program, before name resolution."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from .ast import NamedExpression


@dataclass
class ClassMethod:
    name: str
    parameters: List[str]
    body: NamedExpression


@dataclass
class Class:
    name: str
    methods: List[ClassMethod] = field(default_factory=list)


@dataclass
class Program:
    classes: List[Class] = field(default_factory=list)
