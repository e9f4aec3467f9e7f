from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Dict, List, Tuple

from .program import Program
from .resolver import method_scope, resolve
from .runtime import Custom, MethodTable
from .types import ClassID, DuplicateClassError, MicaError, MicaType

if TYPE_CHECKING:
    from .evaluator import VM

logger = logging.getLogger(__name__)


def load_program(vm: VM, program: Program) -> Dict[str, ClassID]:
    """Register every class of `program` in `vm` and return their ClassIDs.

    All method bodies are resolved before anything is committed, so a
    program with one bad method leaves the VM's dispatch table untouched.
    """
    known = set(vm.class_names.values())
    staged: List[Tuple[str, ClassID, MethodTable]] = []

    for cls in program.classes:
        if cls.name in known:
            raise DuplicateClassError(cls.name)
        known.add(cls.name)

        class_id = vm.new_class_id()
        table: MethodTable = {}

        for method in cls.methods:
            owner = f"{cls.name}.{method.name}"
            try:
                body = resolve(method.body, method_scope(method.parameters))
            except MicaError as exc:
                exc.mica_trace.append(owner)
                raise
            # Later definitions of the same name replace earlier ones.
            table[method.name] = Custom(body, owner, len(method.parameters))

        staged.append((cls.name, class_id, table))

    class_ids: Dict[str, ClassID] = {}

    for name, class_id, table in staged:
        vm.methods[MicaType.object(class_id)] = table
        vm.class_names[class_id] = name
        class_ids[name] = class_id
        logger.debug("loaded class %s as %s with %d method(s)", name, class_id, len(table))

    return class_ids
