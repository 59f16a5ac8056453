"""Expose registered operation kinds to the model as callable tools.

Each tool proposes exactly one operation: its arguments become the
operation input (plus the optional ``depends_on`` list) and are routed
through ``OperationManager.handle``. The tool result handed back to the
model is the operation's rendered summary, so the model sees the same text
for executed, pending and failed operations.
"""

import copy
import logging
from typing import Any, Dict, Iterable, List

from ..abstraction.base import ToolDescriptor
from ..catalog import OperationCatalog
from ..handlers.base import HandlerContext
from ..operations.manager import OperationManager

logger = logging.getLogger(__name__)

DEPENDS_ON_PROPERTY: Dict[str, Any] = {
    "type": "array",
    "items": {"type": "integer", "minimum": 0},
    "description": "Indices of earlier operations of this turn that must be done before this one runs.",
}


def tool_parameters_schema(catalog: OperationCatalog, kind: str) -> Dict[str, Any]:
    """JSON schema of the tool arguments for ``kind``."""
    spec = catalog.get(kind)
    if spec is not None and spec.input_model is not None:
        schema = copy.deepcopy(spec.input_model.model_json_schema())
    else:
        schema = {"type": "object", "properties": {}}
    schema.setdefault("type", "object")
    schema.setdefault("properties", {})
    schema["properties"]["depends_on"] = dict(DEPENDS_ON_PROPERTY)
    return schema


def build_tool_descriptors(
    *,
    catalog: OperationCatalog,
    manager: OperationManager,
    ctx: HandlerContext,
    kinds: Iterable[str],
) -> List[ToolDescriptor]:
    """Build one tool per operation kind, bound to ``manager`` and ``ctx``."""
    tools: List[ToolDescriptor] = []
    for kind in kinds:
        spec = catalog.get(kind)
        description = spec.description if spec is not None and spec.description else kind
        tools.append(
            ToolDescriptor(
                name=kind,
                description=description,
                parameters_json_schema=tool_parameters_schema(catalog, kind),
                invoke=_make_invoke(kind, manager, ctx),
            )
        )
    return tools


def _make_invoke(kind: str, manager: OperationManager, ctx: HandlerContext):
    async def invoke(args: Dict[str, Any]) -> str:
        args = dict(args or {})
        depends_on = args.pop("depends_on", None)
        if depends_on is None:
            depends_on = []
        op = await manager.handle({"type": kind, "input": args, "depends_on": depends_on}, ctx)
        logger.debug(f"Tool {kind} proposed operation with status {op.status.value}")
        return op.message or op.analysis or f"Operation {kind} is {op.status.value}."

    return invoke
