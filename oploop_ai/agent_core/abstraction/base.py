from __future__ import annotations

"""Model boundary used by the conversation orchestrator.

A ``ChatModel`` turns a message history plus a set of callable tools into an
async stream of ``ModelEvent`` values. Tool calls happen inside the stream:
the model implementation invokes ``ToolDescriptor.invoke`` and feeds the
returned text back to the model, so by the time the stream ends every tool
call of the turn has been routed through the operation manager.
"""

from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Protocol

from ..schemas.domain import Message
from ..schemas.events import ModelEvent


@dataclass(frozen=True)
class ToolDescriptor:
    """A tool offered to the model.

    Attributes:
        name: Tool name, equal to the operation kind it proposes.
        description: Description shown to the model.
        parameters_json_schema: JSON schema of the tool arguments.
        invoke: Coroutine receiving the raw arguments and returning the text
            handed back to the model.
    """

    name: str
    description: str
    parameters_json_schema: Dict[str, Any]
    invoke: Callable[[Dict[str, Any]], Awaitable[str]]


@dataclass(frozen=True)
class ModelRequest:
    """Input of a single model turn."""

    messages: List[Message]
    tools: List[ToolDescriptor] = field(default_factory=list)
    system_prompt: Optional[str] = None
    model: Optional[str] = None


class ChatModel(Protocol):
    """Protocol for streaming, tool-calling chat models."""

    def stream(self, request: ModelRequest) -> AsyncIterator[ModelEvent]: ...
