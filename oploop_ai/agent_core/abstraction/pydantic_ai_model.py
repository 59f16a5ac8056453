"""Pydantic AI adapter for the ``ChatModel`` boundary.

``PydanticAIChatModel`` builds a pydantic-ai ``Agent`` per request, with one
``Tool`` per ``ToolDescriptor``, and walks the agent graph with
``Agent.iter``. Streamed text and thinking deltas become ``textPartial`` and
``reason`` events, tool calls become ``toolStart`` events, and the run usage
is reported as ``requestTokens`` and ``usage`` before ``complete``.

Tool calls are executed by pydantic-ai itself, which calls back into
``ToolDescriptor.invoke`` and hence into the operation manager.
"""

from typing import Any, AsyncIterator, Dict, List, Optional, Tuple, Union

from pydantic_ai import Agent, Tool
from pydantic_ai.messages import (
    FunctionToolCallEvent,
    ModelMessage,
    ModelRequest as PydanticAIModelRequest,
    ModelResponse,
    PartDeltaEvent,
    PartStartEvent,
    TextPart,
    TextPartDelta,
    ThinkingPart,
    ThinkingPartDelta,
    UserPromptPart,
)
from pydantic_ai.models import Model

from ...core.logging_config import get_logger
from ..schemas.domain import Message, MessageRole
from ..schemas.events import (
    ModelCompleteEvent,
    ModelEvent,
    ReasonEvent,
    RequestTokensEvent,
    TextPartialEvent,
    ToolStartEvent,
    UsageEvent,
)
from .base import ModelRequest, ToolDescriptor

logger = get_logger(__name__)

CONTINUATION_PROMPT = "Continue based on the results of the operations above."


def to_pydantic_ai_history(messages: List[Message]) -> Tuple[List[ModelMessage], str]:
    """
    Split a model history into pydantic-ai message history and the prompt.

    The last user message becomes the prompt. When the history ends with an
    assistant message (a follow-up after operations concluded) every message
    stays in the history and ``CONTINUATION_PROMPT`` is used instead.
    """
    prompt = CONTINUATION_PROMPT
    items = list(messages)
    if items and items[-1].role == MessageRole.user:
        prompt = items.pop().content

    history: List[ModelMessage] = []
    for message in items:
        if message.role == MessageRole.user:
            history.append(PydanticAIModelRequest(parts=[UserPromptPart(content=message.content)]))
        elif message.role == MessageRole.assistant:
            history.append(ModelResponse(parts=[TextPart(content=message.content)]))
    return history, prompt


def to_pydantic_ai_tool(descriptor: ToolDescriptor) -> Tool:
    async def call(**kwargs: Any) -> str:
        return await descriptor.invoke(kwargs)

    return Tool.from_schema(
        call,
        name=descriptor.name,
        description=descriptor.description,
        json_schema=descriptor.parameters_json_schema,
    )


class PydanticAIChatModel:
    """``ChatModel`` implementation backed by a pydantic-ai ``Agent``.

    Args:
        model: A pydantic-ai model name (``"openai:gpt-4o"``) or ``Model``
            instance; a string ``ModelRequest.model`` overrides a default name.
        system_prompt: Default system prompt when the request carries none.
    """

    def __init__(self, model: Union[str, Model], system_prompt: Optional[str] = None) -> None:
        self._model = model
        self._system_prompt = system_prompt

    def _resolve_model(self, request: ModelRequest) -> Union[str, Model]:
        if request.model and isinstance(self._model, str):
            return request.model
        return self._model

    async def stream(self, request: ModelRequest) -> AsyncIterator[ModelEvent]:
        system_prompt = request.system_prompt or self._system_prompt
        kwargs: Dict[str, Any] = {"tools": [to_pydantic_ai_tool(t) for t in request.tools]}
        if system_prompt:
            kwargs["system_prompt"] = system_prompt
        agent = Agent(self._resolve_model(request), **kwargs)

        history, prompt = to_pydantic_ai_history(request.messages)
        logger.debug(f"Running pydantic-ai agent: history={len(history)} tools={len(request.tools)}")

        async with agent.iter(prompt, message_history=history) as agent_run:
            async for node in agent_run:
                if Agent.is_model_request_node(node):
                    async with node.stream(agent_run.ctx) as request_stream:
                        async for event in request_stream:
                            converted = _convert_part_event(event)
                            if converted is not None:
                                yield converted
                elif Agent.is_call_tools_node(node):
                    async with node.stream(agent_run.ctx) as handle_stream:
                        async for event in handle_stream:
                            if isinstance(event, FunctionToolCallEvent):
                                yield ToolStartEvent(name=event.part.tool_name, input=event.part.args_as_dict())

            usage = _run_usage(agent_run)
            details = getattr(usage, "details", None) or {}
            yield RequestTokensEvent(tokens=usage.input_tokens or 0)
            yield UsageEvent(
                input_tokens=usage.input_tokens or 0,
                output_tokens=usage.output_tokens or 0,
                reasoning_tokens=int(details.get("reasoning_tokens", 0)),
            )
        yield ModelCompleteEvent()


def _run_usage(agent_run: Any) -> Any:
    # ``AgentRun.usage`` is a method on older releases and a property on newer ones.
    usage = agent_run.usage
    if callable(usage):
        usage = usage()
    return usage


def _convert_part_event(event: Any) -> Optional[ModelEvent]:
    if isinstance(event, PartStartEvent):
        if isinstance(event.part, TextPart) and event.part.content:
            return TextPartialEvent(content=event.part.content)
        if isinstance(event.part, ThinkingPart) and event.part.content:
            return ReasonEvent(content=event.part.content)
    elif isinstance(event, PartDeltaEvent):
        if isinstance(event.delta, TextPartDelta) and event.delta.content_delta:
            return TextPartialEvent(content=event.delta.content_delta)
        if isinstance(event.delta, ThinkingPartDelta) and event.delta.content_delta:
            return ReasonEvent(content=event.delta.content_delta)
    return None
