"""Transcript to model history conversion.

System messages are dropped. Assistant messages that carry operations get
each operation's summary prepended to their text, so the model sees what
already happened (or is still pending) when it answers again.
"""

from typing import List, Sequence

from ..schemas.domain import Message, MessageRole, Operation

PENDING_PLACEHOLDER = "pending..."


def describe_operation(op: Operation) -> str:
    return op.message or op.analysis or PENDING_PLACEHOLDER


def build_model_history(messages: Sequence[Message]) -> List[Message]:
    history: List[Message] = []
    for message in messages:
        if message.role == MessageRole.system:
            continue
        if not message.operations:
            history.append(message.model_copy(deep=True))
            continue
        parts = [describe_operation(op) for op in message.operations]
        if message.content:
            parts.append(message.content)
        history.append(message.model_copy(update={"content": "\n\n".join(parts), "operations": None}, deep=True))
    return history
