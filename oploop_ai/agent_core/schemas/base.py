"""Shared pydantic base for chat, operation and event records."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """
    Base model of every record that crosses the engine's boundaries.

    Transcripts, operations and stream events are stored as JSON and sent to
    clients with camelCase wire names (``needApproval``), while Python code
    uses snake_case field names. Both spellings are accepted on input; any
    other key is rejected so a stale or misspelled field in a stored
    transcript or a tool payload fails loudly instead of being dropped.
    """

    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
    )
