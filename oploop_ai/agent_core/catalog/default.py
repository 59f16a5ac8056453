"""Default operation catalog.

One entry per operation kind the assistant can propose, grouped by the
toolset that offers it. The risk column drives the autonomy policy; three
kinds resolve their risk from the input and the current data store state.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from ..schemas.domain import OperationRiskKind as R
from .inputs import (
    DataDeleteInput,
    TextSearchInput,
    TodoRefInput,
    TodosAddInput,
    TodosClearInput,
    TodosListInput,
    TodosReplaceInput,
    TypeDeleteInput,
)
from .models import OperationCatalog, OperationSpec, RecordLookup


def _records(ctx: Any) -> Optional[RecordLookup]:
    resources = getattr(ctx, "resources", None) or {}
    return resources.get("data")


def text_search_risk(input: Mapping[str, Any], ctx: Any) -> R:
    # Image transcription sends file content to an external model.
    return R.read if input.get("transcribe_images") else R.local


def type_delete_risk(input: Mapping[str, Any], ctx: Any) -> R:
    records = _records(ctx)
    name = input.get("name")
    if records is None or not name:
        return R.delete
    return R.update if records.count(str(name)) == 0 else R.delete


def data_delete_risk(input: Mapping[str, Any], ctx: Any) -> R:
    records = _records(ctx)
    name, record_id = input.get("name"), input.get("id")
    if records is None or not name or not record_id:
        return R.delete
    return R.delete if records.exists(str(name), str(record_id)) else R.local


DEFAULT_SPECS = (
    # architect
    OperationSpec("type_info", R.local, "Show the definition of a data type."),
    OperationSpec("type_update", R.update, "Change fields of an existing data type."),
    OperationSpec("type_create", R.create, "Define a new data type."),
    OperationSpec("type_import", R.read, "Infer data types from files."),
    OperationSpec(
        "type_delete", R.delete, "Delete a data type.", risk_fn=type_delete_risk, input_model=TypeDeleteInput
    ),
    # artist
    OperationSpec("image_generate", R.create, "Generate images from a prompt."),
    OperationSpec("image_edit", R.update, "Edit an existing image."),
    OperationSpec("image_analyze", R.read, "Answer a question about one or more images."),
    OperationSpec("image_describe", R.read, "Describe an image."),
    OperationSpec("image_find", R.read, "Find images matching a description."),
    OperationSpec("image_attach", R.create, "Attach an image to the conversation."),
    # clerk
    OperationSpec("file_search", R.local, "Find files by name pattern."),
    OperationSpec("file_summary", R.read, "Summarize a file."),
    OperationSpec("file_index", R.create, "Index files into the knowledge base."),
    OperationSpec("file_create", R.create, "Create a new file."),
    OperationSpec("file_copy", R.create, "Copy files."),
    OperationSpec("file_move", R.update, "Move or rename files."),
    OperationSpec("file_stats", R.local, "Show file statistics."),
    OperationSpec("file_delete", R.delete, "Delete a file."),
    OperationSpec("file_read", R.read, "Read the contents of a file."),
    OperationSpec(
        "text_search",
        R.local,
        "Search file contents for a pattern.",
        risk_fn=text_search_risk,
        input_model=TextSearchInput,
    ),
    OperationSpec("dir_create", R.create, "Create a directory."),
    # dba
    OperationSpec("data_create", R.create, "Create a record."),
    OperationSpec("data_update", R.update, "Update a record."),
    OperationSpec(
        "data_delete", R.delete, "Delete a record.", risk_fn=data_delete_risk, input_model=DataDeleteInput
    ),
    OperationSpec("data_select", R.local, "Query records."),
    OperationSpec("data_update_many", R.update, "Update all records matching a filter."),
    OperationSpec("data_delete_many", R.delete, "Delete all records matching a filter."),
    OperationSpec("data_aggregate", R.local, "Aggregate records."),
    # internet
    OperationSpec("web_search", R.read, "Search the web."),
    OperationSpec("web_get_page", R.read, "Fetch a web page."),
    OperationSpec("web_api_call", R.read, "Call a web API."),
    # librarian
    OperationSpec("knowledge_search", R.read, "Search the knowledge base."),
    OperationSpec("knowledge_sources", R.local, "List knowledge sources."),
    OperationSpec("knowledge_add", R.create, "Add an entry to the knowledge base."),
    OperationSpec("knowledge_delete", R.delete, "Delete knowledge entries."),
    # planner
    OperationSpec("todos_clear", R.delete, "Remove every todo.", input_model=TodosClearInput),
    OperationSpec("todos_list", R.local, "List the todos.", input_model=TodosListInput),
    OperationSpec("todos_add", R.create, "Add a todo.", input_model=TodosAddInput),
    OperationSpec("todos_done", R.update, "Mark a todo as done.", input_model=TodoRefInput),
    OperationSpec("todos_get", R.local, "Show a single todo.", input_model=TodoRefInput),
    OperationSpec("todos_remove", R.delete, "Remove a todo.", input_model=TodoRefInput),
    OperationSpec("todos_replace", R.update, "Replace the whole todo list.", input_model=TodosReplaceInput),
    # secretary
    OperationSpec("assistant_switch", R.update, "Switch the chat to another assistant persona."),
    OperationSpec("assistant_update", R.update, "Update an assistant persona."),
    OperationSpec("assistant_add", R.create, "Add an assistant persona."),
    OperationSpec("memory_list", R.local, "List remembered facts."),
    OperationSpec("memory_update", R.update, "Update remembered facts."),
    # utility
    OperationSpec("ask", R.local, "Ask the user a question."),
)

DEFAULT_CATALOG = OperationCatalog(DEFAULT_SPECS)
