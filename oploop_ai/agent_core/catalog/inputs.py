"""Input models for catalog kinds that ship with a handler or a dynamic risk rule."""

from __future__ import annotations

from typing import List, Optional

from pydantic import Field

from ..schemas.base import BaseSchema


class TodosListInput(BaseSchema):
    pass


class TodosClearInput(BaseSchema):
    pass


class TodosAddInput(BaseSchema):
    name: str = Field(min_length=1, description="The todo text.")


class TodoRefInput(BaseSchema):
    id: str = Field(min_length=1, description="Identifier of an existing todo.")


class TodosReplaceInput(BaseSchema):
    todos: List[str] = Field(description="The complete new list of todo texts.")


class TextSearchInput(BaseSchema):
    glob: str = Field(description="Glob pattern of files to search.")
    regex: Optional[str] = Field(default=None, description="Pattern to look for.")
    limit: int = Field(default=20, ge=1, le=1000)
    transcribe_images: bool = Field(
        default=False, description="Extract text from images through an external vision model."
    )


class TypeDeleteInput(BaseSchema):
    name: str = Field(min_length=1, description="Name of the data type to delete.")


class DataDeleteInput(BaseSchema):
    name: str = Field(min_length=1, description="Name of the data type.")
    id: str = Field(min_length=1, description="Identifier of the record to delete.")
