"""Model boundary: ``ChatModel`` protocol, tool descriptors and the pydantic-ai adapter."""

from .base import ChatModel, ModelRequest, ToolDescriptor

__all__ = ["ChatModel", "ModelRequest", "ToolDescriptor"]
