from __future__ import annotations

"""Convenience factories for wiring the agent core.

This module contains small helpers to build the default handler registry
and instantiate the orchestrator, the approval resolver and the chat service
from plain configuration objects.

The intent is to keep application wiring and tests concise, while still
allowing deployments to provide their own registry, catalog and policy.
"""

from typing import Any, Mapping, Optional

from .abstraction.base import ChatModel
from .catalog import DEFAULT_CATALOG, OperationCatalog
from .handlers.builtin import PLANNER_HANDLERS, TodoStore
from .handlers.registry import HandlerRegistry
from .operations.formatting import OutputArchive
from .operations.resolver import ApprovalResolver
from .policy.autonomy import AutonomyPolicy
from .policy.models import PolicyConfig
from .repos.interfaces import ChatRepository
from .runtime.models import OrchestratorConfig, OrchestratorDeps
from .runtime.orchestrator import ConversationOrchestrator
from .schemas.domain import ChatMode
from .service import ChatService, ChatServiceDeps


def build_default_registry() -> HandlerRegistry:
    """Build the default ``HandlerRegistry`` with the built-in todo handlers."""
    reg = HandlerRegistry()
    for handler_cls in PLANNER_HANDLERS:
        reg.register(handler_cls())
    return reg


def build_policy(config: Optional[PolicyConfig] = None) -> AutonomyPolicy:
    return AutonomyPolicy(config or PolicyConfig())


def build_orchestrator(
    *,
    model: ChatModel,
    handlers: Optional[HandlerRegistry] = None,
    catalog: Optional[OperationCatalog] = None,
    policy: Optional[AutonomyPolicy] = None,
    archive: Optional[OutputArchive] = None,
    config: Optional[OrchestratorConfig] = None,
) -> ConversationOrchestrator:
    """Construct a ``ConversationOrchestrator`` with default collaborators where omitted."""
    deps = OrchestratorDeps(
        model=model,
        handlers=handlers or build_default_registry(),
        catalog=catalog if catalog is not None else DEFAULT_CATALOG,
        policy=policy or build_policy(),
        archive=archive,
    )
    return ConversationOrchestrator(deps=deps, config=config)


def build_resolver(
    *,
    handlers: HandlerRegistry,
    catalog: Optional[OperationCatalog] = None,
    policy: Optional[AutonomyPolicy] = None,
    archive: Optional[OutputArchive] = None,
    max_message_chars: Optional[int] = None,
) -> ApprovalResolver:
    kwargs = {} if max_message_chars is None else {"max_message_chars": max_message_chars}
    return ApprovalResolver(
        handlers=handlers,
        catalog=catalog if catalog is not None else DEFAULT_CATALOG,
        policy=policy or build_policy(),
        archive=archive,
        **kwargs,
    )


def build_chat_service(
    *,
    chats: ChatRepository,
    model: ChatModel,
    handlers: Optional[HandlerRegistry] = None,
    catalog: Optional[OperationCatalog] = None,
    policy_config: Optional[PolicyConfig] = None,
    config: Optional[OrchestratorConfig] = None,
    resources: Optional[Mapping[str, Any]] = None,
    default_mode: ChatMode = ChatMode.none,
) -> ChatService:
    """
    Wire a ``ChatService`` whose orchestrator and resolver share one registry,
    catalog, policy and output archive.

    ``resources`` defaults to a fresh ``TodoStore`` under ``"todos"``.
    """
    config = config or OrchestratorConfig()
    handlers = handlers or build_default_registry()
    catalog = catalog if catalog is not None else DEFAULT_CATALOG
    policy = build_policy(policy_config)
    archive = OutputArchive(config.max_archived_outputs)
    orchestrator = build_orchestrator(
        model=model, handlers=handlers, catalog=catalog, policy=policy, archive=archive, config=config
    )
    resolver = build_resolver(
        handlers=handlers,
        catalog=catalog,
        policy=policy,
        archive=archive,
        max_message_chars=config.max_message_chars,
    )
    return ChatService(
        deps=ChatServiceDeps(
            chats=chats,
            orchestrator=orchestrator,
            resolver=resolver,
            resources=resources if resources is not None else {"todos": TodoStore()},
            default_mode=default_mode,
            archive=archive,
        )
    )
