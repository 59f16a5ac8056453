from __future__ import annotations

from oploop_ai.agent_core.catalog import DEFAULT_CATALOG
from oploop_ai.agent_core.factory import build_chat_service, build_orchestrator, build_policy, build_resolver
from oploop_ai.agent_core.handlers.builtin import TodoStore
from oploop_ai.agent_core.policy import PolicyConfig
from oploop_ai.agent_core.repos.memory import InMemoryChatRepository
from oploop_ai.agent_core.runtime import OrchestratorConfig
from oploop_ai.agent_core.schemas.domain import ChatMode


def test_build_policy_uses_given_config() -> None:
    cfg = PolicyConfig(version="custom")
    assert build_policy(cfg).config is cfg
    assert build_policy().config.version == "policy-v1"


def test_build_orchestrator_defaults(make_model) -> None:
    orch = build_orchestrator(model=make_model(), config=OrchestratorConfig(max_follow_up_turns=3))
    assert orch.config.max_follow_up_turns == 3
    assert orch._deps.catalog is DEFAULT_CATALOG
    assert orch._deps.handlers.has("todos_add")


def test_build_resolver_passes_message_limit(registry) -> None:
    resolver = build_resolver(handlers=registry, max_message_chars=123)
    assert resolver._max_message_chars == 123
    assert resolver._catalog is DEFAULT_CATALOG


def test_build_chat_service_shares_collaborators(make_model) -> None:
    service = build_chat_service(
        chats=InMemoryChatRepository(), model=make_model(), default_mode=ChatMode.read
    )
    deps = service._deps
    assert deps.default_mode == ChatMode.read
    assert isinstance(deps.resources["todos"], TodoStore)
    assert deps.resolver._handlers is deps.orchestrator._deps.handlers
    assert deps.resolver._archive is deps.orchestrator._deps.archive
    assert deps.archive is deps.orchestrator._deps.archive
