"""oploop-ai.

This package contains the operation lifecycle engine behind a tool-calling
chat assistant: the model proposes operations (file writes, record deletes,
todo updates, ...) and the engine decides, per chat, which of them may run
immediately and which must wait for a human decision.

High-level architecture
-----------------------

- **Operations** are audited units of side-effecting work. Each one is
  classified by risk (``read``/``local``/``create``/``update``/``delete``)
  through an immutable catalog before any policy decision is made.
- **Chat modes** are per-conversation autonomy ceilings. An operation whose
  risk is at or below the chat's mode runs immediately; everything else is
  analyzed and surfaced for approval.

Core subpackages
----------------

- ``oploop_ai.agent_core``:

  - Operation catalog, autonomy policy and handler registry.
  - Operation manager and approval resolver (the per-operation state machine).
  - A LangGraph-based conversation orchestrator that streams model output and
    loops while operations conclude on their own.
  - Repository interfaces with in-memory and SQL implementations.

- ``oploop_ai.server``: FastAPI transport exposing chats, messages and
  approvals over Server-Sent Events.

Typical workflow
----------------

Most integrations should use ``oploop_ai.agent_core.service.ChatService``:

1. Create a chat with a mode.
2. Send a user message; the orchestrator runs one or more model turns.
3. If operations need approval, the turn stops in ``awaitingApproval``.
4. Submit approve/reject decisions; optionally continue with a follow-up turn.
"""
