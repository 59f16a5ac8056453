from __future__ import annotations

"""Autonomy policy.

A chat's mode is a ceiling on the risk that may run without a human
decision. Risks are ordered ``read`` < ``create`` < ``update`` < ``delete``;
mode ``none`` sits below all of them and ``local`` operations are authorized
in every mode, ``none`` included.

``authorize`` is the pure ordering function. ``AutonomyPolicy`` wraps it with
the safety checks the operation manager applies before deciding.
"""

import json
import re
from typing import Any, Dict, Mapping, Optional

from ..schemas.domain import ChatMode, OperationRiskKind
from .models import PolicyConfig, PolicyDecision

_MODE_LEVELS: Dict[ChatMode, int] = {
    ChatMode.none: 0,
    ChatMode.read: 1,
    ChatMode.create: 2,
    ChatMode.update: 3,
    ChatMode.delete: 4,
}

_RISK_LEVELS: Dict[OperationRiskKind, int] = {
    OperationRiskKind.read: 1,
    OperationRiskKind.create: 2,
    OperationRiskKind.update: 3,
    OperationRiskKind.delete: 4,
}

_SECRET_PATTERNS = (
    re.compile(r"sk-[A-Za-z0-9_-]{10,}"),
    re.compile(r"ghp_[A-Za-z0-9]{10,}"),
    re.compile(r"xoxb-[A-Za-z0-9-]{10,}"),
)


def authorize(mode: ChatMode, risk: OperationRiskKind) -> bool:
    """Return True when ``risk`` may auto-execute under ``mode``."""
    risk = OperationRiskKind(risk)
    if risk == OperationRiskKind.local:
        return True
    return _RISK_LEVELS[risk] <= _MODE_LEVELS[ChatMode(mode)]


class AutonomyPolicy:
    """Policy decisions for the operations of a chat.

    ``AutonomyPolicy`` is configured by ``PolicyConfig`` and provides helper
    methods used by the operation manager.
    """

    def __init__(self, config: PolicyConfig | None = None) -> None:
        self._cfg = config or PolicyConfig()

    @property
    def config(self) -> PolicyConfig:
        """Return the underlying configuration object."""
        return self._cfg

    def decide(self, mode: ChatMode, risk: OperationRiskKind) -> PolicyDecision:
        """
        Decide whether an already classified operation may run immediately.

        Args:
            mode: The chat's autonomy mode.
            risk: The risk kind resolved by the catalog.

        Returns:
            A PolicyDecision with the verdict and a readable reason.
        """
        mode = ChatMode(mode)
        risk = OperationRiskKind(risk)
        if authorize(mode, risk):
            if risk == OperationRiskKind.local:
                reason = "local operations are always allowed"
            else:
                reason = f"risk {risk.value} is within mode {mode.value}"
            return PolicyDecision(risk=risk, auto_execute=True, reason=reason)
        return PolicyDecision(
            risk=risk,
            auto_execute=False,
            reason=f"risk {risk.value} exceeds mode {mode.value}",
        )

    def validate_input(self, input: Mapping[str, Any]) -> Optional[str]:
        """
        Validate operation input against basic safety constraints.

        Args:
            input: The operation input to validate.

        Returns:
            An error string if validation fails, otherwise None.
        """
        raw = json.dumps(input, default=str).encode("utf-8")
        if len(raw) > self._cfg.safety_policy.max_input_bytes:
            return f"operation input too large ({len(raw)} bytes)"
        return None

    def redact(self, text: str) -> str:
        """
        Redact known secrets from text.

        Args:
            text: The input text.

        Returns:
            The sanitized text with secrets replaced by '<redacted>'.
        """
        if not self._cfg.safety_policy.redact_secrets:
            return text
        out = text
        for pat in _SECRET_PATTERNS:
            out = pat.sub("<redacted>", out)
        return out
