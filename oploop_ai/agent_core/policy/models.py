from __future__ import annotations

from dataclasses import dataclass

from pydantic import Field

from ..schemas.base import BaseSchema
from ..schemas.domain import OperationRiskKind


class SafetyPolicy(BaseSchema):
    """
    Configuration for safety guardrails.

    Includes secret redaction for operation messages and a size limit on
    operation inputs proposed by the model.
    """
    redact_secrets: bool = True
    max_input_bytes: int = Field(default=64_000, ge=1, le=5_000_000)


class PolicyConfig(BaseSchema):
    """
    Aggregate configuration object for all policy aspects.

    This is the root configuration object used to instantiate an ``AutonomyPolicy``.
    """
    version: str = Field(default="policy-v1")
    safety_policy: SafetyPolicy = Field(default_factory=SafetyPolicy)


@dataclass(frozen=True)
class PolicyDecision:
    """
    Result of a policy evaluation for a specific operation.

    Attributes:
        risk: The risk kind resolved by the catalog.
        auto_execute: Whether the operation may run without approval.
        reason: Human-readable explanation of the verdict.
    """
    risk: OperationRiskKind
    auto_execute: bool
    reason: str
