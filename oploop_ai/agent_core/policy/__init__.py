"""Autonomy policy for operation execution.

The policy layer decides, per operation, whether it may run immediately or
must wait for a human decision. It is intentionally separate from risk
classification (the catalog) and from execution (the operation manager).

Components
----------

- ``authorize``: pure mode/risk ordering check.
- ``AutonomyPolicy``: ``decide`` plus input size validation and secret
  redaction, configured by ``PolicyConfig``.
- ``SafetyPolicy``: limits and redaction switches.
"""

from .autonomy import AutonomyPolicy, authorize
from .models import PolicyConfig, PolicyDecision, SafetyPolicy

__all__ = [
    "AutonomyPolicy",
    "PolicyConfig",
    "PolicyDecision",
    "SafetyPolicy",
    "authorize",
]
