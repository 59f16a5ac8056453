"""Operation catalog.

Static table of operation kinds and their risk classification, plus the
state-dependent rules for the kinds whose risk depends on their input.

This package exports:

- ``OperationSpec`` / ``OperationCatalog``: the immutable table.
- ``DEFAULT_CATALOG``: the catalog built once at import time.
- ``classify``: risk lookup against a catalog (the default one unless given).
"""

from typing import Any, Mapping, Optional

from ..schemas.domain import OperationRiskKind
from .default import DEFAULT_CATALOG
from .models import OperationCatalog, OperationSpec, RecordLookup


def classify(
    kind: str,
    input: Mapping[str, Any],
    ctx: Any = None,
    *,
    catalog: Optional[OperationCatalog] = None,
) -> OperationRiskKind:
    """Classify ``kind`` with ``input`` against ``catalog`` (default: ``DEFAULT_CATALOG``)."""
    return (catalog if catalog is not None else DEFAULT_CATALOG).classify(kind, input, ctx)


__all__ = [
    "DEFAULT_CATALOG",
    "OperationCatalog",
    "OperationSpec",
    "RecordLookup",
    "classify",
]
