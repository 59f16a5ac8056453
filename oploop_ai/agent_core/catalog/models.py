from __future__ import annotations

"""Operation catalog data structures.

The catalog maps an operation kind (a string tag such as ``"file_delete"``)
to an ``OperationSpec``. Specs are plain data: a static risk, an optional
risk function of ``(input, ctx)`` for kinds whose impact depends on the
current state, a description and an optional pydantic input model.

The catalog is immutable once built. Deployments that need extra kinds build
a new catalog with ``OperationCatalog.extended`` and pass it explicitly to the
components that classify operations.
"""

import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Iterable, Iterator, Mapping, Optional, Protocol, Type

from pydantic import BaseModel

from ..schemas.domain import OperationRiskKind

logger = logging.getLogger(__name__)

RiskFn = Callable[[Mapping[str, Any], Any], OperationRiskKind]


class RecordLookup(Protocol):
    """Read-only view of the structured data store consulted by dynamic risk rules."""

    def exists(self, type_name: str, record_id: str) -> bool: ...

    def count(self, type_name: str) -> int: ...


@dataclass(frozen=True)
class OperationSpec:
    """Catalog entry for one operation kind.

    Attributes:
        kind: The operation kind tag.
        risk: Static risk, also the fallback when ``risk_fn`` fails.
        description: Human readable description, used for tool descriptors.
        risk_fn: Optional state-dependent classifier. Must not mutate anything.
        input_model: Optional pydantic model validating the operation input.
    """

    kind: str
    risk: OperationRiskKind
    description: str = ""
    risk_fn: Optional[RiskFn] = None
    input_model: Optional[Type[BaseModel]] = None


class OperationCatalog(Mapping[str, OperationSpec]):
    """Immutable mapping of operation kind to ``OperationSpec``."""

    def __init__(self, specs: Iterable[OperationSpec]) -> None:
        table = {}
        for spec in specs:
            if spec.kind in table:
                raise ValueError(f"duplicate operation kind: {spec.kind}")
            table[spec.kind] = spec
        self._specs: Mapping[str, OperationSpec] = MappingProxyType(table)

    def __getitem__(self, kind: str) -> OperationSpec:
        return self._specs[kind]

    def __iter__(self) -> Iterator[str]:
        return iter(self._specs)

    def __len__(self) -> int:
        return len(self._specs)

    def extended(self, *specs: OperationSpec, replace: bool = False) -> "OperationCatalog":
        """Return a new catalog with ``specs`` added.

        Raises:
            ValueError: If a kind already exists and ``replace`` is False.
        """
        merged = dict(self._specs)
        for spec in specs:
            if spec.kind in merged and not replace:
                raise ValueError(f"duplicate operation kind: {spec.kind}")
            merged[spec.kind] = spec
        return OperationCatalog(merged.values())

    def classify(self, kind: str, input: Mapping[str, Any], ctx: Any = None) -> OperationRiskKind:
        """
        Resolve the risk of an operation request.

        Unknown kinds classify as ``delete``. A failing risk function falls
        back to the static risk of its ``OperationSpec``.

        Args:
            kind: The requested operation kind.
            input: The raw operation input.
            ctx: Context exposing ``resources`` for state-dependent rules.

        Returns:
            The resolved OperationRiskKind.
        """
        spec = self._specs.get(kind)
        if spec is None:
            logger.warning(f"Unknown operation kind '{kind}', classifying as delete")
            return OperationRiskKind.delete
        if spec.risk_fn is None:
            return spec.risk
        try:
            return OperationRiskKind(spec.risk_fn(input, ctx))
        except Exception as e:
            logger.warning(f"Risk function for '{kind}' failed, using static risk {spec.risk.value}: {e}")
            return spec.risk
